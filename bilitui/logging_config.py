"""
Configuration du logging de l'application via loguru.

Fournit un logging structuré avec :
- Sortie console : lisible par l'humain, colorée, réservée par défaut aux avertissements
  pour ne pas polluer les tableaux Rich de la CLI
- Sortie fichier : sérialisée en JSON, avec rotation, pour l'analyse historique

Les valeurs des cookies d'authentification (SESSDATA, bili_jct) et les signatures
w_rid sont masquées avant écriture, quel que soit le handler.
"""

import re
import sys
from pathlib import Path

from loguru import logger

_SECRET_PATTERN = re.compile(r"(SESSDATA|bili_jct|refresh_token|w_rid)=([^;&\s]+)")


def redact_secrets(message: str) -> str:
    """Masque les valeurs sensibles d'un message de log."""
    return _SECRET_PATTERN.sub(r"\1=***", message)


def _patch_record(record: dict) -> None:
    record["message"] = redact_secrets(record["message"])


def configure_logging(
    log_level: str = "WARNING",
    log_file: Path = Path("logs/bilitui.log"),
    rotation_size: str = "10 MB",
    retention_count: int = 5,
) -> None:
    """Configure le logging de l'application.

    Args :
        log_level : Niveau de log minimum pour la sortie console (DEBUG, INFO, WARNING, ERROR)
        log_file : Chemin vers le fichier de log
        rotation_size : Taille maximale du fichier avant rotation (ex: "10 MB", "1 GB")
        retention_count : Nombre de fichiers rotatifs à conserver
    """
    # Supprime le handler par défaut
    logger.remove()
    logger.configure(patcher=_patch_record)

    logger.add(
        sys.stderr,
        level=log_level,
        format=(
            "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
            "<level>{level: <8}</level> | "
            "<cyan>{name}</cyan>:<cyan>{function}</cyan> | "
            "<level>{message}</level>"
        ),
        colorize=True,
    )

    # Handler fichier - JSON, capture les requêtes et heartbeats en DEBUG
    log_file.parent.mkdir(parents=True, exist_ok=True)
    logger.add(
        log_file,
        level="DEBUG",
        format="{message}",
        serialize=True,
        rotation=rotation_size,
        retention=retention_count,
        compression="zip",
        enqueue=True,  # Thread-safe (executor diskcache)
    )

    logger.debug("Logging configuré", log_file=str(log_file), rotation=rotation_size)

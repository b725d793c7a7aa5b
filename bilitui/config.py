"""
Configuration de l'application via pydantic-settings.

La configuration est chargée depuis les variables d'environnement avec le préfixe BILITUI_,
et peut optionnellement être fournie via un fichier .env.

Les cadences (heartbeat, polling QR, TTL du cache et des clés WBI) ont des valeurs
par défaut alignées sur le comportement du client web officiel.
"""

from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Trouver le fichier .env à la racine du projet (parent de bilitui/)
_PROJECT_ROOT = Path(__file__).parent.parent
_ENV_FILE = _PROJECT_ROOT / ".env"


class Settings(BaseSettings):
    """Paramètres de l'application avec support des variables d'environnement.

    Tous les paramètres peuvent être surchargés via des variables d'environnement
    avec le préfixe BILITUI_.
    Exemple : BILITUI_LOG_LEVEL=DEBUG

    Les chemins sont automatiquement étendus (~ -> répertoire home).
    """

    model_config = SettingsConfigDict(
        env_prefix="BILITUI_",
        env_file=_ENV_FILE if _ENV_FILE.exists() else ".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Chemins (avec expansion ~)
    data_dir: Path = Field(default=Path("~/.config/bilitui"))
    cache_dir: Path = Field(default=Path("~/.cache/bilitui"))

    # Base de données (session persistée + historique local)
    database_url: str = Field(default="sqlite:///~/.config/bilitui/bilitui.db")

    # Réseau
    request_timeout: float = Field(default=15.0, gt=0)
    max_retry_attempts: int = Field(default=3, ge=1)
    retry_max_wait: float = Field(default=10.0, ge=0)

    # Session et signature WBI
    wbi_keys_ttl: int = Field(default=24 * 60 * 60, ge=60)
    qr_poll_interval: float = Field(default=1.5, gt=0)
    qr_login_timeout: float = Field(default=180.0, gt=0)

    # Lecture
    player_command: str = Field(default="mpv")
    video_quality: int = Field(default=80)  # 80 = 1080P
    heartbeat_interval: float = Field(default=15.0, gt=0)
    final_flush_attempts: int = Field(default=3, ge=1)

    # Cache des flux et prefetch des couvertures
    feed_cache_ttl: int = Field(default=300, ge=0)
    prefetch_min_window: int = Field(default=10, ge=1)
    prefetch_max_window: int = Field(default=40, ge=1)
    prefetch_velocity_gain: float = Field(default=2.0, ge=0)
    prefetch_max_concurrency: int = Field(default=4, ge=1)
    prefetch_retention_margin: int = Field(default=10, ge=0)

    # Logging (fichier + stderr, rotation 10MB, 5 fichiers de rétention)
    log_level: str = Field(default="WARNING")
    log_file: Path = Field(default=Path("~/.cache/bilitui/logs/bilitui.log"))
    log_rotation_size: str = Field(default="10 MB")
    log_retention_count: int = Field(default=5)

    @field_validator("data_dir", "cache_dir", "log_file", mode="before")
    @classmethod
    def expand_path(cls, v: str | Path) -> Path:
        """Étend ~ vers le répertoire home dans les chemins."""
        return Path(v).expanduser()

    @field_validator("database_url", mode="before")
    @classmethod
    def expand_database_path(cls, v: str) -> str:
        """Étend ~ dans le chemin des URLs SQLite fichier."""
        prefix = "sqlite:///"
        if isinstance(v, str) and v.startswith(prefix + "~"):
            return prefix + str(Path(v[len(prefix):]).expanduser())
        return v

    @property
    def feed_cache_dir(self) -> Path:
        """Répertoire diskcache des pages de flux."""
        return self.cache_dir / "feeds"

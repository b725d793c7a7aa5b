"""
Interfaces ports pour le lecteur vidéo externe.

L'orchestrateur de lecture n'a que trois besoins vis-à-vis du lecteur :
le lancer avec une URL et des headers d'authentification, interroger la
position courante, et détecter la fin du processus (et sa cause).
"""

from abc import ABC, abstractmethod
from typing import Optional


class IPlayerProcess(ABC):
    """Handle d'un processus de lecteur en cours d'exécution."""

    @property
    @abstractmethod
    def pid(self) -> int:
        ...

    @property
    @abstractmethod
    def returncode(self) -> Optional[int]:
        """Code de sortie, None tant que le processus tourne."""
        ...

    @abstractmethod
    async def position(self) -> Optional[float]:
        """Position de lecture courante en secondes, None si indisponible."""
        ...

    @abstractmethod
    async def wait(self) -> int:
        """Attend la fin du processus et retourne son code de sortie."""
        ...

    @abstractmethod
    async def terminate(self) -> None:
        """Demande l'arrêt du lecteur (arrêt utilisateur)."""
        ...


class IMediaPlayer(ABC):
    """Lanceur de lecteur externe."""

    @abstractmethod
    async def launch(
        self,
        url: str,
        headers: dict[str, str],
        title: Optional[str] = None,
        start: Optional[int] = None,
        live: bool = False,
    ) -> IPlayerProcess:
        """
        Lance le lecteur.

        Args:
            url: URL du flux à lire
            headers: Headers HTTP injectés (Cookie, Referer, User-Agent)
            title: Titre affiché par le lecteur
            start: Position de départ en secondes (reprise)
            live: Flux de direct (page du salon, lecture à faible latence)

        Raises:
            PlayerLaunchError: Si le processus ne peut pas être lancé
        """
        ...

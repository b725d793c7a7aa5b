"""
Interfaces ports pour les repositories.

Interfaces abstraites (ports) définissant les contrats pour la persistance.
Les implémentations (adaptateurs) fournissent le stockage concret
(SQLite via SQLModel, en mémoire pour les tests, etc.).
"""

from abc import ABC, abstractmethod
from typing import Optional

from bilitui.core.entities.playback import WatchHistoryEntry
from bilitui.core.entities.session import Session


class ISessionStore(ABC):
    """
    Interface de stockage de la session.

    Persiste les cookies et le matériel de clés WBI entre deux lancements.
    """

    @abstractmethod
    def load(self) -> Optional[Session]:
        """Charge la session persistée, None si aucune."""
        ...

    @abstractmethod
    def save(self, session: Session) -> None:
        """Sauvegarde la session (remplace la précédente)."""
        ...

    @abstractmethod
    def clear(self) -> None:
        """Supprime la session persistée (déconnexion)."""
        ...


class IWatchHistoryRepository(ABC):
    """
    Interface de stockage de l'historique de lecture local.

    Une entrée par vidéo (bvid), avec la dernière position connue.
    """

    @abstractmethod
    def get(self, bvid: str) -> Optional[WatchHistoryEntry]:
        """Récupère l'entrée d'une vidéo."""
        ...

    @abstractmethod
    def record(self, entry: WatchHistoryEntry) -> WatchHistoryEntry:
        """Insère ou met à jour l'entrée d'une vidéo."""
        ...

    @abstractmethod
    def list_recent(self, limit: int = 20) -> list[WatchHistoryEntry]:
        """Liste les entrées les plus récentes."""
        ...

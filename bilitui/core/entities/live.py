"""
Entités des salons de direct.

Le flux d'un direct est résolu par le lecteur à partir de la page du
salon : aucun heartbeat ni position de reprise n'est associé à une
session de direct.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

LIVE_ROOM_URL = "https://live.bilibili.com/{room_id}"


class LiveStatus(Enum):
    """Statut de diffusion d'un salon (champ live_status)."""

    OFFLINE = 0
    LIVE = 1
    ROUND = 2

    @classmethod
    def from_code(cls, code: Optional[int]) -> "LiveStatus":
        """Statut correspondant au code ; un code inconnu vaut OFFLINE."""
        try:
            return cls(code)
        except ValueError:
            return cls.OFFLINE

    @property
    def label(self) -> str:
        return _STATUS_LABELS[self]


_STATUS_LABELS = {
    LiveStatus.OFFLINE: "hors ligne",
    LiveStatus.LIVE: "en direct",
    LiveStatus.ROUND: "rediffusion",
}


@dataclass(frozen=True)
class LiveRoom:
    """
    Salon de direct.

    Attributs :
        room_id : Identifiant long du salon
        uid : Identifiant de l'animateur
        title : Titre du direct
        uname : Nom de l'animateur
        cover_url : Couverture (ou image clé à défaut)
        online : Spectateurs annoncés
        area_name : Sous-catégorie (area_v2_name)
        parent_area_name : Catégorie parente
        status : Statut de diffusion
        description : Description du salon (détail uniquement)
    """

    room_id: int
    uid: Optional[int] = None
    title: str = ""
    uname: str = "-"
    cover_url: Optional[str] = None
    online: Optional[int] = None
    area_name: str = ""
    parent_area_name: str = ""
    status: LiveStatus = LiveStatus.LIVE
    description: str = ""

    @property
    def id(self) -> str:
        return str(self.room_id)

    @property
    def page_url(self) -> str:
        return LIVE_ROOM_URL.format(room_id=self.room_id)

    @property
    def is_playable(self) -> bool:
        return self.status is not LiveStatus.OFFLINE


@dataclass
class LiveSession:
    """
    Lecture d'un direct dans le lecteur externe.

    Attributs :
        room : Salon regardé
        process : Handle du lecteur (IPlayerProcess), None une fois arrêté
        stopped : Indique que le lecteur s'est terminé
    """

    room: LiveRoom
    process: Optional[Any] = None
    stopped: bool = False

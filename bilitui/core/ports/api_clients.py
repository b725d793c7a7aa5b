"""
Interfaces ports pour les clients API.

Interfaces abstraites (ports) définissant les contrats avec la plateforme
Bilibili. Les implémentations (adaptateurs) fournissent les clients httpx
concrets :
- IAuthAPI : passeport (QR code) et récupération des clés WBI
- IVideoAPIClient : opérations typées sur les flux, vidéos et heartbeats
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Optional

from bilitui.core.entities.live import LiveRoom
from bilitui.core.entities.playback import HeartbeatReport
from bilitui.core.entities.video import (
    CommentPage,
    FeedPage,
    HistoryCursor,
    HistoryPage,
    HotSearchItem,
    StreamInfo,
    VideoCard,
    VideoDetail,
    VideoRef,
)


@dataclass
class QRCodeTicket:
    """
    Jeton de connexion QR émis par le passeport.

    Attributs :
        qrcode_key : Identifiant à transmettre lors du polling
        url : Contenu à encoder dans le QR code
    """

    qrcode_key: str
    url: str


@dataclass
class QRPollResult:
    """
    Résultat d'une requête de polling QR.

    Attributs :
        code : Code métier du passeport (86101, 86090, 0, 86038)
        message : Message associé
        cookies : Cookies émis (renseignés uniquement à la confirmation)
        refresh_token : Jeton de rafraîchissement (confirmation)
    """

    code: int
    message: str = ""
    cookies: dict[str, str] = field(default_factory=dict)
    refresh_token: Optional[str] = None


class IAuthAPI(ABC):
    """
    Contrat des appels d'authentification utilisés par le SessionManager.

    Ces appels ne sont jamais signés et ne dépendent pas de la session.
    """

    @abstractmethod
    async def generate_qrcode(self) -> QRCodeTicket:
        """Demande un nouveau jeton de connexion QR."""
        ...

    @abstractmethod
    async def poll_qrcode(self, qrcode_key: str) -> QRPollResult:
        """Interroge l'état d'une tentative de connexion QR."""
        ...

    @abstractmethod
    async def fetch_wbi_keys(self, cookie_header: Optional[str] = None) -> tuple[str, str]:
        """
        Récupère les fragments de clés WBI (img_key, sub_key).

        Raises:
            AuthenticationError: Si les clés ne peuvent pas être obtenues
        """
        ...


class IVideoAPIClient(ABC):
    """
    Contrat des opérations typées sur l'API Bilibili.

    Les implémentations gèrent la signature WBI, les cookies, le retry
    et la classification des erreurs (voir core/exceptions.py).
    """

    @abstractmethod
    async def get_recommendations(self, page: int = 1) -> FeedPage:
        ...

    @abstractmethod
    async def search_videos(self, keyword: str, page: int = 1) -> FeedPage:
        ...

    @abstractmethod
    async def get_hot_search(self, limit: int = 10) -> list[HotSearchItem]:
        ...

    @abstractmethod
    async def get_video_detail(self, bvid: str) -> Optional[VideoDetail]:
        """Retourne les détails (dont les parties), ou None si introuvable."""
        ...

    @abstractmethod
    async def get_related_videos(self, bvid: str) -> list[VideoCard]:
        ...

    @abstractmethod
    async def get_dynamic_feed(self, offset: Optional[str] = None) -> FeedPage:
        ...

    @abstractmethod
    async def get_comments(self, aid: int, page: int = 1) -> CommentPage:
        ...

    @abstractmethod
    async def get_history(self, cursor: Optional[HistoryCursor] = None) -> HistoryPage:
        ...

    @abstractmethod
    async def get_play_url(self, bvid: str, cid: int, quality: Optional[int] = None) -> StreamInfo:
        ...

    @abstractmethod
    async def get_live_recommendations(self, page: int = 1) -> list[LiveRoom]:
        ...

    @abstractmethod
    async def get_live_room(self, room_id: int) -> Optional[LiveRoom]:
        """Retourne le salon et son statut, ou None s'il n'existe pas."""
        ...

    @abstractmethod
    async def report_heartbeat(self, report: HeartbeatReport) -> None:
        """Transmet un heartbeat. Une seule tentative : pas de retry interne."""
        ...

    @abstractmethod
    async def report_watch_start(self, ref: VideoRef, part_index: int) -> None:
        ...

    @abstractmethod
    async def fetch_cover(self, url: str) -> bytes:
        """Télécharge une image de couverture."""
        ...

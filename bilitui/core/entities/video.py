"""
Entités vidéo et résultats typés de l'API.

Ces dataclasses sont produites par le client API et consommées par la
CLI, l'orchestrateur de lecture et le planificateur de prefetch.
"""

import re
from dataclasses import dataclass, field
from typing import Optional

_HIGHLIGHT_TAG = re.compile(r"</?em[^>]*>")


def normalize_cover_url(url: Optional[str]) -> Optional[str]:
    """Complète les URLs protocol-relative ("//i0.hdslb.com/...") en https."""
    if not url:
        return None
    if url.startswith("//"):
        return f"https:{url}"
    if url.startswith("http://"):
        return "https://" + url[len("http://"):]
    return url


def strip_highlight(title: str) -> str:
    """Retire le balisage de surlignage des résultats de recherche."""
    return _HIGHLIGHT_TAG.sub("", title or "")


def format_count(value: Optional[int]) -> str:
    """Formate un compteur à la manière de Bilibili (12345 -> "1.2万")."""
    if value is None:
        return "-"
    if value >= 10000:
        return f"{value / 10000:.1f}万"
    return str(value)


def format_duration(seconds: Optional[int]) -> str:
    """Formate une durée en mm:ss (ou h:mm:ss au-delà d'une heure)."""
    if seconds is None:
        return "--:--"
    hours, rest = divmod(int(seconds), 3600)
    minutes, secs = divmod(rest, 60)
    if hours:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes:02d}:{secs:02d}"


def parse_duration(text: str) -> Optional[int]:
    """Convertit "mm:ss" ou "h:mm:ss" (format de la recherche) en secondes."""
    if not text:
        return None
    try:
        parts = [int(p) for p in text.split(":")]
    except ValueError:
        return None
    total = 0
    for part in parts:
        total = total * 60 + part
    return total


@dataclass(frozen=True)
class VideoPart:
    """
    Partie (page) d'une vidéo multi-parties.

    Attributs :
        cid : Identifiant de contenu propre à la partie
        page : Numéro de page (1-indexé)
        title : Titre de la partie
        duration : Durée en secondes
    """

    cid: int
    page: int = 1
    title: str = ""
    duration: int = 0


@dataclass
class VideoRef:
    """
    Référence stable vers une vidéo et la partie sélectionnée.

    Attributs :
        bvid : Identifiant BV de la vidéo
        aid : Identifiant numérique (av)
        parts : Parties ordonnées
        selected_index : Index (0-indexé) de la partie sélectionnée
    """

    bvid: str
    aid: int
    parts: list[VideoPart] = field(default_factory=list)
    selected_index: int = 0

    def part(self, index: Optional[int] = None) -> VideoPart:
        """Retourne la partie demandée (par défaut la partie sélectionnée)."""
        idx = self.selected_index if index is None else index
        if not 0 <= idx < len(self.parts):
            raise IndexError(f"Partie {idx} inexistante pour {self.bvid}")
        return self.parts[idx]

    @property
    def page_url(self) -> str:
        return f"https://www.bilibili.com/video/{self.bvid}"


@dataclass(frozen=True)
class VideoCard:
    """Vidéo résumée telle qu'affichée dans les flux, recherches et historique."""

    bvid: str
    title: str
    aid: Optional[int] = None
    cid: Optional[int] = None
    cover_url: Optional[str] = None
    author: str = "-"
    duration: Optional[int] = None
    views: Optional[int] = None

    @property
    def id(self) -> str:
        return self.bvid


@dataclass
class FeedPage:
    """
    Page d'un flux paginé (recommandations, recherche, dynamiques).

    Attributs :
        items : Vidéos de la page
        page : Numéro de page (flux numérotés)
        offset : Curseur opaque de la page suivante (flux à curseur)
        has_more : Indique si une page suivante existe
        total : Nombre total de résultats si connu
    """

    items: list[VideoCard] = field(default_factory=list)
    page: int = 1
    offset: Optional[str] = None
    has_more: bool = False
    total: Optional[int] = None


@dataclass(frozen=True)
class VideoStat:
    view: int = 0
    danmaku: int = 0
    like: int = 0
    coin: int = 0
    favorite: int = 0
    share: int = 0
    reply: Optional[int] = None


@dataclass
class VideoDetail:
    """Détails complets d'une vidéo, incluant la liste des parties."""

    bvid: str
    aid: int
    cid: int
    title: str
    description: str = ""
    cover_url: Optional[str] = None
    duration: int = 0
    pubdate: Optional[int] = None
    owner_mid: Optional[int] = None
    owner_name: str = "-"
    stat: VideoStat = field(default_factory=VideoStat)
    parts: list[VideoPart] = field(default_factory=list)

    def to_ref(self, selected_index: int = 0) -> VideoRef:
        """Construit la VideoRef utilisée par l'orchestrateur de lecture."""
        parts = list(self.parts) or [
            VideoPart(cid=self.cid, page=1, title=self.title, duration=self.duration)
        ]
        return VideoRef(
            bvid=self.bvid,
            aid=self.aid,
            parts=parts,
            selected_index=selected_index,
        )


@dataclass(frozen=True)
class HotSearchItem:
    keyword: str
    show_name: str
    position: int


@dataclass
class Comment:
    rpid: int
    author: str
    message: str
    like: int = 0
    ctime: Optional[int] = None
    reply_count: int = 0
    replies: list["Comment"] = field(default_factory=list)


@dataclass
class CommentPage:
    items: list[Comment] = field(default_factory=list)
    hots: list[Comment] = field(default_factory=list)
    page: int = 1
    count: int = 0

    @property
    def has_more(self) -> bool:
        return self.page * 20 < self.count


@dataclass(frozen=True)
class HistoryCursor:
    """Curseur de pagination de l'historique (max, view_at, business)."""

    max: int = 0
    view_at: int = 0
    business: str = ""


@dataclass(frozen=True)
class HistoryItem:
    bvid: str
    title: str
    aid: Optional[int] = None
    cid: Optional[int] = None
    cover_url: Optional[str] = None
    author: str = "-"
    progress: int = 0
    duration: int = 0
    view_at: int = 0


@dataclass
class HistoryPage:
    items: list[HistoryItem] = field(default_factory=list)
    cursor: Optional[HistoryCursor] = None


@dataclass(frozen=True)
class StreamInfo:
    """
    Flux de lecture résolu pour une partie.

    Attributs :
        url : URL principale du flux (durl[0])
        backup_urls : URLs de secours
        quality : Qualité effectivement servie (qn)
        duration_ms : Durée annoncée en millisecondes
    """

    url: str
    backup_urls: tuple[str, ...] = ()
    quality: Optional[int] = None
    duration_ms: Optional[int] = None

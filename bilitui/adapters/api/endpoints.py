"""
Table des endpoints Bilibili utilises par le client.

Chaque endpoint decrit sa politique : signature WBI requise ou non,
retry autorise ou non, jeton CSRF requis ou non. Le client consomme
ces descripteurs de maniere uniforme.
"""

from dataclasses import dataclass
from enum import Enum

USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)
REFERER = "https://www.bilibili.com/"


class ApiDomain(Enum):
    MAIN = "https://api.bilibili.com"
    PASSPORT = "https://passport.bilibili.com"
    LIVE = "https://api.live.bilibili.com"


@dataclass(frozen=True)
class Endpoint:
    """
    Descripteur d'endpoint.

    Attributes:
        name: Nom logique (logs, cles de cache)
        path: Chemin relatif au domaine
        domain: Domaine de l'API
        method: Methode HTTP
        signed: Signature WBI requise (wts + w_rid)
        retryable: Retry sur erreurs transitoires autorise
        requires_csrf: Ajoute csrf=bili_jct au formulaire
    """

    name: str
    path: str
    domain: ApiDomain = ApiDomain.MAIN
    method: str = "GET"
    signed: bool = False
    retryable: bool = True
    requires_csrf: bool = False

    @property
    def url(self) -> str:
        return f"{self.domain.value}{self.path}"


NAV = Endpoint("nav", "/x/web-interface/nav")
QRCODE_GENERATE = Endpoint(
    "qrcode_generate",
    "/x/passport-login/web/qrcode/generate",
    domain=ApiDomain.PASSPORT,
)
# Un poll perdu est rattrape par le tick suivant : pas de retry interne
QRCODE_POLL = Endpoint(
    "qrcode_poll",
    "/x/passport-login/web/qrcode/poll",
    domain=ApiDomain.PASSPORT,
    retryable=False,
)

RECOMMEND_FEED = Endpoint(
    "recommend_feed", "/x/web-interface/wbi/index/top/feed/rcmd", signed=True
)
SEARCH = Endpoint("search", "/x/web-interface/wbi/search/type", signed=True)
HOT_SEARCH = Endpoint("hot_search", "/x/web-interface/wbi/search/square", signed=True)
VIDEO_VIEW = Endpoint("video_view", "/x/web-interface/view")
RELATED = Endpoint("related", "/x/web-interface/archive/related")
DYNAMIC_FEED = Endpoint("dynamic_feed", "/x/polymer/web-dynamic/v1/feed/all")
COMMENTS = Endpoint("comments", "/x/v2/reply")
HISTORY = Endpoint("history", "/x/web-interface/history/cursor")
PLAY_URL = Endpoint("play_url", "/x/player/wbi/playurl", signed=True)
HEARTBEAT = Endpoint(
    "heartbeat",
    "/x/click-interface/web/heartbeat",
    method="POST",
    retryable=False,
    requires_csrf=True,
)
WATCH_START = Endpoint(
    "watch_start",
    "/x/click-interface/click/web/h5",
    method="POST",
    retryable=False,
)

LIVE_RECOMMEND = Endpoint(
    "live_recommend",
    "/xlive/web-interface/v1/webMain/getMoreRecList",
    domain=ApiDomain.LIVE,
)
LIVE_ROOM_INFO = Endpoint("live_room_info", "/room/v1/Room/get_info", domain=ApiDomain.LIVE)

# Codes metier renvoyes dans le champ "code" du corps JSON
CODE_OK = 0
AUTH_EXPIRED_CODES = frozenset({-101, -111})
SIGNATURE_REJECTED_CODES = frozenset({-352})
RATE_LIMITED_CODES = frozenset({-412, -509, -799})
NOT_FOUND_CODES = frozenset({-404, 62002, 62004})
# "code": 1 accompagne un salon inexistant sur les endpoints du direct
LIVE_ROOM_NOT_FOUND_CODES = frozenset({1, 19002000})

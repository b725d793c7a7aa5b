"""
Entités de session Bilibili.

La Session regroupe les cookies d'authentification, le matériel de clés
WBI (mixin) et l'état d'authentification. Elle est possédée exclusivement
par le SessionManager ; les autres composants ne lisent que des copies
immuables obtenues via snapshot().
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Optional


class AuthState(Enum):
    """État d'authentification de la session."""

    ANONYMOUS = "anonymous"
    AUTHENTICATING = "authenticating"
    AUTHENTICATED = "authenticated"
    EXPIRED = "expired"


@dataclass(frozen=True)
class MixinKeyMaterial:
    """
    Fragments de clés WBI récupérés depuis l'endpoint nav.

    Les deux fragments sont combinés par la table de permutation du
    signataire pour dériver la clé mixin de 32 caractères.

    Attributs :
        img_key : Fragment issu de wbi_img.img_url
        sub_key : Fragment issu de wbi_img.sub_url
        fetched_at : Horodatage (secondes epoch) de la récupération
    """

    img_key: str
    sub_key: str
    fetched_at: float

    def is_stale(self, ttl: float, now: float) -> bool:
        """Indique si les clés doivent être rafraîchies (cadence indépendante des cookies)."""
        return now - self.fetched_at >= ttl


@dataclass
class Session:
    """
    Session d'authentification Bilibili.

    Attributs :
        cookies : Cookies émis par le passeport (SESSDATA, bili_jct, DedeUserID...)
        keys : Matériel de clés WBI, None tant qu'il n'a pas été récupéré
        state : État d'authentification
        refresh_token : Jeton de rafraîchissement renvoyé par la connexion QR
    """

    cookies: dict[str, str] = field(default_factory=dict)
    keys: Optional[MixinKeyMaterial] = None
    state: AuthState = AuthState.ANONYMOUS
    refresh_token: Optional[str] = None

    @property
    def csrf(self) -> Optional[str]:
        """Jeton CSRF requis par les endpoints d'écriture (cookie bili_jct)."""
        return self.cookies.get("bili_jct")

    @property
    def mid(self) -> Optional[str]:
        """Identifiant utilisateur (cookie DedeUserID)."""
        return self.cookies.get("DedeUserID")

    @property
    def is_authenticated(self) -> bool:
        return self.state is AuthState.AUTHENTICATED

    def cookie_header(self) -> str:
        """Construit la valeur du header Cookie ("nom=valeur; nom=valeur")."""
        return "; ".join(f"{name}={value}" for name, value in self.cookies.items())

    def snapshot(self) -> "Session":
        """Retourne une copie indépendante, sûre à partager en lecture."""
        return replace(self, cookies=dict(self.cookies))

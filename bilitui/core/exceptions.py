"""
Hiérarchie d'exceptions de bilitui.

Toutes les erreurs qui traversent les couches héritent de BiliError.
Les exceptions httpx brutes ne doivent jamais dépasser la couche adaptateur :
elles sont classifiées à la frontière du client API et relevées sous la
forme d'une sous-classe typée définie ici.

Hiérarchie :
    BiliError
    ├── TransientNetworkError      (relancée avec backoff, tentatives bornées)
    │   └── RateLimitError         (transitoire, backoff plus long)
    ├── AuthExpiredError           (session invalidée, reconnexion requise)
    ├── AuthenticationError        (échec d'obtention des clés WBI)
    ├── SignatureRejectedError     (signature WBI refusée après rafraîchissement)
    ├── ClientError                (autres 4xx / codes métier, non relancée)
    ├── PlayerLaunchError          (lancement du lecteur impossible, fatale)
    ├── HeartbeatDroppedError      (heartbeat perdu, tolérée hors flush final)
    └── InvalidTransitionError     (transition d'état interdite)

Les issues QR EXPIRED / CANCELLED sont des états terminaux, pas des erreurs.
Un défaut de cache n'est pas une erreur : la recherche retourne None.
"""

from typing import Optional


class BiliError(Exception):
    """
    Exception de base pour toutes les erreurs bilitui.

    Attributs :
        hint : Indication optionnelle affichée sous le message par la CLI
        code : Code métier Bilibili ou statut HTTP à l'origine de l'erreur
    """

    def __init__(
        self,
        message: str,
        *,
        hint: Optional[str] = None,
        code: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.hint = hint
        self.code = code


class TransientNetworkError(BiliError):
    """Timeout, connexion réinitialisée ou erreur 5xx."""


class RateLimitError(TransientNetworkError):
    """
    Exception levée quand l'API limite le débit (429, 412, -412, -509, -799).

    Attributs :
        retry_after : Secondes à attendre (header Retry-After), ou None
    """

    def __init__(
        self,
        retry_after: Optional[int] = None,
        *,
        code: Optional[int] = None,
    ) -> None:
        self.retry_after = retry_after
        super().__init__(f"Rate limited. Retry after: {retry_after}s", code=code)


class AuthExpiredError(BiliError):
    """Cookies expirés ou invalides : la session doit être renouvelée."""

    def __init__(self, message: str = "Session expirée", *, code: Optional[int] = None) -> None:
        super().__init__(message, hint="Relancez `bilitui login`.", code=code)


class AuthenticationError(BiliError):
    """Impossible d'obtenir le matériel de clés WBI."""


class SignatureRejectedError(BiliError):
    """Le serveur refuse la signature WBI malgré un rafraîchissement des clés."""


class ClientError(BiliError):
    """Erreur client non relançable (4xx ou code métier inattendu)."""


class PlayerLaunchError(BiliError):
    """Le processus du lecteur externe n'a pas pu être lancé."""


class HeartbeatDroppedError(BiliError):
    """Un rapport de progression n'a pas pu être transmis."""


class InvalidTransitionError(BiliError):
    """Transition d'état interdite par la machine à états."""

"""
Entités de la connexion par QR code.

Une tentative de connexion suit une machine à états explicite :

    PENDING ──► SCANNED ──► CONFIRMED
       │           │
       ├──► EXPIRED ◄┤
       └──► CANCELLED ◄┘

CONFIRMED, EXPIRED et CANCELLED sont terminaux : aucune transition ni
requête de polling n'a lieu après les avoir atteints.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from bilitui.core.exceptions import InvalidTransitionError
from bilitui.utils.cancellation import CancellationToken


class QRPollState(Enum):
    """État de polling d'une tentative de connexion QR."""

    PENDING = "pending"
    SCANNED = "scanned"
    CONFIRMED = "confirmed"
    EXPIRED = "expired"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in _TERMINAL_STATES

    @classmethod
    def from_code(cls, code: int) -> Optional["QRPollState"]:
        """
        Convertit un code de réponse du passeport en état.

        Returns:
            L'état correspondant, ou None pour un code inconnu
        """
        return _POLL_CODES.get(code)


_TERMINAL_STATES = frozenset(
    {QRPollState.CONFIRMED, QRPollState.EXPIRED, QRPollState.CANCELLED}
)

# Codes renvoyés par /x/passport-login/web/qrcode/poll
_POLL_CODES = {
    0: QRPollState.CONFIRMED,
    86038: QRPollState.EXPIRED,
    86090: QRPollState.SCANNED,
    86101: QRPollState.PENDING,
}

_ALLOWED_TRANSITIONS: dict[QRPollState, frozenset[QRPollState]] = {
    QRPollState.PENDING: frozenset(
        {
            QRPollState.SCANNED,
            QRPollState.CONFIRMED,
            QRPollState.EXPIRED,
            QRPollState.CANCELLED,
        }
    ),
    QRPollState.SCANNED: frozenset(
        {QRPollState.CONFIRMED, QRPollState.EXPIRED, QRPollState.CANCELLED}
    ),
    QRPollState.CONFIRMED: frozenset(),
    QRPollState.EXPIRED: frozenset(),
    QRPollState.CANCELLED: frozenset(),
}


@dataclass
class QRLoginAttempt:
    """
    Tentative de connexion par QR code.

    Attributs :
        qrcode_key : Jeton identifiant la tentative côté passeport
        url : Contenu à encoder dans le QR code (scanné par l'app mobile)
        created_at : Horodatage monotone de création
        deadline : Horodatage monotone au-delà duquel la tentative expire
        state : État courant de la machine à états
        token : Jeton d'annulation vérifié à chaque tick de polling
    """

    qrcode_key: str
    url: str
    created_at: float
    deadline: float
    state: QRPollState = QRPollState.PENDING
    token: CancellationToken = field(default_factory=CancellationToken)

    @property
    def is_terminal(self) -> bool:
        return self.state.is_terminal

    def can_transition(self, new_state: QRPollState) -> bool:
        return new_state in _ALLOWED_TRANSITIONS[self.state]

    def transition(self, new_state: QRPollState) -> bool:
        """
        Applique une transition.

        Rester dans le même état non terminal est un no-op (retourne False).
        SCANNED -> PENDING est ignoré : le passeport peut renvoyer un état
        plus ancien entre deux polls.

        Returns:
            True si l'état a changé

        Raises:
            InvalidTransitionError: Si la transition est interdite
        """
        if new_state is self.state and not self.is_terminal:
            return False
        if self.state is QRPollState.SCANNED and new_state is QRPollState.PENDING:
            return False
        if not self.can_transition(new_state):
            raise InvalidTransitionError(
                f"Transition QR interdite: {self.state.value} -> {new_state.value}"
            )
        self.state = new_state
        return True

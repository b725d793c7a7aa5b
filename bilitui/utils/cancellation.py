"""
Jeton d'annulation cooperatif pour les taches de fond asyncio.

Le polling QR et les jobs de prefetch verifient le jeton a chaque point
de suspension : une fois l'annulation observee, aucun effet de bord
(ecriture, requete, rapport) ne doit plus avoir lieu.
"""

import asyncio


class CancellationToken:
    """
    Jeton d'annulation explicite.

    Example:
        token = CancellationToken()
        while not token.cancelled:
            if await token.sleep(1.5):
                break  # annule pendant l'attente
        token.cancel()
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()

    @property
    def cancelled(self) -> bool:
        """Indique si l'annulation a ete demandee."""
        return self._event.is_set()

    def cancel(self) -> None:
        """Demande l'annulation (idempotent)."""
        self._event.set()

    async def sleep(self, seconds: float) -> bool:
        """
        Attend `seconds` secondes ou jusqu'a l'annulation.

        Returns:
            True si le jeton a ete annule pendant (ou avant) l'attente
        """
        if self.cancelled:
            return True
        try:
            await asyncio.wait_for(self._event.wait(), timeout=max(seconds, 0))
        except asyncio.TimeoutError:
            return self.cancelled
        return True

"""
Service de gestion de la session Bilibili.

Le SessionManager possede l'unique Session du processus et serialise
toutes ses mutations (connexion QR, rafraichissement des cles WBI,
expiration, deconnexion). Les autres composants n'en lisent que des
copies via snapshot().

Connexion QR :
    attempt = await manager.start_login()
    render(attempt.url)
    async for state in manager.poll_login(attempt):
        print(state)          # SCANNED, CONFIRMED, EXPIRED ou CANCELLED

Cles WBI :
    keys = await manager.ensure_fresh_keys()   # un seul fetch en vol
"""

import asyncio
import time
from collections.abc import AsyncIterator
from typing import Callable, Optional

from loguru import logger

from bilitui.core.entities.login import QRLoginAttempt, QRPollState
from bilitui.core.entities.session import AuthState, MixinKeyMaterial, Session
from bilitui.core.exceptions import AuthenticationError, BiliError
from bilitui.core.ports.api_clients import IAuthAPI, QRPollResult
from bilitui.core.ports.repositories import ISessionStore


class SessionManager:
    """
    Proprietaire de l'etat d'authentification.

    Garanties :
    - une seule tentative QR active (en demarrer une annule la precedente)
    - aucune requete de polling apres un etat terminal
    - un seul rafraichissement des cles en vol, resultat partage par
      tous les appelants concurrents
    - mutations serialisees par un verrou, lecteurs servis par copie
    """

    def __init__(
        self,
        auth_api: IAuthAPI,
        store: Optional[ISessionStore] = None,
        keys_ttl: float = 24 * 60 * 60,
        poll_interval: float = 1.5,
        login_timeout: float = 180.0,
        clock: Callable[[], float] = time.monotonic,
        wall_clock: Callable[[], float] = time.time,
    ) -> None:
        """
        Initialise le gestionnaire.

        Args:
            auth_api: Client du passeport (QR) et de l'endpoint nav
            store: Stockage persistant de la session (optionnel)
            keys_ttl: Duree de validite des cles WBI en secondes
            poll_interval: Intervalle entre deux polls QR
            login_timeout: Duree maximale d'une tentative QR
            clock: Horloge monotone (echeances du polling)
            wall_clock: Horloge epoch (fraicheur des cles, persistee)
        """
        self._auth_api = auth_api
        self._store = store
        self._keys_ttl = keys_ttl
        self._poll_interval = poll_interval
        self._login_timeout = login_timeout
        self._clock = clock
        self._wall_clock = wall_clock

        self._session = Session()
        self._lock = asyncio.Lock()
        self._refresh_task: Optional[asyncio.Task] = None
        self._attempt: Optional[QRLoginAttempt] = None
        self._state_before_login = AuthState.ANONYMOUS

    # ------------------------------------------------------------------
    # Lecture
    # ------------------------------------------------------------------

    @property
    def state(self) -> AuthState:
        return self._session.state

    @property
    def is_logged_in(self) -> bool:
        return self._session.state is AuthState.AUTHENTICATED

    @property
    def active_attempt(self) -> Optional[QRLoginAttempt]:
        return self._attempt

    def snapshot(self) -> Session:
        """Copie de la session, sure a partager entre requetes concurrentes."""
        return self._session.snapshot()

    def load(self) -> Session:
        """
        Restaure la session persistee.

        Une session restee en AUTHENTICATING (processus interrompu pendant
        une connexion) est reclassee selon la presence de SESSDATA.
        """
        if self._store is None:
            return self.snapshot()
        stored = self._store.load()
        if stored is not None:
            if stored.state is AuthState.AUTHENTICATING:
                stored.state = (
                    AuthState.AUTHENTICATED
                    if "SESSDATA" in stored.cookies
                    else AuthState.ANONYMOUS
                )
            self._session = stored
            logger.debug(f"Session restauree (etat: {stored.state.value})")
        return self.snapshot()

    def _persist(self) -> None:
        if self._store is not None:
            self._store.save(self._session.snapshot())

    # ------------------------------------------------------------------
    # Cles WBI
    # ------------------------------------------------------------------

    def _fresh_keys(self) -> Optional[MixinKeyMaterial]:
        keys = self._session.keys
        if keys is not None and not keys.is_stale(self._keys_ttl, self._wall_clock()):
            return keys
        return None

    async def ensure_fresh_keys(self) -> MixinKeyMaterial:
        """
        Retourne des cles WBI fraiches, en les rafraichissant si necessaire.

        Raises:
            AuthenticationError: Si les cles ne peuvent pas etre obtenues
        """
        keys = self._fresh_keys()
        if keys is not None:
            return keys
        return await self.refresh_keys()

    async def refresh_keys(self, force: bool = False) -> MixinKeyMaterial:
        """
        Rafraichit les cles WBI.

        Les appelants concurrents rejoignent le rafraichissement en vol au
        lieu d'en declencher un nouveau.

        Args:
            force: Rafraichit meme si les cles semblent fraiches (signature refusee)
        """
        if not force:
            keys = self._fresh_keys()
            if keys is not None:
                return keys

        if self._refresh_task is None:
            task = asyncio.create_task(self._do_refresh_keys())
            task.add_done_callback(self._on_refresh_done)
            self._refresh_task = task
        return await asyncio.shield(self._refresh_task)

    def _on_refresh_done(self, task: asyncio.Task) -> None:
        if self._refresh_task is task:
            self._refresh_task = None
        if not task.cancelled() and task.exception() is not None:
            logger.warning(f"Rafraichissement des cles WBI echoue: {task.exception()}")

    async def _do_refresh_keys(self) -> MixinKeyMaterial:
        cookie_header = self._session.cookie_header() or None
        try:
            img_key, sub_key = await self._auth_api.fetch_wbi_keys(cookie_header)
        except AuthenticationError:
            raise
        except BiliError as e:
            raise AuthenticationError(f"Recuperation des cles WBI impossible: {e}") from e

        keys = MixinKeyMaterial(img_key=img_key, sub_key=sub_key, fetched_at=self._wall_clock())
        async with self._lock:
            self._session.keys = keys
            self._persist()
        logger.info("Cles WBI rafraichies")
        return keys

    # ------------------------------------------------------------------
    # Connexion QR
    # ------------------------------------------------------------------

    async def start_login(self) -> QRLoginAttempt:
        """
        Demarre une tentative de connexion QR.

        Toute tentative active est annulee au prealable.

        Returns:
            QRLoginAttempt en etat PENDING, dont l'URL est a afficher en QR code
        """
        self.cancel_login()
        ticket = await self._auth_api.generate_qrcode()
        now = self._clock()
        attempt = QRLoginAttempt(
            qrcode_key=ticket.qrcode_key,
            url=ticket.url,
            created_at=now,
            deadline=now + self._login_timeout,
        )
        async with self._lock:
            if self._session.state is not AuthState.AUTHENTICATING:
                self._state_before_login = self._session.state
            self._session.state = AuthState.AUTHENTICATING
        self._attempt = attempt
        logger.info(f"Connexion QR demarree (jeton {attempt.qrcode_key})")
        return attempt

    def cancel_login(self) -> None:
        """Annule la tentative active (l'appelant quitte l'ecran de connexion)."""
        attempt = self._attempt
        if attempt is None or attempt.is_terminal:
            return
        attempt.transition(QRPollState.CANCELLED)
        attempt.token.cancel()
        logger.info(f"Connexion QR annulee (jeton {attempt.qrcode_key})")

    async def poll_login(self, attempt: QRLoginAttempt) -> AsyncIterator[QRPollState]:
        """
        Interroge le passeport jusqu'a un etat terminal ou l'echeance.

        Produit chaque changement d'etat. Les erreurs reseau sont traitees
        comme transitoires : le tick suivant reessaie, dans la limite de
        l'echeance. Le jeton d'annulation est verifie apres chaque point
        de suspension ; une fois l'annulation observee, plus aucune
        requete ni ecriture n'a lieu.
        """
        try:
            while not attempt.is_terminal:
                if self._clock() >= attempt.deadline:
                    attempt.transition(QRPollState.EXPIRED)
                    yield attempt.state
                    return

                result: Optional[QRPollResult] = None
                try:
                    result = await self._auth_api.poll_qrcode(attempt.qrcode_key)
                except BiliError as e:
                    logger.warning(f"Poll QR echoue, nouvel essai au prochain tick: {e}")

                if attempt.token.cancelled:
                    break

                if result is not None:
                    new_state = QRPollState.from_code(result.code)
                    if new_state is None:
                        logger.debug(f"Code de poll QR inconnu: {result.code}")
                    elif attempt.transition(new_state):
                        if new_state is QRPollState.CONFIRMED:
                            await self._apply_login(result)
                        yield attempt.state
                        if attempt.is_terminal:
                            return

                if await attempt.token.sleep(self._poll_interval):
                    break

            if attempt.state is QRPollState.CANCELLED:
                yield attempt.state
        finally:
            await self._finish_attempt(attempt)

    async def login(
        self, on_state: Optional[Callable[[QRPollState], None]] = None
    ) -> QRPollState:
        """
        Enchaine start_login() et poll_login() jusqu'a l'etat terminal.

        Returns:
            Etat terminal atteint (CONFIRMED, EXPIRED ou CANCELLED)
        """
        attempt = await self.start_login()
        async for state in self.poll_login(attempt):
            if on_state is not None:
                on_state(state)
        return attempt.state

    async def _apply_login(self, result: QRPollResult) -> None:
        async with self._lock:
            self._session.cookies = dict(result.cookies)
            self._session.refresh_token = result.refresh_token
            self._session.state = AuthState.AUTHENTICATED
            self._persist()
        logger.info(f"Connexion reussie (mid {self._session.mid})")

    async def _finish_attempt(self, attempt: QRLoginAttempt) -> None:
        if self._attempt is attempt:
            self._attempt = None
        if attempt.state is QRPollState.CONFIRMED:
            return
        async with self._lock:
            if self._session.state is AuthState.AUTHENTICATING and self._attempt is None:
                self._session.state = self._state_before_login

    # ------------------------------------------------------------------
    # Expiration / deconnexion
    # ------------------------------------------------------------------

    async def mark_expired(self) -> None:
        """Passe la session en EXPIRED apres un refus d'authentification."""
        async with self._lock:
            if self._session.state is AuthState.AUTHENTICATED:
                self._session.state = AuthState.EXPIRED
                self._persist()
                logger.warning("Session expiree : reconnexion necessaire")

    async def logout(self) -> None:
        """Oublie les cookies ; les cles WBI (publiques) sont conservees en memoire."""
        self.cancel_login()
        async with self._lock:
            self._session = Session(keys=self._session.keys)
            if self._store is not None:
                self._store.clear()
        logger.info("Session supprimee")

"""
Orchestrateur de lecture video.

Resout le flux d'une partie, lance le lecteur externe avec les headers
d'authentification, puis emet des heartbeats a intervalle regulier tant
que le lecteur tourne. A la sortie du lecteur (quelle qu'en soit la
cause), un heartbeat final est emis avec la derniere position connue et
la position de reprise est enregistree localement.

Les heartbeats d'une session sont emis sequentiellement par une seule
tache : ordre strict, pas de doublon, positions non decroissantes.

Un direct est lu depuis la page de son salon, sans heartbeat ni position
de reprise. Une seule lecture (video ou direct) est active a la fois.
"""

import asyncio
import time
from typing import Awaitable, Callable, Optional

from loguru import logger
from bilitui.adapters.api import endpoints
from bilitui.adapters.api.retry import with_retry
from bilitui.core.entities.live import LiveRoom, LiveSession
from bilitui.core.entities.playback import (
    HeartbeatReport,
    PlaybackSession,
    PlaybackState,
    PlayType,
    WatchHistoryEntry,
)
from bilitui.core.entities.session import AuthState
from bilitui.core.entities.video import VideoRef
from bilitui.core.exceptions import (
    BiliError,
    ClientError,
    HeartbeatDroppedError,
    PlayerLaunchError,
)
from bilitui.core.ports.api_clients import IVideoAPIClient
from bilitui.core.ports.player import IMediaPlayer
from bilitui.core.ports.repositories import IWatchHistoryRepository


class PlaybackOrchestrator:
    """
    Pilote une session de lecture a la fois.

    Le handle du processus lecteur appartient exclusivement a
    l'orchestrateur : lancer une nouvelle lecture arrete (et flush)
    la precedente.

    Example:
        orchestrator = PlaybackOrchestrator(api, player, session_manager)
        await orchestrator.play(detail.to_ref(), part_index=0)
        await orchestrator.wait()
    """

    def __init__(
        self,
        api: IVideoAPIClient,
        player: IMediaPlayer,
        session_manager,
        history_repo: Optional[IWatchHistoryRepository] = None,
        heartbeat_interval: float = 15.0,
        final_flush_attempts: int = 3,
        flush_min_wait: float = 0.5,
        flush_max_wait: float = 5.0,
        quality: Optional[int] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
        wall_clock: Callable[[], float] = time.time,
    ) -> None:
        """
        Initialise l'orchestrateur.

        Args:
            api: Client API (playurl, heartbeats)
            player: Lanceur du lecteur externe
            session_manager: Source des cookies transmis au lecteur
            history_repo: Stockage des positions de reprise (optionnel)
            heartbeat_interval: Intervalle entre deux heartbeats en secondes
            final_flush_attempts: Tentatives du heartbeat final
            flush_min_wait: Attente minimale entre deux tentatives du flush final
            flush_max_wait: Attente maximale entre deux tentatives du flush final
            quality: Qualite demandee a playurl (defaut: celle du client)
            sleep: Attente entre deux ticks (injectable pour les tests)
            clock: Horloge monotone (temps reellement regarde)
            wall_clock: Horloge epoch (start_ts)
        """
        self._api = api
        self._player = player
        self._session_manager = session_manager
        self._history_repo = history_repo
        self._interval = heartbeat_interval
        self._final_flush_attempts = final_flush_attempts
        self._flush_min_wait = flush_min_wait
        self._flush_max_wait = flush_max_wait
        self._quality = quality
        self._sleep = sleep
        self._clock = clock
        self._wall_clock = wall_clock

        self._current: Optional[PlaybackSession] = None
        self._monitor_task: Optional[asyncio.Task] = None
        self._live: Optional[LiveSession] = None
        self._live_task: Optional[asyncio.Task] = None

    @property
    def current(self) -> Optional[PlaybackSession]:
        return self._current

    @property
    def is_playing(self) -> bool:
        return self._current is not None and self._current.state is PlaybackState.PLAYING

    @property
    def live(self) -> Optional[LiveSession]:
        return self._live

    def _player_headers(self) -> dict[str, str]:
        headers = {
            "Referer": endpoints.REFERER,
            "User-Agent": endpoints.USER_AGENT,
        }
        cookie_header = self._session_manager.snapshot().cookie_header()
        if cookie_header:
            headers["Cookie"] = cookie_header
        return headers

    async def play(
        self,
        ref: VideoRef,
        part_index: Optional[int] = None,
        start: Optional[int] = None,
    ) -> PlaybackSession:
        """
        Lance la lecture d'une partie.

        Args:
            ref: Video a lire
            part_index: Partie a lire (defaut: partie selectionnee de ref)
            start: Position de depart en secondes (reprise)

        Returns:
            PlaybackSession en etat PLAYING

        Raises:
            IndexError: Si la partie n'existe pas
            PlayerLaunchError: Si le lecteur ne peut pas etre lance
        """
        await self._stop_live()
        if self._current is not None and self._current.state is not PlaybackState.STOPPED:
            await self.stop()

        index = ref.selected_index if part_index is None else part_index
        part = ref.part(index)
        stream = await self._api.get_play_url(ref.bvid, part.cid, self._quality)

        try:
            await self._api.report_watch_start(ref, index)
        except BiliError as e:
            logger.warning(f"Signalement du debut de lecture echoue: {e}")

        session = PlaybackSession(
            ref=ref,
            part_index=index,
            start_ts=int(self._wall_clock()),
            last_position=int(start or 0),
        )
        title = part.title if len(ref.parts) > 1 and part.title else ref.bvid
        try:
            session.process = await self._player.launch(
                stream.url, self._player_headers(), title=title, start=start
            )
        except PlayerLaunchError:
            session.state = PlaybackState.STOPPED
            raise

        session.state = PlaybackState.PLAYING
        self._current = session
        self._monitor_task = asyncio.create_task(self._monitor(session))
        logger.info(f"Lecture de {ref.bvid} partie {index + 1}/{len(ref.parts)}")
        return session

    async def switch_part(self, index: int) -> PlaybackSession:
        """
        Passe a une autre partie de la video en cours.

        La partie courante est arretee et son heartbeat final emis avant
        le lancement de la nouvelle.
        """
        if self._current is None:
            raise RuntimeError("Aucune lecture en cours")
        ref = self._current.ref
        ref.part(index)
        await self.stop()
        ref.selected_index = index
        return await self.play(ref, index)

    async def stop(self) -> Optional[PlaybackSession]:
        """Arrete le lecteur et attend le heartbeat final."""
        await self._stop_live()
        session = self._current
        if session is None:
            return None
        if session.process is not None and session.process.returncode is None:
            await session.process.terminate()
        await self.wait()
        return session

    async def wait(self) -> Optional[PlaybackSession]:
        """Attend la fin de la lecture courante (sortie du lecteur + flush)."""
        task = self._monitor_task
        if task is not None:
            await task
        return self._current

    # ------------------------------------------------------------------
    # Direct
    # ------------------------------------------------------------------

    async def play_live(self, room: LiveRoom) -> LiveSession:
        """
        Lance la lecture d'un direct.

        La lecture en cours (video ou direct) est arretee d'abord ; la
        video precedente emet son heartbeat final.

        Raises:
            ClientError: Si le salon ne diffuse pas
            PlayerLaunchError: Si le lecteur ne peut pas etre lance
        """
        if not room.is_playable:
            raise ClientError(f"Le salon {room.room_id} n'est pas en direct")
        await self.stop()

        process = await self._player.launch(
            room.page_url, self._player_headers(), title=room.title or room.id, live=True
        )
        session = LiveSession(room=room, process=process)
        self._live = session
        self._live_task = asyncio.create_task(self._watch_live(session))
        logger.info(f"Direct du salon {room.room_id}")
        return session

    async def wait_live(self) -> Optional[LiveSession]:
        """Attend la fermeture du lecteur du direct courant."""
        task = self._live_task
        if task is not None:
            await task
        return self._live

    async def _stop_live(self) -> None:
        session = self._live
        if session is None or session.stopped:
            return
        if session.process is not None and session.process.returncode is None:
            await session.process.terminate()
        await self.wait_live()

    async def _watch_live(self, session: LiveSession) -> None:
        try:
            await session.process.wait()
        finally:
            session.stopped = True
            session.process = None
            logger.info(f"Direct termine (salon {session.room.room_id})")

    # ------------------------------------------------------------------
    # Suivi de la lecture
    # ------------------------------------------------------------------

    async def _monitor(self, session: PlaybackSession) -> None:
        process = session.process
        started_at = self._clock()
        exit_task = asyncio.ensure_future(process.wait())
        try:
            while True:
                tick = asyncio.ensure_future(self._sleep(self._interval))
                done, _ = await asyncio.wait(
                    {exit_task, tick}, return_when=asyncio.FIRST_COMPLETED
                )
                if exit_task in done:
                    tick.cancel()
                    break
                await self._update_position(session)
                await self._send_periodic(session, started_at)
        finally:
            if not exit_task.done():
                exit_task.cancel()
            await self._finish(session, started_at)

    async def _update_position(self, session: PlaybackSession) -> None:
        position = await session.process.position()
        if position is not None:
            session.last_position = max(session.last_position, int(position))

    def _report(
        self, session: PlaybackSession, started_at: float, play_type: PlayType
    ) -> HeartbeatReport:
        part = session.part
        return HeartbeatReport(
            aid=session.ref.aid,
            cid=part.cid,
            bvid=session.ref.bvid,
            played_time=session.last_position,
            real_played_time=int(self._clock() - started_at),
            start_ts=session.start_ts,
            play_type=play_type,
        )

    def _session_expired(self) -> bool:
        return self._session_manager.snapshot().state is AuthState.EXPIRED

    async def _send_periodic(self, session: PlaybackSession, started_at: float) -> None:
        if self._session_expired():
            logger.debug(f"Session expiree, heartbeat ignore ({session.ref.bvid})")
            return
        report = self._report(session, started_at, PlayType.PLAYING)
        try:
            await self._api.report_heartbeat(report)
        except BiliError as e:
            dropped = HeartbeatDroppedError(
                f"Heartbeat perdu ({report.bvid} a {report.played_time}s): {e}"
            )
            logger.warning(str(dropped))
            return
        session.heartbeats_sent += 1
        session.last_heartbeat_at = self._clock()

    async def _finish(self, session: PlaybackSession, started_at: float) -> None:
        report = self._report(session, started_at, PlayType.END)

        # Seules les erreurs transitoires sont relancees
        @with_retry(
            max_attempts=self._final_flush_attempts,
            max_wait=self._flush_max_wait,
            min_wait=self._flush_min_wait,
        )
        async def _flush() -> None:
            await self._api.report_heartbeat(report)

        if self._session_expired():
            logger.warning(f"Session expiree, heartbeat final non emis ({report.bvid})")
        else:
            try:
                await _flush()
                logger.debug(f"Heartbeat final emis ({report.bvid} a {report.played_time}s)")
            except BiliError as e:
                logger.error(f"Heartbeat final perdu ({report.bvid} a {report.played_time}s): {e}")

        if self._history_repo is not None:
            self._history_repo.record(
                WatchHistoryEntry(
                    bvid=session.ref.bvid,
                    cid=report.cid,
                    part_index=session.part_index,
                    position=session.last_position,
                )
            )

        session.state = PlaybackState.STOPPED
        session.process = None
        logger.info(f"Lecture terminee ({session.ref.bvid}, {session.last_position}s)")

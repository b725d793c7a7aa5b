"""
Container d'injection de dependances via dependency-injector.

Fournit une gestion centralisee des dependances pour la CLI :
configuration, persistance SQLModel, clients API, lecteur et services.
"""

from collections.abc import Iterator

from dependency_injector import containers, providers

from .adapters.api.auth_client import BilibiliAuthClient
from .adapters.api.bilibili_client import BilibiliClient
from .adapters.api.cache import FeedCache
from .adapters.player.mpv_player import MpvPlayer
from .config import Settings
from .infrastructure.persistence.database import get_session, init_db
from .infrastructure.persistence.repositories import (
    SQLModelSessionStore,
    SQLModelWatchHistoryRepository,
)
from .services.feed_service import FeedService
from .services.playback import PlaybackOrchestrator
from .services.prefetch import PrefetchScheduler
from .services.session_manager import SessionManager


def _init_feed_cache(cache_dir) -> Iterator[FeedCache]:
    """Ouvre le cache des flux et le ferme a l'arret du container."""
    cache = FeedCache(cache_dir=cache_dir)
    try:
        yield cache
    finally:
        cache.close()


class Container(containers.DeclarativeContainer):
    """Container DI de l'application.

    Utilisation :
        container = Container()
        container.database.init()  # Initialise la DB une fois
        manager = container.session_manager()
        manager.load()
        page = await container.feed_service().recommendations()
    """

    # Configuration - singleton charge une seule fois
    config = providers.Singleton(Settings)

    # Database - Resource pour initialisation unique
    database = providers.Resource(init_db)

    # Session factory - nouvelle session a chaque appel
    session = providers.Factory(lambda: next(get_session()))

    # Repositories - Factory pour nouvelle instance avec session fraiche
    session_store = providers.Factory(
        SQLModelSessionStore,
        session=session,
    )
    watch_history_repository = providers.Factory(
        SQLModelWatchHistoryRepository,
        session=session,
    )

    # Cache des flux - Resource ferme par shutdown_resources()
    feed_cache = providers.Resource(
        _init_feed_cache,
        cache_dir=config.provided.feed_cache_dir,
    )

    # Client du passeport et des cles WBI
    auth_client = providers.Singleton(
        BilibiliAuthClient,
        timeout=config.provided.request_timeout,
        max_attempts=config.provided.max_retry_attempts,
        retry_max_wait=config.provided.retry_max_wait,
    )

    # Session - Singleton : unique proprietaire de l'etat d'authentification
    session_manager = providers.Singleton(
        SessionManager,
        auth_api=auth_client,
        store=session_store,
        keys_ttl=config.provided.wbi_keys_ttl,
        poll_interval=config.provided.qr_poll_interval,
        login_timeout=config.provided.qr_login_timeout,
    )

    # Client API - Singleton pour partager le pool de connexions
    bilibili_client = providers.Singleton(
        BilibiliClient,
        session_manager=session_manager,
        timeout=config.provided.request_timeout,
        max_attempts=config.provided.max_retry_attempts,
        retry_max_wait=config.provided.retry_max_wait,
        default_quality=config.provided.video_quality,
    )

    media_player = providers.Singleton(
        MpvPlayer,
        command=config.provided.player_command,
    )

    # Services
    feed_service = providers.Factory(
        FeedService,
        api=bilibili_client,
        cache=feed_cache,
        ttl=config.provided.feed_cache_ttl,
    )

    playback_orchestrator = providers.Factory(
        PlaybackOrchestrator,
        api=bilibili_client,
        player=media_player,
        session_manager=session_manager,
        history_repo=watch_history_repository,
        heartbeat_interval=config.provided.heartbeat_interval,
        final_flush_attempts=config.provided.final_flush_attempts,
        flush_max_wait=config.provided.retry_max_wait,
    )

    prefetch_scheduler = providers.Factory(
        PrefetchScheduler,
        fetch=bilibili_client.provided.fetch_cover,
        min_window=config.provided.prefetch_min_window,
        max_window=config.provided.prefetch_max_window,
        velocity_gain=config.provided.prefetch_velocity_gain,
        max_concurrency=config.provided.prefetch_max_concurrency,
        retention_margin=config.provided.prefetch_retention_margin,
    )

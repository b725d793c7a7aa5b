"""
Service des flux avec cache persistant.

Pattern cache-first : une page fraiche (TTL par defaut 5 minutes) est
servie depuis le cache sans appel reseau ; une page absente, expiree ou
invalidee declenche exactement un appel, dont le resultat est stocke.

Un rafraichissement explicite (refresh=True) invalide l'entree et force
l'appel reseau. Une erreur d'entree/sortie du cache n'est jamais fatale :
le service se rabat sur le reseau.
"""

from typing import Any, Awaitable, Callable, Optional

from loguru import logger

from bilitui.adapters.api.cache import CACHE_ERRORS, FeedCache
from bilitui.core.entities.video import FeedPage, HotSearchItem
from bilitui.core.ports.api_clients import IVideoAPIClient


class FeedService:
    """
    Acces aux flux (recommandations, recherche, dynamiques, tendances).

    Example:
        service = FeedService(api, cache)
        page = await service.recommendations(page=1)
        page = await service.search("lofi", refresh=True)
    """

    def __init__(
        self,
        api: IVideoAPIClient,
        cache: Optional[FeedCache] = None,
        ttl: float = FeedCache.FEED_TTL,
    ) -> None:
        """
        Args:
            api: Client API Bilibili
            cache: Cache des pages (None = pas de cache)
            ttl: Duree de fraicheur des pages en secondes
        """
        self._api = api
        self._cache = cache
        self._ttl = ttl

    async def _cached(
        self,
        key: str,
        fetch: Callable[[], Awaitable[Any]],
        refresh: bool,
    ) -> Any:
        if self._cache is not None:
            try:
                if refresh:
                    await self._cache.invalidate(key)
                else:
                    cached = await self._cache.lookup(key, self._ttl)
                    if cached is not None:
                        logger.debug(f"Cache hit: {key}")
                        return cached
            except CACHE_ERRORS as e:
                logger.warning(f"Cache illisible pour {key}, appel reseau: {e}")

        result = await fetch()

        if self._cache is not None:
            try:
                await self._cache.store(key, result)
            except CACHE_ERRORS as e:
                logger.warning(f"Ecriture du cache impossible pour {key}: {e}")
        return result

    async def recommendations(self, page: int = 1, refresh: bool = False) -> FeedPage:
        """Page du flux de recommandations."""
        return await self._cached(
            f"recommend:{page}",
            lambda: self._api.get_recommendations(page),
            refresh,
        )

    async def search(self, keyword: str, page: int = 1, refresh: bool = False) -> FeedPage:
        """Page de resultats de recherche."""
        return await self._cached(
            f"search:{keyword.strip().lower()}:{page}",
            lambda: self._api.search_videos(keyword, page),
            refresh,
        )

    async def dynamic(self, offset: Optional[str] = None, refresh: bool = False) -> FeedPage:
        """Page du flux des abonnements."""
        return await self._cached(
            f"dynamic:{offset or 'first'}",
            lambda: self._api.get_dynamic_feed(offset),
            refresh,
        )

    async def hot_search(self, limit: int = 10, refresh: bool = False) -> list[HotSearchItem]:
        """Recherches tendance."""
        return await self._cached(
            f"hot_search:{limit}",
            lambda: self._api.get_hot_search(limit),
            refresh,
        )

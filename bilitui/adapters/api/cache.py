"""
Cache persistant des pages de flux avec TTL.

Le cache utilise diskcache pour la persistence sur disque, ce qui permet
de conserver les pages entre les redemarrages de l'application.

Contrairement a un cache a expiration native, chaque entree garde son
horodatage de recuperation : la fraicheur est evaluee a la lecture avec le
TTL demande par l'appelant et une horloge injectable (tests).

TTL par defaut:
- Flux (FEED_TTL): 5 minutes - recommandations, recherche, dynamiques
"""

import asyncio
import sqlite3
import time
from dataclasses import dataclass
from functools import partial
from typing import Any, Callable, Optional

from diskcache import Cache, Timeout

# Erreurs d'entree/sortie du cache : jamais fatales pour l'appelant
CACHE_ERRORS = (OSError, sqlite3.Error, Timeout)


@dataclass
class CacheEntry:
    """
    Entree du cache.

    Attributes:
        payload: Donnees mises en cache (picklables)
        fetched_at: Horodatage epoch de la recuperation
        invalidated: Marquee obsolete par un rafraichissement explicite
    """

    payload: Any
    fetched_at: float
    invalidated: bool = False

    def is_fresh(self, ttl: float, now: float) -> bool:
        return not self.invalidated and now - self.fetched_at < ttl


class FeedCache:
    """
    Cache asynchrone des pages de flux.

    Utilise diskcache pour la persistence et run_in_executor pour
    les operations asynchrones non-bloquantes. Les ecritures concurrentes
    sur une meme cle sont sans danger : la derniere gagne.

    Example:
        cache = FeedCache(cache_dir="~/.cache/bilitui/feeds")
        await cache.store("recommend:1", page)
        page = await cache.lookup("recommend:1", ttl=300)
    """

    FEED_TTL = 5 * 60  # 5 minutes en secondes (300)

    def __init__(
        self,
        cache_dir: str = ".cache/feeds",
        clock: Callable[[], float] = time.time,
    ) -> None:
        """
        Initialise le cache avec un repertoire de stockage.

        Args:
            cache_dir: Chemin vers le repertoire du cache (cree si inexistant)
            clock: Horloge epoch utilisee pour la fraicheur
        """
        self._cache = Cache(str(cache_dir))
        self._clock = clock

    async def _run(self, func: Callable, *args, **kwargs) -> Any:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, partial(func, *args, **kwargs))

    async def get_entry(self, key: str) -> Optional[CacheEntry]:
        """Retourne l'entree brute (fraiche ou non), None si absente."""
        return await self._run(self._cache.get, key)

    async def lookup(self, key: str, ttl: Optional[float] = None) -> Optional[Any]:
        """
        Recupere une page si elle est fraiche.

        Args:
            key: Cle unique (ex: "search:lofi:1")
            ttl: Duree de vie en secondes (defaut: FEED_TTL)

        Returns:
            Le payload stocke, ou None si absent, expire ou invalide
        """
        entry = await self.get_entry(key)
        if entry is None:
            return None
        ttl = self.FEED_TTL if ttl is None else ttl
        if not entry.is_fresh(ttl, self._clock()):
            return None
        return entry.payload

    async def store(self, key: str, payload: Any) -> None:
        """
        Stocke une page, horodatee avec l'horloge courante.

        Args:
            key: Cle unique
            payload: Page a stocker (doit etre picklable)
        """
        entry = CacheEntry(payload=payload, fetched_at=self._clock())
        await self._run(self._cache.set, key, entry)

    async def invalidate(self, key: str) -> None:
        """Marque une entree comme obsolete (rafraichissement explicite)."""
        entry = await self.get_entry(key)
        if entry is not None:
            entry.invalidated = True
            await self._run(self._cache.set, key, entry)

    async def clear(self) -> None:
        """Supprime toutes les entrees du cache."""
        await self._run(self._cache.clear)

    def close(self) -> None:
        """Ferme la connexion au cache (a appeler a la fin)."""
        self._cache.close()

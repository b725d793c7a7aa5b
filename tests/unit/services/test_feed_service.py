"""
Tests unitaires pour FeedService (cache-first avec TTL).
"""

import sqlite3
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

from bilitui.adapters.api.cache import FeedCache
from bilitui.core.entities.video import FeedPage, HotSearchItem, VideoCard
from bilitui.services.feed_service import FeedService


class FakeClock:
    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cache(tmp_path: Path, clock: FakeClock) -> FeedCache:
    cache = FeedCache(cache_dir=str(tmp_path / "feeds"), clock=clock)
    yield cache
    cache.close()


@pytest.fixture
def api(mock_video_api: AsyncMock) -> AsyncMock:
    mock_video_api.get_recommendations.return_value = FeedPage(
        items=[VideoCard(bvid="BV1", title="Une")], page=1, has_more=True
    )
    mock_video_api.search_videos.return_value = FeedPage(items=[], page=1)
    mock_video_api.get_dynamic_feed.return_value = FeedPage(items=[], offset="next")
    mock_video_api.get_hot_search.return_value = [HotSearchItem("lofi", "lofi", 1)]
    return mock_video_api


class TestFeedServiceCache:
    """Tests du comportement cache-first."""

    @pytest.mark.asyncio
    async def test_fresh_read_makes_no_call(
        self, api: AsyncMock, cache: FeedCache, clock: FakeClock
    ) -> None:
        """Lecture dans le TTL : zero appel reseau supplementaire."""
        service = FeedService(api, cache, ttl=300)

        first = await service.recommendations(page=1)
        clock.now += 299
        second = await service.recommendations(page=1)

        assert second == first
        assert api.get_recommendations.await_count == 1

    @pytest.mark.asyncio
    async def test_expired_read_makes_exactly_one_call(
        self, api: AsyncMock, cache: FeedCache, clock: FakeClock
    ) -> None:
        service = FeedService(api, cache, ttl=300)

        await service.recommendations(page=1)
        clock.now += 301
        await service.recommendations(page=1)
        await service.recommendations(page=1)

        assert api.get_recommendations.await_count == 2

    @pytest.mark.asyncio
    async def test_refresh_bypasses_fresh_entry(
        self, api: AsyncMock, cache: FeedCache
    ) -> None:
        service = FeedService(api, cache)

        await service.recommendations(page=1)
        await service.recommendations(page=1, refresh=True)
        await service.recommendations(page=1)

        assert api.get_recommendations.await_count == 2

    @pytest.mark.asyncio
    async def test_keys_are_distinct_per_page_and_query(
        self, api: AsyncMock, cache: FeedCache
    ) -> None:
        service = FeedService(api, cache)

        await service.recommendations(page=1)
        await service.recommendations(page=2)
        await service.search("Lofi")
        await service.search("lofi ")
        await service.search("lofi", page=2)

        assert api.get_recommendations.await_count == 2
        assert api.search_videos.await_count == 2

    @pytest.mark.asyncio
    async def test_dynamic_and_hot_search_are_cached(
        self, api: AsyncMock, cache: FeedCache
    ) -> None:
        service = FeedService(api, cache)

        assert (await service.dynamic()).offset == "next"
        await service.dynamic()
        await service.dynamic(offset="next")
        hot = await service.hot_search(limit=10)
        await service.hot_search(limit=10)

        assert api.get_dynamic_feed.await_count == 2
        assert api.get_hot_search.await_count == 1
        assert hot[0].keyword == "lofi"

    @pytest.mark.asyncio
    async def test_without_cache_always_calls(self, api: AsyncMock) -> None:
        service = FeedService(api)

        await service.recommendations()
        await service.recommendations()

        assert api.get_recommendations.await_count == 2

    @pytest.mark.asyncio
    async def test_cache_failure_falls_back_to_network(self, api: AsyncMock) -> None:
        """Une erreur d'entree/sortie du cache n'est pas fatale."""
        broken = MagicMock()
        broken.lookup = AsyncMock(side_effect=sqlite3.OperationalError("disk I/O error"))
        broken.store = AsyncMock(side_effect=OSError("read-only"))
        service = FeedService(api, broken)

        page = await service.recommendations()

        assert page.items[0].bvid == "BV1"
        api.get_recommendations.assert_awaited_once_with(1)

"""
Tests unitaires pour PrefetchScheduler.

Tests couvrant:
- Taille de fenetre en fonction de la vitesse
- Jobs crees apres la zone visible, annules hors retention
- Concurrence bornee
- Echec de prefetch puis chargement a la demande
"""

import asyncio

import pytest

from bilitui.core.entities.video import VideoCard
from bilitui.core.exceptions import TransientNetworkError
from bilitui.services.prefetch import JobState, PrefetchScheduler


def _items(count: int) -> list[VideoCard]:
    return [
        VideoCard(bvid=f"BV{i:04d}", title=f"Video {i}", cover_url=f"https://i0.hdslb.com/{i}.jpg")
        for i in range(count)
    ]


class BlockingFetch:
    """Telechargement qui attend une autorisation ; mesure la concurrence."""

    def __init__(self) -> None:
        self.release = asyncio.Event()
        self.active = 0
        self.max_active = 0
        self.urls: list[str] = []

    async def __call__(self, url: str) -> bytes:
        self.urls.append(url)
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            await self.release.wait()
        finally:
            self.active -= 1
        return url.encode()


class TestWindowSize:
    """Tests pour compute_window_size."""

    @pytest.mark.parametrize(
        "velocity,expected", [(0, 10), (2.5, 15), (-2.5, 15), (100, 40)]
    )
    def test_window_grows_with_velocity(self, velocity: float, expected: int) -> None:
        scheduler = PrefetchScheduler(BlockingFetch())
        assert scheduler.compute_window_size(velocity) == expected


class TestOnScroll:
    """Tests de la planification au defilement."""

    @pytest.mark.asyncio
    async def test_jobs_follow_visible_range(self) -> None:
        """Visible [0,9] a la vitesse 2.5 : jobs pour [10,24]."""
        fetch = BlockingFetch()
        scheduler = PrefetchScheduler(fetch)
        scheduler.set_items(_items(60))

        scheduled = scheduler.on_scroll(0, 9, velocity=2.5)

        assert scheduled == list(range(10, 25))
        assert sorted(job.index for job in scheduler.jobs.values()) == list(range(10, 25))
        await scheduler.close()

    @pytest.mark.asyncio
    async def test_scrolling_extends_without_duplicates(self) -> None:
        """Visible [20,29] : rien sous 10, jobs jusqu'a 44, aucun doublon."""
        scheduler = PrefetchScheduler(BlockingFetch())
        scheduler.set_items(_items(60))
        scheduler.on_scroll(0, 9, velocity=2.5)

        scheduled = scheduler.on_scroll(20, 29, velocity=2.5)

        assert scheduled == list(range(30, 45))
        active = sorted(job.index for job in scheduler.jobs.values() if job.active)
        assert active == list(range(10, 45))
        await scheduler.close()

    @pytest.mark.asyncio
    async def test_jobs_outside_retention_are_cancelled(self) -> None:
        scheduler = PrefetchScheduler(BlockingFetch())
        scheduler.set_items(_items(100))
        scheduler.on_scroll(0, 9)

        scheduler.on_scroll(40, 49)

        jobs = scheduler.jobs
        assert all(jobs[f"BV{i:04d}"].state is JobState.CANCELLED for i in range(10, 20))
        assert all(jobs[f"BV{i:04d}"].active for i in range(50, 60))
        await scheduler.close()

    @pytest.mark.asyncio
    async def test_item_back_in_range_gets_new_job(self) -> None:
        scheduler = PrefetchScheduler(BlockingFetch())
        scheduler.set_items(_items(100))
        scheduler.on_scroll(0, 9)
        old_job = scheduler.jobs["BV0010"]
        scheduler.on_scroll(40, 49)

        scheduled = scheduler.on_scroll(0, 9)

        assert 10 in scheduled
        assert scheduler.jobs["BV0010"] is not old_job
        assert scheduler.jobs["BV0010"].active
        await scheduler.close()

    @pytest.mark.asyncio
    async def test_window_is_clamped_to_list_end(self) -> None:
        scheduler = PrefetchScheduler(BlockingFetch())
        scheduler.set_items(_items(15))

        assert scheduler.on_scroll(0, 9, velocity=2.5) == [10, 11, 12, 13, 14]
        await scheduler.close()

    @pytest.mark.asyncio
    async def test_items_without_cover_are_skipped(self) -> None:
        items = _items(12)
        items[10] = VideoCard(bvid="BVnocover", title="Sans image")
        scheduler = PrefetchScheduler(BlockingFetch())
        scheduler.set_items(items)

        assert scheduler.on_scroll(0, 9) == [11]
        await scheduler.close()


class TestExecution:
    """Tests de l'execution des jobs."""

    @pytest.mark.asyncio
    async def test_in_flight_never_exceeds_cap(self) -> None:
        fetch = BlockingFetch()
        scheduler = PrefetchScheduler(fetch, max_concurrency=4)
        scheduler.set_items(_items(60))
        scheduler.on_scroll(0, 9, velocity=2.5)

        for _ in range(5):
            await asyncio.sleep(0)
        assert scheduler.in_flight == 4
        assert fetch.max_active == 4

        fetch.release.set()
        await scheduler.wait_idle()

        assert fetch.max_active <= 4
        assert scheduler.in_flight == 0
        assert len(fetch.urls) == 15
        assert scheduler.get_cover("BV0010") == b"https://i0.hdslb.com/10.jpg"
        assert scheduler.jobs["BV0010"].state is JobState.DONE

    @pytest.mark.asyncio
    async def test_done_items_are_not_refetched(self) -> None:
        fetch = BlockingFetch()
        fetch.release.set()
        scheduler = PrefetchScheduler(fetch)
        scheduler.set_items(_items(30))
        scheduler.on_scroll(0, 9)
        await scheduler.wait_idle()

        assert scheduler.on_scroll(0, 9) == []
        assert len(fetch.urls) == 10

    @pytest.mark.asyncio
    async def test_cancelled_job_writes_nothing(self) -> None:
        fetch = BlockingFetch()
        scheduler = PrefetchScheduler(fetch)
        scheduler.set_items(_items(100))
        scheduler.on_scroll(0, 9)
        await asyncio.sleep(0)

        scheduler.on_scroll(40, 49)
        fetch.release.set()
        await scheduler.wait_idle()

        assert scheduler.get_cover("BV0010") is None
        assert scheduler.get_cover("BV0050") is not None

    @pytest.mark.asyncio
    async def test_failed_prefetch_falls_back_to_on_demand(self) -> None:
        calls: list[str] = []

        async def flaky(url: str) -> bytes:
            calls.append(url)
            if len(calls) == 1:
                raise TransientNetworkError("timeout")
            return b"img"

        scheduler = PrefetchScheduler(flaky, max_concurrency=1)
        items = _items(11)
        scheduler.set_items(items)
        scheduler.on_scroll(0, 9)
        await scheduler.wait_idle()

        assert "BV0010" not in scheduler.jobs
        assert scheduler.get_cover("BV0010") is None
        assert scheduler.on_scroll(0, 9) == []

        assert await scheduler.load_cover(items[10]) == b"img"
        assert scheduler.get_cover("BV0010") == b"img"

    @pytest.mark.asyncio
    async def test_set_items_cancels_vanished_jobs(self) -> None:
        scheduler = PrefetchScheduler(BlockingFetch())
        items = _items(30)
        scheduler.set_items(items)
        scheduler.on_scroll(0, 9)

        scheduler.set_items(items[15:])

        assert sorted(scheduler.jobs) == [f"BV{i:04d}" for i in range(15, 20)]
        assert scheduler.jobs["BV0015"].index == 0
        await scheduler.close()


class TestEviction:
    """Tests de l'oubli des couvertures hors zone de retention."""

    @pytest.mark.asyncio
    async def test_covers_outside_retention_are_evicted(self) -> None:
        fetch = BlockingFetch()
        fetch.release.set()
        scheduler = PrefetchScheduler(fetch)
        scheduler.set_items(_items(100))
        scheduler.on_scroll(0, 9)
        await scheduler.wait_idle()
        assert scheduler.get_cover("BV0010") is not None

        scheduler.on_scroll(50, 59)

        assert scheduler.get_cover("BV0010") is None
        assert "BV0010" not in scheduler.jobs
        await scheduler.wait_idle()
        assert scheduler.get_cover("BV0060") is not None
        await scheduler.close()

    @pytest.mark.asyncio
    async def test_evicted_item_is_fetched_again_when_back(self) -> None:
        fetch = BlockingFetch()
        fetch.release.set()
        scheduler = PrefetchScheduler(fetch)
        scheduler.set_items(_items(100))
        scheduler.on_scroll(0, 9)
        await scheduler.wait_idle()
        scheduler.on_scroll(50, 59)
        await scheduler.wait_idle()

        scheduled = scheduler.on_scroll(0, 9)

        assert scheduled == list(range(10, 20))
        await scheduler.close()

    @pytest.mark.asyncio
    async def test_failure_is_forgotten_outside_retention(self) -> None:
        calls: list[str] = []

        async def flaky(url: str) -> bytes:
            calls.append(url)
            if len(calls) == 1:
                raise TransientNetworkError("timeout")
            return b"img"

        scheduler = PrefetchScheduler(flaky, max_concurrency=1)
        scheduler.set_items(_items(100))
        scheduler.on_scroll(0, 9)
        await scheduler.wait_idle()
        assert scheduler.on_scroll(0, 9) == []

        scheduler.on_scroll(50, 59)
        await scheduler.wait_idle()

        assert 10 in scheduler.on_scroll(0, 9)
        await scheduler.close()

    @pytest.mark.asyncio
    async def test_set_items_drops_covers_of_vanished_items(self) -> None:
        fetch = BlockingFetch()
        fetch.release.set()
        scheduler = PrefetchScheduler(fetch)
        items = _items(30)
        scheduler.set_items(items)
        scheduler.on_scroll(0, 9)
        await scheduler.wait_idle()

        scheduler.set_items(items[15:])

        assert scheduler.get_cover("BV0010") is None
        assert scheduler.get_cover("BV0015") is not None

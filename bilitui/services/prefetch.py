"""
Prefetch des couvertures en fonction du defilement.

A chaque defilement, le planificateur programme le telechargement des
couvertures situees juste apres la zone visible. La taille de cette
fenetre grandit avec la vitesse de defilement :

    fenetre = min(max_window, min_window + |vitesse| * velocity_gain)

Les jobs sortis de la zone de retention
[first - margin, last + fenetre + margin] sont annules ; un element qui
y revient recoit un nouveau job. Le nombre de telechargements simultanes
est borne par un semaphore, l'excedent attend son tour.

Un echec de telechargement est journalise et le job abandonne :
l'element sera charge a la demande (load_cover). Les couvertures hors
de la zone de retention sont oubliees, la memoire reste bornee par la
taille de cette zone.
"""

import asyncio
from dataclasses import dataclass, field
from enum import Enum
from typing import Awaitable, Callable, Optional

from loguru import logger

from bilitui.core.entities.video import VideoCard
from bilitui.core.exceptions import BiliError


class JobState(Enum):
    QUEUED = "queued"
    IN_FLIGHT = "in_flight"
    DONE = "done"
    CANCELLED = "cancelled"


@dataclass
class PrefetchJob:
    """Telechargement de la couverture d'un element de la liste."""

    index: int
    item: VideoCard
    state: JobState = JobState.QUEUED
    task: Optional[asyncio.Task] = field(default=None, repr=False)

    @property
    def active(self) -> bool:
        return self.state in (JobState.QUEUED, JobState.IN_FLIGHT)


class PrefetchScheduler:
    """
    Planificateur de prefetch des couvertures.

    Example:
        scheduler = PrefetchScheduler(api.fetch_cover)
        scheduler.set_items(page.items)
        scheduler.on_scroll(first=0, last=9, velocity=2.5)
        cover = scheduler.get_cover(page.items[12].id)
    """

    def __init__(
        self,
        fetch: Callable[[str], Awaitable[bytes]],
        min_window: int = 10,
        max_window: int = 40,
        velocity_gain: float = 2.0,
        max_concurrency: int = 4,
        retention_margin: int = 10,
    ) -> None:
        """
        Args:
            fetch: Telechargement d'une couverture par URL
            min_window: Taille de fenetre a l'arret
            max_window: Taille de fenetre maximale
            velocity_gain: Elements ajoutes par unite de vitesse
            max_concurrency: Telechargements simultanes maximum
            retention_margin: Marge autour de la zone utile avant annulation
        """
        self._fetch = fetch
        self.min_window = min_window
        self.max_window = max(max_window, min_window)
        self.velocity_gain = velocity_gain
        self.max_concurrency = max_concurrency
        self.retention_margin = retention_margin

        self._semaphore = asyncio.Semaphore(max_concurrency)
        self._items: list[VideoCard] = []
        self._jobs: dict[str, PrefetchJob] = {}
        self._covers: dict[str, bytes] = {}
        self._failed: set[str] = set()
        self._in_flight = 0

    @property
    def jobs(self) -> dict[str, PrefetchJob]:
        """Jobs connus, indexes par identifiant d'element."""
        return dict(self._jobs)

    @property
    def in_flight(self) -> int:
        return self._in_flight

    def compute_window_size(self, velocity: float) -> int:
        """Taille de la fenetre de prefetch pour une vitesse donnee."""
        size = self.min_window + int(abs(velocity) * self.velocity_gain)
        return min(self.max_window, size)

    def set_items(self, items: list[VideoCard]) -> None:
        """
        Remplace la liste suivie (nouvelle page, nouvelle recherche).

        Les jobs des elements disparus sont annules, leurs couvertures et
        leurs echecs oublies.
        """
        self._items = list(items)
        present = {item.id for item in self._items}
        for item_id in [i for i in self._covers if i not in present]:
            del self._covers[item_id]
        self._failed &= present
        for item_id, job in list(self._jobs.items()):
            if item_id not in present:
                self._cancel(job)
                del self._jobs[item_id]
        index_of = {item.id: i for i, item in enumerate(self._items)}
        for item_id, job in self._jobs.items():
            job.index = index_of[item_id]

    def on_scroll(self, first: int, last: int, velocity: float = 0.0) -> list[int]:
        """
        Met a jour les jobs apres un defilement.

        Args:
            first: Index du premier element visible
            last: Index du dernier element visible
            velocity: Vitesse de defilement (elements par tick, signee)

        Returns:
            Index des elements pour lesquels un job a ete cree
        """
        window = self.compute_window_size(velocity)
        keep_low = first - self.retention_margin
        keep_high = last + window + self.retention_margin

        self._evict(keep_low, keep_high)
        for job in self._jobs.values():
            if job.active and not keep_low <= job.index <= keep_high:
                self._cancel(job)

        scheduled = []
        stop = min(last + window, len(self._items) - 1)
        for index in range(last + 1, stop + 1):
            item = self._items[index]
            if not item.cover_url or item.id in self._covers or item.id in self._failed:
                continue
            job = self._jobs.get(item.id)
            if job is not None and job.active:
                continue
            self._jobs[item.id] = self._schedule(index, item)
            scheduled.append(index)

        if scheduled:
            logger.debug(f"Prefetch de {len(scheduled)} couvertures ({scheduled[0]}-{scheduled[-1]})")
        return scheduled

    def _evict(self, keep_low: int, keep_high: int) -> None:
        """Oublie couvertures, echecs et jobs termines hors de la zone de retention."""
        outside = {
            item.id
            for index, item in enumerate(self._items)
            if not keep_low <= index <= keep_high
        }
        for item_id in outside:
            self._covers.pop(item_id, None)
            self._failed.discard(item_id)
            job = self._jobs.get(item_id)
            if job is not None and not job.active and (job.task is None or job.task.done()):
                del self._jobs[item_id]

    def _schedule(self, index: int, item: VideoCard) -> PrefetchJob:
        job = PrefetchJob(index=index, item=item)
        job.task = asyncio.create_task(self._run(job))
        return job

    def _cancel(self, job: PrefetchJob) -> None:
        job.state = JobState.CANCELLED
        if job.task is not None and not job.task.done():
            job.task.cancel()

    async def _run(self, job: PrefetchJob) -> None:
        async with self._semaphore:
            if job.state is JobState.CANCELLED:
                return
            job.state = JobState.IN_FLIGHT
            self._in_flight += 1
            try:
                data = await self._fetch(job.item.cover_url)
            except BiliError as e:
                logger.warning(f"Prefetch de la couverture {job.item.id} echoue: {e}")
                self._failed.add(job.item.id)
                if self._jobs.get(job.item.id) is job:
                    del self._jobs[job.item.id]
                return
            finally:
                self._in_flight -= 1

            if job.state is JobState.CANCELLED:
                return
            self._covers[job.item.id] = data
            job.state = JobState.DONE

    def get_cover(self, item_id: str) -> Optional[bytes]:
        """Couverture deja telechargee, None sinon."""
        return self._covers.get(item_id)

    async def load_cover(self, item: VideoCard) -> Optional[bytes]:
        """
        Charge une couverture a la demande (element visible ou prefetch echoue).

        Returns:
            Contenu de l'image, None si l'element n'a pas de couverture
        """
        cached = self._covers.get(item.id)
        if cached is not None or not item.cover_url:
            return cached
        data = await self._fetch(item.cover_url)
        self._covers[item.id] = data
        self._failed.discard(item.id)
        return data

    async def wait_idle(self) -> None:
        """Attend la fin de tous les jobs actifs."""
        tasks = [job.task for job in self._jobs.values() if job.task is not None]
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    async def close(self) -> None:
        """Annule tous les jobs et attend leur arret."""
        tasks = []
        for job in self._jobs.values():
            if job.active:
                self._cancel(job)
            if job.task is not None:
                tasks.append(job.task)
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._jobs.clear()

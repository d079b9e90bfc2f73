"""In-memory crawl frontier.

The queue lives for the lifetime of the coordinator process and is rebuilt
from the link graph on startup. It is mutated only from the event loop; two
ingests racing on the same destination may both append it, and the next
:meth:`FrontierQueue.prune` removes the duplicate.
"""

from __future__ import annotations

import asyncio
import random
from collections.abc import Iterable
from contextlib import suppress
from typing import TYPE_CHECKING

import structlog

from observability.metrics import frontier_dispatched, frontier_fills, frontier_pruned, frontier_size

from .eligibility import EligibilityEngine, SnapshotGraphView

if TYPE_CHECKING:
    from mongo import MongoClient

logger = structlog.get_logger(__name__)


class FrontierQueue:
    """Ordered collection of URLs waiting for a worker.

    URLs are handed out from the front of the queue.
    """

    def __init__(
        self,
        store: MongoClient,
        engine: EligibilityEngine,
        *,
        rng: random.Random | None = None,
    ) -> None:
        self._store = store
        self._engine = engine
        self._rng = rng or random.Random()
        self._items: list[str] = []
        self._prune_task: asyncio.Task | None = None

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, url: object) -> bool:
        return url in self._items

    def snapshot(self) -> list[str]:
        return list(self._items)

    def push(self, url: str) -> None:
        self._items.append(url)
        frontier_size.set(len(self._items))

    def seed(self, urls: Iterable[str]) -> int:
        """Queue configured start URLs that pass validation."""

        added = 0
        for url in urls:
            if not self._engine.validate(url):
                logger.warning("seed_url_rejected", url=url)
                continue
            if url in self._items:
                continue
            self.push(url)
            added += 1
        return added

    async def fill(self) -> int:
        """Append every eligible link destination that is not queued yet."""

        view = await SnapshotGraphView.load(self._store)
        queued = set(self._items)
        added = 0
        for link in view.links:
            url = link.dst_url
            if url in queued:
                continue
            if await self._engine.is_eligible(url, view):
                self._items.append(url)
                queued.add(url)
                added += 1
        # Spread hosts out so consecutive dispatches rarely hit the same site
        self._rng.shuffle(self._items)
        frontier_fills.inc()
        frontier_size.set(len(self._items))
        logger.info("frontier_filled", added=added, size=len(self._items))
        return added

    async def prune(self) -> int:
        """Drop queued URLs that are purged or no longer eligible, then dedupe."""

        view = await SnapshotGraphView.load(self._store)
        rejected: set[str] = set()
        for url in set(self._items):
            if not self._engine.validate(url):
                logger.info("frontier_invalid_url", url=url)
                rejected.add(url)
                continue
            if not await self._engine.is_eligible(url, view):
                rejected.add(url)
                continue
            redirect = await view.redirect(url)
            if redirect is not None and not await self._engine.is_eligible(redirect.target, view):
                rejected.add(url)

        before = len(self._items)
        kept: list[str] = []
        seen: set[str] = set()
        for url in self._items:
            if url in rejected or url in seen:
                continue
            seen.add(url)
            kept.append(url)
        self._items = kept

        removed = before - len(kept)
        frontier_pruned.inc(removed)
        frontier_size.set(len(kept))
        logger.info("frontier_pruned", removed=removed, size=len(kept))
        return removed

    async def dispatch(self) -> str | None:
        """Remove and return the next URL, refilling once if the queue is empty."""

        if not self._items:
            await self.fill()
        if not self._items:
            frontier_dispatched.labels("empty").inc()
            logger.info("frontier_exhausted")
            return None
        url = self._items.pop(0)
        frontier_dispatched.labels("url").inc()
        frontier_size.set(len(self._items))
        logger.info("frontier_dispatched", url=url, remaining=len(self._items))
        return url

    @property
    def is_pruning(self) -> bool:
        return self._prune_task is not None and not self._prune_task.done()

    def start_pruning(self, interval: float) -> None:
        """Run :meth:`prune` every ``interval`` seconds in the background."""

        if self.is_pruning:
            return
        loop = asyncio.get_running_loop()
        self._prune_task = loop.create_task(self._prune_forever(interval))
        logger.info("frontier_pruner_started", interval=interval)

    async def stop_pruning(self) -> None:
        if not self._prune_task:
            return
        self._prune_task.cancel()
        with suppress(asyncio.CancelledError):
            await self._prune_task
        self._prune_task = None

    async def _prune_forever(self, interval: float) -> None:
        while True:
            await asyncio.sleep(interval)
            try:
                await self.prune()
            except asyncio.CancelledError:
                raise
            except Exception:  # noqa: BLE001
                logger.exception("frontier_prune_failed")

"""Apply worker scrape reports to the link graph and feed the frontier."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING

import structlog

from models import WorkReport
from observability.metrics import ingest_reports

from .eligibility import EligibilityEngine, LiveGraphView

if TYPE_CHECKING:
    from mongo import MongoClient

    from .queue import FrontierQueue

logger = structlog.get_logger(__name__)


class InvalidReport(ValueError):
    """Raised when a report names a URL the coordinator does not accept."""


@dataclass
class IngestResult:
    """Summary of the writes performed for one report."""

    url: str
    redirected: bool = False
    pages_created: int = 0
    links_created: int = 0
    links_updated: int = 0
    enqueued: list[str] = field(default_factory=list)
    rejected: list[str] = field(default_factory=list)


class IngestPipeline:
    """Write a report into Mongo step by step.

    There is no transaction around the steps: if a later write fails the
    redirect and page written before it stay in place.
    """

    def __init__(
        self,
        store: MongoClient,
        frontier: FrontierQueue,
        engine: EligibilityEngine,
        *,
        clock: Callable[[], datetime] | None = None,
        prune_after_ingest: bool = False,
    ) -> None:
        self._store = store
        self._frontier = frontier
        self._engine = engine
        self._clock = clock or engine.clock
        self._prune_after_ingest = prune_after_ingest
        self._view = LiveGraphView(store)

    async def ingest(self, report: WorkReport) -> IngestResult:
        requested, resolved = report.orig_url, report.result_url
        if not self._engine.validate(requested) or not self._engine.validate(resolved):
            logger.info("report_rejected", orig_url=requested, result_url=resolved)
            raise InvalidReport(f"invalid report url: {requested!r} -> {resolved!r}")
        host = self._engine.hostname(resolved)
        if host is None:
            raise InvalidReport(f"no host for {resolved!r}")

        result = IngestResult(url=resolved)
        if requested != resolved:
            await self._store.upsert_redirect(requested, resolved)
            result.redirected = True

        await self._store.record_scrape(resolved, host, self._clock())
        ingest_reports.labels(str(report.success).lower()).inc()

        if not report.success:
            logger.info("report_processed", url=resolved, success=False)
            return result

        for link in report.links or []:
            destination = link.to
            if not self._engine.validate(destination):
                logger.info("link_rejected", src=resolved, url=destination)
                result.rejected.append(destination)
                continue
            dst_host = self._engine.hostname(destination)
            if dst_host is None:
                continue

            if await self._store.ensure_page(destination, dst_host):
                result.pages_created += 1
            if await self._store.upsert_link(resolved, destination, link.image, link.image_hash):
                result.links_created += 1
            else:
                result.links_updated += 1

            if destination not in self._frontier and await self._engine.is_eligible(destination, self._view):
                self._frontier.push(destination)
                result.enqueued.append(destination)

        if self._prune_after_ingest:
            await self._frontier.prune()

        logger.info(
            "report_processed",
            url=resolved,
            success=True,
            links=len(report.links or []),
            enqueued=len(result.enqueued),
        )
        return result

"""Host level export of the link graph.

The export walks every page, resolves page and link targets through at most
one redirect hop and aggregates the result per host:

``linksTo``
    hosts each host links to
``linkedFrom``
    hosts linking to each host
``images``
    button/banner image URLs used when linking to each host, unique by hash

Exports run as background tasks; :meth:`GraphExporter.schedule` returns the
task so callers can await completion.
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import Iterable
from pathlib import Path
from typing import TYPE_CHECKING

import structlog

from models import GraphDocument
from observability.metrics import graph_exports

from .eligibility import SnapshotGraphView
from .urls import DEFAULT_BLACKLIST, hostname, validate_host, validate_url

if TYPE_CHECKING:
    from mongo import MongoClient

logger = structlog.get_logger(__name__)


def _unique(values: Iterable[str]) -> list[str]:
    return list(dict.fromkeys(values))


class GraphExporter:
    """Aggregate the graph per host and persist it as JSON."""

    def __init__(
        self,
        store: MongoClient,
        output_path: str | Path | None = "graph.json",
        *,
        blacklist: Iterable[str] | None = None,
    ) -> None:
        self._store = store
        self.output_path = Path(output_path) if output_path else None
        self.blacklist = tuple(DEFAULT_BLACKLIST if blacklist is None else blacklist)
        self.last_task: asyncio.Task | None = None
        self.latest: GraphDocument | None = None

    def _resolve(self, url: str, view: SnapshotGraphView) -> str | None:
        redirect = view.redirects.get(url)
        target = redirect.target if redirect is not None else url
        host = hostname(target, self.blacklist)
        if host is None or not host.strip():
            return None
        return host

    async def build(self) -> GraphDocument:
        view = await SnapshotGraphView.load(self._store)

        links_to: dict[str, list[str]] = {}
        linked_from: dict[str, list[str]] = {}
        images: dict[str, dict[str, str]] = {}

        for page in view.pages.values():
            host = self._resolve(page.url, view)
            if host is None:
                continue
            targets = links_to.setdefault(host, [])

            for link in await view.links_from(page.url):
                dst_host = self._resolve(link.dst_url, view)
                if dst_host is None:
                    continue
                targets.append(dst_host)
                linked_from.setdefault(dst_host, []).append(host)
                images.setdefault(dst_host, {}).setdefault(link.image_hash, link.image_url)

        return GraphDocument(
            links_to={
                host: [h for h in _unique(hosts) if validate_host(h, self.blacklist)]
                for host, hosts in links_to.items()
            },
            linked_from={
                host: [h for h in _unique(hosts) if validate_host(h, self.blacklist)]
                for host, hosts in linked_from.items()
            },
            images={
                host: [u for u in _unique(by_hash.values()) if validate_url(u, self.blacklist)]
                for host, by_hash in images.items()
            },
        )

    async def write(self, document: GraphDocument) -> None:
        if self.output_path is None:
            return
        payload = json.dumps(document.model_dump(by_alias=True), ensure_ascii=False)
        await asyncio.to_thread(self.output_path.write_text, payload, encoding="utf-8")
        logger.info("graph_written", path=str(self.output_path), hosts=len(document.links_to))

    async def run(self) -> GraphDocument:
        document = await self.build()
        await self.write(document)
        self.latest = document
        return document

    def schedule(self) -> asyncio.Task:
        """Start an export in the background and return its task.

        While an export is still running the same task is returned instead of
        starting another one.
        """

        if self.last_task is not None and not self.last_task.done():
            logger.info("graph_export_already_running")
            return self.last_task
        loop = asyncio.get_running_loop()
        task = loop.create_task(self.run())
        task.add_done_callback(self._on_done)
        self.last_task = task
        logger.info("graph_export_scheduled")
        return task

    def _on_done(self, task: asyncio.Task) -> None:
        if task.cancelled():
            graph_exports.labels("cancelled").inc()
            return
        exc = task.exception()
        if exc is not None:
            graph_exports.labels("failed").inc()
            logger.error("graph_export_failed", error=str(exc), exc_info=exc)
            return
        graph_exports.labels("ok").inc()

"""Decide which URLs may enter the frontier.

The rules are evaluated against a :class:`GraphView`. Two interchangeable
views exist:

``LiveGraphView``
    queries Mongo on every lookup; used on the ingest path where only a
    handful of URLs are checked per request.
``SnapshotGraphView``
    bulk-loads pages, links and redirects once and answers from in-memory
    indexes; used by queue fill and prune which scan the whole graph.

Redirects are resolved exactly one hop deep everywhere.
"""

from __future__ import annotations

from collections import Counter, defaultdict
from collections.abc import Callable, Iterable
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, Protocol

from models import Link, Page, Redirect

from .urls import DEFAULT_BLACKLIST, hostname, validate_url

if TYPE_CHECKING:
    from mongo import MongoClient
    from settings import FrontierSettings


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class GraphView(Protocol):
    async def page(self, url: str) -> Page | None: ...

    async def links_from(self, url: str) -> list[Link]: ...

    async def redirect(self, url: str) -> Redirect | None: ...

    async def count_domain(self, domain: str) -> int: ...


class LiveGraphView:
    """Per-call queries against the graph store."""

    def __init__(self, store: MongoClient) -> None:
        self._store = store

    async def page(self, url: str) -> Page | None:
        return await self._store.get_page(url)

    async def links_from(self, url: str) -> list[Link]:
        return await self._store.links_from(url)

    async def redirect(self, url: str) -> Redirect | None:
        return await self._store.get_redirect(url)

    async def count_domain(self, domain: str) -> int:
        return await self._store.count_pages_in_domain(domain)


class SnapshotGraphView:
    """In-memory copy of the graph taken at one point in time."""

    def __init__(
        self,
        pages: Iterable[Page] = (),
        links: Iterable[Link] = (),
        redirects: Iterable[Redirect] = (),
    ) -> None:
        self.pages: dict[str, Page] = {}
        self.links: list[Link] = list(links)
        self.redirects: dict[str, Redirect] = {}
        self._links_by_src: dict[str, list[Link]] = defaultdict(list)
        self._domain_counts: Counter[str] = Counter()

        for page in pages:
            if page.url in self.pages:
                continue
            self.pages[page.url] = page
            self._domain_counts[page.domain] += 1
        for link in self.links:
            self._links_by_src[link.src_url].append(link)
        for redirect in redirects:
            self.redirects.setdefault(redirect.source, redirect)

    @classmethod
    async def load(cls, store: MongoClient) -> "SnapshotGraphView":
        pages = [page async for page in store.iter_pages()]
        links = [link async for link in store.iter_links()]
        redirects = [redirect async for redirect in store.iter_redirects()]
        return cls(pages, links, redirects)

    async def page(self, url: str) -> Page | None:
        return self.pages.get(url)

    async def links_from(self, url: str) -> list[Link]:
        return list(self._links_by_src.get(url, ()))

    async def redirect(self, url: str) -> Redirect | None:
        return self.redirects.get(url)

    async def count_domain(self, domain: str) -> int:
        return self._domain_counts.get(domain, 0)


class EligibilityEngine:
    """Purge and eligibility rules for frontier candidates.

    Parameters
    ----------
    max_pages_per_domain:
        A host with at least this many known pages is not crawled further.
    cooldown:
        Minimum age of ``lastScraped`` before a page may be fetched again.
    blacklist:
        Host suffixes that are never crawled.
    clock:
        Callable returning the current time; timezone-aware UTC.
    """

    def __init__(
        self,
        *,
        max_pages_per_domain: int = 50,
        cooldown: timedelta = timedelta(days=7),
        blacklist: Iterable[str] | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.max_pages_per_domain = max_pages_per_domain
        self.cooldown = cooldown
        self.blacklist = tuple(DEFAULT_BLACKLIST if blacklist is None else blacklist)
        self.clock = clock or utcnow

    @classmethod
    def from_settings(
        cls,
        settings: FrontierSettings,
        *,
        clock: Callable[[], datetime] | None = None,
    ) -> "EligibilityEngine":
        return cls(
            max_pages_per_domain=settings.max_pages_per_domain,
            cooldown=timedelta(days=settings.cooldown_days),
            blacklist=settings.blacklist,
            clock=clock,
        )

    def validate(self, url: str) -> bool:
        return validate_url(url, self.blacklist)

    def hostname(self, url: str) -> str | None:
        return hostname(url, self.blacklist)

    async def is_purged(self, url: str, view: GraphView) -> bool:
        """Return ``True`` when ``url`` must never be crawled again."""

        if not self.validate(url):
            return True
        if await self._is_self_loop(url, view):
            return True
        redirect = await view.redirect(url)
        if redirect is not None and await self._is_self_loop(redirect.target, view):
            return True
        return False

    async def is_eligible(self, url: str, view: GraphView) -> bool:
        """Return ``True`` when ``url`` may be handed to a worker now."""

        if await self.is_purged(url, view):
            return False
        now = self.clock()
        if not await self._within_limits(url, view, now):
            return False
        redirect = await view.redirect(url)
        if redirect is not None and not await self._within_limits(redirect.target, view, now):
            return False
        return True

    async def _is_self_loop(self, page_url: str, view: GraphView) -> bool:
        # A page whose only link leads back to itself never yields new URLs
        page = await view.page(page_url)
        if page is None:
            return False
        links = await view.links_from(page.url)
        if len(links) != 1:
            return False
        destination = links[0].dst_url
        if destination == page.url:
            return True
        hop = await view.redirect(destination)
        return hop is not None and hop.target == page.url

    async def _within_limits(self, url: str, view: GraphView, now: datetime) -> bool:
        host = self.hostname(url)
        if host is None:
            return False
        if await view.count_domain(host) >= self.max_pages_per_domain:
            return False
        page = await view.page(url)
        if page is not None and page.last_scraped is not None:
            scraped = page.last_scraped
            if scraped.tzinfo is None:
                scraped = scraped.replace(tzinfo=timezone.utc)
            if scraped > now - self.cooldown:
                return False
        return True

"""MongoDB client helpers backing the link graph."""

from __future__ import annotations

from collections.abc import AsyncIterator
from datetime import datetime
from urllib.parse import quote_plus
from uuid import uuid4

import structlog
from motor.motor_asyncio import AsyncIOMotorClient
from pymongo import ASCENDING
from pymongo.errors import ConfigurationError

from models import Client, Link, Page, Redirect

logger = structlog.get_logger(__name__)


class MongoClient:
    """Wrapper around the asynchronous MongoDB client.

    Parameters
    ----------
    host, port, username, password, database, auth_database:
        Connection parameters used when an explicit ``uri`` is not provided.
    uri:
        Optional full MongoDB URI. When supplied, connection parameters are
        derived from it.
    collections:
        Optional overrides for the ``pages``, ``links``, ``redirects`` and
        ``clients`` collection names.

    Notes
    -----
    Every store operation is a single round trip; nothing here retries or
    wraps calls in a transaction. Exceptions are logged with the collection
    name before being re-raised so request handlers surface them as server
    errors.
    """

    def __init__(
        self,
        host: str,
        port: int,
        username: str | None,
        password: str | None,
        database: str,
        auth_database: str,
        *,
        uri: str | None = None,
        collections: dict[str, str] | None = None,
    ):
        try:
            if uri:
                self.url = uri
                self.client = AsyncIOMotorClient(uri, tz_aware=True)
                try:
                    db = self.client.get_default_database()
                except ConfigurationError:
                    db = self.client[database]
                self.database_name = db.name
                self.db = db
            else:
                has_user = username is not None and str(username) != ""
                has_pass = password is not None and str(password) != ""
                if has_user and has_pass:
                    u = quote_plus(str(username))
                    p = quote_plus(str(password))
                    auth_part = f"{u}:{p}@"
                    auth_db = f"/{auth_database}"
                else:
                    auth_part = ""
                    auth_db = ""

                self.url = f"mongodb://{auth_part}{host}:{port}{auth_db}"
                self.client = AsyncIOMotorClient(self.url, tz_aware=True)
                self.database_name = database
                self.db = self.client[database]
        except Exception as exc:
            logger.error("mongo_client_init_failed", uri=uri or getattr(self, "url", uri), error=str(exc))
            raise
        self._configure_collections(collections)

    @classmethod
    def from_database(cls, db, *, collections: dict[str, str] | None = None) -> "MongoClient":
        """Build a client around an already opened database handle."""

        instance = cls.__new__(cls)
        instance.client = getattr(db, "client", None)
        instance.db = db
        instance.url = None
        instance.database_name = getattr(db, "name", None)
        instance._configure_collections(collections)
        return instance

    def _configure_collections(self, collections: dict[str, str] | None) -> None:
        names = collections or {}
        self.pages_collection = names.get("pages", "pages")
        self.links_collection = names.get("links", "links")
        self.redirects_collection = names.get("redirects", "redirects")
        self.clients_collection = names.get("clients", "clients")
        self._indexes_ready = False

    async def ping(self) -> bool:
        """Return ``True`` when the server answers ``ping``."""

        await self.db.command("ping")
        return True

    def close(self) -> None:
        if self.client is not None:
            self.client.close()

    async def ensure_indexes(self) -> None:
        """Create the unique keys the graph relies on if they are missing."""

        if self._indexes_ready:
            return

        specs = (
            (self.pages_collection, [("url", ASCENDING)], "page_url_unique", True),
            (self.pages_collection, [("domain", ASCENDING)], "page_domain", False),
            (self.redirects_collection, [("from", ASCENDING)], "redirect_from_unique", True),
            (self.clients_collection, [("apiKey", ASCENDING)], "client_api_key_unique", True),
            (
                self.links_collection,
                [("srcUrl", ASCENDING), ("dstUrl", ASCENDING), ("imageUrl", ASCENDING)],
                "link_triple_unique",
                True,
            ),
        )
        for collection, keys, name, unique in specs:
            try:
                await self.db[collection].create_index(keys, name=name, unique=unique)
            except Exception as exc:  # noqa: BLE001
                logger.warning(
                    "mongo_index_create_failed",
                    collection=collection,
                    index=name,
                    error=str(exc),
                )
        self._indexes_ready = True

    # Pages

    async def get_page(self, url: str) -> Page | None:
        try:
            doc = await self.db[self.pages_collection].find_one({"url": url}, {"_id": False})
        except Exception as exc:
            logger.error("mongo_get_page_failed", collection=self.pages_collection, url=url, error=str(exc))
            raise
        return Page(**doc) if doc else None

    async def record_scrape(self, url: str, domain: str, scraped_at: datetime) -> None:
        """Upsert the page that was the subject of a completed scrape."""

        try:
            await self.db[self.pages_collection].update_one(
                {"url": url},
                {
                    "$set": {"lastScraped": scraped_at},
                    "$setOnInsert": {"url": url, "domain": domain},
                },
                upsert=True,
            )
        except Exception as exc:
            logger.error("mongo_record_scrape_failed", collection=self.pages_collection, url=url, error=str(exc))
            raise

    async def ensure_page(self, url: str, domain: str) -> bool:
        """Create a placeholder page without ``lastScraped``.

        Returns ``True`` when the page did not exist before.
        """

        try:
            result = await self.db[self.pages_collection].update_one(
                {"url": url},
                {"$setOnInsert": {"url": url, "domain": domain}},
                upsert=True,
            )
        except Exception as exc:
            logger.error("mongo_ensure_page_failed", collection=self.pages_collection, url=url, error=str(exc))
            raise
        return result.upserted_id is not None

    async def count_pages_in_domain(self, domain: str) -> int:
        try:
            return await self.db[self.pages_collection].count_documents({"domain": domain})
        except Exception as exc:
            logger.error("mongo_count_pages_failed", collection=self.pages_collection, domain=domain, error=str(exc))
            raise

    async def iter_pages(self) -> AsyncIterator[Page]:
        cursor = self.db[self.pages_collection].find({}, {"_id": False})
        async for doc in cursor:
            yield Page(**doc)

    # Links

    async def upsert_link(self, src_url: str, dst_url: str, image_url: str, image_hash: str) -> bool:
        """Insert the link or update the row with the same triple in place.

        Returns ``True`` when a new row was created.
        """

        triple = {"srcUrl": src_url, "dstUrl": dst_url, "imageUrl": image_url}
        try:
            result = await self.db[self.links_collection].update_one(
                triple,
                {
                    "$set": {"dstUrl": dst_url, "imageUrl": image_url},
                    "$setOnInsert": {"srcUrl": src_url, "imageHash": image_hash},
                },
                upsert=True,
            )
        except Exception as exc:
            logger.error("mongo_upsert_link_failed", collection=self.links_collection, src=src_url, dst=dst_url, error=str(exc))
            raise
        return result.upserted_id is not None

    async def links_from(self, src_url: str) -> list[Link]:
        try:
            cursor = self.db[self.links_collection].find({"srcUrl": src_url}, {"_id": False})
            return [Link(**doc) async for doc in cursor]
        except Exception as exc:
            logger.error("mongo_links_from_failed", collection=self.links_collection, src=src_url, error=str(exc))
            raise

    async def iter_links(self) -> AsyncIterator[Link]:
        cursor = self.db[self.links_collection].find({}, {"_id": False})
        async for doc in cursor:
            yield Link(**doc)

    # Redirects

    async def upsert_redirect(self, source: str, target: str) -> None:
        try:
            await self.db[self.redirects_collection].update_one(
                {"from": source},
                {"$set": {"to": target}, "$setOnInsert": {"from": source}},
                upsert=True,
            )
        except Exception as exc:
            logger.error("mongo_upsert_redirect_failed", collection=self.redirects_collection, source=source, error=str(exc))
            raise

    async def get_redirect(self, source: str) -> Redirect | None:
        try:
            doc = await self.db[self.redirects_collection].find_one({"from": source}, {"_id": False})
        except Exception as exc:
            logger.error("mongo_get_redirect_failed", collection=self.redirects_collection, source=source, error=str(exc))
            raise
        return Redirect(**doc) if doc else None

    async def iter_redirects(self) -> AsyncIterator[Redirect]:
        cursor = self.db[self.redirects_collection].find({}, {"_id": False})
        async for doc in cursor:
            yield Redirect(**doc)

    # Clients

    async def create_client(self) -> Client:
        client = Client(api_key=str(uuid4()))
        try:
            await self.db[self.clients_collection].insert_one(client.model_dump(by_alias=True))
        except Exception as exc:
            logger.error("mongo_create_client_failed", collection=self.clients_collection, error=str(exc))
            raise
        return client

    async def get_client(self, api_key: str) -> Client | None:
        if not api_key:
            return None
        try:
            doc = await self.db[self.clients_collection].find_one({"apiKey": api_key}, {"_id": False})
        except Exception as exc:
            logger.error("mongo_get_client_failed", collection=self.clients_collection, error=str(exc))
            raise
        return Client(**doc) if doc else None

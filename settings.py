"""Application settings models."""

from __future__ import annotations

from functools import lru_cache
from pydantic import ConfigDict, Field
from pydantic_settings import BaseSettings


class MongoSettings(BaseSettings):
    """Settings for MongoDB connection.

    Environment variables follow the ``MONGO_`` prefix. For example,
    ``MONGO_HOST`` and ``MONGO_PORT`` configure the connection host and port.
    ``MONGO_URI`` takes precedence over the individual connection fields.
    ``MONGO_PAGES``, ``MONGO_LINKS``, ``MONGO_REDIRECTS`` and ``MONGO_CLIENTS``
    name the link graph collections.
    """

    host: str = "localhost"
    port: int = 27017
    username: str | None = None
    password: str | None = None
    database: str = "crawlgraph"
    auth: str = "admin"
    uri: str | None = None

    pages: str = "pages"
    links: str = "links"
    redirects: str = "redirects"
    clients: str = "clients"

    model_config = ConfigDict(extra="ignore", env_prefix="MONGO_")


class FrontierSettings(BaseSettings):
    """Crawl frontier policy.

    ``FRONTIER_MAX_PAGES_PER_DOMAIN`` caps how many known pages a single host
    may accumulate before its URLs stop being handed out, and
    ``FRONTIER_COOLDOWN_DAYS`` sets how long a scraped page rests before it is
    eligible again. Hosts listed in ``FRONTIER_BLACKLIST`` (JSON list) are
    matched by suffix.
    """

    max_pages_per_domain: int = 50
    cooldown_days: float = 7
    prune_interval_seconds: float = 60
    prune_after_ingest: bool = False
    blacklist: list[str] = Field(
        default_factory=lambda: [
            "youtube.com",
            "web.archive.org",
            # Community forums that generate endless thread pages
            "jcink.net",
        ]
    )
    seeds: list[str] = Field(default_factory=list)
    graph_path: str = "graph.json"

    model_config = ConfigDict(extra="ignore", env_prefix="FRONTIER_")


class Settings(BaseSettings):
    """Top level application settings loaded from ``.env``.

    Nested models use environment prefixes such as ``MONGO_`` and ``FRONTIER_``.
    ``ADMIN_KEY`` is the shared secret guarding account creation and graph
    export; an empty value rejects every admin request.
    """

    debug: bool = False
    admin_key: str = Field(default="", alias="ADMIN_KEY")

    mongo: MongoSettings = Field(default_factory=MongoSettings)
    frontier: FrontierSettings = Field(default_factory=FrontierSettings)

    model_config = ConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        # Use double underscore to avoid collisions with top-level names
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )


@lru_cache(maxsize=1)
def get_settings() -> "Settings":
    """Return cached application settings."""

    return Settings()

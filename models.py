"""Pydantic models used throughout the application.

Graph records mirror the Mongo documents (camelCase aliases), report models
mirror the JSON bodies posted by scraper workers.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field, ConfigDict


class Page(BaseModel):
    """A URL known to the link graph."""

    url: str
    domain: str
    last_scraped: datetime | None = Field(default=None, alias="lastScraped")

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class Link(BaseModel):
    """Outgoing link observed on ``src_url``.

    Identity is the ``(src_url, dst_url, image_url)`` triple.
    """

    src_url: str = Field(alias="srcUrl")
    dst_url: str = Field(alias="dstUrl")
    image_url: str = Field(alias="imageUrl")
    image_hash: str = Field(alias="imageHash")

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class Redirect(BaseModel):
    """Single observed redirect hop."""

    source: str = Field(alias="from")
    target: str = Field(alias="to")

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class Client(BaseModel):
    """Scraper worker account."""

    api_key: str = Field(alias="apiKey")

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class ReportedLink(BaseModel):
    """Link discovered by a worker on the scraped page."""

    to: str
    image: str
    image_hash: str


class WorkReport(BaseModel):
    """Scrape result posted to ``POST /work``."""

    orig_url: str
    result_url: str
    success: bool
    links: list[ReportedLink] | None = None

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "orig_url": "http://example.com/",
                "result_url": "https://example.com/",
                "success": True,
                "links": [
                    {
                        "to": "https://other.example/",
                        "image": "https://example.com/88x31/other.gif",
                        "image_hash": "5d41402abc4b2a76b9719d911017c592",
                    }
                ],
            }
        },
    )


class GraphDocument(BaseModel):
    """Host level aggregate of the link graph."""

    links_to: dict[str, list[str]] = Field(default_factory=dict, alias="linksTo")
    linked_from: dict[str, list[str]] = Field(default_factory=dict, alias="linkedFrom")
    images: dict[str, list[str]] = Field(default_factory=dict)

    model_config = ConfigDict(populate_by_name=True)

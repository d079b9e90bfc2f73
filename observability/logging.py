"""Structured logging for the coordinator.

Every component logs through ``structlog`` with snake_case event names and
key/value context. Events are rendered to JSON and handed to the standard
library, so uvicorn and application output share the same handlers.

A bounded in-memory buffer keeps the most recent lines for the admin
``/logs`` endpoint; lines older than ``LOG_RETENTION_DAYS`` are not returned.
"""

from __future__ import annotations

import json
import logging
import time
from collections import deque
from functools import partial

import structlog

LOG_RETENTION_DAYS = 7
RING_CAPACITY = 2000

# (created, formatted line) pairs, newest last
_ring: deque[tuple[float, str]] | None = None


class _RingBufferHandler(logging.Handler):
    def __init__(self, capacity: int = RING_CAPACITY) -> None:
        super().__init__()
        self.buffer: deque[tuple[float, str]] = deque(maxlen=capacity)

    def emit(self, record: logging.LogRecord) -> None:  # noqa: D401
        try:
            line = self.format(record)
        except Exception:  # pragma: no cover - best-effort formatting
            line = record.getMessage()
        self.buffer.append((record.created, line))


def configure_logging(*, debug: bool = False, capacity: int = RING_CAPACITY) -> None:
    """Route structlog through stdlib logging and attach the ring buffer.

    Calling it again only adjusts the level.
    """
    level = logging.DEBUG if debug else logging.INFO
    logging.basicConfig(level=level, format="%(message)s")
    root = logging.getLogger()
    root.setLevel(level)

    global _ring
    if _ring is None:
        handler = _RingBufferHandler(capacity)
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(message)s"))
        root.addHandler(handler)
        _ring = handler.buffer

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(
                serializer=partial(json.dumps, ensure_ascii=False, default=str)
            ),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )


def get_recent_logs(limit: int = 200) -> list[str]:
    """Return up to ``limit`` of the newest retained lines, oldest first."""

    if limit <= 0 or not _ring:
        return []
    cutoff = time.time() - LOG_RETENTION_DAYS * 86400
    selected: list[str] = []
    for created, line in reversed(_ring):
        if created < cutoff:
            continue
        selected.append(line)
        if len(selected) >= limit:
            break
    selected.reverse()
    return selected

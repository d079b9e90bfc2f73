"""FastAPI routers package.

- work: worker queue endpoints (dispatch and scrape reports)
- admin: worker accounts, graph export and logs
"""

from __future__ import annotations

__all__ = [
    "admin",
    "work",
]

"""Authentication and authorization logic.

Two tiers guard the API: the shared ``ADMIN_KEY`` secret for account creation
and graph export, and per-worker API keys stored as ``Client`` documents for
queue access. Both are read from the ``Authorization`` header verbatim, and
both failures produce the same 401 response.
"""

import hmac

import structlog
from fastapi import HTTPException
from starlette.requests import Request

from backend.dependencies import get_mongo_client, get_settings_from_app
from models import Client

logger = structlog.get_logger(__name__)

UNAUTHORIZED = "Unauthorized"


def _credential(request: Request) -> str:
    return request.headers.get("Authorization", "")


def require_admin(request: Request) -> None:
    """Require the shared administrative secret."""
    expected = get_settings_from_app(request).admin_key
    supplied = _credential(request)
    if not expected or not hmac.compare_digest(supplied.encode(), expected.encode()):
        logger.warning("admin_auth_failed", path=request.url.path)
        raise HTTPException(status_code=401, detail=UNAUTHORIZED)


async def require_worker(request: Request) -> Client:
    """Require an API key that belongs to a registered worker."""
    mongo = get_mongo_client(request)
    client = await mongo.get_client(_credential(request))
    if client is None:
        logger.warning("worker_auth_failed", path=request.url.path)
        raise HTTPException(status_code=401, detail=UNAUTHORIZED)
    return client

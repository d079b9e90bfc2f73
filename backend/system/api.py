"""System status and health check endpoints."""

import structlog
from fastapi import APIRouter, Depends, Request

from backend.auth import require_admin
from backend.dependencies import get_exporter, get_frontier, get_mongo_client

logger = structlog.get_logger(__name__)

router = APIRouter(tags=["system"])


async def mongo_check(request: Request) -> tuple[bool, str | None]:
    """Ping the graph store once; failures are reported, not raised."""
    try:
        await get_mongo_client(request).ping()
        return True, None
    except Exception as exc:  # noqa: BLE001
        logger.warning("mongo_ping_failed", error=str(exc))
        return False, str(exc)


@router.get("/healthz", include_in_schema=False)
def healthz() -> dict[str, str]:
    """Lightweight liveness probe used by container healthchecks."""
    return {"status": "ok"}


@router.get("/health", include_in_schema=False)
async def health(request: Request) -> dict[str, object]:
    """Health check with a graph store probe."""
    mongo_ok, mongo_err = await mongo_check(request)
    return {
        "status": "ok" if mongo_ok else "degraded",
        "mongo": mongo_ok,
        "details": {"mongo": {"ok": mongo_ok, "error": mongo_err}},
    }


@router.get("/status", dependencies=[Depends(require_admin)])
async def status(request: Request) -> dict[str, object]:
    """Return frontier and export state."""
    frontier = get_frontier(request)
    exporter = get_exporter(request)
    task = exporter.last_task
    if task is None:
        export_state = "never"
    elif not task.done():
        export_state = "running"
    elif task.cancelled() or task.exception() is not None:
        export_state = "failed"
    else:
        export_state = "done"
    return {
        "queue": len(frontier),
        "pruning": frontier.is_pruning,
        "export": export_state,
    }

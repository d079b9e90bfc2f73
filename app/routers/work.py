"""Worker queue endpoints.

Workers poll ``GET /work`` for the next URL and post their findings back to
``POST /work``.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import PlainTextResponse, Response

from backend.auth import require_worker
from backend.dependencies import get_frontier, get_ingest
from frontier import FrontierQueue, IngestPipeline, InvalidReport
from models import Client, WorkReport

router = APIRouter(tags=["work"])


@router.get("/work", response_class=PlainTextResponse)
async def get_work(
    _client: Client = Depends(require_worker),
    frontier: FrontierQueue = Depends(get_frontier),
) -> PlainTextResponse:
    """Hand out the next frontier URL; the body is empty when nothing is eligible."""
    url = await frontier.dispatch()
    return PlainTextResponse(url or "")


@router.post("/work", status_code=204, response_class=Response)
async def post_work(
    report: WorkReport,
    _client: Client = Depends(require_worker),
    ingest: IngestPipeline = Depends(get_ingest),
) -> Response:
    """Record a scrape report in the link graph."""
    try:
        await ingest.ingest(report)
    except InvalidReport as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return Response(status_code=204)

"""Admin router: worker accounts, graph export and recent logs."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import ORJSONResponse, PlainTextResponse, Response

from backend.auth import require_admin
from backend.dependencies import get_exporter, get_mongo_client
from frontier import GraphExporter
from mongo import MongoClient
from observability.logging import get_recent_logs

logger = structlog.get_logger(__name__)

router = APIRouter(tags=["admin"], dependencies=[Depends(require_admin)])


@router.post("/create_account", response_class=PlainTextResponse)
async def create_account(mongo: MongoClient = Depends(get_mongo_client)) -> PlainTextResponse:
    """Register a new scraper worker and return its API key."""
    client = await mongo.create_client()
    logger.info("worker_account_created")
    return PlainTextResponse(client.api_key)


@router.get("/graph", status_code=204, response_class=Response)
async def export_graph(exporter: GraphExporter = Depends(get_exporter)) -> Response:
    """Start a host level export; the document is written when it completes."""
    exporter.schedule()
    return Response(status_code=204)


@router.get("/graph/latest", response_class=ORJSONResponse)
async def latest_graph(exporter: GraphExporter = Depends(get_exporter)) -> ORJSONResponse:
    if exporter.latest is None:
        raise HTTPException(status_code=404, detail="No graph exported yet")
    return ORJSONResponse(exporter.latest.model_dump(by_alias=True))


@router.get("/logs", response_class=ORJSONResponse)
async def recent_logs(limit: int = Query(default=200, ge=1, le=2000)) -> ORJSONResponse:
    return ORJSONResponse({"lines": get_recent_logs(limit)})

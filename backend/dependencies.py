"""FastAPI dependencies."""

from fastapi import HTTPException
from starlette.requests import Request

from frontier import FrontierQueue, GraphExporter, IngestPipeline
from mongo import MongoClient
from settings import Settings, get_settings


def _app_state(request: Request, name: str, label: str):
    value = getattr(request.app.state, name, None)
    if value is None:
        raise HTTPException(status_code=500, detail=f"{label} is unavailable")
    return value


def get_mongo_client(request: Request) -> MongoClient:
    """Get MongoDB client from request state."""
    mongo_client: MongoClient | None = getattr(request.state, "mongo", None)
    if mongo_client is None:
        mongo_client = _app_state(request, "mongo", "Mongo client")
        request.state.mongo = mongo_client
    return mongo_client


def get_settings_from_app(request: Request) -> Settings:
    return getattr(request.app.state, "settings", None) or get_settings()


def get_frontier(request: Request) -> FrontierQueue:
    return _app_state(request, "frontier", "Frontier")


def get_ingest(request: Request) -> IngestPipeline:
    return _app_state(request, "ingest", "Ingest pipeline")


def get_exporter(request: Request) -> GraphExporter:
    return _app_state(request, "exporter", "Graph exporter")

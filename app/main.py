"""FastAPI application factory and lifespan management.

Run with ``uvicorn app.main:app``. The lifespan connects to Mongo, rebuilds
the in-memory frontier from the stored link graph and keeps it pruned in the
background until shutdown.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager, suppress

import structlog
from fastapi import FastAPI

from app.routers import admin as admin_router, work as work_router
from backend.system.api import router as system_router
from frontier import EligibilityEngine, FrontierQueue, GraphExporter, IngestPipeline
from mongo import MongoClient
from observability.logging import configure_logging
from observability.metrics import MetricsMiddleware, metrics_app
from settings import MongoSettings, Settings, get_settings

logger = structlog.get_logger(__name__)


def _mongo_from_settings(cfg: MongoSettings) -> MongoClient:
    return MongoClient(
        cfg.host,
        cfg.port,
        cfg.username,
        cfg.password,
        cfg.database,
        cfg.auth,
        uri=cfg.uri,
        collections={
            "pages": cfg.pages,
            "links": cfg.links,
            "redirects": cfg.redirects,
            "clients": cfg.clients,
        },
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Initialize and clean up the store, frontier and exporter."""
    settings: Settings = app.state.settings
    policy = settings.frontier

    mongo_client: MongoClient | None = getattr(app.state, "mongo", None)
    owns_client = mongo_client is None
    if mongo_client is None:
        mongo_client = _mongo_from_settings(settings.mongo)
    await mongo_client.ensure_indexes()

    engine = EligibilityEngine.from_settings(policy)
    frontier = FrontierQueue(mongo_client, engine)
    frontier.seed(policy.seeds)
    await frontier.fill()
    await frontier.prune()
    frontier.start_pruning(policy.prune_interval_seconds)

    app.state.mongo = mongo_client
    app.state.engine = engine
    app.state.frontier = frontier
    app.state.ingest = IngestPipeline(
        mongo_client,
        frontier,
        engine,
        prune_after_ingest=policy.prune_after_ingest,
    )
    app.state.exporter = GraphExporter(mongo_client, policy.graph_path, blacklist=policy.blacklist)
    logger.info("coordinator_started", queue=len(frontier))

    try:
        yield
    finally:
        await frontier.stop_pruning()
        export_task = app.state.exporter.last_task
        if export_task is not None and not export_task.done():
            export_task.cancel()
            with suppress(asyncio.CancelledError):
                await export_task
        if owns_client:
            mongo_client.close()
        with suppress(AttributeError):
            del app.state.engine
            del app.state.frontier
            del app.state.ingest
            del app.state.exporter
            if owns_client:
                del app.state.mongo
        logger.info("coordinator_stopped")


def create_app(
    *,
    settings: Settings | None = None,
    mongo: MongoClient | None = None,
    debug: bool | None = None,
) -> FastAPI:
    """Create and configure FastAPI application instance.

    Parameters
    ----------
    settings
        Application settings; defaults to :func:`settings.get_settings`.
    mongo
        Pre-built graph store. When omitted the lifespan connects using
        ``settings.mongo`` and closes the connection on shutdown.
    debug
        Enable debug mode. If None, uses settings.debug.
    """
    settings = settings or get_settings()
    use_debug = debug if debug is not None else settings.debug
    configure_logging(debug=use_debug)

    app = FastAPI(title="Crawl Coordinator", lifespan=lifespan, debug=use_debug)
    app.state.settings = settings
    if mongo is not None:
        app.state.mongo = mongo

    app.add_middleware(MetricsMiddleware)
    app.mount("/metrics", metrics_app)

    app.include_router(work_router.router)
    app.include_router(admin_router.router)
    app.include_router(system_router)
    return app


app = create_app()

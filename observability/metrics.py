"""Prometheus metrics instrumentation."""

from __future__ import annotations

import time

from fastapi import Request
from prometheus_client import Counter, Gauge, Histogram, make_asgi_app
from starlette.middleware.base import BaseHTTPMiddleware

request_count = Counter("request_count", "HTTP requests", ["method", "path"])
latency_ms = Histogram("latency_ms", "Request latency in ms")
error_count = Counter("error_count", "Error responses", ["path"])

frontier_size = Gauge("frontier_queue_size", "URLs currently queued for dispatch")
frontier_fills = Counter("frontier_fill_total", "Queue refills from the link graph")
frontier_pruned = Counter("frontier_pruned_total", "URLs removed from the queue by pruning")
frontier_dispatched = Counter("frontier_dispatch_total", "Dispatch requests", ["result"])
ingest_reports = Counter("ingest_reports_total", "Scrape reports applied to the graph", ["success"])
graph_exports = Counter("graph_export_total", "Graph export runs", ["status"])

metrics_app = make_asgi_app()


class MetricsMiddleware(BaseHTTPMiddleware):
    """Record Prometheus metrics for each request."""

    async def dispatch(self, request: Request, call_next):
        """Measure latency and increment counters for ``request``."""
        start = time.perf_counter()
        response = await call_next(request)
        duration = (time.perf_counter() - start) * 1000
        request_count.labels(request.method, request.url.path).inc()
        latency_ms.observe(duration)
        if response.status_code >= 500:
            error_count.labels(request.url.path).inc()
        return response

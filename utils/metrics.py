"""
Prometheus metrics: HTTP request counters/histograms, database query
counters/histograms, and the process collectors, all on one registry.
"""

import time
import logging
from typing import Callable

from prometheus_client import (
    CollectorRegistry,
    Counter,
    Histogram,
    GCCollector,
    PlatformCollector,
    ProcessCollector,
    generate_latest,
)
from sqlalchemy import event
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger(__name__)

# Exposition format served by /api/metrics
METRICS_CONTENT_TYPE = "text/plain; version=0.0.4; charset=utf-8"

registry = CollectorRegistry()
ProcessCollector(registry=registry)
PlatformCollector(registry=registry)
GCCollector(registry=registry)

http_request_duration = Histogram(
    "http_request_duration_seconds",
    "Duration of HTTP requests in seconds",
    ["method", "route", "status"],
    buckets=[0.05, 0.1, 0.25, 0.5, 1, 2, 5],
    registry=registry,
)

http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "route", "status"],
    registry=registry,
)

http_requests_errors_total = Counter(
    "http_requests_errors_total",
    "Total HTTP error responses",
    ["method", "route", "status"],
    registry=registry,
)

db_query_duration = Histogram(
    "db_query_duration_seconds",
    "Duration of database queries in seconds",
    ["statement"],
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1],
    registry=registry,
)

db_queries_total = Counter(
    "db_queries_total",
    "Total number of database queries",
    ["statement"],
    registry=registry,
)


def record_http_request(method: str, route: str, status: int, duration: float) -> None:
    labels = {"method": method, "route": route, "status": str(status)}
    http_requests_total.labels(**labels).inc()
    http_request_duration.labels(**labels).observe(duration)
    if status >= 400:
        http_requests_errors_total.labels(**labels).inc()


def statement_label(statement: str) -> str:
    """First SQL keyword, upper-cased ('SELECT', 'INSERT', ...)."""
    words = (statement or "").split(None, 1)
    return words[0].upper() if words else "UNKNOWN"


def instrument_engine(async_engine) -> None:
    """Count and time every statement executed through the engine."""
    sync_engine = async_engine.sync_engine

    @event.listens_for(sync_engine, "before_cursor_execute")
    def _before_cursor_execute(conn, cursor, statement, parameters, context, executemany):
        conn.info.setdefault("query_start_time", []).append(time.perf_counter())

    @event.listens_for(sync_engine, "after_cursor_execute")
    def _after_cursor_execute(conn, cursor, statement, parameters, context, executemany):
        starts = conn.info.get("query_start_time")
        if not starts:
            return
        elapsed = time.perf_counter() - starts.pop()
        label = statement_label(statement)
        db_queries_total.labels(statement=label).inc()
        db_query_duration.labels(statement=label).observe(elapsed)


def metrics_text() -> bytes:
    return generate_latest(registry)


def _route_label(request: Request) -> str:
    route = request.scope.get("route")
    return getattr(route, "path", None) or "unmatched"


class MetricsMiddleware(BaseHTTPMiddleware):
    """Record count, error count and latency for every request."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        start = time.perf_counter()
        status = 500
        try:
            response = await call_next(request)
            status = response.status_code
            return response
        finally:
            record_http_request(request.method, _route_label(request), status, time.perf_counter() - start)

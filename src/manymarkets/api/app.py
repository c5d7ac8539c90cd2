"""FastAPI app factory with lifespan, middleware, and exception handling.

This module provides:
- create_app(): Factory that creates the FastAPI app with every router mounted
- lifespan: Logging setup and DB init (skipped when TESTING=1)
- global_exception_handler: Production-safe error handling

Contract:
- CORS only enabled when CORS_ALLOWED_ORIGINS is set
- Rate limiter is attached to app.state
- Exception handler returns error_id for correlation
"""

import logging
import os
import re
import time
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse, Response
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from starlette.middleware.base import BaseHTTPMiddleware

from ..config import ensure_secrets, get_cors_origins, is_production
from ..database import init_db
from ..logging_config import correlation_id_var, setup_structured_logging
from ..version import __version__
from .deps import limiter

logger = logging.getLogger(__name__)

REQUEST_COUNT = Counter(
    "manymarkets_http_requests_total",
    "Total HTTP requests processed by the API",
    ["method", "endpoint", "status"],
)

REQUEST_LATENCY = Histogram(
    "manymarkets_http_request_duration_seconds",
    "HTTP request latency in seconds",
    ["method", "endpoint"],
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
)

_UUID_SEGMENT = re.compile(
    r"[0-9a-f]{8}-?[0-9a-f]{4}-?[0-9a-f]{4}-?[0-9a-f]{4}-?[0-9a-f]{12}", re.IGNORECASE
)
_NUMERIC_SEGMENT = re.compile(r"/\d+(?=/|$)")


async def correlation_id_middleware(request: Request, call_next):
    """Attach a correlation ID to the request context and echo it back.

    Uses the caller's X-Correlation-ID header when present, otherwise a new UUID.
    """
    correlation_id = request.headers.get("X-Correlation-ID", str(uuid.uuid4()))
    correlation_id_var.set(correlation_id)

    response = await call_next(request)
    response.headers["X-Correlation-ID"] = correlation_id
    return response


async def metrics_middleware(request: Request, call_next):
    """Record Prometheus request count and latency by method and endpoint."""
    if request.url.path == "/metrics":
        return await call_next(request)

    endpoint = _normalize_endpoint(request.url.path)

    start_time = time.time()
    response = await call_next(request)
    duration = time.time() - start_time

    REQUEST_COUNT.labels(
        method=request.method,
        endpoint=endpoint,
        status=str(response.status_code),
    ).inc()
    REQUEST_LATENCY.labels(method=request.method, endpoint=endpoint).observe(duration)

    return response


def _normalize_endpoint(path: str) -> str:
    """Collapse UUIDs and numeric IDs, e.g. /api/sessions/<uuid>/messages -> /api/sessions/{id}/messages"""
    path = _UUID_SEGMENT.sub("{id}", path)
    return _NUMERIC_SEGMENT.sub("/{id}", path)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers to all responses."""

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)

        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["X-XSS-Protection"] = "1; mode=block"
        # Summary exports are standalone HTML with inline styles
        response.headers["Content-Security-Policy"] = (
            "default-src 'self'; "
            "script-src 'self' 'unsafe-inline'; "
            "style-src 'self' 'unsafe-inline'; "
            "img-src 'self' data: https:; "
            "font-src 'self'; "
            "connect-src 'self'; "
            "frame-ancestors 'none';"
        )
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        response.headers["Permissions-Policy"] = "geolocation=(), microphone=(), camera=()"

        return response


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Configure logging and create tables (skipped in TESTING mode)."""
    ensure_secrets()
    if os.getenv("TESTING") != "1":
        setup_structured_logging()
        init_db()
    else:
        logger.info("[STARTUP] Skipping database init in TESTING mode")

    logger.info("[STARTUP] ManyMarkets API %s ready for traffic", __version__)
    yield
    logger.info("[SHUTDOWN] Application shutdown complete")


async def global_exception_handler(request: Request, exc: Exception):
    """Log the failure and return an opaque error_id.

    Outside production the exception type is included to ease debugging;
    tracebacks only ever go to the server log.
    """
    error_id = str(uuid.uuid4())[:8]
    logger.error(
        f"Unhandled exception on {request.method} {request.url.path}: {exc}",
        exc_info=True,
        extra={"error_id": error_id},
    )

    content = {
        "detail": "Internal server error",
        "error_id": error_id,
        "message": "An unexpected error occurred. Reference this error_id when reporting issues.",
    }
    if not is_production():
        content["error_type"] = type(exc).__name__
        content["message"] = f"Check server logs for error_id={error_id}"

    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=content)


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Returns:
        Configured FastAPI application instance
    """
    app = FastAPI(
        title="ManyMarkets API",
        description="Niche research assistant, daily ideas and multi-provider subscription billing",
        version=__version__,
        lifespan=lifespan,
    )

    @app.middleware("http")
    async def add_correlation_id_middleware(request: Request, call_next):
        return await correlation_id_middleware(request, call_next)

    @app.middleware("http")
    async def add_metrics_middleware(request: Request, call_next):
        return await metrics_middleware(request, call_next)

    @app.get("/metrics", include_in_schema=False)
    async def prometheus_metrics():
        """Expose Prometheus metrics in text format."""
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    # Default: deny all cross-origin requests
    cors_origins = get_cors_origins()
    if cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=cors_origins,
            allow_credentials=True,
            allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
            allow_headers=["*"],
            max_age=600,
        )

    # Must be added after CORS so preflight responses still work
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(GZipMiddleware, minimum_size=1000)

    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    app.add_exception_handler(Exception, global_exception_handler)

    from ..auth import router as auth_router
    from ..billing import router as billing_router
    from ..billing import webhooks_router
    from ..chat import router as chat_router
    from ..emails import router as email_router
    from ..ideas import cron_router
    from ..ideas import router as ideas_router
    from ..products import builder_router
    from ..products import router as products_router
    from ..referrals import router as referrals_router
    from ..research import router as sessions_router
    from ..research import score_router
    from ..waitlist import router as waitlist_router
    from .routes.admin import router as admin_router
    from .routes.health import router as health_router

    for router in (
        auth_router,
        billing_router,
        webhooks_router,
        referrals_router,
        sessions_router,
        score_router,
        products_router,
        builder_router,
        chat_router,
        ideas_router,
        cron_router,
        waitlist_router,
        email_router,
        admin_router,
        health_router,
    ):
        app.include_router(router)

    return app

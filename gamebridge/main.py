"""
Main Application - FastAPI application setup.
"""

import asyncio
import time
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, PlainTextResponse
from prometheus_client import generate_latest
from starlette.routing import Match

from gamebridge.api.dependencies import build_ledger
from gamebridge.api.routes import router
from gamebridge.config import settings
from gamebridge.db.migration_runner import run_migrations
from gamebridge.db.session import close_engines
from gamebridge.models.api import HealthResponse
from gamebridge.observability import get_logger, metrics, setup_logging, setup_tracing
from gamebridge.observability.tracing import instrument_fastapi

# Setup logging before anything else
setup_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """
    Application lifespan manager.

    Applies migrations, builds the ledger once, and disposes the database
    engine on shutdown.
    """
    logger.info(
        "application_starting",
        service=settings.api_title,
        version=settings.api_version,
        record_store=settings.record_store,
        tracing_enabled=settings.tracing_enabled,
        metrics_enabled=settings.metrics_enabled,
    )

    if settings.record_store == "postgres" and settings.run_migrations_on_startup:
        await asyncio.to_thread(run_migrations)

    app.state.ledger = build_ledger(settings)

    yield

    logger.info("application_shutting_down")
    await close_engines()
    logger.info("database_engines_closed")


app = FastAPI(
    title=settings.api_title,
    version=settings.api_version,
    description=settings.api_description,
    lifespan=lifespan,
)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Log validation errors without echoing request bodies (they carry receipts)."""
    errors = [
        {"type": error.get("type"), "loc": error.get("loc"), "msg": error.get("msg")}
        for error in exc.errors()
    ]
    logger.warning(
        "validation_error",
        path=request.url.path,
        method=request.method,
        errors=errors,
    )
    return JSONResponse(status_code=422, content={"detail": errors})


setup_tracing()
instrument_fastapi(app)


@app.middleware("http")
async def logging_middleware(
    request: Request, call_next: Callable[[Request], Awaitable[Response]]
) -> Response:
    """Log all HTTP requests with timing."""
    start_time = time.time()
    request_id = request.headers.get("X-Request-ID", "unknown")
    method = request.method
    endpoint = _route_template(request)

    logger.info("request_started", method=method, path=request.url.path, request_id=request_id)

    # Track in-progress requests
    if settings.metrics_enabled:
        metrics.http_requests_in_progress.labels(endpoint=endpoint, method=method).inc()

    try:
        response = await call_next(request)
    except Exception as e:
        duration = time.time() - start_time
        if settings.metrics_enabled:
            metrics.record_http_request(endpoint, method, 500, duration)
            metrics.record_error(type(e).__name__, "http_request")
        logger.error(
            "request_failed",
            method=method,
            path=request.url.path,
            error=str(e),
            duration_seconds=duration,
            request_id=request_id,
            exc_info=True,
        )
        raise
    finally:
        if settings.metrics_enabled:
            metrics.http_requests_in_progress.labels(endpoint=endpoint, method=method).dec()

    duration = time.time() - start_time
    if settings.metrics_enabled:
        metrics.record_http_request(endpoint, method, response.status_code, duration)

    logger.info(
        "request_completed",
        method=method,
        path=request.url.path,
        status_code=response.status_code,
        duration_seconds=duration,
        request_id=request_id,
    )
    return response


def _route_template(request: Request) -> str:
    """Path template of the matching route, so user ids stay out of metric labels."""
    for route in request.app.router.routes:
        match, _ = route.matches(request.scope)
        if match == Match.FULL:
            return getattr(route, "path", "unmatched")
    return "unmatched"


app.include_router(router)


@app.get("/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    """Liveness probe."""
    return HealthResponse(
        status="ok",
        record_store=settings.record_store,
        version=settings.api_version,
    )


@app.get("/metrics")
async def metrics_endpoint() -> Response:
    """
    Prometheus metrics endpoint.

    Returns metrics in Prometheus text format.
    """
    return PlainTextResponse(generate_latest())


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "gamebridge.main:app",
        host=settings.api_host,
        port=settings.api_port,
        log_level=settings.log_level.lower(),
    )

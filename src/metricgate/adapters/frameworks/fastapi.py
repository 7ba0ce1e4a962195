"""FastAPI adapter exposing the metrics ingestion endpoint."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import UTC, datetime

from fastapi import APIRouter, FastAPI, Request
from fastapi.exception_handlers import http_exception_handler
from fastapi.responses import JSONResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException

from metricgate.adapters.collectors.http import HttpCollector
from metricgate.adapters.frameworks.asgi import RequestLoggingMiddleware
from metricgate.adapters.frameworks.responses import (
    error_from_exception,
    error_response,
    success_response,
)
from metricgate.adapters.storage.sqlite_records import SQLiteMetricRecordStorage
from metricgate.core.config import AppConfig
from metricgate.core.errors import (
    INTERNAL_ERROR,
    INVALID_PARAMETERS,
    MetricGateError,
)
from metricgate.core.intake import MetricsIntake
from metricgate.core.ports import CollectorPort, MetricRecordStoragePort

logger = logging.getLogger(__name__)

METRICS_PATH = "/api/v1/metrics"


def create_metrics_router(intake: MetricsIntake) -> APIRouter:
    """Create a router with the POST /api/v1/metrics endpoint.

    Args:
        intake: Pipeline orchestrator handling each batch.

    Returns:
        APIRouter with the ingestion endpoint configured.
    """
    router = APIRouter()

    @router.post(METRICS_PATH)
    async def post_metrics(request: Request) -> JSONResponse:
        """Deduplicate, store and forward a batch of metrics."""
        try:
            payload = await request.json()
        except ValueError:
            return error_response(INVALID_PARAMETERS, "Request body must be valid JSON")

        try:
            result = await intake.ingest(payload)
        except MetricGateError as exc:
            if exc.status_code >= 500:
                logger.exception("Metrics endpoint error")
            return error_from_exception(exc)
        except Exception as exc:
            logger.exception("Metrics endpoint error")
            return error_response(
                INTERNAL_ERROR, str(exc) or "Failed to process metrics", 500
            )
        return success_response(result.to_dict())

    return router


def create_app(
    config: AppConfig | None = None,
    storage: MetricRecordStoragePort | None = None,
    collector: CollectorPort | None = None,
) -> FastAPI:
    """Build the FastAPI application.

    Args:
        config: Application configuration (default: AppConfig()).
        storage: Record storage (default: SQLite at config.database_path).
        collector: External collector (default: HttpCollector for the
            configured URL).
    """
    config = config or AppConfig()
    if storage is None:
        storage = SQLiteMetricRecordStorage(config.database_path)
    if collector is None:
        collector = HttpCollector(
            config.metrics.external_api_url,
            timeout=config.metrics.forward_timeout_seconds,
            user_agent=config.metrics.user_agent,
        )
    intake = MetricsIntake.from_config(config.metrics, storage, collector)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        await storage.close()

    app = FastAPI(title="metricgate", lifespan=lifespan)
    app.state.config = config
    app.state.storage = storage
    app.state.intake = intake
    app.include_router(create_metrics_router(intake))

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {
            "status": "ok",
            "timestamp": datetime.now(UTC).isoformat(),
            "environment": config.server.environment,
        }

    @app.exception_handler(StarletteHTTPException)
    async def not_found(request: Request, exc: StarletteHTTPException) -> Response:
        if exc.status_code != 404:
            return await http_exception_handler(request, exc)
        return JSONResponse(
            {
                "error": "Not found",
                "message": f"Route {request.method} {request.url.path} not found",
            },
            status_code=404,
        )

    if config.logging.request_logging:
        app.add_middleware(RequestLoggingMiddleware)

    return app

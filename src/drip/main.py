from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from asgi_correlation_id import CorrelationIdMiddleware, correlation_id
from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse
from prometheus_fastapi_instrumentator import Instrumentator
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from starlette.middleware.base import RequestResponseEndpoint

from src.drip.api.v1.router import api_router
from src.drip.core.config import get_settings
from src.drip.core.db import dispose_engine, get_session
from src.drip.core.exceptions import setup_exception_handlers
from src.drip.core.logging import (
    bind_request_context,
    clear_request_context,
    get_logger,
    setup_logging,
)
from src.drip.engine import AutomationEngine
from src.drip.temporal.client import close_temporal_client, get_temporal_client

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    """Application lifespan - start and stop the automation engine."""
    settings = get_settings()
    setup_logging(settings.debug)
    logger.info(f"Starting {settings.app_name}")

    if app.state.engine is None:
        app.state.engine = AutomationEngine(settings, app.state.session_factory)
    if settings.automation_engine_enabled:
        await app.state.engine.start()

    yield

    logger.info("Shutdown initiated, draining automation engine...")
    drained = await app.state.engine.stop(settings.shutdown_grace_period)
    if not drained:
        logger.warning(
            f"Shutdown timeout after {settings.shutdown_grace_period}s - "
            "unfinished executions stay RUNNING for the watchdog"
        )

    logger.info("Closing connections...")
    await close_temporal_client()
    await dispose_engine()
    logger.info("Shutdown complete")


OPENAPI_TAGS = [
    {"name": "automation", "description": "Drip automation events and executions"},
]


def create_app(
    engine: AutomationEngine | None = None,
    session_factory: async_sessionmaker[AsyncSession] | None = None,
) -> FastAPI:
    """Build the API application.

    Args:
        engine: Pre-built engine (tests). Created in the lifespan otherwise.
        session_factory: Session factory override for request-scoped lookups.
    """
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        description="Drip automation scheduling and execution engine",
        version="0.1.0",
        openapi_tags=OPENAPI_TAGS,
        lifespan=lifespan,
    )
    app.state.engine = engine
    app.state.session_factory = session_factory

    setup_exception_handlers(app)

    # Add correlation ID middleware first (outermost middleware)
    app.add_middleware(CorrelationIdMiddleware)

    @app.middleware("http")
    async def logging_context_middleware(
        request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        """Bind request_id to log context for all requests."""
        clear_request_context()
        bind_request_context(correlation_id.get())
        try:
            return await call_next(request)
        finally:
            clear_request_context()

    app.include_router(api_router)

    Instrumentator().instrument(app).expose(app, endpoint="/metrics")

    @app.get("/health")
    async def health() -> JSONResponse:
        """Health check covering the database and the automation engine."""
        health_status: dict[str, Any] = {
            "status": "healthy",
            "database": "unknown",
            "engine": "stopped",
        }

        try:
            async with get_session(app.state.session_factory) as session:
                await session.execute(text("SELECT 1"))
            health_status["database"] = "healthy"
        except Exception as e:
            health_status["database"] = f"unhealthy: {str(e)}"
            health_status["status"] = "unhealthy"

        engine: AutomationEngine | None = app.state.engine
        if engine is not None:
            if engine.dispatcher.is_closed:
                health_status["engine"] = "draining"
            elif any(t.is_running for t in engine.tasks):
                health_status["engine"] = "running"
            else:
                health_status["engine"] = "idle"
            health_status["in_flight_executions"] = engine.dispatcher.in_flight_count
            health_status["periodic_tasks"] = {t.name: t.is_running for t in engine.tasks}

        # Temporal only matters when it runs maintenance; down is "degraded"
        if settings.automation_maintenance_backend == "temporal":
            try:
                await get_temporal_client()
                health_status["temporal"] = "healthy"
            except Exception as e:
                health_status["temporal"] = f"unhealthy: {str(e)}"
                if health_status["status"] == "healthy":
                    health_status["status"] = "degraded"

        status_code = 200 if health_status["status"] == "healthy" else 503
        return JSONResponse(content=health_status, status_code=status_code)

    return app


app = create_app()

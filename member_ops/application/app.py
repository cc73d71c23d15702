#!/usr/bin/env python3
"""
FastAPI Application

Application factory and lifespan for the cache and monitoring layer.

Startup order:
    logging → backend selector (Redis or local) → cache service →
    request tracker → data store + watchdog → health aggregator

Every service lives on ``app.state`` and is reached by handlers through
``member_ops.application.api.dependencies``.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from member_ops.application.api.middleware import drain, setup_middleware
from member_ops.application.api.routes import monitoring_router
from member_ops.core.config.settings import Settings, get_settings
from member_ops.core.exceptions import AuthorizationError, DatabaseUnavailableError, MemberOpsError
from member_ops.core.logging.logger import get_logger, get_request_id, setup_logging
from member_ops.infrastructure.cache.backend_selector import BackendSelector
from member_ops.infrastructure.cache.cache_service import CacheService
from member_ops.infrastructure.database.data_store import DataStore, SQLAlchemyDataStore
from member_ops.infrastructure.monitoring.database_monitor import DatabaseHealthMonitor
from member_ops.infrastructure.monitoring.health_aggregator import HealthAggregator
from member_ops.infrastructure.monitoring.request_tracker import RequestTracker

logger = get_logger(__name__)


def create_app(
    settings: Settings | None = None,
    data_store: DataStore | None = None,
    selector: BackendSelector | None = None,
) -> FastAPI:
    """
    Build the application.

    Args:
        settings: Configuration; defaults to the process settings
        data_store: Data store collaborator; built from DATABASE_URL when omitted
        selector: Cache backend selector; built from settings when omitted
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        setup_logging(log_level=settings.logging.LOG_LEVEL, log_format=settings.logging.LOG_FORMAT)

        logger.info(
            "Starting Member Ops",
            environment=settings.app.ENVIRONMENT,
            version=settings.app.APP_VERSION,
        )

        backend_selector = selector or BackendSelector(settings)
        store = data_store
        if store is None and settings.database.DATABASE_URL:
            store = SQLAlchemyDataStore.from_url(settings.database.DATABASE_URL)
        db_monitor = DatabaseHealthMonitor(store, settings) if store is not None else None

        try:
            active = await backend_selector.initialize()
            logger.info("Cache ready", backend=active.kind.value)

            cache_service = CacheService(backend_selector, settings)
            tracker = RequestTracker(
                slow_threshold_ms=settings.monitoring.SLOW_REQUEST_THRESHOLD_MS,
                capacity=settings.monitoring.SLOW_REQUEST_BUFFER_SIZE,
            )
            if db_monitor is not None:
                db_monitor.start()

            app.state.cache_service = cache_service
            app.state.request_tracker = tracker
            app.state.db_monitor = db_monitor
            app.state.health_aggregator = HealthAggregator(
                cache_service, store, tracker, settings, db_monitor=db_monitor
            )

            logger.info("Application startup complete")

            yield

        finally:
            logger.info("Shutting down application")

            await drain()
            if db_monitor is not None:
                await db_monitor.shutdown()
            await backend_selector.shutdown()
            # Only dispose engines this app created
            if data_store is None and store is not None:
                await store.dispose()

            logger.info("Application shutdown complete")

    app = FastAPI(
        title=settings.app.APP_NAME,
        version=settings.app.APP_VERSION,
        lifespan=lifespan,
    )
    app.state.settings = settings

    setup_middleware(app, settings)

    @app.exception_handler(AuthorizationError)
    async def authorization_error_handler(request: Request, exc: AuthorizationError):
        logger.warning(
            "Operational endpoint refused",
            path=request.url.path,
            reason=exc.message,
        )
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message})

    @app.exception_handler(DatabaseUnavailableError)
    async def database_unavailable_handler(request: Request, exc: DatabaseUnavailableError):
        logger.warning("Request refused, database unhealthy", path=request.url.path)
        return JSONResponse(
            status_code=exc.status_code,
            content={"success": False, "message": exc.message, "error": exc.error_code},
        )

    @app.exception_handler(MemberOpsError)
    async def member_ops_error_handler(request: Request, exc: MemberOpsError):
        logger.error(f"Member Ops error: {exc.message}", error_type=type(exc).__name__)
        if exc.request_id is None:
            exc.request_id = get_request_id()
        return JSONResponse(status_code=500, content=exc.to_dict())

    app.include_router(monitoring_router)

    return app


# ============================================================================
# Main Entry Point
# ============================================================================


def main() -> None:
    """Serve the application with uvicorn using API_HOST / API_PORT."""
    import uvicorn

    settings = get_settings()

    uvicorn.run(
        "member_ops.application.app:create_app",
        factory=True,
        host=settings.app.API_HOST,
        port=settings.app.API_PORT,
        reload=settings.app.ENVIRONMENT == "development",
        log_level=settings.logging.LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    main()

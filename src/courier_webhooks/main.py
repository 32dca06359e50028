"""
Module: main.py
Description: FastAPI application entry point for the courier webhook service.

The lifespan hook is the composition root: it builds the store, status
sink, processors and queue from settings, loads persisted records and
re-arms pending retries before the first request is served.
"""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from courier_webhooks.config.settings import Settings, settings as default_settings
from courier_webhooks.delivery.queue import WebhookQueue
from courier_webhooks.delivery.retry import RetryPolicy
from courier_webhooks.delivery.sink import build_status_sink
from courier_webhooks.handlers.webhooks import router as webhooks_router
from courier_webhooks.processors.factory import WebhookProcessorFactory
from courier_webhooks.storage.backends import build_backend
from courier_webhooks.storage.webhook_store import WebhookStore
from courier_webhooks.utils.logger import configure_logging, get_logger
from courier_webhooks.utils.metrics import MetricsClient

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the webhook pipeline on startup and stop the queue on shutdown."""
    config: Settings = app.state.settings
    configure_logging(config.log_level)

    logger.info(
        "Starting courier webhook service",
        version=config.app_version,
        stage=config.stage,
        storage_backend=config.webhook_storage_backend
    )

    store = WebhookStore(build_backend(config), max_attempts=config.max_processing_attempts)
    store.load()

    sink = build_status_sink(config.status_sink_url, config.status_sink_timeout)
    factory = WebhookProcessorFactory.from_settings(config, store, sink)

    metrics = None
    if config.metrics_enabled:
        metrics = MetricsClient(
            namespace=config.metrics_namespace,
            region_name=config.aws_region,
            stage=config.stage
        )

    queue = WebhookQueue(
        store,
        factory,
        RetryPolicy(config.max_processing_attempts, config.retry_intervals_seconds),
        restart_delay=config.restart_retry_delay_seconds,
        metrics=metrics
    )

    app.state.store = store
    app.state.factory = factory
    app.state.queue = queue

    await queue.start()
    try:
        yield
    finally:
        logger.info("Shutting down courier webhook service")
        await queue.stop()


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Create the FastAPI application.

    Args:
        settings: Settings to build the pipeline from (defaults to the
            environment-loaded settings)
    """
    config = settings or default_settings

    app = FastAPI(
        title=config.app_name,
        description="Courier delivery webhook intake, processing and retry service",
        version=config.app_version,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan
    )
    app.state.settings = config

    app.include_router(webhooks_router)

    @app.get("/health")
    async def health_check():
        """Basic liveness information."""
        logger.debug("Health check requested")

        return {
            "status": "ok",
            "message": "Courier webhook service is healthy",
            "version": config.app_version,
            "environment": config.stage
        }

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        """Log HTTP exceptions and return the structured error envelope."""
        logger.warning(
            "HTTP exception occurred",
            status_code=exc.status_code,
            detail=exc.detail,
            path=request.url.path,
            method=request.method
        )

        return JSONResponse(
            status_code=exc.status_code,
            content={
                "error": {
                    "code": exc.status_code,
                    "message": exc.detail,
                    "type": "http_exception"
                }
            }
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        """Log unexpected exceptions and return a generic 500 envelope."""
        logger.error(
            "Unhandled exception occurred",
            error=str(exc),
            error_type=type(exc).__name__,
            path=request.url.path,
            method=request.method
        )

        return JSONResponse(
            status_code=500,
            content={
                "error": {
                    "code": 500,
                    "message": "Internal server error",
                    "type": "internal_error"
                }
            }
        )

    return app


app = create_app()

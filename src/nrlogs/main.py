"""
Demo FastAPI application.

Exposes endpoints that trigger log calls on either the native ApiLogger or a
stdlib logger bridged through ApiLogHandler, so the whole pipeline can be
exercised over HTTP.

Run with ``uvicorn --factory nrlogs.main:create_app`` or ``python -m nrlogs.main``.
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Dict, Optional

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from prometheus_client import CollectorRegistry

from . import __version__
from .adapters.stdlib import StdlibSink
from .api import demo_router, metrics_router
from .config import Settings, get_settings
from .core.exceptions import NrLogsException
from .core.logger import ApiLogger
from .core.metrics import MetricsCollector

SINK_API = "api"
SINK_STDLIB = "stdlib"

STDLIB_LOGGER_NAME = "demo.stdlib"


def configure_logging(log_level: str = "INFO", cache_loggers: bool = True) -> None:
    """Configure structured logging for the application."""
    logging.basicConfig(
        format="%(message)s",
        level=getattr(logging, log_level.upper()),
    )

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=cache_loggers,
    )


def create_lifespan_handler(settings: Settings) -> Any:
    """Create a lifespan handler with access to settings."""
    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """
        FastAPI lifespan context manager.

        Starts both sinks and runs their final flush on shutdown.
        """
        logger = structlog.get_logger(__name__)
        logger.info("Starting nrlogs demo service", version=app.version)

        metrics = MetricsCollector(registry=CollectorRegistry())
        app.state.metrics = metrics

        api_logger = ApiLogger.from_settings(settings.shipper, metrics=metrics)
        stdlib_sink = StdlibSink.create(
            STDLIB_LOGGER_NAME,
            level=settings.shipper.level,
            license_key=settings.shipper.license_key,
            attributes=settings.stdlib_attributes,
            use_eu=settings.shipper.use_eu,
            debug=settings.shipper.debug,
            harvest=settings.shipper.harvest,
            interval_ms=settings.shipper.interval_ms,
            endpoint=settings.shipper.endpoint,
            timeout_seconds=settings.shipper.timeout_seconds,
            metrics=metrics,
        )

        app.state.api_logger = api_logger
        app.state.sinks = {SINK_API: api_logger, SINK_STDLIB: stdlib_sink}
        app.state.sink_kind = SINK_API

        api_logger.start()
        stdlib_sink.api_logger.start()

        try:
            logger.info("nrlogs demo service started")
            yield
        finally:
            logger.info("Shutting down nrlogs demo service")

            await api_logger.shutdown()
            await stdlib_sink.api_logger.shutdown()
            stdlib_sink.logger.removeHandler(stdlib_sink.handler)

            logger.info("nrlogs demo service shutdown complete")

    return lifespan


def create_app(settings: Optional[Settings] = None, configure: bool = True) -> FastAPI:
    """
    Create and configure the demo application.

    Args:
        settings: Explicit settings; defaults to the cached environment settings
        configure: Set up structlog/stdlib logging for the process
    """
    settings = settings or get_settings()

    if configure:
        configure_logging(settings.log_level)

    app = FastAPI(
        title="nrlogs demo",
        description="Triggers log calls that are shipped to the New Relic Log API",
        version=__version__,
        lifespan=create_lifespan_handler(settings),
    )

    @app.exception_handler(NrLogsException)
    async def nrlogs_exception_handler(request: Request, exc: NrLogsException) -> JSONResponse:
        """Handle nrlogs exceptions."""
        logger = structlog.get_logger(__name__)
        logger.warning(
            "nrlogs exception occurred",
            error=str(exc),
            status_code=exc.status_code,
            path=request.url.path,
        )
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "error": exc.error_code,
                "message": str(exc),
                "details": exc.details,
            },
        )

    # /metrics must match before the /{level} catch-all
    app.include_router(metrics_router, tags=["metrics"])
    app.include_router(demo_router, tags=["demo"])

    @app.get("/", include_in_schema=False)
    async def root() -> Dict[str, str]:
        """Root endpoint with service information."""
        return {
            "service": "nrlogs demo",
            "version": app.version,
            "docs": "/docs",
        }

    return app


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        create_app(settings),
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )

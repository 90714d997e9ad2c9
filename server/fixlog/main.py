"""fixlog server main entry point.

This is the only file that knows about concrete implementations.
It wires together the core, storage, and API layers.

Run with ``uvicorn --factory fixlog.main:create_app`` or ``fixlog-server``.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from fixlog.api.export import router as export_router
from fixlog.api.ingest import router as ingest_router
from fixlog.api.monitoring import VERSION
from fixlog.api.monitoring import router as monitoring_router
from fixlog.config import AppConfig, load_config
from fixlog.core.clock import Clock, SystemClock
from fixlog.core.errors import FixlogError
from fixlog.core.processor import FixProcessor
from fixlog.core.stats import ServerStats

log = structlog.get_logger()


def _setup_logging(config: AppConfig) -> None:
    """Configure structlog based on the logging config."""
    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    if config.logging.format == "json":
        processors.append(structlog.processors.format_exc_info)
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelName(config.logging.level.upper()),
        ),
    )


async def _fixlog_error_handler(request: Request, exc: FixlogError) -> JSONResponse:
    log.info("request_failed", path=request.url.path,
             status=exc.status_code, error=exc.message)
    return JSONResponse(content=exc.to_dict(), status_code=exc.status_code)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup and shutdown."""
    config: AppConfig = app.state.config
    log.info("server_started",
             env=config.server.env,
             storage_dir=config.storage.base_dir,
             retention_days=config.ingest.retention_days,
             recent_keys_max=config.ingest.recent_keys_max)
    yield
    log.info("server_stopped")


def create_app(config: AppConfig | None = None, clock: Clock | None = None) -> FastAPI:
    """Build the application with its components attached to ``app.state``."""
    if config is None:
        config = load_config()
    if clock is None:
        clock = SystemClock()
    _setup_logging(config)

    stats = ServerStats(active_window_seconds=config.stats.active_window_seconds)
    processor = FixProcessor(config=config, clock=clock, stats=stats)

    app = FastAPI(
        title="fixlog",
        description="GPS fix ingestion and route export",
        version=VERSION,
        lifespan=lifespan,
    )
    app.state.config = config
    app.state.clock = clock
    app.state.stats = stats
    app.state.processor = processor

    app.add_exception_handler(FixlogError, _fixlog_error_handler)
    app.include_router(ingest_router)
    app.include_router(export_router)
    app.include_router(monitoring_router)
    return app


def run() -> None:
    import uvicorn

    config = load_config()
    uvicorn.run(create_app(config), host=config.server.host, port=config.server.port)

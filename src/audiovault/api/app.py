"""FastAPI application factory for audiovault.

Creates the application with:
- Chat audio upload/download/delete endpoints (/api/chat/audio)
- Health endpoints
- Lifecycle management for the storage handle and the orphan sweep
- Consistent JSON error bodies
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, cast

from fastapi import FastAPI
from sqlalchemy.ext.asyncio import AsyncEngine
from starlette.types import ExceptionHandler

from audiovault.api.errors import (
    ApiError,
    api_exception_handler,
    generic_exception_handler,
    store_exception_handler,
)
from audiovault.api.middleware import CorrelationMiddleware
from audiovault.api.routers import audio, health
from audiovault.config import Settings, settings
from audiovault.errors import AudioStoreError
from audiovault.observability import configure_logging
from audiovault.storage.chunked import ChunkedBlobStore
from audiovault.storage.reconcile import OrphanSweeper

logger = logging.getLogger(__name__)


def create_app(
    config: Settings | None = None,
    *,
    engine: AsyncEngine | None = None,
    configure_logs: bool = True,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        config: Settings to use (defaults to the process settings)
        engine: Existing engine to bind instead of config.database_url
        configure_logs: Install the log handlers on startup
    """
    cfg = config or settings
    store = ChunkedBlobStore()
    sweeper = OrphanSweeper(store, grace_seconds=cfg.orphan_grace_seconds)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        """Bind the store on startup; stop the sweep and close on shutdown."""
        if configure_logs:
            configure_logging(json_format=cfg.log_json, level=cfg.log_level)

        logger.info(f"Starting {cfg.app_name} ({cfg.env})")
        handle = await store.initialize(
            engine if engine is not None else cfg.database_url,
            chunk_size=cfg.chunk_size,
        )
        if cfg.sweep_interval_seconds > 0:
            sweeper.start(cfg.sweep_interval_seconds)
        logger.info(f"{cfg.app_name} startup complete (chunk size {handle.chunk_size})")

        yield

        logger.info(f"Shutting down {cfg.app_name}")
        await sweeper.stop()
        await handle.close()
        logger.info(f"{cfg.app_name} shutdown complete")

    app = FastAPI(
        title="audiovault",
        description="Chunked storage and streaming for chat voice-message audio",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.audio_store = store
    app.state.sweeper = sweeper
    app.state.api_url = cfg.api_url
    app.state.max_upload_bytes = cfg.max_upload_bytes

    app.add_middleware(CorrelationMiddleware)

    app.add_exception_handler(ApiError, cast(ExceptionHandler, api_exception_handler))
    app.add_exception_handler(AudioStoreError, cast(ExceptionHandler, store_exception_handler))
    app.add_exception_handler(Exception, generic_exception_handler)

    app.include_router(audio.router)
    app.include_router(health.router)

    return app

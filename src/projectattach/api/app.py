"""FastAPI application setup."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from projectattach.api.dependencies import (
    close_event_manager,
    close_registry,
    init_event_manager,
    init_registry,
)
from projectattach.api.models import APIResponse
from projectattach.api.routes import batches, events
from projectattach.attach import AttachError, BatchInProgressError, BatchNotFoundError
from projectattach.config import AttachSettings
from projectattach.logging import setup_logging

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator
    from pathlib import Path

    from projectattach.attach import SessionRegistry

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    # Startup
    event_manager = init_event_manager()
    init_registry(
        registry=app.state.registry,
        settings=app.state.settings,
        event_manager=event_manager,
    )
    logger.info("ProjectAttach API started")

    yield
    # Shutdown
    close_registry()
    close_event_manager()


def create_app(
    registry: SessionRegistry | None = None,
    settings: AttachSettings | None = None,
    log_dir: str | Path | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        registry: Registry holding the batches to expose. The host registers
            batches on it; a new empty one is created on startup if None.
        settings: Attach settings for a newly created registry. Read from
            the environment if None.
        log_dir: When set, write rotating projectattach logs there. The host's
            logging setup is left alone if None.
    """
    if log_dir is not None:
        setup_logging(log_dir=log_dir)

    app = FastAPI(
        title="ProjectAttach API",
        description="REST API for attaching selected projects in batches",
        version="0.1.0",
        lifespan=lifespan,
    )

    # Store config for lifespan manager
    app.state.registry = registry
    app.state.settings = settings if settings is not None else AttachSettings.from_env()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Exception handlers
    @app.exception_handler(BatchNotFoundError)
    async def batch_not_found_handler(_request: Request, _exc: BatchNotFoundError) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_404_NOT_FOUND,
            content=APIResponse[None](data=None, error="Batch not found").model_dump(),
        )

    @app.exception_handler(BatchInProgressError)
    async def batch_in_progress_handler(
        _request: Request, _exc: BatchInProgressError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_409_CONFLICT,
            content=APIResponse[None](data=None, error="Batch is running").model_dump(),
        )

    @app.exception_handler(AttachError)
    async def attach_error_handler(_request: Request, exc: AttachError) -> JSONResponse:
        logger.error("Unhandled attach error: %s", exc)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=APIResponse[None](data=None, error="Internal server error").model_dump(),
        )

    app.include_router(batches.router, prefix="/api/v1")
    app.include_router(events.router, prefix="/api/v1")

    return app

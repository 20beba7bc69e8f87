"""
FastAPI application factory and configuration.

This module creates the FastAPI application instance,
configures exception handlers and lifespan events.
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.responses import JSONResponse

from src.adapters.repository.selector import StoreSelector
from src.adapters.smtp.resend import create_email_sender
from src.api.v1 import router as v1_router
from src.config.log import setup_logging
from src.config.settings import get_settings
from src.domain.exceptions import BackendUnavailable

logger = logging.getLogger(__name__)

# OpenAPI tags for documentation grouping
tags_metadata = [
    {
        "name": "v1",
        "description": "Pre-launch registration API - Register, verify and count sign-ups",
    },
]


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    FastAPI lifespan context manager.

    Manages application startup and shutdown:
    - Builds the store selector and selects the active store on startup
    - Chooses the email sender (Resend or console)
    - Closes the store and email client on shutdown
    """
    settings = get_settings()
    setup_logging(settings.log_level)

    logger.info("Starting application...")

    selector = StoreSelector(settings)
    selector.get_storage()
    logger.info(f"Using {selector.storage_kind.value} storage")

    app.state.settings = settings
    app.state.store_selector = selector
    app.state.email_sender = create_email_sender(settings)

    logger.info("Application startup complete")

    yield

    # Shutdown
    logger.info("Shutting down application...")
    selector.close()
    close_sender = getattr(app.state.email_sender, "close", None)
    if close_sender is not None:
        close_sender()
    logger.info("Storage closed")


app = FastAPI(
    title="prelaunch-registration",
    description="Pre-launch email registration API with pluggable storage backends",
    version="0.1.0",
    openapi_tags=tags_metadata,
    lifespan=lifespan,
)

# Include v1 API routes
app.include_router(v1_router, prefix="/api")


@app.exception_handler(BackendUnavailable)
async def backend_unavailable_handler(request: Request, exc: BackendUnavailable) -> JSONResponse:
    """Storage failed mid-request; the client gets a retryable 503."""
    logger.error(f"Storage unavailable during {request.method} {request.url.path}: {exc}")
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": "Something went wrong. Please try again later."},
    )


@app.get("/health")
async def health_check(request: Request) -> dict:
    """
    Health check endpoint with storage validation.

    Returns 200 OK with the storage summary if the active store answers.
    Returns 503 if it does not.
    """
    selector: StoreSelector = request.app.state.store_selector
    if not selector.test_storage():
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Storage unavailable",
        )

    return {"status": "healthy", "storage": selector.describe()}

"""
FastAPI application factory and configuration.

This module creates the FastAPI application instance,
configures lifespan events and the health endpoint.
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from psycopg_pool import ConnectionPool

from src.adapters.repository.postgres import run_migrations
from src.api.dependencies import get_identity_provider
from src.api.models import ErrorResponse
from src.api.v1 import router as v1_router
from src.config.settings import get_settings
from src.domain.exceptions import ConfigurationError, DependencyUnavailable
from src.domain.ports import ErrorKind

logger = logging.getLogger(__name__)

# OpenAPI tags for documentation grouping
tags_metadata = [
    {
        "name": "v1",
        "description": "Password Reset API v1 - Issue, verify and redeem one-time codes",
    },
]


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    FastAPI lifespan context manager.

    Manages application startup and shutdown:
    - Refuses to start when provider credentials are missing
    - Creates database connection pool and outbound HTTP client on startup
    - Runs migrations on startup
    - Closes both on shutdown
    """
    settings = get_settings()

    logger.info("Starting application...")

    missing = settings.missing_credentials()
    if missing:
        logger.critical("Missing required configuration: %s", ", ".join(missing))
        raise ConfigurationError(f"Missing required configuration: {', '.join(missing)}")

    logger.info("Connecting to database...")

    # Create connection pool with explicit sizing
    pool = ConnectionPool(
        conninfo=settings.database_url,
        min_size=settings.pool_min_size,
        max_size=settings.pool_max_size,
        timeout=settings.pool_timeout_seconds,
    )

    # Run migrations
    logger.info("Running database migrations...")
    run_migrations(pool)

    # Store pool and HTTP client in app state for dependency injection
    app.state.pool = pool
    app.state.http_client = httpx.Client(timeout=settings.http_timeout_seconds)

    logger.info(
        "Application startup complete (email=%s, identity=%s)",
        settings.email_backend,
        settings.identity_backend,
    )

    yield

    # Shutdown
    logger.info("Shutting down application...")
    app.state.http_client.close()
    pool.close()
    logger.info("Database connection pool closed")


app = FastAPI(
    title="resetcode",
    description="Password Reset Verification Code API - One-time codes for the school portal",
    version="0.1.0",
    openapi_tags=tags_metadata,
    lifespan=lifespan,
)

# Include v1 API routes
app.include_router(v1_router, prefix="/v1")


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report malformed request bodies with the standard error envelope and 400."""
    first = exc.errors()[0] if exc.errors() else {}
    field = ".".join(str(part) for part in first.get("loc", ())[1:])
    message = f"Invalid {field}" if field else "Invalid request"
    body = ErrorResponse(error=ErrorKind.VALIDATION_ERROR.value, message=message)
    return JSONResponse(status_code=400, content=body.model_dump(by_alias=True))


@app.get("/health", response_model=None)
def health_check(request: Request) -> dict[str, str] | JSONResponse:
    """
    Health check endpoint with dependency validation.

    Returns 200 OK if the database and identity provider are reachable,
    503 naming the failing component otherwise.
    """
    pool = request.app.state.pool
    try:
        with pool.connection() as conn:
            conn.execute("SELECT 1")
    except Exception:
        logger.exception("Health check: database unreachable")
        return JSONResponse(
            status_code=503, content={"status": "unhealthy", "component": "database"}
        )

    try:
        get_identity_provider(request).ping()
    except DependencyUnavailable:
        return JSONResponse(
            status_code=503, content={"status": "unhealthy", "component": "identity_provider"}
        )

    return {"status": "healthy"}

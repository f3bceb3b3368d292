"""
FastAPI application factory and configuration.

This module creates the FastAPI application instance,
configures logging, routers and lifespan events.
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from psycopg_pool import ConnectionPool

from src.adapters.repository.fixtures import apply_fixture
from src.adapters.repository.postgres import PostgresUserStore, run_migrations
from src.api.v1 import dev_router, router as v1_router
from src.config.settings import get_settings

logger = logging.getLogger(__name__)

# OpenAPI tags for documentation grouping
tags_metadata = [
    {
        "name": "v1",
        "description": "Vehicle Pairing API v1 - OTP verification, pairing, unlock and agent reset",
    },
    {
        "name": "development",
        "description": "Code issuance and fixture endpoints, development environment only",
    },
]


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    FastAPI lifespan context manager.

    Manages application startup and shutdown:
    - Configures logging
    - Creates database connection pool on startup
    - Runs migrations on startup
    - Seeds sample users in development
    - Closes connection pool on shutdown
    """
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    logger.info("Starting application (environment=%s)...", settings.environment)
    logger.info("Connecting to database...")

    # Create connection pool with explicit sizing
    pool = ConnectionPool(
        conninfo=settings.database_url,
        min_size=settings.pool_min_size,
        max_size=settings.pool_max_size,
        open=True,
    )

    logger.info("Running database migrations...")
    run_migrations(pool)

    if settings.is_development:
        logger.info("Applying development fixtures...")
        apply_fixture(PostgresUserStore(pool))

    # Store pool in app state for dependency injection
    app.state.pool = pool

    logger.info("Application startup complete")

    yield

    # Shutdown
    logger.info("Shutting down application...")
    pool.close()
    logger.info("Database connection pool closed")


def create_app() -> FastAPI:
    """Build the application; development routes only in development."""
    application = FastAPI(
        title="vehicle-pairing",
        description="Vehicle Pairing API - OTP verification, device binding, pairing and unlock",
        version="0.1.0",
        openapi_tags=tags_metadata,
        lifespan=lifespan,
    )

    application.include_router(v1_router, prefix="/v1")
    if get_settings().is_development:
        application.include_router(dev_router, prefix="/v1")

    @application.get("/health")
    def health_check(request: Request) -> dict[str, str]:
        """
        Health check endpoint with database validation.

        Returns 200 OK if application and database are healthy.
        Raises exception if database connection fails.
        """
        pool = request.app.state.pool
        with pool.connection() as conn:
            conn.execute("SELECT 1")

        return {"status": "healthy"}

    return application


app = create_app()

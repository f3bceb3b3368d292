"""
Shared test fixtures and configuration.

This module provides pytest fixtures for:
- A controllable clock for expiry tests
- An in-memory store and pairing service
- A PostgreSQL connection pool for integration and adversarial tests
"""

from collections.abc import Generator
from datetime import datetime, timezone

import psycopg
import pytest
from psycopg_pool import ConnectionPool

from src.adapters.repository.memory import InMemoryUserStore
from src.adapters.repository.postgres import run_migrations
from src.config.settings import get_settings
from src.domain.pairing import PairingService
from tests.support import FrozenClock, make_user


@pytest.fixture
def clock() -> FrozenClock:
    """Clock frozen at a fixed UTC instant."""
    return FrozenClock(datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc))


@pytest.fixture
def store(clock: FrozenClock) -> InMemoryUserStore:
    """In-memory store holding user 555 with freshly issued codes."""
    return InMemoryUserStore([make_user(issued_at=clock())], clock=clock)


@pytest.fixture
def service(store: InMemoryUserStore, clock: FrozenClock) -> PairingService:
    """Pairing service over the in-memory store with default policy."""
    return PairingService(store=store, clock=clock)


@pytest.fixture(scope="session")
def pg_pool() -> Generator[ConnectionPool, None, None]:
    """
    Create connection pool against the configured database.

    Skips the requesting test when PostgreSQL is unreachable.
    """
    settings = get_settings()
    try:
        with psycopg.connect(settings.database_url, connect_timeout=3):
            pass
    except psycopg.OperationalError:
        pytest.skip("PostgreSQL is not available")

    pool = ConnectionPool(
        conninfo=settings.database_url,
        min_size=1,
        max_size=20,
        open=True,
    )
    run_migrations(pool)
    yield pool
    pool.close()

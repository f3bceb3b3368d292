"""
Shared fixtures for integration tests.

Every test here runs against the configured PostgreSQL database and is
skipped when it is unreachable.
"""

from collections.abc import Generator

import pytest
from psycopg_pool import ConnectionPool

from src.adapters.repository.postgres import PostgresUserStore
from tests.support import clean_tables

# Module-level marker for all integration tests
pytestmark = pytest.mark.integration


@pytest.fixture
def pool(pg_pool: ConnectionPool) -> Generator[ConnectionPool, None, None]:
    """Connection pool with empty tables."""
    clean_tables(pg_pool)
    yield pg_pool


@pytest.fixture
def pg_store(pool: ConnectionPool) -> PostgresUserStore:
    """Create store instance for each test."""
    return PostgresUserStore(pool)

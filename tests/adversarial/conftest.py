"""
Shared fixtures for adversarial tests.

Provides common test infrastructure for race condition and brute force tests.
"""

from collections.abc import Generator
from datetime import datetime, timezone

import pytest
from psycopg_pool import ConnectionPool

from src.adapters.repository.postgres import PostgresUserStore
from src.domain.pairing import PairingService
from tests.support import clean_tables, insert_user

# Module-level marker for all adversarial tests
pytestmark = pytest.mark.adversarial

TARGET_PHONE = "999-000-111"


@pytest.fixture
def pool(pg_pool: ConnectionPool) -> Generator[ConnectionPool, None, None]:
    """Connection pool with empty tables."""
    clean_tables(pg_pool)
    yield pg_pool


@pytest.fixture
def pg_store(pool: ConnectionPool) -> PostgresUserStore:
    return PostgresUserStore(pool)


@pytest.fixture
def pg_service(pg_store: PostgresUserStore) -> PairingService:
    """Pairing service over PostgreSQL with default policy."""
    return PairingService(store=pg_store)


@pytest.fixture
def target(pool: ConnectionPool) -> str:
    """Phone of a user whose codes were issued just now."""
    insert_user(pool, TARGET_PHONE, issued_at=datetime.now(timezone.utc))
    return TARGET_PHONE

"""Repository adapters - User state store implementations."""

from .fixtures import SAMPLE_USERS, apply_fixture, recreate_fixture
from .memory import InMemoryUserStore
from .postgres import PostgresUserStore, run_migrations

__all__ = [
    "InMemoryUserStore",
    "PostgresUserStore",
    "SAMPLE_USERS",
    "apply_fixture",
    "recreate_fixture",
    "run_migrations",
]

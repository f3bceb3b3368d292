"""
Development fixtures - Sample users in their initial epoch.

Applied on startup when running in the development environment.
"""

import logging
from collections.abc import Iterable
from typing import Protocol

from src.domain.ports import User

logger = logging.getLogger(__name__)

SAMPLE_USERS = (
    User(phone="111-222-333", vehicle_id="123456"),
    User(phone="123-456-789", vehicle_id="666333"),
    User(phone="444-555-666", vehicle_id="987654"),
)


class SeedableStore(Protocol):
    """Store operations needed to seed and wipe fixtures."""

    def count_users(self) -> int: ...

    def insert_users(self, users: Iterable[User]) -> int: ...

    def delete_all(self) -> None: ...


def apply_fixture(store: SeedableStore) -> int:
    """
    Insert the sample users unless the store already holds users.

    Returns:
        Number of users inserted
    """
    count = store.count_users()
    if count > 0:
        logger.info("Skipping fixture, there are %d users already", count)
        return 0

    inserted = store.insert_users(SAMPLE_USERS)
    logger.info("Inserted %d sample users", inserted)
    return inserted


def recreate_fixture(store: SeedableStore) -> int:
    """Delete every user and re-apply the sample users."""
    store.delete_all()
    return apply_fixture(store)

"""
In-memory user store adapter - Implements UserStore protocol.

Process-local store for development and tests. Each phone has its own
lock; run_transaction() holds it for the whole unit of work and stages
writes on a copy, publishing them only when the work returns.
"""

import threading
from collections.abc import Callable, Iterable, Mapping
from dataclasses import replace
from datetime import datetime
from typing import TypeVar

from src.domain.ports import Attempt, AttemptKind, User, UserTransaction, check_update_fields
from src.domain.validator import utcnow

T = TypeVar("T")


class InMemoryUserTransaction:
    """Implements UserTransaction protocol on a staged copy of one user."""

    def __init__(self, user: User | None, clock: Callable[[], datetime]) -> None:
        self.user = user
        self._clock = clock

    def read(self) -> User | None:
        return self.user

    def append_attempt(self, kind: AttemptKind, code: str) -> Attempt:
        attempt = Attempt(kind=kind, code=code, created_at=self._clock())
        if self.user is not None:
            self.user = replace(self.user, attempts=(*self.user.attempts, attempt))
        return attempt

    def count_attempts(self, kind: AttemptKind) -> int:
        if self.user is None:
            return 0
        return sum(1 for attempt in self.user.attempts if attempt.kind == kind)

    def clear_attempts(self) -> None:
        if self.user is not None:
            self.user = replace(self.user, attempts=())

    def update(self, fields: Mapping[str, object]) -> None:
        check_update_fields(fields)
        if self.user is not None:
            self.user = replace(self.user, **fields)


class InMemoryUserStore:
    """
    Implements UserStore protocol with a dict of immutable User records.

    Uses structural subtyping - no explicit inheritance from Protocol.
    """

    def __init__(self, users: Iterable[User] = (), clock: Callable[[], datetime] = utcnow) -> None:
        self._users: dict[str, User] = {user.phone: user for user in users}
        self._locks: dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()
        self._clock = clock

    def _lock_for(self, phone: str) -> threading.Lock:
        with self._locks_guard:
            return self._locks.setdefault(phone, threading.Lock())

    def find_one(self, phone: str) -> User | None:
        return self._users.get(phone)

    def update_one(self, phone: str, fields: Mapping[str, object]) -> bool:
        check_update_fields(fields)
        with self._lock_for(phone):
            user = self._users.get(phone)
            if user is None:
                return False
            self._users[phone] = replace(user, **fields)
            return True

    def run_transaction(self, phone: str, work: Callable[[UserTransaction], T]) -> T:
        with self._lock_for(phone):
            tx = InMemoryUserTransaction(self._users.get(phone), self._clock)
            result = work(tx)
            if tx.user is not None:
                self._users[phone] = tx.user
            return result

    def count_users(self) -> int:
        return len(self._users)

    def insert_users(self, users: Iterable[User]) -> int:
        inserted = 0
        for user in users:
            with self._lock_for(user.phone):
                if user.phone not in self._users:
                    self._users[user.phone] = user
                    inserted += 1
        return inserted

    def delete_all(self) -> None:
        self._users.clear()

"""
PostgreSQL user store adapter - Implements UserStore protocol.

This module provides the PostgreSQL implementation of the domain's
user store port using psycopg3 with raw SQL.

Concurrency Design - Row Lock per Phone:
----------------------------------------
run_transaction() opens one database transaction and takes
SELECT ... FOR UPDATE on the user's row before handing control to the
domain. Every concurrent transaction for the same phone queues behind
that lock, so the attempt append, the attempt count and the flag update
made by one request are atomic and serialized with respect to any other
request for the same phone. Requests for different phones never contend.

Schema lives in migrations/; the users table also enforces
paired => verified and unlocked => paired with CHECK constraints.
"""

import logging
from collections.abc import Callable, Iterable, Mapping
from pathlib import Path
from typing import TypeVar

import psycopg
from psycopg import sql
from psycopg_pool import ConnectionPool

from src.domain.exceptions import StoreError
from src.domain.ports import (
    Attempt,
    AttemptKind,
    IssuedCode,
    User,
    UserTransaction,
    check_update_fields,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

_USER_COLUMNS = (
    "phone, vehicle_id, binding_token, verified, paired, unlocked, requires_reset, "
    "otp_code, otp_issued_at, pairing_code, pairing_issued_at"
)

# Domain fields stored as a (code, issued_at) column pair
_SECRET_FIELDS = ("otp", "pairing")


def _issued_code(code: str | None, issued_at) -> IssuedCode | None:
    if code is None or issued_at is None:
        return None
    return IssuedCode(code=code, issued_at=issued_at)


def _fetch_user(cursor: psycopg.Cursor, phone: str) -> User | None:
    cursor.execute(f"SELECT {_USER_COLUMNS} FROM users WHERE phone = %s", (phone,))
    row = cursor.fetchone()
    if row is None:
        return None

    cursor.execute(
        "SELECT kind, code, created_at FROM attempts WHERE phone = %s ORDER BY id",
        (phone,),
    )
    attempts = tuple(
        Attempt(kind=AttemptKind(kind), code=code, created_at=created_at)
        for kind, code, created_at in cursor.fetchall()
    )

    return User(
        phone=row[0],
        vehicle_id=row[1],
        binding_token=row[2],
        verified=row[3],
        paired=row[4],
        unlocked=row[5],
        requires_reset=row[6],
        otp=_issued_code(row[7], row[8]),
        pairing=_issued_code(row[9], row[10]),
        attempts=attempts,
    )


def _update_user(cursor: psycopg.Cursor, phone: str, fields: Mapping[str, object]) -> bool:
    """Set fields on a user row. Returns True if the row exists."""
    check_update_fields(fields)

    columns: list[str] = []
    values: list[object] = []
    for name, value in fields.items():
        if name in _SECRET_FIELDS:
            columns += [f"{name}_code", f"{name}_issued_at"]
            values += [value.code, value.issued_at] if value is not None else [None, None]
        else:
            columns.append(name)
            values.append(value)

    if not columns:
        cursor.execute("SELECT 1 FROM users WHERE phone = %s", (phone,))
        return cursor.fetchone() is not None

    query = sql.SQL("UPDATE users SET {} WHERE phone = {}").format(
        sql.SQL(", ").join(
            sql.SQL("{} = {}").format(sql.Identifier(column), sql.Placeholder())
            for column in columns
        ),
        sql.Placeholder(),
    )
    cursor.execute(query, (*values, phone))
    return cursor.rowcount == 1


class PostgresUserTransaction:
    """
    Implements UserTransaction protocol on an open cursor.

    Only valid inside PostgresUserStore.run_transaction(), which already
    holds the row lock.
    """

    def __init__(self, cursor: psycopg.Cursor, phone: str) -> None:
        self._cursor = cursor
        self._phone = phone

    def read(self) -> User | None:
        return _fetch_user(self._cursor, self._phone)

    def append_attempt(self, kind: AttemptKind, code: str) -> Attempt:
        self._cursor.execute(
            """
            INSERT INTO attempts (phone, kind, code, created_at)
            VALUES (%s, %s, %s, NOW())
            RETURNING created_at
            """,
            (self._phone, kind.value, code),
        )
        (created_at,) = self._cursor.fetchone()
        return Attempt(kind=kind, code=code, created_at=created_at)

    def count_attempts(self, kind: AttemptKind) -> int:
        self._cursor.execute(
            "SELECT COUNT(*) FROM attempts WHERE phone = %s AND kind = %s",
            (self._phone, kind.value),
        )
        return self._cursor.fetchone()[0]

    def clear_attempts(self) -> None:
        self._cursor.execute("DELETE FROM attempts WHERE phone = %s", (self._phone,))

    def update(self, fields: Mapping[str, object]) -> None:
        _update_user(self._cursor, self._phone, fields)


class PostgresUserStore:
    """
    Implements UserStore protocol via psycopg3.

    Uses structural subtyping - no explicit inheritance from Protocol.
    All SQL uses parameterized queries; psycopg errors are translated
    into StoreError.
    """

    def __init__(self, pool: ConnectionPool) -> None:
        """
        Initialize store with connection pool.

        Args:
            pool: psycopg3 ConnectionPool for database connections
        """
        self._pool = pool

    def find_one(self, phone: str) -> User | None:
        try:
            with self._pool.connection() as conn, conn.cursor() as cursor:
                user = _fetch_user(cursor, phone)
                conn.commit()
                return user
        except psycopg.Error as e:
            raise StoreError(f"Failed to read user {phone}") from e

    def update_one(self, phone: str, fields: Mapping[str, object]) -> bool:
        try:
            with self._pool.connection() as conn, conn.cursor() as cursor:
                found = _update_user(cursor, phone, fields)
                conn.commit()
                return found
        except psycopg.Error as e:
            raise StoreError(f"Failed to update user {phone}") from e

    def run_transaction(self, phone: str, work: Callable[[UserTransaction], T]) -> T:
        """
        Run work in one transaction holding the user's row lock.

        The transaction commits when work returns and rolls back when it
        raises, so a ledger append is never persisted without the flag
        update decided alongside it.
        """
        try:
            with self._pool.connection() as conn:
                with conn.transaction(), conn.cursor() as cursor:
                    cursor.execute("SELECT 1 FROM users WHERE phone = %s FOR UPDATE", (phone,))
                    return work(PostgresUserTransaction(cursor, phone))
        except psycopg.Error as e:
            raise StoreError(f"Transaction failed for user {phone}") from e

    def count_users(self) -> int:
        try:
            with self._pool.connection() as conn, conn.cursor() as cursor:
                cursor.execute("SELECT COUNT(*) FROM users")
                return cursor.fetchone()[0]
        except psycopg.Error as e:
            raise StoreError("Failed to count users") from e

    def insert_users(self, users: Iterable[User]) -> int:
        """
        Insert users in their initial epoch, skipping phones already present.

        Returns:
            Number of rows actually inserted
        """
        inserted = 0
        try:
            with self._pool.connection() as conn, conn.cursor() as cursor:
                for user in users:
                    cursor.execute(
                        """
                        INSERT INTO users (phone, vehicle_id) VALUES (%s, %s)
                        ON CONFLICT (phone) DO NOTHING
                        """,
                        (user.phone, user.vehicle_id),
                    )
                    inserted += cursor.rowcount
                conn.commit()
        except psycopg.Error as e:
            raise StoreError("Failed to insert users") from e
        return inserted

    def delete_all(self) -> None:
        try:
            with self._pool.connection() as conn:
                conn.execute("DELETE FROM attempts")
                conn.execute("DELETE FROM users")
                conn.commit()
        except psycopg.Error as e:
            raise StoreError("Failed to delete users") from e


def run_migrations(pool: ConnectionPool) -> None:
    """
    Execute all SQL migration files from the migrations directory.

    Migrations are executed in sorted order (alphabetically by filename).
    Each migration should be idempotent (use IF NOT EXISTS, etc.).

    Args:
        pool: psycopg3 ConnectionPool instance
    """
    # Structure: src/adapters/repository/postgres.py -> migrations/
    migrations_dir = Path(__file__).parent.parent.parent.parent / "migrations"

    if not migrations_dir.exists():
        logger.warning(f"Migrations directory not found: {migrations_dir}")
        return

    sql_files = sorted(migrations_dir.glob("*.sql"))
    if not sql_files:
        logger.info("No migration files found")
        return

    logger.info(f"Running {len(sql_files)} migration(s)")

    for sql_file in sql_files:
        try:
            with pool.connection() as conn:
                conn.execute(sql_file.read_text())
                conn.commit()
            logger.info(f"Migration complete: {sql_file.name}")
        except psycopg.Error as e:
            logger.error(f"Migration failed: {sql_file.name} - {e}")
            raise RuntimeError(f"Database migration failed: {sql_file.name}") from e

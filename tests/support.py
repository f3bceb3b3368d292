"""Test helpers shared by unit, integration and adversarial tests."""

from datetime import datetime, timedelta

from psycopg_pool import ConnectionPool

from src.domain.ports import IssuedCode, User

OTP_CODE = "111111"
PAIRING_CODE = "222222"


class FrozenClock:
    """Clock returning a fixed instant until advanced."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


def make_user(phone: str = "555", issued_at: datetime | None = None, **overrides) -> User:
    """Build a user with OTP and pairing codes issued at issued_at."""
    fields = {"vehicle_id": f"VIN-{phone}"}
    if issued_at is not None:
        fields["otp"] = IssuedCode(code=OTP_CODE, issued_at=issued_at)
        fields["pairing"] = IssuedCode(code=PAIRING_CODE, issued_at=issued_at)
    fields.update(overrides)
    return User(phone=phone, **fields)


def clean_tables(pool: ConnectionPool) -> None:
    """Remove every user and attempt."""
    with pool.connection() as conn:
        conn.execute("DELETE FROM attempts")
        conn.execute("DELETE FROM users")
        conn.commit()


def insert_user(pool: ConnectionPool, phone: str, issued_at: datetime | None = None) -> None:
    """Insert a user in its initial epoch, with codes issued at issued_at if given."""
    with pool.connection() as conn:
        conn.execute(
            """
            INSERT INTO users (phone, vehicle_id, otp_code, otp_issued_at, pairing_code, pairing_issued_at)
            VALUES (%s, %s, %s, %s, %s, %s)
            """,
            (
                phone,
                f"VIN-{phone}",
                OTP_CODE if issued_at else None,
                issued_at,
                PAIRING_CODE if issued_at else None,
                issued_at,
            ),
        )
        conn.commit()


def fetch_flags(pool: ConnectionPool, phone: str) -> dict:
    """Read the lifecycle flags and binding token of a user row."""
    with pool.connection() as conn, conn.cursor() as cursor:
        cursor.execute(
            """
            SELECT verified, paired, unlocked, requires_reset, binding_token
            FROM users WHERE phone = %s
            """,
            (phone,),
        )
        row = cursor.fetchone()
    verified, paired, unlocked, requires_reset, binding_token = row
    return {
        "verified": verified,
        "paired": paired,
        "unlocked": unlocked,
        "requires_reset": requires_reset,
        "binding_token": binding_token,
    }


def count_attempt_rows(pool: ConnectionPool, phone: str, kind: str | None = None) -> int:
    """Count ledger rows for a user, optionally of one kind."""
    query = "SELECT COUNT(*) FROM attempts WHERE phone = %s"
    params: tuple = (phone,)
    if kind is not None:
        query += " AND kind = %s"
        params = (phone, kind)
    with pool.connection() as conn, conn.cursor() as cursor:
        cursor.execute(query, params)
        return cursor.fetchone()[0]

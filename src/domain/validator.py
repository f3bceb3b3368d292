"""
Code validator - Pure match/expiry decision for issued codes.

No I/O and no side effects; safe to call with a stale snapshot.
"""

import secrets
from datetime import datetime, timezone

from .ports import IssuedCode


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def code_age_seconds(secret: IssuedCode, now: datetime | None = None) -> float:
    """Seconds elapsed since the secret was issued."""
    now = now or utcnow()
    return (now - secret.issued_at).total_seconds()


def is_code_valid(
    secret: IssuedCode | None,
    code: str | None,
    expiry_seconds: int | None = None,
    *,
    now: datetime | None = None,
) -> bool:
    """
    Decide whether a submitted code matches an issued secret.

    Args:
        secret: Stored secret, None when not issued
        code: Code submitted by the client (exact match, no normalization)
        expiry_seconds: Validity window; age is not checked when None
        now: Current time, defaults to the wall clock

    Returns:
        False if the secret is absent, the code differs, or the secret is
        at least expiry_seconds old; True otherwise
    """
    if secret is None or not secret.code or code is None:
        return False

    # Constant-time comparison of the exact strings; lone surrogates compare as-is
    if not secrets.compare_digest(
        secret.code.encode("utf-8", "surrogatepass"), code.encode("utf-8", "surrogatepass")
    ):
        return False

    if expiry_seconds is not None and code_age_seconds(secret, now) >= expiry_seconds:
        return False

    return True

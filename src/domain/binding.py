"""
Identity binding - Ties a verification session to one client device.

A token is issued when OTP verification succeeds and must be presented
at pairing and unlock.
"""

import secrets
import uuid

from .ports import User


def issue_binding_token() -> str:
    """Generate a random 128-bit opaque token."""
    return str(uuid.uuid4())


def binding_matches(user: User, presented: str | None) -> bool:
    """
    Check a presented token against the one bound to the user.

    A user without a bound token never matches.
    """
    if user.binding_token is None or presented is None:
        return False
    return secrets.compare_digest(
        user.binding_token.encode("utf-8", "surrogatepass"),
        presented.encode("utf-8", "surrogatepass"),
    )

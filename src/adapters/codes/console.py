"""
Console code issuer adapter - Implements CodeIssuer protocol.

This module provides a development implementation of the code-issuance
collaborator: it stores OTP and pairing codes on the user, issued now,
and logs them to stdout instead of delivering them.
"""

import logging
import secrets
from collections.abc import Callable
from datetime import datetime

from src.domain.ports import IssuedCode, UserStore
from src.domain.validator import utcnow

logger = logging.getLogger(__name__)


def generate_code(length: int = 6) -> str:
    """
    Generate a cryptographically secure numeric code.

    Returns string to preserve leading zeros.
    """
    return "".join(secrets.choice("0123456789") for _ in range(length))


class ConsoleCodeIssuer:
    """
    Implements CodeIssuer protocol via console logging.

    Uses structural subtyping - no explicit inheritance from Protocol.
    For demo/development purposes - prints issued codes to stdout.
    """

    def __init__(self, store: UserStore, clock: Callable[[], datetime] = utcnow) -> None:
        self._store = store
        self._clock = clock

    def issue(
        self, phone: str, otp_code: str | None = None, pairing_code: str | None = None
    ) -> bool:
        """
        Store OTP and pairing codes for a user and log them.

        Codes not given are generated. Both codes share one issuance time.

        Args:
            phone: User identifier
            otp_code: OTP to issue, generated when None
            pairing_code: Pairing code to issue, generated when None

        Returns:
            True if the user exists and the codes were stored
        """
        issued_at = self._clock()
        otp = IssuedCode(code=otp_code or generate_code(), issued_at=issued_at)
        pairing = IssuedCode(code=pairing_code or generate_code(), issued_at=issued_at)

        if not self._store.update_one(phone, {"otp": otp, "pairing": pairing}):
            logger.info("[CODES] Not issued, unknown phone: %s", phone)
            return False

        logger.info("[CODES] Phone: %s OTP: %s Pairing: %s", phone, otp.code, pairing.code)
        return True

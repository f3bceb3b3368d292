"""
Port interfaces - Protocol definitions for infrastructure abstraction.

This module defines the domain types exchanged with infrastructure and
the interfaces (ports) that the domain requires from it. Adapters
implement these protocols.
"""

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Protocol, TypeVar

T = TypeVar("T")


class AttemptKind(str, Enum):
    """Kind of guess recorded in the attempt ledger."""

    OTP = "otp"
    PAIRING = "pairing"


@dataclass(frozen=True)
class IssuedCode:
    """
    A time-stamped secret written by the code-issuance collaborator.

    An absent secret is represented by None, never by an IssuedCode.
    """

    code: str
    issued_at: datetime


@dataclass(frozen=True)
class Attempt:
    """Immutable ledger record of one submitted code."""

    kind: AttemptKind
    code: str
    created_at: datetime


@dataclass(frozen=True)
class User:
    """
    Per-phone verification state.

    Lifecycle flags are monotonic within an epoch (false -> true only);
    only a Reset starts a new epoch and clears them.
    """

    phone: str
    vehicle_id: str
    binding_token: str | None = None
    verified: bool = False
    paired: bool = False
    unlocked: bool = False
    requires_reset: bool = False
    otp: IssuedCode | None = None
    pairing: IssuedCode | None = None
    attempts: tuple[Attempt, ...] = ()


# Fields writable through UserStore.update_one / UserTransaction.update
UPDATABLE_FIELDS = frozenset(
    {"binding_token", "verified", "paired", "unlocked", "requires_reset", "otp", "pairing"}
)

# Field values of a freshly reset epoch (attempts are cleared separately)
EPOCH_RESET_FIELDS: Mapping[str, object] = {
    "binding_token": None,
    "otp": None,
    "pairing": None,
    "verified": False,
    "paired": False,
    "unlocked": False,
    "requires_reset": False,
}


def check_update_fields(fields: Mapping[str, object]) -> None:
    """Raise ValueError if fields names anything outside UPDATABLE_FIELDS."""
    unknown = set(fields) - UPDATABLE_FIELDS
    if unknown:
        raise ValueError(f"Cannot update fields: {', '.join(sorted(unknown))}")


class StageOutcome(Enum):
    """
    Result of a stage operation.

    Used by PairingService to indicate success or specific failure.
    """

    SUCCESS = "success"
    INVALID_INPUT = "invalid_input"
    NOT_FOUND = "not_found"
    LOCKED = "locked"
    ALREADY_DONE = "already_done"
    WRONG_STAGE = "wrong_stage"
    IDENTITY_MISMATCH = "identity_mismatch"
    NOT_ISSUED = "not_issued"
    RATE_LIMITED = "rate_limited"
    EXPIRED = "expired"
    INVALID_CODE = "invalid_code"
    UNAUTHORIZED = "unauthorized"
    SERVER_ERROR = "server_error"


@dataclass(frozen=True)
class StageResult:
    """Decision returned by every PairingService operation."""

    outcome: StageOutcome
    binding_token: str | None = None
    remaining_attempts: int | None = None

    @property
    def ok(self) -> bool:
        return self.outcome is StageOutcome.SUCCESS


class UserTransaction(Protocol):
    """Operations available while a user's row is exclusively locked."""

    def read(self) -> User | None:
        """Read the locked user, attempts included."""
        ...

    def append_attempt(self, kind: AttemptKind, code: str) -> Attempt:
        """Append one attempt with a store-assigned timestamp."""
        ...

    def count_attempts(self, kind: AttemptKind) -> int:
        """Count ledger entries of the given kind for the locked user."""
        ...

    def clear_attempts(self) -> None:
        """Remove every ledger entry of the locked user."""
        ...

    def update(self, fields: Mapping[str, object]) -> None:
        """Set fields on the locked user."""
        ...


class UserStore(Protocol):
    """Port interface for user state persistence."""

    def find_one(self, phone: str) -> User | None:
        """
        Read a snapshot of the user identified by phone.

        Returns:
            User with its attempts, or None if no such user
        """
        ...

    def update_one(self, phone: str, fields: Mapping[str, object]) -> bool:
        """
        Set fields on a user outside of any transaction.

        Args:
            phone: User identifier
            fields: Subset of UPDATABLE_FIELDS with their new values

        Returns:
            True if the user exists, False otherwise

        Raises:
            ValueError: If fields names a non-updatable field
            StoreError: If the store fails
        """
        ...

    def run_transaction(self, phone: str, work: Callable[[UserTransaction], T]) -> T:
        """
        Run work atomically while holding an exclusive lock on the user.

        All writes made through the transaction commit together when work
        returns and are discarded when it raises.

        Raises:
            StoreError: If the store fails; nothing was applied
        """
        ...


class AgentAuthenticator(Protocol):
    """Port interface for the customer-agent credential check."""

    def is_agent(self, credential: str | None) -> bool:
        """Return True if credential belongs to a trusted agent."""
        ...


class CodeIssuer(Protocol):
    """Port interface for OTP and pairing code issuance."""

    def issue(
        self, phone: str, otp_code: str | None = None, pairing_code: str | None = None
    ) -> bool:
        """
        Issue OTP and pairing codes for a user.

        Returns:
            True if the user exists and the codes were stored
        """
        ...

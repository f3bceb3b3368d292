"""
Domain layer - Pure business logic with zero framework imports.

This package contains the core business logic for the Verification State
Machine that escalates a mobile client's trust over a vehicle: OTP
verification, pairing, unlock and agent reset. It defines its own port
interfaces for infrastructure abstraction, ensuring true hexagonal
architecture decoupling.
"""

from .binding import binding_matches, issue_binding_token
from .exceptions import PairingError, StoreError
from .ledger import count_attempts, record_attempt
from .pairing import PairingPolicy, PairingService
from .ports import (
    AgentAuthenticator,
    Attempt,
    AttemptKind,
    CodeIssuer,
    IssuedCode,
    StageOutcome,
    StageResult,
    User,
    UserStore,
    UserTransaction,
)
from .validator import is_code_valid

__all__ = [
    "AgentAuthenticator",
    "Attempt",
    "AttemptKind",
    "CodeIssuer",
    "IssuedCode",
    "PairingError",
    "PairingPolicy",
    "PairingService",
    "StageOutcome",
    "StageResult",
    "StoreError",
    "User",
    "UserStore",
    "UserTransaction",
    "binding_matches",
    "count_attempts",
    "is_code_valid",
    "issue_binding_token",
    "record_attempt",
]

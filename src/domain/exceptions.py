"""
Domain exceptions - Semantic error types for vehicle pairing.

This module defines domain-specific exceptions that communicate
infrastructure failures to the domain without leaking their details.
Business rule violations are not exceptions: they are reported as
StageResult outcomes.
"""


class PairingError(Exception):
    """Base class for pairing domain errors."""

    pass


class StoreError(PairingError):
    """User state store failed (connection lost, transaction aborted)."""

    pass

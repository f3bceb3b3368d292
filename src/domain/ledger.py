"""
Attempt ledger - Append-only history of submitted codes.

Attempt counts are always derived from the ledger, never cached on the
user. Appends only happen through a UserTransaction so that an attempt
is recorded and counted in the same transaction as any state change it
causes.
"""

from collections.abc import Iterable

from .ports import Attempt, AttemptKind, UserTransaction


def count_attempts(attempts: Iterable[Attempt], kind: AttemptKind) -> int:
    """
    Count ledger entries of the given kind.

    The ledger is cleared on reset, so every entry belongs to the current
    epoch; entries are counted without any timestamp filter.
    """
    return sum(1 for attempt in attempts if attempt.kind == kind)


def record_attempt(tx: UserTransaction, kind: AttemptKind, code: str) -> int:
    """
    Append an attempt and return the post-append count for its kind.

    Args:
        tx: Open transaction holding the user's lock
        kind: Stage the code was submitted to
        code: Submitted code, stored verbatim

    Returns:
        Number of attempts of this kind, including the new one
    """
    tx.append_attempt(kind, code)
    return tx.count_attempts(kind)

"""
Unit tests for the attempt ledger.

Tests verify counting by kind and that recording an attempt appends
through the transaction and returns the post-append count.
"""

from datetime import datetime, timezone
from unittest.mock import MagicMock

from src.domain.ledger import count_attempts, record_attempt
from src.domain.ports import Attempt, AttemptKind

NOW = datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)


def attempt(kind: AttemptKind, code: str = "000000") -> Attempt:
    return Attempt(kind=kind, code=code, created_at=NOW)


class TestCountAttempts:
    """Tests for count_attempts."""

    def test_empty_ledger(self) -> None:
        assert count_attempts((), AttemptKind.OTP) == 0

    def test_counts_only_requested_kind(self) -> None:
        ledger = (
            attempt(AttemptKind.OTP),
            attempt(AttemptKind.PAIRING),
            attempt(AttemptKind.OTP),
        )
        assert count_attempts(ledger, AttemptKind.OTP) == 2
        assert count_attempts(ledger, AttemptKind.PAIRING) == 1

    def test_counts_every_entry_regardless_of_age(self) -> None:
        """Entries are counted without a timestamp filter."""
        old = Attempt(kind=AttemptKind.OTP, code="1", created_at=datetime(2000, 1, 1, tzinfo=timezone.utc))
        assert count_attempts((old, attempt(AttemptKind.OTP)), AttemptKind.OTP) == 2

    def test_accepts_any_iterable(self) -> None:
        ledger = [attempt(AttemptKind.PAIRING) for _ in range(4)]
        assert count_attempts(iter(ledger), AttemptKind.PAIRING) == 4


class TestRecordAttempt:
    """Tests for record_attempt."""

    def test_appends_then_counts(self) -> None:
        tx = MagicMock()
        tx.count_attempts.return_value = 2

        result = record_attempt(tx, AttemptKind.OTP, "123456")

        tx.append_attempt.assert_called_once_with(AttemptKind.OTP, "123456")
        tx.count_attempts.assert_called_once_with(AttemptKind.OTP)
        assert result == 2

    def test_append_happens_before_count(self) -> None:
        tx = MagicMock()
        record_attempt(tx, AttemptKind.PAIRING, "222222")

        names = [call[0] for call in tx.method_calls]
        assert names == ["append_attempt", "count_attempts"]

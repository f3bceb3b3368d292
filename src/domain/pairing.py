"""
Pairing domain service - Verification State Machine implementation.

This module contains the core business logic for granting a mobile
client progressively escalating trust over a vehicle.

Verification State Machine (Forward-Only Transitions)
=====================================================

Stages, strictly ordered:
- OTP: one-time passcode check, binds the client with a binding token
- PAIRING: pairing code check, requires the bound client
- UNLOCK: final command, requires the bound client

Per-user flags (monotonic within an epoch):
    verified   false -> true  (correct OTP before the attempt limit)
    paired     false -> true  (correct, unexpired pairing code)
    unlocked   false -> true  (unlock command from the bound client)
    requires_reset false -> true  (OTP attempt limit hit, or an
                                   attempt with an expired pairing code)

Invariants:
    paired => verified, unlocked => paired
    requires_reset blocks every stage transition until an agent Reset

Only Reset moves backwards: it clears every flag, both codes, the
binding token and the attempt ledger, starting a new epoch.

Execution model: each operation validates its input, evaluates
preconditions on a snapshot (fail fast, no writes), then runs a single
store transaction that re-reads the user under lock, re-evaluates the
same preconditions and applies the ledger append together with the
resulting flag update.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime

from .binding import binding_matches, issue_binding_token
from .exceptions import StoreError
from .ledger import count_attempts, record_attempt
from .ports import (
    EPOCH_RESET_FIELDS,
    AttemptKind,
    StageOutcome,
    StageResult,
    User,
    UserStore,
    UserTransaction,
)
from .validator import code_age_seconds, is_code_valid, utcnow

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PairingPolicy:
    """Policy constants for code expiry and OTP lockout."""

    otp_expiry_seconds: int = 300
    pairing_expiry_seconds: int = 120
    otp_max_attempts: int = 3


def _result(outcome: StageOutcome, **kwargs) -> StageResult:
    return StageResult(outcome=outcome, **kwargs)


@dataclass
class PairingService:
    """
    Domain service for OTP verification, pairing, unlock and reset.

    Holds no per-request state: every operation reads the user from the
    store, so one instance can serve concurrent requests.
    """

    store: UserStore
    policy: PairingPolicy = field(default_factory=PairingPolicy)
    clock: Callable[[], datetime] = utcnow
    token_factory: Callable[[], str] = issue_binding_token

    def verify_otp(self, phone: str | None, code: str | None) -> StageResult:
        """
        Verify a one-time passcode and bind the calling client.

        Args:
            phone: User identifier
            code: Submitted OTP

        Returns:
            SUCCESS with the binding token, INVALID_CODE with the remaining
            attempts, RATE_LIMITED once the attempt limit is reached, or the
            first failed precondition
        """
        if not phone or not code:
            return _result(StageOutcome.INVALID_INPUT)

        def attempt(tx: UserTransaction) -> StageResult:
            user = tx.read()
            if user is None:
                return _result(StageOutcome.NOT_FOUND)
            rejected = self._check_otp_stage(user)
            if rejected is not None:
                return rejected

            attempts = record_attempt(tx, AttemptKind.OTP, code)
            if is_code_valid(user.otp, code, self.policy.otp_expiry_seconds, now=self.clock()):
                token = self.token_factory()
                tx.update({"verified": True, "binding_token": token})
                return _result(StageOutcome.SUCCESS, binding_token=token)

            remaining = max(self.policy.otp_max_attempts - attempts, 0)
            if remaining == 0:
                tx.update({"requires_reset": True})
                return _result(StageOutcome.RATE_LIMITED, remaining_attempts=0)
            return _result(StageOutcome.INVALID_CODE, remaining_attempts=remaining)

        result = self._run(phone, "OTP verification", self._check_otp_stage, attempt)
        if result.ok:
            logger.info("User %s verified OTP", phone)
        elif result.outcome is StageOutcome.RATE_LIMITED and result.remaining_attempts == 0:
            logger.info("User %s reached the OTP attempt limit", phone)
        return result

    def verify_pairing(
        self, phone: str | None, code: str | None, binding_token: str | None
    ) -> StageResult:
        """
        Verify a pairing code from the client bound at OTP verification.

        An attempt made after the pairing code expired locks the user,
        whether or not the code matches. Wrong codes are not limited by
        count.
        """
        if not phone or not code:
            return _result(StageOutcome.INVALID_INPUT)

        def check(user: User) -> StageResult | None:
            return self._check_pairing_stage(user, binding_token)

        def attempt(tx: UserTransaction) -> StageResult:
            user = tx.read()
            if user is None:
                return _result(StageOutcome.NOT_FOUND)
            rejected = check(user)
            if rejected is not None:
                return rejected

            record_attempt(tx, AttemptKind.PAIRING, code)
            if code_age_seconds(user.pairing, self.clock()) > self.policy.pairing_expiry_seconds:
                tx.update({"requires_reset": True})
                return _result(StageOutcome.EXPIRED)

            if is_code_valid(user.pairing, code):
                tx.update({"paired": True})
                return _result(StageOutcome.SUCCESS)
            return _result(StageOutcome.INVALID_CODE)

        result = self._run(phone, "pairing", check, attempt)
        if result.ok:
            logger.info("User %s paired with vehicle", phone)
        elif result.outcome is StageOutcome.EXPIRED:
            logger.info("User %s used an expired pairing code and is locked", phone)
        return result

    def unlock(self, phone: str | None, binding_token: str | None) -> StageResult:
        """Unlock the vehicle for a paired user. Not recorded in the ledger."""
        if not phone:
            return _result(StageOutcome.INVALID_INPUT)

        def check(user: User) -> StageResult | None:
            return self._check_unlock_stage(user, binding_token)

        def apply(tx: UserTransaction) -> StageResult:
            user = tx.read()
            if user is None:
                return _result(StageOutcome.NOT_FOUND)
            rejected = check(user)
            if rejected is not None:
                return rejected
            tx.update({"unlocked": True})
            return _result(StageOutcome.SUCCESS)

        result = self._run(phone, "unlock", check, apply)
        if result.ok:
            logger.info("Vehicle unlocked for user %s", phone)
        return result

    def reset(self, phone: str | None, caller_is_agent: bool) -> StageResult:
        """
        Start a new epoch for the user. Agents only; idempotent.

        Clears the binding token, both codes, the attempt ledger and every
        lifecycle flag.
        """
        if not caller_is_agent:
            return _result(StageOutcome.UNAUTHORIZED)
        if not phone:
            return _result(StageOutcome.NOT_FOUND)

        def apply(tx: UserTransaction) -> StageResult:
            if tx.read() is None:
                return _result(StageOutcome.NOT_FOUND)
            tx.update(EPOCH_RESET_FIELDS)
            tx.clear_attempts()
            return _result(StageOutcome.SUCCESS)

        result = self._run(phone, "reset", lambda user: None, apply)
        if result.ok:
            logger.info("User %s has been reset", phone)
        return result

    def _run(
        self,
        phone: str,
        operation: str,
        check: Callable[[User], StageResult | None],
        work: Callable[[UserTransaction], StageResult],
    ) -> StageResult:
        """
        Evaluate preconditions on a snapshot, then run work in a transaction.

        Store failures are logged and reported as SERVER_ERROR; the store
        guarantees nothing was partially applied.
        """
        try:
            user = self.store.find_one(phone)
            if user is None:
                return _result(StageOutcome.NOT_FOUND)
            rejected = check(user)
            if rejected is not None:
                self._log_rejection(phone, operation, rejected)
                return rejected
            return self.store.run_transaction(phone, work)
        except StoreError:
            logger.exception("Failed transaction during %s for user %s", operation, phone)
            return _result(StageOutcome.SERVER_ERROR)

    def _log_rejection(self, phone: str, operation: str, result: StageResult) -> None:
        if result.outcome is StageOutcome.IDENTITY_MISMATCH:
            logger.warning("Binding token mismatch during %s for user %s", operation, phone)
        else:
            logger.debug("Rejected %s for user %s: %s", operation, phone, result.outcome.value)

    def _check_otp_stage(self, user: User) -> StageResult | None:
        if user.requires_reset:
            return _result(StageOutcome.LOCKED)
        if user.verified or user.paired:
            return _result(StageOutcome.ALREADY_DONE)
        if user.otp is None or not user.otp.code:
            return _result(StageOutcome.NOT_ISSUED)
        if count_attempts(user.attempts, AttemptKind.OTP) >= self.policy.otp_max_attempts:
            return _result(StageOutcome.RATE_LIMITED, remaining_attempts=0)
        return None

    def _check_pairing_stage(self, user: User, binding_token: str | None) -> StageResult | None:
        if user.requires_reset:
            return _result(StageOutcome.LOCKED)
        if not user.verified or user.binding_token is None:
            return _result(StageOutcome.WRONG_STAGE)
        if not binding_matches(user, binding_token):
            return _result(StageOutcome.IDENTITY_MISMATCH)
        if user.paired:
            return _result(StageOutcome.ALREADY_DONE)
        if user.pairing is None or not user.pairing.code:
            return _result(StageOutcome.NOT_ISSUED)
        return None

    def _check_unlock_stage(self, user: User, binding_token: str | None) -> StageResult | None:
        if user.requires_reset:
            return _result(StageOutcome.LOCKED)
        if not user.paired:
            return _result(StageOutcome.WRONG_STAGE)
        if not binding_matches(user, binding_token):
            return _result(StageOutcome.IDENTITY_MISMATCH)
        if user.unlocked:
            return _result(StageOutcome.ALREADY_DONE)
        return None

"""
API v1 routes.

Defines REST endpoints for the vehicle pairing API:
- POST /v1/user/otp - Verify OTP, receive binding token
- POST /v1/user/pair - Verify pairing code from the bound client
- POST /v1/user/unlock - Unlock the vehicle from the bound client
- POST /v1/user/reset - Agent-only reset of the verification state

Endpoints are plain functions: FastAPI runs them in its threadpool, so a
request waiting on a row lock does not block other requests.
"""

from typing import NoReturn

from fastapi import APIRouter, Depends, HTTPException, status

from src.adapters.auth.bcrypt_agent import BcryptAgentAuthenticator
from src.api.dependencies import get_agent_authenticator, get_pairing_service
from src.api.models import (
    ErrorResponse,
    MessageResponse,
    OtpRequest,
    OtpResponse,
    PairRequest,
    ResetRequest,
    UnlockRequest,
)
from src.domain.pairing import PairingService
from src.domain.ports import StageOutcome, StageResult

router = APIRouter(tags=["v1"])

_STATUS_CODES = {
    StageOutcome.INVALID_INPUT: status.HTTP_400_BAD_REQUEST,
    StageOutcome.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    StageOutcome.LOCKED: status.HTTP_403_FORBIDDEN,
    StageOutcome.ALREADY_DONE: status.HTTP_400_BAD_REQUEST,
    StageOutcome.WRONG_STAGE: status.HTTP_403_FORBIDDEN,
    StageOutcome.IDENTITY_MISMATCH: status.HTTP_401_UNAUTHORIZED,
    StageOutcome.NOT_ISSUED: status.HTTP_400_BAD_REQUEST,
    StageOutcome.RATE_LIMITED: status.HTTP_403_FORBIDDEN,
    StageOutcome.EXPIRED: status.HTTP_400_BAD_REQUEST,
    StageOutcome.INVALID_CODE: status.HTTP_400_BAD_REQUEST,
    StageOutcome.UNAUTHORIZED: status.HTTP_401_UNAUTHORIZED,
    StageOutcome.SERVER_ERROR: status.HTTP_500_INTERNAL_SERVER_ERROR,
}

_COMMON_MESSAGES = {
    StageOutcome.LOCKED: "You must contact support to start over",
    StageOutcome.IDENTITY_MISMATCH: (
        "Invalid identification number. Do you make a request from a different device?"
    ),
    StageOutcome.UNAUTHORIZED: "Invalid agent authentication token",
    StageOutcome.SERVER_ERROR: "Server error",
    StageOutcome.INVALID_INPUT: "No phone number provided",
}

_OTP_MESSAGES = {
    StageOutcome.INVALID_INPUT: "No OTP provided",
    StageOutcome.ALREADY_DONE: "You are already verified",
    StageOutcome.NOT_ISSUED: "The OTP code is not generated. Request the system for a new code.",
    StageOutcome.RATE_LIMITED: (
        "OTP verification attempts limit is reached. Contact the support to start over."
    ),
}

_PAIR_MESSAGES = {
    StageOutcome.INVALID_INPUT: "No pairing code provided",
    StageOutcome.WRONG_STAGE: "You are not verified yet. Start with OTP verification.",
    StageOutcome.ALREADY_DONE: "You are already paired with the vehicle",
    StageOutcome.NOT_ISSUED: "The pairing code is not generated. Start with OTP verification.",
    StageOutcome.EXPIRED: "Pairing code expired. Contact the support to start over.",
    StageOutcome.INVALID_CODE: "Invalid pairing code",
}

_UNLOCK_MESSAGES = {
    StageOutcome.WRONG_STAGE: "You are not paired yet. Start with OTP verification.",
    StageOutcome.ALREADY_DONE: "Vehicle is already unlocked",
}

_ERROR_RESPONSES = {
    400: {"model": ErrorResponse, "description": "Missing field, wrong code or out-of-order request"},
    401: {"model": ErrorResponse, "description": "Request from a different device"},
    403: {"model": ErrorResponse, "description": "Locked, rate-limited or wrong stage"},
    404: {"model": ErrorResponse, "description": "Unknown phone number"},
    500: {"model": ErrorResponse, "description": "Server error"},
}


def _raise_failure(result: StageResult, phone: str | None, messages: dict) -> NoReturn:
    """Translate a failed StageResult into an HTTPException."""
    if result.outcome is StageOutcome.NOT_FOUND:
        detail = f"User with phone number {phone} not found"
    elif result.outcome is StageOutcome.INVALID_INPUT and not phone:
        detail = _COMMON_MESSAGES[StageOutcome.INVALID_INPUT]
    else:
        detail = messages.get(result.outcome) or _COMMON_MESSAGES[result.outcome]
    raise HTTPException(status_code=_STATUS_CODES[result.outcome], detail=detail)


@router.post(
    "/user/otp",
    response_model=OtpResponse,
    responses=_ERROR_RESPONSES,
    summary="Verify OTP code",
    description="Validate the one-time passcode. Returns a binding token that the "
    "client must store and send with pairing and unlock requests.",
)
def verify_otp(
    request_data: OtpRequest,
    service: PairingService = Depends(get_pairing_service),
) -> OtpResponse:
    """
    Verify OTP and bind the calling device.

    - **phone**: User phone number
    - **code**: OTP code to validate
    """
    result = service.verify_otp(request_data.phone, request_data.code)
    if result.ok:
        return OtpResponse(message="Successfully validated", binding_token=result.binding_token)

    if result.outcome is StageOutcome.INVALID_CODE:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid OTP code. Remaining attempts {result.remaining_attempts}",
        )
    _raise_failure(result, request_data.phone, _OTP_MESSAGES)


@router.post(
    "/user/pair",
    response_model=MessageResponse,
    responses=_ERROR_RESPONSES,
    summary="Verify pairing code",
    description="Validate the pairing code from the device bound at OTP verification. "
    "A request with an expired pairing code locks the user until an agent reset.",
)
def verify_pairing(
    request_data: PairRequest,
    service: PairingService = Depends(get_pairing_service),
) -> MessageResponse:
    """
    Pair the bound device with the vehicle.

    - **phone**: User phone number
    - **code**: Pairing code to validate
    - **binding_token**: Token returned by OTP verification
    """
    result = service.verify_pairing(
        request_data.phone, request_data.code, request_data.binding_token
    )
    if result.ok:
        return MessageResponse(message="Successfully paired")
    _raise_failure(result, request_data.phone, _PAIR_MESSAGES)


@router.post(
    "/user/unlock",
    response_model=MessageResponse,
    responses=_ERROR_RESPONSES,
    summary="Unlock the vehicle",
    description="Unlock the paired vehicle from the device bound at OTP verification.",
)
def unlock(
    request_data: UnlockRequest,
    service: PairingService = Depends(get_pairing_service),
) -> MessageResponse:
    """
    Unlock the vehicle.

    - **phone**: User phone number
    - **binding_token**: Token returned by OTP verification
    """
    result = service.unlock(request_data.phone, request_data.binding_token)
    if result.ok:
        return MessageResponse(message="Vehicle has been unlocked")
    _raise_failure(result, request_data.phone, _UNLOCK_MESSAGES)


@router.post(
    "/user/reset",
    response_model=MessageResponse,
    responses={
        401: {"model": ErrorResponse, "description": "Invalid agent credential"},
        404: {"model": ErrorResponse, "description": "Unknown phone number"},
        500: {"model": ErrorResponse, "description": "Server error"},
    },
    summary="Reset verification state (agents only)",
    description="Clear codes, attempt history, binding token and all flags so the "
    "user can start over. Accessible only with the customer agent credential.",
)
def reset(
    request_data: ResetRequest,
    service: PairingService = Depends(get_pairing_service),
    authenticator: BcryptAgentAuthenticator = Depends(get_agent_authenticator),
) -> MessageResponse:
    """
    Reset a user's verification state.

    - **phone**: User phone number
    - **auth_token**: Customer agent credential
    """
    caller_is_agent = authenticator.is_agent(request_data.auth_token)
    result = service.reset(request_data.phone, caller_is_agent)
    if result.ok:
        return MessageResponse(message="User has been reset")
    _raise_failure(result, request_data.phone, {})

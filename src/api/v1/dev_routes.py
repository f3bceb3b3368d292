"""
API v1 development routes.

Registered only when the application runs in the development
environment:
- POST /v1/user/codegen - Issue OTP and pairing codes for a user
- DELETE /v1/user - Delete all users and re-apply fixtures
"""

from fastapi import APIRouter, Depends, HTTPException, status

from src.adapters.codes.console import ConsoleCodeIssuer
from src.adapters.repository.fixtures import recreate_fixture
from src.adapters.repository.postgres import PostgresUserStore
from src.api.dependencies import get_code_issuer, get_store
from src.api.models import CodegenRequest, ErrorResponse, MessageResponse

dev_router = APIRouter(tags=["development"])


@dev_router.post(
    "/user/codegen",
    response_model=MessageResponse,
    responses={404: {"model": ErrorResponse, "description": "Unknown phone number"}},
    summary="Issue codes (development only)",
)
def codegen(
    request_data: CodegenRequest,
    issuer: ConsoleCodeIssuer = Depends(get_code_issuer),
) -> MessageResponse:
    """Issue OTP and pairing codes, both valid from now."""
    issued = issuer.issue(request_data.phone, request_data.otp_code, request_data.pairing_code)
    if not issued:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Not created for user {request_data.phone}",
        )
    return MessageResponse(message=f"Created new codes for user {request_data.phone}")


@dev_router.delete(
    "/user",
    response_model=MessageResponse,
    summary="Recreate sample users (development only)",
)
def recreate_users(store: PostgresUserStore = Depends(get_store)) -> MessageResponse:
    """Delete every user and insert the sample users again."""
    recreate_fixture(store)
    return MessageResponse(message="All users recreated")

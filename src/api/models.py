"""
API request and response models.

Pydantic models for FastAPI endpoint validation and OpenAPI schema generation.
Required protocol fields are optional here: a missing field reaches the
state machine and is reported as 400, not as a schema error.
"""

from pydantic import BaseModel, Field


class OtpRequest(BaseModel):
    """Request model for OTP verification."""

    phone: str | None = Field(None, description="User phone number")
    code: str | None = Field(None, description="One-time passcode")


class OtpResponse(BaseModel):
    """Response model for successful OTP verification."""

    message: str
    binding_token: str = Field(
        ..., description="Must be stored by the client and sent with pairing and unlock"
    )


class PairRequest(BaseModel):
    """Request model for pairing code verification."""

    phone: str | None = Field(None, description="User phone number")
    code: str | None = Field(None, description="Pairing code")
    binding_token: str | None = Field(None, description="Token returned by OTP verification")


class UnlockRequest(BaseModel):
    """Request model for the unlock command."""

    phone: str | None = Field(None, description="User phone number")
    binding_token: str | None = Field(None, description="Token returned by OTP verification")


class ResetRequest(BaseModel):
    """Request model for agent reset."""

    phone: str | None = Field(None, description="User phone number")
    auth_token: str | None = Field(None, description="Customer agent credential")


class CodegenRequest(BaseModel):
    """Request model for development code issuance."""

    phone: str
    otp_code: str | None = Field(None, description="OTP to issue, generated when omitted")
    pairing_code: str | None = Field(None, description="Pairing code to issue, generated when omitted")


class MessageResponse(BaseModel):
    """Response model carrying a human-readable message."""

    message: str


class ErrorResponse(BaseModel):
    """Standard error response model."""

    detail: str

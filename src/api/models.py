"""
API request and response models.

Pydantic models for FastAPI endpoint validation and OpenAPI schema generation.
JSON field names are camelCase; Python attributes stay snake_case.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model serializing to camelCase and accepting either spelling."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class IssueCodeRequest(CamelModel):
    """Request model for issuing a password reset code."""

    email: EmailStr


class VerifyCodeRequest(CamelModel):
    """Request model for verifying a password reset code."""

    email: EmailStr
    code: str = Field(
        ...,
        min_length=1,
        max_length=64,
        description="Verification code from the email, e.g. SMCBI-123456",
    )


class ResetPasswordRequest(CamelModel):
    """Request model for setting a new password with a verified code."""

    email: EmailStr
    new_password: str = Field(..., min_length=1, max_length=72, description="New password")


class IssueCodeData(CamelModel):
    email: str
    verification_code: str | None = None
    expires_at: datetime
    email_id: str | None = None


class IssueCodeResponse(CamelModel):
    """Response model for a sent verification code."""

    success: bool = True
    message: str
    data: IssueCodeData


class VerifyCodeData(CamelModel):
    email: str
    verification_id: str
    verified_at: datetime


class VerifyCodeResponse(CamelModel):
    """Response model for a verified code."""

    success: bool = True
    message: str
    data: VerifyCodeData


class ResetUser(CamelModel):
    id: str
    email: str


class ResetPasswordData(CamelModel):
    user: ResetUser
    reset_at: datetime
    method: str | None = None


class ResetPasswordResponse(CamelModel):
    """Response model for a completed password reset."""

    success: bool = True
    message: str
    data: ResetPasswordData


class UsageData(CamelModel):
    total_emails_sent: int
    emails_last_day: int
    emails_last_30_days: int = Field(alias="emailsLast30Days")
    quota_limit: int
    quota_remaining: int
    quota_usage_percent: str


class UsageResponse(CamelModel):
    """Response model for the email usage report."""

    success: bool = True
    data: UsageData


class ErrorResponse(CamelModel):
    """Standard error response model."""

    success: bool = False
    error: str
    message: str

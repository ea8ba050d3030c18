"""
API v1 routes.

Defines REST endpoints for the password reset verification code API:
- POST /v1/password-reset/request - Email a new verification code
- POST /v1/password-reset/verify  - Verify a submitted code
- POST /v1/password-reset/confirm - Set a new password with a verified code
- GET  /v1/email-usage            - Issuance counts against the email quota

Domain results are tagged with an ErrorKind; this module is the only
place that turns kinds into HTTP status codes.
"""

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from src.api.dependencies import get_password_reset_service, get_usage_service
from src.api.models import (
    ErrorResponse,
    IssueCodeData,
    IssueCodeRequest,
    IssueCodeResponse,
    ResetPasswordData,
    ResetPasswordRequest,
    ResetPasswordResponse,
    ResetUser,
    UsageData,
    UsageResponse,
    VerifyCodeData,
    VerifyCodeRequest,
    VerifyCodeResponse,
)
from src.config.settings import Settings, get_settings
from src.domain.password_reset import PasswordResetService
from src.domain.ports import ErrorKind
from src.domain.results import Failure
from src.domain.usage import UsageService

router = APIRouter(tags=["v1"])

STATUS_BY_KIND: dict[ErrorKind, int] = {
    ErrorKind.VALIDATION_ERROR: status.HTTP_400_BAD_REQUEST,
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.RATE_LIMITED: status.HTTP_429_TOO_MANY_REQUESTS,
    ErrorKind.EXPIRED: status.HTTP_410_GONE,
    ErrorKind.ATTEMPTS_EXCEEDED: status.HTTP_423_LOCKED,
    ErrorKind.CONFIGURATION_ERROR: status.HTTP_500_INTERNAL_SERVER_ERROR,
    ErrorKind.DEPENDENCY_UNAVAILABLE: status.HTTP_503_SERVICE_UNAVAILABLE,
    ErrorKind.UNKNOWN: status.HTTP_500_INTERNAL_SERVER_ERROR,
}

_ERROR_RESPONSES = {
    code: {"model": ErrorResponse} for code in sorted(set(STATUS_BY_KIND.values()))
}


def failure_response(failure: Failure) -> JSONResponse:
    """Render a domain Failure as ``{success: false, error, message}``."""
    body = ErrorResponse(error=failure.kind.value, message=failure.message)
    return JSONResponse(
        status_code=STATUS_BY_KIND[failure.kind],
        content=body.model_dump(by_alias=True),
    )


@router.post(
    "/password-reset/request",
    response_model=IssueCodeResponse,
    responses=_ERROR_RESPONSES,
    summary="Request a password reset code",
    description="Emails a one-time verification code to the account address. "
    "At most 3 codes are issued per address in 24 hours.",
)
def request_code(
    request_data: IssueCodeRequest,
    service: PasswordResetService = Depends(get_password_reset_service),
    settings: Settings = Depends(get_settings),
) -> IssueCodeResponse | JSONResponse:
    """
    Issue a password reset code.

    - **email**: Account email address
    """
    result = service.issue(request_data.email)
    if isinstance(result, Failure):
        return failure_response(result)

    expose_code = settings.expose_code_in_response
    return IssueCodeResponse(
        message="Verification code sent successfully",
        data=IssueCodeData(
            email=result.email,
            verification_code=result.code if expose_code else None,
            expires_at=result.expires_at,
            email_id=result.email_id,
        ),
    )


@router.post(
    "/password-reset/verify",
    response_model=VerifyCodeResponse,
    responses=_ERROR_RESPONSES,
    summary="Verify a password reset code",
    description="Checks the emailed code. A verified code can be used once "
    "to set a new password within 30 minutes.",
)
def verify_code(
    request_data: VerifyCodeRequest,
    service: PasswordResetService = Depends(get_password_reset_service),
) -> VerifyCodeResponse | JSONResponse:
    """
    Verify a password reset code.

    - **email**: Account email address
    - **code**: Code from the email, e.g. SMCBI-123456 (case-insensitive)
    """
    result = service.verify(request_data.email, request_data.code)
    if isinstance(result, Failure):
        return failure_response(result)
    return VerifyCodeResponse(
        message="Verification code verified successfully",
        data=VerifyCodeData(
            email=result.email,
            verification_id=result.verification_id,
            verified_at=result.verified_at,
        ),
    )


@router.post(
    "/password-reset/confirm",
    response_model=ResetPasswordResponse,
    responses=_ERROR_RESPONSES,
    summary="Set a new password",
    description="Sets a new password using the most recently verified code.",
)
def reset_password(
    request_data: ResetPasswordRequest,
    service: PasswordResetService = Depends(get_password_reset_service),
) -> ResetPasswordResponse | JSONResponse:
    """
    Reset the password.

    - **email**: Account email address
    - **newPassword**: New password (minimum 6 characters)
    """
    result = service.reset_password(request_data.email, request_data.new_password)
    if isinstance(result, Failure):
        return failure_response(result)
    return ResetPasswordResponse(
        message="Password reset successfully",
        data=ResetPasswordData(
            user=ResetUser(id=result.user_id, email=result.email),
            reset_at=result.reset_at,
            method=result.method,
        ),
    )


@router.get(
    "/email-usage",
    response_model=UsageResponse,
    responses=_ERROR_RESPONSES,
    summary="Email usage report",
    description="Codes issued in total, in the last 24 hours and in the last "
    "30 days, compared with the monthly email quota.",
)
def email_usage(
    service: UsageService = Depends(get_usage_service),
) -> UsageResponse | JSONResponse:
    """Report email usage."""
    result = service.usage()
    if isinstance(result, Failure):
        return failure_response(result)
    return UsageResponse(
        data=UsageData(
            total_emails_sent=result.total_issued,
            emails_last_day=result.issued_last_24h,
            emails_last_30_days=result.issued_last_30d,
            quota_limit=result.quota_limit,
            quota_remaining=result.quota_remaining,
            quota_usage_percent=result.quota_usage_percent,
        )
    )

"""
Operation results - one success type per operation plus a shared Failure.

Public service operations never raise; they return either their success
value or a Failure tagged with an ErrorKind.
"""

from dataclasses import dataclass
from datetime import datetime

from .ports import ErrorKind


@dataclass(frozen=True)
class Failure:
    """Rejected operation. ``message`` is safe to show to the caller."""

    kind: ErrorKind
    message: str

    @property
    def success(self) -> bool:
        return False


@dataclass(frozen=True)
class IssuedCode:
    """A code was persisted and handed to the email provider."""

    email: str
    code: str
    expires_at: datetime
    email_id: str | None = None

    @property
    def success(self) -> bool:
        return True


@dataclass(frozen=True)
class VerifiedCode:
    """A pending code was accepted and is now VERIFIED."""

    email: str
    verification_id: str
    verified_at: datetime

    @property
    def success(self) -> bool:
        return True


@dataclass(frozen=True)
class PasswordChanged:
    """The credential was updated through the identity provider."""

    user_id: str
    email: str
    reset_at: datetime
    method: str | None = None

    @property
    def success(self) -> bool:
        return True


@dataclass(frozen=True)
class UsageReport:
    """Read-only issuance statistics against the monthly email quota."""

    total_issued: int
    issued_last_24h: int
    issued_last_30d: int
    quota_limit: int
    quota_remaining: int
    quota_usage_percent: str

    @property
    def success(self) -> bool:
        return True


IssueResult = IssuedCode | Failure
VerifyResult = VerifiedCode | Failure
ResetResult = PasswordChanged | Failure
UsageResult = UsageReport | Failure

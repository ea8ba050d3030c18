"""
Domain exceptions - Semantic error types for password reset.

This module defines domain-specific exceptions that communicate
business rule violations without leaking infrastructure details.
Each exception carries the ErrorKind it is reported as; messages are
safe to show to the caller.
"""

from .ports import ErrorKind


class ResetError(Exception):
    """Base class for password reset domain errors."""

    kind = ErrorKind.UNKNOWN
    default_message = "Unknown error occurred"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)

    @property
    def message(self) -> str:
        return str(self)


class InvalidInput(ResetError):
    """Malformed email, code or password."""

    kind = ErrorKind.VALIDATION_ERROR
    default_message = "Invalid input"


class NotFound(ResetError):
    """Requested record or user does not exist."""

    kind = ErrorKind.NOT_FOUND
    default_message = "Not found"


class UserNotFound(NotFound):
    """Email matches neither the profile store nor the identity provider."""

    default_message = "User not found"


class CodeNotFound(NotFound):
    """No code in the state the operation requires."""

    default_message = "Invalid verification code"


class RateLimited(ResetError):
    """Too many codes issued to one email inside the rolling window."""

    kind = ErrorKind.RATE_LIMITED
    default_message = "Too many password reset requests"


class CodeExpired(ResetError):
    """Code TTL or verified-code reset window has passed."""

    kind = ErrorKind.EXPIRED
    default_message = "Verification code has expired"


class AttemptsExceeded(ResetError):
    """Verification attempt limit reached for a code."""

    kind = ErrorKind.ATTEMPTS_EXCEEDED
    default_message = "Maximum verification attempts exceeded"


class ConfigurationError(ResetError):
    """Required provider credentials are missing. Fatal at startup."""

    kind = ErrorKind.CONFIGURATION_ERROR
    default_message = "Service is not configured"


class DependencyUnavailable(ResetError):
    """Store, email provider or identity provider failed or timed out."""

    kind = ErrorKind.DEPENDENCY_UNAVAILABLE
    default_message = "A required service is temporarily unavailable"


class EmailDeliveryFailed(DependencyUnavailable):
    """Email provider did not accept the message."""

    default_message = "Failed to send verification email"

"""
Port interfaces - Protocol definitions for infrastructure abstraction.

This module defines the interfaces (ports) that the domain requires
from infrastructure. Adapters implement these protocols.
"""

from datetime import datetime
from enum import Enum
from typing import Protocol

from .models import Identity, NewVerificationCode, UserProfile, VerificationCode


class CodeStatus(str, Enum):
    """
    Verification code lifecycle states.

    State Transitions (forward-only):
    - PENDING -> VERIFIED (matching code, not expired, attempts below limit)
    - VERIFIED -> USED (password changed within the reset window)

    Terminal State:
    - USED: Code consumed, kept for audit and rate-limit counting

    Note: Forward-only transitions are enforced at the repository level
    via conditional UPDATE statements.
    """

    PENDING = "pending"
    VERIFIED = "verified"
    USED = "used"


class CodePurpose(str, Enum):
    """What a verification code was issued for."""

    PASSWORD_RESET = "password_reset"


class ErrorKind(str, Enum):
    """
    Failure categories surfaced to callers.

    The transport layer maps each kind to a status code; the domain
    never inspects message text to decide what went wrong.
    """

    VALIDATION_ERROR = "validation_error"
    NOT_FOUND = "not_found"
    RATE_LIMITED = "rate_limited"
    EXPIRED = "expired"
    ATTEMPTS_EXCEEDED = "attempts_exceeded"
    CONFIGURATION_ERROR = "configuration_error"
    DEPENDENCY_UNAVAILABLE = "dependency_unavailable"
    UNKNOWN = "unknown"


class Clock(Protocol):
    """Port interface for the current time."""

    def now(self) -> datetime:
        """Return the current timezone-aware UTC time."""
        ...


class VerificationCodeRepository(Protocol):
    """Port interface for verification code persistence (the Code Store)."""

    def count_issued_since(self, email: str, purpose: CodePurpose, since: datetime) -> int:
        """
        Count codes issued to an email for a purpose since a point in time.

        Email comparison is case-insensitive.

        Raises:
            DependencyUnavailable: If the store cannot be queried
        """
        ...

    def create_if_below_limit(
        self, new_code: NewVerificationCode, since: datetime, limit: int
    ) -> VerificationCode | None:
        """
        Atomically count recent codes and insert a new PENDING code.

        The count and the insert run under a per-(email, purpose) lock so
        concurrent issuers cannot both slip under the limit.

        Args:
            new_code: Values for the record to create
            since: Start of the rate-limit window
            limit: Maximum codes allowed in the window

        Returns:
            The persisted record, or None if the window is already full
        """
        ...

    def find_latest_pending(
        self, email: str, code: str, purpose: CodePurpose
    ) -> VerificationCode | None:
        """Most recently created PENDING record matching email and code."""
        ...

    def mark_verified(self, code_id: str, expected_attempts: int, verified_at: datetime) -> bool:
        """
        Transition PENDING -> VERIFIED and increment attempts.

        Conditional on the record still being PENDING with exactly
        ``expected_attempts`` attempts, so only one concurrent caller wins.

        Returns:
            True if this call performed the transition
        """
        ...

    def find_latest_verified(self, email: str, purpose: CodePurpose) -> VerificationCode | None:
        """Most recently verified VERIFIED record for an email."""
        ...

    def mark_used(self, code_id: str, used_at: datetime) -> bool:
        """Transition VERIFIED -> USED. Returns True if the row changed."""
        ...

    def count_all(self) -> int:
        """Total number of codes ever issued."""
        ...

    def count_created_since(self, since: datetime) -> int:
        """Number of codes issued (any email, any purpose) since a point in time."""
        ...


class ProfileRepository(Protocol):
    """Port interface for the primary user profile store."""

    def find_by_email(self, email: str) -> UserProfile | None:
        """Exact-match lookup of a profile by email."""
        ...


class IdentityProvider(Protocol):
    """Port interface for the external identity provider."""

    def list_identities(self) -> list[Identity]:
        """Return every identity known to the provider."""
        ...

    def update_password(self, identity_id: str, new_password: str) -> None:
        """
        Set a new credential for an identity.

        Raises:
            DependencyUnavailable: If the provider rejects or cannot be reached
        """
        ...

    def ping(self) -> None:
        """Raise DependencyUnavailable if the provider is unreachable."""
        ...


class EmailSender(Protocol):
    """Port interface for email delivery."""

    def send_password_reset_code(
        self, email: str, display_name: str, code: str, expires_at: datetime
    ) -> str | None:
        """
        Send a password reset code to an email address.

        Args:
            email: Recipient email address
            display_name: Name used in the greeting
            code: Verification code in PREFIX-NNNNNN form
            expires_at: When the code stops being accepted

        Returns:
            Provider message id when the provider reports one

        Raises:
            EmailDeliveryFailed: If the provider does not accept the message
        """
        ...

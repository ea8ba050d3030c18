"""
Password reset domain service - verification code state machine.

This module contains the core business logic for resetting a password
with an emailed one-time code.

Code State Machine (Forward-Only Transitions)
=============================================

States:
- PENDING: Created by issue(); waiting for the user to submit it
- VERIFIED: Submitted correctly before expiry; may be used to reset
- USED: Consumed by a successful reset; kept for audit and rate limiting

Valid Transitions (forward-only, enforced by repository):
    PENDING  -> VERIFIED  (verify: code matches, not expired, attempts < max)
    VERIFIED -> USED      (reset_password: within the reset window)

Invalid Transitions (never allowed):
    USED -> any           (USED is terminal)
    any -> PENDING        (no backward movement)

Rejected verify calls leave the record PENDING. A successful verify
increments ``attempts`` as well, so ``attempts`` counts verification
calls that reached the record, not just wrong guesses.

Every public method returns a result value and never raises; domain
errors become Failure(kind, message) and anything unexpected becomes
Failure(UNKNOWN, ...) after being logged.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import TypeVar

from email_validator import EmailNotValidError, validate_email

from .codes import CodeGenerator, SystemClock, is_well_formed, normalize_code
from .exceptions import (
    AttemptsExceeded,
    CodeExpired,
    CodeNotFound,
    DependencyUnavailable,
    InvalidInput,
    RateLimited,
    ResetError,
    UserNotFound,
)
from .models import NewVerificationCode, VerificationCode
from .ports import (
    Clock,
    CodePurpose,
    EmailSender,
    ErrorKind,
    IdentityProvider,
    VerificationCodeRepository,
)
from .rate_limit import RateLimiter
from .results import (
    Failure,
    IssuedCode,
    IssueResult,
    PasswordChanged,
    ResetResult,
    VerifiedCode,
    VerifyResult,
)
from .users import UserResolver

logger = logging.getLogger(__name__)

T = TypeVar("T")

FALLBACK_METHOD = "identity_fallback"


@dataclass(frozen=True)
class ResetPolicy:
    """Time bounds and limits for codes and resets."""

    code_ttl: timedelta = timedelta(minutes=15)
    max_attempts: int = 3
    reset_window: timedelta = timedelta(minutes=30)
    min_password_length: int = 6
    max_password_bytes: int = 72  # bcrypt input limit
    verify_retries: int = 3  # re-reads after losing a concurrent verify


@dataclass
class PasswordResetService:
    """
    Domain service for password reset.

    Orchestrates issuing, verifying and consuming verification codes.
    All collaborators are injected; nothing is read from the environment.
    """

    repository: VerificationCodeRepository
    resolver: UserResolver
    email_sender: EmailSender
    identities: IdentityProvider
    rate_limiter: RateLimiter
    generator: CodeGenerator = field(default_factory=CodeGenerator)
    clock: Clock = field(default_factory=SystemClock)
    policy: ResetPolicy = field(default_factory=ResetPolicy)
    purpose: CodePurpose = CodePurpose.PASSWORD_RESET

    def issue(self, email: str) -> IssueResult:
        """
        Issue a new code and email it to the user.

        Steps short-circuit on the first failure: validate email, rate
        limit, resolve user, generate, persist PENDING, send email.

        A send failure returns DEPENDENCY_UNAVAILABLE but leaves the
        persisted code in place; it stays PENDING and counts toward the
        rate limit.
        """
        return self._guard("issue", email, lambda: self._issue(email))

    def verify(self, email: str, code: str) -> VerifyResult:
        """
        Verify a submitted code and move it PENDING -> VERIFIED.

        Only PENDING records are matched, so a code that was already
        verified cannot be verified again (NOT_FOUND).
        """
        return self._guard("verify", email, lambda: self._verify(email, code))

    def reset_password(self, email: str, new_password: str) -> ResetResult:
        """
        Change the password using the latest VERIFIED code.

        The code must have been verified within the reset window. Marking
        the code USED afterwards is best-effort: the credential has
        already changed, so a failure there is logged and not reported.
        """
        return self._guard("reset_password", email, lambda: self._reset(email, new_password))

    def _issue(self, email: str) -> IssuedCode:
        email = self._validate_email(email)
        now = self.clock.now()

        self.rate_limiter.check_and_count(email, self.purpose, now)
        user = self.resolver.resolve(email)

        code = self.generator.generate()
        expires_at = now + self.policy.code_ttl
        record = self.repository.create_if_below_limit(
            NewVerificationCode(
                email=email,
                code=code,
                purpose=self.purpose,
                created_at=now,
                expires_at=expires_at,
                max_attempts=self.policy.max_attempts,
                user_profile_id=user.id,
            ),
            since=self.rate_limiter.window_start(now),
            limit=self.rate_limiter.max_codes,
        )
        if record is None:
            raise RateLimited(self.rate_limiter.rejection_message())

        try:
            email_id = self.email_sender.send_password_reset_code(
                email, user.display_name, code, expires_at
            )
        except DependencyUnavailable:
            logger.warning(
                "Code persisted but email not delivered: email=%s code_id=%s", email, record.id
            )
            raise

        logger.info("Issued password reset code: email=%s code_id=%s", email, record.id)
        return IssuedCode(email=email, code=code, expires_at=expires_at, email_id=email_id)

    def _verify(self, email: str, code: str) -> VerifiedCode:
        email = self._validate_email(email)
        code = normalize_code(code)
        if not is_well_formed(code, self.generator.prefix, self.generator.digits):
            raise InvalidInput(
                "Invalid verification code format. "
                f"Expected: {self.generator.prefix}-{'#' * self.generator.digits}"
            )

        for _ in range(self.policy.verify_retries):
            record = self.repository.find_latest_pending(email, code, self.purpose)
            if record is None:
                raise CodeNotFound()

            now = self.clock.now()
            if now > record.expires_at:
                raise CodeExpired()
            if record.attempts >= record.max_attempts:
                raise AttemptsExceeded()

            if self.repository.mark_verified(record.id, record.attempts, now):
                logger.info("Verified code: email=%s code_id=%s", email, record.id)
                return VerifiedCode(email=email, verification_id=record.id, verified_at=now)

            # Another request changed the row between read and update
            logger.info("Concurrent verify on code_id=%s, re-reading", record.id)

        raise DependencyUnavailable("Verification could not be completed, please retry")

    def _reset(self, email: str, new_password: str) -> PasswordChanged:
        email = self._validate_email(email)
        if len(new_password) < self.policy.min_password_length:
            raise InvalidInput(
                f"Password must be at least {self.policy.min_password_length} characters long"
            )
        if len(new_password.encode()) > self.policy.max_password_bytes:
            raise InvalidInput(
                f"Password must be at most {self.policy.max_password_bytes} bytes long"
            )

        record = self.repository.find_latest_verified(email, self.purpose)
        if record is None:
            raise CodeNotFound(
                "No verified verification code found. Please verify your code first."
            )
        self._ensure_fresh(record, self.clock.now())

        user = self.resolver.resolve(email)
        if user.identity_id is None:
            raise UserNotFound("No login account is linked to this user")

        # Re-read the clock: the lookup above may have taken a while
        now = self.clock.now()
        self._ensure_fresh(record, now)

        self.identities.update_password(user.identity_id, new_password)
        self._mark_used(record, now)

        logger.info("Password reset: email=%s user_id=%s", email, user.id)
        return PasswordChanged(
            user_id=user.id,
            email=user.email,
            reset_at=now,
            method=FALLBACK_METHOD if user.via_fallback else None,
        )

    def _ensure_fresh(self, record: VerificationCode, now: datetime) -> None:
        if record.verified_at is None or now - record.verified_at > self.policy.reset_window:
            raise CodeExpired("Verification code has expired. Please request a new one.")

    def _mark_used(self, record: VerificationCode, now: datetime) -> None:
        try:
            if not self.repository.mark_used(record.id, now):
                logger.warning("Code was no longer VERIFIED when marking used: code_id=%s", record.id)
        except DependencyUnavailable as e:
            logger.warning("Failed to mark code used: code_id=%s error=%s", record.id, e)

    def _validate_email(self, email: str) -> str:
        """
        Syntactic email check. Returns the stripped address, case preserved.

        Deliverability (DNS) is not checked.
        """
        email = (email or "").strip()
        try:
            validate_email(email, check_deliverability=False)
        except EmailNotValidError:
            raise InvalidInput("Invalid email address") from None
        return email

    def _guard(self, operation: str, email: str, action: Callable[[], T]) -> T | Failure:
        try:
            return action()
        except DependencyUnavailable as e:
            logger.error("%s failed: email=%s kind=%s error=%s", operation, email, e.kind.value, e)
            return Failure(e.kind, e.message)
        except ResetError as e:
            logger.info("%s rejected: email=%s kind=%s reason=%s", operation, email, e.kind.value, e)
            return Failure(e.kind, e.message)
        except Exception:
            logger.exception("%s raised unexpectedly: email=%s", operation, email)
            return Failure(ErrorKind.UNKNOWN, "Unknown error occurred")

"""
Domain layer - Pure business logic with zero framework imports.

This package contains the core business logic for the password reset
verification code subsystem. It defines its own port interfaces for
infrastructure abstraction, ensuring true hexagonal architecture decoupling.
"""

from .codes import CodeGenerator, SystemClock
from .exceptions import (
    AttemptsExceeded,
    CodeExpired,
    CodeNotFound,
    ConfigurationError,
    DependencyUnavailable,
    EmailDeliveryFailed,
    InvalidInput,
    NotFound,
    RateLimited,
    ResetError,
    UserNotFound,
)
from .models import Identity, NewVerificationCode, User, UserProfile, VerificationCode
from .password_reset import PasswordResetService, ResetPolicy
from .ports import (
    Clock,
    CodePurpose,
    CodeStatus,
    EmailSender,
    ErrorKind,
    IdentityProvider,
    ProfileRepository,
    VerificationCodeRepository,
)
from .rate_limit import RateLimiter
from .results import Failure, IssuedCode, PasswordChanged, UsageReport, VerifiedCode
from .usage import UsageService
from .users import IdentityListingLookup, ProfileLookup, UserResolver

__all__ = [
    "AttemptsExceeded",
    "Clock",
    "CodeExpired",
    "CodeGenerator",
    "CodeNotFound",
    "CodePurpose",
    "CodeStatus",
    "ConfigurationError",
    "DependencyUnavailable",
    "EmailDeliveryFailed",
    "EmailSender",
    "ErrorKind",
    "Failure",
    "Identity",
    "IdentityListingLookup",
    "IdentityProvider",
    "InvalidInput",
    "IssuedCode",
    "NewVerificationCode",
    "NotFound",
    "PasswordChanged",
    "PasswordResetService",
    "ProfileLookup",
    "ProfileRepository",
    "RateLimited",
    "RateLimiter",
    "ResetError",
    "ResetPolicy",
    "SystemClock",
    "UsageReport",
    "UsageService",
    "User",
    "UserNotFound",
    "UserProfile",
    "UserResolver",
    "VerificationCode",
    "VerificationCodeRepository",
    "VerifiedCode",
]

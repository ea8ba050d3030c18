"""Repository adapters - Database implementations."""

from .postgres import (
    PostgresProfileRepository,
    PostgresVerificationCodeRepository,
    run_migrations,
    translate_errors,
)

__all__ = [
    "PostgresProfileRepository",
    "PostgresVerificationCodeRepository",
    "run_migrations",
    "translate_errors",
]

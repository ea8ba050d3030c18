"""
Domain value types.

Plain dataclasses shared between the domain services and the adapters.
Enum annotations refer to ports, which imports this module.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .ports import CodePurpose, CodeStatus


@dataclass(frozen=True)
class VerificationCode:
    """A persisted verification code record."""

    id: str
    email: str
    code: str
    purpose: CodePurpose
    status: CodeStatus
    created_at: datetime
    expires_at: datetime
    attempts: int
    max_attempts: int
    verified_at: datetime | None = None
    used_at: datetime | None = None
    user_profile_id: str | None = None  # weak reference, id only


@dataclass(frozen=True)
class NewVerificationCode:
    """Values for a code about to be persisted; the store assigns the id."""

    email: str
    code: str
    purpose: CodePurpose
    created_at: datetime
    expires_at: datetime
    max_attempts: int
    user_profile_id: str | None = None


@dataclass(frozen=True)
class UserProfile:
    """Row from the primary profile store."""

    id: str
    email: str
    first_name: str | None = None
    last_name: str | None = None
    auth_user_id: str | None = None


@dataclass(frozen=True)
class Identity:
    """Account as listed by the identity provider."""

    id: str
    email: str | None
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class User:
    """
    Unified user value produced by the resolver.

    ``identity_id`` is the identity-provider account whose credential a
    password reset changes. ``via_fallback`` is True when the user was
    only found in the identity listing and the names are placeholders.
    """

    id: str
    email: str
    first_name: str
    last_name: str
    identity_id: str | None
    via_fallback: bool = False

    @property
    def display_name(self) -> str:
        return self.first_name or "there"

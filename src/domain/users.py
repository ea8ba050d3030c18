"""
User resolver - maps an email address to a User.

Lookup strategies are tried in order. Each returns a User or None; the
first hit wins. Connectivity failures raise DependencyUnavailable and
stop the chain, so an outage is never reported as an unknown user.

Default order:
1. ProfileLookup - exact email match in the primary profile store
2. IdentityListingLookup - case-insensitive scan of the identity
   provider's account listing, with placeholder names when the profile
   is missing
"""

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Protocol

from .exceptions import UserNotFound
from .models import Identity, User
from .ports import IdentityProvider, ProfileRepository

logger = logging.getLogger(__name__)


class LookupStrategy(Protocol):
    """One way of finding a user by email."""

    name: str

    def lookup(self, email: str) -> User | None: ...


@dataclass
class ProfileLookup:
    """Primary strategy: the profile table, linked to its identity by auth_user_id."""

    profiles: ProfileRepository
    name: str = "profile"

    def lookup(self, email: str) -> User | None:
        profile = self.profiles.find_by_email(email)
        if profile is None:
            return None
        return User(
            id=profile.id,
            email=profile.email,
            first_name=profile.first_name or "",
            last_name=profile.last_name or "",
            identity_id=profile.auth_user_id,
        )


@dataclass
class IdentityListingLookup:
    """Fallback strategy: scan the identity provider's accounts."""

    identities: IdentityProvider
    name: str = "identity_listing"

    def lookup(self, email: str) -> User | None:
        wanted = email.strip().lower()
        for identity in self.identities.list_identities():
            if identity.email and identity.email.lower() == wanted:
                return self._to_user(identity, email)
        return None

    def _to_user(self, identity: Identity, email: str) -> User:
        """
        Build a placeholder User from an identity.

        first_name falls back to the email local-part and last_name to an
        empty string. These are not persisted anywhere.
        """
        metadata = identity.metadata or {}
        return User(
            id=identity.id,
            email=identity.email or email,
            first_name=metadata.get("first_name") or email.split("@")[0],
            last_name=metadata.get("last_name") or "",
            identity_id=identity.id,
            via_fallback=True,
        )


@dataclass
class UserResolver:
    """Runs lookup strategies in order until one finds the user."""

    strategies: Sequence[LookupStrategy]

    @classmethod
    def with_fallback(
        cls, profiles: ProfileRepository, identities: IdentityProvider
    ) -> "UserResolver":
        return cls(strategies=[ProfileLookup(profiles), IdentityListingLookup(identities)])

    def resolve(self, email: str) -> User:
        """
        Resolve an email to a User.

        Raises:
            UserNotFound: If no strategy finds the email
            DependencyUnavailable: If a backing store cannot be reached
        """
        for strategy in self.strategies:
            user = strategy.lookup(email)
            if user is not None:
                logger.debug("Resolved user via %s: email=%s id=%s", strategy.name, email, user.id)
                return user
            logger.info("User not found via %s: email=%s", strategy.name, email)
        raise UserNotFound()

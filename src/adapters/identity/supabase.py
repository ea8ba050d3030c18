"""
Supabase identity provider adapter - Implements IdentityProvider protocol.

Talks to the Supabase Auth (GoTrue) admin API with the service role key:

- GET  /auth/v1/admin/users?page=N&per_page=M   list accounts
- PUT  /auth/v1/admin/users/{id}                set a new password
- GET  /auth/v1/health                          reachability check

Listing is paginated until a short page is returned. Transport errors
and non-2xx responses raise DependencyUnavailable; the provider's
response body is logged, not propagated.
"""

import logging
from typing import Any

import httpx

from src.domain.exceptions import DependencyUnavailable
from src.domain.models import Identity

logger = logging.getLogger(__name__)


class SupabaseIdentityProvider:
    """
    Implements IdentityProvider protocol via the Supabase admin API.

    Uses structural subtyping - no explicit inheritance from Protocol.
    """

    def __init__(
        self,
        base_url: str,
        service_role_key: str,
        http_client: httpx.Client,
        page_size: int = 1000,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._http = http_client
        self._page_size = page_size
        self._headers = {
            "apikey": service_role_key,
            "Authorization": f"Bearer {service_role_key}",
        }

    def list_identities(self) -> list[Identity]:
        identities: list[Identity] = []
        page = 1
        while True:
            response = self._request(
                "GET",
                "/auth/v1/admin/users",
                params={"page": page, "per_page": self._page_size},
            )
            users = response.json().get("users") or []
            identities.extend(self._to_identity(user) for user in users)
            if len(users) < self._page_size:
                break
            page += 1

        logger.debug("Listed %d identities from Supabase", len(identities))
        return identities

    def update_password(self, identity_id: str, new_password: str) -> None:
        self._request(
            "PUT",
            f"/auth/v1/admin/users/{identity_id}",
            json={"password": new_password},
        )
        logger.info("Password updated for identity %s", identity_id)

    def ping(self) -> None:
        self._request("GET", "/auth/v1/health")

    def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        url = f"{self._base_url}{path}"
        try:
            response = self._http.request(method, url, headers=self._headers, **kwargs)
        except httpx.HTTPError as e:
            logger.error(
                "Identity provider unreachable: %s %s error_type=%s error=%s",
                method,
                path,
                type(e).__name__,
                e,
            )
            raise DependencyUnavailable("Identity provider is temporarily unavailable") from e

        if not response.is_success:
            logger.error(
                "Identity provider error: %s %s status=%s response=%s",
                method,
                path,
                response.status_code,
                response.text[:200],
            )
            raise DependencyUnavailable("Identity provider request failed")
        return response

    @staticmethod
    def _to_identity(user: dict[str, Any]) -> Identity:
        return Identity(
            id=str(user["id"]),
            email=user.get("email"),
            metadata=user.get("user_metadata") or {},
        )

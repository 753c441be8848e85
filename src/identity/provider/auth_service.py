"""Identity provider backed by the auth service's HTTP API.

``GET /auth/me`` answers ``{"status": true, "user": {...}}`` for the bearer
token it is given. ``GET /users/users`` lists users for an admin token and is
used to populate order owners.
"""

import httpx
import structlog

from identity.provider.port import Identity, IdentityProvider
from shared.errors import AuthenticationError, UpstreamServiceError

logger = structlog.get_logger(__name__)


def _identity_from(user: dict) -> Identity:
    return Identity(
        user_id=str(user.get("_id") or user.get("id")),
        role=user.get("role") or "user",
        name=user.get("name"),
        email=user.get("email"),
        phone_number=user.get("phoneNumber"),
        delivery_address=user.get("deliveryAddress"),
    )


class AuthServiceIdentityProvider(IdentityProvider):
    def __init__(
        self,
        base_url: str,
        service_token: str | None = None,
        timeout: float = 10.0,
        client: httpx.Client | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.service_token = service_token
        self._client = client or httpx.Client(timeout=timeout)

    def close(self) -> None:
        self._client.close()

    def _get(self, path: str, token: str) -> httpx.Response:
        try:
            return self._client.get(
                f"{self.base_url}{path}",
                headers={"Authorization": f"Bearer {token}"},
            )
        except httpx.HTTPError as exc:
            logger.error("identity_request_failed", path=path, error=str(exc))
            raise UpstreamServiceError("Identity service is unavailable") from exc

    def resolve(self, token: str) -> Identity:
        if not token:
            raise AuthenticationError("Authentication required")

        response = self._get("/auth/me", token)
        if response.status_code in (401, 403):
            raise AuthenticationError("Invalid or expired token")
        if response.is_error:
            raise UpstreamServiceError(f"Identity service answered {response.status_code}")

        user = response.json().get("user")
        if not user:
            raise AuthenticationError("Invalid or expired token")
        return _identity_from(user)

    def profiles(self, user_ids: list[str]) -> dict[str, Identity]:
        if not user_ids or not self.service_token:
            return {}

        response = self._get("/users/users", self.service_token)
        if response.is_error:
            logger.warning("user_listing_failed", status_code=response.status_code)
            raise UpstreamServiceError(f"Identity service answered {response.status_code}")

        body = response.json()
        users = body.get("users", body.get("data", [])) if isinstance(body, dict) else body
        wanted = set(user_ids)
        found = {}
        for user in users or []:
            identity = _identity_from(user)
            if identity.user_id in wanted:
                found[identity.user_id] = identity
        return found

"""Identity provider port.

Authentication and user management live in a separate service. The storefront
core only needs two things from it: who is calling (from a bearer token) and
contact details for order owners when administrators list orders.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass

ADMIN_ROLE = "admin"


@dataclass(frozen=True)
class Identity:
    """A resolved caller or order owner."""

    user_id: str
    role: str = "user"
    name: str | None = None
    email: str | None = None
    phone_number: str | None = None
    delivery_address: str | None = None

    @property
    def is_admin(self) -> bool:
        return self.role == ADMIN_ROLE


class IdentityProvider(ABC):
    """Abstract identity provider interface."""

    @abstractmethod
    def resolve(self, token: str) -> Identity:
        """Return the identity behind a bearer token.

        Raises AuthenticationError when the token is missing, unknown or expired.
        """
        ...

    @abstractmethod
    def profiles(self, user_ids: list[str]) -> dict[str, Identity]:
        """Look up contact details for the given users. Unknown ids are left out."""
        ...

    def close(self) -> None:
        """Release any connections held by the provider."""

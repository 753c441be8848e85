"""In-memory identity provider for development and testing."""

from identity.provider.port import Identity, IdentityProvider
from shared.errors import AuthenticationError


class InMemoryIdentityProvider(IdentityProvider):
    def __init__(self) -> None:
        self.tokens: dict[str, Identity] = {}
        self.users: dict[str, Identity] = {}

    def register(self, token: str, identity: Identity) -> Identity:
        self.tokens[token] = identity
        self.users[identity.user_id] = identity
        return identity

    def resolve(self, token: str) -> Identity:
        identity = self.tokens.get(token)
        if identity is None:
            raise AuthenticationError("Invalid or expired token")
        return identity

    def profiles(self, user_ids: list[str]) -> dict[str, Identity]:
        return {user_id: self.users[user_id] for user_id in user_ids if user_id in self.users}

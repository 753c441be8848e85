"""FastAPI dependencies shared by the storefront routers."""

from fastapi import Depends, Header, Request

from identity.provider.port import Identity
from shared.errors import AuthenticationError, ForbiddenError


def get_services(request: Request):
    return request.app.state.services


def current_requester(
    request: Request,
    authorization: str = Header(default=""),
) -> Identity:
    """Resolve the caller from an ``Authorization: Bearer <token>`` header."""
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise AuthenticationError("Authentication required")
    return get_services(request).identity.resolve(token.strip())


def require_admin(requester: Identity = Depends(current_requester)) -> Identity:
    if not requester.is_admin:
        raise ForbiddenError("Admin access required")
    return requester

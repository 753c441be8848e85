"""Error kinds shared across the storefront contexts.

Validation failures and missing records reuse Protean's own exceptions
(``ValidationError`` and ``ObjectNotFoundError``). The classes here cover the
remaining kinds that the HTTP boundary maps to status codes.
"""

from protean.exceptions import ValidationError


class StorefrontError(Exception):
    """Base class for errors raised by the storefront core."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class AuthenticationError(StorefrontError):
    """The caller could not be identified."""


class SignatureVerificationFailed(AuthenticationError):
    """A processor callback carried a missing or invalid signature."""


class ForbiddenError(StorefrontError):
    """The caller is identified but not allowed to see or change the resource."""


class UpstreamServiceError(StorefrontError):
    """An external collaborator failed or answered with an error."""


class PaymentProviderError(UpstreamServiceError):
    """A payment processor rejected or failed a request."""

    def __init__(self, message: str, processor: str | None = None) -> None:
        super().__init__(message)
        self.processor = processor


def error_message(exc: ValidationError) -> str:
    """Flatten Protean's ``{field: [messages]}`` mapping into one line."""
    messages = getattr(exc, "messages", None)
    if not isinstance(messages, dict):
        return str(exc)

    parts = []
    for field, field_messages in messages.items():
        if isinstance(field_messages, str):
            field_messages = [field_messages]
        for message in field_messages:
            parts.append(message if field.startswith("_") else f"{field}: {message}")
    return "; ".join(parts) or "Invalid request"

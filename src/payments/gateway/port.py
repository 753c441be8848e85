"""Payment processor port (abstract interface).

Defines the contract every processor adapter implements. The reconciler and
routes only talk to this interface, so Stripe, PayPal and the fake adapter
are interchangeable.
"""

from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal

from protean.exceptions import ValidationError

from ordering.order.order import PaymentMethod


def to_minor_units(price) -> int:
    """Convert a major-unit price to integer minor units, rounding half up."""
    return int((Decimal(str(price or 0)) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def from_minor_units(amount: int) -> str:
    return f"{(Decimal(amount) / 100):.2f}"


@dataclass(frozen=True)
class CheckoutLine:
    """One line of a checkout, priced in minor units."""

    name: str
    unit_amount: int
    quantity: int = 1
    size: str | None = None
    color: str | None = None
    image: str | None = None

    @property
    def amount(self) -> int:
        return self.unit_amount * self.quantity


@dataclass(frozen=True)
class CheckoutSession:
    """A processor-hosted checkout the customer is redirected to."""

    processor: PaymentMethod
    session_id: str
    redirect_url: str
    raw: dict = field(default_factory=dict, compare=False)


@dataclass(frozen=True)
class Confirmation:
    """A processor's statement that an order has been paid."""

    processor: PaymentMethod
    order_id: str
    confirmation_id: str


class PaymentProcessorAdapter(ABC):
    """Abstract payment processor interface."""

    processor: PaymentMethod
    # Payload key carrying the processor's own reference in direct confirmations
    reference_field: str

    @abstractmethod
    def create_session(self, order_id: str, user_id: str, lines: list[CheckoutLine]) -> CheckoutSession:
        """Open a processor checkout for the given lines, tagged with the order and user."""
        ...

    @abstractmethod
    def capture_confirmation(self, payload: Mapping) -> Confirmation:
        """Turn a client-relayed confirmation into a verified Confirmation."""
        ...

    @abstractmethod
    def parse_webhook(self, body: bytes, headers: Mapping) -> Confirmation | None:
        """Verify a processor callback and extract a confirmation.

        Returns None for authentic events that do not confirm a payment.
        """
        ...

    def close(self) -> None:
        """Release any connections held by the adapter."""

    def _require(self, payload: Mapping, *keys: str) -> list[str]:
        missing = [key for key in keys if not payload.get(key)]
        if missing:
            raise ValidationError({key: [f"{key} is required"] for key in missing})
        return [str(payload[key]) for key in keys]

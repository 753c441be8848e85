"""Order aggregate (CQRS): the core of the ordering domain.

An order is a snapshot of what a customer bought and what they paid. Item
data is copied at creation time and never recomputed. Status moves through a
closed state machine:

    Processing → Paid (payment confirmation only) → Shipped → Delivered
    Processing / Paid → Cancelled

Delivered and Cancelled are terminal.
"""

import math
from datetime import UTC, datetime
from enum import Enum

from protean import atomic_change, invariant
from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Float, HasMany, Identifier, Integer, String

from ordering.domain import ordering
from ordering.order.events import OrderPlaced, OrderStatusChanged, PaymentConfirmed


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class OrderStatus(Enum):
    PROCESSING = "Processing"
    PAID = "Paid"
    SHIPPED = "Shipped"
    DELIVERED = "Delivered"
    CANCELLED = "Cancelled"


class PaymentMethod(Enum):
    STRIPE = "Stripe"
    PAYPAL = "PayPal"


class InvalidPricePolicy(Enum):
    """What to do with an item price that is absent, non-numeric or negative."""

    ZERO = "zero"
    REJECT = "reject"


# State machine transition map
_VALID_TRANSITIONS = {
    OrderStatus.PROCESSING: {OrderStatus.PAID, OrderStatus.CANCELLED},
    OrderStatus.PAID: {OrderStatus.SHIPPED, OrderStatus.CANCELLED},
    OrderStatus.SHIPPED: {OrderStatus.DELIVERED},
    OrderStatus.DELIVERED: set(),  # Terminal
    OrderStatus.CANCELLED: set(),  # Terminal
}

# Paid is reachable only through payment confirmation
ADMIN_SETTABLE_STATUSES = frozenset(
    {
        OrderStatus.PROCESSING,
        OrderStatus.SHIPPED,
        OrderStatus.DELIVERED,
        OrderStatus.CANCELLED,
    }
)

# Processor → aggregate field holding that processor's correlation id
CORRELATION_FIELDS = {
    PaymentMethod.STRIPE: "stripe_session_id",
    PaymentMethod.PAYPAL: "paypal_order_id",
}


def can_transition(current: OrderStatus, target: OrderStatus) -> bool:
    """Return True when the state machine allows moving from current to target."""
    return target in _VALID_TRANSITIONS.get(current, set())


def parse_status(value) -> OrderStatus:
    """Turn a wire value into an OrderStatus, rejecting anything outside the enumeration."""
    if isinstance(value, OrderStatus):
        return value
    try:
        return OrderStatus(value)
    except ValueError:
        allowed = ", ".join(status.value for status in OrderStatus)
        raise ValidationError({"status": [f"Invalid status '{value}'. Expected one of: {allowed}"]}) from None


def parse_admin_status(value) -> OrderStatus:
    """Parse a status an administrator asked for. Paid is not accepted."""
    status = parse_status(value)
    if status not in ADMIN_SETTABLE_STATUSES:
        raise ValidationError({"status": [f"{status.value} can only be set by a payment confirmation"]})
    return status


def parse_payment_method(value) -> PaymentMethod:
    if isinstance(value, PaymentMethod):
        return value
    for method in PaymentMethod:
        if str(value).strip().lower() == method.value.lower():
            return method
    allowed = ", ".join(method.value for method in PaymentMethod)
    raise ValidationError({"processor": [f"Unknown payment processor '{value}'. Expected one of: {allowed}"]})


def coerce_price(raw, policy: InvalidPricePolicy = InvalidPricePolicy.ZERO) -> float:
    """Normalise an item price according to the configured policy."""
    try:
        price = float(raw)
    except (TypeError, ValueError):
        price = None

    if price is None or math.isnan(price) or math.isinf(price) or price < 0:
        if policy == InvalidPricePolicy.REJECT:
            raise ValidationError({"price": [f"Invalid item price: {raw!r}"]})
        return 0.0
    return price


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@ordering.entity(part_of="Order")
class OrderItem:
    """A product line copied into the order when it was placed.

    Name, price and variant data are a snapshot: later catalogue changes do
    not affect orders already placed.
    """

    product_id = Identifier(required=True)
    name = String(max_length=255, default="N/A")
    quantity = Integer(required=True, min_value=1)
    price = Float(required=True, min_value=0.0)
    size = String(max_length=50)
    color = String(max_length=50)
    image = String(max_length=1000, default="")
    position = Integer(default=0)


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@ordering.aggregate
class Order:
    user_id = Identifier(required=True)
    items = HasMany(OrderItem)
    total_amount = Float(required=True, min_value=0.0)
    status = String(
        choices=OrderStatus,
        default=OrderStatus.PROCESSING.value,
    )
    payment_method = String(max_length=50)
    stripe_session_id = String(max_length=255)
    paypal_order_id = String(max_length=255)
    is_paid = Boolean(default=False)
    paid_at = DateTime()
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def paid_orders_must_record_payment(self):
        if self.is_paid and self.paid_at is None:
            raise ValidationError({"paid_at": ["A paid order must record when it was paid"]})
        if self.is_paid and self.status == OrderStatus.PROCESSING.value:
            raise ValidationError({"status": ["A paid order cannot be in Processing"]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def create(
        cls,
        user_id,
        items_data,
        total_amount,
        stripe_session_id=None,
        paypal_order_id=None,
        price_policy=InvalidPricePolicy.ZERO,
    ):
        """Place a new order.

        Args:
            user_id: The identity placing the order.
            items_data: List of dicts with product_id, quantity and optionally
                        name, price, size, color, image.
            total_amount: Caller-computed order total, stored as given.
            stripe_session_id / paypal_order_id: Processor correlation ids the
                        client already obtained, if any.
            price_policy: How to treat absent or invalid item prices.
        """
        if not items_data:
            raise ValidationError({"items": ["An order must contain at least one item"]})

        items = []
        for position, data in enumerate(items_data):
            product_id = data.get("product_id")
            if not product_id:
                raise ValidationError({"items": [f"Item {position + 1} has no product reference"]})
            items.append(
                OrderItem(
                    product_id=str(product_id),
                    name=data.get("name") or "N/A",
                    quantity=data.get("quantity", 1),
                    price=coerce_price(data.get("price"), InvalidPricePolicy(price_policy)),
                    size=data.get("size"),
                    color=data.get("color"),
                    image=data.get("image") or "",
                    position=position,
                )
            )

        now = datetime.now(UTC)
        order = cls(
            user_id=user_id,
            items=items,
            total_amount=total_amount,
            status=OrderStatus.PROCESSING.value,
            stripe_session_id=stripe_session_id or None,
            paypal_order_id=paypal_order_id or None,
            is_paid=False,
            created_at=now,
            updated_at=now,
        )

        order.raise_(
            OrderPlaced(
                order_id=str(order.id),
                user_id=str(user_id),
                item_count=len(items),
                total_amount=order.total_amount,
                stripe_session_id=order.stripe_session_id,
                paypal_order_id=order.paypal_order_id,
                placed_at=now,
            )
        )
        return order

    # -------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------
    @property
    def ordered_items(self):
        return sorted(self.items, key=lambda item: item.position or 0)

    def correlation_id(self, method: PaymentMethod):
        return getattr(self, CORRELATION_FIELDS[method])

    def _assert_can_transition(self, target_status):
        """Validate that the current state allows transition to target."""
        current = OrderStatus(self.status)
        if not can_transition(current, target_status):
            raise ValidationError({"status": [f"Cannot transition from {current.value} to {target_status.value}"]})

    def _touch(self, now):
        # updated_at never moves backwards
        if self.updated_at is None or now >= self.updated_at:
            return now
        return self.updated_at

    # -------------------------------------------------------------------
    # Payment
    # -------------------------------------------------------------------
    def confirm_payment(self, method, confirmation_id):
        """Mark the order paid from a processor confirmation.

        Returns False when the same confirmation was already applied. That
        repeat changes nothing and raises no event.
        """
        method = parse_payment_method(method)
        if not confirmation_id:
            raise ValidationError({"confirmation_id": ["A processor confirmation id is required"]})

        field = CORRELATION_FIELDS[method]
        bound_id = getattr(self, field)

        if self.is_paid:
            if self.payment_method == method.value and bound_id == confirmation_id:
                return False
            raise ValidationError({"payment": ["Order has already been paid"]})

        if OrderStatus(self.status) == OrderStatus.CANCELLED:
            raise ValidationError({"status": ["A cancelled order cannot be paid"]})

        if bound_id and bound_id != confirmation_id:
            raise ValidationError({field: [f"Order is bound to a different {method.value} reference"]})

        self._assert_can_transition(OrderStatus.PAID)

        now = datetime.now(UTC)
        with atomic_change(self):
            setattr(self, field, confirmation_id)
            self.payment_method = method.value
            self.is_paid = True
            self.paid_at = now
            self.status = OrderStatus.PAID.value
            self.updated_at = self._touch(now)

        self.raise_(
            PaymentConfirmed(
                order_id=str(self.id),
                user_id=str(self.user_id),
                payment_method=method.value,
                confirmation_id=confirmation_id,
                total_amount=self.total_amount,
                paid_at=now,
            )
        )
        return True

    # -------------------------------------------------------------------
    # Administrative status changes
    # -------------------------------------------------------------------
    def update_status(self, new_status):
        """Move the order to an administrator-chosen status.

        Returns False when the order is already in that status.
        """
        target = parse_admin_status(new_status)
        current = OrderStatus(self.status)
        if target == current:
            return False

        self._assert_can_transition(target)

        now = datetime.now(UTC)
        with atomic_change(self):
            self.status = target.value
            self.updated_at = self._touch(now)

        self.raise_(
            OrderStatusChanged(
                order_id=str(self.id),
                previous_status=current.value,
                new_status=target.value,
                changed_at=now,
            )
        )
        return True

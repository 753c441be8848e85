"""Domain events for the Order aggregate.

Events are versioned, immutable facts. They are written to the event store
alongside each persisted change and form the order's audit trail.
"""

from protean.fields import DateTime, Float, Identifier, Integer, String

from ordering.domain import ordering


@ordering.event(part_of="Order")
class OrderPlaced:
    """A customer placed a new order. It starts in Processing and unpaid."""

    __version__ = 1

    order_id = Identifier(required=True)
    user_id = Identifier(required=True)
    item_count = Integer(required=True)
    total_amount = Float(required=True)
    stripe_session_id = String(max_length=255)
    paypal_order_id = String(max_length=255)
    placed_at = DateTime(required=True)


@ordering.event(part_of="Order")
class PaymentConfirmed:
    """A payment processor confirmed the order's payment."""

    __version__ = 1

    order_id = Identifier(required=True)
    user_id = Identifier(required=True)
    payment_method = String(required=True, max_length=50)
    confirmation_id = String(required=True, max_length=255)
    total_amount = Float(required=True)
    paid_at = DateTime(required=True)


@ordering.event(part_of="Order")
class OrderStatusChanged:
    """An administrator moved the order to a new status."""

    __version__ = 1

    order_id = Identifier(required=True)
    previous_status = String(required=True, max_length=50)
    new_status = String(required=True, max_length=50)
    changed_at = DateTime(required=True)

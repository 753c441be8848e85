"""Payment reconciliation: ties processor outcomes back to orders.

Starting a checkout reads the stored order and hands its item snapshot to the
chosen processor. Confirmations, whether relayed by the client or pushed by a
processor webhook, are verified by the adapter and then applied through the
idempotent ``ConfirmPayment`` command.
"""

from collections.abc import Mapping

import structlog
from protean.exceptions import ExpectedVersionError, ValidationError
from protean.utils.globals import current_domain

from ordering.order.lookup import get_order_for, parse_order_id
from ordering.order.order import Order, OrderStatus
from ordering.order.payment import ConfirmPayment
from payments.gateway import ProcessorRegistry
from payments.gateway.port import CheckoutLine, CheckoutSession, Confirmation, to_minor_units

logger = structlog.get_logger(__name__)

# Protean already retries a conflicting handler a few times. A conflict that
# survives that is re-applied once more against a fresh load.
CONFIRM_ATTEMPTS = 2


def checkout_lines(order: Order) -> list[CheckoutLine]:
    """Price an order's item snapshot for a processor, in minor units."""
    return [
        CheckoutLine(
            name=item.name or "N/A",
            unit_amount=to_minor_units(item.price),
            quantity=item.quantity or 1,
            size=item.size,
            color=item.color,
            image=item.image or None,
        )
        for item in order.ordered_items
    ]


class PaymentReconciler:
    def __init__(self, processors: ProcessorRegistry) -> None:
        self.processors = processors

    def start_checkout(self, order_id, requester, processor="Stripe") -> CheckoutSession:
        """Open a processor checkout for one of the requester's unpaid orders."""
        adapter = self.processors.get(processor)
        order = get_order_for(order_id, requester)

        if order.is_paid:
            raise ValidationError({"order_id": ["Order has already been paid"]})
        if order.status == OrderStatus.CANCELLED.value:
            raise ValidationError({"order_id": ["A cancelled order cannot be paid"]})

        session = adapter.create_session(
            order_id=str(order.id),
            user_id=str(order.user_id),
            lines=checkout_lines(order),
        )
        logger.info(
            "checkout_started",
            order_id=str(order.id),
            processor=adapter.processor.value,
            session_id=session.session_id,
        )
        return session

    def reconcile(self, processor, payload: Mapping, requester=None) -> Order:
        """Apply a client-relayed confirmation.

        When a requester is given, the order named in the payload must be
        visible to them before the processor is consulted.
        """
        adapter = self.processors.get(processor)
        if requester is not None and payload.get("orderId"):
            get_order_for(payload["orderId"], requester)

        confirmation = adapter.capture_confirmation(payload)
        return self._apply(confirmation)

    def reconcile_webhook(self, processor, body: bytes, headers: Mapping) -> Order | None:
        """Apply a processor webhook. Returns None for events that confirm nothing."""
        adapter = self.processors.get(processor)
        confirmation = adapter.parse_webhook(body, headers)
        if confirmation is None:
            return None
        return self._apply(confirmation)

    def _apply(self, confirmation: Confirmation) -> Order:
        """Record the confirmation on its order.

        A concurrent confirmation of the same order surfaces as a version
        conflict. Re-applying reloads the order, finds it already paid with
        this confirmation and leaves it untouched.
        """
        order_id = parse_order_id(confirmation.order_id)
        for attempt in range(1, CONFIRM_ATTEMPTS + 1):
            try:
                current_domain.process(
                    ConfirmPayment(
                        order_id=order_id,
                        payment_method=confirmation.processor.value,
                        confirmation_id=confirmation.confirmation_id,
                    ),
                    asynchronous=False,
                )
                break
            except ExpectedVersionError:
                if attempt == CONFIRM_ATTEMPTS:
                    raise
                logger.warning(
                    "confirmation_conflict_retry",
                    order_id=str(order_id),
                    payment_method=confirmation.processor.value,
                    attempt=attempt,
                )
        return current_domain.repository_for(Order).get(order_id)

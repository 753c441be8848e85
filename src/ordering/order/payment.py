"""Order payment: confirmation command and handler.

A confirmation is keyed by the processor's correlation id. Applying the same
confirmation twice is a no-op, so redirects, direct captures and webhooks may
all report the same payment without double-marking the order.
"""

import structlog
from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from ordering.domain import ordering
from ordering.order.order import CORRELATION_FIELDS, Order, parse_payment_method

logger = structlog.get_logger(__name__)


@ordering.command(part_of="Order")
class ConfirmPayment:
    order_id = Identifier(required=True)
    payment_method = String(required=True, max_length=50)
    confirmation_id = String(required=True, max_length=255)


@ordering.command_handler(part_of=Order)
class ConfirmPaymentHandler:
    @handle(ConfirmPayment)
    def confirm_payment(self, command):
        method = parse_payment_method(command.payment_method)
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)

        owner = repo.find_by_correlation(CORRELATION_FIELDS[method], command.confirmation_id)
        if owner is not None and str(owner.id) != str(order.id):
            raise ValidationError(
                {CORRELATION_FIELDS[method]: [f"{method.value} reference is already used by another order"]}
            )

        applied = order.confirm_payment(method, command.confirmation_id)
        if not applied:
            logger.info(
                "duplicate_confirmation_ignored",
                order_id=str(order.id),
                payment_method=method.value,
                confirmation_id=command.confirmation_id,
            )
            return False

        repo.add(order)
        logger.info(
            "payment_confirmed",
            order_id=str(order.id),
            payment_method=method.value,
            confirmation_id=command.confirmation_id,
        )
        return True

"""Order placement: command and handler."""

import json

import structlog
from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Float, Identifier, String, Text
from protean.utils.globals import current_domain

from ordering.domain import ordering
from ordering.order.order import CORRELATION_FIELDS, InvalidPricePolicy, Order, PaymentMethod

logger = structlog.get_logger(__name__)


@ordering.command(part_of="Order")
class PlaceOrder:
    user_id = Identifier(required=True)
    items = Text(required=True)  # JSON: list of item dicts
    total_amount = Float(required=True, min_value=0.0)
    stripe_session_id = String(max_length=255)
    paypal_order_id = String(max_length=255)
    price_policy = String(choices=InvalidPricePolicy, default=InvalidPricePolicy.ZERO.value)


@ordering.command_handler(part_of=Order)
class PlaceOrderHandler:
    @handle(PlaceOrder)
    def place_order(self, command):
        items_data = json.loads(command.items) if isinstance(command.items, str) else command.items

        repo = current_domain.repository_for(Order)
        hints = {
            PaymentMethod.STRIPE: command.stripe_session_id,
            PaymentMethod.PAYPAL: command.paypal_order_id,
        }
        for method, reference in hints.items():
            if reference and repo.find_by_correlation(CORRELATION_FIELDS[method], reference) is not None:
                raise ValidationError(
                    {CORRELATION_FIELDS[method]: [f"{method.value} reference is already used by another order"]}
                )

        order = Order.create(
            user_id=command.user_id,
            items_data=items_data,
            total_amount=command.total_amount,
            stripe_session_id=command.stripe_session_id,
            paypal_order_id=command.paypal_order_id,
            price_policy=InvalidPricePolicy(command.price_policy or InvalidPricePolicy.ZERO.value),
        )
        repo.add(order)

        logger.info(
            "order_placed",
            order_id=str(order.id),
            user_id=str(command.user_id),
            item_count=len(items_data),
            total_amount=command.total_amount,
        )
        return str(order.id)

"""Order reads with access control.

The requester is anything exposing ``user_id`` and ``is_admin`` (the
identity context's ``Identity`` in practice). Owners see their own orders;
administrators see all of them.
"""

from uuid import UUID

from protean.exceptions import ValidationError
from protean.utils.globals import current_domain

from ordering.order.order import Order
from shared.errors import ForbiddenError


def is_well_formed_id(order_id) -> bool:
    try:
        UUID(str(order_id))
    except ValueError:
        return False
    return True


def parse_order_id(order_id) -> str:
    """Reject ids that can never name an order before touching the store."""
    if not order_id or not is_well_formed_id(order_id):
        raise ValidationError({"order_id": [f"Invalid order ID '{order_id}'"]})
    return str(order_id)


def can_view(order: Order, requester) -> bool:
    return requester.is_admin or str(order.user_id) == str(requester.user_id)


def get_order_for(order_id, requester) -> Order:
    """Fetch one order on behalf of a requester.

    Raises ValidationError for a malformed id, ObjectNotFoundError when no
    such order exists, and ForbiddenError when the requester neither owns it
    nor is an administrator.
    """
    order = current_domain.repository_for(Order).get(parse_order_id(order_id))
    if not can_view(order, requester):
        raise ForbiddenError("Not authorized to view this order")
    return order


def orders_for_user(user_id) -> list[Order]:
    return current_domain.repository_for(Order).for_user(user_id)


def all_orders(page: int | None = None, page_size: int = 10) -> list[Order]:
    repo = current_domain.repository_for(Order)
    if page is None:
        return repo.everything()
    return repo.page(page, page_size)


def has_placed_order(user_id) -> bool:
    return current_domain.repository_for(Order).has_orders(user_id)

"""FastAPI routes for the Ordering domain.

Thin adapters that translate HTTP requests into domain commands and reads.
Static paths are declared before ``/{order_id}`` so they are not captured by
it. Handlers are plain functions so repository, identity and catalogue calls
run in the threadpool.
"""

import json

from fastapi import APIRouter, Depends, Query
from protean.utils.globals import current_domain

from identity.provider.port import Identity
from ordering.api.schemas import (
    AdminOrderListResponse,
    AdminOrderResponse,
    AnalyticsResponse,
    BulkUpdateRequest,
    BulkUpdateResponse,
    CreateOrderRequest,
    HasPlacedOrderResponse,
    MonthlySalesResponse,
    OrderEnvelope,
    OrderItemResponse,
    OrderListResponse,
    OrderOwner,
    OrderResponse,
    UpdateStatusRequest,
)
from ordering.order.bulk import bulk_update_orders
from ordering.order.creation import PlaceOrder
from ordering.order.lookup import all_orders, get_order_for, has_placed_order, orders_for_user, parse_order_id
from ordering.order.order import Order, parse_admin_status
from ordering.order.status import UpdateOrderStatus
from shared.dependencies import current_requester, get_services, require_admin

order_router = APIRouter(prefix="/orders", tags=["orders"])


def order_response(order: Order) -> OrderResponse:
    return OrderResponse(
        id=str(order.id),
        user=str(order.user_id),
        items=[
            OrderItemResponse(
                id=str(item.id),
                product_id=str(item.product_id),
                name=item.name or "N/A",
                quantity=item.quantity,
                price=item.price,
                size=item.size,
                color=item.color,
                image=item.image or "",
            )
            for item in order.ordered_items
        ],
        total_amount=order.total_amount,
        status=order.status,
        payment_method=order.payment_method,
        stripe_session_id=order.stripe_session_id,
        paypal_order_id=order.paypal_order_id,
        is_paid=bool(order.is_paid),
        paid_at=order.paid_at,
        created_at=order.created_at,
        updated_at=order.updated_at,
    )


def _owner(user_id: str, profiles: dict[str, Identity]) -> OrderOwner:
    profile = profiles.get(user_id)
    if profile is None:
        return OrderOwner(id=user_id)
    return OrderOwner(
        id=user_id,
        name=profile.name,
        email=profile.email,
        phone_number=profile.phone_number,
        delivery_address=profile.delivery_address,
    )


# ---------------------------------------------------------------------------
# Customer endpoints
# ---------------------------------------------------------------------------
@order_router.post("", status_code=201, response_model=OrderEnvelope)
def create_order(
    body: CreateOrderRequest,
    requester: Identity = Depends(current_requester),
    services=Depends(get_services),
) -> OrderEnvelope:
    command = PlaceOrder(
        user_id=requester.user_id,
        items=json.dumps(
            [
                {
                    "product_id": item.product,
                    "name": item.name,
                    "quantity": item.quantity,
                    "price": item.price,
                    "size": item.size,
                    "color": item.color,
                    "image": item.image,
                }
                for item in body.items
            ]
        ),
        total_amount=body.total_amount,
        stripe_session_id=body.stripe_session_id,
        paypal_order_id=body.paypal_order_id,
        price_policy=services.settings.on_invalid_price.value,
    )
    order_id = current_domain.process(command, asynchronous=False)
    order = current_domain.repository_for(Order).get(order_id)
    return OrderEnvelope(message="Order created successfully", order=order_response(order))


@order_router.get("", response_model=OrderListResponse)
def list_my_orders(requester: Identity = Depends(current_requester)) -> OrderListResponse:
    """The caller's orders, newest first."""
    return OrderListResponse(data=[order_response(order) for order in orders_for_user(requester.user_id)])


@order_router.get("/has-placed-order", response_model=HasPlacedOrderResponse)
def check_has_placed_order(requester: Identity = Depends(current_requester)) -> HasPlacedOrderResponse:
    return HasPlacedOrderResponse(has_placed_order=has_placed_order(requester.user_id))


# ---------------------------------------------------------------------------
# Admin endpoints
# ---------------------------------------------------------------------------
@order_router.get("/all", response_model=AdminOrderListResponse)
def list_all_orders(
    page: int | None = Query(default=None, ge=1),
    _admin: Identity = Depends(require_admin),
    services=Depends(get_services),
) -> AdminOrderListResponse:
    """All orders, newest first, with owner contact details."""
    orders = all_orders(page=page, page_size=services.settings.all_orders_page_size)
    profiles = services.identity.profiles(sorted({str(order.user_id) for order in orders}))
    return AdminOrderListResponse(
        page=page,
        data=[
            AdminOrderResponse(
                **order_response(order).model_dump(exclude={"user"}),
                user=_owner(str(order.user_id), profiles),
            )
            for order in orders
        ],
    )


@order_router.get("/analytics", response_model=AnalyticsResponse)
def get_analytics(
    _admin: Identity = Depends(require_admin),
    services=Depends(get_services),
) -> AnalyticsResponse:
    report = services.analytics.report()
    return AnalyticsResponse(
        total_sales=report.total_sales,
        total_orders=report.total_orders,
        active_users=report.active_users,
        low_stock_products=report.low_stock_products,
        monthly_sales=[MonthlySalesResponse(month=entry.month, total=entry.total) for entry in report.monthly_sales],
    )


@order_router.put("/bulk-update", response_model=BulkUpdateResponse)
def bulk_update(
    body: BulkUpdateRequest,
    _admin: Identity = Depends(require_admin),
) -> BulkUpdateResponse:
    result = bulk_update_orders(body.order_ids, body.status)
    return BulkUpdateResponse(
        message=f"{result.modified_count} order(s) updated to {result.status}",
        new_status=result.status,
        requested=result.requested,
        modified_count=result.modified_count,
        updated=result.updated,
        unchanged=result.unchanged,
        missing=result.missing,
        rejected=result.rejected,
        failed=result.failed,
    )


# ---------------------------------------------------------------------------
# Single order
# ---------------------------------------------------------------------------
@order_router.get("/{order_id}", response_model=OrderEnvelope)
def get_order(order_id: str, requester: Identity = Depends(current_requester)) -> OrderEnvelope:
    return OrderEnvelope(order=order_response(get_order_for(order_id, requester)))


@order_router.put("/{order_id}/status", response_model=OrderEnvelope)
def update_order_status(
    order_id: str,
    body: UpdateStatusRequest,
    _admin: Identity = Depends(require_admin),
) -> OrderEnvelope:
    order_id = parse_order_id(order_id)
    parse_admin_status(body.status)
    changed = current_domain.process(
        UpdateOrderStatus(order_id=order_id, status=body.status),
        asynchronous=False,
    )
    order = current_domain.repository_for(Order).get(order_id)
    message = "Order status updated" if changed else "Order status unchanged"
    return OrderEnvelope(message=message, order=order_response(order))

"""Pydantic request/response schemas for the Ordering API.

These are external contracts (anti-corruption layer), separate from
internal Protean commands. Field names travel as camelCase on the wire.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------------------------------------------------------------------------
# Request Schemas
# ---------------------------------------------------------------------------
class OrderItemRequest(WireModel):
    # Clients send the product reference as "product"
    product: str = Field(min_length=1)
    name: str | None = None
    quantity: int = Field(default=1, ge=1)
    price: Any = None  # coerced by the invalid-price policy
    size: str | None = None
    color: str | None = None
    image: str | None = None


class CreateOrderRequest(WireModel):
    items: list[OrderItemRequest]
    total_amount: float = Field(ge=0)
    stripe_session_id: str | None = None
    paypal_order_id: str | None = None

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "items": [
                        {
                            "product": "665f1c2e9b1d4a0012345678",
                            "name": "Linen Shirt",
                            "quantity": 2,
                            "price": 39.9,
                            "size": "M",
                            "color": "White",
                            "image": "https://cdn.example.com/shirt.jpg",
                        }
                    ],
                    "totalAmount": 79.8,
                }
            ]
        }
    }


class UpdateStatusRequest(WireModel):
    status: str


class BulkUpdateRequest(WireModel):
    order_ids: list[str]
    status: str


# ---------------------------------------------------------------------------
# Response Schemas
# ---------------------------------------------------------------------------
class OrderItemResponse(WireModel):
    id: str
    product_id: str
    name: str
    quantity: int
    price: float
    size: str | None = None
    color: str | None = None
    image: str = ""


class OrderResponse(WireModel):
    id: str
    user: str
    items: list[OrderItemResponse]
    total_amount: float
    status: str
    payment_method: str | None = None
    stripe_session_id: str | None = None
    paypal_order_id: str | None = None
    is_paid: bool = False
    paid_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class OrderOwner(WireModel):
    id: str
    name: str | None = None
    email: str | None = None
    phone_number: str | None = None
    delivery_address: str | None = None


class AdminOrderResponse(OrderResponse):
    user: OrderOwner


class OrderEnvelope(WireModel):
    status: bool = True
    message: str | None = None
    order: OrderResponse


class OrderListResponse(WireModel):
    status: bool = True
    data: list[OrderResponse]


class AdminOrderListResponse(WireModel):
    status: bool = True
    data: list[AdminOrderResponse]
    page: int | None = None


class HasPlacedOrderResponse(WireModel):
    status: bool = True
    has_placed_order: bool


class MonthlySalesResponse(WireModel):
    month: str
    total: float


class AnalyticsResponse(WireModel):
    total_sales: float
    total_orders: int
    active_users: int
    low_stock_products: int
    monthly_sales: list[MonthlySalesResponse]


class BulkUpdateResponse(WireModel):
    status: bool = True
    message: str
    new_status: str
    requested: int
    modified_count: int
    updated: list[str]
    unchanged: list[str]
    missing: list[str]
    rejected: dict[str, str]
    failed: dict[str, str] = {}

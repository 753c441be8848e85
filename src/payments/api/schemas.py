"""Pydantic request/response schemas for the Payment API."""

from typing import Any

from pydantic import Field

from ordering.api.schemas import OrderResponse, WireModel


class CheckoutSessionRequest(WireModel):
    order_id: str = Field(min_length=1)
    processor: str = "Stripe"
    # Accepted for client compatibility; the checkout is priced from the stored order
    items: list[dict[str, Any]] | None = None


class CheckoutSessionResponse(WireModel):
    status: bool = True
    url: str
    session_id: str
    processor: str


class PayPalCaptureRequest(WireModel):
    order_id: str | None = None
    paypal_order_id: str | None = None


class StripeConfirmRequest(WireModel):
    order_id: str | None = None
    session_id: str | None = None


class PaymentResultResponse(WireModel):
    status: bool = True
    message: str
    order: OrderResponse


class WebhookAckResponse(WireModel):
    status: bool = True
    received: bool = True
    order_id: str | None = None

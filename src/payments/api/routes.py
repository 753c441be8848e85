"""FastAPI routes for payments: checkout sessions and processor confirmations.

Handlers are plain functions so the blocking processor SDK and HTTP calls
run in the threadpool instead of on the event loop.
"""

from fastapi import APIRouter, Depends, Request

from identity.provider.port import Identity
from ordering.api.routes import order_response
from ordering.order.order import PaymentMethod
from payments.api.schemas import (
    CheckoutSessionRequest,
    CheckoutSessionResponse,
    PaymentResultResponse,
    PayPalCaptureRequest,
    StripeConfirmRequest,
    WebhookAckResponse,
)
from shared.dependencies import current_requester, get_services

payment_router = APIRouter(prefix="/payment", tags=["payment"])


@payment_router.post("/create-checkout-session", response_model=CheckoutSessionResponse)
def create_checkout_session(
    body: CheckoutSessionRequest,
    requester: Identity = Depends(current_requester),
    services=Depends(get_services),
) -> CheckoutSessionResponse:
    """Open a hosted checkout with the chosen processor for one of the caller's orders."""
    session = services.reconciler.start_checkout(body.order_id, requester, processor=body.processor)
    return CheckoutSessionResponse(
        url=session.redirect_url,
        session_id=session.session_id,
        processor=session.processor.value,
    )


@payment_router.post("/paypal-capture", response_model=PaymentResultResponse)
def paypal_capture(
    body: PayPalCaptureRequest,
    requester: Identity = Depends(current_requester),
    services=Depends(get_services),
) -> PaymentResultResponse:
    """Record a PayPal payment the customer approved."""
    order = services.reconciler.reconcile(
        PaymentMethod.PAYPAL,
        body.model_dump(by_alias=True),
        requester=requester,
    )
    return PaymentResultResponse(message="Payment captured successfully", order=order_response(order))


@payment_router.post("/stripe-confirm", response_model=PaymentResultResponse)
def stripe_confirm(
    body: StripeConfirmRequest,
    requester: Identity = Depends(current_requester),
    services=Depends(get_services),
) -> PaymentResultResponse:
    """Record a Stripe Checkout payment after the success redirect."""
    order = services.reconciler.reconcile(
        PaymentMethod.STRIPE,
        body.model_dump(by_alias=True),
        requester=requester,
    )
    return PaymentResultResponse(message="Payment confirmed successfully", order=order_response(order))


# ---------------------------------------------------------------------------
# Processor webhooks (authenticated by processor signature, not by user token)
# ---------------------------------------------------------------------------
async def raw_body(request: Request) -> bytes:
    return await request.body()


def _webhook(request: Request, body: bytes, processor: PaymentMethod) -> WebhookAckResponse:
    order = get_services(request).reconciler.reconcile_webhook(processor, body, request.headers)
    return WebhookAckResponse(order_id=str(order.id) if order is not None else None)


@payment_router.post("/webhooks/stripe", response_model=WebhookAckResponse)
def stripe_webhook(request: Request, body: bytes = Depends(raw_body)) -> WebhookAckResponse:
    return _webhook(request, body, PaymentMethod.STRIPE)


@payment_router.post("/webhooks/paypal", response_model=WebhookAckResponse)
def paypal_webhook(request: Request, body: bytes = Depends(raw_body)) -> WebhookAckResponse:
    return _webhook(request, body, PaymentMethod.PAYPAL)

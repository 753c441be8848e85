"""Stripe payment processor adapter.

Uses Stripe Checkout: the customer is redirected to a hosted payment page and
Stripe reports the outcome either through the success redirect (verified here
by retrieving the session) or through a signed ``checkout.session.completed``
webhook.

The API key is passed on every request instead of being set on the ``stripe``
module, so several adapters with different keys can coexist in one process.
"""

import hashlib
from collections.abc import Mapping

import stripe
import structlog
from protean.exceptions import ValidationError

from ordering.order.order import PaymentMethod
from payments.gateway.port import CheckoutLine, CheckoutSession, Confirmation, PaymentProcessorAdapter
from shared.errors import PaymentProviderError, SignatureVerificationFailed

logger = structlog.get_logger(__name__)

PAID_EVENTS = ("checkout.session.completed", "checkout.session.async_payment_succeeded")


def _metadata(session) -> dict:
    metadata = session.get("metadata") if hasattr(session, "get") else None
    return dict(metadata or {})


class StripeProcessor(PaymentProcessorAdapter):
    """Production Stripe Checkout adapter."""

    processor = PaymentMethod.STRIPE
    reference_field = "sessionId"

    def __init__(
        self,
        api_key: str,
        webhook_secret: str | None,
        frontend_url: str,
        currency: str = "eur",
    ) -> None:
        self.api_key = api_key
        self.webhook_secret = webhook_secret
        self.frontend_url = frontend_url.rstrip("/")
        self.currency = currency.lower()

    # -------------------------------------------------------------------
    # Checkout
    # -------------------------------------------------------------------
    def _line_item(self, line: CheckoutLine) -> dict:
        product_data = {
            "name": line.name,
            "metadata": {"size": line.size or "", "color": line.color or ""},
        }
        if line.image:
            product_data["images"] = [line.image]
        return {
            "price_data": {
                "currency": self.currency,
                "product_data": product_data,
                "unit_amount": line.unit_amount,
            },
            "quantity": line.quantity,
        }

    def _idempotency_key(self, order_id: str, lines: list[CheckoutLine]) -> str:
        fingerprint = "|".join(f"{line.name}:{line.unit_amount}:{line.quantity}" for line in lines)
        digest = hashlib.sha256(fingerprint.encode("utf-8")).hexdigest()[:16]
        return f"checkout_{order_id}_{digest}"

    def create_session(self, order_id: str, user_id: str, lines: list[CheckoutLine]) -> CheckoutSession:
        try:
            session = stripe.checkout.Session.create(
                mode="payment",
                payment_method_types=["card"],
                line_items=[self._line_item(line) for line in lines],
                success_url=f"{self.frontend_url}/order-confirmation?session_id={{CHECKOUT_SESSION_ID}}",
                cancel_url=f"{self.frontend_url}/checkout",
                client_reference_id=order_id,
                metadata={"userId": user_id, "orderId": order_id},
                api_key=self.api_key,
                idempotency_key=self._idempotency_key(order_id, lines),
            )
        except stripe.StripeError as exc:
            logger.error("stripe_checkout_failed", order_id=order_id, error=str(exc), error_type=type(exc).__name__)
            raise PaymentProviderError("Could not create Stripe checkout session", processor="Stripe") from exc

        logger.info("stripe_checkout_created", order_id=order_id, session_id=session.id)
        return CheckoutSession(
            processor=self.processor,
            session_id=session.id,
            redirect_url=session.url,
        )

    # -------------------------------------------------------------------
    # Confirmation
    # -------------------------------------------------------------------
    def _confirmation_from(self, session, expected_order_id: str | None = None) -> Confirmation:
        if session.get("payment_status") != "paid":
            raise ValidationError({"payment": ["Stripe has not completed this payment"]})

        order_id = _metadata(session).get("orderId") or session.get("client_reference_id")
        if not order_id:
            raise ValidationError({"orderId": ["Stripe session is not linked to an order"]})
        if expected_order_id is not None and str(order_id) != str(expected_order_id):
            raise ValidationError({"sessionId": ["Stripe session belongs to a different order"]})

        return Confirmation(processor=self.processor, order_id=str(order_id), confirmation_id=session.get("id"))

    def capture_confirmation(self, payload: Mapping) -> Confirmation:
        order_id, session_id = self._require(payload, "orderId", self.reference_field)
        try:
            session = stripe.checkout.Session.retrieve(session_id, api_key=self.api_key)
        except stripe.StripeError as exc:
            logger.error("stripe_session_lookup_failed", session_id=session_id, error=str(exc))
            raise PaymentProviderError("Could not verify Stripe checkout session", processor="Stripe") from exc
        return self._confirmation_from(session, expected_order_id=order_id)

    def parse_webhook(self, body: bytes, headers: Mapping) -> Confirmation | None:
        if not self.webhook_secret:
            raise SignatureVerificationFailed("Stripe webhooks are not configured")

        signature = {key.lower(): value for key, value in headers.items()}.get("stripe-signature")
        if not signature:
            raise SignatureVerificationFailed("Missing Stripe signature")

        try:
            event = stripe.Webhook.construct_event(body, signature, self.webhook_secret)
        except stripe.SignatureVerificationError as exc:
            logger.warning("stripe_webhook_signature_invalid", error=str(exc))
            raise SignatureVerificationFailed("Invalid Stripe signature") from exc
        except ValueError as exc:
            raise ValidationError({"body": ["Malformed Stripe event payload"]}) from exc

        logger.info("stripe_webhook_received", event_type=event["type"], event_id=event.get("id"))
        if event["type"] not in PAID_EVENTS:
            return None

        session = event["data"]["object"]
        if session.get("payment_status") != "paid":
            # Delayed payment methods complete later with async_payment_succeeded
            return None
        return self._confirmation_from(session)

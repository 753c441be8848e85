"""Configurable fake payment processor for development and testing.

Simulates a hosted checkout without any external calls. It can be configured
at runtime to succeed or fail and records every call it receives, which makes
it useful for automated tests and for development without processor
credentials.

Webhooks are accepted when the ``X-Gateway-Signature`` header is
``test-signature`` and the body is ``{"type": "payment.completed",
"orderId": ..., "confirmationId": ...}``.
"""

import json
from collections.abc import Mapping
from uuid import uuid4

from ordering.order.order import PaymentMethod
from payments.gateway.port import CheckoutLine, CheckoutSession, Confirmation, PaymentProcessorAdapter
from shared.errors import PaymentProviderError, SignatureVerificationFailed

TEST_SIGNATURE = "test-signature"

_REFERENCE_FIELDS = {
    PaymentMethod.STRIPE: "sessionId",
    PaymentMethod.PAYPAL: "paypalOrderId",
}


class FakeProcessor(PaymentProcessorAdapter):
    """Configurable fake processor."""

    def __init__(self, processor: PaymentMethod = PaymentMethod.STRIPE) -> None:
        self.processor = processor
        self.reference_field = _REFERENCE_FIELDS[processor]
        self.should_succeed: bool = True
        self.failure_reason: str = "Processor unavailable"
        self.calls: list[dict] = []

    def configure(self, should_succeed: bool, failure_reason: str = "Processor unavailable") -> None:
        """Configure processor behavior at runtime."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason

    def _fail_if_configured(self) -> None:
        if not self.should_succeed:
            raise PaymentProviderError(self.failure_reason, processor=self.processor.value)

    def create_session(self, order_id: str, user_id: str, lines: list[CheckoutLine]) -> CheckoutSession:
        self.calls.append(
            {
                "method": "create_session",
                "order_id": order_id,
                "user_id": user_id,
                "lines": list(lines),
            }
        )
        self._fail_if_configured()

        session_id = f"fake_sess_{uuid4().hex[:12]}"
        return CheckoutSession(
            processor=self.processor,
            session_id=session_id,
            redirect_url=f"https://checkout.fake.test/{session_id}",
        )

    def capture_confirmation(self, payload: Mapping) -> Confirmation:
        self.calls.append({"method": "capture_confirmation", "payload": dict(payload)})
        order_id, reference = self._require(payload, "orderId", self.reference_field)
        self._fail_if_configured()
        return Confirmation(processor=self.processor, order_id=order_id, confirmation_id=reference)

    def parse_webhook(self, body: bytes, headers: Mapping) -> Confirmation | None:
        self.calls.append({"method": "parse_webhook", "body": body})
        signature = {key.lower(): value for key, value in headers.items()}.get("x-gateway-signature")
        if signature != TEST_SIGNATURE:
            raise SignatureVerificationFailed("Invalid webhook signature")

        event = json.loads(body or b"{}")
        if event.get("type") != "payment.completed":
            return None
        order_id, reference = self._require(event, "orderId", "confirmationId")
        return Confirmation(processor=self.processor, order_id=order_id, confirmation_id=reference)

"""PayPal payment processor adapter (REST v2 over httpx).

Checkout creates a PayPal order whose ``custom_id`` is our order id and sends
the customer to its approval link. Confirmation arrives either from the client
after approval (``orderId`` + ``paypalOrderId``) or as a
``PAYMENT.CAPTURE.COMPLETED`` webhook verified through PayPal's
verify-webhook-signature API.

With ``verify_capture`` on, client-relayed confirmations are captured and
checked server-side. An order PayPal reports as already captured counts as
paid once its status reads ``COMPLETED``.
"""

import json
import time
from collections.abc import Mapping

import httpx
import structlog
from protean.exceptions import ValidationError

from ordering.order.order import PaymentMethod
from payments.gateway.port import (
    CheckoutLine,
    CheckoutSession,
    Confirmation,
    PaymentProcessorAdapter,
    from_minor_units,
)
from shared.errors import PaymentProviderError, SignatureVerificationFailed

logger = structlog.get_logger(__name__)

SANDBOX_URL = "https://api-m.sandbox.paypal.com"
CAPTURE_COMPLETED_EVENT = "PAYMENT.CAPTURE.COMPLETED"

# Webhook transmission headers → verify-webhook-signature fields
_SIGNATURE_HEADERS = {
    "paypal-auth-algo": "auth_algo",
    "paypal-cert-url": "cert_url",
    "paypal-transmission-id": "transmission_id",
    "paypal-transmission-sig": "transmission_sig",
    "paypal-transmission-time": "transmission_time",
}


class PayPalProcessor(PaymentProcessorAdapter):
    """PayPal Checkout adapter."""

    processor = PaymentMethod.PAYPAL
    reference_field = "paypalOrderId"

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        frontend_url: str,
        base_url: str = SANDBOX_URL,
        currency: str = "EUR",
        webhook_id: str | None = None,
        verify_capture: bool = False,
        timeout: float = 10.0,
        client: httpx.Client | None = None,
    ) -> None:
        self.client_id = client_id
        self.client_secret = client_secret
        self.frontend_url = frontend_url.rstrip("/")
        self.base_url = base_url.rstrip("/")
        self.currency = currency.upper()
        self.webhook_id = webhook_id
        self.verify_capture = verify_capture
        self._client = client or httpx.Client(timeout=timeout)
        self._token: str | None = None
        self._token_expires_at: float = 0.0

    def close(self) -> None:
        self._client.close()

    # -------------------------------------------------------------------
    # Transport
    # -------------------------------------------------------------------
    def _access_token(self) -> str:
        if self._token and time.monotonic() < self._token_expires_at:
            return self._token

        try:
            response = self._client.post(
                f"{self.base_url}/v1/oauth2/token",
                auth=(self.client_id, self.client_secret),
                data={"grant_type": "client_credentials"},
            )
        except httpx.HTTPError as exc:
            raise PaymentProviderError("Could not reach PayPal", processor="PayPal") from exc
        if response.is_error:
            logger.error("paypal_auth_failed", status_code=response.status_code)
            raise PaymentProviderError("PayPal rejected the client credentials", processor="PayPal")

        body = response.json()
        self._token = body["access_token"]
        # Refresh a minute early
        self._token_expires_at = time.monotonic() + max(int(body.get("expires_in", 0)) - 60, 0)
        return self._token

    def _send(self, method: str, path: str, **kwargs) -> httpx.Response:
        headers = {"Authorization": f"Bearer {self._access_token()}", **kwargs.pop("headers", {})}
        try:
            return self._client.request(method, f"{self.base_url}{path}", headers=headers, **kwargs)
        except httpx.HTTPError as exc:
            logger.error("paypal_request_failed", path=path, error=str(exc))
            raise PaymentProviderError("Could not reach PayPal", processor="PayPal") from exc

    def _call(self, method: str, path: str, **kwargs) -> dict:
        response = self._send(method, path, **kwargs)
        if response.is_error:
            logger.error("paypal_request_rejected", path=path, status_code=response.status_code)
            raise PaymentProviderError(f"PayPal answered {response.status_code}", processor="PayPal")
        return response.json() if response.content else {}

    # -------------------------------------------------------------------
    # Checkout
    # -------------------------------------------------------------------
    def _money(self, amount: int) -> dict:
        return {"currency_code": self.currency, "value": from_minor_units(amount)}

    def create_session(self, order_id: str, user_id: str, lines: list[CheckoutLine]) -> CheckoutSession:
        total = sum(line.amount for line in lines)
        body = {
            "intent": "CAPTURE",
            "purchase_units": [
                {
                    "reference_id": order_id,
                    "custom_id": order_id,
                    "description": f"Order {order_id}",
                    "amount": {
                        **self._money(total),
                        "breakdown": {"item_total": self._money(total)},
                    },
                    "items": [
                        {
                            "name": line.name[:127],
                            "description": " / ".join(part for part in (line.size, line.color) if part)[:127],
                            "quantity": str(line.quantity),
                            "unit_amount": self._money(line.unit_amount),
                        }
                        for line in lines
                    ],
                }
            ],
            "application_context": {
                "return_url": f"{self.frontend_url}/order-confirmation",
                "cancel_url": f"{self.frontend_url}/checkout",
                "user_action": "PAY_NOW",
            },
        }
        result = self._call(
            "POST",
            "/v2/checkout/orders",
            json=body,
            headers={"PayPal-Request-Id": f"checkout-{order_id}-{total}"},
        )

        approve = next(
            (link["href"] for link in result.get("links", []) if link.get("rel") in ("approve", "payer-action")),
            None,
        )
        if not approve:
            raise PaymentProviderError("PayPal did not return an approval link", processor="PayPal")

        logger.info("paypal_checkout_created", order_id=order_id, paypal_order_id=result["id"], user_id=user_id)
        return CheckoutSession(processor=self.processor, session_id=result["id"], redirect_url=approve, raw=result)

    # -------------------------------------------------------------------
    # Confirmation
    # -------------------------------------------------------------------
    def _captured_order(self, paypal_order_id: str, order_id: str) -> dict:
        response = self._send(
            "POST",
            f"/v2/checkout/orders/{paypal_order_id}/capture",
            json={},
            headers={"PayPal-Request-Id": f"capture-{order_id}"},
        )
        if response.status_code == 422 and "ORDER_ALREADY_CAPTURED" in response.text:
            return self._call("GET", f"/v2/checkout/orders/{paypal_order_id}")
        if response.is_error:
            logger.error("paypal_capture_failed", paypal_order_id=paypal_order_id, status_code=response.status_code)
            raise PaymentProviderError(f"PayPal capture failed ({response.status_code})", processor="PayPal")
        return response.json()

    def capture_confirmation(self, payload: Mapping) -> Confirmation:
        order_id, paypal_order_id = self._require(payload, "orderId", self.reference_field)

        if self.verify_capture:
            paypal_order = self._captured_order(paypal_order_id, order_id)
            if paypal_order.get("status") != "COMPLETED":
                raise ValidationError({"payment": ["PayPal has not completed this payment"]})
            units = paypal_order.get("purchase_units") or [{}]
            linked = units[0].get("custom_id") or units[0].get("reference_id")
            if linked and str(linked) != order_id:
                raise ValidationError({self.reference_field: ["PayPal order belongs to a different order"]})

        return Confirmation(processor=self.processor, order_id=order_id, confirmation_id=paypal_order_id)

    def parse_webhook(self, body: bytes, headers: Mapping) -> Confirmation | None:
        if not self.webhook_id:
            raise SignatureVerificationFailed("PayPal webhooks are not configured")

        lowered = {key.lower(): value for key, value in headers.items()}
        missing = [header for header in _SIGNATURE_HEADERS if not lowered.get(header)]
        if missing:
            raise SignatureVerificationFailed("Missing PayPal transmission headers")

        try:
            event = json.loads(body)
        except ValueError as exc:
            raise ValidationError({"body": ["Malformed PayPal event payload"]}) from exc

        verification = self._call(
            "POST",
            "/v1/notifications/verify-webhook-signature",
            json={
                **{field: lowered[header] for header, field in _SIGNATURE_HEADERS.items()},
                "webhook_id": self.webhook_id,
                "webhook_event": event,
            },
        )
        if verification.get("verification_status") != "SUCCESS":
            logger.warning("paypal_webhook_signature_invalid", event_id=event.get("id"))
            raise SignatureVerificationFailed("Invalid PayPal signature")

        logger.info("paypal_webhook_received", event_type=event.get("event_type"), event_id=event.get("id"))
        if event.get("event_type") != CAPTURE_COMPLETED_EVENT:
            return None

        resource = event.get("resource") or {}
        order_id = resource.get("custom_id")
        paypal_order_id = ((resource.get("supplementary_data") or {}).get("related_ids") or {}).get("order_id")
        if not order_id or not paypal_order_id:
            raise ValidationError({"resource": ["PayPal capture is not linked to an order"]})
        return Confirmation(processor=self.processor, order_id=str(order_id), confirmation_id=str(paypal_order_id))

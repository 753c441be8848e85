"""Integration tests for the Payment API."""

import json

from payments.gateway.fake_adapter import TEST_SIGNATURE

ALICE_TOKEN = "token-alice"
BOB_TOKEN = "token-bob"


def auth(token):
    return {"Authorization": f"Bearer {token}"}


def _create_order(client, token=ALICE_TOKEN):
    response = client.post(
        "/orders",
        json={"items": [{"product": "prod-001", "name": "Linen Shirt", "quantity": 1, "price": 39.9}], "totalAmount": 39.9},
        headers=auth(token),
    )
    assert response.status_code == 201
    return response.json()["order"]["id"]


class TestCheckoutSession:
    def test_create_checkout_session(self, client):
        order_id = _create_order(client)

        response = client.post(
            "/payment/create-checkout-session",
            json={"orderId": order_id, "items": [{"ignored": True}]},
            headers=auth(ALICE_TOKEN),
        )

        assert response.status_code == 200
        body = response.json()
        assert body["status"] is True
        assert body["processor"] == "Stripe"
        assert body["sessionId"].startswith("fake_sess_")
        assert body["url"].endswith(body["sessionId"])

    def test_paypal_checkout_session(self, client):
        order_id = _create_order(client)
        response = client.post(
            "/payment/create-checkout-session",
            json={"orderId": order_id, "processor": "PayPal"},
            headers=auth(ALICE_TOKEN),
        )
        assert response.json()["processor"] == "PayPal"

    def test_unknown_processor(self, client):
        order_id = _create_order(client)
        response = client.post(
            "/payment/create-checkout-session",
            json={"orderId": order_id, "processor": "Klarna"},
            headers=auth(ALICE_TOKEN),
        )
        assert response.status_code == 400

    def test_someone_elses_order(self, client):
        order_id = _create_order(client)
        response = client.post(
            "/payment/create-checkout-session", json={"orderId": order_id}, headers=auth(BOB_TOKEN)
        )
        assert response.status_code == 403

    def test_requires_authentication(self, client):
        response = client.post("/payment/create-checkout-session", json={"orderId": "x"})
        assert response.status_code == 401

    def test_processor_outage(self, client, processors):
        order_id = _create_order(client)
        processors.get("Stripe").configure(should_succeed=False, failure_reason="Stripe is unavailable")

        response = client.post(
            "/payment/create-checkout-session", json={"orderId": order_id}, headers=auth(ALICE_TOKEN)
        )

        assert response.status_code == 502
        assert response.json() == {"status": False, "message": "Stripe is unavailable"}


class TestConfirmations:
    def test_paypal_capture(self, client):
        order_id = _create_order(client)

        response = client.post(
            "/payment/paypal-capture",
            json={"orderId": order_id, "paypalOrderId": "PP-ORDER-1"},
            headers=auth(ALICE_TOKEN),
        )

        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "Payment captured successfully"
        assert body["order"]["status"] == "Paid"
        assert body["order"]["isPaid"] is True
        assert body["order"]["paymentMethod"] == "PayPal"
        assert body["order"]["paypalOrderId"] == "PP-ORDER-1"

    def test_repeated_capture_is_idempotent(self, client):
        order_id = _create_order(client)
        payload = {"orderId": order_id, "paypalOrderId": "PP-ORDER-1"}

        first = client.post("/payment/paypal-capture", json=payload, headers=auth(ALICE_TOKEN)).json()
        second = client.post("/payment/paypal-capture", json=payload, headers=auth(ALICE_TOKEN))

        assert second.status_code == 200
        assert second.json()["order"]["paidAt"] == first["order"]["paidAt"]

    def test_capture_missing_reference(self, client):
        order_id = _create_order(client)
        response = client.post("/payment/paypal-capture", json={"orderId": order_id}, headers=auth(ALICE_TOKEN))
        assert response.status_code == 400
        assert "paypalOrderId" in response.json()["message"]

    def test_capture_for_another_customer(self, client):
        order_id = _create_order(client)
        response = client.post(
            "/payment/paypal-capture",
            json={"orderId": order_id, "paypalOrderId": "PP-ORDER-1"},
            headers=auth(BOB_TOKEN),
        )
        assert response.status_code == 403

    def test_stripe_confirm(self, client):
        order_id = _create_order(client)
        response = client.post(
            "/payment/stripe-confirm",
            json={"orderId": order_id, "sessionId": "cs_test_1"},
            headers=auth(ALICE_TOKEN),
        )
        assert response.status_code == 200
        assert response.json()["order"]["stripeSessionId"] == "cs_test_1"

    def test_second_processor_cannot_pay_again(self, client):
        order_id = _create_order(client)
        client.post(
            "/payment/stripe-confirm", json={"orderId": order_id, "sessionId": "cs_test_1"}, headers=auth(ALICE_TOKEN)
        )

        response = client.post(
            "/payment/paypal-capture",
            json={"orderId": order_id, "paypalOrderId": "PP-ORDER-1"},
            headers=auth(ALICE_TOKEN),
        )

        assert response.status_code == 400
        assert "already been paid" in response.json()["message"]


class TestWebhooks:
    def test_signed_webhook_confirms_payment(self, client):
        order_id = _create_order(client)
        body = json.dumps({"type": "payment.completed", "orderId": order_id, "confirmationId": "cs_test_1"})

        response = client.post(
            "/payment/webhooks/stripe",
            content=body,
            headers={"X-Gateway-Signature": TEST_SIGNATURE, "Content-Type": "application/json"},
        )

        assert response.status_code == 200
        assert response.json() == {"status": True, "received": True, "orderId": order_id}
        order = client.get(f"/orders/{order_id}", headers=auth(ALICE_TOKEN)).json()["order"]
        assert order["status"] == "Paid"

    def test_forged_webhook(self, client):
        order_id = _create_order(client)
        body = json.dumps({"type": "payment.completed", "orderId": order_id, "confirmationId": "cs_test_1"})

        response = client.post("/payment/webhooks/paypal", content=body, headers={"X-Gateway-Signature": "forged"})

        assert response.status_code == 401
        order = client.get(f"/orders/{order_id}", headers=auth(ALICE_TOKEN)).json()["order"]
        assert order["isPaid"] is False

    def test_ignored_event_is_acknowledged(self, client):
        response = client.post(
            "/payment/webhooks/paypal",
            content=json.dumps({"type": "payment.created"}),
            headers={"X-Gateway-Signature": TEST_SIGNATURE},
        )
        assert response.status_code == 200
        assert response.json()["orderId"] is None

"""Shared BDD fixtures and step definitions for the Ordering domain."""

import json

import pytest
from ordering.order.creation import PlaceOrder
from ordering.order.order import Order
from protean import current_domain
from pytest_bdd import given, parsers, then

TOKENS = {
    "alice": "token-alice",
    "bob": "token-bob",
    "admin": "token-admin",
}


@pytest.fixture()
def headers_for():
    def _headers(name):
        return {"Authorization": f"Bearer {TOKENS[name]}"}

    return _headers


@pytest.fixture()
def outcome():
    """Container for the last step's result or captured error."""
    return {"result": None, "error": None}


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(parsers.cfparse('user "{name}" placed an order'), target_fixture="order_id")
def _(name, identity):
    requester = identity.resolve(TOKENS[name])
    return current_domain.process(
        PlaceOrder(
            user_id=requester.user_id,
            items=json.dumps([{"product_id": "prod-001", "name": "Linen Shirt", "quantity": 2, "price": 39.9}]),
            total_amount=79.8,
        ),
        asynchronous=False,
    )


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse('the order status is "{status}"'))
def _(order_id, status):
    assert current_domain.repository_for(Order).get(order_id).status == status


@then(parsers.cfparse('the request is rejected with "{message}"'))
def _(outcome, message):
    assert outcome["error"] is not None
    assert any(message in text for texts in outcome["error"].messages.values() for text in texts)

"""Application tests for single and bulk administrative status changes."""

import json
from unittest.mock import patch

import pytest
from ordering.order import bulk
from ordering.order.bulk import bulk_update_orders
from ordering.order.creation import PlaceOrder
from ordering.order.order import Order, OrderStatus
from ordering.order.payment import ConfirmPayment
from ordering.order.status import UpdateOrderStatus
from protean import current_domain
from protean.exceptions import ExpectedVersionError, ObjectNotFoundError, ValidationError

MISSING_ID = "3f1f0c2a-0000-4000-8000-000000000000"


def _place():
    return current_domain.process(
        PlaceOrder(
            user_id="user-alice",
            items=json.dumps([{"product_id": "prod-001", "quantity": 1, "price": 10.0}]),
            total_amount=10.0,
        ),
        asynchronous=False,
    )


def _paid_order():
    order_id = _place()
    current_domain.process(
        ConfirmPayment(order_id=order_id, payment_method="Stripe", confirmation_id=f"cs_{order_id}"),
        asynchronous=False,
    )
    return order_id


def _status(order_id):
    return current_domain.repository_for(Order).get(order_id).status


class TestUpdateOrderStatus:
    def test_ship_paid_order(self):
        order_id = _paid_order()
        changed = current_domain.process(UpdateOrderStatus(order_id=order_id, status="Shipped"), asynchronous=False)
        assert changed is True
        assert _status(order_id) == OrderStatus.SHIPPED.value

    def test_same_status_reports_unchanged(self):
        order_id = _place()
        changed = current_domain.process(
            UpdateOrderStatus(order_id=order_id, status="Processing"),
            asynchronous=False,
        )
        assert changed is False

    def test_invalid_status_rejected(self):
        order_id = _paid_order()
        with pytest.raises(ValidationError):
            current_domain.process(UpdateOrderStatus(order_id=order_id, status="Lost"), asynchronous=False)
        assert _status(order_id) == OrderStatus.PAID.value

    def test_unknown_order(self):
        with pytest.raises(ObjectNotFoundError):
            current_domain.process(UpdateOrderStatus(order_id=MISSING_ID, status="Shipped"), asynchronous=False)


class TestBulkUpdate:
    def test_five_orders_and_one_missing(self):
        order_ids = [_paid_order() for _ in range(5)]

        result = bulk_update_orders([*order_ids, MISSING_ID], "Shipped")

        assert result.modified_count == 5
        assert sorted(result.updated) == sorted(order_ids)
        assert result.missing == [MISSING_ID]
        assert result.rejected == {}
        assert all(_status(order_id) == OrderStatus.SHIPPED.value for order_id in order_ids)

    def test_malformed_ids_reported_as_missing(self):
        order_id = _paid_order()
        result = bulk_update_orders([order_id, "not-an-id"], "Shipped")
        assert result.updated == [order_id]
        assert result.missing == ["not-an-id"]

    def test_disallowed_transitions_reported_per_order(self):
        paid = _paid_order()
        unpaid = _place()

        result = bulk_update_orders([paid, unpaid], "Shipped")

        assert result.updated == [paid]
        assert list(result.rejected) == [unpaid]
        assert "Cannot transition from Processing to Shipped" in result.rejected[unpaid]
        assert _status(unpaid) == OrderStatus.PROCESSING.value

    def test_orders_already_in_status_are_unchanged(self):
        order_id = _place()
        result = bulk_update_orders([order_id], "Processing")
        assert result.unchanged == [order_id]
        assert result.modified_count == 0

    def test_duplicate_ids_applied_once(self):
        order_id = _paid_order()
        result = bulk_update_orders([order_id, order_id], "Shipped")
        assert result.requested == 1
        assert result.updated == [order_id]

    def test_invalid_status_rejects_whole_request(self):
        order_id = _paid_order()
        with pytest.raises(ValidationError):
            bulk_update_orders([order_id], "Lost")
        assert _status(order_id) == OrderStatus.PAID.value

    def test_paid_is_not_accepted(self):
        with pytest.raises(ValidationError):
            bulk_update_orders([_place()], "Paid")

    def test_empty_id_list_rejected(self):
        with pytest.raises(ValidationError):
            bulk_update_orders([], "Shipped")


class TestBulkUpdateFailures:
    def _failing_on(self, failures):
        real_apply = bulk._apply_status

        def apply(order_id, status):
            if order_id in failures:
                raise failures[order_id]
            return real_apply(order_id, status)

        return apply

    def test_version_conflict_is_reported_and_others_still_commit(self):
        first, conflicted, last = (_paid_order() for _ in range(3))

        with patch.object(bulk, "_apply_status", side_effect=self._failing_on({conflicted: ExpectedVersionError("v2")})):
            result = bulk_update_orders([first, conflicted, last], "Shipped")

        assert result.updated == [first, last]
        assert result.rejected == {conflicted: bulk.CONCURRENT_CHANGE}
        assert result.failed == {}
        assert _status(first) == OrderStatus.SHIPPED.value
        assert _status(conflicted) == OrderStatus.PAID.value
        assert _status(last) == OrderStatus.SHIPPED.value

    def test_store_failure_is_reported_in_failed(self):
        committed, broken = _paid_order(), _paid_order()

        with patch.object(bulk, "_apply_status", side_effect=self._failing_on({broken: RuntimeError("db down")})):
            result = bulk_update_orders([committed, broken], "Shipped")

        assert result.updated == [committed]
        assert result.failed == {broken: bulk.UPDATE_FAILED}
        assert result.requested == 2
        assert _status(committed) == OrderStatus.SHIPPED.value

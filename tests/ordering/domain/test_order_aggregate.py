"""Tests for Order creation: item snapshots, defaults and input validation."""

import pytest
from ordering.order.events import OrderPlaced
from ordering.order.order import InvalidPricePolicy, Order, OrderItem, OrderStatus, coerce_price
from protean.exceptions import ValidationError


def _items(count=1, **overrides):
    return [
        {
            "product_id": f"prod-{index:03d}",
            "name": f"Product {index}",
            "quantity": 1,
            "price": 10.0,
            "size": "M",
            "color": "Blue",
            "image": f"https://cdn.example.com/{index}.jpg",
            **overrides,
        }
        for index in range(1, count + 1)
    ]


def _make_order(items=None, total_amount=100.0, **kwargs):
    return Order.create(
        user_id="user-alice",
        items_data=_items() if items is None else items,
        total_amount=total_amount,
        **kwargs,
    )


class TestOrderCreation:
    def test_new_order_is_processing_and_unpaid(self):
        order = _make_order()
        assert order.status == OrderStatus.PROCESSING.value
        assert order.is_paid is False
        assert order.paid_at is None
        assert order.payment_method is None

    def test_items_are_kept_in_order(self):
        order = _make_order(items=_items(3))
        assert len(order.items) == 3
        assert [item.product_id for item in order.ordered_items] == ["prod-001", "prod-002", "prod-003"]

    def test_item_snapshot_fields(self):
        order = _make_order()
        item = order.ordered_items[0]
        assert item.name == "Product 1"
        assert item.price == 10.0
        assert item.size == "M"
        assert item.color == "Blue"
        assert item.image == "https://cdn.example.com/1.jpg"

    def test_total_amount_is_stored_as_given(self):
        # Not recomputed from the items
        order = _make_order(items=_items(2), total_amount=123.45)
        assert order.total_amount == 123.45

    def test_missing_name_and_image_get_defaults(self):
        order = _make_order(items=[{"product_id": "prod-001", "quantity": 2, "price": 5}])
        item = order.ordered_items[0]
        assert item.name == "N/A"
        assert item.image == ""

    def test_missing_quantity_defaults_to_one(self):
        order = _make_order(items=[{"product_id": "prod-001", "price": 5}])
        assert order.ordered_items[0].quantity == 1

    def test_timestamps_are_set(self):
        order = _make_order()
        assert order.created_at is not None
        assert order.updated_at == order.created_at

    def test_processor_hints_are_recorded(self):
        order = _make_order(stripe_session_id="cs_test_123", paypal_order_id="PP-123")
        assert order.stripe_session_id == "cs_test_123"
        assert order.paypal_order_id == "PP-123"

    def test_blank_processor_hints_are_not_recorded(self):
        order = _make_order(stripe_session_id="", paypal_order_id="")
        assert order.stripe_session_id is None
        assert order.paypal_order_id is None

    def test_raises_order_placed_event(self):
        order = _make_order(items=_items(2), total_amount=20.0)
        events = [e for e in order._events if isinstance(e, OrderPlaced)]
        assert len(events) == 1
        assert events[0].order_id == str(order.id)
        assert events[0].user_id == "user-alice"
        assert events[0].item_count == 2
        assert events[0].total_amount == 20.0


class TestOrderCreationValidation:
    def test_empty_items_rejected(self):
        with pytest.raises(ValidationError) as exc:
            _make_order(items=[])
        assert "items" in exc.value.messages

    def test_item_without_product_reference_rejected(self):
        with pytest.raises(ValidationError) as exc:
            _make_order(items=[{"name": "Mystery", "quantity": 1, "price": 1.0}])
        assert "items" in exc.value.messages

    def test_zero_quantity_rejected(self):
        with pytest.raises(ValidationError):
            _make_order(items=_items(quantity=0))

    def test_negative_total_rejected(self):
        with pytest.raises(ValidationError):
            _make_order(total_amount=-1.0)


class TestInvalidPricePolicy:
    @pytest.mark.parametrize("raw", [None, "", "abc", -5, float("nan"), float("inf")])
    def test_zero_policy_coerces_invalid_prices(self, raw):
        assert coerce_price(raw, InvalidPricePolicy.ZERO) == 0.0

    @pytest.mark.parametrize("raw, expected", [(19.99, 19.99), ("12.50", 12.5), (0, 0.0), (7, 7.0)])
    def test_valid_prices_pass_through(self, raw, expected):
        assert coerce_price(raw, InvalidPricePolicy.ZERO) == expected

    def test_reject_policy_raises(self):
        with pytest.raises(ValidationError) as exc:
            coerce_price("abc", InvalidPricePolicy.REJECT)
        assert "price" in exc.value.messages

    def test_order_uses_zero_policy_by_default(self):
        order = _make_order(items=_items(price="not-a-number"))
        assert order.ordered_items[0].price == 0.0

    def test_order_with_reject_policy(self):
        with pytest.raises(ValidationError):
            _make_order(items=_items(price=None), price_policy=InvalidPricePolicy.REJECT)

    def test_policy_accepts_its_wire_value(self):
        with pytest.raises(ValidationError):
            _make_order(items=_items(price=-3), price_policy="reject")


class TestOrderItemEntity:
    def test_price_cannot_be_negative(self):
        with pytest.raises(ValidationError):
            OrderItem(product_id="prod-001", quantity=1, price=-0.01)

    def test_defaults(self):
        item = OrderItem(product_id="prod-001", quantity=1, price=1.0)
        assert item.name == "N/A"
        assert item.image == ""

"""Application tests for order expiry, failure and fulfillment progression."""

from datetime import UTC, datetime, timedelta

import pytest
from marketplace.exceptions import PaymentVerificationFailed
from marketplace.order.events import OrderFailed
from marketplace.order.expiry import ExpireStaleOrders
from marketplace.order.order import Order, OrderStatus
from marketplace.order.status import AdvanceOrderStatus, FailOrder
from protean import current_domain
from protean.exceptions import ValidationError


def _order(order_id):
    return current_domain.repository_for(Order).get(order_id)


def _advance(order_id, status):
    return current_domain.process(AdvanceOrderStatus(order_id=order_id, status=status), asynchronous=False)


def _failures(order_id):
    messages = current_domain.event_store.store.read("marketplace::order")
    return [
        m
        for m in messages
        if m.metadata
        and m.metadata.headers
        and m.metadata.headers.type == OrderFailed.__type__
        and m.data.get("order_id") == str(order_id)
    ]


@pytest.fixture()
def placed(campus, add_to_cart, placer):
    add_to_cart(campus.user, campus.chips, campus.canteen, 1)
    return placer.place_order(campus.user.id, "delivery", address="Hostel 4")


class TestExpiry:
    def test_stale_unpaid_orders_fail(self, placed):
        later = datetime.now(UTC) + timedelta(minutes=11)

        expired = current_domain.process(ExpireStaleOrders(as_of=later), asynchronous=False)

        assert expired == 1
        order = _order(placed.order_id)
        assert order.status == OrderStatus.FAILED.value
        assert order.failure_reason == "reservation expired"

    def test_orders_within_window_are_kept(self, placed):
        expired = current_domain.process(ExpireStaleOrders(), asynchronous=False)

        assert expired == 0
        assert _order(placed.order_id).status == OrderStatus.PENDING_PAYMENT.value

    def test_paid_orders_are_never_expired(self, placed, pay):
        pay(placed)
        later = datetime.now(UTC) + timedelta(minutes=30)

        assert current_domain.process(ExpireStaleOrders(as_of=later), asynchronous=False) == 0
        assert _order(placed.order_id).status == OrderStatus.IN_PROGRESS.value

    def test_payment_after_expiry_is_rejected(self, placed, pay):
        current_domain.process(
            ExpireStaleOrders(as_of=datetime.now(UTC) + timedelta(minutes=11)),
            asynchronous=False,
        )

        with pytest.raises(ValidationError):
            pay(placed)

    def test_expired_order_records_failure_event(self, placed):
        current_domain.process(
            ExpireStaleOrders(as_of=datetime.now(UTC) + timedelta(minutes=11)),
            asynchronous=False,
        )

        failures = _failures(placed.order_id)
        assert len(failures) == 1
        assert failures[0].data["reason"] == "reservation expired"
        assert failures[0].data["previous_status"] == OrderStatus.PENDING_PAYMENT.value


class TestFailOrder:
    def test_fails_unpaid_order(self, placed):
        assert current_domain.process(FailOrder(order_id=placed.order_id, reason="cancelled"), asynchronous=False)
        assert _order(placed.order_id).status == OrderStatus.FAILED.value

    def test_leaves_paid_order_alone(self, placed, pay):
        pay(placed)

        assert not current_domain.process(FailOrder(order_id=placed.order_id, reason="late"), asynchronous=False)
        assert _order(placed.order_id).status == OrderStatus.IN_PROGRESS.value

    def test_failing_records_failure_event(self, placed):
        current_domain.process(FailOrder(order_id=placed.order_id, reason="cancelled"), asynchronous=False)

        failures = _failures(placed.order_id)
        assert len(failures) == 1
        assert failures[0].data["reason"] == "cancelled"

    def test_forged_payment_records_failure_event(self, placed, settlement):
        with pytest.raises(PaymentVerificationFailed):
            settlement.verify_and_settle(
                gateway_order_ref=placed.payment_intent.gateway_order_ref,
                gateway_payment_ref="pay_forged",
                gateway_signature="0" * 64,
                order_id=placed.order_id,
            )

        failures = _failures(placed.order_id)
        assert len(failures) == 1
        assert failures[0].data["reason"] == "payment signature mismatch"

    def test_paid_order_records_no_failure(self, placed, pay):
        pay(placed)
        current_domain.process(FailOrder(order_id=placed.order_id, reason="late"), asynchronous=False)

        assert _failures(placed.order_id) == []


class TestFulfillment:
    def test_delivery_order_progression(self, placed, pay):
        pay(placed)

        assert _advance(placed.order_id, "completed") == OrderStatus.COMPLETED.value
        assert _advance(placed.order_id, "onTheWay") == OrderStatus.ON_THE_WAY.value
        assert _advance(placed.order_id, "delivered") == OrderStatus.DELIVERED.value

    def test_unpaid_order_cannot_progress(self, placed):
        with pytest.raises(ValidationError):
            _advance(placed.order_id, "completed")

    def test_unknown_status(self, placed, pay):
        pay(placed)

        with pytest.raises(ValidationError):
            _advance(placed.order_id, "teleported")

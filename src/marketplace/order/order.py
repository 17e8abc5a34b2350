"""Order aggregate (CQRS): a frozen, priced snapshot of a cart.

Lines and pricing are fixed when the order is placed. Only the status
moves afterwards, along this state machine:

    pendingPayment → inProgress → completed → onTheWay → delivered
    pendingPayment → failed
    inProgress → failed          (oversold at settlement)

``delivered`` and ``failed`` are terminal.

Leaving ``pendingPayment`` after a payment is a conditional update in
``OrderRepository.claim_payment`` so that only one payment callback can
ever win the transition.
"""

from datetime import UTC, datetime, timedelta
from enum import Enum

from protean import invariant
from protean.exceptions import ExpectedVersionError, ValidationError
from protean.fields import DateTime, Float, HasMany, Identifier, Integer, String, ValueObject

from marketplace.domain import marketplace
from marketplace.inventory.kinds import ItemKind
from marketplace.order.events import (
    OrderFailed,
    OrderPlaced,
    OrderSettled,
    OrderStatusAdvanced,
    PaymentIntentAttached,
)


class OrderStatus(Enum):
    PENDING_PAYMENT = "pendingPayment"
    IN_PROGRESS = "inProgress"
    COMPLETED = "completed"
    ON_THE_WAY = "onTheWay"
    DELIVERED = "delivered"
    FAILED = "failed"


class OrderType(Enum):
    TAKEAWAY = "takeaway"
    DELIVERY = "delivery"
    DINEIN = "dinein"

    @classmethod
    def parse(cls, value) -> "OrderType":
        try:
            return cls(value)
        except ValueError:
            raise ValidationError({"order_type": [f'Invalid orderType "{value}".']}) from None


class LedgerStatus(Enum):
    PENDING = "pending"
    SETTLED = "settled"
    OVERSOLD = "oversold"


_VALID_TRANSITIONS = {
    OrderStatus.PENDING_PAYMENT: {OrderStatus.IN_PROGRESS, OrderStatus.FAILED},
    OrderStatus.IN_PROGRESS: {OrderStatus.COMPLETED, OrderStatus.FAILED},
    OrderStatus.COMPLETED: {OrderStatus.ON_THE_WAY, OrderStatus.DELIVERED},
    OrderStatus.ON_THE_WAY: {OrderStatus.DELIVERED},
    OrderStatus.DELIVERED: set(),  # Terminal
    OrderStatus.FAILED: set(),  # Terminal
}

FULFILLMENT_STATUSES = {OrderStatus.COMPLETED, OrderStatus.ON_THE_WAY, OrderStatus.DELIVERED}


def _aware(value):
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


@marketplace.value_object(part_of="Order")
class OrderPricing:
    """Amounts locked at placement. Later price changes never reach an existing order."""

    subtotal = Float(default=0.0)
    produce_surcharge = Float(default=0.0)
    delivery_charge = Float(default=0.0)
    grand_total = Float(default=0.0)
    currency = String(max_length=3, default="INR")


@marketplace.entity(part_of="Order")
class OrderLine:
    item_id = Identifier(required=True)
    kind = String(required=True, choices=ItemKind)
    quantity = Integer(required=True, min_value=1)
    unit_price = Float(required=True, min_value=0.0)


@marketplace.aggregate
class Order:
    user_id = Identifier(required=True)
    vendor_id = Identifier(required=True)
    order_type = String(required=True, choices=OrderType)
    collector_name = String(max_length=255)
    collector_phone = String(max_length=20)
    address = String(max_length=500)
    lines = HasMany(OrderLine)
    pricing = ValueObject(OrderPricing)
    status = String(choices=OrderStatus, default=OrderStatus.PENDING_PAYMENT.value)
    ledger_status = String(choices=LedgerStatus, default=LedgerStatus.PENDING.value)
    payment_id = Identifier()
    gateway_order_ref = String(max_length=255)
    failure_reason = String(max_length=500)
    placed_at = DateTime()
    reservation_expires_at = DateTime()
    settled_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def delivery_orders_need_an_address(self):
        if self.order_type == OrderType.DELIVERY.value and not (self.address or "").strip():
            raise ValidationError({"address": ["Address is required for delivery orders."]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def place(
        cls,
        user_id,
        vendor_id,
        order_type,
        lines,
        pricing,
        collector_name=None,
        collector_phone=None,
        address=None,
        reservation_minutes=10,
    ):
        """Freeze priced lines into a new order awaiting payment.

        Args:
            lines: dicts with item_id, kind, quantity and unit_price.
            pricing: dict with subtotal, produce_surcharge, delivery_charge,
                     grand_total and currency.
        """
        order_type = OrderType.parse(order_type)
        if order_type == OrderType.DELIVERY and not (address or "").strip():
            raise ValidationError({"address": ["Address is required for delivery orders."]})
        now = datetime.now(UTC)
        expires_at = now + timedelta(minutes=reservation_minutes)

        order = cls(
            user_id=user_id,
            vendor_id=vendor_id,
            order_type=order_type.value,
            collector_name=collector_name,
            collector_phone=collector_phone,
            address=address.strip() if order_type == OrderType.DELIVERY and address else None,
            pricing=OrderPricing(**pricing),
            status=OrderStatus.PENDING_PAYMENT.value,
            ledger_status=LedgerStatus.PENDING.value,
            placed_at=now,
            reservation_expires_at=expires_at,
            updated_at=now,
        )
        for line in lines:
            order.add_lines(OrderLine(**line))

        order.raise_(
            OrderPlaced(
                order_id=str(order.id),
                user_id=str(user_id),
                vendor_id=str(vendor_id),
                order_type=order_type.value,
                grand_total=order.pricing.grand_total,
                currency=order.pricing.currency,
                placed_at=now,
                reservation_expires_at=expires_at,
            )
        )
        return order

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    @property
    def total(self) -> float:
        return self.pricing.grand_total if self.pricing else 0.0

    @property
    def produce_units(self) -> int:
        return sum(line.quantity for line in self.lines if line.kind == ItemKind.PRODUCE.value)

    def is_awaiting_payment(self) -> bool:
        return self.status == OrderStatus.PENDING_PAYMENT.value

    def reservation_expired(self, as_of=None) -> bool:
        as_of = _aware(as_of) or datetime.now(UTC)
        expires_at = _aware(self.reservation_expires_at)
        return expires_at is not None and expires_at <= as_of

    # -------------------------------------------------------------------
    # State transitions
    # -------------------------------------------------------------------
    def _assert_can_transition(self, target_status):
        current = OrderStatus(self.status)
        if target_status not in _VALID_TRANSITIONS.get(current, set()):
            raise ValidationError({"status": [f"Cannot transition from {current.value} to {target_status.value}"]})

    def attach_payment_intent(self, gateway_order_ref):
        if not self.is_awaiting_payment():
            raise ValidationError({"status": ["A payment intent can only be attached to an order awaiting payment"]})
        self.gateway_order_ref = gateway_order_ref
        self.updated_at = datetime.now(UTC)
        self.raise_(PaymentIntentAttached(order_id=str(self.id), gateway_order_ref=gateway_order_ref))

    def fail(self, reason):
        self._assert_can_transition(OrderStatus.FAILED)
        previous_status = self.status
        now = datetime.now(UTC)
        self.status = OrderStatus.FAILED.value
        self.failure_reason = reason
        self.updated_at = now
        self.raise_(OrderFailed(order_id=str(self.id), previous_status=previous_status, reason=reason, failed_at=now))

    def mark_oversold(self, reason):
        """Fail a paid order whose stock ran out before settlement."""
        if self.status != OrderStatus.IN_PROGRESS.value:
            raise ValidationError({"status": ["Only a paid order can be marked oversold"]})
        self.ledger_status = LedgerStatus.OVERSOLD.value
        self.fail(reason)

    def record_settlement(self):
        if self.status != OrderStatus.IN_PROGRESS.value:
            raise ValidationError({"status": ["Only a paid order can be settled"]})
        now = datetime.now(UTC)
        self.ledger_status = LedgerStatus.SETTLED.value
        self.settled_at = now
        self.updated_at = now
        self.raise_(
            OrderSettled(
                order_id=str(self.id),
                vendor_id=str(self.vendor_id),
                payment_id=str(self.payment_id) if self.payment_id else None,
                settled_at=now,
            )
        )

    def advance(self, target):
        try:
            target = OrderStatus(target)
        except ValueError:
            raise ValidationError({"status": [f'Invalid status "{target}".']}) from None
        if target not in FULFILLMENT_STATUSES:
            raise ValidationError({"status": [f"{target.value} is not a fulfillment status"]})
        if target == OrderStatus.DELIVERED and self.status == OrderStatus.COMPLETED.value:
            if self.order_type == OrderType.DELIVERY.value:
                raise ValidationError({"status": ["Delivery orders must be on the way before they are delivered"]})
        self._assert_can_transition(target)

        previous_status = self.status
        now = datetime.now(UTC)
        self.status = target.value
        self.updated_at = now
        self.raise_(
            OrderStatusAdvanced(
                order_id=str(self.id),
                previous_status=previous_status,
                new_status=target.value,
                changed_at=now,
            )
        )


@marketplace.repository(part_of=Order)
class OrderRepository:
    def _claim(self, order_id, guard: dict, **changes) -> bool:
        try:
            matched = self._dao.query.filter(id=str(order_id), **guard).update(
                updated_at=datetime.now(UTC), **changes
            )
        except ExpectedVersionError:
            return False
        return matched > 0

    def claim_payment(self, order_id, payment_id) -> bool:
        """Move an order out of pendingPayment exactly once, linking ``payment_id``."""
        return self._claim(
            order_id,
            {"status": OrderStatus.PENDING_PAYMENT.value},
            status=OrderStatus.IN_PROGRESS.value,
            payment_id=str(payment_id),
        )

    def claim_ledger(self, order_id) -> bool:
        """Reserve the right to apply a paid order to inventory. Succeeds once per order."""
        return self._claim(
            order_id,
            {"status": OrderStatus.IN_PROGRESS.value, "ledger_status": LedgerStatus.PENDING.value},
            ledger_status=LedgerStatus.SETTLED.value,
        )

    def awaiting_payment(self):
        return self._dao.query.filter(status=OrderStatus.PENDING_PAYMENT.value).all().items

    def fail_if_awaiting_payment(self, order_id, reason) -> bool:
        """Fail an unpaid order unless a payment claimed it first.

        The save carries the version read here, so a payment that claims the
        order in between makes the write fail instead of overwriting it.
        """
        pending = self._dao.query.filter(id=str(order_id), status=OrderStatus.PENDING_PAYMENT.value).all().items
        if not pending:
            return False

        order = pending[0]
        order.fail(reason)
        try:
            self.add(order)
        except ExpectedVersionError:
            return False
        return True

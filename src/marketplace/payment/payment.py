"""Payment aggregate: the record of a verified gateway payment.

One payment exists per paid order. It never changes except to be flagged
for a refund when the order turns out to be oversold.
"""

from datetime import UTC, datetime
from enum import Enum

from protean.fields import DateTime, Float, Identifier, String

from marketplace.domain import marketplace
from marketplace.payment.events import PaymentCaptured, PaymentRefundRequired


class PaymentStatus(Enum):
    PAID = "paid"
    REFUND_DUE = "refundDue"


@marketplace.aggregate
class Payment:
    order_id = Identifier(required=True)
    user_id = Identifier(required=True)
    amount = Float(required=True, min_value=0.0)
    currency = String(max_length=3, default="INR")
    payment_method = String(max_length=50, default="razorpay")
    gateway_order_ref = String(max_length=255)
    gateway_payment_ref = String(max_length=255)
    status = String(choices=PaymentStatus, default=PaymentStatus.PAID.value)
    refund_reason = String(max_length=500)
    captured_at = DateTime()
    flagged_at = DateTime()

    @classmethod
    def capture(cls, payment_id, order, gateway_order_ref, gateway_payment_ref, payment_method="razorpay"):
        now = datetime.now(UTC)
        payment = cls(
            id=payment_id,
            order_id=order.id,
            user_id=order.user_id,
            amount=order.total,
            currency=order.pricing.currency,
            payment_method=payment_method,
            gateway_order_ref=gateway_order_ref,
            gateway_payment_ref=gateway_payment_ref,
            status=PaymentStatus.PAID.value,
            captured_at=now,
        )
        payment.raise_(
            PaymentCaptured(
                payment_id=str(payment.id),
                order_id=str(order.id),
                user_id=str(order.user_id),
                amount=payment.amount,
                currency=payment.currency,
                gateway_order_ref=gateway_order_ref,
                gateway_payment_ref=gateway_payment_ref,
                captured_at=now,
            )
        )
        return payment

    def flag_for_refund(self, reason) -> bool:
        if self.status == PaymentStatus.REFUND_DUE.value:
            return False

        now = datetime.now(UTC)
        self.status = PaymentStatus.REFUND_DUE.value
        self.refund_reason = reason
        self.flagged_at = now
        self.raise_(
            PaymentRefundRequired(
                payment_id=str(self.id),
                order_id=str(self.order_id),
                amount=self.amount,
                reason=reason,
                flagged_at=now,
            )
        )
        return True


@marketplace.repository(part_of=Payment)
class PaymentRepository:
    def for_order(self, order_id):
        rows = self._dao.query.filter(order_id=str(order_id)).all().items
        return rows[0] if rows else None

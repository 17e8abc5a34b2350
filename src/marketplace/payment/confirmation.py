"""Payment confirmation: record a verified payment exactly once per order."""

from uuid import uuid4

import structlog
from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from marketplace.domain import marketplace
from marketplace.order.order import Order
from marketplace.payment.payment import Payment

logger = structlog.get_logger(__name__)


@marketplace.command(part_of="Payment")
class ConfirmPayment:
    order_id = Identifier(required=True)
    gateway_order_ref = String(required=True, max_length=255)
    gateway_payment_ref = String(required=True, max_length=255)


@marketplace.command(part_of="Payment")
class FlagPaymentForRefund:
    payment_id = Identifier(required=True)
    reason = String(max_length=500)


@marketplace.command_handler(part_of=Payment)
class PaymentConfirmationHandler:
    @handle(ConfirmPayment)
    def confirm_payment(self, command):
        """Claim the order for this payment, then record the payment.

        Returns a dict with ``payment_id`` and ``created``. A replayed
        callback gets the existing payment back with ``created`` False.
        """
        orders = current_domain.repository_for(Order)
        payments = current_domain.repository_for(Payment)
        payment_id = str(uuid4())

        if not orders.claim_payment(command.order_id, payment_id):
            order = orders.get(command.order_id)
            existing = payments.for_order(order.id)
            if existing is not None:
                logger.info(
                    "Payment already recorded, ignoring replayed callback",
                    order_id=str(order.id),
                    payment_id=str(existing.id),
                )
                return {"payment_id": str(existing.id), "created": False}
            raise ValidationError({"order_id": [f"Order {order.id} is {order.status} and cannot accept a payment"]})

        order = orders.get(command.order_id)
        payment = Payment.capture(
            payment_id=payment_id,
            order=order,
            gateway_order_ref=command.gateway_order_ref,
            gateway_payment_ref=command.gateway_payment_ref,
        )
        payments.add(payment)

        logger.info("Payment recorded", order_id=str(order.id), payment_id=payment_id, amount=payment.amount)
        return {"payment_id": payment_id, "created": True}

    @handle(FlagPaymentForRefund)
    def flag_payment_for_refund(self, command):
        repo = current_domain.repository_for(Payment)
        payment = repo.get(command.payment_id)
        flagged = payment.flag_for_refund(command.reason)
        repo.add(payment)
        return flagged

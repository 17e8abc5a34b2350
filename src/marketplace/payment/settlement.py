"""PaymentSettlement: verify a gateway callback and settle the order exactly once.

The gateway is injected. A callback is trusted only when its signature
matches; the order then leaves ``pendingPayment`` through a single
conditional update, and only the caller that wins that update goes on to
the inventory ledger. Replayed callbacks are answered from the existing
payment without touching stock, unless the order has since failed.
"""

from dataclasses import dataclass

import structlog
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.utils.globals import current_domain

from marketplace.exceptions import PaymentVerificationFailed, StockConflict, first_message
from marketplace.gateway.port import PaymentGateway
from marketplace.inventory.ledger import InventoryLedger
from marketplace.order.order import LedgerStatus, Order, OrderStatus
from marketplace.order.status import FailOrder, MarkOrderOversold
from marketplace.payment.confirmation import ConfirmPayment, FlagPaymentForRefund

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class SettlementResult:
    success: bool
    message: str
    order_id: str
    payment_id: str | None = None
    already_settled: bool = False


class PaymentSettlement:
    def __init__(self, gateway: PaymentGateway, ledger: InventoryLedger | None = None) -> None:
        self.gateway = gateway
        self.ledger = ledger or InventoryLedger()

    def verify_and_settle(self, gateway_order_ref, gateway_payment_ref, gateway_signature, order_id):
        order_id = str(order_id)

        if not self.gateway.verify_signature(gateway_order_ref, gateway_payment_ref, gateway_signature):
            self._reject(order_id, "payment signature mismatch")
            raise PaymentVerificationFailed({"signature": ["Payment verification failed"]})

        order = current_domain.repository_for(Order).get(order_id)
        if order.gateway_order_ref and order.gateway_order_ref != gateway_order_ref:
            self._reject(order_id, "gateway order reference mismatch")
            raise PaymentVerificationFailed({"gateway_order_ref": ["Payment does not belong to this order"]})

        confirmation = current_domain.process(
            ConfirmPayment(
                order_id=order_id,
                gateway_order_ref=gateway_order_ref,
                gateway_payment_ref=gateway_payment_ref,
            ),
            asynchronous=False,
        )
        payment_id = confirmation["payment_id"]

        if not confirmation["created"]:
            order = current_domain.repository_for(Order).get(order_id)
            if order.status == OrderStatus.FAILED.value:
                logger.warning(
                    "Replayed callback for a failed order",
                    order_id=order_id,
                    payment_id=payment_id,
                    ledger_status=order.ledger_status,
                )
                raise ValidationError(
                    {"order_id": [f"Order {order_id} failed ({order.failure_reason}); its payment is due for a refund"]}
                )
            if not self._needs_ledger(order):
                return SettlementResult(
                    success=True,
                    message="Payment already processed",
                    order_id=order_id,
                    payment_id=payment_id,
                    already_settled=True,
                )
            # Payment was recorded but the ledger never ran; resume it
            logger.warning("Resuming settlement for a recorded payment", order_id=order_id, payment_id=payment_id)

        try:
            self.ledger.settle(order_id)
        except StockConflict as exc:
            self._compensate(order_id, payment_id, exc)
            raise

        logger.info("Payment verified and order settled", order_id=order_id, payment_id=payment_id)
        return SettlementResult(
            success=True,
            message="Payment verified and order placed successfully",
            order_id=order_id,
            payment_id=payment_id,
        )

    @staticmethod
    def _needs_ledger(order) -> bool:
        return order.status == OrderStatus.IN_PROGRESS.value and order.ledger_status == LedgerStatus.PENDING.value

    def _reject(self, order_id, reason):
        logger.warning("Payment verification failed", order_id=order_id, reason=reason)
        try:
            current_domain.process(FailOrder(order_id=order_id, reason=reason), asynchronous=False)
        except ObjectNotFoundError:
            logger.warning("Payment callback refers to an unknown order", order_id=order_id)

    def _compensate(self, order_id, payment_id, exc: StockConflict):
        """Leave an oversold order failed and its payment flagged for refund."""
        reason = f"Oversold at settlement: {first_message(exc)}"
        current_domain.process(MarkOrderOversold(order_id=order_id, reason=reason), asynchronous=False)
        current_domain.process(FlagPaymentForRefund(payment_id=payment_id, reason=reason), asynchronous=False)
        logger.error(
            "Order oversold after payment, refund required",
            order_id=order_id,
            payment_id=payment_id,
            available=exc.available,
        )

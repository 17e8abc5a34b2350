"""Order status changes after placement: failure, oversell and fulfillment."""

import structlog
from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from marketplace.domain import marketplace
from marketplace.order.order import Order

logger = structlog.get_logger(__name__)


@marketplace.command(part_of="Order")
class FailOrder:
    """Fail an order that is still awaiting payment."""

    order_id = Identifier(required=True)
    reason = String(max_length=500)


@marketplace.command(part_of="Order")
class MarkOrderOversold:
    order_id = Identifier(required=True)
    reason = String(max_length=500)


@marketplace.command(part_of="Order")
class AdvanceOrderStatus:
    order_id = Identifier(required=True)
    status = String(required=True, max_length=20)


@marketplace.command_handler(part_of=Order)
class OrderStatusHandler:
    @handle(FailOrder)
    def fail_order(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        if not repo.fail_if_awaiting_payment(order.id, command.reason):
            logger.info(
                "Order is no longer awaiting payment, leaving it as is",
                order_id=str(order.id),
                status=order.status,
            )
            return False

        logger.info("Order failed", order_id=str(order.id), reason=command.reason)
        return True

    @handle(MarkOrderOversold)
    def mark_order_oversold(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.mark_oversold(command.reason)
        repo.add(order)

    @handle(AdvanceOrderStatus)
    def advance_order_status(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.advance(command.status)
        repo.add(order)
        return order.status

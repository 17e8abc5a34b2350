"""Reservation expiry: fail orders left unpaid past their reservation window.

Triggered periodically by an external scheduler via the maintenance API
endpoint.
"""

from datetime import UTC, datetime

import structlog
from protean import handle
from protean.fields import DateTime
from protean.utils.globals import current_domain

from marketplace.domain import marketplace
from marketplace.order.order import Order

logger = structlog.get_logger(__name__)


@marketplace.command(part_of="Order")
class ExpireStaleOrders:
    as_of = DateTime()  # Optional: defaults to now


@marketplace.command_handler(part_of=Order)
class ExpireStaleOrdersHandler:
    @handle(ExpireStaleOrders)
    def expire_stale_orders(self, command):
        as_of = command.as_of or datetime.now(UTC)
        repo = current_domain.repository_for(Order)

        expired = [order for order in repo.awaiting_payment() if order.reservation_expired(as_of)]
        if not expired:
            logger.info("No stale orders found", as_of=as_of.isoformat())
            return 0

        expired_count = 0
        for order in expired:
            # A payment may have claimed the order since it was read
            if not repo.fail_if_awaiting_payment(order.id, "reservation expired"):
                continue
            expired_count += 1
            logger.info(
                "Expired unpaid order",
                order_id=str(order.id),
                expired_at=str(order.reservation_expires_at),
            )

        logger.info("Stale order sweep complete", expired_count=expired_count)
        return expired_count

"""Order placement: freeze the cart into a priced order and open a payment intent."""

from dataclasses import dataclass

import structlog
from protean import handle
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.fields import Identifier, Integer, String
from protean.utils.globals import current_domain

from marketplace.config import Settings
from marketplace.directory.lookup import directory
from marketplace.domain import marketplace
from marketplace.exceptions import StockConflict
from marketplace.gateway.port import PaymentGateway, PaymentGatewayError, PaymentIntent
from marketplace.inventory.entry import InventoryEntry
from marketplace.inventory.kinds import ItemKind, policy_for
from marketplace.order.order import Order, OrderType
from marketplace.order.pricing import quote
from marketplace.order.status import FailOrder

logger = structlog.get_logger(__name__)


@marketplace.command(part_of="Order")
class PlaceOrder:
    user_id = Identifier(required=True)
    order_type = String(required=True, max_length=20)
    collector_name = String(max_length=255)
    collector_phone = String(max_length=20)
    address = String(max_length=500)
    currency = String(max_length=3, default="INR")
    reservation_minutes = Integer(default=10, min_value=1)


@marketplace.command(part_of="Order")
class AttachPaymentIntent:
    order_id = Identifier(required=True)
    gateway_order_ref = String(required=True, max_length=255)


def _shortage(cart_entry, stock):
    if cart_entry.kind == ItemKind.RETAIL.value:
        return StockConflict(
            {"items": [f"Insufficient stock for Retail item {cart_entry.item_id}."]},
            available=(stock.quantity or 0) if stock else 0,
        )
    return StockConflict({"items": [f"Produce item {cart_entry.item_id} not available."]}, available=0)


@marketplace.command_handler(part_of=Order)
class OrderPlacementHandler:
    @handle(PlaceOrder)
    def place_order(self, command):
        user = directory.get_user(command.user_id)
        if not user.cart_entries:
            raise ValidationError({"cart": ["Cart is empty"]})

        order_type = OrderType.parse(command.order_type)
        if order_type == OrderType.DELIVERY and not (command.address or "").strip():
            raise ValidationError({"address": ["Address is required for delivery orders."]})

        vendor = directory.get_vendor(user.vendor_id)

        # One read each for stock and prices
        stock = {
            entry.entry_key: entry for entry in current_domain.repository_for(InventoryEntry).for_vendor(vendor.id)
        }
        items = directory.items_by_id([entry.item_id for entry in user.cart_entries])

        lines = []
        for cart_entry in user.cart_entries:
            item = items.get(str(cart_entry.item_id))
            if item is None or item.kind != cart_entry.kind:
                raise ObjectNotFoundError({"_entity": [f"{cart_entry.kind} item {cart_entry.item_id} does not exist"]})

            entry = stock.get(InventoryEntry.key_for(vendor.id, cart_entry.item_id, cart_entry.kind))
            if not policy_for(cart_entry.kind).has_stock(entry, cart_entry.quantity):
                logger.info(
                    "Order rejected on stock",
                    user_id=str(user.id),
                    vendor_id=str(vendor.id),
                    item_id=str(cart_entry.item_id),
                    kind=cart_entry.kind,
                )
                raise _shortage(cart_entry, entry)

            lines.append(
                {
                    "item_id": str(cart_entry.item_id),
                    "kind": cart_entry.kind,
                    "quantity": cart_entry.quantity,
                    "unit_price": item.price,
                }
            )

        pricing = quote(
            [(line["kind"], line["quantity"], line["unit_price"]) for line in lines],
            order_type.value,
            currency=command.currency or "INR",
        )

        order = Order.place(
            user_id=user.id,
            vendor_id=vendor.id,
            order_type=order_type.value,
            lines=lines,
            pricing=pricing.as_dict(),
            collector_name=command.collector_name,
            collector_phone=command.collector_phone,
            address=command.address,
            reservation_minutes=command.reservation_minutes or 10,
        )
        current_domain.repository_for(Order).add(order)

        logger.info(
            "Order placed",
            order_id=str(order.id),
            user_id=str(user.id),
            vendor_id=str(vendor.id),
            order_type=order_type.value,
            grand_total=pricing.grand_total,
        )
        return str(order.id)

    @handle(AttachPaymentIntent)
    def attach_payment_intent(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.attach_payment_intent(command.gateway_order_ref)
        repo.add(order)


@dataclass(frozen=True)
class PlacedOrder:
    order_id: str
    total: float
    payment_intent: PaymentIntent


class OrderPlacer:
    """Places orders and opens a payment intent for each through the injected gateway."""

    def __init__(self, gateway: PaymentGateway, settings: Settings | None = None) -> None:
        self.gateway = gateway
        self.settings = settings or Settings()

    def place_order(self, user_id, order_type, collector_name=None, collector_phone=None, address=None):
        order_id = current_domain.process(
            PlaceOrder(
                user_id=user_id,
                order_type=order_type,
                collector_name=collector_name,
                collector_phone=collector_phone,
                address=address,
                currency=self.settings.payment_currency,
                reservation_minutes=self.settings.reservation_minutes,
            ),
            asynchronous=False,
        )
        order = current_domain.repository_for(Order).get(order_id)

        try:
            intent = self.gateway.create_intent(
                amount=int(round(order.total * 100)),
                currency=order.pricing.currency,
                reference=order_id,
            )
        except PaymentGatewayError as exc:
            logger.error("Payment intent creation failed", order_id=order_id, error=str(exc))
            current_domain.process(
                FailOrder(order_id=order_id, reason="payment intent creation failed"),
                asynchronous=False,
            )
            raise

        current_domain.process(
            AttachPaymentIntent(order_id=order_id, gateway_order_ref=intent.gateway_order_ref),
            asynchronous=False,
        )
        return PlacedOrder(order_id=order_id, total=order.total, payment_intent=intent)

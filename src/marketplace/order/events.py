"""Domain events for the Order aggregate."""

from protean.fields import DateTime, Float, Identifier, String

from marketplace.domain import marketplace


@marketplace.event(part_of="Order")
class OrderPlaced:
    """A cart was frozen into a priced order awaiting payment."""

    __version__ = 1

    order_id = Identifier(required=True)
    user_id = Identifier(required=True)
    vendor_id = Identifier(required=True)
    order_type = String(required=True, max_length=20)
    grand_total = Float(required=True)
    currency = String(max_length=3)
    placed_at = DateTime(required=True)
    reservation_expires_at = DateTime(required=True)


@marketplace.event(part_of="Order")
class PaymentIntentAttached:
    __version__ = 1

    order_id = Identifier(required=True)
    gateway_order_ref = String(required=True, max_length=255)


@marketplace.event(part_of="Order")
class OrderSettled:
    """Inventory, the daily report and the user's cart reflect this order."""

    __version__ = 1

    order_id = Identifier(required=True)
    vendor_id = Identifier(required=True)
    payment_id = Identifier()
    settled_at = DateTime(required=True)


@marketplace.event(part_of="Order")
class OrderFailed:
    __version__ = 1

    order_id = Identifier(required=True)
    previous_status = String(required=True, max_length=20)
    reason = String(max_length=500)
    failed_at = DateTime(required=True)


@marketplace.event(part_of="Order")
class OrderStatusAdvanced:
    """The vendor moved a paid order along its fulfillment path."""

    __version__ = 1

    order_id = Identifier(required=True)
    previous_status = String(required=True, max_length=20)
    new_status = String(required=True, max_length=20)
    changed_at = DateTime(required=True)

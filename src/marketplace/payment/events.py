"""Domain events for the Payment aggregate."""

from protean.fields import DateTime, Float, Identifier, String

from marketplace.domain import marketplace


@marketplace.event(part_of="Payment")
class PaymentCaptured:
    """A verified gateway payment was recorded against an order."""

    __version__ = 1

    payment_id = Identifier(required=True)
    order_id = Identifier(required=True)
    user_id = Identifier(required=True)
    amount = Float(required=True)
    currency = String(max_length=3)
    gateway_order_ref = String(max_length=255)
    gateway_payment_ref = String(max_length=255)
    captured_at = DateTime(required=True)


@marketplace.event(part_of="Payment")
class PaymentRefundRequired:
    """The order behind a captured payment could not be settled; the money must go back."""

    __version__ = 1

    payment_id = Identifier(required=True)
    order_id = Identifier(required=True)
    amount = Float(required=True)
    reason = String(max_length=500)
    flagged_at = DateTime(required=True)

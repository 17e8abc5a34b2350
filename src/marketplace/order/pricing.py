"""Order pricing: item subtotal plus the produce and delivery surcharges."""

from dataclasses import asdict, dataclass

from marketplace.config import DELIVERY_CHARGE, PRODUCE_SURCHARGE
from marketplace.inventory.kinds import ItemKind
from marketplace.order.order import OrderType


@dataclass(frozen=True)
class Quote:
    subtotal: float
    produce_surcharge: float
    delivery_charge: float
    grand_total: float
    currency: str = "INR"

    def as_dict(self) -> dict:
        return asdict(self)

    @property
    def minor_units(self) -> int:
        """Grand total in the currency's smallest unit (paise for INR)."""
        return int(round(self.grand_total * 100))


def quote(lines, order_type: str, currency: str = "INR") -> Quote:
    """Price ``lines`` of (kind, quantity, unit_price) for an order type.

    Every produce unit carries a packaging surcharge except for dine-in
    orders; delivery orders add a flat delivery charge.
    """
    order_type = OrderType(order_type)
    subtotal = 0.0
    produce_units = 0
    for kind, quantity, unit_price in lines:
        subtotal += unit_price * quantity
        if ItemKind.parse(kind) == ItemKind.PRODUCE:
            produce_units += quantity

    produce_surcharge = 0.0 if order_type == OrderType.DINEIN else float(produce_units * PRODUCE_SURCHARGE)
    delivery_charge = float(DELIVERY_CHARGE) if order_type == OrderType.DELIVERY else 0.0

    return Quote(
        subtotal=subtotal,
        produce_surcharge=produce_surcharge,
        delivery_charge=delivery_charge,
        grand_total=subtotal + produce_surcharge + delivery_charge,
        currency=currency,
    )

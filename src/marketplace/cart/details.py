"""Read-only views over a user's cart."""

from dataclasses import dataclass, field

from protean.utils.globals import current_domain

from marketplace.directory.lookup import directory
from marketplace.inventory.entry import InventoryEntry
from marketplace.inventory.kinds import policy_for


@dataclass(frozen=True)
class CartLine:
    item_id: str
    kind: str
    quantity: int
    name: str
    price: float
    image: str | None = None
    unit: str | None = None
    food_type: str | None = None

    @property
    def total_price(self) -> float:
        return self.price * self.quantity


@dataclass(frozen=True)
class CartDetails:
    entries: list[CartLine] = field(default_factory=list)
    vendor_id: str | None = None
    vendor_name: str | None = None

    @property
    def total(self) -> float:
        return sum(line.total_price for line in self.entries)


@dataclass(frozen=True)
class Extra:
    item_id: str
    kind: str
    name: str
    price: float
    image: str | None = None
    unit: str | None = None
    food_type: str | None = None


def _lines(user):
    items = directory.items_by_id([entry.item_id for entry in user.cart_entries])
    for entry in user.cart_entries:
        item = items.get(str(entry.item_id))
        if item is None:
            # Delisted since it was added
            continue
        yield CartLine(
            item_id=str(entry.item_id),
            kind=entry.kind,
            quantity=entry.quantity,
            name=item.name,
            price=item.price,
            image=item.image,
            unit=item.unit,
            food_type=item.food_type,
        )


def get_cart_details(user_id) -> CartDetails:
    user = directory.get_user(user_id)
    if not user.vendor_id:
        return CartDetails(entries=list(_lines(user)))

    vendor = directory.get_vendor(user.vendor_id)
    return CartDetails(
        entries=list(_lines(user)),
        vendor_id=str(vendor.id),
        vendor_name=vendor.full_name,
    )


def get_extras(user_id) -> list[Extra]:
    """Suggest items from the cart's vendor that the user has not picked yet.

    Retail items are suggested when the vendor is overstocked on them and
    produce items whenever they are available.
    """
    user = directory.get_user(user_id)
    if not user.cart_entries or not user.vendor_id:
        return []

    in_cart = {(str(entry.item_id), entry.kind) for entry in user.cart_entries}
    candidates = [
        entry
        for entry in current_domain.repository_for(InventoryEntry).for_vendor(user.vendor_id)
        if (str(entry.item_id), entry.kind) not in in_cart and policy_for(entry.kind).is_suggestible(entry)
    ]

    items = directory.items_by_id([entry.item_id for entry in candidates])
    extras = []
    for entry in candidates:
        item = items.get(str(entry.item_id))
        if item is None:
            continue
        extras.append(
            Extra(
                item_id=str(item.id),
                kind=entry.kind,
                name=item.name,
                price=item.price,
                image=item.image,
                unit=item.unit,
                food_type=item.food_type,
            )
        )
    return extras

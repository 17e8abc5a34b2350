"""User aggregate and the cart it owns.

A cart holds entries from a single vendor. ``vendor_id`` is bound on the
first insertion and released when the last entry leaves, so a non-empty
cart always names its vendor and an empty cart never does.

Stock and cap checks need live inventory and are done by the cart command
handler before these methods run; the aggregate guards the cart's own
shape.
"""

import json
from datetime import UTC, datetime

from protean import atomic_change, invariant
from protean.exceptions import ValidationError
from protean.fields import DateTime, HasMany, Identifier, Integer, String, Text

from marketplace.cart.events import CartCheckedOut, CartItemAdded, CartItemRemoved, CartQuantityChanged
from marketplace.domain import marketplace
from marketplace.exceptions import CartPolicyConflict
from marketplace.inventory.kinds import ItemKind


@marketplace.entity(part_of="User")
class CartEntry:
    item_id = Identifier(required=True)
    kind = String(required=True, choices=ItemKind)
    quantity = Integer(required=True, min_value=1)
    added_at = DateTime()


@marketplace.aggregate
class User:
    name = String(required=True, max_length=255)
    email = String(max_length=255)
    phone = String(max_length=20)
    university_id = Identifier()
    vendor_id = Identifier()
    cart_entries = HasMany(CartEntry)
    active_orders = Text()  # JSON array of order ids
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def cart_vendor_binding_matches_cart_contents(self):
        if self.cart_entries and not self.vendor_id:
            raise ValidationError({"vendor_id": ["A non-empty cart must be bound to a vendor"]})
        if not self.cart_entries and self.vendor_id:
            raise ValidationError({"vendor_id": ["An empty cart cannot be bound to a vendor"]})

    @property
    def active_order_ids(self) -> list[str]:
        return json.loads(self.active_orders) if self.active_orders else []

    def find_cart_entry(self, item_id, kind):
        kind = ItemKind.parse(kind).value
        return next(
            (e for e in self.cart_entries if str(e.item_id) == str(item_id) and e.kind == kind),
            None,
        )

    def cart_quantity(self, item_id, kind) -> int:
        entry = self.find_cart_entry(item_id, kind)
        return entry.quantity if entry else 0

    def ensure_same_vendor(self, vendor_id):
        if self.cart_entries and str(self.vendor_id) != str(vendor_id):
            raise CartPolicyConflict({"vendor_id": ["Cart can contain items from only one vendor"]})

    # -------------------------------------------------------------------
    # Cart mutation
    # -------------------------------------------------------------------
    def add_to_cart(self, item_id, kind, quantity, vendor_id):
        """Add units of an item, binding the cart to ``vendor_id`` when it is empty."""
        kind = ItemKind.parse(kind).value
        if quantity <= 0:
            raise ValidationError({"quantity": ["Quantity must be a positive integer"]})
        self.ensure_same_vendor(vendor_id)

        existing = self.find_cart_entry(item_id, kind)
        now = datetime.now(UTC)

        with atomic_change(self):
            if existing:
                existing.quantity += quantity
                cart_quantity = existing.quantity
            else:
                self.add_cart_entries(CartEntry(item_id=item_id, kind=kind, quantity=quantity, added_at=now))
                cart_quantity = quantity
            self.vendor_id = vendor_id
            self.updated_at = now

        self.raise_(
            CartItemAdded(
                user_id=str(self.id),
                item_id=str(item_id),
                kind=kind,
                vendor_id=str(vendor_id),
                quantity=quantity,
                cart_quantity=cart_quantity,
            )
        )

    def change_quantity(self, item_id, kind, delta):
        """Nudge an entry by ``delta`` units. Returns the resulting quantity."""
        kind = ItemKind.parse(kind).value
        if delta == 0:
            raise ValidationError({"delta": ["Quantity change must be non-zero"]})

        existing = self.find_cart_entry(item_id, kind)
        if existing is None:
            if delta < 0 or not self.vendor_id:
                raise ValidationError({"item_id": ["Item not in cart"]})
            self.add_to_cart(item_id, kind, delta, self.vendor_id)
            return delta

        new_quantity = existing.quantity + delta
        if new_quantity < 0:
            raise ValidationError({"quantity": ["Quantity cannot go below zero"]})
        if new_quantity == 0:
            self.remove_from_cart(item_id, kind)
            return 0

        previous_quantity = existing.quantity
        existing.quantity = new_quantity
        self.updated_at = datetime.now(UTC)

        self.raise_(
            CartQuantityChanged(
                user_id=str(self.id),
                item_id=str(item_id),
                kind=kind,
                previous_quantity=previous_quantity,
                new_quantity=new_quantity,
            )
        )
        return new_quantity

    def remove_from_cart(self, item_id, kind) -> bool:
        """Drop an entry if present. Removing an absent entry is a no-op."""
        kind = ItemKind.parse(kind).value
        existing = self.find_cart_entry(item_id, kind)
        if existing is None:
            return False

        with atomic_change(self):
            self.remove_cart_entries(existing)
            emptied = not self.cart_entries
            if emptied:
                self.vendor_id = None
            self.updated_at = datetime.now(UTC)

        self.raise_(CartItemRemoved(user_id=str(self.id), item_id=str(item_id), kind=kind, cart_emptied=emptied))
        return True

    def check_out(self, order_id):
        """Empty the cart after its order settled and remember the order."""
        vendor_id = self.vendor_id
        order_ids = self.active_order_ids
        if str(order_id) not in order_ids:
            order_ids.append(str(order_id))

        with atomic_change(self):
            for entry in list(self.cart_entries):
                self.remove_cart_entries(entry)
            self.vendor_id = None
            self.active_orders = json.dumps(order_ids)
            self.updated_at = datetime.now(UTC)

        self.raise_(
            CartCheckedOut(
                user_id=str(self.id),
                order_id=str(order_id),
                vendor_id=str(vendor_id) if vendor_id else None,
            )
        )

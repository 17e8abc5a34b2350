"""Domain events for cart changes on the User aggregate."""

from protean.fields import Boolean, Identifier, Integer, String

from marketplace.domain import marketplace


@marketplace.event(part_of="User")
class CartItemAdded:
    """Units of an item were added to a user's cart."""

    __version__ = 1

    user_id = Identifier(required=True)
    item_id = Identifier(required=True)
    kind = String(required=True, max_length=20)
    vendor_id = Identifier(required=True)
    quantity = Integer(required=True)
    cart_quantity = Integer(required=True)


@marketplace.event(part_of="User")
class CartQuantityChanged:
    """The quantity of a cart entry was nudged up or down."""

    __version__ = 1

    user_id = Identifier(required=True)
    item_id = Identifier(required=True)
    kind = String(required=True, max_length=20)
    previous_quantity = Integer(required=True)
    new_quantity = Integer(required=True)


@marketplace.event(part_of="User")
class CartItemRemoved:
    __version__ = 1

    user_id = Identifier(required=True)
    item_id = Identifier(required=True)
    kind = String(required=True, max_length=20)
    cart_emptied = Boolean(default=False)


@marketplace.event(part_of="User")
class CartCheckedOut:
    """A settled order consumed the cart; the cart is now empty and unbound."""

    __version__ = 1

    user_id = Identifier(required=True)
    order_id = Identifier(required=True)
    vendor_id = Identifier()

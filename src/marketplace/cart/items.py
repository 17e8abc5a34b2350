"""Cart mutation: commands and the CartManager handler.

Every mutation touches only the user's own aggregate. Inventory is read to
validate the prospective quantity but never reserved; stock is only taken
when a paid order settles.
"""

import structlog
from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Identifier, Integer, String
from protean.utils.globals import current_domain

from marketplace.directory.lookup import directory
from marketplace.directory.user import User
from marketplace.domain import marketplace
from marketplace.exceptions import CartPolicyConflict, StockConflict
from marketplace.inventory.entry import InventoryEntry
from marketplace.inventory.kinds import ItemKind, policy_for

logger = structlog.get_logger(__name__)


@marketplace.command(part_of="User")
class AddItemToCart:
    user_id = Identifier(required=True)
    item_id = Identifier(required=True)
    kind = String(required=True, max_length=20)
    quantity = Integer(required=True, min_value=1)
    vendor_id = Identifier(required=True)


@marketplace.command(part_of="User")
class ChangeCartQuantity:
    user_id = Identifier(required=True)
    item_id = Identifier(required=True)
    kind = String(required=True, max_length=20)
    delta = Integer(required=True)


@marketplace.command(part_of="User")
class RemoveCartItem:
    user_id = Identifier(required=True)
    item_id = Identifier(required=True)
    kind = String(required=True, max_length=20)


def _check_university(vendor, item):
    if str(vendor.university_id) != str(item.university_id):
        raise ValidationError({"item_id": ["Vendor does not carry item for that university"]})


def _check_stock(user, vendor_id, item_id, kind: ItemKind, prospective_quantity):
    entry = current_domain.repository_for(InventoryEntry).find(vendor_id, item_id, kind)
    try:
        policy_for(kind).check_cart_quantity(entry, prospective_quantity)
    except StockConflict as exc:
        logger.info(
            "Cart quantity exceeds stock",
            user_id=str(user.id),
            vendor_id=str(vendor_id),
            item_id=str(item_id),
            requested=prospective_quantity,
            available=exc.available,
        )
        raise


@marketplace.command_handler(part_of=User)
class CartManager:
    @handle(AddItemToCart)
    def add_item(self, command):
        kind = ItemKind.parse(command.kind)
        repo = current_domain.repository_for(User)
        user = repo.get(command.user_id)
        vendor = directory.get_vendor(command.vendor_id)
        item = directory.get_item(command.item_id, kind)
        _check_university(vendor, item)

        try:
            user.ensure_same_vendor(vendor.id)
        except CartPolicyConflict:
            logger.info(
                "Rejected item from a second vendor",
                user_id=str(user.id),
                cart_vendor_id=str(user.vendor_id),
                vendor_id=str(vendor.id),
            )
            raise

        prospective = user.cart_quantity(item.id, kind) + command.quantity
        _check_stock(user, vendor.id, item.id, kind, prospective)

        user.add_to_cart(item.id, kind, command.quantity, vendor.id)
        repo.add(user)
        return prospective

    @handle(ChangeCartQuantity)
    def change_quantity(self, command):
        kind = ItemKind.parse(command.kind)
        repo = current_domain.repository_for(User)
        user = repo.get(command.user_id)

        if command.delta > 0 and user.vendor_id:
            vendor = directory.get_vendor(user.vendor_id)
            item = directory.get_item(command.item_id, kind)
            _check_university(vendor, item)
            _check_stock(user, vendor.id, item.id, kind, user.cart_quantity(item.id, kind) + command.delta)

        new_quantity = user.change_quantity(command.item_id, kind, command.delta)
        repo.add(user)
        return new_quantity

    @handle(RemoveCartItem)
    def remove_item(self, command):
        kind = ItemKind.parse(command.kind)
        repo = current_domain.repository_for(User)
        user = repo.get(command.user_id)
        removed = user.remove_from_cart(command.item_id, kind)
        repo.add(user)
        return removed

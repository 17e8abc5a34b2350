"""Read-only lookups into users, vendors and the item catalog."""

from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from marketplace.directory.item import Item
from marketplace.directory.university import University
from marketplace.directory.user import User
from marketplace.directory.vendor import Vendor
from marketplace.inventory.kinds import ItemKind


class Directory:
    def get_user(self, user_id) -> User:
        return current_domain.repository_for(User).get(user_id)

    def get_vendor(self, vendor_id) -> Vendor:
        return current_domain.repository_for(Vendor).get(vendor_id)

    def get_university(self, university_id) -> University:
        return current_domain.repository_for(University).get(university_id)

    def get_item(self, item_id, kind) -> Item:
        """Fetch an item, treating a kind mismatch as absence."""
        kind = ItemKind.parse(kind)
        item = current_domain.repository_for(Item).get(item_id)
        if item.kind != kind.value:
            raise ObjectNotFoundError({"_entity": [f"{kind.value} item {item_id} does not exist"]})
        return item

    def items_by_id(self, item_ids) -> dict:
        return current_domain.repository_for(Item).by_ids(item_ids)

    def vendors_of_university(self, university_id) -> list[Vendor]:
        self.get_university(university_id)
        return current_domain.repository_for(Vendor).for_university(university_id)


directory = Directory()

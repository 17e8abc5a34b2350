"""Catalog items offered by vendors of a university."""

from protean.fields import DateTime, Float, Identifier, String

from marketplace.domain import marketplace
from marketplace.inventory.kinds import ItemKind


@marketplace.aggregate
class Item:
    name = String(required=True, max_length=255)
    kind = String(required=True, choices=ItemKind)
    price = Float(required=True, min_value=0.0)
    university_id = Identifier(required=True)
    image = String(max_length=1000)
    unit = String(max_length=50)
    food_type = String(max_length=50)
    created_at = DateTime()


@marketplace.repository(part_of=Item)
class ItemRepository:
    def by_ids(self, item_ids):
        item_ids = [str(item_id) for item_id in item_ids]
        if not item_ids:
            return {}
        return {str(item.id): item for item in self._dao.query.filter(id__in=item_ids).all().items}

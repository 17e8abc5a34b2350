import json
from datetime import UTC, datetime

from protean.fields import DateTime, Identifier, String, Text

from marketplace.domain import marketplace


@marketplace.aggregate
class Vendor:
    full_name = String(required=True, max_length=255)
    university_id = Identifier(required=True)
    active_orders = Text()  # JSON array of order ids
    created_at = DateTime()
    updated_at = DateTime()

    @property
    def active_order_ids(self) -> list[str]:
        return json.loads(self.active_orders) if self.active_orders else []

    def link_order(self, order_id):
        order_ids = self.active_order_ids
        if str(order_id) not in order_ids:
            order_ids.append(str(order_id))
        self.active_orders = json.dumps(order_ids)
        self.updated_at = datetime.now(UTC)


@marketplace.repository(part_of=Vendor)
class VendorRepository:
    def for_university(self, university_id):
        return self._dao.query.filter(university_id=str(university_id)).all().items

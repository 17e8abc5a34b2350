"""InventoryEntry aggregate: one vendor's stock of one item.

Retail entries count units; produce entries only carry an availability
flag. Stored quantities are only ever changed through the conditional
updates on ``InventoryEntryRepository`` so that concurrent settlements can
never drive stock negative.
"""

from datetime import UTC, datetime

import structlog
from protean.exceptions import ExpectedVersionError, ObjectNotFoundError, ValidationError
from protean.fields import DateTime, Identifier, Integer, String

from marketplace.domain import marketplace
from marketplace.exceptions import StockConflict
from marketplace.inventory.kinds import Availability, ItemKind

logger = structlog.get_logger(__name__)

MAX_CAS_ATTEMPTS = 5


@marketplace.aggregate
class InventoryEntry:
    entry_key = String(identifier=True, max_length=255)
    vendor_id = Identifier(required=True)
    item_id = Identifier(required=True)
    kind = String(required=True, choices=ItemKind)
    quantity = Integer(default=0, min_value=0)
    availability = String(choices=Availability, default=Availability.UNAVAILABLE.value)
    updated_at = DateTime()

    @staticmethod
    def key_for(vendor_id, item_id, kind) -> str:
        return f"{vendor_id}:{ItemKind.parse(kind).value}:{item_id}"

    @classmethod
    def open(cls, vendor_id, item_id, kind):
        """Start tracking an item for a vendor with no stock on hand."""
        kind = ItemKind.parse(kind)
        return cls(
            entry_key=cls.key_for(vendor_id, item_id, kind),
            vendor_id=vendor_id,
            item_id=item_id,
            kind=kind.value,
            quantity=0,
            availability=Availability.UNAVAILABLE.value,
            updated_at=datetime.now(UTC),
        )

    @property
    def is_retail(self) -> bool:
        return self.kind == ItemKind.RETAIL.value

    def receive(self, quantity):
        if not self.is_retail:
            raise ValidationError({"kind": ["Only Retail items carry a stock quantity"]})
        if quantity <= 0:
            raise ValidationError({"quantity": ["Received quantity must be positive"]})
        self.quantity = (self.quantity or 0) + quantity
        self.updated_at = datetime.now(UTC)

    def set_availability(self, available: bool):
        if self.is_retail:
            raise ValidationError({"kind": ["Only Produce items carry an availability flag"]})
        self.availability = (Availability.AVAILABLE if available else Availability.UNAVAILABLE).value
        self.updated_at = datetime.now(UTC)


@marketplace.repository(part_of=InventoryEntry)
class InventoryEntryRepository:
    def find(self, vendor_id, item_id, kind):
        """Return the entry for (vendor, item, kind), or None when the vendor does not stock it."""
        rows = self._dao.query.filter(entry_key=InventoryEntry.key_for(vendor_id, item_id, kind)).all().items
        return rows[0] if rows else None

    def for_vendor(self, vendor_id, kind=None):
        query = self._dao.query.filter(vendor_id=vendor_id)
        if kind is not None:
            query = query.filter(kind=ItemKind.parse(kind).value)
        return query.all().items

    def current(self, entry_key):
        rows = self._dao.query.filter(entry_key=entry_key).all().items
        if not rows:
            raise ObjectNotFoundError({"_entity": [f"Inventory entry {entry_key} does not exist"]})
        return rows[0]

    def _swap(self, entry_key, observed, new_quantity) -> bool:
        """Write ``new_quantity`` only if the stored quantity is still ``observed``."""
        try:
            matched = self._dao.query.filter(entry_key=entry_key, quantity=observed).update(
                quantity=new_quantity, updated_at=datetime.now(UTC)
            )
        except ExpectedVersionError:
            return False
        return matched > 0

    def decrement(self, entry_key, quantity) -> int:
        """Take ``quantity`` units only while at least that many remain.

        Each attempt is a compare-and-swap on the observed quantity; a lost
        race re-reads and tries again. Returns the remaining quantity.
        """
        observed = None
        for attempt in range(1, MAX_CAS_ATTEMPTS + 1):
            observed = self.current(entry_key).quantity or 0
            if observed < quantity:
                raise StockConflict(
                    {"quantity": [f"Oversold: only {observed} unit(s) available, {quantity} requested"]},
                    available=observed,
                )
            if self._swap(entry_key, observed, observed - quantity):
                return observed - quantity
            logger.info("Inventory changed concurrently, retrying", entry_key=entry_key, attempt=attempt)

        raise StockConflict(
            {"quantity": [f"Inventory for {entry_key} is changing too quickly, please retry"]},
            available=observed,
        )

    def increment(self, entry_key, quantity) -> int:
        for attempt in range(1, MAX_CAS_ATTEMPTS + 1):
            observed = self.current(entry_key).quantity or 0
            if self._swap(entry_key, observed, observed + quantity):
                return observed + quantity
            logger.info("Inventory changed concurrently, retrying", entry_key=entry_key, attempt=attempt)

        raise StockConflict({"quantity": [f"Inventory for {entry_key} is changing too quickly, please retry"]})

    def mark_available(self, entry_key):
        self._dao.query.filter(entry_key=entry_key).update(
            availability=Availability.AVAILABLE.value, updated_at=datetime.now(UTC)
        )

    def set_availability(self, entry_key, available: bool):
        flag = Availability.AVAILABLE if available else Availability.UNAVAILABLE
        self._dao.query.filter(entry_key=entry_key).update(availability=flag.value, updated_at=datetime.now(UTC))

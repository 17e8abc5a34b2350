"""Stock intake and produce availability, both owned by the inventory ledger."""

import structlog
from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Boolean, Identifier, Integer
from protean.utils.globals import current_domain

from marketplace.directory.lookup import directory
from marketplace.domain import marketplace
from marketplace.inventory.entry import InventoryEntry
from marketplace.inventory.kinds import ItemKind

logger = structlog.get_logger(__name__)


@marketplace.command(part_of="InventoryEntry")
class ReceiveRetailStock:
    vendor_id = Identifier(required=True)
    item_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)


@marketplace.command(part_of="InventoryEntry")
class SetProduceAvailability:
    vendor_id = Identifier(required=True)
    item_id = Identifier(required=True)
    available = Boolean(required=True)


def _stockable(vendor_id, item_id, kind):
    vendor = directory.get_vendor(vendor_id)
    item = directory.get_item(item_id, kind)
    if str(vendor.university_id) != str(item.university_id):
        raise ValidationError({"item_id": ["Vendor does not carry item for that university"]})
    return vendor, item


@marketplace.command_handler(part_of=InventoryEntry)
class StockingHandler:
    @handle(ReceiveRetailStock)
    def receive_retail_stock(self, command):
        vendor, item = _stockable(command.vendor_id, command.item_id, ItemKind.RETAIL)
        repo = current_domain.repository_for(InventoryEntry)

        entry = repo.find(vendor.id, item.id, ItemKind.RETAIL)
        if entry is None:
            entry = InventoryEntry.open(vendor.id, item.id, ItemKind.RETAIL)
            entry.receive(command.quantity)
            repo.add(entry)
            quantity = entry.quantity
        else:
            quantity = repo.increment(entry.entry_key, command.quantity)

        logger.info(
            "Retail stock received",
            vendor_id=str(vendor.id),
            item_id=str(item.id),
            received=command.quantity,
            quantity=quantity,
        )
        return quantity

    @handle(SetProduceAvailability)
    def set_produce_availability(self, command):
        vendor, item = _stockable(command.vendor_id, command.item_id, ItemKind.PRODUCE)
        repo = current_domain.repository_for(InventoryEntry)

        entry = repo.find(vendor.id, item.id, ItemKind.PRODUCE)
        if entry is None:
            entry = InventoryEntry.open(vendor.id, item.id, ItemKind.PRODUCE)
            entry.set_availability(command.available)
            repo.add(entry)
        else:
            repo.set_availability(entry.entry_key, command.available)

        logger.info(
            "Produce availability changed",
            vendor_id=str(vendor.id),
            item_id=str(item.id),
            available=command.available,
        )
        return command.available

"""Report lookups with vendor and item names resolved."""

from dataclasses import dataclass, field

from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from marketplace.directory.lookup import directory
from marketplace.inventory.ledger import parse_day
from marketplace.inventory.report import InventoryReport


@dataclass(frozen=True)
class RetailReportLine:
    item_id: str
    item_name: str | None
    opening_qty: int
    closing_qty: int
    sold_qty: int


@dataclass(frozen=True)
class ProduceReportLine:
    item_id: str
    item_name: str | None
    sold_qty: int


@dataclass(frozen=True)
class ReportView:
    vendor_id: str
    vendor_name: str
    report_date: str
    retail_entries: list[RetailReportLine] = field(default_factory=list)
    produce_entries: list[ProduceReportLine] = field(default_factory=list)
    order_count: int = 0


def get_inventory_report(vendor_id, report_date=None) -> ReportView:
    day = parse_day(report_date)
    vendor = directory.get_vendor(vendor_id)
    report = current_domain.repository_for(InventoryReport).for_vendor_on(vendor.id, day)
    if report is None:
        raise ObjectNotFoundError({"_entity": [f"No inventory report found for vendor {vendor_id} on {day.isoformat()}"]})

    item_ids = [e.item_id for e in report.retail_entries] + [e.item_id for e in report.produce_entries]
    items = directory.items_by_id(item_ids)

    def name_of(item_id):
        item = items.get(str(item_id))
        return item.name if item else None

    return ReportView(
        vendor_id=str(vendor.id),
        vendor_name=vendor.full_name,
        report_date=day.isoformat(),
        retail_entries=[
            RetailReportLine(
                item_id=str(e.item_id),
                item_name=name_of(e.item_id),
                opening_qty=e.opening_qty,
                closing_qty=e.closing_qty,
                sold_qty=e.sold_qty,
            )
            for e in report.retail_entries
        ],
        produce_entries=[
            ProduceReportLine(item_id=str(e.item_id), item_name=name_of(e.item_id), sold_qty=e.sold_qty)
            for e in report.produce_entries
        ],
        order_count=len(report.settled_order_ids),
    )

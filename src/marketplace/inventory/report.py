"""InventoryReport aggregate: a vendor's opening, closing and sold quantities for one day.

The report identifier is derived from (vendor, day), which makes a second
report for the same day impossible to store. Sales are recorded per order
and each order is recorded at most once.
"""

import json
from dataclasses import dataclass
from datetime import UTC, date, datetime

from protean.fields import Date, DateTime, HasMany, Identifier, Integer, String, Text

from marketplace.domain import marketplace
from marketplace.exceptions import ReportConsistencyConflict
from marketplace.inventory.events import DailyReportOpened, ReportItemsAdded, SalesRecorded
from marketplace.inventory.kinds import ItemKind


@dataclass(frozen=True)
class Sale:
    item_id: str
    kind: str
    quantity: int
    remaining: int | None = None  # live retail quantity after the sale


@marketplace.entity(part_of="InventoryReport")
class RetailLedgerEntry:
    item_id = Identifier(required=True)
    opening_qty = Integer(default=0)
    closing_qty = Integer(default=0)
    sold_qty = Integer(default=0)


@marketplace.entity(part_of="InventoryReport")
class ProduceLedgerEntry:
    item_id = Identifier(required=True)
    sold_qty = Integer(default=0)


@marketplace.aggregate
class InventoryReport:
    report_id = String(identifier=True, max_length=255)
    vendor_id = Identifier(required=True)
    report_date = Date(required=True)
    retail_entries = HasMany(RetailLedgerEntry)
    produce_entries = HasMany(ProduceLedgerEntry)
    order_ids = Text()  # JSON array of settled order ids
    created_at = DateTime()
    updated_at = DateTime()

    @staticmethod
    def key_for(vendor_id, day: date) -> str:
        return f"{vendor_id}:{day.isoformat()}"

    @classmethod
    def open(cls, vendor_id, day: date, opening: dict):
        """Start a day's report with ``opening`` quantities keyed by retail item id."""
        now = datetime.now(UTC)
        report = cls(
            report_id=cls.key_for(vendor_id, day),
            vendor_id=vendor_id,
            report_date=day,
            order_ids=json.dumps([]),
            created_at=now,
            updated_at=now,
        )
        for item_id, quantity in opening.items():
            report.add_retail_entries(
                RetailLedgerEntry(item_id=item_id, opening_qty=quantity, closing_qty=quantity, sold_qty=0)
            )

        report.raise_(
            DailyReportOpened(
                report_id=report.report_id,
                vendor_id=str(vendor_id),
                report_date=day.isoformat(),
                retail_items=len(opening),
            )
        )
        return report

    @property
    def settled_order_ids(self) -> list[str]:
        return json.loads(self.order_ids) if self.order_ids else []

    def retail_entry(self, item_id):
        return next((e for e in self.retail_entries if str(e.item_id) == str(item_id)), None)

    def produce_entry(self, item_id):
        return next((e for e in self.produce_entries if str(e.item_id) == str(item_id)), None)

    def closing_quantities(self) -> dict:
        return {str(e.item_id): e.closing_qty for e in self.retail_entries}

    def has_recorded(self, order_id) -> bool:
        return str(order_id) in self.settled_order_ids

    def track_items(self, live_quantities: dict) -> int:
        """Add entries for retail items stocked since the report was opened."""
        added = 0
        for item_id, quantity in live_quantities.items():
            if self.retail_entry(item_id) is None:
                self.add_retail_entries(
                    RetailLedgerEntry(item_id=item_id, opening_qty=quantity, closing_qty=quantity, sold_qty=0)
                )
                added += 1

        if added:
            self.updated_at = datetime.now(UTC)
            self.raise_(ReportItemsAdded(report_id=self.report_id, vendor_id=str(self.vendor_id), added=added))
        return added

    def record_sales(self, order_id, sales: list[Sale]) -> bool:
        """Write an order's settled lines into the ledger. Returns False if already recorded."""
        if self.has_recorded(order_id):
            return False

        for sale in sales:
            if sale.kind == ItemKind.RETAIL.value:
                entry = self.retail_entry(sale.item_id)
                if entry is not None:
                    entry.sold_qty += sale.quantity
                    entry.closing_qty -= sale.quantity
                else:
                    remaining = sale.remaining or 0
                    self.add_retail_entries(
                        RetailLedgerEntry(
                            item_id=sale.item_id,
                            opening_qty=remaining + sale.quantity,
                            closing_qty=remaining,
                            sold_qty=sale.quantity,
                        )
                    )
            else:
                entry = self.produce_entry(sale.item_id)
                if entry is not None:
                    entry.sold_qty += sale.quantity
                else:
                    self.add_produce_entries(ProduceLedgerEntry(item_id=sale.item_id, sold_qty=sale.quantity))

        self.order_ids = json.dumps([*self.settled_order_ids, str(order_id)])
        self.updated_at = datetime.now(UTC)

        self.raise_(
            SalesRecorded(
                report_id=self.report_id,
                vendor_id=str(self.vendor_id),
                order_id=str(order_id),
                units_sold=sum(sale.quantity for sale in sales),
            )
        )
        return True


@marketplace.repository(part_of=InventoryReport)
class InventoryReportRepository:
    def for_vendor_on(self, vendor_id, day: date):
        rows = self._dao.query.filter(report_id=InventoryReport.key_for(vendor_id, day)).all().items
        return rows[0] if rows else None

    def create(self, report):
        """Store a new report, refusing to overwrite one created in the meantime."""
        if self.for_vendor_on(report.vendor_id, report.report_date) is not None:
            raise ReportConsistencyConflict(
                {"report_id": [f"Inventory report {report.report_id} already exists"]}
            )
        self.add(report)
        return report

"""Domain events for the daily inventory report."""

from protean.fields import Identifier, Integer, String

from marketplace.domain import marketplace


@marketplace.event(part_of="InventoryReport")
class DailyReportOpened:
    """A vendor's ledger for a calendar day was started."""

    __version__ = 1

    report_id = String(required=True, max_length=255)
    vendor_id = Identifier(required=True)
    report_date = String(required=True, max_length=10)
    retail_items = Integer(default=0)


@marketplace.event(part_of="InventoryReport")
class ReportItemsAdded:
    __version__ = 1

    report_id = String(required=True, max_length=255)
    vendor_id = Identifier(required=True)
    added = Integer(required=True)


@marketplace.event(part_of="InventoryReport")
class SalesRecorded:
    """A settled order's lines were written into the day's ledger."""

    __version__ = 1

    report_id = String(required=True, max_length=255)
    vendor_id = Identifier(required=True)
    order_id = Identifier(required=True)
    units_sold = Integer(required=True)

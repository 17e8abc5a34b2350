"""InventoryLedger: apply paid orders to stock and keep each vendor's daily report.

Settlement runs once per order. The ledger claim on the order guards the
whole chain; retail stock is taken with conditional decrements and any
decrement already applied is put back when a later line turns out to be
oversold. The day's report is opened before stock moves so that opening
quantities reflect the stock before the sale.
"""

from datetime import UTC, date, datetime, timedelta

import structlog
from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from marketplace.directory.lookup import directory
from marketplace.directory.user import User
from marketplace.directory.vendor import Vendor
from marketplace.domain import marketplace
from marketplace.exceptions import ReportConsistencyConflict, StockConflict
from marketplace.inventory.entry import InventoryEntry
from marketplace.inventory.kinds import ItemKind, policy_for
from marketplace.inventory.report import InventoryReport, Sale
from marketplace.order.order import LedgerStatus, Order

logger = structlog.get_logger(__name__)


@marketplace.command(part_of="InventoryReport")
class SettleOrder:
    order_id = Identifier(required=True)


@marketplace.command(part_of="InventoryReport")
class GenerateDailyReport:
    vendor_id = Identifier(required=True)
    report_date = String(max_length=10)  # YYYY-MM-DD, defaults to today (UTC)


@marketplace.command(part_of="InventoryReport")
class GenerateUniversityReports:
    university_id = Identifier(required=True)
    report_date = String(max_length=10)


def today() -> date:
    return datetime.now(UTC).date()


def parse_day(value) -> date:
    if value is None or value == "":
        return today()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value))
    except ValueError:
        raise ValidationError({"date": [f"Invalid date {value!r}, expected YYYY-MM-DD"]}) from None


def _live_retail_quantities(vendor_id) -> dict:
    entries = current_domain.repository_for(InventoryEntry).for_vendor(vendor_id, ItemKind.RETAIL)
    return {str(entry.item_id): entry.quantity or 0 for entry in entries}


def _opening_quantities(vendor_id, day: date, live: dict) -> dict:
    """Yesterday's closing where it was recorded, else the live quantity."""
    previous = current_domain.repository_for(InventoryReport).for_vendor_on(vendor_id, day - timedelta(days=1))
    carried = previous.closing_quantities() if previous else {}
    return {item_id: carried.get(item_id, quantity) for item_id, quantity in live.items()}


def _load_or_open(vendor_id, day: date):
    report = current_domain.repository_for(InventoryReport).for_vendor_on(vendor_id, day)
    if report is not None:
        return report, False
    live = _live_retail_quantities(vendor_id)
    return InventoryReport.open(vendor_id, day, _opening_quantities(vendor_id, day, live)), True


def _consume(order) -> list[Sale]:
    """Take stock for every line, undoing earlier lines if one is oversold."""
    entries = current_domain.repository_for(InventoryEntry)
    applied = []
    sales = []
    try:
        for line in order.lines:
            policy = policy_for(line.kind)
            entry = entries.find(order.vendor_id, line.item_id, line.kind)
            if entry is None:
                raise StockConflict(
                    {"item_id": [f"Vendor no longer stocks {line.kind} item {line.item_id}"]},
                    available=0,
                )
            remaining = policy.consume(entries, entry, line.quantity)
            applied.append((policy, entry, line.quantity))
            sales.append(Sale(item_id=str(line.item_id), kind=line.kind, quantity=line.quantity, remaining=remaining))
    except StockConflict:
        for policy, entry, quantity in reversed(applied):
            policy.restore(entries, entry, quantity)
        raise
    return sales


def _record(report, is_new, order_id, sales):
    reports = current_domain.repository_for(InventoryReport)
    if is_new:
        report.record_sales(order_id, sales)
        try:
            return reports.create(report)
        except ReportConsistencyConflict:
            logger.info("Daily report created concurrently, updating it instead", report_id=report.report_id)
            report = reports.for_vendor_on(report.vendor_id, report.report_date)

    report.record_sales(order_id, sales)
    reports.add(report)
    return report


def _generate(vendor_id, day: date) -> dict:
    vendor = directory.get_vendor(vendor_id)
    reports = current_domain.repository_for(InventoryReport)
    live = _live_retail_quantities(vendor.id)

    report = reports.for_vendor_on(vendor.id, day)
    if report is None:
        report = InventoryReport.open(vendor.id, day, _opening_quantities(vendor.id, day, live))
        try:
            reports.create(report)
            logger.info("Inventory report created", vendor_id=str(vendor.id), report_date=day.isoformat())
            return {"created": True, "added": 0}
        except ReportConsistencyConflict:
            report = reports.for_vendor_on(vendor.id, day)

    added = 0
    if day == today():
        # Past reports are closed books; only today's picks up newly stocked items
        added = report.track_items(live)
        if added:
            reports.add(report)
    return {"created": False, "added": added}


@marketplace.command_handler(part_of=InventoryReport)
class InventoryLedgerHandler:
    @handle(SettleOrder)
    def settle_order(self, command):
        orders = current_domain.repository_for(Order)
        if not orders.claim_ledger(command.order_id):
            order = orders.get(command.order_id)
            if order.ledger_status == LedgerStatus.SETTLED.value:
                logger.info("Order already settled, skipping", order_id=str(order.id))
                return False
            raise ValidationError({"order_id": [f"Order {order.id} is not awaiting settlement"]})

        order = orders.get(command.order_id)
        report, is_new = _load_or_open(order.vendor_id, today())

        try:
            sales = _consume(order)
        except StockConflict as exc:
            logger.error(
                "Order oversold at settlement",
                order_id=str(order.id),
                vendor_id=str(order.vendor_id),
                available=exc.available,
            )
            raise

        _record(report, is_new, order.id, sales)

        users = current_domain.repository_for(User)
        user = users.get(order.user_id)
        user.check_out(order.id)
        users.add(user)

        vendors = current_domain.repository_for(Vendor)
        vendor = vendors.get(order.vendor_id)
        vendor.link_order(order.id)
        vendors.add(vendor)

        order.record_settlement()
        orders.add(order)

        logger.info(
            "Order settled",
            order_id=str(order.id),
            vendor_id=str(order.vendor_id),
            lines=len(sales),
            report_id=report.report_id,
        )
        return True

    @handle(GenerateDailyReport)
    def generate_daily_report(self, command):
        return _generate(command.vendor_id, parse_day(command.report_date))

    @handle(GenerateUniversityReports)
    def generate_university_reports(self, command):
        day = parse_day(command.report_date)
        vendors = directory.vendors_of_university(command.university_id)
        results = [_generate(vendor.id, day) for vendor in vendors]

        summary = {
            "total": len(results),
            "created": sum(1 for result in results if result["created"]),
            "added": sum(result["added"] for result in results),
        }
        logger.info("University reports generated", university_id=str(command.university_id), **summary)
        return summary


class InventoryLedger:
    """Entry point other components use to reach the ledger."""

    def settle(self, order_id) -> bool:
        return current_domain.process(SettleOrder(order_id=str(order_id)), asynchronous=False)

    def generate_daily_report(self, vendor_id, report_date=None) -> dict:
        return current_domain.process(
            GenerateDailyReport(vendor_id=str(vendor_id), report_date=_as_text(report_date)),
            asynchronous=False,
        )

    def generate_daily_report_for_university(self, university_id, report_date=None) -> dict:
        return current_domain.process(
            GenerateUniversityReports(university_id=str(university_id), report_date=_as_text(report_date)),
            asynchronous=False,
        )


def _as_text(value):
    if isinstance(value, date):
        return value.isoformat()
    return value

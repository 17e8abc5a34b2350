from types import SimpleNamespace

import pytest
from protean import current_domain
from protean.integrations.pytest import DomainFixture


@pytest.fixture(scope="session")
def marketplace_bed():
    from marketplace.domain import marketplace

    bed = DomainFixture(marketplace)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(marketplace_bed):
    with marketplace_bed.domain_context():
        yield


# ---------------------------------------------------------------------------
# Seeding
# ---------------------------------------------------------------------------
class Campus:
    """Builds directory and stock records for a test."""

    def university(self, name="North Campus"):
        from marketplace.directory.university import University

        university = University(name=name, city="Pune")
        current_domain.repository_for(University).add(university)
        return university

    def vendor(self, university, full_name="Hostel Canteen"):
        from marketplace.directory.vendor import Vendor

        vendor = Vendor(full_name=full_name, university_id=university.id)
        current_domain.repository_for(Vendor).add(vendor)
        return vendor

    def item(self, university, name, kind, price, **extra):
        from marketplace.directory.item import Item

        item = Item(name=name, kind=kind, price=price, university_id=university.id, **extra)
        current_domain.repository_for(Item).add(item)
        return item

    def user(self, university, name="Asha"):
        from marketplace.directory.user import User

        user = User(name=name, email=f"{name.lower()}@campus.test", university_id=university.id)
        current_domain.repository_for(User).add(user)
        return user

    def stock(self, vendor, item, quantity=None, available=None):
        """Open an inventory entry for ``item`` at ``vendor``."""
        from marketplace.inventory.entry import InventoryEntry

        entry = InventoryEntry.open(vendor.id, item.id, item.kind)
        if quantity:
            entry.receive(quantity)
        if available is not None:
            entry.set_availability(available)
        current_domain.repository_for(InventoryEntry).add(entry)
        return entry

    def quantity_of(self, vendor, item):
        from marketplace.inventory.entry import InventoryEntry

        return current_domain.repository_for(InventoryEntry).find(vendor.id, item.id, item.kind).quantity


@pytest.fixture()
def campus():
    """A university with one stocked vendor, a second vendor and a user.

    Stock at the canteen:
        chips   Retail   20.0  30 units
        juice   Retail   35.0   2 units
        samosa  Produce  15.0  available
        dosa    Produce  40.0  unavailable
    """
    seed = Campus()
    university = seed.university()
    canteen = seed.vendor(university, "Hostel Canteen")
    cafe = seed.vendor(university, "Library Cafe")

    chips = seed.item(university, "Masala Chips", "Retail", 20.0, unit="packet")
    juice = seed.item(university, "Mango Juice", "Retail", 35.0, unit="bottle")
    samosa = seed.item(university, "Samosa", "Produce", 15.0, food_type="veg")
    dosa = seed.item(university, "Masala Dosa", "Produce", 40.0, food_type="veg")

    seed.stock(canteen, chips, quantity=30)
    seed.stock(canteen, juice, quantity=2)
    seed.stock(canteen, samosa, available=True)
    seed.stock(canteen, dosa, available=False)
    seed.stock(cafe, chips, quantity=5)

    return SimpleNamespace(
        seed=seed,
        university=university,
        canteen=canteen,
        cafe=cafe,
        chips=chips,
        juice=juice,
        samosa=samosa,
        dosa=dosa,
        user=seed.user(university, "Asha"),
        other_user=seed.user(university, "Ravi"),
    )


@pytest.fixture()
def gateway():
    from marketplace.gateway import FakeGateway

    return FakeGateway(secret="test-secret")


@pytest.fixture()
def settings():
    from marketplace.config import Settings

    return Settings(payment_gateway="fake", fake_gateway_secret="test-secret")


@pytest.fixture()
def placer(gateway, settings):
    from marketplace.order.placement import OrderPlacer

    return OrderPlacer(gateway, settings)


@pytest.fixture()
def settlement(gateway):
    from marketplace.payment.settlement import PaymentSettlement

    return PaymentSettlement(gateway)


@pytest.fixture()
def add_to_cart():
    """Process AddItemToCart for a user and return the prospective quantity."""
    from marketplace.cart.items import AddItemToCart

    def _add(user, item, vendor, quantity=1):
        return current_domain.process(
            AddItemToCart(
                user_id=user.id,
                item_id=item.id,
                kind=item.kind,
                quantity=quantity,
                vendor_id=vendor.id,
            ),
            asynchronous=False,
        )

    return _add


@pytest.fixture()
def pay(gateway, settlement):
    """Sign a gateway callback for a placed order and settle it."""

    def _pay(placed, payment_ref="pay_test_001"):
        gateway_order_ref = placed.payment_intent.gateway_order_ref
        return settlement.verify_and_settle(
            gateway_order_ref=gateway_order_ref,
            gateway_payment_ref=payment_ref,
            gateway_signature=gateway.sign(gateway_order_ref, payment_ref),
            order_id=placed.order_id,
        )

    return _pay

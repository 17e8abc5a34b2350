"""Application tests for the cart commands handled by CartManager."""

import pytest
from marketplace.cart.details import get_cart_details, get_extras
from marketplace.cart.items import ChangeCartQuantity, RemoveCartItem
from marketplace.directory.user import User
from marketplace.exceptions import CartPolicyConflict, StockConflict
from protean import current_domain
from protean.exceptions import ObjectNotFoundError, ValidationError


def _user(user):
    return current_domain.repository_for(User).get(user.id)


def _change(user, item, delta):
    return current_domain.process(
        ChangeCartQuantity(user_id=user.id, item_id=item.id, kind=item.kind, delta=delta),
        asynchronous=False,
    )


def _remove(user, item):
    return current_domain.process(
        RemoveCartItem(user_id=user.id, item_id=item.id, kind=item.kind),
        asynchronous=False,
    )


class TestAddItem:
    def test_add_persists_and_binds_vendor(self, campus, add_to_cart):
        quantity = add_to_cart(campus.user, campus.chips, campus.canteen, 2)

        user = _user(campus.user)
        assert quantity == 2
        assert user.vendor_id == campus.canteen.id
        assert user.cart_quantity(campus.chips.id, "Retail") == 2

    def test_add_again_accumulates(self, campus, add_to_cart):
        add_to_cart(campus.user, campus.chips, campus.canteen, 2)
        assert add_to_cart(campus.user, campus.chips, campus.canteen, 3) == 5

    def test_retail_cap(self, campus, add_to_cart):
        add_to_cart(campus.user, campus.chips, campus.canteen, 15)

        with pytest.raises(ValidationError) as exc:
            add_to_cart(campus.user, campus.chips, campus.canteen, 1)
        assert exc.value.messages["quantity"] == ["Cannot exceed max quantity of 15 for a single Retail item"]
        assert _user(campus.user).cart_quantity(campus.chips.id, "Retail") == 15

    def test_produce_cap(self, campus, add_to_cart):
        with pytest.raises(ValidationError) as exc:
            add_to_cart(campus.user, campus.samosa, campus.canteen, 11)
        assert exc.value.messages["quantity"] == ["Cannot exceed max quantity of 10 for a single Produce item"]

    def test_insufficient_retail_stock(self, campus, add_to_cart):
        with pytest.raises(StockConflict) as exc:
            add_to_cart(campus.user, campus.juice, campus.canteen, 3)
        assert exc.value.available == 2
        assert exc.value.messages["quantity"] == ["Only 2 unit(s) available"]

    def test_unavailable_produce(self, campus, add_to_cart):
        with pytest.raises(StockConflict) as exc:
            add_to_cart(campus.user, campus.dosa, campus.canteen, 1)
        assert exc.value.messages["availability"] == ["Produce item is not available"]

    def test_vendor_without_the_item(self, campus, add_to_cart):
        with pytest.raises(StockConflict):
            add_to_cart(campus.user, campus.samosa, campus.cafe, 1)

    def test_second_vendor_is_rejected(self, campus, add_to_cart):
        add_to_cart(campus.user, campus.chips, campus.canteen, 1)

        with pytest.raises(CartPolicyConflict):
            add_to_cart(campus.user, campus.chips, campus.cafe, 1)
        assert _user(campus.user).vendor_id == campus.canteen.id

    def test_vendor_conflict_is_reported_before_stock(self, campus, add_to_cart):
        add_to_cart(campus.user, campus.chips, campus.canteen, 1)

        with pytest.raises(CartPolicyConflict):
            add_to_cart(campus.user, campus.chips, campus.cafe, 14)

    def test_item_of_another_university(self, campus, add_to_cart):
        elsewhere = campus.seed.university("South Campus")
        foreign = campus.seed.item(elsewhere, "Lassi", "Retail", 30.0)
        campus.seed.stock(campus.canteen, foreign, quantity=10)

        with pytest.raises(ValidationError) as exc:
            add_to_cart(campus.user, foreign, campus.canteen, 1)
        assert exc.value.messages["item_id"] == ["Vendor does not carry item for that university"]

    def test_kind_mismatch_is_not_found(self, campus):
        from marketplace.cart.items import AddItemToCart

        with pytest.raises(ObjectNotFoundError):
            current_domain.process(
                AddItemToCart(
                    user_id=campus.user.id,
                    item_id=campus.chips.id,
                    kind="Produce",
                    quantity=1,
                    vendor_id=campus.canteen.id,
                ),
                asynchronous=False,
            )

    def test_unknown_user(self, campus, add_to_cart):
        from types import SimpleNamespace

        with pytest.raises(ObjectNotFoundError):
            add_to_cart(SimpleNamespace(id="missing"), campus.chips, campus.canteen, 1)

    def test_non_positive_quantity(self, campus, add_to_cart):
        with pytest.raises(ValidationError):
            add_to_cart(campus.user, campus.chips, campus.canteen, 0)


class TestChangeQuantity:
    def test_increment_and_decrement(self, campus, add_to_cart):
        add_to_cart(campus.user, campus.chips, campus.canteen, 2)

        assert _change(campus.user, campus.chips, 1) == 3
        assert _change(campus.user, campus.chips, -1) == 2

    def test_increment_respects_stock(self, campus, add_to_cart):
        add_to_cart(campus.user, campus.juice, campus.canteen, 2)

        with pytest.raises(StockConflict):
            _change(campus.user, campus.juice, 1)
        assert _user(campus.user).cart_quantity(campus.juice.id, "Retail") == 2

    def test_increment_respects_cap(self, campus, add_to_cart):
        add_to_cart(campus.user, campus.samosa, campus.canteen, 10)

        with pytest.raises(ValidationError):
            _change(campus.user, campus.samosa, 1)

    def test_decrement_to_zero_empties_cart(self, campus, add_to_cart):
        add_to_cart(campus.user, campus.chips, campus.canteen, 1)

        assert _change(campus.user, campus.chips, -1) == 0
        user = _user(campus.user)
        assert len(user.cart_entries) == 0
        assert user.vendor_id is None

    def test_decrement_absent_item(self, campus):
        with pytest.raises(ValidationError) as exc:
            _change(campus.user, campus.chips, -1)
        assert exc.value.messages["item_id"] == ["Item not in cart"]


class TestRemoveItem:
    def test_remove_last_item_unbinds_vendor(self, campus, add_to_cart):
        add_to_cart(campus.user, campus.chips, campus.canteen, 2)

        assert _remove(campus.user, campus.chips) is True
        assert _user(campus.user).vendor_id is None

    def test_remove_absent_item_is_a_no_op(self, campus):
        assert _remove(campus.user, campus.chips) is False


class TestEndToEnd:
    def test_add_overflow_then_remove(self, campus, add_to_cart):
        cola = campus.seed.item(campus.university, "Cola", "Retail", 40.0)
        campus.seed.stock(campus.canteen, cola, quantity=5)

        add_to_cart(campus.user, cola, campus.canteen, 2)
        user = _user(campus.user)
        assert len(user.cart_entries) == 1
        assert user.cart_quantity(cola.id, "Retail") == 2
        assert user.vendor_id == campus.canteen.id

        with pytest.raises(StockConflict) as exc:
            add_to_cart(campus.user, cola, campus.canteen, 20)
        assert exc.value.messages["quantity"] == ["Only 5 unit(s) available"]
        assert _user(campus.user).cart_quantity(cola.id, "Retail") == 2

        _remove(campus.user, cola)
        user = _user(campus.user)
        assert len(user.cart_entries) == 0
        assert user.vendor_id is None


class TestCartQueries:
    def test_details(self, campus, add_to_cart):
        add_to_cart(campus.user, campus.chips, campus.canteen, 2)
        add_to_cart(campus.user, campus.samosa, campus.canteen, 3)

        details = get_cart_details(campus.user.id)

        assert details.vendor_id == campus.canteen.id
        assert details.vendor_name == "Hostel Canteen"
        assert details.total == 2 * 20.0 + 3 * 15.0
        lines = {line.name: line for line in details.entries}
        assert lines["Masala Chips"].total_price == 40.0
        assert lines["Samosa"].food_type == "veg"

    def test_details_of_empty_cart(self, campus):
        details = get_cart_details(campus.user.id)

        assert details.entries == []
        assert details.vendor_id is None
        assert details.total == 0

    def test_extras(self, campus, add_to_cart):
        add_to_cart(campus.user, campus.juice, campus.canteen, 1)

        names = {extra.name for extra in get_extras(campus.user.id)}

        # chips is overstocked (30 > 15); samosa is available; dosa is not
        assert names == {"Masala Chips", "Samosa"}

    def test_extras_skip_items_in_cart(self, campus, add_to_cart):
        add_to_cart(campus.user, campus.chips, campus.canteen, 1)

        names = {extra.name for extra in get_extras(campus.user.id)}
        assert names == {"Samosa"}

    def test_extras_of_empty_cart(self, campus):
        assert get_extras(campus.user.id) == []

from decimal import Decimal

import pytest

from cafe_pos.cart import DraftCart, validate_quantity, validate_selection
from cafe_pos.data import DEFAULT_CATALOG
from cafe_pos.errors import ValidationError


def _latte():
    return next(item for item in DEFAULT_CATALOG if item.item_id == "latte")


def _prices(item_id):
    return {"latte": Decimal("4.00"), "mocha": Decimal("4.50")}.get(item_id)


class TestDraftCartAdd:
    def test_adding_equivalent_line_merges_quantity(self):
        cart = DraftCart()
        first = cart.add("latte", {"size": "Large"}, 1)
        second = cart.add("latte", {"size": "Large"}, 2)

        assert len(cart) == 1
        assert second is first
        assert first.quantity == 3

    def test_merged_line_keeps_its_id(self):
        cart = DraftCart()
        line = cart.add("latte", {"size": "Large"})
        original_id = line.line_id

        cart.add("latte", {"size": "Large"})

        assert cart.items[0].line_id == original_id

    def test_different_options_start_a_new_line(self):
        cart = DraftCart()
        cart.add("latte", {"size": "Large"})
        cart.add("latte", {"size": "Small"})

        assert len(cart) == 2
        assert [item.selected_options["size"] for item in cart] == ["Large", "Small"]

    def test_different_item_same_options_starts_a_new_line(self):
        cart = DraftCart()
        cart.add("latte", {"size": "Large"})
        cart.add("mocha", {"size": "Large"})

        assert len(cart) == 2

    def test_line_ids_are_unique(self):
        cart = DraftCart()
        a = cart.add("latte", {})
        b = cart.add("mocha", {})

        assert a.line_id != b.line_id

    def test_caller_dict_is_copied(self):
        cart = DraftCart()
        options = {"size": "Large"}
        line = cart.add("latte", options)
        options["size"] = "Small"

        assert line.selected_options == {"size": "Large"}

    @pytest.mark.parametrize("quantity", [0, -1])
    def test_quantity_below_one_is_rejected(self, quantity):
        cart = DraftCart()
        with pytest.raises(ValueError):
            cart.add("latte", {}, quantity)
        assert cart.is_empty


class TestDraftCartRemoveAndClear:
    def test_remove_drops_only_that_line(self):
        cart = DraftCart()
        keep = cart.add("latte", {})
        drop = cart.add("mocha", {})

        cart.remove(drop.line_id)

        assert cart.items == (keep,)

    def test_remove_unknown_id_is_a_no_op(self):
        cart = DraftCart()
        cart.add("latte", {}, 2)

        cart.remove("does-not-exist")

        assert len(cart) == 1
        assert cart.item_count == 2

    def test_clear_empties_the_cart(self):
        cart = DraftCart()
        cart.add("latte", {})
        cart.clear()

        assert cart.is_empty
        assert cart.total(_prices) == Decimal("0")


class TestDraftCartTotal:
    def test_total_sums_price_times_quantity(self):
        cart = DraftCart()
        cart.add("latte", {"size": "Large"}, 2)
        cart.add("mocha", {}, 1)

        assert cart.total(_prices) == Decimal("12.50")

    def test_lines_without_a_price_are_skipped(self):
        cart = DraftCart()
        cart.add("latte", {}, 1)
        cart.add("ghost", {}, 5)

        assert cart.total(_prices) == Decimal("4.00")

    def test_empty_cart_totals_zero(self):
        assert DraftCart().total(_prices) == Decimal("0")


class TestValidateQuantity:
    @pytest.mark.parametrize("raw, expected", [("1", 1), (" 3 ", 3), (99, 99), ("99", 99)])
    def test_accepts_whole_numbers_in_range(self, raw, expected):
        assert validate_quantity(raw) == expected

    @pytest.mark.parametrize("raw", ["0", "100", "", "abc", "2.5", "-1", 2.0, None, True])
    def test_rejects_everything_else(self, raw):
        with pytest.raises(ValidationError):
            validate_quantity(raw)


class TestValidateSelection:
    def test_accepts_permitted_values(self):
        selection = validate_selection(_latte(), {"size": "Large", "extra_shot": "true"})
        assert selection == {"size": "Large", "extra_shot": "true"}

    def test_unknown_option_is_rejected(self):
        with pytest.raises(ValidationError, match="no option"):
            validate_selection(_latte(), {"whipped_cream": "true"})

    def test_value_outside_option_is_rejected(self):
        with pytest.raises(ValidationError, match="not a valid Size"):
            validate_selection(_latte(), {"size": "Venti"})

    def test_default_selection_is_valid(self):
        latte = _latte()
        selection = latte.default_selection()

        assert selection["size"] == "Medium"
        assert selection["extra_shot"] == "false"
        assert validate_selection(latte, selection) == selection

import random
from decimal import Decimal

import pytest

from conftest import menu_item
from errors import ValidationError
from order_builder import OrderBuilder, compute_totals_for

ESPRESSO = menu_item(1, "Espresso", "25000")
CAPPUCCINO = menu_item(2, "Cappuccino", "30000")
TEH_TARIK = menu_item(3, "Teh Tarik", "20000")
ROTI = menu_item(4, "Roti Bakar", "15000")


def test_scenario_a_totals():
    order = OrderBuilder()
    order.add_item(ESPRESSO)
    order.add_item(CAPPUCCINO)

    totals = order.compute_totals()
    assert totals.subtotal == Decimal("55000")
    assert totals.tax == Decimal("5500")
    assert totals.total == Decimal("60500")


def test_scenario_b_decrement_to_zero_removes_line():
    order = OrderBuilder()
    order.add_item(ESPRESSO)
    order.add_item(CAPPUCCINO)

    order.update_quantity("1", -1)

    assert [l.name for l in order.lines] == ["Cappuccino"]
    assert order.compute_totals() == (Decimal("30000"), Decimal("3000"), Decimal("33000"))


def test_add_same_item_increments_existing_line():
    order = OrderBuilder()
    order.add_item(ESPRESSO)
    order.add_item(ESPRESSO)

    assert len(order.lines) == 1
    assert order.lines[0].quantity == 2
    assert order.compute_totals().subtotal == Decimal("50000")


def test_price_snapshot_survives_catalog_change():
    item = menu_item(9, "Latte", "28000")
    order = OrderBuilder()
    order.add_item(item)

    item.price = Decimal("35000")
    order.add_item(item)

    assert order.lines[0].unit_price == Decimal("28000")
    assert order.compute_totals().subtotal == Decimal("56000")


def test_update_and_remove_unknown_line_are_noops():
    order = OrderBuilder()
    order.add_item(ESPRESSO)

    order.update_quantity("999", 3)
    order.remove_item("999")

    assert len(order.lines) == 1
    assert order.lines[0].quantity == 1


def test_large_negative_delta_removes_line():
    order = OrderBuilder()
    order.add_item(ESPRESSO)
    order.update_quantity(1, 4)
    order.update_quantity(1, -10)
    assert order.is_empty


def test_remove_item():
    order = OrderBuilder()
    order.add_item(ESPRESSO)
    order.add_item(ROTI)
    order.remove_item(4)
    assert [l.menu_item_id for l in order.lines] == [1]


def test_tax_rounds_to_the_cent():
    order = OrderBuilder()
    order.add_item(menu_item(5, "Candy", "0.05"))
    totals = order.compute_totals()
    assert totals.subtotal == Decimal("0.05")
    assert totals.tax == Decimal("0.01")
    assert totals.total == Decimal("0.06")


def test_fractional_prices_do_not_drift():
    order = OrderBuilder()
    order.add_item(menu_item(6, "Cookie", "0.10"))
    for _ in range(9):
        order.add_item(menu_item(6, "Cookie", "0.10"))
    order.add_item(menu_item(7, "Mint", "0.20"))

    totals = order.compute_totals()
    assert totals.subtotal == Decimal("1.20")
    assert totals.tax == Decimal("0.12")
    assert totals.total == Decimal("1.32")


def test_empty_order_totals_are_zero():
    assert OrderBuilder().compute_totals() == (Decimal("0"), Decimal("0"), Decimal("0"))


def test_defaults_and_clear_is_idempotent():
    order = OrderBuilder()
    order.add_item(ESPRESSO)
    order.set_order_type("takeaway")
    order.set_table_number(7)

    order.clear()
    once = order.to_dict()
    order.clear()

    assert order.to_dict() == once
    assert once["lines"] == []
    assert once["order_type"] == "dine-in"
    assert once["table_number"] == 1


def test_switching_to_takeaway_keeps_table_number():
    order = OrderBuilder()
    order.set_table_number(4)
    order.set_order_type("takeaway")

    assert order.table_number == 4
    assert order.checkout_table_number is None

    order.set_order_type("dine-in")
    assert order.checkout_table_number == 4


@pytest.mark.parametrize("bad", [0, -3, 2.5, "5", True])
def test_set_table_number_rejects_non_positive_integers(bad):
    order = OrderBuilder()
    order.set_table_number(3)
    with pytest.raises(ValidationError) as exc:
        order.set_table_number(bad)
    assert "table_number" in exc.value.errors
    assert order.table_number == 3


def test_set_order_type_rejects_unknown_kind():
    order = OrderBuilder()
    with pytest.raises(ValidationError):
        order.set_order_type("delivery")
    assert order.order_type == "dine-in"


def test_validate_for_checkout():
    order = OrderBuilder()
    with pytest.raises(ValidationError) as exc:
        order.validate_for_checkout()
    assert "items" in exc.value.errors

    order.add_item(ESPRESSO)
    order.set_table_number(None)
    with pytest.raises(ValidationError) as exc:
        order.validate_for_checkout()
    assert "table_number" in exc.value.errors

    order.set_order_type("takeaway")
    order.validate_for_checkout()


def test_session_round_trip_keeps_lines_and_settings():
    order = OrderBuilder()
    order.add_item(ESPRESSO)
    order.add_item(TEH_TARIK)
    order.update_quantity(3, 2)
    order.set_order_type("takeaway")

    data = order.to_dict()
    assert data["total"] == "93500.00"
    assert data["lines"][1]["line_total"] == "60000.00"

    restored = OrderBuilder.from_dict(data)
    assert restored.to_dict() == data


def test_from_empty_session_is_a_fresh_order():
    order = OrderBuilder.from_dict(None)
    assert order.is_empty
    assert order.order_type == "dine-in"
    assert order.table_number == 1


@pytest.mark.parametrize("seed", range(20))
def test_random_edits_keep_subtotal_consistent(seed):
    rng = random.Random(seed)
    items = [ESPRESSO, CAPPUCCINO, TEH_TARIK, ROTI]
    expected = {}
    order = OrderBuilder()

    for _ in range(60):
        item = rng.choice(items)
        op = rng.random()
        if op < 0.5:
            order.add_item(item)
            expected[item.id] = expected.get(item.id, 0) + 1
        elif op < 0.85:
            delta = rng.randint(-3, 3)
            order.update_quantity(item.id, delta)
            if item.id in expected:
                expected[item.id] += delta
                if expected[item.id] <= 0:
                    del expected[item.id]
        else:
            order.remove_item(item.id)
            expected.pop(item.id, None)

        assert all(l.quantity >= 1 for l in order.lines)

    prices = {i.id: i.price for i in items}
    want = sum((prices[i] * q for i, q in expected.items()), Decimal("0"))
    totals = order.compute_totals()
    assert {l.menu_item_id: l.quantity for l in order.lines} == expected
    assert totals.subtotal == want
    assert totals.tax == (want / 10).quantize(Decimal("0.01"))
    assert totals.total == totals.subtotal + totals.tax
    assert compute_totals_for(order.lines) == totals

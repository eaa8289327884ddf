from datetime import date, timedelta
from decimal import Decimal

import catalog
from conftest import DAY
from dashboard import NO_TOP_ITEM, get_daily_sales, summary_to_json
from order_builder import OrderBuilder
from payment import evaluate
from transactions import record_checkout


def _sell(s, seeded, cashier_id, lines, now=DAY):
    order = OrderBuilder()
    for name, qty in lines:
        order.add_item(catalog.get_menu_item(s, seeded.menu[name]))
        order.update_quantity(seeded.menu[name], qty - 1)
    total = order.compute_totals().total
    return record_checkout(s, order, evaluate(total, total), cashier_id, now=now)


def test_daily_sales_totals_average_and_top_item(s, seeded, cashier_id):
    _sell(s, seeded, cashier_id, [("Espresso", 1), ("Cappuccino", 1)])   # 60500
    _sell(s, seeded, cashier_id, [("Cappuccino", 2)])                    # 66000
    _sell(s, seeded, cashier_id, [("Espresso", 5)], now=DAY + timedelta(days=1))

    summary = get_daily_sales(s, date(2024, 1, 31))

    assert summary["total_sales"] == Decimal("126500")
    assert summary["total_transactions"] == 2
    assert summary["average_transaction"] == Decimal("63250")
    assert summary["top_item"] == "Cappuccino"


def test_daily_sales_without_transactions(s, seeded):
    summary = get_daily_sales(s, date(2024, 1, 31))
    assert summary["total_sales"] == Decimal("0")
    assert summary["total_transactions"] == 0
    assert summary["average_transaction"] == Decimal("0")
    assert summary["top_item"] == NO_TOP_ITEM


def test_average_is_rounded_to_the_cent(s, seeded, cashier_id):
    for name in ("Espresso", "Espresso", "Roti Bakar"):
        _sell(s, seeded, cashier_id, [(name, 1)])
    # (27500 + 27500 + 16500) / 3
    summary = get_daily_sales(s, date(2024, 1, 31))
    assert summary["average_transaction"] == Decimal("23833.33")


def test_top_item_ties_break_by_name(s, seeded, cashier_id):
    _sell(s, seeded, cashier_id, [("Teh Tarik", 2), ("Cappuccino", 2)])
    assert get_daily_sales(s, date(2024, 1, 31))["top_item"] == "Cappuccino"


def test_summary_to_json_uses_decimal_strings(s, seeded, cashier_id):
    _sell(s, seeded, cashier_id, [("Espresso", 1)])
    data = summary_to_json(get_daily_sales(s, date(2024, 1, 31)))
    assert data == {
        "date": "2024-01-31",
        "total_sales": "27500.00",
        "total_transactions": 1,
        "average_transaction": "27500.00",
        "top_item": "Espresso",
    }

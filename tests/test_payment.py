from decimal import Decimal

import pytest

from errors import InsufficientPayment, ValidationError
from payment import evaluate, parse_amount, payment_presets


def test_scenario_c_exact_payment_gives_zero_change():
    outcome = evaluate(Decimal("33000"), Decimal("33000"))
    assert outcome.change == Decimal("0")
    assert outcome.paid_amount == Decimal("33000")


def test_scenario_d_short_payment_is_rejected():
    with pytest.raises(InsufficientPayment) as exc:
        evaluate(Decimal("33000"), Decimal("20000"))
    assert exc.value.total == Decimal("33000")
    assert exc.value.paid_amount == Decimal("20000")
    assert exc.value.status_code == 400
    assert exc.value.to_dict()["total"] == "33000.00"


@pytest.mark.parametrize("total,paid,change", [
    ("60500", "100000", "39500"),
    ("0", "0", "0"),
    ("0.06", "0.10", "0.04"),
    ("33000", "200000", "167000"),
])
def test_change_is_paid_minus_total(total, paid, change):
    assert evaluate(Decimal(total), Decimal(paid)).change == Decimal(change)


@pytest.mark.parametrize("paid", ["32999.99", "0", "1"])
def test_anything_below_total_fails(paid):
    with pytest.raises(InsufficientPayment):
        evaluate(Decimal("33000"), Decimal(paid))


def test_float_looking_inputs_stay_exact():
    # 0.1 + 0.2 style drift must not leak into the change
    assert evaluate(Decimal("0.30"), parse_amount(0.3)).change == Decimal("0")


@pytest.mark.parametrize("raw,expected", [
    ("50000", Decimal("50000")),
    (50000, Decimal("50000")),
    ("33000.5", Decimal("33000.50")),
    (" 100 ", Decimal("100")),
])
def test_parse_amount(raw, expected):
    assert parse_amount(raw) == expected


@pytest.mark.parametrize("raw", [None, "", "abc", "-5", "NaN", "Infinity", True])
def test_parse_amount_rejects_bad_input(raw):
    with pytest.raises(ValidationError) as exc:
        parse_amount(raw)
    assert "paid_amount" in exc.value.errors


def test_presets_list_exact_total_and_round_notes():
    presets = payment_presets(Decimal("60500"))
    assert [p["label"] for p in presets] == ["Exact", "50k", "100k", "200k"]
    assert presets[0]["amount"] == "60500.00"
    assert [p["sufficient"] for p in presets] == [True, False, True, True]


@pytest.mark.parametrize("raw", ["1e30", "100000000", Decimal("99999999.995")])
def test_parse_amount_rejects_amounts_beyond_money_columns(raw):
    with pytest.raises(ValidationError) as exc:
        parse_amount(raw)
    assert "paid_amount" in exc.value.errors


def test_parse_amount_accepts_the_largest_storable_amount():
    assert parse_amount("99999999.99") == Decimal("99999999.99")

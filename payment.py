from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, NamedTuple

from errors import InsufficientPayment, ValidationError
from order_builder import MAX_AMOUNT, to_money

# quick tender buttons on the payment screen
QUICK_TENDERS = (Decimal("50000"), Decimal("100000"), Decimal("200000"))


class PaymentOutcome(NamedTuple):
    total: Decimal
    paid_amount: Decimal
    change: Decimal


def evaluate(total, paid_amount) -> PaymentOutcome:
    """
    Check a tendered amount against the order total.

    Raises InsufficientPayment when the tender does not cover the total.
    The amount is never clamped.
    """
    total = to_money(total)
    paid_amount = to_money(paid_amount)
    if paid_amount < total:
        raise InsufficientPayment(total, paid_amount)
    return PaymentOutcome(total=total, paid_amount=paid_amount, change=paid_amount - total)


def parse_amount(value: Any, field: str = "paid_amount") -> Decimal:
    if value is None or isinstance(value, bool) or (isinstance(value, str) and not value.strip()):
        raise ValidationError(errors={field: "is required"})
    try:
        # str() first so 0.1 stays 0.1 rather than its binary expansion
        d = Decimal(str(value).strip())
        if not d.is_finite() or d < 0:
            raise ValidationError(errors={field: "must be a non-negative number"})
        d = to_money(d)
    except InvalidOperation:
        raise ValidationError(errors={field: "must be a number"})
    if d > MAX_AMOUNT:
        raise ValidationError(errors={field: f"must not exceed {MAX_AMOUNT}"})
    return d


def payment_presets(total) -> List[Dict[str, Any]]:
    total = to_money(total)
    presets = [{"label": "Exact", "amount": str(total), "sufficient": True}]
    for amount in QUICK_TENDERS:
        presets.append({
            "label": f"{int(amount) // 1000}k",
            "amount": str(to_money(amount)),
            "sufficient": amount >= total,
        })
    return presets

"""Plain-text receipts for the thermal printer and the receipt endpoint."""

from decimal import Decimal
from typing import List

from config import Config
from models import ORDER_DINE_IN
from order_builder import TAX_RATE, to_money
from transactions import local_time

DEFAULT_WIDTH = 40


def format_money(amount, symbol: str = None) -> str:
    """25000 -> 'Rp 25.000', 1234.5 -> 'Rp 1.234,50'."""
    symbol = Config.CURRENCY_SYMBOL if symbol is None else symbol
    d = to_money(amount)
    sign = "-" if d < 0 else ""
    d = abs(d)
    whole = int(d)
    cents = int((d - whole) * 100)
    text = f"{whole:,}".replace(",", ".")
    if cents:
        text += f",{cents:02d}"
    return f"{symbol} {sign}{text}".strip()


def _row(left: str, right: str, width: int) -> str:
    gap = width - len(left) - len(right)
    if gap < 1:
        return f"{left}\n{right.rjust(width)}"
    return left + " " * gap + right


def format_receipt(txn, width: int = DEFAULT_WIDTH) -> str:
    rule = "-" * width
    out: List[str] = [
        Config.CAFE_NAME.center(width).rstrip(),
        Config.CAFE_ADDRESS.center(width).rstrip(),
        f"Tel: {Config.CAFE_PHONE}".center(width).rstrip(),
        rule,
        _row("Date:", local_time(txn.created_at).strftime("%d/%m/%Y %H:%M"), width),
        _row("Cashier:", txn.cashier.display_name if txn.cashier else "-", width),
        _row("No:", txn.transaction_number, width),
        _row("Type:", "Dine In" if txn.order_type == ORDER_DINE_IN else "Takeaway", width),
    ]
    if txn.order_type == ORDER_DINE_IN and txn.table_number:
        out.append(_row("Table:", str(txn.table_number), width))
    out.append(rule)

    for item in txn.items:
        out.append(item.menu_item_name[:width])
        out.append(_row(
            f"  {item.quantity} x {format_money(item.unit_price)}",
            format_money(item.total_price),
            width,
        ))
    out.append(rule)

    pct = int(TAX_RATE * Decimal(100))
    out += [
        _row("Subtotal:", format_money(txn.subtotal), width),
        _row(f"Tax ({pct}%):", format_money(txn.tax), width),
        _row("TOTAL:", format_money(txn.total), width),
        _row("Paid:", format_money(txn.paid_amount), width),
        _row("Change:", format_money(txn.change_amount), width),
        rule,
        "Thank you for your visit!".center(width).rstrip(),
    ]
    return "\n".join(out) + "\n"

"""
In-memory cart for one terminal session.

The builder holds lines and the order kind, derives totals with Decimal
arithmetic and never touches the database. Routes keep it in the Flask
session between requests through ``to_dict``/``from_dict``.
"""

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, List, NamedTuple, Optional

from errors import ValidationError
from models import ORDER_DINE_IN, ORDER_TYPES

TAX_RATE = Decimal("0.10")
CENT = Decimal("0.01")
# largest value a Numeric(10, 2) money column holds
MAX_AMOUNT = Decimal("99999999.99")

DEFAULT_ORDER_TYPE = ORDER_DINE_IN
DEFAULT_TABLE_NUMBER = 1


def to_money(value: Any) -> Decimal:
    """Coerce a price to a cent-quantized Decimal without going through float."""
    if isinstance(value, Decimal):
        d = value
    else:
        d = Decimal(str(value))
    return d.quantize(CENT, rounding=ROUND_HALF_UP)


class Totals(NamedTuple):
    subtotal: Decimal
    tax: Decimal
    total: Decimal

    def to_dict(self) -> Dict[str, str]:
        return {"subtotal": str(self.subtotal), "tax": str(self.tax), "total": str(self.total)}


def compute_totals_for(lines) -> Totals:
    subtotal = sum((line.line_total for line in lines), Decimal("0.00"))
    subtotal = to_money(subtotal)
    tax = (subtotal * TAX_RATE).quantize(CENT, rounding=ROUND_HALF_UP)
    return Totals(subtotal=subtotal, tax=tax, total=subtotal + tax)


@dataclass
class OrderLine:
    line_id: str
    menu_item_id: int
    name: str
    unit_price: Decimal
    quantity: int = 1

    @property
    def line_total(self) -> Decimal:
        return self.unit_price * self.quantity

    def to_dict(self) -> Dict[str, Any]:
        return {
            "line_id": self.line_id,
            "menu_item_id": self.menu_item_id,
            "name": self.name,
            "unit_price": str(self.unit_price),
            "quantity": self.quantity,
            "line_total": str(to_money(self.line_total)),
        }


class OrderBuilder:
    def __init__(self):
        self.lines: List[OrderLine] = []
        self.order_type = DEFAULT_ORDER_TYPE
        self.table_number: Optional[int] = DEFAULT_TABLE_NUMBER

    # -----------------------
    # Lines
    # -----------------------
    def _find(self, line_id) -> Optional[OrderLine]:
        key = str(line_id)
        for line in self.lines:
            if line.line_id == key:
                return line
        return None

    def add_item(self, menu_item) -> OrderLine:
        """
        Add one unit of a menu item. An existing line for the same item is
        incremented; otherwise a new line snapshots the item's name and price.
        """
        line = self._find(menu_item.id)
        if line:
            line.quantity += 1
            return line

        line = OrderLine(
            line_id=str(menu_item.id),
            menu_item_id=int(menu_item.id),
            name=menu_item.name,
            unit_price=to_money(menu_item.price),
        )
        self.lines.append(line)
        return line

    def update_quantity(self, line_id, delta: int) -> None:
        line = self._find(line_id)
        if not line:
            return
        qty = line.quantity + int(delta)
        if qty <= 0:
            self.lines.remove(line)
        else:
            line.quantity = qty

    def remove_item(self, line_id) -> None:
        line = self._find(line_id)
        if line:
            self.lines.remove(line)

    # -----------------------
    # Order kind / table
    # -----------------------
    def set_order_type(self, kind: str) -> None:
        if kind not in ORDER_TYPES:
            raise ValidationError(errors={"order_type": f"must be one of {', '.join(ORDER_TYPES)}"})
        # the table number survives a switch to takeaway
        self.order_type = kind

    def set_table_number(self, n) -> None:
        if n is None:
            self.table_number = None
            return
        if isinstance(n, bool) or not isinstance(n, int) or n < 1:
            raise ValidationError(errors={"table_number": "must be a positive integer"})
        self.table_number = n

    @property
    def checkout_table_number(self) -> Optional[int]:
        return self.table_number if self.order_type == ORDER_DINE_IN else None

    def clear(self) -> None:
        self.lines = []
        self.order_type = DEFAULT_ORDER_TYPE
        self.table_number = DEFAULT_TABLE_NUMBER

    # -----------------------
    # Derived
    # -----------------------
    @property
    def is_empty(self) -> bool:
        return not self.lines

    def compute_totals(self) -> Totals:
        return compute_totals_for(self.lines)

    def validate_for_checkout(self) -> None:
        errors = {}
        if self.is_empty:
            errors["items"] = "At least one item is required."
        if self.order_type == ORDER_DINE_IN and self.table_number is None:
            errors["table_number"] = "Table number is required for dine-in orders."
        if errors:
            raise ValidationError("Order is not ready for payment.", errors)

    # -----------------------
    # Session storage
    # -----------------------
    def to_dict(self) -> Dict[str, Any]:
        data = {
            "lines": [line.to_dict() for line in self.lines],
            "order_type": self.order_type,
            "table_number": self.table_number,
        }
        data.update(self.compute_totals().to_dict())
        return data

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "OrderBuilder":
        order = cls()
        if not data:
            return order
        order.order_type = data.get("order_type", DEFAULT_ORDER_TYPE)
        order.table_number = data.get("table_number")
        for raw in data.get("lines", []):
            qty = int(raw["quantity"])
            if qty < 1:
                continue
            order.lines.append(
                OrderLine(
                    line_id=str(raw["line_id"]),
                    menu_item_id=int(raw["menu_item_id"]),
                    name=raw["name"],
                    unit_price=to_money(raw["unit_price"]),
                    quantity=qty,
                )
            )
        return order

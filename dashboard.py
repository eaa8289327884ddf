from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from models import Transaction, TransactionItem
from order_builder import CENT, to_money

NO_TOP_ITEM = "none"


def get_daily_sales(s: Session, day: date) -> Dict[str, Any]:
    """
    Sales totals for one business date: total_sales, total_transactions,
    average_transaction and the best selling item by quantity.
    """
    total_sales, count = s.execute(
        select(func.coalesce(func.sum(Transaction.total), 0), func.count(Transaction.id))
        .where(Transaction.business_date == day)
    ).one()
    total_sales = to_money(total_sales or 0)
    count = int(count or 0)

    if count:
        average = (total_sales / count).quantize(CENT, rounding=ROUND_HALF_UP)
    else:
        average = Decimal("0.00")

    qty = func.sum(TransactionItem.quantity)
    top = s.execute(
        select(TransactionItem.menu_item_name, qty)
        .join(Transaction, Transaction.id == TransactionItem.transaction_id)
        .where(Transaction.business_date == day)
        .group_by(TransactionItem.menu_item_id, TransactionItem.menu_item_name)
        .order_by(qty.desc(), TransactionItem.menu_item_name)
        .limit(1)
    ).first()

    return {
        "date": day.isoformat(),
        "total_sales": total_sales,
        "total_transactions": count,
        "average_transaction": average,
        "top_item": top[0] if top else NO_TOP_ITEM,
    }


def summary_to_json(summary: Dict[str, Any]) -> Dict[str, Any]:
    out = dict(summary)
    out["total_sales"] = str(summary["total_sales"])
    out["average_transaction"] = str(summary["average_transaction"])
    return out

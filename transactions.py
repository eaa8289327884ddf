"""
Transaction recorder.

Turns a finalized order plus a validated payment into an immutable
Transaction row with its item snapshots. Header and items are written in one
database transaction; the daily number comes from the ``daily_sequences``
row, locked for the duration of the insert.
"""

import logging
from datetime import date, datetime, timezone
from typing import Any, Dict, Iterable, List, Optional
from zoneinfo import ZoneInfo

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

import catalog
import payment
from config import Config
from errors import Conflict, NotFound, ValidationError
from models import (
    DailySequence, Transaction, TransactionItem,
    ORDER_DINE_IN, ORDER_TAKEAWAY, ORDER_TYPES, PAYMENT_COMPLETED, PAYMENT_STATUSES,
)
from order_builder import MAX_AMOUNT, OrderBuilder, OrderLine, compute_totals_for, to_money

logger = logging.getLogger(__name__)

MAX_RETRIES = 3
NUMBER_PREFIX = "TRX"

# unique indexes a concurrent checkout can collide on (SQLite and Postgres wording)
NUMBER_CONSTRAINTS = ("transactions.transaction_number", "transactions_transaction_number_key",
                      "daily_sequences.business_date", "daily_sequences_pkey")


def is_number_collision(err: IntegrityError) -> bool:
    text = str(err.orig)
    return any(name in text for name in NUMBER_CONSTRAINTS)


def local_time(moment: datetime) -> datetime:
    """``moment`` in the café's timezone; naive values are taken as UTC."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(ZoneInfo(Config.POS_TIMEZONE))


def business_date_for(moment: datetime) -> date:
    return local_time(moment).date()


def format_transaction_number(day: date, sequence: int) -> str:
    return f"{NUMBER_PREFIX}-{day:%Y%m%d}-{sequence:03d}"


def allocate_transaction_number(s: Session, business_date: date) -> str:
    seq = s.execute(
        select(DailySequence)
        .where(DailySequence.business_date == business_date)
        .with_for_update()
    ).scalar_one_or_none()
    if seq is None:
        seq = DailySequence(business_date=business_date, last_value=0)
        s.add(seq)

    # rows written before the counter existed still occupy their numbers
    stored = s.scalar(
        select(func.count(Transaction.id)).where(Transaction.business_date == business_date)
    ) or 0
    seq.last_value = max(seq.last_value, stored) + 1
    s.flush()
    return format_transaction_number(business_date, seq.last_value)


def _snapshot_item(line: OrderLine) -> TransactionItem:
    return TransactionItem(
        menu_item_id=line.menu_item_id,
        menu_item_name=line.name,
        quantity=line.quantity,
        unit_price=to_money(line.unit_price),
        total_price=to_money(line.line_total),
    )


def _check_header(header: Dict[str, Any], lines: List[OrderLine]) -> Optional[int]:
    errors = {}
    if not lines:
        errors["items"] = "At least one item is required."
    if any(line.quantity < 1 for line in lines):
        errors["items"] = "Every line needs a quantity of at least 1."
    if header.get("order_type") not in ORDER_TYPES:
        errors["order_type"] = f"must be one of {', '.join(ORDER_TYPES)}"
    table_number = header.get("table_number")
    if header.get("order_type") == ORDER_DINE_IN and not table_number:
        errors["table_number"] = "Table number is required for dine-in orders."
    if header.get("cashier_id") is None:
        errors["cashier_id"] = "is required"
    if header.get("payment_status", PAYMENT_COMPLETED) not in PAYMENT_STATUSES:
        errors["payment_status"] = f"must be one of {', '.join(PAYMENT_STATUSES)}"
    if lines and compute_totals_for(lines).total > MAX_AMOUNT:
        errors["total"] = f"must not exceed {MAX_AMOUNT}"
    if errors:
        raise ValidationError("Transaction is incomplete.", errors)
    if header["order_type"] == ORDER_TAKEAWAY:
        return None
    return table_number


def _insert(s: Session, header: Dict[str, Any], lines: List[OrderLine],
            table_number: Optional[int], day: date, created_at: datetime) -> Transaction:
    totals = compute_totals_for(lines)
    outcome = payment.evaluate(totals.total, header["paid_amount"])

    txn = Transaction(
        transaction_number=allocate_transaction_number(s, day),
        cashier_id=header["cashier_id"],
        order_type=header["order_type"],
        table_number=table_number,
        subtotal=totals.subtotal,
        tax=totals.tax,
        total=totals.total,
        paid_amount=outcome.paid_amount,
        change_amount=outcome.change,
        payment_status=header.get("payment_status", PAYMENT_COMPLETED),
        business_date=day,
        created_at=created_at,
    )
    s.add(txn)
    s.flush()

    for line in lines:
        txn.items.append(_snapshot_item(line))
    s.flush()
    return txn


def create_transaction(s: Session, header: Dict[str, Any], lines: Iterable[OrderLine],
                       now: Optional[datetime] = None) -> Transaction:
    """
    Persist a transaction header and its item snapshots atomically.

    ``header`` carries cashier_id, order_type, table_number, paid_amount and
    optionally payment_status. Totals are always derived from ``lines``.
    Number collisions are retried; other failures roll back and propagate.
    """
    lines = list(lines)
    table_number = _check_header(header, lines)
    # fail before opening the write when the tender is short
    payment.evaluate(compute_totals_for(lines).total, header["paid_amount"])

    moment = now or datetime.now(timezone.utc)
    day = business_date_for(moment)
    created_at = moment.astimezone(timezone.utc).replace(tzinfo=None) if moment.tzinfo else moment

    last_err = None
    for attempt in range(1, MAX_RETRIES + 1):
        try:
            txn = _insert(s, header, lines, table_number, day, created_at)
            s.commit()
        except IntegrityError as e:
            s.rollback()
            if not is_number_collision(e):
                raise
            last_err = e
            logger.warning(
                "transaction insert conflict (attempt %d/%d): %s", attempt, MAX_RETRIES, e.orig
            )
            continue
        except Exception:
            s.rollback()
            raise

        logger.info(
            "recorded %s total=%s paid=%s items=%d",
            txn.transaction_number, txn.total, txn.paid_amount, len(lines),
        )
        return txn

    raise Conflict(f"Could not record the transaction after {MAX_RETRIES} attempts: {last_err.orig}")


def record_checkout(s: Session, order: OrderBuilder, outcome: payment.PaymentOutcome,
                    cashier_id: int, now: Optional[datetime] = None) -> Transaction:
    """Record a finalized order that has already been through ``payment.evaluate``."""
    order.validate_for_checkout()
    totals = order.compute_totals()
    if outcome.total != totals.total:
        raise ValidationError(
            "Payment was evaluated against a different total.",
            {"total": f"expected {totals.total}"},
        )

    catalog.ensure_menu_items_exist(s, [line.menu_item_id for line in order.lines])

    header = {
        "cashier_id": cashier_id,
        "order_type": order.order_type,
        "table_number": order.checkout_table_number,
        "paid_amount": outcome.paid_amount,
        "payment_status": PAYMENT_COMPLETED,
    }
    return create_transaction(s, header, order.lines, now=now)


def _whole_number(value) -> int:
    # 2.0 and "2" are fine; 2.9 and True are not
    if isinstance(value, bool):
        raise TypeError(value)
    if isinstance(value, float):
        if not value.is_integer():
            raise ValueError(value)
        return int(value)
    if isinstance(value, str):
        return int(value.strip())
    if isinstance(value, int):
        return value
    raise TypeError(value)


def build_order_from_payload(s: Session, payload: Dict[str, Any]) -> OrderBuilder:
    """
    Rebuild an order from a client payload using catalog prices.

    Client-sent prices and totals are ignored.
    """
    items = payload.get("items")
    if not isinstance(items, list) or not items:
        raise ValidationError(errors={"items": "At least one item is required."})

    order = OrderBuilder()
    if "order_type" in payload:
        order.set_order_type(payload["order_type"])
    if "table_number" in payload:
        order.set_table_number(payload["table_number"])

    for idx, raw in enumerate(items):
        try:
            menu_item_id = _whole_number(raw["menu_item_id"])
            qty = _whole_number(raw.get("quantity", 1))
        except (KeyError, TypeError, ValueError, AttributeError):
            raise ValidationError(errors={f"items.{idx}": "menu_item_id and a whole quantity are required"})
        if qty < 1:
            raise ValidationError(errors={f"items.{idx}.quantity": "must be at least 1"})

        mi = catalog.get_available_menu_item(s, menu_item_id)
        order.add_item(mi)
        order.update_quantity(mi.id, qty - 1)
    return order


# -----------------------
# Queries
# -----------------------
def _with_details(stmt):
    return stmt.options(selectinload(Transaction.items), selectinload(Transaction.cashier))


def list_recent_transactions(s: Session, limit: int = 50) -> List[Transaction]:
    stmt = _with_details(
        select(Transaction)
        .order_by(Transaction.created_at.desc(), Transaction.id.desc())
        .limit(limit)
    )
    return list(s.scalars(stmt))


def list_transactions_between(s: Session, start: date, end: date) -> List[Transaction]:
    stmt = _with_details(
        select(Transaction)
        .where(Transaction.business_date >= start, Transaction.business_date <= end)
        .order_by(Transaction.created_at.desc(), Transaction.id.desc())
    )
    return list(s.scalars(stmt))


def get_transaction(s: Session, transaction_id: int) -> Transaction:
    txn = s.scalar(_with_details(select(Transaction).where(Transaction.id == transaction_id)))
    if not txn:
        raise NotFound("Transaction not found.")
    return txn

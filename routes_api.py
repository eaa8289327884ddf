import logging
from datetime import date, datetime, timezone

from flask import Blueprint, Response, jsonify, request

import catalog
import cloud_hooks
import payment
import transactions
from auth import login_required, admin_required, is_admin, current_user_id, create_user
from dashboard import get_daily_sales, summary_to_json
from errors import ValidationError
from receipt import format_receipt
from sql_db import SessionLocal

logger = logging.getLogger(__name__)

api = Blueprint("api", __name__, url_prefix="/api")

DEFAULT_TRANSACTION_LIMIT = 50
MAX_TRANSACTION_LIMIT = 500


def _json() -> dict:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError("Expected a JSON object body.")
    return data


def _want_all() -> bool:
    return request.args.get("all") in ("1", "true") and is_admin()


def _parse_date(name: str, default: date | None = None) -> date:
    raw = request.args.get(name, "").strip()
    if not raw:
        if default is None:
            raise ValidationError(errors={name: "is required (YYYY-MM-DD)"})
        return default
    try:
        return date.fromisoformat(raw)
    except ValueError:
        raise ValidationError(errors={name: "must be a date like 2024-01-31"})


# -----------------------
# Categories
# -----------------------
@api.get("/categories")
@login_required
def get_categories():
    with SessionLocal() as s:
        cats = catalog.list_all_categories(s) if _want_all() else catalog.list_active_categories(s)
        return jsonify([c.to_dict() for c in cats])


@api.post("/categories")
@login_required
@admin_required
def create_category():
    data = _json()
    with SessionLocal() as s:
        cat = catalog.create_category(s, data)
        return jsonify({"message": "Category created.", "category": cat.to_dict()}), 201


@api.put("/categories/<int:category_id>")
@login_required
@admin_required
def update_category(category_id: int):
    data = _json()
    with SessionLocal() as s:
        cat = catalog.update_category(s, category_id, data)
        return jsonify(cat.to_dict())


@api.delete("/categories/<int:category_id>")
@login_required
@admin_required
def delete_category(category_id: int):
    with SessionLocal() as s:
        catalog.delete_category(s, category_id)
    return jsonify({"message": "Category deleted."})


# -----------------------
# Menu items
# -----------------------
@api.get("/menu-items")
@login_required
def get_menu():
    with SessionLocal() as s:
        items = catalog.list_all_menu_items(s) if _want_all() else catalog.list_available_menu_items(s)
        return jsonify([i.to_dict() for i in items])


@api.get("/menu-items/category/<int:category_id>")
@login_required
def get_menu_by_category(category_id: int):
    with SessionLocal() as s:
        items = catalog.list_available_menu_items(s, category_id=category_id)
        return jsonify([i.to_dict() for i in items])


@api.post("/menu-items")
@login_required
@admin_required
def create_menu():
    data = _json()
    with SessionLocal() as s:
        item = catalog.create_menu_item(s, data)
        return jsonify({"ok": True, "menu_item": item.to_dict()}), 201


@api.put("/menu-items/<int:item_id>")
@login_required
@admin_required
def update_menu(item_id: int):
    data = _json()
    with SessionLocal() as s:
        item = catalog.update_menu_item(s, item_id, data)
        return jsonify(item.to_dict())


@api.delete("/menu-items/<int:item_id>")
@login_required
@admin_required
def delete_menu(item_id: int):
    with SessionLocal() as s:
        catalog.delete_menu_item(s, item_id)
    return jsonify({"message": "Menu item deleted."})


# -----------------------
# Transactions
# -----------------------
@api.post("/transactions")
@login_required
def create_transaction():
    data = _json()
    with SessionLocal() as s:
        order = transactions.build_order_from_payload(s, data)
        order.validate_for_checkout()
        totals = order.compute_totals()
        outcome = payment.evaluate(totals.total, payment.parse_amount(data.get("paid_amount")))

        txn = transactions.record_checkout(s, order, outcome, current_user_id())
        result = txn.to_dict()

    cloud_hooks.publish_checkout(result)
    return jsonify(result), 201


@api.get("/transactions")
@login_required
def list_transactions():
    with SessionLocal() as s:
        if request.args.get("from") or request.args.get("to"):
            start = _parse_date("from")
            end = _parse_date("to", default=start)
            if end < start:
                raise ValidationError(errors={"to": "must not be before from"})
            rows = transactions.list_transactions_between(s, start, end)
        else:
            try:
                limit = int(request.args.get("limit", DEFAULT_TRANSACTION_LIMIT))
            except ValueError:
                raise ValidationError(errors={"limit": "must be a whole number"})
            limit = max(1, min(limit, MAX_TRANSACTION_LIMIT))
            rows = transactions.list_recent_transactions(s, limit)
        return jsonify([t.to_dict() for t in rows])


@api.get("/transactions/<int:transaction_id>")
@login_required
def get_transaction(transaction_id: int):
    with SessionLocal() as s:
        return jsonify(transactions.get_transaction(s, transaction_id).to_dict())


@api.get("/transactions/<int:transaction_id>/receipt")
@login_required
def get_receipt(transaction_id: int):
    with SessionLocal() as s:
        text = format_receipt(transactions.get_transaction(s, transaction_id))
    return Response(text, mimetype="text/plain")


# -----------------------
# Dashboard
# -----------------------
@api.get("/dashboard/daily-sales")
@login_required
@admin_required
def daily_sales():
    today = transactions.business_date_for(datetime.now(timezone.utc))
    day = _parse_date("date", default=today)
    with SessionLocal() as s:
        summary = get_daily_sales(s, day)
    return jsonify(summary_to_json(summary))


# -----------------------
# Users
# -----------------------
@api.post("/users")
@login_required
@admin_required
def add_user():
    data = _json()
    with SessionLocal() as s:
        u = create_user(s, data)
        logger.info("user created: %s (%s)", u.username, u.role)
        return jsonify(u.to_dict()), 201

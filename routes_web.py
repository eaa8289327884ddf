import logging
from datetime import datetime, timezone

from flask import Blueprint, jsonify, request, session

import cloud_hooks
import payment
from auth import (
    authenticate, start_session, current_user_id,
    login_required, admin_required,
)
from catalog import get_available_menu_item
from dashboard import get_daily_sales, summary_to_json
from errors import Unauthorized, ValidationError
from models import User
from order_builder import OrderBuilder
from receipt import format_receipt
from sql_db import SessionLocal
from transactions import business_date_for, record_checkout

logger = logging.getLogger(__name__)

web = Blueprint("web", __name__)

ORDER_KEY = "order"


def _json() -> dict:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Expected a JSON object body.")
    return data


def _int_field(data: dict, name: str, allow_none: bool = False):
    value = data.get(name)
    if value is None and allow_none:
        return None
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            raise ValidationError(errors={name: "must be a whole number"})
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(errors={name: "must be a whole number"})
    return value


# -----------------------
# Per-terminal order, kept in the session cookie
# -----------------------
def load_order() -> OrderBuilder:
    return OrderBuilder.from_dict(session.get(ORDER_KEY))


def save_order(order: OrderBuilder):
    session[ORDER_KEY] = order.to_dict()


# -----------------------
# Auth
# -----------------------
@web.post("/login")
def login():
    data = _json()
    username = str(data.get("username") or "").strip().lower()
    pw = str(data.get("password") or "")

    errors = {}
    if not username:
        errors["username"] = "Username is required."
    if not pw:
        errors["password"] = "Password is required."
    if errors:
        raise ValidationError(errors=errors)

    with SessionLocal() as s:
        u = authenticate(s, username, pw)
        start_session(u)
        user = u.to_dict()

    logger.info("login: %s (%s)", user["username"], user["role"])
    return jsonify({"message": "Logged in.", "user": user})


@web.post("/logout")
def logout():
    session.clear()
    return jsonify({"message": "Logged out."})


@web.get("/me")
@login_required
def me():
    with SessionLocal() as s:
        u = s.get(User, current_user_id())
        if not u:
            session.clear()
            raise Unauthorized()
        return jsonify(u.to_dict())


# -----------------------
# Order entry
# -----------------------
@web.get("/pos/order")
@login_required
def order_view():
    return jsonify(load_order().to_dict())


@web.post("/pos/order/items")
@login_required
def order_add():
    item_id = _int_field(_json(), "menu_item_id")
    order = load_order()
    with SessionLocal() as s:
        order.add_item(get_available_menu_item(s, item_id))
    save_order(order)
    return jsonify(order.to_dict()), 201


@web.patch("/pos/order/items/<line_id>")
@login_required
def order_update(line_id: str):
    delta = _int_field(_json(), "delta")
    order = load_order()
    order.update_quantity(line_id, delta)
    save_order(order)
    return jsonify(order.to_dict())


@web.delete("/pos/order/items/<line_id>")
@login_required
def order_remove(line_id: str):
    order = load_order()
    order.remove_item(line_id)
    save_order(order)
    return jsonify(order.to_dict())


@web.put("/pos/order")
@login_required
def order_settings():
    data = _json()
    order = load_order()
    if "order_type" in data:
        order.set_order_type(data["order_type"])
    if "table_number" in data:
        order.set_table_number(_int_field(data, "table_number", allow_none=True))
    save_order(order)
    return jsonify(order.to_dict())


@web.delete("/pos/order")
@login_required
def order_clear():
    order = load_order()
    order.clear()
    save_order(order)
    return jsonify(order.to_dict())


# -----------------------
# Payment
# -----------------------
@web.get("/pos/payment-presets")
@login_required
def payment_presets():
    totals = load_order().compute_totals()
    return jsonify({"total": str(totals.total), "presets": payment.payment_presets(totals.total)})


@web.post("/pos/checkout")
@login_required
def checkout():
    data = _json()
    order = load_order()
    order.validate_for_checkout()

    totals = order.compute_totals()
    outcome = payment.evaluate(totals.total, payment.parse_amount(data.get("paid_amount")))

    with SessionLocal() as s:
        txn = record_checkout(s, order, outcome, current_user_id())
        result = txn.to_dict()
        receipt_text = format_receipt(txn)

    # the cart is only reset once the transaction is committed
    order.clear()
    save_order(order)

    cloud_hooks.publish_checkout(result)
    return jsonify({
        "message": f"Transaction {result['transaction_number']} completed.",
        "transaction": result,
        "change": result["change_amount"],
        "receipt": receipt_text,
    }), 201


# -----------------------
# Admin: Run Daily Summary (calls Cloud Function)
# -----------------------
@web.post("/admin/summary/run")
@login_required
@admin_required
def admin_run_daily_summary():
    today = business_date_for(datetime.now(timezone.utc))

    with SessionLocal() as s:
        summary = get_daily_sales(s, today)

    sent = cloud_hooks.send_daily_summary(summary)
    return jsonify({
        "sent": sent,
        "summary": summary_to_json(summary),
    })

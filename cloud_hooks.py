"""
Best-effort calls to the receipt and daily summary Cloud Functions.

Nothing here may fail a checkout: errors are logged and swallowed at the
call boundary.
"""

import logging
import os

import requests
import google.auth
from google.cloud import secretmanager

import firestore_db
from config import Config

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT = 10


def get_secret(name: str) -> str | None:
    """
    Read a secret from Google Secret Manager.
    Falls back to environment variable for local development.
    """
    env_val = os.environ.get(name)
    if env_val:
        return env_val

    try:
        creds, project_id = google.auth.default()
        if not project_id:
            project_id = os.environ.get("GOOGLE_CLOUD_PROJECT")

        if not project_id:
            return None

        client = secretmanager.SecretManagerServiceClient(credentials=creds)
        secret_path = f"projects/{project_id}/secrets/{name}/versions/latest"
        resp = client.access_secret_version(request={"name": secret_path})
        return resp.payload.data.decode("utf-8").strip()

    except Exception as e:
        logger.warning("secret manager read failed for %s: %s", name, e)
        return None


def _post(secret_name: str, body: dict) -> bool:
    url = get_secret(secret_name)
    if not url:
        logger.info("%s not set; skipping.", secret_name)
        return False

    try:
        resp = requests.post(url, json=body, timeout=REQUEST_TIMEOUT)
        resp.raise_for_status()
    except requests.RequestException as e:
        logger.warning("%s call failed: %s", secret_name, e)
        return False
    return True


def send_receipt(txn: dict) -> bool:
    """Push a recorded transaction (``Transaction.to_dict()``) to the receipt function."""
    return _post("RECEIPT_FUNCTION_URL", {
        "transaction_number": txn["transaction_number"],
        "cashier": (txn.get("cashier") or {}).get("username", ""),
        "order_type": txn["order_type"],
        "table_number": txn.get("table_number"),
        "total": txn["total"],
        "paid_amount": txn["paid_amount"],
        "change_amount": txn["change_amount"],
        "items": [
            {"name": i["name"], "quantity": i["quantity"], "total_price": i["total_price"]}
            for i in txn.get("items", [])
        ],
    })


def send_daily_summary(summary: dict) -> bool:
    """Push a ``dashboard.get_daily_sales`` result to the daily summary function."""
    return _post("DAILY_SUMMARY_FUNCTION_URL", {
        "date": summary["date"],
        "total_sales": str(summary["total_sales"]),
        "total_transactions": int(summary["total_transactions"]),
        "average_transaction": str(summary["average_transaction"]),
        "top_item": summary["top_item"],
    })


def publish_checkout(txn: dict) -> None:
    """Audit event plus receipt function, after the transaction has committed."""
    if Config.FIRESTORE_ENABLED:
        cashier = (txn.get("cashier") or {}).get("username", "")
        try:
            doc_id = firestore_db.log_transaction_event(
                transaction_number=txn["transaction_number"],
                cashier=cashier,
                event="PAYMENT_COMPLETED",
                payload={"total": txn["total"], "order_type": txn["order_type"]},
            )
            logger.info("firestore event %s for %s", doc_id, txn["transaction_number"])
        except RuntimeError as e:
            logger.error("firestore log failed: %s", e)

    send_receipt(txn)

"""
Audit trail of POS events in Firestore Native.

One document per (transaction number, event), so publishing the same event
twice overwrites instead of duplicating.
"""

import logging
import os
import time
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

from google.cloud import firestore
from google.api_core.exceptions import GoogleAPICallError, RetryError, ServiceUnavailable

logger = logging.getLogger(__name__)

COLLECTION_NAME = "transaction_events"
MAX_RETRIES = 3
RETRY_SLEEP_SECONDS = 1.0

# Firestore Native database id; "(default)" would be Datastore mode.
FIRESTORE_DB_ID = os.getenv("FIRESTORE_DB_ID", "default")

TRANSIENT_ERRORS = (ServiceUnavailable, GoogleAPICallError, RetryError)

_client: Optional[firestore.Client] = None


def get_client() -> firestore.Client:
    global _client
    if _client is None:
        _client = firestore.Client(database=FIRESTORE_DB_ID)
    return _client


def event_id(transaction_number: str, event: str) -> str:
    return f"{transaction_number}:{event}"


def _with_retries(what: str, call: Callable[[], Any]) -> Any:
    last_err = None
    for attempt in range(1, MAX_RETRIES + 1):
        try:
            return call()
        except TRANSIENT_ERRORS as e:
            last_err = e
            logger.warning("firestore %s failed (attempt %d/%d): %s", what, attempt, MAX_RETRIES, e)
            time.sleep(RETRY_SLEEP_SECONDS * attempt)
    raise RuntimeError(f"Firestore {what} failed after {MAX_RETRIES} attempts: {last_err}")


def log_transaction_event(
    transaction_number: str,
    cashier: str,
    event: str,
    payload: Optional[Dict[str, Any]] = None,
) -> str:
    """
    Write an audit event for a recorded transaction. Returns the document id.

    Transient Firestore errors are retried; RuntimeError once they persist.
    """
    doc_id = event_id(transaction_number, event)
    doc = {
        "transaction_number": transaction_number,
        "cashier": cashier or "",
        "event": event,
        "payload": payload or {},
        "created_at": firestore.SERVER_TIMESTAMP,
        "created_at_iso": datetime.now(timezone.utc).isoformat(),
    }
    ref = get_client().collection(COLLECTION_NAME).document(doc_id)
    _with_retries("write", lambda: ref.set(doc))
    return doc_id


def get_transaction_event(transaction_number: str, event: str) -> Optional[Dict[str, Any]]:
    ref = get_client().collection(COLLECTION_NAME).document(event_id(transaction_number, event))
    snap = _with_retries("read", ref.get)
    return snap.to_dict() if snap.exists else None

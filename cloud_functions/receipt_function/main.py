import json
from datetime import datetime, timezone
from google.cloud import firestore

_db = None


def get_db():
    global _db
    if _db is None:
        _db = firestore.Client()
    return _db


def create_receipt(request):
    """
    HTTP Cloud Function
    - Expects JSON: { "transaction_number": "TRX-20240131-001", "total": "60500.00",
                      "paid_amount": "100000.00", "change_amount": "39500.00",
                      "cashier": "kasir", "order_type": "dine-in", "items": [...] }
    - Stores the receipt under its transaction number
    - Returns: { "ok": true, "receipt_id": "...", "created_at": "..." }
    """
    try:
        data = request.get_json(silent=True) or {}
        number = data.get("transaction_number")
        total = data.get("total")
        paid = data.get("paid_amount")

        if not number or total is None or paid is None:
            return ("Missing transaction_number/total/paid_amount", 400)

        created_at = datetime.now(timezone.utc).isoformat()

        doc = {
            "transaction_number": number,
            "cashier": data.get("cashier", ""),
            "order_type": data.get("order_type"),
            "table_number": data.get("table_number"),
            # money stays a decimal string end to end
            "total": str(total),
            "paid_amount": str(paid),
            "change_amount": str(data.get("change_amount", "0")),
            "items": data.get("items", []),
            "created_at": created_at,
            "source": "cloud_function"
        }

        get_db().collection("receipts").document(number).set(doc)

        return (json.dumps({
            "ok": True,
            "receipt_id": number,
            "created_at": created_at
        }), 200, {"Content-Type": "application/json"})

    except Exception as e:
        return (f"Error: {str(e)}", 500)

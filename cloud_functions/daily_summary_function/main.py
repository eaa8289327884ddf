import json
from datetime import datetime, timezone
from google.cloud import firestore

_db = None


def get_db():
    global _db
    if _db is None:
        _db = firestore.Client()
    return _db


def daily_sales_summary(request):
    """
    HTTP Cloud Function
    Saves a daily sales summary into Firestore, one document per date.

    Expected JSON:
    {
        "date": "2024-01-31",
        "total_sales": "93500.00",
        "total_transactions": 2,
        "average_transaction": "46750.00",
        "top_item": "Cappuccino"
    }
    """

    try:
        data = request.get_json(silent=True) or {}

        date = data.get("date")
        total_sales = data.get("total_sales")
        count = data.get("total_transactions")

        if not date or total_sales is None or count is None:
            return ("Missing date / total_sales / total_transactions", 400)

        doc = {
            "date": date,
            "total_sales": str(total_sales),
            "total_transactions": int(count),
            "average_transaction": str(data.get("average_transaction", "0")),
            "top_item": data.get("top_item", "none"),
            "created_at": datetime.now(timezone.utc).isoformat(),
            "source": "cloud_function_daily_summary"
        }

        get_db().collection("daily_summaries").document(date).set(doc)

        return (
            json.dumps({"ok": True, "date": date}),
            200,
            {"Content-Type": "application/json"}
        )

    except Exception as e:
        return (f"Error: {str(e)}", 500)

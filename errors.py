"""Error kinds raised by the POS core and mapped to HTTP responses."""

from decimal import Decimal
from typing import Dict, Optional


class PosError(Exception):
    status_code = 500
    default_message = "Unexpected error."

    def __init__(self, message: Optional[str] = None, errors: Optional[Dict[str, str]] = None):
        self.message = message or self.default_message
        self.errors = errors or {}
        super().__init__(self.message)

    def to_dict(self) -> dict:
        body = {"message": self.message}
        if self.errors:
            body["errors"] = self.errors
        return body


class ValidationError(PosError):
    """Malformed or missing fields. `errors` maps field name to a message."""

    status_code = 400
    default_message = "Invalid data."


class InsufficientPayment(PosError):
    status_code = 400
    default_message = "Paid amount is less than the total."

    def __init__(self, total: Decimal, paid_amount: Decimal):
        self.total = total
        self.paid_amount = paid_amount
        super().__init__(
            f"Paid amount {paid_amount} is less than the total {total}.",
            {"paid_amount": f"must be at least {total}"},
        )

    def to_dict(self) -> dict:
        body = super().to_dict()
        body["total"] = str(self.total)
        body["paid_amount"] = str(self.paid_amount)
        return body


class Unauthorized(PosError):
    status_code = 401
    default_message = "Please login first."


class Forbidden(PosError):
    status_code = 403
    default_message = "Admin access required."


class NotFound(PosError):
    status_code = 404
    default_message = "Not found."


class Conflict(PosError):
    status_code = 409
    default_message = "Conflict."

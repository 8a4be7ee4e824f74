"""
Wallet Ledger — Domain errors

Every failure the ledger reports to a caller is a LedgerError carrying an
HTTP status and a short human-readable message. Only OrderFailed hides its
cause; the cause is logged server-side where it is raised.
"""
from decimal import Decimal
from typing import Any


class LedgerError(Exception):
    status_code: int = 400
    default_message: str = "Request failed."

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        return {"detail": self.message}


class InvalidRequest(LedgerError):
    """Malformed or tampered input. Not retryable without a client fix."""
    status_code = 400
    default_message = "Invalid request."


class Unauthorized(LedgerError):
    status_code = 401
    default_message = "Wrong PIN."


class Forbidden(LedgerError):
    status_code = 403
    default_message = "Account blocked — contact admin."


class NotFound(LedgerError):
    status_code = 404
    default_message = "Not found."


class Conflict(LedgerError):
    status_code = 409
    default_message = "Already exists."


class InsufficientFunds(LedgerError):
    """Retryable after a top-up. Carries the balance observed under the row lock."""
    status_code = 400
    default_message = "Insufficient balance."

    def __init__(self, balance: Decimal, message: str | None = None):
        self.balance = balance
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        return {"detail": self.message, "balance": str(self.balance)}


class OrderFailed(LedgerError):
    status_code = 500
    default_message = "Order failed."

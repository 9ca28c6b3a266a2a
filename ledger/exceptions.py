"""
Ledger exceptions.

Each error carries the figures a caller needs to build a user-facing message.
"""

from decimal import Decimal
from typing import Any
from uuid import UUID


class LedgerServiceError(Exception):
    pass


class AccountNotFoundError(LedgerServiceError):
    def __init__(self, account_id: UUID):
        self.account_id = account_id
        super().__init__(f"Account {account_id} not found")


class InvalidLedgerOperation(LedgerServiceError):
    pass


class InsufficientFunds(LedgerServiceError):
    """A debit or negative adjustment would take the balance below zero."""

    def __init__(self, requested: Decimal, balance: Decimal):
        self.requested = requested
        self.balance = balance
        super().__init__(
            f"Insufficient credits: cannot deduct ${requested} from a balance of ${balance}"
        )


class StorageError(LedgerServiceError):
    """The atomic write failed and was rolled back."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        self.details = details or {}
        super().__init__(message)

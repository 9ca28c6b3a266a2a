"""
Credits Ledger for Advertising Accounts

This module provides:
- Immutable ledger entries (deposit, spend, refund, admin adjustment)
- Credit, debit and admin adjustment flows
- A running balance that always equals the sum of its entries
- Per-account serialisation of balance writes
- Reverse-chronological ledger history, optionally filtered by kind
"""

from .models import (
    EntryKind,
    OwnerType,
    LedgerEntry,
    Account,
    AccountBalance,
)
from .exceptions import (
    LedgerServiceError,
    AccountNotFoundError,
    InvalidLedgerOperation,
    InsufficientFunds,
    StorageError,
)
from .service import LedgerService

__all__ = [
    "EntryKind",
    "OwnerType",
    "LedgerEntry",
    "Account",
    "AccountBalance",
    "LedgerServiceError",
    "AccountNotFoundError",
    "InvalidLedgerOperation",
    "InsufficientFunds",
    "StorageError",
    "LedgerService",
]

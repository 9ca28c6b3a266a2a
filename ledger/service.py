import logging
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Optional
from uuid import UUID, uuid4

from .config import Settings, settings as default_settings
from .exceptions import (
    AccountNotFoundError,
    InvalidLedgerOperation,
    InsufficientFunds,
)
from .models import (
    CREDIT_KINDS,
    EntryKind,
    LedgerEntry,
    Account,
    AccountBalance,
    OpenAccountRequest,
    AdminTransactionRequest,
    LedgerHistoryResponse,
    to_money,
)
from .storage import InMemoryStorage, atomic

logger = logging.getLogger(__name__)


class LedgerService:
    """Owns every write to an account balance.

    Each mutation inserts one ledger entry and moves the balance by the same
    amount inside a single storage transaction scoped to the account.
    """

    def __init__(self, storage: Optional[InMemoryStorage] = None, config: Optional[Settings] = None):
        self.storage = storage or InMemoryStorage()
        self.settings = config or default_settings

    # Accounts

    def open_account(self, request: OpenAccountRequest) -> Account:
        account_id = uuid4()
        record = {
            "id": account_id,
            "name": request.name,
            "owner_type": request.owner_type,
            "balance": Decimal("0.00"),
            "bonus_credits": to_money(request.bonus_credits),
            "created_at": datetime.now(timezone.utc),
        }
        with self._atomic(account_id) as txn:
            txn.put_account(record)

        logger.info("Opened %s account %s", request.owner_type.value, account_id)
        return Account(**record)

    def get_account(self, account_id: UUID) -> Account:
        return Account(**self._account_record(account_id))

    def list_accounts(self, limit: Optional[int] = None) -> list[Account]:
        accounts = [Account(**a) for a in list(self.storage.accounts.values())]
        accounts.sort(key=lambda a: a.created_at, reverse=True)
        return accounts[:self._page_limit(limit, self.settings.admin_history_limit)]

    # Balance mutations

    def credit(
        self,
        account_id: UUID,
        amount: Decimal,
        description: str,
        kind: EntryKind = EntryKind.DEPOSIT,
    ) -> LedgerEntry:
        if kind not in CREDIT_KINDS:
            raise InvalidLedgerOperation(f"Cannot credit an account with a {kind.value} entry")
        amount = self._positive_amount(amount)
        return self._record(account_id, amount, kind, description)

    def debit(self, account_id: UUID, amount: Decimal, description: str) -> LedgerEntry:
        amount = self._positive_amount(amount)
        return self._record(account_id, -amount, EntryKind.SPEND, description)

    def admin_adjust(self, account_id: UUID, signed_amount: Decimal, description: str) -> LedgerEntry:
        signed_amount = self._money(signed_amount)
        if signed_amount == 0:
            raise InvalidLedgerOperation("Amount cannot be zero")
        return self._record(account_id, signed_amount, EntryKind.ADMIN_ADJUSTMENT, description)

    def apply_admin_transaction(self, account_id: UUID, request: AdminTransactionRequest) -> LedgerEntry:
        """Route a manual admin transaction to the matching ledger operation."""
        amount = self._money(request.amount)
        if amount == 0:
            raise InvalidLedgerOperation("Amount cannot be zero")

        if request.kind == EntryKind.ADMIN_ADJUSTMENT:
            return self.admin_adjust(account_id, amount, request.description)
        if request.kind == EntryKind.SPEND:
            return self.debit(account_id, abs(amount), request.description)
        if amount < 0:
            raise InvalidLedgerOperation(
                f"A {request.kind.value} must be positive; use an admin adjustment to deduct"
            )
        return self.credit(account_id, amount, request.description, request.kind)

    # Reads

    def get_balance(self, account_id: UUID) -> AccountBalance:
        self._account_record(account_id)
        with self.storage.account_lock(account_id):
            account = self.get_account(account_id)
            entries = self.storage.entries_for(account_id)
        last_entry = max(entries, key=lambda e: e["seq"]) if entries else None

        return AccountBalance(
            account_id=account_id,
            balance=account.balance,
            total_available_credits=account.total_available_credits,
            total_entries=len(entries),
            last_transaction_at=last_entry["created_at"] if last_entry else None,
        )

    def get_ledger_history(
        self,
        account_id: UUID,
        kind: Optional[EntryKind] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> LedgerHistoryResponse:
        limit = self._page_limit(limit, self.settings.default_history_limit)
        if offset < 0:
            raise InvalidLedgerOperation("Offset cannot be negative")

        self._account_record(account_id)
        with self.storage.account_lock(account_id):
            account = self.get_account(account_id)
            records = self.storage.entries_for(account_id)
        if kind:
            records = [e for e in records if e["kind"] == kind]
        records.sort(key=lambda e: (e["created_at"], e["seq"]), reverse=True)

        return LedgerHistoryResponse(
            account_id=account_id,
            kind=kind,
            entries=[LedgerEntry(**e) for e in records[offset:offset + limit]],
            total_count=len(records),
            current_balance=account.balance,
        )

    def entries_total(self, account_id: UUID) -> Decimal:
        """Sum of every entry amount; always equal to the account balance."""
        self._account_record(account_id)
        with self.storage.account_lock(account_id):
            entries = self.storage.entries_for(account_id)
        return sum((e["amount"] for e in entries), Decimal("0.00"))

    # Internals

    def _record(self, account_id: UUID, amount: Decimal, kind: EntryKind, description: str) -> LedgerEntry:
        description = self._description(description)
        # Unknown ids never get a lock
        self._account_record(account_id)

        with self._atomic(account_id) as txn:
            account = self._account_record(account_id)
            new_balance = account["balance"] + amount
            if new_balance < 0:
                logger.warning(
                    "Rejected %s of %s on account %s: balance is %s",
                    kind.value, amount, account_id, account["balance"],
                )
                raise InsufficientFunds(requested=-amount, balance=account["balance"])

            entry = {
                "id": uuid4(),
                "account_id": account_id,
                "amount": amount,
                "kind": kind,
                "description": description,
                "balance_after": new_balance,
                "created_at": datetime.now(timezone.utc),
            }
            txn.insert_entry(entry)
            txn.put_account({**account, "balance": new_balance})

        logger.info(
            "Recorded %s %s on account %s (balance %s)",
            kind.value, amount, account_id, new_balance,
        )
        return LedgerEntry(**entry)

    def _atomic(self, account_id: UUID):
        return atomic(self.storage, account_id)

    def _account_record(self, account_id: UUID) -> dict:
        data = self.storage.accounts.get(account_id)
        if not data:
            raise AccountNotFoundError(account_id)
        return data

    @staticmethod
    def _money(value) -> Decimal:
        try:
            amount = to_money(value)
        except (InvalidOperation, ValueError, TypeError):
            raise InvalidLedgerOperation(f"Invalid amount: {value!r}")
        if not amount.is_finite():
            raise InvalidLedgerOperation(f"Invalid amount: {value!r}")
        return amount

    def _positive_amount(self, value) -> Decimal:
        amount = self._money(value)
        if amount <= 0:
            raise InvalidLedgerOperation("Amount must be greater than zero")
        return amount

    @staticmethod
    def _page_limit(limit: Optional[int], default: int) -> int:
        if limit is None:
            return default
        if limit < 1:
            raise InvalidLedgerOperation("Limit must be at least 1")
        return limit

    @staticmethod
    def _description(description: Optional[str]) -> str:
        if not description or not description.strip():
            raise InvalidLedgerOperation("Description can't be blank")
        return description.strip()


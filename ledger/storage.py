import itertools
import logging
import threading
from contextlib import contextmanager
from datetime import datetime, timezone
from decimal import Decimal
from typing import Iterator, Optional
from uuid import UUID

from .exceptions import LedgerServiceError, StorageError
from .models import OwnerType

logger = logging.getLogger(__name__)


class Transaction:
    """Write set for one account, undone in reverse order on failure."""

    def __init__(self, storage: "InMemoryStorage", account_id: UUID):
        self.storage = storage
        self.account_id = account_id
        self._undo: list[tuple[dict, UUID, Optional[dict]]] = []

    def insert_entry(self, record: dict) -> None:
        if record["id"] in self.storage.ledger_entries:
            raise KeyError(f"Ledger entry {record['id']} already exists")
        record = {**record, "seq": next(self.storage._sequence)}
        self._put(self.storage.ledger_entries, record["id"], record)

    def put_account(self, record: dict) -> None:
        self._put(self.storage.accounts, record["id"], record)

    def put_entity(self, record: dict) -> None:
        self._put(self.storage.entities, record["id"], record)

    def rollback(self) -> None:
        for table, key, previous in reversed(self._undo):
            if previous is None:
                table.pop(key, None)
            else:
                table[key] = previous
        self._undo.clear()

    def _put(self, table: dict, key: UUID, record: dict) -> None:
        previous = table.get(key)
        self.storage._write(table, key, record)
        self._undo.append((table, key, previous))


class InMemoryStorage:
    def __init__(self, seed: bool = True):
        self.accounts: dict[UUID, dict] = {}
        self.ledger_entries: dict[UUID, dict] = {}
        self.entities: dict[UUID, dict] = {}
        self._sequence = itertools.count()
        self._locks: dict[UUID, threading.RLock] = {}
        self._locks_guard = threading.Lock()
        if seed:
            self._seed_data()

    def _seed_data(self):
        now = datetime.now(timezone.utc)
        user_id = UUID("550e8400-e29b-41d4-a716-446655440000")
        org_id = UUID("660e8400-e29b-41d4-a716-446655440001")

        self.accounts[user_id] = {
            "id": user_id, "name": "Demo Advertiser",
            "owner_type": OwnerType.USER, "balance": Decimal("0.00"),
            "bonus_credits": Decimal("0.00"), "created_at": now,
        }
        self.accounts[org_id] = {
            "id": org_id, "name": "Demo Agency",
            "owner_type": OwnerType.ORGANIZATION, "balance": Decimal("0.00"),
            "bonus_credits": Decimal("0.00"), "created_at": now,
        }

    def account_lock(self, account_id: UUID) -> threading.RLock:
        with self._locks_guard:
            lock = self._locks.get(account_id)
            if lock is None:
                lock = self._locks[account_id] = threading.RLock()
            return lock

    @contextmanager
    def transaction(self, account_id: UUID) -> Iterator[Transaction]:
        """Hold the account's lock and apply all writes or none of them."""
        with self.account_lock(account_id):
            txn = Transaction(self, account_id)
            try:
                yield txn
            except BaseException:
                txn.rollback()
                logger.debug("Rolled back transaction for account %s", account_id)
                raise

    def entries_for(self, account_id: UUID) -> list[dict]:
        return [e for e in list(self.ledger_entries.values()) if e["account_id"] == account_id]

    def _write(self, table: dict, key: UUID, record: dict) -> None:
        table[key] = record


@contextmanager
def atomic(
    storage: InMemoryStorage,
    account_id: UUID,
    passthrough: tuple[type[BaseException], ...] = (),
) -> Iterator[Transaction]:
    """Run a storage transaction, reporting infrastructure failures as StorageError.

    Ledger errors, and any extra domain errors named in ``passthrough``, are
    re-raised unchanged after the rollback.
    """
    try:
        with storage.transaction(account_id) as txn:
            yield txn
    except (LedgerServiceError, *passthrough):
        raise
    except Exception as exc:
        logger.exception("Storage failure on account %s, changes rolled back", account_id)
        raise StorageError(
            f"Could not save changes for account {account_id}",
            details={"account_id": str(account_id), "cause": type(exc).__name__},
        ) from exc

from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from enum import Enum
from typing import Optional
from uuid import UUID
from pydantic import BaseModel, Field, ConfigDict, computed_field


CENTS = Decimal("0.01")


def to_money(value) -> Decimal:
    """Quantize a number to two decimal places, the precision balances are kept at."""
    return Decimal(str(value)).quantize(CENTS, rounding=ROUND_HALF_UP)


class EntryKind(str, Enum):
    DEPOSIT = "deposit"
    SPEND = "spend"
    REFUND = "refund"
    ADMIN_ADJUSTMENT = "admin_adjustment"


CREDIT_KINDS = (EntryKind.DEPOSIT, EntryKind.REFUND, EntryKind.ADMIN_ADJUSTMENT)


class OwnerType(str, Enum):
    USER = "user"
    ORGANIZATION = "organization"


class OpenAccountRequest(BaseModel):
    name: str = Field(..., min_length=1)
    owner_type: OwnerType = OwnerType.USER
    bonus_credits: Decimal = Field(default=Decimal("0.00"), ge=0)

    model_config = ConfigDict(json_schema_extra={
        "example": {
            "name": "Acme Media",
            "owner_type": "organization",
            "bonus_credits": 0,
        }
    })


class DepositRequest(BaseModel):
    amount: Decimal = Field(
        ..., max_digits=10, decimal_places=2,
        description="Amount confirmed by the payment provider",
    )
    payment_reference: Optional[str] = None
    description: Optional[str] = None


class SpendRequest(BaseModel):
    amount: Decimal = Field(..., max_digits=10, decimal_places=2)
    description: str


class AdminTransactionRequest(BaseModel):
    amount: Decimal = Field(
        ..., max_digits=10, decimal_places=2,
        description="Signed amount; negative deducts",
    )
    kind: EntryKind = EntryKind.ADMIN_ADJUSTMENT
    description: str

    model_config = ConfigDict(json_schema_extra={
        "example": {
            "amount": -30.00,
            "kind": "admin_adjustment",
            "description": "Correction for duplicated deposit",
        }
    })


class LedgerEntry(BaseModel):
    id: UUID
    account_id: UUID
    amount: Decimal
    kind: EntryKind
    description: str
    balance_after: Decimal
    created_at: datetime

    model_config = ConfigDict(from_attributes=True, frozen=True)

    def is_credit(self) -> bool:
        return self.kind in CREDIT_KINDS and self.amount > 0

    def is_debit(self) -> bool:
        return self.kind == EntryKind.SPEND or (
            self.kind == EntryKind.ADMIN_ADJUSTMENT and self.amount < 0
        )

    @computed_field
    @property
    def signed_amount(self) -> str:
        return f"+{self.amount}" if self.is_credit() else str(self.amount)


class Account(BaseModel):
    id: UUID
    name: str
    owner_type: OwnerType
    balance: Decimal
    bonus_credits: Decimal = Decimal("0.00")
    created_at: datetime

    model_config = ConfigDict(from_attributes=True, frozen=True)

    @computed_field
    @property
    def total_available_credits(self) -> Decimal:
        return self.balance + self.bonus_credits

    def sufficient_credits(self, amount: Decimal) -> bool:
        return self.balance >= amount

    def can_run_campaign(self, daily_budget: Decimal, min_daily_budget: Decimal) -> bool:
        return daily_budget >= min_daily_budget and self.sufficient_credits(daily_budget)


class AccountBalance(BaseModel):
    account_id: UUID
    balance: Decimal
    total_available_credits: Decimal
    total_entries: int
    last_transaction_at: Optional[datetime] = None


class LedgerHistoryResponse(BaseModel):
    account_id: UUID
    kind: Optional[EntryKind] = None
    entries: list[LedgerEntry]
    total_count: int
    current_balance: Decimal


class EntryResponse(BaseModel):
    entry: LedgerEntry
    balance: Decimal
    message: str

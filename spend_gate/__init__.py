"""
Spend Gate

Admission control for budget-bearing advertising entities:
- Daily budget floor, checked on every save
- Available-credit check before an entity is saved as active
- Read-only serving and pause signals for dashboards
"""

from .models import (
    AdSpendEntity,
    EntityStatus,
    EntityType,
)
from .gate import (
    SpendGate,
    SpendGateError,
    InsufficientCredits,
    BudgetTooLow,
    EntityNotFoundError,
)

__all__ = [
    "AdSpendEntity",
    "EntityStatus",
    "EntityType",
    "SpendGate",
    "SpendGateError",
    "InsufficientCredits",
    "BudgetTooLow",
    "EntityNotFoundError",
]

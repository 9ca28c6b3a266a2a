from dataclasses import dataclass, field, replace
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class EntityStatus(str, Enum):
    INACTIVE = "inactive"
    ACTIVE = "active"
    PAUSED = "paused"


class EntityType(str, Enum):
    CAMPAIGN = "campaign"
    BANNER = "banner"
    VIDEO = "video"


@dataclass(frozen=True)
class AdSpendEntity:
    account_id: UUID
    name: str
    entity_type: EntityType = EntityType.CAMPAIGN
    status: EntityStatus = EntityStatus.INACTIVE
    daily_budget: Optional[Decimal] = None
    id: UUID = field(default_factory=uuid4)

    @property
    def is_active(self) -> bool:
        return self.status == EntityStatus.ACTIVE

    def with_status(self, status: EntityStatus) -> "AdSpendEntity":
        return replace(self, status=status)

    def to_dict(self) -> dict:
        return {
            "id": self.id, "account_id": self.account_id, "name": self.name,
            "entity_type": self.entity_type, "status": self.status,
            "daily_budget": self.daily_budget,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "AdSpendEntity":
        budget = data.get("daily_budget")
        return cls(
            id=data["id"], account_id=data["account_id"], name=data["name"],
            entity_type=EntityType(data.get("entity_type", EntityType.CAMPAIGN)),
            status=EntityStatus(data.get("status", EntityStatus.INACTIVE)),
            daily_budget=Decimal(str(budget)) if budget is not None else None,
        )


class CreateEntityRequest(BaseModel):
    account_id: UUID
    name: str = Field(..., min_length=1)
    entity_type: EntityType = EntityType.CAMPAIGN
    status: EntityStatus = EntityStatus.INACTIVE
    daily_budget: Optional[Decimal] = Field(None, max_digits=10, decimal_places=2)


class EntityResponse(BaseModel):
    id: UUID
    account_id: UUID
    name: str
    entity_type: EntityType
    status: EntityStatus
    daily_budget: Optional[Decimal] = None

    @classmethod
    def from_entity(cls, entity: AdSpendEntity) -> "EntityResponse":
        return cls(**entity.to_dict())


class ServingStatus(BaseModel):
    entity_id: UUID
    status: EntityStatus
    available_credits: Decimal
    min_daily_budget: Decimal
    can_serve_ads: bool
    should_pause_for_credits: bool

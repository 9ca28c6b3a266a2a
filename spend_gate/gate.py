import logging
from decimal import Decimal
from typing import Optional
from uuid import UUID

from ledger.models import to_money
from ledger.service import LedgerService
from ledger.storage import atomic

from .models import AdSpendEntity, CreateEntityRequest, EntityStatus

logger = logging.getLogger(__name__)


class SpendGateError(Exception):
    field = "base"


class InsufficientCredits(SpendGateError):
    def __init__(self, required: Decimal, available: Decimal):
        self.required = to_money(required)
        self.available = to_money(available)
        super().__init__(
            f"Insufficient credits. You need ${self.required} but only have "
            f"${self.available}. Please add credits to your wallet."
        )


class BudgetTooLow(SpendGateError):
    field = "daily_budget"

    def __init__(self, daily_budget: Decimal, minimum: Decimal):
        self.daily_budget = daily_budget
        self.minimum = to_money(minimum)
        super().__init__(f"must be at least ${self.minimum}")


class EntityNotFoundError(SpendGateError):
    def __init__(self, entity_id: UUID):
        self.entity_id = entity_id
        super().__init__(f"Entity {entity_id} not found")


class SpendGate:
    """Admission control for campaigns, banners and videos.

    An entity may only be persisted as ``active`` while its funding account
    holds at least one day's budget in available credits. The gate reads
    balances through the ledger but never writes them.
    """

    def __init__(self, ledger: LedgerService, min_daily_budget: Optional[Decimal] = None):
        self.ledger = ledger
        self.storage = ledger.storage
        if min_daily_budget is None:
            min_daily_budget = ledger.settings.min_daily_budget
        self.min_daily_budget = to_money(min_daily_budget)

    def available_for(self, account_id: UUID) -> Decimal:
        return self.ledger.get_account(account_id).total_available_credits

    def minimum_required_credits(self, entity: AdSpendEntity) -> Decimal:
        # One day of budget must be available
        if entity.daily_budget is None:
            return Decimal("0.00")
        return entity.daily_budget

    def check_minimum_daily_budget(self, entity: AdSpendEntity) -> None:
        if entity.daily_budget is not None and entity.daily_budget < self.min_daily_budget:
            raise BudgetTooLow(entity.daily_budget, self.min_daily_budget)

    def validate_before_save(self, entity: AdSpendEntity) -> None:
        """Raise the first reason the entity cannot be saved in its current status."""
        self.check_minimum_daily_budget(entity)
        if not entity.is_active:
            return

        required = self.minimum_required_credits(entity)
        available = self.available_for(entity.account_id)
        if available < required:
            raise InsufficientCredits(required=required, available=available)

    def can_activate(self, entity: AdSpendEntity) -> bool:
        try:
            self.validate_before_save(entity.with_status(EntityStatus.ACTIVE))
        except SpendGateError:
            return False
        return True

    def can_serve_ads(self, entity: AdSpendEntity) -> bool:
        if not entity.is_active:
            return False
        return self.available_for(entity.account_id) >= self.min_daily_budget

    def should_pause_for_credits(self, entity: AdSpendEntity) -> bool:
        if not entity.is_active:
            return False
        return self.available_for(entity.account_id) < self.min_daily_budget

    # Persistence

    def create(self, request: CreateEntityRequest) -> AdSpendEntity:
        entity = AdSpendEntity(
            account_id=request.account_id,
            name=request.name,
            entity_type=request.entity_type,
            status=request.status,
            daily_budget=to_money(request.daily_budget) if request.daily_budget is not None else None,
        )
        return self.save(entity)

    def save(self, entity: AdSpendEntity) -> AdSpendEntity:
        """Validate and store the entity while holding its account's lock.

        The funding account must exist whatever the status. A rejected save
        leaves any previously stored version untouched.
        """
        self.ledger.get_account(entity.account_id)
        try:
            with atomic(self.storage, entity.account_id, passthrough=(SpendGateError,)) as txn:
                self.validate_before_save(entity)
                txn.put_entity(entity.to_dict())
        except SpendGateError as e:
            logger.warning("Rejected save of %s %s: %s", entity.entity_type.value, entity.id, e)
            raise

        logger.info(
            "Saved %s %s as %s", entity.entity_type.value, entity.id, entity.status.value
        )
        return entity

    def activate(self, entity_id: UUID) -> AdSpendEntity:
        return self._transition(entity_id, EntityStatus.ACTIVE)

    def pause(self, entity_id: UUID) -> AdSpendEntity:
        return self._transition(entity_id, EntityStatus.PAUSED)

    def deactivate(self, entity_id: UUID) -> AdSpendEntity:
        return self._transition(entity_id, EntityStatus.INACTIVE)

    def get_entity(self, entity_id: UUID) -> AdSpendEntity:
        data = self.storage.entities.get(entity_id)
        if not data:
            raise EntityNotFoundError(entity_id)
        return AdSpendEntity.from_dict(data)

    def list_entities(self, account_id: Optional[UUID] = None) -> list[AdSpendEntity]:
        entities = [AdSpendEntity.from_dict(e) for e in list(self.storage.entities.values())]
        if account_id:
            entities = [e for e in entities if e.account_id == account_id]
        return entities

    def _transition(self, entity_id: UUID, status: EntityStatus) -> AdSpendEntity:
        entity = self.get_entity(entity_id)
        if entity.status == status and not entity.is_active:
            return entity
        return self.save(entity.with_status(status))

from typing import Optional
from uuid import UUID
from fastapi import FastAPI, HTTPException, Query, status
from fastapi.middleware.cors import CORSMiddleware

from spend_gate.gate import (
    SpendGate, SpendGateError, InsufficientCredits, EntityNotFoundError,
)
from spend_gate.models import CreateEntityRequest, EntityResponse, ServingStatus

from .config import settings, setup_logging
from .exceptions import (
    LedgerServiceError, AccountNotFoundError, InsufficientFunds, StorageError,
)
from .models import (
    Account, AccountBalance, OpenAccountRequest, DepositRequest, SpendRequest,
    AdminTransactionRequest, EntryKind, EntryResponse, LedgerHistoryResponse,
    LedgerEntry, to_money,
)
from .service import LedgerService

setup_logging()

app = FastAPI(
    title="Adnexus Credits API",
    description="Advertising credits ledger with spend-gated campaign activation",
    version="1.0.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

ledger_service = LedgerService()
spend_gate = SpendGate(ledger_service)


def ledger_http_error(e: LedgerServiceError) -> HTTPException:
    if isinstance(e, AccountNotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    if isinstance(e, InsufficientFunds):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    if isinstance(e, StorageError):
        return HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


def gate_http_error(e: SpendGateError) -> HTTPException:
    if isinstance(e, EntityNotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    detail = {"field": e.field, "message": str(e)}
    if isinstance(e, InsufficientCredits):
        detail.update(required=str(e.required), available=str(e.available))
    return HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=detail)


def entry_response(entry: LedgerEntry, message: str) -> EntryResponse:
    return EntryResponse(entry=entry, balance=entry.balance_after, message=message)


@app.get("/health", tags=["System"])
def health_check():
    return {"status": "healthy", "service": "adnexus-credits"}


@app.post("/accounts", response_model=Account, status_code=status.HTTP_201_CREATED, tags=["Accounts"])
def open_account(request: OpenAccountRequest) -> Account:
    try:
        return ledger_service.open_account(request)
    except LedgerServiceError as e:
        raise ledger_http_error(e)


@app.get("/accounts", response_model=list[Account], tags=["Accounts"])
def list_accounts(limit: Optional[int] = Query(None, ge=1)) -> list[Account]:
    return ledger_service.list_accounts(limit)


@app.get("/accounts/{account_id}", response_model=Account, tags=["Accounts"])
def get_account(account_id: UUID) -> Account:
    try:
        return ledger_service.get_account(account_id)
    except LedgerServiceError as e:
        raise ledger_http_error(e)


@app.get("/accounts/{account_id}/balance", response_model=AccountBalance, tags=["Accounts"])
def get_account_balance(account_id: UUID) -> AccountBalance:
    try:
        return ledger_service.get_balance(account_id)
    except LedgerServiceError as e:
        raise ledger_http_error(e)


@app.get("/accounts/{account_id}/ledger", response_model=LedgerHistoryResponse, tags=["Ledger"])
def get_account_ledger(
    account_id: UUID,
    kind: Optional[EntryKind] = None,
    limit: Optional[int] = Query(None, ge=1),
    offset: int = Query(0, ge=0),
) -> LedgerHistoryResponse:
    try:
        return ledger_service.get_ledger_history(account_id, kind, limit, offset)
    except LedgerServiceError as e:
        raise ledger_http_error(e)


@app.post("/accounts/{account_id}/deposits", response_model=EntryResponse,
          status_code=status.HTTP_201_CREATED, tags=["Ledger"])
def deposit(account_id: UUID, request: DepositRequest) -> EntryResponse:
    amount = to_money(request.amount)
    if amount < settings.min_deposit_amount:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Minimum deposit is ${settings.min_deposit_amount}",
        )

    description = request.description or f"Credit purchase - ${amount}"
    if request.payment_reference:
        description = f"{description} ({request.payment_reference})"

    try:
        entry = ledger_service.credit(account_id, amount, description, EntryKind.DEPOSIT)
    except LedgerServiceError as e:
        raise ledger_http_error(e)
    return entry_response(entry, f"Successfully added ${amount} to your account")


@app.post("/accounts/{account_id}/spends", response_model=EntryResponse,
          status_code=status.HTTP_201_CREATED, tags=["Ledger"])
def spend(account_id: UUID, request: SpendRequest) -> EntryResponse:
    try:
        entry = ledger_service.debit(account_id, request.amount, request.description)
    except LedgerServiceError as e:
        raise ledger_http_error(e)
    return entry_response(entry, "Spend recorded")


@app.post("/admin/accounts/{account_id}/transactions", response_model=EntryResponse,
          status_code=status.HTTP_201_CREATED, tags=["Admin"])
def admin_transaction(account_id: UUID, request: AdminTransactionRequest) -> EntryResponse:
    try:
        entry = ledger_service.apply_admin_transaction(account_id, request)
    except LedgerServiceError as e:
        raise ledger_http_error(e)

    direction = "added" if entry.amount > 0 else "deducted"
    return entry_response(entry, f"Successfully {direction} ${abs(entry.amount)}")


@app.post("/entities", response_model=EntityResponse, status_code=status.HTTP_201_CREATED, tags=["Entities"])
def create_entity(request: CreateEntityRequest) -> EntityResponse:
    try:
        return EntityResponse.from_entity(spend_gate.create(request))
    except SpendGateError as e:
        raise gate_http_error(e)
    except LedgerServiceError as e:
        raise ledger_http_error(e)


@app.get("/entities/{entity_id}", response_model=EntityResponse, tags=["Entities"])
def get_entity(entity_id: UUID) -> EntityResponse:
    try:
        return EntityResponse.from_entity(spend_gate.get_entity(entity_id))
    except SpendGateError as e:
        raise gate_http_error(e)


@app.post("/entities/{entity_id}/activate", response_model=EntityResponse, tags=["Entities"])
def activate_entity(entity_id: UUID) -> EntityResponse:
    try:
        return EntityResponse.from_entity(spend_gate.activate(entity_id))
    except SpendGateError as e:
        raise gate_http_error(e)
    except LedgerServiceError as e:
        raise ledger_http_error(e)


@app.post("/entities/{entity_id}/pause", response_model=EntityResponse, tags=["Entities"])
def pause_entity(entity_id: UUID) -> EntityResponse:
    try:
        return EntityResponse.from_entity(spend_gate.pause(entity_id))
    except SpendGateError as e:
        raise gate_http_error(e)
    except LedgerServiceError as e:
        raise ledger_http_error(e)


@app.get("/entities/{entity_id}/serving", response_model=ServingStatus, tags=["Entities"])
def get_serving_status(entity_id: UUID) -> ServingStatus:
    try:
        entity = spend_gate.get_entity(entity_id)
        return ServingStatus(
            entity_id=entity.id,
            status=entity.status,
            available_credits=spend_gate.available_for(entity.account_id),
            min_daily_budget=spend_gate.min_daily_budget,
            can_serve_ads=spend_gate.can_serve_ads(entity),
            should_pause_for_credits=spend_gate.should_pause_for_credits(entity),
        )
    except SpendGateError as e:
        raise gate_http_error(e)
    except LedgerServiceError as e:
        raise ledger_http_error(e)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)

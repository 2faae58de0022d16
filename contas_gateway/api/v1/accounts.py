"""Bank account management - /v1/accounts"""

import uuid
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request

from contas_gateway.api.dependencies import get_ledger_service, get_owner_id, get_request_id
from contas_gateway.api.errors import to_http_exception
from contas_gateway.api.v1.schemas import AccountCreate, AccountResponse, AccountUpdate, BalanceResponse
from contas_gateway.domain.exceptions import DomainException
from contas_gateway.services.ledger_service import LedgerService

router = APIRouter()


@router.post("/accounts", response_model=AccountResponse, status_code=201)
def create_account(
    body: AccountCreate,
    owner_id: str = Depends(get_owner_id),
    service: LedgerService = Depends(get_ledger_service),
):
    account = service.create_account(owner_id, body.name, body.bank, body.account_number, body.branch)
    return AccountResponse.model_validate(account)


@router.get("/accounts", response_model=List[AccountResponse])
def list_accounts(
    include_inactive: bool = Query(False),
    owner_id: str = Depends(get_owner_id),
    service: LedgerService = Depends(get_ledger_service),
):
    return [AccountResponse.model_validate(a) for a in service.list_accounts(owner_id, include_inactive)]


@router.get("/accounts/{account_id}", response_model=AccountResponse)
def get_account(
    account_id: uuid.UUID,
    request: Request,
    owner_id: str = Depends(get_owner_id),
    service: LedgerService = Depends(get_ledger_service),
):
    try:
        return AccountResponse.model_validate(service.get_account(owner_id, account_id))
    except DomainException as e:
        raise to_http_exception(e, get_request_id(request))


@router.put("/accounts/{account_id}", response_model=AccountResponse)
def update_account(
    account_id: uuid.UUID,
    body: AccountUpdate,
    request: Request,
    owner_id: str = Depends(get_owner_id),
    service: LedgerService = Depends(get_ledger_service),
):
    try:
        account = service.update_account(owner_id, account_id, **body.model_dump(exclude_unset=True))
    except DomainException as e:
        raise to_http_exception(e, get_request_id(request))
    return AccountResponse.model_validate(account)


@router.delete("/accounts/{account_id}", response_model=AccountResponse)
def deactivate_account(
    account_id: uuid.UUID,
    request: Request,
    owner_id: str = Depends(get_owner_id),
    service: LedgerService = Depends(get_ledger_service),
):
    """Soft delete: the account and its history are kept but it can no longer be used"""
    try:
        account = service.set_account_active(owner_id, account_id, False)
    except DomainException as e:
        raise to_http_exception(e, get_request_id(request))
    return AccountResponse.model_validate(account)


@router.post("/accounts/{account_id}/activate", response_model=AccountResponse)
def activate_account(
    account_id: uuid.UUID,
    request: Request,
    owner_id: str = Depends(get_owner_id),
    service: LedgerService = Depends(get_ledger_service),
):
    try:
        account = service.set_account_active(owner_id, account_id, True)
    except DomainException as e:
        raise to_http_exception(e, get_request_id(request))
    return AccountResponse.model_validate(account)


@router.get("/accounts/{account_id}/balance", response_model=BalanceResponse)
def get_balance(
    account_id: uuid.UUID,
    request: Request,
    as_of: Optional[date] = Query(None, description="Inclusive cut-off date"),
    owner_id: str = Depends(get_owner_id),
    service: LedgerService = Depends(get_ledger_service),
):
    """Balance recomputed from the ledger, never from the cached column"""
    try:
        balance = service.balance(owner_id, account_id, as_of=as_of)
    except DomainException as e:
        raise to_http_exception(e, get_request_id(request))
    return BalanceResponse(bank_account_id=account_id, as_of=as_of, balance=balance)

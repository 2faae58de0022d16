"""Ledger entries - /v1/ledger"""

import uuid
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request

from contas_gateway.api.dependencies import get_ledger_service, get_owner_id, get_request_id
from contas_gateway.api.errors import to_http_exception
from contas_gateway.api.v1.schemas import EntryCreate, EntryResponse, OpeningBalanceCreate, StatementResponse
from contas_gateway.domain.exceptions import DomainException
from contas_gateway.services.ledger_service import LedgerService

router = APIRouter()


@router.get("/ledger", response_model=StatementResponse)
def get_statement(
    request: Request,
    account_id: Optional[uuid.UUID] = Query(None),
    card_id: Optional[uuid.UUID] = Query(None),
    start: Optional[date] = Query(None),
    end: Optional[date] = Query(None),
    owner_id: str = Depends(get_owner_id),
    service: LedgerService = Depends(get_ledger_service),
):
    """
    List counting entries, newest first, with inflow/outflow totals.

    Reversed entries and reversal records are excluded.
    """
    try:
        statement = service.statement(owner_id, account_id=account_id, card_id=card_id, start=start, end=end)
    except DomainException as e:
        raise to_http_exception(e, get_request_id(request))
    return StatementResponse.model_validate(statement)


@router.post("/ledger", response_model=EntryResponse, status_code=201)
def post_entry(
    body: EntryCreate,
    request: Request,
    owner_id: str = Depends(get_owner_id),
    service: LedgerService = Depends(get_ledger_service),
):
    try:
        entry = service.post(
            owner_id,
            body.bank_account_id,
            body.kind,
            body.amount,
            body.entry_date,
            body.memo,
            card_id=body.card_id,
            payment_method=body.payment_method,
        )
    except DomainException as e:
        raise to_http_exception(e, get_request_id(request))
    return EntryResponse.model_validate(entry)


@router.post("/ledger/opening-balance", response_model=EntryResponse, status_code=201)
def post_opening_balance(
    body: OpeningBalanceCreate,
    request: Request,
    owner_id: str = Depends(get_owner_id),
    service: LedgerService = Depends(get_ledger_service),
):
    try:
        entry = service.post_opening_balance(owner_id, body.bank_account_id, body.amount, body.entry_date)
    except DomainException as e:
        raise to_http_exception(e, get_request_id(request))
    return EntryResponse.model_validate(entry)


@router.post("/ledger/{entry_id}/reverse", response_model=EntryResponse)
def reverse_entry(
    entry_id: uuid.UUID,
    request: Request,
    owner_id: str = Depends(get_owner_id),
    service: LedgerService = Depends(get_ledger_service),
):
    """Returns the original entry, now flagged as reversed"""
    try:
        entry = service.reverse(owner_id, entry_id)
    except DomainException as e:
        raise to_http_exception(e, get_request_id(request))
    return EntryResponse.model_validate(entry)

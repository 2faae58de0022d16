"""Transfers between the owner's bank accounts - /v1/transfers"""

import uuid
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request

from contas_gateway.api.dependencies import get_ledger_service, get_owner_id, get_request_id
from contas_gateway.api.errors import to_http_exception
from contas_gateway.api.v1.schemas import TransferCreate, TransferResponse
from contas_gateway.domain.exceptions import DomainException
from contas_gateway.services.ledger_service import LedgerService

router = APIRouter()


@router.post("/transfers", response_model=TransferResponse, status_code=201)
def create_transfer(
    body: TransferCreate,
    request: Request,
    owner_id: str = Depends(get_owner_id),
    service: LedgerService = Depends(get_ledger_service),
):
    """Post a paired outflow/inflow between two active accounts"""
    try:
        transfer = service.transfer(
            owner_id,
            body.from_account_id,
            body.to_account_id,
            body.amount,
            entry_date=body.entry_date,
            memo=body.memo,
        )
    except DomainException as e:
        raise to_http_exception(e, get_request_id(request))
    return TransferResponse.model_validate(transfer)


@router.get("/transfers", response_model=List[TransferResponse])
def list_transfers(
    request: Request,
    account_id: Optional[uuid.UUID] = Query(None, description="Either side of the transfer"),
    start: Optional[date] = Query(None),
    end: Optional[date] = Query(None),
    owner_id: str = Depends(get_owner_id),
    service: LedgerService = Depends(get_ledger_service),
):
    try:
        transfers = service.list_transfers(owner_id, account_id=account_id, start=start, end=end)
    except DomainException as e:
        raise to_http_exception(e, get_request_id(request))
    return [TransferResponse.model_validate(t) for t in transfers]


@router.get("/transfers/{transfer_id}", response_model=TransferResponse)
def get_transfer(
    transfer_id: uuid.UUID,
    request: Request,
    owner_id: str = Depends(get_owner_id),
    service: LedgerService = Depends(get_ledger_service),
):
    try:
        transfer = service.get_transfer(owner_id, transfer_id)
    except DomainException as e:
        raise to_http_exception(e, get_request_id(request))
    return TransferResponse.model_validate(transfer)


@router.post("/transfers/{transfer_id}/reverse", response_model=TransferResponse)
def reverse_transfer(
    transfer_id: uuid.UUID,
    request: Request,
    owner_id: str = Depends(get_owner_id),
    service: LedgerService = Depends(get_ledger_service),
):
    """Reverse both legs together"""
    try:
        transfer = service.reverse_transfer(owner_id, transfer_id)
    except DomainException as e:
        raise to_http_exception(e, get_request_id(request))
    return TransferResponse.model_validate(transfer)

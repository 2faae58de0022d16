"""Bills and installment plans - /v1/bills"""

import dataclasses
import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request

from contas_gateway.api.dependencies import get_bill_service, get_owner_id, get_request_id
from contas_gateway.api.errors import to_http_exception
from contas_gateway.api.v1.schemas import (
    BillCreate,
    BillResponse,
    BillUpdate,
    CancelRemainingResponse,
    DeleteResponse,
    PaymentRequest,
    ReamortizeRequest,
    ReamortizeResponse,
)
from contas_gateway.domain.exceptions import DomainException
from contas_gateway.domain.models import Bill, BillStatus
from contas_gateway.services.bill_service import BillService

router = APIRouter()


def _to_response(service: BillService, bill: Bill) -> BillResponse:
    return BillResponse.model_validate(dataclasses.replace(bill, status=service.status_of(bill)))


@router.post("/bills", response_model=List[BillResponse], status_code=201)
def create_bill(
    body: BillCreate,
    request: Request,
    owner_id: str = Depends(get_owner_id),
    service: BillService = Depends(get_bill_service),
):
    """
    Create a bill, or one bill per installment.

    Installments share a plan id and are named "<name> (i/n)".
    """
    manual = [(inst.amount, inst.due_date) for inst in body.installments] if body.installments else None
    try:
        bills = service.create(
            owner_id,
            body.name,
            body.due_date,
            body.amount,
            body.vendor_id,
            installment_count=body.installment_count,
            mode=body.mode,
            manual_installments=manual,
            notes=body.notes,
        )
    except DomainException as e:
        raise to_http_exception(e, get_request_id(request))
    return [_to_response(service, b) for b in bills]


@router.get("/bills", response_model=List[BillResponse])
def list_bills(
    month: Optional[int] = Query(None, ge=1, le=12),
    year: Optional[int] = Query(None, ge=1900, le=9999),
    status: Optional[BillStatus] = Query(None),
    owner_id: str = Depends(get_owner_id),
    service: BillService = Depends(get_bill_service),
):
    return [_to_response(service, b) for b in service.list(owner_id, month=month, year=year, status=status)]


@router.get("/bills/{bill_id}", response_model=BillResponse)
def get_bill(
    bill_id: uuid.UUID,
    request: Request,
    owner_id: str = Depends(get_owner_id),
    service: BillService = Depends(get_bill_service),
):
    try:
        return _to_response(service, service.get(owner_id, bill_id))
    except DomainException as e:
        raise to_http_exception(e, get_request_id(request))


@router.get("/bills/{bill_id}/plan", response_model=List[BillResponse])
def get_plan(
    bill_id: uuid.UUID,
    request: Request,
    owner_id: str = Depends(get_owner_id),
    service: BillService = Depends(get_bill_service),
):
    """Every installment sharing the bill's plan id, ordered by installment index"""
    try:
        return [_to_response(service, b) for b in service.plan(owner_id, bill_id)]
    except DomainException as e:
        raise to_http_exception(e, get_request_id(request))


@router.put("/bills/{bill_id}", response_model=BillResponse)
def update_bill(
    bill_id: uuid.UUID,
    body: BillUpdate,
    request: Request,
    owner_id: str = Depends(get_owner_id),
    service: BillService = Depends(get_bill_service),
):
    try:
        bill = service.update(owner_id, bill_id, **body.model_dump(exclude_unset=True))
    except DomainException as e:
        raise to_http_exception(e, get_request_id(request))
    return _to_response(service, bill)


@router.delete("/bills/{bill_id}", response_model=DeleteResponse)
def delete_bill(
    bill_id: uuid.UUID,
    request: Request,
    owner_id: str = Depends(get_owner_id),
    service: BillService = Depends(get_bill_service),
):
    """
    Cancel the bill and report how many sibling installments remain open.

    Siblings are not touched; use /cancel-remaining to cancel them.
    """
    try:
        outcome = service.delete(owner_id, bill_id)
    except DomainException as e:
        raise to_http_exception(e, get_request_id(request))
    return DeleteResponse.model_validate(outcome)


@router.post("/bills/{bill_id}/pay", response_model=BillResponse)
def pay_bill(
    bill_id: uuid.UUID,
    body: PaymentRequest,
    request: Request,
    owner_id: str = Depends(get_owner_id),
    service: BillService = Depends(get_bill_service),
):
    try:
        bill = service.pay(
            owner_id,
            bill_id,
            body.payment_method,
            body.bank_account_id,
            interest=body.interest,
            card_id=body.card_id,
        )
    except DomainException as e:
        raise to_http_exception(e, get_request_id(request))
    return _to_response(service, bill)


@router.post("/bills/{bill_id}/reverse-payment", response_model=BillResponse)
def reverse_payment(
    bill_id: uuid.UUID,
    request: Request,
    owner_id: str = Depends(get_owner_id),
    service: BillService = Depends(get_bill_service),
):
    try:
        bill = service.reverse_payment(owner_id, bill_id)
    except DomainException as e:
        raise to_http_exception(e, get_request_id(request))
    return _to_response(service, bill)


@router.post("/bills/{bill_id}/cancel", response_model=BillResponse)
def cancel_bill(
    bill_id: uuid.UUID,
    request: Request,
    owner_id: str = Depends(get_owner_id),
    service: BillService = Depends(get_bill_service),
):
    try:
        bill = service.cancel(owner_id, bill_id)
    except DomainException as e:
        raise to_http_exception(e, get_request_id(request))
    return _to_response(service, bill)


@router.post("/bills/{bill_id}/cancel-remaining", response_model=CancelRemainingResponse)
def cancel_remaining(
    bill_id: uuid.UUID,
    request: Request,
    owner_id: str = Depends(get_owner_id),
    service: BillService = Depends(get_bill_service),
):
    try:
        cancelled = service.cancel_all_remaining(owner_id, bill_id)
    except DomainException as e:
        raise to_http_exception(e, get_request_id(request))
    return CancelRemainingResponse(cancelled=cancelled)


@router.post("/bills/{bill_id}/reamortize", response_model=ReamortizeResponse)
def reamortize_remaining(
    bill_id: uuid.UUID,
    body: ReamortizeRequest,
    request: Request,
    owner_id: str = Depends(get_owner_id),
    service: BillService = Depends(get_bill_service),
):
    try:
        updated = service.reamortize_remaining(owner_id, bill_id, body.amount)
    except DomainException as e:
        raise to_http_exception(e, get_request_id(request))
    return ReamortizeResponse(updated=updated)

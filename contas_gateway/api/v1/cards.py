"""Payment cards - /v1/cards"""

import uuid
from typing import List

from fastapi import APIRouter, Depends, Query, Request

from contas_gateway.api.dependencies import get_catalog_service, get_owner_id, get_request_id
from contas_gateway.api.errors import to_http_exception
from contas_gateway.api.v1.schemas import CardCreate, CardResponse
from contas_gateway.domain.exceptions import DomainException
from contas_gateway.services.catalog_service import CatalogService

router = APIRouter()


@router.post("/cards", response_model=CardResponse, status_code=201)
def create_card(
    body: CardCreate,
    request: Request,
    owner_id: str = Depends(get_owner_id),
    service: CatalogService = Depends(get_catalog_service),
):
    try:
        card = service.create_card(
            owner_id,
            body.name,
            body.kind,
            body.bank,
            credit_limit=body.credit_limit,
            statement_day=body.statement_day,
        )
    except DomainException as e:
        raise to_http_exception(e, get_request_id(request))
    return CardResponse.model_validate(card)


@router.get("/cards", response_model=List[CardResponse])
def list_cards(
    include_inactive: bool = Query(False),
    owner_id: str = Depends(get_owner_id),
    service: CatalogService = Depends(get_catalog_service),
):
    return [CardResponse.model_validate(c) for c in service.list_cards(owner_id, include_inactive)]


@router.delete("/cards/{card_id}", response_model=CardResponse)
def deactivate_card(
    card_id: uuid.UUID,
    request: Request,
    owner_id: str = Depends(get_owner_id),
    service: CatalogService = Depends(get_catalog_service),
):
    try:
        card = service.set_card_active(owner_id, card_id, False)
    except DomainException as e:
        raise to_http_exception(e, get_request_id(request))
    return CardResponse.model_validate(card)

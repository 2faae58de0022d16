"""Vendors - /v1/vendors"""

import uuid
from typing import List

from fastapi import APIRouter, Depends, Query, Request

from contas_gateway.api.dependencies import get_catalog_service, get_owner_id, get_request_id
from contas_gateway.api.errors import to_http_exception
from contas_gateway.api.v1.schemas import VendorCreate, VendorResponse
from contas_gateway.domain.exceptions import DomainException
from contas_gateway.services.catalog_service import CatalogService

router = APIRouter()


@router.post("/vendors", response_model=VendorResponse, status_code=201)
def create_vendor(
    body: VendorCreate,
    owner_id: str = Depends(get_owner_id),
    service: CatalogService = Depends(get_catalog_service),
):
    return VendorResponse.model_validate(service.create_vendor(owner_id, body.name, body.category))


@router.get("/vendors", response_model=List[VendorResponse])
def list_vendors(
    include_inactive: bool = Query(False),
    owner_id: str = Depends(get_owner_id),
    service: CatalogService = Depends(get_catalog_service),
):
    return [VendorResponse.model_validate(v) for v in service.list_vendors(owner_id, include_inactive)]


@router.delete("/vendors/{vendor_id}", response_model=VendorResponse)
def deactivate_vendor(
    vendor_id: uuid.UUID,
    request: Request,
    owner_id: str = Depends(get_owner_id),
    service: CatalogService = Depends(get_catalog_service),
):
    try:
        vendor = service.set_vendor_active(owner_id, vendor_id, False)
    except DomainException as e:
        raise to_http_exception(e, get_request_id(request))
    return VendorResponse.model_validate(vendor)

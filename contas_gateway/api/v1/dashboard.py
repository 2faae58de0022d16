"""GET /v1/dashboard - monthly financial report"""

import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request

from contas_gateway.api.dependencies import get_owner_id, get_report_service, get_request_id
from contas_gateway.api.errors import to_http_exception
from contas_gateway.api.v1.schemas import DashboardResponse
from contas_gateway.domain.exceptions import DomainException
from contas_gateway.services.report_service import ReportService

router = APIRouter()


@router.get("/dashboard", response_model=DashboardResponse)
def get_dashboard(
    request: Request,
    month: Optional[int] = Query(None, ge=1, le=12),
    year: Optional[int] = Query(None, ge=1900, le=9999),
    account_id: Optional[List[uuid.UUID]] = Query(None, description="Restrict to these bank accounts"),
    owner_id: str = Depends(get_owner_id),
    service: ReportService = Depends(get_report_service),
):
    """
    Summary, balance evolution and breakdowns for one month.

    Defaults to the current month. The response carries a cache key
    identifying (owner, period, account set).
    """
    try:
        report = service.dashboard(owner_id, month=month, year=year, account_ids=account_id or None)
    except DomainException as e:
        raise to_http_exception(e, get_request_id(request))
    return DashboardResponse.model_validate(report)

"""Dependency injection for FastAPI endpoints"""

from datetime import date
from typing import Callable

from fastapi import Depends, Header, HTTPException, Request
from sqlalchemy.orm import Session

from contas_gateway.infrastructure.database.session import get_db
from contas_gateway.services.bill_service import BillService
from contas_gateway.services.catalog_service import CatalogService
from contas_gateway.services.ledger_service import LedgerService
from contas_gateway.services.report_service import ReportService


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_owner_id(x_user_id: str | None = Header(default=None)) -> str:
    """Opaque owner identifier set by the upstream authentication layer"""
    if not x_user_id:
        raise HTTPException(status_code=401, detail="Missing X-User-ID header")
    return x_user_id


def get_clock() -> Callable[[], date]:
    """Provide the clock used for due-date and payment-date decisions"""
    return date.today


def get_ledger_service(db: Session = Depends(get_db), clock=Depends(get_clock)) -> LedgerService:
    return LedgerService(db, clock=clock)


def get_bill_service(db: Session = Depends(get_db), clock=Depends(get_clock)) -> BillService:
    return BillService(db, clock=clock)


def get_catalog_service(db: Session = Depends(get_db)) -> CatalogService:
    return CatalogService(db)


def get_report_service(db: Session = Depends(get_db), clock=Depends(get_clock)) -> ReportService:
    return ReportService(db, clock=clock)

"""Pytest fixtures for testing"""

import pytest
from datetime import date
from typing import Generator
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from contas_gateway.api.main import create_app
from contas_gateway.api.dependencies import get_clock
from contas_gateway.domain.models import BankAccount, Vendor
from contas_gateway.infrastructure.database.models import Base
from contas_gateway.infrastructure.database.session import get_db
from contas_gateway.services.bill_service import BillService
from contas_gateway.services.catalog_service import CatalogService
from contas_gateway.services.ledger_service import LedgerService
from contas_gateway.services.report_service import ReportService


# Test database
TEST_DATABASE_URL = "sqlite:///./test.db"
engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False, "timeout": 30})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

OWNER = "user_1"
OTHER_OWNER = "user_2"
TODAY = date(2025, 3, 15)


def fixed_clock() -> date:
    return TODAY


@pytest.fixture
def db() -> Generator[Session, None, None]:
    """Create test database and session"""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db: Session) -> TestClient:
    """Create FastAPI test client with test database and a fixed clock"""
    app = create_app()

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_clock] = lambda: fixed_clock
    return TestClient(app, headers={"X-User-ID": OWNER})


@pytest.fixture
def ledger_service(db: Session) -> LedgerService:
    return LedgerService(db, clock=fixed_clock)


@pytest.fixture
def bill_service(db: Session) -> BillService:
    return BillService(db, clock=fixed_clock)


@pytest.fixture
def catalog_service(db: Session) -> CatalogService:
    return CatalogService(db)


@pytest.fixture
def report_service(db: Session) -> ReportService:
    return ReportService(db, clock=fixed_clock)


@pytest.fixture
def vendor(catalog_service: CatalogService) -> Vendor:
    return catalog_service.create_vendor(OWNER, "Energy Co", "Utilities")


@pytest.fixture
def account(ledger_service: LedgerService) -> BankAccount:
    return ledger_service.create_account(OWNER, "Checking", "Nubank")


@pytest.fixture
def session_factory(db: Session) -> sessionmaker:
    """Independent sessions on the test database, one per concurrent worker"""
    return TestingSessionLocal

"""Dashboard report loading - one consistent snapshot, then pure aggregation"""

import logging
import uuid
from datetime import date
from typing import Callable, Collection, Optional

from sqlalchemy.orm import Session

from contas_gateway.config import settings
from contas_gateway.domain.aggregation import build_dashboard
from contas_gateway.domain.models import DashboardReport
from contas_gateway.infrastructure.database.repositories import (
    BankAccountRepository,
    BillRepository,
    CardRepository,
    LedgerRepository,
    VendorRepository,
)
from contas_gateway.infrastructure.observability.metrics import report_duration_histogram

logger = logging.getLogger(__name__)


class ReportService:
    """Read-only; never mutates entities"""

    def __init__(self, db: Session, clock: Callable[[], date] = date.today):
        self.db = db
        self.clock = clock

    def dashboard(
        self,
        owner_id: str,
        month: int | None = None,
        year: int | None = None,
        account_ids: Optional[Collection[uuid.UUID]] = None,
    ) -> DashboardReport:
        """
        Build the dashboard for a month (defaults to the current one).

        All rows are read inside one transaction so the report reflects a
        single snapshot, possibly slightly stale but internally consistent.
        """
        today = self.clock()
        month = month or today.month
        year = year or today.year

        with report_duration_histogram.time():
            try:
                bills = BillRepository(self.db).for_owner(owner_id)
                entries = LedgerRepository(self.db).for_owner(owner_id)
                accounts = BankAccountRepository(self.db).list(owner_id, include_inactive=True)
                vendors = VendorRepository(self.db).list(owner_id, include_inactive=True)
                cards = CardRepository(self.db).list(owner_id, include_inactive=True)
            finally:
                # End the read transaction; nothing was written
                self.db.rollback()

            report = build_dashboard(
                owner_id,
                year,
                month,
                today,
                bills=bills,
                entries=entries,
                accounts=accounts,
                vendors=vendors,
                cards=cards,
                window_months=settings.balance_window_months,
                account_ids=account_ids,
            )

        logger.info(
            "Dashboard computed",
            extra={"owner_id": owner_id, "step": "dashboard", "cache_key": report.cache_key},
        )
        return report

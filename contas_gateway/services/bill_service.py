"""Bill & installment manager - bill lifecycle and its ledger side effects"""

import logging
import uuid
from datetime import date
from typing import Any, Callable, List, Sequence, Tuple

from sqlalchemy.orm import Session

from contas_gateway.config import settings
from contas_gateway.domain.bills import (
    OPEN_STATUSES,
    effective_status,
    ensure_amount_adjustable,
    ensure_open,
    ensure_paid,
    open_siblings,
    validate_interest,
)
from contas_gateway.domain.exceptions import (
    AlreadyCancelled,
    AlreadyPaid,
    BankAccountNotFound,
    BillNotFound,
    CardNotFound,
    VendorNotFound,
)
from contas_gateway.domain.installments import generate_installment_plan
from contas_gateway.domain.models import (
    Bill,
    BillStatus,
    DeleteOutcome,
    EntryKind,
    EntryOrigin,
    InstallmentMode,
    PaymentMethod,
)
from contas_gateway.domain.money import parse_amount, to_cents
from contas_gateway.infrastructure.database.repositories import (
    BankAccountRepository,
    BillRepository,
    CardRepository,
    LedgerRepository,
    VendorRepository,
)
from contas_gateway.infrastructure.observability.logging import log_operation
from contas_gateway.infrastructure.observability.metrics import (
    bill_cancellation_counter,
    ledger_post_counter,
    ledger_reversal_counter,
    record_bills_created,
    record_payment,
)
from contas_gateway.services.ledger_service import LedgerService
from contas_gateway.services.transactions import run_in_transaction
from contas_gateway.utils.date_utils import month_bounds

logger = logging.getLogger(__name__)


class BillService:
    """
    Operations on bills.

    Terminal statuses (paid, cancelled) are guarded twice: a read-time check
    for a precise error and a conditional UPDATE on the stored status, so a
    concurrent writer can never make a bill leave a terminal status.
    """

    def __init__(self, db: Session, clock: Callable[[], date] = date.today):
        self.db = db
        self.clock = clock
        self.bills = BillRepository(db)
        self.vendors = VendorRepository(db)
        self.accounts = BankAccountRepository(db)
        self.cards = CardRepository(db)
        self.entries = LedgerRepository(db)
        self.ledger = LedgerService(db, clock=clock)

    def _get(self, owner_id: str, bill_id: uuid.UUID) -> Bill:
        bill = self.bills.get(owner_id, bill_id)
        if bill is None:
            raise BillNotFound(f"Bill {bill_id} not found")
        return bill

    def _raise_lost_race(self, owner_id: str, bill_id: uuid.UUID) -> None:
        """A conditional UPDATE matched nothing: report the status that won"""
        ensure_open(self._get(owner_id, bill_id))
        raise AlreadyPaid(f"Bill {bill_id} changed concurrently")

    def create(
        self,
        owner_id: str,
        name: str,
        due_date: date,
        amount: Any,
        vendor_id: uuid.UUID,
        installment_count: int = 1,
        mode: InstallmentMode = InstallmentMode.SPLIT,
        manual_installments: Sequence[Tuple[Any, date]] | None = None,
        notes: str | None = None,
    ) -> List[Bill]:
        """
        Create a bill, or one bill per installment sharing a new plan id.

        Raises:
            InvalidAmount, InvalidInstallmentCount, InstallmentMismatch, VendorNotFound
        """
        installments = generate_installment_plan(
            amount,
            installment_count,
            due_date,
            mode=mode,
            manual_installments=manual_installments,
            tolerance=settings.installment_tolerance,
        )
        plan_total = None if mode == InstallmentMode.SAME_AMOUNT else parse_amount(amount)

        def work() -> List[Bill]:
            if self.vendors.get(owner_id, vendor_id, active_only=True) is None:
                raise VendorNotFound(f"Vendor {vendor_id} not found or inactive")
            return self.bills.create_bills(
                owner_id,
                name,
                vendor_id,
                installments,
                notes=notes,
                mode=mode,
                plan_total=plan_total,
            )

        bills = run_in_transaction(self.db, "create_bill", work)
        record_bills_created(mode.value, len(bills))
        log_operation(logger, "bills_created", owner_id, plan_id=bills[0].plan_id, bill_id=bills[0].id, count=len(bills))
        return bills

    def get(self, owner_id: str, bill_id: uuid.UUID) -> Bill:
        return self._get(owner_id, bill_id)

    def list(
        self,
        owner_id: str,
        month: int | None = None,
        year: int | None = None,
        status: BillStatus | None = None,
    ) -> List[Bill]:
        """Bills sorted by due date, optionally for one month and one effective status"""
        start = end = None
        if month and year:
            start, end = month_bounds(year, month)

        stored = BillStatus.PENDING if status in OPEN_STATUSES else status
        bills = self.bills.list(owner_id, start=start, end=end, stored_status=stored)
        if status is not None:
            today = self.clock()
            bills = [b for b in bills if effective_status(b, today) == status]
        return bills

    def plan(self, owner_id: str, bill_id: uuid.UUID) -> List[Bill]:
        """Every installment of the bill's plan (just the bill when standalone)"""
        bill = self._get(owner_id, bill_id)
        if bill.plan_id is None:
            return [bill]
        return self.bills.plan(owner_id, bill.plan_id)

    def update(
        self,
        owner_id: str,
        bill_id: uuid.UUID,
        name: str | None = None,
        due_date: date | None = None,
        amount: Any = None,
        vendor_id: uuid.UUID | None = None,
        notes: str | None = None,
    ) -> Bill:
        """
        Edit an open bill.

        The amount of an installment in a split or manual plan is fixed by the
        plan total.

        Raises:
            BillNotFound, AlreadyPaid, AlreadyCancelled, InvalidAmount,
            PlanAmountLocked, VendorNotFound
        """
        values = {}
        if name:
            values["name"] = name
        if due_date is not None:
            values["due_date"] = due_date
        if amount is not None:
            values["amount_cents"] = to_cents(parse_amount(amount))
        if notes is not None:
            values["notes"] = notes

        def work() -> Bill:
            bill = self._get(owner_id, bill_id)
            ensure_open(bill)
            if "amount_cents" in values:
                ensure_amount_adjustable(bill)
            if vendor_id is not None:
                if self.vendors.get(owner_id, vendor_id, active_only=True) is None:
                    raise VendorNotFound(f"Vendor {vendor_id} not found or inactive")
                values["vendor_id"] = vendor_id
            if values and not self.bills.update_open(bill_id, values):
                self._raise_lost_race(owner_id, bill_id)
            return self._get(owner_id, bill_id)

        bill = run_in_transaction(self.db, "update_bill", work)
        log_operation(logger, "bill_updated", owner_id, bill_id=bill_id)
        return bill

    def pay(
        self,
        owner_id: str,
        bill_id: uuid.UUID,
        payment_method: PaymentMethod,
        bank_account_id: uuid.UUID,
        interest: Any = None,
        card_id: uuid.UUID | None = None,
    ) -> Bill:
        """
        Pay a bill from a bank account.

        Flow (one transaction):
        1. Check the bill is open and the account/card usable
        2. Compare-and-swap the stored status pending → paid
        3. Post one outflow of amount + interest on the account

        Two concurrent payments of one bill: exactly one wins the swap, the
        other fails with AlreadyPaid and posts nothing.

        Raises:
            BillNotFound, AlreadyPaid, AlreadyCancelled, BankAccountNotFound,
            CardNotFound, InvalidAmount, InterestNotApplicable
        """
        today = self.clock()

        def work() -> Bill:
            bill = self._get(owner_id, bill_id)
            ensure_open(bill)
            extra = validate_interest(bill, interest, today, allow_on_pending=settings.allow_interest_on_pending)

            if self.accounts.get(owner_id, bank_account_id, active_only=True) is None:
                raise BankAccountNotFound(f"Bank account {bank_account_id} not found or inactive")
            if card_id is not None and self.cards.get(owner_id, card_id, active_only=True) is None:
                raise CardNotFound(f"Card {card_id} not found")

            entry_id = uuid.uuid4()
            paid = self.bills.mark_paid(
                bill.id,
                paid_date=today,
                payment_method=payment_method,
                bank_account_id=bank_account_id,
                interest=extra,
                payment_entry_id=entry_id,
                card_id=card_id,
            )
            if not paid:
                self._raise_lost_race(owner_id, bill_id)

            memo = f"Payment: {bill.name}" + (f" (interest: {extra})" if extra > 0 else "")
            self.ledger.post_entry(
                owner_id,
                bank_account_id,
                EntryKind.OUTFLOW,
                bill.amount + extra,
                today,
                memo,
                origin=EntryOrigin.BILL_PAYMENT,
                entry_id=entry_id,
                bill_id=bill.id,
                card_id=card_id,
                payment_method=payment_method,
            )
            return self._get(owner_id, bill_id)

        try:
            bill = run_in_transaction(self.db, "pay_bill", work)
        except (AlreadyPaid, AlreadyCancelled):
            record_payment(False)
            raise

        record_payment(True)
        ledger_post_counter.labels(kind=EntryKind.OUTFLOW.value).inc()
        log_operation(
            logger,
            "bill_paid",
            owner_id,
            bill_id=bill_id,
            account_id=bank_account_id,
            entry_id=bill.payment_entry_id,
            amount=bill.amount + bill.interest,
        )
        return bill

    def reverse_payment(self, owner_id: str, bill_id: uuid.UUID) -> Bill:
        """
        Undo a payment: reverse its ledger entry and reopen the bill.

        This is the only way to reverse a ledger entry posted by a payment.

        Raises:
            BillNotFound, NotPaid
        """

        def work() -> Bill:
            bill = self._get(owner_id, bill_id)
            ensure_paid(bill)
            if not self.bills.clear_payment(bill.id):
                ensure_paid(self._get(owner_id, bill_id))

            entry = self.entries.get(owner_id, bill.payment_entry_id) if bill.payment_entry_id else None
            if entry is not None and not entry.reversed:
                self.ledger.reverse_entry(owner_id, entry)
            return self._get(owner_id, bill_id)

        bill = run_in_transaction(self.db, "reverse_payment", work)
        ledger_reversal_counter.inc()
        log_operation(logger, "payment_reversed", owner_id, bill_id=bill_id)
        return bill

    def cancel(self, owner_id: str, bill_id: uuid.UUID) -> Bill:
        """
        Cancel an open bill; no ledger effect.

        Raises:
            BillNotFound, AlreadyPaid, AlreadyCancelled
        """

        def work() -> Bill:
            ensure_open(self._get(owner_id, bill_id))
            if not self.bills.cancel(bill_id):
                self._raise_lost_race(owner_id, bill_id)
            return self._get(owner_id, bill_id)

        bill = run_in_transaction(self.db, "cancel_bill", work)
        bill_cancellation_counter.labels(source="cancel").inc()
        log_operation(logger, "bill_cancelled", owner_id, bill_id=bill_id)
        return bill

    def delete(self, owner_id: str, bill_id: uuid.UUID) -> DeleteOutcome:
        """
        Delete a bill, which always means cancelling it.

        Sibling installments are left alone; the outcome reports how many of
        them are still open so the caller can offer to cancel them too.
        Deleting an already cancelled bill changes nothing.

        Raises:
            BillNotFound, AlreadyPaid
        """
        today = self.clock()

        def work() -> DeleteOutcome:
            bill = self._get(owner_id, bill_id)
            if bill.status == BillStatus.PAID:
                raise AlreadyPaid(f"Bill {bill_id} is paid; reverse the payment instead")

            deleted = False
            if bill.status != BillStatus.CANCELLED:
                if not self.bills.cancel(bill.id):
                    self._raise_lost_race(owner_id, bill_id)
                deleted = True

            remaining = []
            if bill.plan_id is not None:
                remaining = open_siblings(self.bills.plan(owner_id, bill.plan_id), today, exclude_id=bill.id)

            return DeleteOutcome(
                deleted=deleted,
                has_remaining_installments=len(remaining) > 0,
                remaining_count=len(remaining),
            )

        outcome = run_in_transaction(self.db, "delete_bill", work)
        if outcome.deleted:
            bill_cancellation_counter.labels(source="delete").inc()
        log_operation(logger, "bill_deleted", owner_id, bill_id=bill_id, remaining=outcome.remaining_count)
        return outcome

    def cancel_all_remaining(self, owner_id: str, bill_id: uuid.UUID) -> int:
        """
        Cancel every open installment of the bill's plan in one statement.

        Paid and cancelled installments are untouched; a payment committed
        first simply drops out of the set. Calling again returns 0.

        Raises:
            BillNotFound
        """

        def work() -> int:
            bill = self._get(owner_id, bill_id)
            if bill.plan_id is None:
                return 1 if bill.status == BillStatus.PENDING and self.bills.cancel(bill.id) else 0
            return self.bills.cancel_open_in_plan(owner_id, bill.plan_id)

        cancelled = run_in_transaction(self.db, "cancel_all_remaining", work)
        if cancelled:
            bill_cancellation_counter.labels(source="cancel_remaining").inc(cancelled)
        log_operation(logger, "remaining_cancelled", owner_id, bill_id=bill_id, count=cancelled)
        return cancelled

    def reamortize_remaining(self, owner_id: str, bill_id: uuid.UUID, amount: Any) -> int:
        """
        Set a new per-installment amount on every open installment of a plan.

        Only same-amount-remaining plans (and standalone bills) can be
        re-amortized; paid and cancelled installments keep their amount.

        Raises:
            BillNotFound, InvalidAmount, PlanAmountLocked
        """
        value = parse_amount(amount)

        def work() -> int:
            bill = self._get(owner_id, bill_id)
            ensure_amount_adjustable(bill)
            if bill.plan_id is None:
                ensure_open(bill)
                return 1 if self.bills.update_open(bill.id, {"amount_cents": to_cents(value)}) else 0
            return self.bills.reamortize_open_in_plan(owner_id, bill.plan_id, value)

        updated = run_in_transaction(self.db, "reamortize_remaining", work)
        log_operation(logger, "remaining_reamortized", owner_id, bill_id=bill_id, count=updated, amount=value)
        return updated

    def status_of(self, bill: Bill) -> BillStatus:
        """Effective status (overdue derived) as of the service clock"""
        return effective_status(bill, self.clock())

"""Unit tests for the bill state rules"""

import uuid
import pytest
from datetime import date
from decimal import Decimal
from contas_gateway.domain.bills import (
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
    InterestNotApplicable,
    InvalidAmount,
    NotPaid,
    PlanAmountLocked,
)
from contas_gateway.domain.models import Bill, BillStatus, InstallmentMode

TODAY = date(2025, 3, 15)


def make_bill(due_date=date(2025, 3, 20), status=BillStatus.PENDING):
    return Bill(
        id=uuid.uuid4(),
        owner_id="user_1",
        name="Internet",
        vendor_id=uuid.uuid4(),
        due_date=due_date,
        amount=Decimal("99.90"),
        status=status,
    )


def test_pending_before_due_date():
    assert effective_status(make_bill(due_date=TODAY), TODAY) == BillStatus.PENDING


def test_pending_past_due_date_is_overdue():
    assert effective_status(make_bill(due_date=date(2025, 3, 14)), TODAY) == BillStatus.OVERDUE


@pytest.mark.parametrize("status", [BillStatus.PAID, BillStatus.CANCELLED])
def test_terminal_statuses_never_become_overdue(status):
    bill = make_bill(due_date=date(2024, 1, 1), status=status)
    assert effective_status(bill, TODAY) == status


def test_ensure_open_rejects_terminal_statuses():
    with pytest.raises(AlreadyPaid):
        ensure_open(make_bill(status=BillStatus.PAID))
    with pytest.raises(AlreadyCancelled):
        ensure_open(make_bill(status=BillStatus.CANCELLED))
    ensure_open(make_bill(due_date=date(2025, 1, 1)))


def test_ensure_paid():
    with pytest.raises(NotPaid):
        ensure_paid(make_bill())
    ensure_paid(make_bill(status=BillStatus.PAID))


def test_interest_on_overdue_bill():
    bill = make_bill(due_date=date(2025, 3, 1))
    assert validate_interest(bill, "5.25", TODAY) == Decimal("5.25")


def test_interest_on_pending_bill_rejected():
    with pytest.raises(InterestNotApplicable):
        validate_interest(make_bill(), "5.00", TODAY)


def test_interest_on_pending_bill_allowed_when_configured():
    assert validate_interest(make_bill(), "5.00", TODAY, allow_on_pending=True) == Decimal("5.00")


def test_zero_or_missing_interest():
    assert validate_interest(make_bill(), None, TODAY) == Decimal("0.00")
    assert validate_interest(make_bill(), 0, TODAY) == Decimal("0.00")


def test_negative_interest_rejected():
    with pytest.raises(InvalidAmount):
        validate_interest(make_bill(due_date=date(2025, 1, 1)), "-1.00", TODAY)


def test_open_siblings_excludes_terminal_and_self():
    current = make_bill()
    bills = [
        current,
        make_bill(status=BillStatus.PAID),
        make_bill(status=BillStatus.CANCELLED),
        make_bill(due_date=date(2025, 2, 1)),
        make_bill(due_date=date(2025, 4, 20)),
    ]

    assert len(open_siblings(bills, TODAY, exclude_id=current.id)) == 2


@pytest.mark.parametrize("mode", [InstallmentMode.SPLIT, InstallmentMode.MANUAL, None])
def test_fixed_total_plan_amounts_are_locked(mode):
    bill = make_bill()
    bill.plan_id = uuid.uuid4()
    bill.installment_mode = mode

    with pytest.raises(PlanAmountLocked):
        ensure_amount_adjustable(bill)


def test_same_amount_plans_and_standalone_bills_are_adjustable():
    standalone = make_bill()
    same_amount = make_bill()
    same_amount.plan_id = uuid.uuid4()
    same_amount.installment_mode = InstallmentMode.SAME_AMOUNT

    ensure_amount_adjustable(standalone)
    ensure_amount_adjustable(same_amount)

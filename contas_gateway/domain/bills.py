"""Bill state machine rules

Stored statuses are pending, paid and cancelled. Overdue is derived when a
pending bill's due date has passed, so every read sees the same status
without a background sweep.
"""

from datetime import date
from decimal import Decimal
from typing import Iterable

from contas_gateway.domain.exceptions import (
    AlreadyCancelled,
    AlreadyPaid,
    InterestNotApplicable,
    NotPaid,
    PlanAmountLocked,
)
from contas_gateway.domain.models import Bill, BillStatus, InstallmentMode
from contas_gateway.domain.money import parse_amount

OPEN_STATUSES = (BillStatus.PENDING, BillStatus.OVERDUE)


def effective_status(bill: Bill, today: date) -> BillStatus:
    if bill.status == BillStatus.PENDING and bill.due_date < today:
        return BillStatus.OVERDUE
    return bill.status


def is_open(bill: Bill, today: date) -> bool:
    return effective_status(bill, today) in OPEN_STATUSES


def ensure_open(bill: Bill) -> None:
    """Reject any transition out of a terminal status"""
    if bill.status == BillStatus.PAID:
        raise AlreadyPaid(f"Bill {bill.id} is already paid")
    if bill.status == BillStatus.CANCELLED:
        raise AlreadyCancelled(f"Bill {bill.id} is cancelled")


def ensure_paid(bill: Bill) -> None:
    if bill.status != BillStatus.PAID:
        raise NotPaid(f"Bill {bill.id} has no active payment")


def ensure_amount_adjustable(bill: Bill) -> None:
    """
    Reject amount changes on installments whose plan has a fixed total.

    Split and manual plans must keep summing to the total they were created
    with; only same-amount-remaining plans and standalone bills may change.
    """
    if bill.plan_id is not None and bill.installment_mode != InstallmentMode.SAME_AMOUNT:
        raise PlanAmountLocked(f"Bill {bill.id} belongs to a plan with a fixed total; its amount cannot change")


def validate_interest(
    bill: Bill,
    interest,
    today: date,
    allow_on_pending: bool = False,
) -> Decimal:
    """
    Validate the interest/penalty paid on top of a bill.

    Interest only applies to overdue bills unless ``allow_on_pending``.

    Raises:
        InvalidAmount: negative or malformed interest
        InterestNotApplicable: interest on a bill that is not yet overdue
    """
    if interest is None:
        return Decimal("0.00")

    value = parse_amount(interest, allow_zero=True)
    if value > 0 and not allow_on_pending and effective_status(bill, today) != BillStatus.OVERDUE:
        raise InterestNotApplicable(f"Bill {bill.id} is not overdue; interest is not applicable")
    return value


def open_siblings(bills: Iterable[Bill], today: date, exclude_id=None) -> list[Bill]:
    """Installments of a plan still awaiting payment"""
    return [b for b in bills if b.id != exclude_id and is_open(b, today)]

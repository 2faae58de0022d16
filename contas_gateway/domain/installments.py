"""Installment plan generation for bills"""

from datetime import date
from decimal import Decimal
from typing import Any, List, Sequence, Tuple

from contas_gateway.domain.exceptions import (
    InstallmentMismatch,
    InvalidAmount,
    InvalidInstallmentCount,
)
from contas_gateway.domain.models import Installment, InstallmentMode
from contas_gateway.domain.money import CENT, parse_amount, truncate_to_cents
from contas_gateway.utils.date_utils import add_months


def generate_installment_plan(
    amount: Any,
    installment_count: int,
    start_date: date,
    mode: InstallmentMode = InstallmentMode.SPLIT,
    manual_installments: Sequence[Tuple[Any, date]] | None = None,
    tolerance: Decimal = CENT,
) -> List[Installment]:
    """
    Build the installments of a bill, ordered chronologically.

    Modes:
    - split: ``amount`` is the total; every installment gets the total
      divided by the count truncated to cents and the last one absorbs the
      remainder, so the sum is exact
    - same-amount-remaining: ``amount`` is the per-installment value
    - manual: caller-provided (amount, date) pairs; the count must match and
      the sum must be within ``tolerance * count`` of ``amount``

    Non-manual due dates step one calendar month from ``start_date``.

    Example:
        300.00 / 5 (split) → [60.00, 60.00, 60.00, 60.00, 60.00]
        100.00 / 3 (split) → [33.33, 33.33, 33.34]

    Raises:
        InvalidAmount, InvalidInstallmentCount, InstallmentMismatch
    """
    total = parse_amount(amount)
    if installment_count is None or installment_count < 1:
        raise InvalidInstallmentCount(f"Installment count must be at least 1: {installment_count}")

    if installment_count == 1 and mode != InstallmentMode.MANUAL:
        return [Installment(due_date=start_date, amount=total)]

    if mode == InstallmentMode.MANUAL:
        return _manual_plan(total, installment_count, manual_installments or [], tolerance)

    if mode == InstallmentMode.SAME_AMOUNT:
        per_installment = total
        last_amount = total
    else:
        per_installment = truncate_to_cents(total / installment_count)
        if per_installment <= 0:
            raise InvalidAmount(f"Amount {total} is too small for {installment_count} installments")
        last_amount = total - per_installment * (installment_count - 1)

    try:
        due_dates = [add_months(start_date, i) for i in range(installment_count)]
    except ValueError:
        raise InvalidInstallmentCount(f"{installment_count} monthly installments from {start_date} end past year 9999")

    installments = []
    for i, due_date in enumerate(due_dates):
        is_last = i == installment_count - 1
        installments.append(
            Installment(
                due_date=due_date,
                amount=last_amount if is_last else per_installment,
            )
        )

    return installments


def _manual_plan(
    total: Decimal,
    installment_count: int,
    manual_installments: Sequence[Tuple[Any, date]],
    tolerance: Decimal,
) -> List[Installment]:
    if len(manual_installments) != installment_count:
        raise InstallmentMismatch(
            f"Expected {installment_count} installments, got {len(manual_installments)}"
        )

    installments = [
        Installment(due_date=due_date, amount=parse_amount(value))
        for value, due_date in manual_installments
    ]

    provided = sum((inst.amount for inst in installments), Decimal("0.00"))
    if abs(provided - total) > tolerance * installment_count:
        raise InstallmentMismatch(f"Installments sum to {provided}, expected {total}")

    # Stable sort keeps caller order for installments sharing a date
    return sorted(installments, key=lambda inst: inst.due_date)

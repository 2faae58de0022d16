"""Unit tests for installment plan generation"""

import pytest
from datetime import date
from decimal import Decimal
from contas_gateway.domain.exceptions import InstallmentMismatch, InvalidAmount, InvalidInstallmentCount
from contas_gateway.domain.installments import generate_installment_plan
from contas_gateway.domain.models import InstallmentMode


def test_generate_installment_plan_equal_split():
    """Test plan with evenly divisible amount"""
    installments = generate_installment_plan(Decimal("300.00"), 5, date(2025, 1, 10))

    assert len(installments) == 5
    assert all(inst.amount == Decimal("60.00") for inst in installments)
    assert sum(inst.amount for inst in installments) == Decimal("300.00")


def test_generate_installment_plan_rounding():
    """Test last installment absorbs remainder"""
    installments = generate_installment_plan("100.00", 3, date(2025, 1, 10))

    assert [inst.amount for inst in installments] == [Decimal("33.33"), Decimal("33.33"), Decimal("33.34")]
    assert sum(inst.amount for inst in installments) == Decimal("100.00")


def test_generate_installment_plan_dates():
    """Test monthly due dates starting at the first due date"""
    installments = generate_installment_plan(Decimal("40.00"), 4, date(2025, 1, 10))

    assert [inst.due_date for inst in installments] == [
        date(2025, 1, 10),
        date(2025, 2, 10),
        date(2025, 3, 10),
        date(2025, 4, 10),
    ]


def test_generate_installment_plan_clamps_month_end():
    """Test day 31 falls back to the last day of shorter months"""
    installments = generate_installment_plan(Decimal("90.00"), 3, date(2024, 1, 31))

    assert [inst.due_date for inst in installments] == [date(2024, 1, 31), date(2024, 2, 29), date(2024, 3, 31)]


def test_generate_installment_plan_single():
    installments = generate_installment_plan(Decimal("150.00"), 1, date(2025, 5, 1))

    assert len(installments) == 1
    assert installments[0].amount == Decimal("150.00")
    assert installments[0].due_date == date(2025, 5, 1)


def test_same_amount_remaining_mode():
    """Test every installment carries the given amount"""
    installments = generate_installment_plan(
        Decimal("59.90"), 3, date(2025, 1, 5), mode=InstallmentMode.SAME_AMOUNT
    )

    assert [inst.amount for inst in installments] == [Decimal("59.90")] * 3


def test_manual_mode_within_tolerance():
    installments = generate_installment_plan(
        Decimal("100.00"),
        2,
        date(2025, 1, 1),
        mode=InstallmentMode.MANUAL,
        manual_installments=[("50.01", date(2025, 2, 1)), ("50.00", date(2025, 1, 1))],
    )

    # Sorted chronologically regardless of input order
    assert [inst.due_date for inst in installments] == [date(2025, 1, 1), date(2025, 2, 1)]
    assert [inst.amount for inst in installments] == [Decimal("50.00"), Decimal("50.01")]


def test_manual_mode_sum_mismatch():
    with pytest.raises(InstallmentMismatch):
        generate_installment_plan(
            Decimal("100.00"),
            2,
            date(2025, 1, 1),
            mode=InstallmentMode.MANUAL,
            manual_installments=[("40.00", date(2025, 1, 1)), ("40.00", date(2025, 2, 1))],
        )


def test_manual_mode_count_mismatch():
    with pytest.raises(InstallmentMismatch):
        generate_installment_plan(
            Decimal("100.00"),
            3,
            date(2025, 1, 1),
            mode=InstallmentMode.MANUAL,
            manual_installments=[("50.00", date(2025, 1, 1)), ("50.00", date(2025, 2, 1))],
        )


def test_generate_installment_plan_invalid_count():
    with pytest.raises(InvalidInstallmentCount):
        generate_installment_plan(Decimal("100.00"), 0, date(2025, 1, 1))


@pytest.mark.parametrize("amount", [0, "-10.00", "abc", "10.001"])
def test_generate_installment_plan_invalid_amount(amount):
    with pytest.raises(InvalidAmount):
        generate_installment_plan(amount, 2, date(2025, 1, 1))


def test_split_too_small_for_count():
    """Test a total smaller than one cent per installment is rejected"""
    with pytest.raises(InvalidAmount):
        generate_installment_plan(Decimal("0.03"), 5, date(2025, 1, 1))


def test_plan_running_past_last_supported_year():
    with pytest.raises(InvalidInstallmentCount):
        generate_installment_plan(Decimal("300.00"), 3, date(9999, 11, 10))

"""Unit tests for balance computation and reversal rules"""

import uuid
import pytest
from datetime import date
from decimal import Decimal
from contas_gateway.domain.exceptions import AlreadyReversed, NotReversible
from contas_gateway.domain.ledger import compute_balance, ensure_reversible
from contas_gateway.domain.models import EntryKind, EntryOrigin, LedgerEntry

ACCOUNT = uuid.uuid4()


def entry(kind, amount, day, origin=EntryOrigin.MANUAL, reversed=False):
    return LedgerEntry(
        id=uuid.uuid4(),
        owner_id="user_1",
        bank_account_id=ACCOUNT,
        kind=kind,
        amount=Decimal(amount),
        entry_date=day,
        memo="test",
        origin=origin,
        reversed=reversed,
    )


def test_balance_sums_inflows_minus_outflows():
    entries = [
        entry(EntryKind.OPENING_BALANCE, "1000.00", date(2025, 1, 1), origin=EntryOrigin.OPENING_BALANCE),
        entry(EntryKind.INFLOW, "250.00", date(2025, 1, 5)),
        entry(EntryKind.OUTFLOW, "100.50", date(2025, 1, 10)),
    ]

    assert compute_balance(entries) == Decimal("1149.50")


def test_balance_excludes_reversed_and_reversal_records():
    entries = [
        entry(EntryKind.INFLOW, "500.00", date(2025, 1, 1)),
        entry(EntryKind.OUTFLOW, "80.00", date(2025, 1, 2), reversed=True),
        entry(EntryKind.OUTFLOW, "80.00", date(2025, 1, 3), origin=EntryOrigin.REVERSAL),
    ]

    assert compute_balance(entries) == Decimal("500.00")


def test_balance_as_of_is_inclusive():
    entries = [
        entry(EntryKind.OPENING_BALANCE, "1000.00", date(2025, 1, 1), origin=EntryOrigin.OPENING_BALANCE),
        entry(EntryKind.OUTFLOW, "200.00", date(2025, 2, 1)),
        entry(EntryKind.OUTFLOW, "300.00", date(2025, 2, 2)),
    ]

    assert compute_balance(entries, as_of=date(2024, 12, 31)) == Decimal("0.00")
    assert compute_balance(entries, as_of=date(2025, 1, 31)) == Decimal("1000.00")
    assert compute_balance(entries, as_of=date(2025, 2, 1)) == Decimal("800.00")


def test_manual_entry_is_reversible():
    ensure_reversible(entry(EntryKind.OUTFLOW, "10.00", date(2025, 1, 1)))


def test_reversed_entry_raises_already_reversed():
    with pytest.raises(AlreadyReversed):
        ensure_reversible(entry(EntryKind.OUTFLOW, "10.00", date(2025, 1, 1), reversed=True))


@pytest.mark.parametrize("origin", [EntryOrigin.OPENING_BALANCE, EntryOrigin.REVERSAL])
def test_protected_origins_are_not_reversible(origin):
    with pytest.raises(NotReversible):
        ensure_reversible(entry(EntryKind.INFLOW, "10.00", date(2025, 1, 1), origin=origin))


def test_active_payment_entry_is_not_reversible():
    payment = entry(EntryKind.OUTFLOW, "60.00", date(2025, 1, 1), origin=EntryOrigin.BILL_PAYMENT)

    with pytest.raises(NotReversible):
        ensure_reversible(payment, payment_active=True)

    # Once the bill no longer references it, the generic path is allowed
    ensure_reversible(payment, payment_active=False)


def test_opening_balance_kind_is_locked_only_through_its_origin():
    generic = entry(EntryKind.OPENING_BALANCE, "100.00", date(2025, 1, 1), origin=EntryOrigin.MANUAL)
    dedicated = entry(EntryKind.OPENING_BALANCE, "100.00", date(2025, 1, 1), origin=EntryOrigin.OPENING_BALANCE)

    ensure_reversible(generic)
    with pytest.raises(NotReversible):
        ensure_reversible(dedicated)

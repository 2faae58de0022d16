"""Ledger balance computation and reversal rules"""

from datetime import date
from decimal import Decimal
from typing import Iterable, Optional

from contas_gateway.domain.exceptions import AlreadyReversed, NotReversible
from contas_gateway.domain.models import EntryKind, EntryOrigin, LedgerEntry, Transfer

CREDIT_KINDS = (EntryKind.INFLOW, EntryKind.OPENING_BALANCE)


def signed_amount(entry: LedgerEntry) -> Decimal:
    return entry.amount if entry.kind in CREDIT_KINDS else -entry.amount


def compute_balance(entries: Iterable[LedgerEntry], as_of: Optional[date] = None) -> Decimal:
    """
    Sum of counting inflow/opening-balance entries minus counting outflows.

    Reversed entries and reversal records never count. With ``as_of`` only
    entries dated on or before it are included.
    """
    balance = Decimal("0.00")
    for entry in entries:
        if not entry.counts:
            continue
        if as_of is not None and entry.entry_date > as_of:
            continue
        balance += signed_amount(entry)
    return balance


def ensure_reversible(entry: LedgerEntry, payment_active: bool = False) -> None:
    """
    Check an entry may go through the generic reversal path.

    Args:
        entry: Entry to reverse
        payment_active: The entry settles a bill that is still paid

    Raises:
        AlreadyReversed, NotReversible
    """
    if entry.reversed:
        raise AlreadyReversed(f"Entry {entry.id} is already reversed")
    if entry.origin == EntryOrigin.REVERSAL:
        raise NotReversible("Reversal records cannot be reversed")
    # Locked by origin, not kind: only the dedicated opening-balance path is
    # final. An opening_balance-kind entry posted generically stays reversible
    # so a mistyped one can be corrected.
    if entry.origin == EntryOrigin.OPENING_BALANCE:
        raise NotReversible("Opening balance entries cannot be reversed")
    if entry.origin == EntryOrigin.BILL_PAYMENT and payment_active:
        raise NotReversible("Entry belongs to an active bill payment; reverse the payment instead")


def transfer_from_legs(outflow: LedgerEntry, inflow: LedgerEntry) -> Transfer:
    return Transfer(
        id=outflow.transfer_id,
        owner_id=outflow.owner_id,
        from_account_id=outflow.bank_account_id,
        to_account_id=inflow.bank_account_id,
        amount=outflow.amount,
        entry_date=outflow.entry_date,
        memo=outflow.memo,
        outflow_entry_id=outflow.id,
        inflow_entry_id=inflow.id,
        reversed=outflow.reversed and inflow.reversed,
    )

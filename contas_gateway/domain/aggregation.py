"""Aggregation engine - dashboard reports computed from bills and ledger entries

Everything here is a pure function of its inputs: the caller hands over a
consistent snapshot of one owner's data and gets report structures back.
Sums use Decimal; percentages are rounded only after summation.
"""

import uuid
from collections import Counter, defaultdict
from datetime import date
from decimal import Decimal
from typing import Collection, Dict, Iterable, List, Optional, Sequence, Set

from contas_gateway.domain.bills import OPEN_STATUSES, effective_status
from contas_gateway.domain.ledger import compute_balance
from contas_gateway.domain.models import (
    BalancePoint,
    BalanceSeries,
    BankAccount,
    Bill,
    BillStatus,
    BreakdownItem,
    Card,
    CardKind,
    CardUsage,
    CountValue,
    DashboardReport,
    EntryKind,
    EntryOrigin,
    FinancialSummary,
    LedgerEntry,
    MonthTotal,
    PaymentMethodUsage,
    Vendor,
)
from contas_gateway.domain.money import ZERO, percentage
from contas_gateway.utils.date_utils import month_bounds, next_month, trailing_months

UNCATEGORIZED = "Uncategorized"
UNSPECIFIED_METHOD = "unspecified"


def report_cache_key(owner_id: str, year: int, month: int, account_ids: Optional[Collection[uuid.UUID]] = None) -> str:
    """Key under which a caching layer may store a dashboard report"""
    accounts = ",".join(sorted(str(a) for a in account_ids)) if account_ids else "all"
    return f"{owner_id}:{year:04d}-{month:02d}:{accounts}"


def _in_range(day: Optional[date], start: date, end: date) -> bool:
    return day is not None and start <= day <= end


def _spend(bill: Bill) -> Decimal:
    return bill.amount + (bill.interest or ZERO)


def paid_in_period(bills: Iterable[Bill], start: date, end: date) -> List[Bill]:
    return [b for b in bills if b.status == BillStatus.PAID and _in_range(b.paid_date, start, end)]


def manual_outflows(entries: Iterable[LedgerEntry], start: date, end: date) -> List[LedgerEntry]:
    """Outflows recorded directly on the ledger (bill payments are attributed via the bill)"""
    return [
        e for e in entries
        if e.counts
        and e.kind == EntryKind.OUTFLOW
        and e.origin == EntryOrigin.MANUAL
        and _in_range(e.entry_date, start, end)
    ]


def internal_transfer_ids(entries: Iterable[LedgerEntry]) -> Set[uuid.UUID]:
    """Transfers with both legs among ``entries``; they move money without changing the total"""
    legs = Counter(e.transfer_id for e in entries if e.origin == EntryOrigin.TRANSFER and e.transfer_id is not None)
    return {transfer_id for transfer_id, count in legs.items() if count == 2}


def build_summary(
    bills: Sequence[Bill],
    entries: Sequence[LedgerEntry],
    year: int,
    month: int,
    today: date,
) -> FinancialSummary:
    start, end = month_bounds(year, month)
    # December 9999 has no following month
    next_start, next_end = month_bounds(*next_month(year, month)) if end < date.max else (date.max, date.min)

    pending, paid, overdue = CountValue(), CountValue(), CountValue()
    due_next_month, open_total = CountValue(), CountValue()
    paid_interest = ZERO

    for bill in bills:
        status = effective_status(bill, today)
        if status in OPEN_STATUSES:
            open_total.add(bill.amount)
        if status == BillStatus.PENDING and _in_range(bill.due_date, start, end):
            pending.add(bill.amount)
        elif status == BillStatus.OVERDUE and _in_range(bill.due_date, start, end):
            overdue.add(bill.amount)
        elif status == BillStatus.PAID and _in_range(bill.paid_date, start, end):
            paid.add(bill.amount)
            paid_interest += bill.interest or ZERO
        if status == BillStatus.PENDING and _in_range(bill.due_date, next_start, next_end):
            due_next_month.add(bill.amount)

    internal = internal_transfer_ids(entries)
    inflow, outflow = ZERO, ZERO
    for entry in entries:
        if not entry.counts or not _in_range(entry.entry_date, start, end):
            continue
        if entry.transfer_id in internal:
            continue
        if entry.kind == EntryKind.OUTFLOW:
            outflow += entry.amount
        else:
            inflow += entry.amount

    return FinancialSummary(
        pending=pending,
        paid=paid,
        overdue=overdue,
        due_next_month=due_next_month,
        open_total=open_total,
        paid_interest=paid_interest,
        inflow=inflow,
        outflow=outflow,
        net=inflow - outflow,
    )


def build_balance_evolution(
    accounts: Sequence[BankAccount],
    entries: Sequence[LedgerEntry],
    year: int,
    month: int,
    window_months: int,
) -> List[BalanceSeries]:
    """
    Month-end balances of every active account over a trailing window.

    All series share the same sample dates. A month without activity carries
    the previous balance forward; before the first entry the balance is zero.
    """
    sample_dates = [month_bounds(y, m)[1] for y, m in trailing_months(year, month, window_months)]

    by_account: Dict[uuid.UUID, List[LedgerEntry]] = defaultdict(list)
    for entry in entries:
        by_account[entry.bank_account_id].append(entry)

    series = []
    for account in accounts:
        if not account.active:
            continue
        account_entries = by_account.get(account.id, [])
        points = [
            BalancePoint(as_of=sample, balance=compute_balance(account_entries, as_of=sample))
            for sample in sample_dates
        ]
        series.append(BalanceSeries(bank_account_id=account.id, name=account.name, points=points))

    return series


def _breakdown(totals: Dict[str, Decimal], counts: Dict[str, int]) -> List[BreakdownItem]:
    grand_total = sum(totals.values(), ZERO)
    items = [
        BreakdownItem(label=label, value=value, percent=percentage(value, grand_total), count=counts[label])
        for label, value in totals.items()
        if value > 0
    ]
    return sorted(items, key=lambda item: (-item.value, item.label))


def build_category_breakdown(paid_bills: Sequence[Bill], vendors: Dict[uuid.UUID, Vendor]) -> List[BreakdownItem]:
    totals: Dict[str, Decimal] = defaultdict(lambda: ZERO)
    counts: Dict[str, int] = defaultdict(int)
    for bill in paid_bills:
        vendor = vendors.get(bill.vendor_id)
        label = vendor.category if vendor and vendor.category else UNCATEGORIZED
        totals[label] += _spend(bill)
        counts[label] += 1
    return _breakdown(totals, counts)


def build_vendor_breakdown(paid_bills: Sequence[Bill], vendors: Dict[uuid.UUID, Vendor]) -> List[BreakdownItem]:
    totals: Dict[str, Decimal] = defaultdict(lambda: ZERO)
    counts: Dict[str, int] = defaultdict(int)
    for bill in paid_bills:
        vendor = vendors.get(bill.vendor_id)
        label = vendor.name if vendor else str(bill.vendor_id)
        totals[label] += _spend(bill)
        counts[label] += 1
    return _breakdown(totals, counts)


def build_payment_method_usage(
    paid_bills: Sequence[Bill],
    outflows: Sequence[LedgerEntry],
) -> List[PaymentMethodUsage]:
    bill_totals: Dict[str, Decimal] = defaultdict(lambda: ZERO)
    ledger_totals: Dict[str, Decimal] = defaultdict(lambda: ZERO)

    for bill in paid_bills:
        method = bill.payment_method.value if bill.payment_method else UNSPECIFIED_METHOD
        bill_totals[method] += _spend(bill)
    for entry in outflows:
        method = entry.payment_method.value if entry.payment_method else UNSPECIFIED_METHOD
        ledger_totals[method] += entry.amount

    grand_total = sum(bill_totals.values(), ZERO) + sum(ledger_totals.values(), ZERO)
    usages = []
    for method in set(bill_totals) | set(ledger_totals):
        total_general = bill_totals[method] + ledger_totals[method]
        if total_general <= 0:
            continue
        usages.append(
            PaymentMethodUsage(
                payment_method=method,
                total_bills=bill_totals[method],
                total_ledger=ledger_totals[method],
                total_general=total_general,
                percent=percentage(total_general, grand_total),
            )
        )
    return sorted(usages, key=lambda u: (-u.total_general, u.payment_method))


def build_card_usage(
    cards: Sequence[Card],
    paid_bills: Sequence[Bill],
    outflows: Sequence[LedgerEntry],
) -> List[CardUsage]:
    """Per-card totals; utilization only for credit cards with a limit"""
    usages = []
    for card in cards:
        if not card.active:
            continue
        card_bills = [b for b in paid_bills if b.card_id == card.id]
        card_entries = [e for e in outflows if e.card_id == card.id]
        total_bills = sum((_spend(b) for b in card_bills), ZERO)
        total_ledger = sum((e.amount for e in card_entries), ZERO)
        total_general = total_bills + total_ledger
        if total_general <= 0:
            continue

        has_limit = card.kind == CardKind.CREDIT and card.credit_limit is not None and card.credit_limit > 0
        usages.append(
            CardUsage(
                card_id=card.id,
                name=card.name,
                kind=card.kind,
                bank=card.bank,
                credit_limit=card.credit_limit,
                total_bills=total_bills,
                total_ledger=total_ledger,
                total_general=total_general,
                transaction_count=len(card_bills) + len(card_entries),
                utilization_percent=percentage(total_general, card.credit_limit) if has_limit else None,
                available=card.credit_limit - total_general if has_limit else None,
            )
        )
    return sorted(usages, key=lambda u: -u.total_general)


def build_monthly_comparison(bills: Sequence[Bill], year: int, month: int, window_months: int) -> List[MonthTotal]:
    comparison = []
    for y, m in trailing_months(year, month, window_months):
        start, end = month_bounds(y, m)
        total = sum((_spend(b) for b in paid_in_period(bills, start, end)), ZERO)
        comparison.append(MonthTotal(year=y, month=m, total=total))
    return comparison


def build_dashboard(
    owner_id: str,
    year: int,
    month: int,
    today: date,
    bills: Sequence[Bill],
    entries: Sequence[LedgerEntry],
    accounts: Sequence[BankAccount],
    vendors: Sequence[Vendor],
    cards: Sequence[Card],
    window_months: int = 6,
    account_ids: Optional[Collection[uuid.UUID]] = None,
) -> DashboardReport:
    """
    Main entry point: compute every dashboard structure for one period.

    With ``account_ids`` the ledger figures, balance series and paid-bill
    figures are restricted to those bank accounts; open bills are not tied
    to an account and always count.
    """
    if account_ids:
        selected = set(account_ids)
        accounts = [a for a in accounts if a.id in selected]
        entries = [e for e in entries if e.bank_account_id in selected]
        bills = [b for b in bills if b.status != BillStatus.PAID or b.bank_account_id in selected]

    start, end = month_bounds(year, month)
    paid_bills = paid_in_period(bills, start, end)
    outflows = manual_outflows(entries, start, end)
    vendors_by_id = {v.id: v for v in vendors}

    return DashboardReport(
        owner_id=owner_id,
        year=year,
        month=month,
        summary=build_summary(bills, entries, year, month, today),
        balance_evolution=build_balance_evolution(accounts, entries, year, month, window_months),
        categories=build_category_breakdown(paid_bills, vendors_by_id),
        vendors=build_vendor_breakdown(paid_bills, vendors_by_id),
        payment_methods=build_payment_method_usage(paid_bills, outflows),
        cards=build_card_usage(cards, paid_bills, outflows),
        monthly_comparison=build_monthly_comparison(bills, year, month, window_months),
        cache_key=report_cache_key(owner_id, year, month, account_ids),
    )

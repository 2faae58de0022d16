"""Unit tests for the dashboard aggregation engine"""

import uuid
import pytest
from datetime import date, timedelta
from decimal import Decimal
from contas_gateway.domain.aggregation import build_dashboard, internal_transfer_ids, report_cache_key
from contas_gateway.domain.models import (
    BankAccount,
    Bill,
    BillStatus,
    Card,
    CardKind,
    EntryKind,
    EntryOrigin,
    LedgerEntry,
    PaymentMethod,
    Vendor,
)

OWNER = "user_1"
TODAY = date(2025, 3, 15)
D = Decimal


@pytest.fixture
def snapshot():
    """One owner's data across January-April 2025"""
    account_a = BankAccount(id=uuid.uuid4(), owner_id=OWNER, name="Checking", bank="Nubank", balance=D("1150.00"))
    account_b = BankAccount(id=uuid.uuid4(), owner_id=OWNER, name="Savings", bank="Itau", balance=D("120.00"))
    energy = Vendor(id=uuid.uuid4(), owner_id=OWNER, name="Energy Co", category="Utilities")
    market = Vendor(id=uuid.uuid4(), owner_id=OWNER, name="Market", category="Groceries")
    card = Card(
        id=uuid.uuid4(), owner_id=OWNER, name="Gold", kind=CardKind.CREDIT, bank="Nubank", credit_limit=D("1000.00")
    )

    def bill(name, vendor, due, amount, status=BillStatus.PENDING, **payment):
        return Bill(
            id=uuid.uuid4(),
            owner_id=OWNER,
            name=name,
            vendor_id=vendor.id,
            due_date=due,
            amount=D(amount),
            status=status,
            **payment,
        )

    bills = [
        bill("Power", energy, date(2025, 3, 5), "100.00", BillStatus.PAID, paid_date=date(2025, 3, 5),
             payment_method=PaymentMethod.PIX, bank_account_id=account_a.id),
        bill("Groceries", market, date(2025, 3, 8), "200.00", BillStatus.PAID, paid_date=date(2025, 3, 10),
             payment_method=PaymentMethod.CREDIT_CARD, bank_account_id=account_a.id, card_id=card.id,
             interest=D("10.00")),
        bill("Water", energy, date(2025, 3, 20), "50.00"),
        bill("Gas", energy, date(2025, 3, 1), "30.00"),
        bill("Phone", energy, date(2025, 4, 5), "40.00"),
        bill("Old", energy, date(2025, 3, 2), "70.00", BillStatus.CANCELLED),
        bill("February power", energy, date(2025, 2, 10), "80.00", BillStatus.PAID, paid_date=date(2025, 2, 10),
             payment_method=PaymentMethod.TRANSFER, bank_account_id=account_b.id),
    ]

    def entry(account, kind, amount, day, origin=EntryOrigin.MANUAL, **extra):
        return LedgerEntry(
            id=uuid.uuid4(),
            owner_id=OWNER,
            bank_account_id=account.id,
            kind=kind,
            amount=D(amount),
            entry_date=day,
            memo="",
            origin=origin,
            **extra,
        )

    entries = [
        entry(account_a, EntryKind.OPENING_BALANCE, "1000.00", date(2025, 1, 1), EntryOrigin.OPENING_BALANCE),
        entry(account_a, EntryKind.INFLOW, "500.00", date(2025, 3, 1)),
        entry(account_a, EntryKind.OUTFLOW, "100.00", date(2025, 3, 5), EntryOrigin.BILL_PAYMENT),
        entry(account_a, EntryKind.OUTFLOW, "210.00", date(2025, 3, 10), EntryOrigin.BILL_PAYMENT, card_id=card.id),
        entry(account_a, EntryKind.OUTFLOW, "25.00", date(2025, 3, 11), reversed=True),
        entry(account_a, EntryKind.OUTFLOW, "25.00", date(2025, 3, 11), EntryOrigin.REVERSAL),
        entry(account_a, EntryKind.OUTFLOW, "40.00", date(2025, 3, 12), payment_method=PaymentMethod.PIX),
        entry(account_b, EntryKind.OPENING_BALANCE, "200.00", date(2025, 2, 1), EntryOrigin.OPENING_BALANCE),
        entry(account_b, EntryKind.OUTFLOW, "80.00", date(2025, 2, 10), EntryOrigin.BILL_PAYMENT),
    ]

    return {
        "accounts": [account_a, account_b],
        "vendors": [energy, market],
        "cards": [card],
        "bills": bills,
        "entries": entries,
    }


def dashboard(snapshot, **kwargs):
    return build_dashboard(
        OWNER,
        2025,
        3,
        TODAY,
        bills=snapshot["bills"],
        entries=snapshot["entries"],
        accounts=snapshot["accounts"],
        vendors=snapshot["vendors"],
        cards=snapshot["cards"],
        window_months=3,
        **kwargs,
    )


def test_summary(snapshot):
    summary = dashboard(snapshot).summary

    assert (summary.pending.count, summary.pending.value) == (1, D("50.00"))
    assert (summary.overdue.count, summary.overdue.value) == (1, D("30.00"))
    assert (summary.paid.count, summary.paid.value) == (2, D("300.00"))
    assert (summary.due_next_month.count, summary.due_next_month.value) == (1, D("40.00"))
    assert (summary.open_total.count, summary.open_total.value) == (3, D("120.00"))
    assert summary.paid_interest == D("10.00")
    assert summary.inflow == D("500.00")
    assert summary.outflow == D("350.00")
    assert summary.net == D("150.00")


def test_balance_evolution_month_end_samples(snapshot):
    series = {s.name: s for s in dashboard(snapshot).balance_evolution}

    assert [p.as_of for p in series["Checking"].points] == [date(2025, 1, 31), date(2025, 2, 28), date(2025, 3, 31)]
    assert [p.balance for p in series["Checking"].points] == [D("1000.00"), D("1000.00"), D("1150.00")]
    assert [p.balance for p in series["Savings"].points] == [D("0.00"), D("120.00"), D("120.00")]


def test_balance_evolution_skips_inactive_accounts(snapshot):
    snapshot["accounts"][1].active = False
    series = dashboard(snapshot).balance_evolution

    assert [s.name for s in series] == ["Checking"]


def test_category_breakdown_sums_to_hundred(snapshot):
    categories = dashboard(snapshot).categories

    assert [(c.label, c.value, c.percent, c.count) for c in categories] == [
        ("Groceries", D("210.00"), D("67.74"), 1),
        ("Utilities", D("100.00"), D("32.26"), 1),
    ]
    assert sum(c.percent for c in categories) == D("100.00")


def test_vendor_breakdown_includes_interest(snapshot):
    vendors = dashboard(snapshot).vendors

    assert [(v.label, v.value) for v in vendors] == [("Market", D("210.00")), ("Energy Co", D("100.00"))]


def test_uncategorized_vendor(snapshot):
    snapshot["vendors"][0].category = ""
    labels = [c.label for c in dashboard(snapshot).categories]

    assert "Uncategorized" in labels


def test_payment_method_usage_combines_bills_and_manual_outflows(snapshot):
    usage = {u.payment_method: u for u in dashboard(snapshot).payment_methods}

    assert usage["pix"].total_bills == D("100.00")
    assert usage["pix"].total_ledger == D("40.00")
    assert usage["pix"].total_general == D("140.00")
    assert usage["pix"].percent == D("40.00")
    assert usage["credit_card"].total_general == D("210.00")
    assert usage["credit_card"].percent == D("60.00")
    assert "transfer" not in usage


def test_card_usage_utilization(snapshot):
    cards = dashboard(snapshot).cards

    assert len(cards) == 1
    assert cards[0].total_general == D("210.00")
    assert cards[0].transaction_count == 1
    assert cards[0].utilization_percent == D("21.00")
    assert cards[0].available == D("790.00")


def test_debit_card_has_no_utilization(snapshot):
    snapshot["cards"][0].kind = CardKind.DEBIT
    card = dashboard(snapshot).cards[0]

    assert card.utilization_percent is None
    assert card.available is None


def test_monthly_comparison(snapshot):
    comparison = dashboard(snapshot).monthly_comparison

    assert [(m.year, m.month, m.total) for m in comparison] == [
        (2025, 1, D("0.00")),
        (2025, 2, D("80.00")),
        (2025, 3, D("310.00")),
    ]


def test_account_filter_restricts_ledger_and_paid_bills(snapshot):
    savings = snapshot["accounts"][1]
    report = dashboard(snapshot, account_ids=[savings.id])

    assert report.summary.paid.count == 0
    assert report.summary.inflow == D("0.00")
    assert report.summary.outflow == D("0.00")
    # Open bills are not tied to an account
    assert report.summary.pending.count == 1
    assert [s.name for s in report.balance_evolution] == ["Savings"]
    assert report.categories == []
    assert report.cache_key == f"{OWNER}:2025-03:{savings.id}"


def test_empty_month():
    report = build_dashboard(OWNER, 2025, 3, TODAY, bills=[], entries=[], accounts=[], vendors=[], cards=[])

    assert report.summary.paid.count == 0
    assert report.categories == []
    assert report.payment_methods == []
    assert report.cards == []
    assert len(report.monthly_comparison) == 6


def test_cache_key_is_order_independent():
    a, b = uuid.uuid4(), uuid.uuid4()

    assert report_cache_key(OWNER, 2025, 3) == "user_1:2025-03:all"
    assert report_cache_key(OWNER, 2025, 3, [a, b]) == report_cache_key(OWNER, 2025, 3, [b, a])


def test_last_supported_month():
    report = build_dashboard(OWNER, 9999, 12, TODAY, bills=[], entries=[], accounts=[], vendors=[], cards=[])

    assert report.summary.due_next_month.count == 0
    assert report.cache_key == "user_1:9999-12:all"


def test_internal_transfer_ids_need_both_legs():
    transfer_id = uuid.uuid4()
    source, target = uuid.uuid4(), uuid.uuid4()
    legs = [
        LedgerEntry(
            id=uuid.uuid4(), owner_id=OWNER, bank_account_id=account_id, kind=kind, amount=D("25.00"),
            entry_date=TODAY, memo="move", origin=EntryOrigin.TRANSFER, transfer_id=transfer_id,
        )
        for account_id, kind in ((source, EntryKind.OUTFLOW), (target, EntryKind.INFLOW))
    ]

    assert internal_transfer_ids(legs) == {transfer_id}
    assert internal_transfer_ids(legs[:1]) == set()


def test_report_timestamp_is_utc_aware():
    report = build_dashboard(OWNER, 2025, 3, TODAY, bills=[], entries=[], accounts=[], vendors=[], cards=[])

    assert report.generated_at.utcoffset() == timedelta(0)

"""Concurrent writers on separate sessions against the file database"""

import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import date
from decimal import Decimal

import pytest

from contas_gateway.domain.exceptions import AlreadyCancelled, AlreadyPaid
from contas_gateway.domain.models import BillStatus, EntryOrigin, PaymentMethod
from contas_gateway.services.bill_service import BillService
from contas_gateway.services.ledger_service import LedgerService

OWNER = "user_1"
TODAY = date(2025, 3, 15)
WORKERS = 8
D = Decimal


@pytest.fixture
def funded_account(ledger_service, account):
    ledger_service.post_opening_balance(OWNER, account.id, "1000.00", date(2025, 1, 1))
    return account


@pytest.fixture
def plan(bill_service, vendor):
    return bill_service.create(OWNER, "Sofa", date(2025, 4, 10), "300.00", vendor.id, installment_count=5)


def clock():
    return TODAY


def run_together(session_factory, calls):
    """Release every call at once, each on its own session; returns results or raised exceptions"""
    barrier = threading.Barrier(len(calls))

    def worker(call):
        session = session_factory()
        try:
            service = BillService(session, clock=clock)
            barrier.wait(timeout=10)
            return call(service)
        finally:
            session.close()

    with ThreadPoolExecutor(max_workers=len(calls)) as pool:
        futures = [pool.submit(worker, call) for call in calls]
    return [f.exception() or f.result() for f in futures]


def committed_state(session_factory, account_id):
    """Fresh session view of the bills and the account's payment entries"""
    session = session_factory()
    try:
        ledger = LedgerService(session, clock=clock)
        entries = [e for e in ledger.statement(OWNER, account_id).entries if e.origin == EntryOrigin.BILL_PAYMENT]
        bills = BillService(session, clock=clock).list(OWNER)
        return bills, entries, ledger.balance(OWNER, account_id)
    finally:
        session.close()


def test_concurrent_payments_of_one_bill(session_factory, funded_account, plan):
    target = plan[0].id

    outcomes = run_together(
        session_factory,
        [lambda s: s.pay(OWNER, target, PaymentMethod.PIX, funded_account.id)] * WORKERS,
    )

    winners = [o for o in outcomes if not isinstance(o, Exception)]
    losers = [o for o in outcomes if isinstance(o, Exception)]
    assert len(winners) == 1
    assert len(losers) == WORKERS - 1
    assert all(isinstance(e, AlreadyPaid) for e in losers)

    _, entries, balance = committed_state(session_factory, funded_account.id)
    assert len(entries) == 1
    assert entries[0].id == winners[0].payment_entry_id
    assert balance == D("940.00")


def test_payments_racing_cancel_all_remaining(session_factory, funded_account, plan):
    def paying(bill_id):
        return lambda s: s.pay(OWNER, bill_id, PaymentMethod.PIX, funded_account.id)

    pays = [paying(bill.id) for bill in plan[:4]]
    cancels = [lambda s: s.cancel_all_remaining(OWNER, plan[0].id)] * (WORKERS - len(pays))

    outcomes = run_together(session_factory, pays + cancels)

    pay_outcomes = outcomes[: len(pays)]
    assert all(isinstance(o, (AlreadyCancelled, AlreadyPaid)) for o in pay_outcomes if isinstance(o, Exception))
    assert not any(isinstance(o, Exception) for o in outcomes[len(pays):])

    bills, entries, balance = committed_state(session_factory, funded_account.id)
    paid = {b.id for b in bills if b.status == BillStatus.PAID}
    assert all(b.status in (BillStatus.PAID, BillStatus.CANCELLED) for b in bills)
    assert {e.bill_id for e in entries} == paid
    assert len(entries) == len(paid)
    assert len(paid) == len([o for o in pay_outcomes if not isinstance(o, Exception)])
    assert balance == D("1000.00") - D("60.00") * len(paid)


def test_failed_ledger_post_leaves_bill_pending(session_factory, funded_account, plan, monkeypatch):
    def refuse(*args, **kwargs):
        raise RuntimeError("ledger unavailable")

    monkeypatch.setattr(LedgerService, "post_entry", refuse)

    outcomes = run_together(
        session_factory,
        [lambda s: s.pay(OWNER, plan[0].id, PaymentMethod.PIX, funded_account.id)],
    )
    assert isinstance(outcomes[0], RuntimeError)

    monkeypatch.undo()
    bills, entries, balance = committed_state(session_factory, funded_account.id)
    first = next(b for b in bills if b.id == plan[0].id)
    assert first.status == BillStatus.PENDING
    assert first.payment_entry_id is None
    assert entries == []
    assert balance == D("1000.00")

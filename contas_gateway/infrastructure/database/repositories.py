"""Data access layer for accounts, ledger entries, vendors, cards and bills

Every query is scoped by ``owner_id``. Repositories return domain
dataclasses; state transitions are conditional UPDATEs whose row count tells
the caller whether it won.
"""

import uuid
from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from contas_gateway.domain import models as domain
from contas_gateway.domain.money import from_cents, to_cents
from contas_gateway.infrastructure.database.models import BankAccount, Bill, Card, LedgerEntry, Vendor


def _account_to_domain(row: BankAccount) -> domain.BankAccount:
    return domain.BankAccount(
        id=row.id,
        owner_id=row.owner_id,
        name=row.name,
        bank=row.bank,
        balance=from_cents(row.balance_cents),
        active=row.active,
        account_number=row.account_number,
        branch=row.branch,
    )


def _entry_to_domain(row: LedgerEntry) -> domain.LedgerEntry:
    return domain.LedgerEntry(
        id=row.id,
        owner_id=row.owner_id,
        bank_account_id=row.bank_account_id,
        kind=domain.EntryKind(row.kind),
        amount=from_cents(row.amount_cents),
        entry_date=row.entry_date,
        memo=row.memo,
        origin=domain.EntryOrigin(row.origin),
        reversed=row.reversed,
        reversal_of=row.reversal_of,
        bill_id=row.bill_id,
        card_id=row.card_id,
        payment_method=domain.PaymentMethod(row.payment_method) if row.payment_method else None,
        transfer_id=row.transfer_id,
    )


def _vendor_to_domain(row: Vendor) -> domain.Vendor:
    return domain.Vendor(id=row.id, owner_id=row.owner_id, name=row.name, category=row.category, active=row.active)


def _card_to_domain(row: Card) -> domain.Card:
    return domain.Card(
        id=row.id,
        owner_id=row.owner_id,
        name=row.name,
        kind=domain.CardKind(row.kind),
        bank=row.bank,
        credit_limit=from_cents(row.credit_limit_cents) if row.credit_limit_cents is not None else None,
        statement_day=row.statement_day,
        active=row.active,
    )


def _bill_to_domain(row: Bill) -> domain.Bill:
    return domain.Bill(
        id=row.id,
        owner_id=row.owner_id,
        name=row.name,
        vendor_id=row.vendor_id,
        due_date=row.due_date,
        amount=from_cents(row.amount_cents),
        status=domain.BillStatus(row.status),
        notes=row.notes,
        plan_id=row.plan_id,
        installment_index=row.installment_index,
        installment_count=row.installment_count,
        installment_mode=domain.InstallmentMode(row.installment_mode) if row.installment_mode else None,
        plan_total=from_cents(row.plan_total_cents) if row.plan_total_cents is not None else None,
        paid_date=row.paid_date,
        payment_method=domain.PaymentMethod(row.payment_method) if row.payment_method else None,
        bank_account_id=row.bank_account_id,
        card_id=row.card_id,
        interest=from_cents(row.interest_cents),
        payment_entry_id=row.payment_entry_id,
    )


class BankAccountRepository:
    """Repository for bank accounts"""

    def __init__(self, db: Session):
        self.db = db

    def create(self, owner_id: str, name: str, bank: str, account_number: str | None = None, branch: str | None = None) -> domain.BankAccount:
        row = BankAccount(
            owner_id=owner_id,
            name=name,
            bank=bank,
            account_number=account_number,
            branch=branch,
            balance_cents=0,
            active=True,
        )
        self.db.add(row)
        self.db.flush()
        return _account_to_domain(row)

    def _row(self, owner_id: str, account_id: uuid.UUID) -> Optional[BankAccount]:
        return (
            self.db.query(BankAccount)
            .filter(BankAccount.id == account_id, BankAccount.owner_id == owner_id)
            .first()
        )

    def get(self, owner_id: str, account_id: uuid.UUID, active_only: bool = False) -> Optional[domain.BankAccount]:
        row = self._row(owner_id, account_id)
        if row is None or (active_only and not row.active):
            return None
        return _account_to_domain(row)

    def list(self, owner_id: str, include_inactive: bool = False) -> List[domain.BankAccount]:
        query = self.db.query(BankAccount).filter(BankAccount.owner_id == owner_id)
        if not include_inactive:
            query = query.filter(BankAccount.active.is_(True))
        return [_account_to_domain(row) for row in query.order_by(BankAccount.name).all()]

    def update(self, owner_id: str, account_id: uuid.UUID, **fields: Any) -> Optional[domain.BankAccount]:
        row = self._row(owner_id, account_id)
        if row is None:
            return None
        for key, value in fields.items():
            setattr(row, key, value)
        self.db.flush()
        return _account_to_domain(row)

    def store_balance(self, account_id: uuid.UUID, balance: Decimal) -> None:
        """Overwrite the cached balance; the ledger stays the source of truth"""
        self.db.query(BankAccount).filter(BankAccount.id == account_id).update(
            {"balance_cents": to_cents(balance)}
        )


class LedgerRepository:
    """Repository for ledger entries (append-only)"""

    def __init__(self, db: Session):
        self.db = db

    def add(
        self,
        owner_id: str,
        bank_account_id: uuid.UUID,
        kind: domain.EntryKind,
        amount: Decimal,
        entry_date: date,
        memo: str,
        origin: domain.EntryOrigin = domain.EntryOrigin.MANUAL,
        entry_id: uuid.UUID | None = None,
        reversal_of: uuid.UUID | None = None,
        bill_id: uuid.UUID | None = None,
        card_id: uuid.UUID | None = None,
        payment_method: domain.PaymentMethod | None = None,
        transfer_id: uuid.UUID | None = None,
    ) -> domain.LedgerEntry:
        row = LedgerEntry(
            id=entry_id or uuid.uuid4(),
            owner_id=owner_id,
            bank_account_id=bank_account_id,
            kind=kind.value,
            origin=origin.value,
            amount_cents=to_cents(amount),
            entry_date=entry_date,
            memo=memo,
            reversed=False,
            reversal_of=reversal_of,
            bill_id=bill_id,
            card_id=card_id,
            payment_method=payment_method.value if payment_method else None,
            transfer_id=transfer_id,
        )
        self.db.add(row)
        self.db.flush()
        return _entry_to_domain(row)

    def get(self, owner_id: str, entry_id: uuid.UUID) -> Optional[domain.LedgerEntry]:
        row = (
            self.db.query(LedgerEntry)
            .filter(LedgerEntry.id == entry_id, LedgerEntry.owner_id == owner_id)
            .first()
        )
        return _entry_to_domain(row) if row else None

    def mark_reversed(self, entry_id: uuid.UUID) -> bool:
        """Flip ``reversed`` if nobody else did; False means already reversed"""
        updated = (
            self.db.query(LedgerEntry)
            .filter(LedgerEntry.id == entry_id, LedgerEntry.reversed.is_(False))
            .update({"reversed": True})
        )
        return updated == 1

    def for_account(self, owner_id: str, account_id: uuid.UUID) -> List[domain.LedgerEntry]:
        rows = (
            self.db.query(LedgerEntry)
            .filter(LedgerEntry.owner_id == owner_id, LedgerEntry.bank_account_id == account_id)
            .order_by(LedgerEntry.entry_date, LedgerEntry.created_at)
            .all()
        )
        return [_entry_to_domain(row) for row in rows]

    def for_owner(self, owner_id: str) -> List[domain.LedgerEntry]:
        rows = self.db.query(LedgerEntry).filter(LedgerEntry.owner_id == owner_id).all()
        return [_entry_to_domain(row) for row in rows]

    def search(
        self,
        owner_id: str,
        account_id: uuid.UUID | None = None,
        card_id: uuid.UUID | None = None,
        start: date | None = None,
        end: date | None = None,
    ) -> List[domain.LedgerEntry]:
        """Counting entries (no reversed ones, no reversal records), newest first"""
        query = self.db.query(LedgerEntry).filter(
            LedgerEntry.owner_id == owner_id,
            LedgerEntry.reversed.is_(False),
            LedgerEntry.origin != domain.EntryOrigin.REVERSAL.value,
        )
        if account_id is not None:
            query = query.filter(LedgerEntry.bank_account_id == account_id)
        if card_id is not None:
            query = query.filter(LedgerEntry.card_id == card_id)
        if start is not None:
            query = query.filter(LedgerEntry.entry_date >= start)
        if end is not None:
            query = query.filter(LedgerEntry.entry_date <= end)
        rows = query.order_by(LedgerEntry.entry_date.desc(), LedgerEntry.created_at.desc()).all()
        return [_entry_to_domain(row) for row in rows]

    def has_opening_balance(self, owner_id: str, account_id: uuid.UUID) -> bool:
        return (
            self.db.query(LedgerEntry.id)
            .filter(
                LedgerEntry.owner_id == owner_id,
                LedgerEntry.bank_account_id == account_id,
                LedgerEntry.kind == domain.EntryKind.OPENING_BALANCE.value,
                LedgerEntry.reversed.is_(False),
                LedgerEntry.origin != domain.EntryOrigin.REVERSAL.value,
            )
            .first()
            is not None
        )

    def transfer_legs(self, owner_id: str, transfer_id: uuid.UUID) -> List[domain.LedgerEntry]:
        """Outflow and inflow of one transfer, outflow first"""
        rows = (
            self.db.query(LedgerEntry)
            .filter(
                LedgerEntry.owner_id == owner_id,
                LedgerEntry.transfer_id == transfer_id,
                LedgerEntry.origin == domain.EntryOrigin.TRANSFER.value,
            )
            .all()
        )
        return sorted((_entry_to_domain(row) for row in rows), key=lambda e: e.kind != domain.EntryKind.OUTFLOW)

    def transfer_outflows(
        self,
        owner_id: str,
        start: date | None = None,
        end: date | None = None,
    ) -> List[domain.LedgerEntry]:
        """Outgoing leg of every transfer, newest first"""
        query = self.db.query(LedgerEntry).filter(
            LedgerEntry.owner_id == owner_id,
            LedgerEntry.origin == domain.EntryOrigin.TRANSFER.value,
            LedgerEntry.kind == domain.EntryKind.OUTFLOW.value,
        )
        if start is not None:
            query = query.filter(LedgerEntry.entry_date >= start)
        if end is not None:
            query = query.filter(LedgerEntry.entry_date <= end)
        rows = query.order_by(LedgerEntry.entry_date.desc(), LedgerEntry.created_at.desc()).all()
        return [_entry_to_domain(row) for row in rows]


class VendorRepository:
    """Repository for vendors"""

    def __init__(self, db: Session):
        self.db = db

    def create(self, owner_id: str, name: str, category: str = "General") -> domain.Vendor:
        row = Vendor(owner_id=owner_id, name=name, category=category or "General", active=True)
        self.db.add(row)
        self.db.flush()
        return _vendor_to_domain(row)

    def get(self, owner_id: str, vendor_id: uuid.UUID, active_only: bool = False) -> Optional[domain.Vendor]:
        row = self.db.query(Vendor).filter(Vendor.id == vendor_id, Vendor.owner_id == owner_id).first()
        if row is None or (active_only and not row.active):
            return None
        return _vendor_to_domain(row)

    def list(self, owner_id: str, include_inactive: bool = False) -> List[domain.Vendor]:
        query = self.db.query(Vendor).filter(Vendor.owner_id == owner_id)
        if not include_inactive:
            query = query.filter(Vendor.active.is_(True))
        return [_vendor_to_domain(row) for row in query.order_by(Vendor.name).all()]

    def set_active(self, owner_id: str, vendor_id: uuid.UUID, active: bool) -> bool:
        updated = (
            self.db.query(Vendor)
            .filter(Vendor.id == vendor_id, Vendor.owner_id == owner_id)
            .update({"active": active})
        )
        return updated == 1


class CardRepository:
    """Repository for payment cards"""

    def __init__(self, db: Session):
        self.db = db

    def create(
        self,
        owner_id: str,
        name: str,
        kind: domain.CardKind,
        bank: str,
        credit_limit: Decimal | None = None,
        statement_day: int | None = None,
    ) -> domain.Card:
        row = Card(
            owner_id=owner_id,
            name=name,
            kind=kind.value,
            bank=bank,
            credit_limit_cents=to_cents(credit_limit) if credit_limit is not None else None,
            statement_day=statement_day,
            active=True,
        )
        self.db.add(row)
        self.db.flush()
        return _card_to_domain(row)

    def get(self, owner_id: str, card_id: uuid.UUID, active_only: bool = False) -> Optional[domain.Card]:
        row = self.db.query(Card).filter(Card.id == card_id, Card.owner_id == owner_id).first()
        if row is None or (active_only and not row.active):
            return None
        return _card_to_domain(row)

    def list(self, owner_id: str, include_inactive: bool = False) -> List[domain.Card]:
        query = self.db.query(Card).filter(Card.owner_id == owner_id)
        if not include_inactive:
            query = query.filter(Card.active.is_(True))
        return [_card_to_domain(row) for row in query.order_by(Card.name).all()]

    def set_active(self, owner_id: str, card_id: uuid.UUID, active: bool) -> bool:
        updated = (
            self.db.query(Card)
            .filter(Card.id == card_id, Card.owner_id == owner_id)
            .update({"active": active})
        )
        return updated == 1


class BillRepository:
    """Repository for bills and installment plans"""

    def __init__(self, db: Session):
        self.db = db

    def create_bills(
        self,
        owner_id: str,
        name: str,
        vendor_id: uuid.UUID,
        installments: List[domain.Installment],
        notes: str | None = None,
        mode: domain.InstallmentMode = domain.InstallmentMode.SPLIT,
        plan_total: Decimal | None = None,
    ) -> List[domain.Bill]:
        """Create a standalone bill or every installment of a new plan

        Plan rows record the mode and declared total they were generated from.
        """
        count = len(installments)
        plan_id = uuid.uuid4() if count > 1 else None

        rows = []
        for index, inst in enumerate(installments, start=1):
            row = Bill(
                owner_id=owner_id,
                name=f"{name} ({index}/{count})" if plan_id else name,
                vendor_id=vendor_id,
                due_date=inst.due_date,
                amount_cents=to_cents(inst.amount),
                status=domain.BillStatus.PENDING.value,
                notes=notes,
                plan_id=plan_id,
                installment_index=index if plan_id else None,
                installment_count=count if plan_id else None,
                installment_mode=mode.value if plan_id else None,
                plan_total_cents=to_cents(plan_total) if plan_id and plan_total is not None else None,
                interest_cents=0,
            )
            self.db.add(row)
            rows.append(row)

        self.db.flush()
        return [_bill_to_domain(row) for row in rows]

    def get(self, owner_id: str, bill_id: uuid.UUID) -> Optional[domain.Bill]:
        """Always re-reads the row so a status changed by another transaction is seen"""
        row = (
            self.db.query(Bill)
            .filter(Bill.id == bill_id, Bill.owner_id == owner_id)
            .populate_existing()
            .first()
        )
        return _bill_to_domain(row) if row else None

    def list(
        self,
        owner_id: str,
        start: date | None = None,
        end: date | None = None,
        stored_status: domain.BillStatus | None = None,
    ) -> List[domain.Bill]:
        query = self.db.query(Bill).filter(Bill.owner_id == owner_id)
        if start is not None:
            query = query.filter(Bill.due_date >= start)
        if end is not None:
            query = query.filter(Bill.due_date <= end)
        if stored_status is not None:
            query = query.filter(Bill.status == stored_status.value)
        return [_bill_to_domain(row) for row in query.order_by(Bill.due_date, Bill.installment_index).all()]

    def plan(self, owner_id: str, plan_id: uuid.UUID) -> List[domain.Bill]:
        rows = (
            self.db.query(Bill)
            .filter(Bill.owner_id == owner_id, Bill.plan_id == plan_id)
            .order_by(Bill.installment_index)
            .all()
        )
        return [_bill_to_domain(row) for row in rows]

    def _transition(self, bill_id: uuid.UUID, expected: domain.BillStatus, values: Dict[str, Any]) -> bool:
        updated = (
            self.db.query(Bill)
            .filter(Bill.id == bill_id, Bill.status == expected.value)
            .update(values)
        )
        return updated == 1

    def mark_paid(
        self,
        bill_id: uuid.UUID,
        paid_date: date,
        payment_method: domain.PaymentMethod,
        bank_account_id: uuid.UUID,
        interest: Decimal,
        payment_entry_id: uuid.UUID,
        card_id: uuid.UUID | None = None,
    ) -> bool:
        """Pending → paid compare-and-swap; False when another transaction got there first"""
        return self._transition(
            bill_id,
            domain.BillStatus.PENDING,
            {
                "status": domain.BillStatus.PAID.value,
                "paid_date": paid_date,
                "payment_method": payment_method.value,
                "bank_account_id": bank_account_id,
                "card_id": card_id,
                "interest_cents": to_cents(interest),
                "payment_entry_id": payment_entry_id,
            },
        )

    def clear_payment(self, bill_id: uuid.UUID) -> bool:
        """Paid → pending compare-and-swap used when a payment is reversed"""
        return self._transition(
            bill_id,
            domain.BillStatus.PAID,
            {
                "status": domain.BillStatus.PENDING.value,
                "paid_date": None,
                "payment_method": None,
                "bank_account_id": None,
                "card_id": None,
                "interest_cents": 0,
                "payment_entry_id": None,
            },
        )

    def cancel(self, bill_id: uuid.UUID) -> bool:
        return self._transition(bill_id, domain.BillStatus.PENDING, {"status": domain.BillStatus.CANCELLED.value})

    def update_open(self, bill_id: uuid.UUID, values: Dict[str, Any]) -> bool:
        return self._transition(bill_id, domain.BillStatus.PENDING, values)

    def cancel_open_in_plan(self, owner_id: str, plan_id: uuid.UUID) -> int:
        """Cancel every still-pending installment in one statement"""
        return (
            self.db.query(Bill)
            .filter(
                Bill.owner_id == owner_id,
                Bill.plan_id == plan_id,
                Bill.status == domain.BillStatus.PENDING.value,
            )
            .update({"status": domain.BillStatus.CANCELLED.value})
        )

    def reamortize_open_in_plan(self, owner_id: str, plan_id: uuid.UUID, amount: Decimal) -> int:
        return (
            self.db.query(Bill)
            .filter(
                Bill.owner_id == owner_id,
                Bill.plan_id == plan_id,
                Bill.status == domain.BillStatus.PENDING.value,
            )
            .update({"amount_cents": to_cents(amount)})
        )

    def for_owner(self, owner_id: str) -> List[domain.Bill]:
        return [_bill_to_domain(row) for row in self.db.query(Bill).filter(Bill.owner_id == owner_id).all()]

"""Bank account ledger - accounts, money movements, reversals and balances"""

import logging
import uuid
from datetime import date
from decimal import Decimal
from typing import Any, Callable, List, Optional

from sqlalchemy.orm import Session

from contas_gateway.domain.exceptions import (
    AccountNotFound,
    AlreadyReversed,
    CardNotFound,
    EntryNotFound,
    OpeningBalanceExists,
    SameAccountTransfer,
    TransferNotFound,
)
from contas_gateway.domain.ledger import compute_balance, ensure_reversible, transfer_from_legs
from contas_gateway.domain.models import (
    BankAccount,
    BillStatus,
    EntryKind,
    EntryOrigin,
    LedgerEntry,
    PaymentMethod,
    Statement,
    Transfer,
)
from contas_gateway.domain.money import ZERO, parse_amount
from contas_gateway.infrastructure.database.repositories import (
    BankAccountRepository,
    BillRepository,
    CardRepository,
    LedgerRepository,
)
from contas_gateway.infrastructure.observability.logging import log_operation
from contas_gateway.infrastructure.observability.metrics import ledger_post_counter, ledger_reversal_counter
from contas_gateway.services.transactions import run_in_transaction

logger = logging.getLogger(__name__)


class LedgerService:
    """Operations on bank accounts and their append-only ledger"""

    def __init__(self, db: Session, clock: Callable[[], date] = date.today):
        self.db = db
        self.clock = clock
        self.accounts = BankAccountRepository(db)
        self.entries = LedgerRepository(db)
        self.cards = CardRepository(db)
        self.bills = BillRepository(db)

    # Accounts

    def create_account(
        self,
        owner_id: str,
        name: str,
        bank: str,
        account_number: str | None = None,
        branch: str | None = None,
    ) -> BankAccount:
        account = run_in_transaction(
            self.db,
            "create_account",
            lambda: self.accounts.create(owner_id, name, bank, account_number, branch),
        )
        log_operation(logger, "account_created", owner_id, account_id=account.id)
        return account

    def get_account(self, owner_id: str, account_id: uuid.UUID) -> BankAccount:
        account = self.accounts.get(owner_id, account_id)
        if account is None:
            raise AccountNotFound(f"Bank account {account_id} not found")
        return account

    def list_accounts(self, owner_id: str, include_inactive: bool = False) -> List[BankAccount]:
        return self.accounts.list(owner_id, include_inactive=include_inactive)

    def update_account(self, owner_id: str, account_id: uuid.UUID, **fields: Any) -> BankAccount:
        """Change name, bank, account number or branch; ``None`` values are ignored"""
        allowed = {"name", "bank", "account_number", "branch"}
        changes = {key: value for key, value in fields.items() if key in allowed and value is not None}

        def work() -> BankAccount:
            account = self.accounts.update(owner_id, account_id, **changes)
            if account is None:
                raise AccountNotFound(f"Bank account {account_id} not found")
            return account

        return run_in_transaction(self.db, "update_account", work)

    def set_account_active(self, owner_id: str, account_id: uuid.UUID, active: bool) -> BankAccount:
        """Soft-deactivate or reactivate; history is never deleted"""

        def work() -> BankAccount:
            account = self.accounts.update(owner_id, account_id, active=active)
            if account is None:
                raise AccountNotFound(f"Bank account {account_id} not found")
            return account

        account = run_in_transaction(self.db, "set_account_active", work)
        log_operation(logger, "account_activated" if active else "account_deactivated", owner_id, account_id=account_id)
        return account

    # Ledger

    def post(
        self,
        owner_id: str,
        account_id: uuid.UUID,
        kind: EntryKind,
        amount: Any,
        entry_date: date,
        memo: str,
        card_id: uuid.UUID | None = None,
        payment_method: PaymentMethod | None = None,
    ) -> LedgerEntry:
        """
        Record a money movement on an active account.

        Raises:
            InvalidAmount, AccountNotFound, CardNotFound, OpeningBalanceExists
        """
        value = parse_amount(amount)

        def work() -> LedgerEntry:
            if card_id is not None and self.cards.get(owner_id, card_id, active_only=True) is None:
                raise CardNotFound(f"Card {card_id} not found")
            return self.post_entry(
                owner_id,
                account_id,
                kind,
                value,
                entry_date,
                memo,
                card_id=card_id,
                payment_method=payment_method,
            )

        entry = run_in_transaction(self.db, "post_entry", work)
        ledger_post_counter.labels(kind=kind.value).inc()
        log_operation(logger, "entry_posted", owner_id, entry_id=entry.id, account_id=account_id, kind=kind.value)
        return entry

    def post_opening_balance(self, owner_id: str, account_id: uuid.UUID, amount: Any, entry_date: date) -> LedgerEntry:
        """Dedicated opening-balance path; entries posted here cannot be reversed"""
        value = parse_amount(amount, allow_zero=True)

        entry = run_in_transaction(
            self.db,
            "post_opening_balance",
            lambda: self.post_entry(
                owner_id,
                account_id,
                EntryKind.OPENING_BALANCE,
                value,
                entry_date,
                "Opening balance",
                origin=EntryOrigin.OPENING_BALANCE,
            ),
        )
        ledger_post_counter.labels(kind=EntryKind.OPENING_BALANCE.value).inc()
        log_operation(logger, "opening_balance_posted", owner_id, entry_id=entry.id, account_id=account_id)
        return entry

    def post_entry(
        self,
        owner_id: str,
        account_id: uuid.UUID,
        kind: EntryKind,
        amount: Decimal,
        entry_date: date,
        memo: str,
        origin: EntryOrigin = EntryOrigin.MANUAL,
        **links: Any,
    ) -> LedgerEntry:
        """Append an entry inside the caller's transaction and refresh the cached balance"""
        if self.accounts.get(owner_id, account_id, active_only=True) is None:
            raise AccountNotFound(f"Bank account {account_id} not found or inactive")
        if kind == EntryKind.OPENING_BALANCE and self.entries.has_opening_balance(owner_id, account_id):
            raise OpeningBalanceExists(f"Bank account {account_id} already has an opening balance")

        entry = self.entries.add(owner_id, account_id, kind, amount, entry_date, memo, origin=origin, **links)
        self.refresh_balance(owner_id, account_id)
        return entry

    def reverse(self, owner_id: str, entry_id: uuid.UUID) -> LedgerEntry:
        """
        Void an entry without deleting it. A transfer leg takes its
        counterpart with it.

        Raises:
            EntryNotFound, AlreadyReversed, NotReversible
        """

        def work() -> LedgerEntry:
            entry = self.entries.get(owner_id, entry_id)
            if entry is None:
                raise EntryNotFound(f"Ledger entry {entry_id} not found")

            payment_active = False
            if entry.origin == EntryOrigin.BILL_PAYMENT and entry.bill_id is not None:
                bill = self.bills.get(owner_id, entry.bill_id)
                payment_active = bill is not None and bill.status == BillStatus.PAID and bill.payment_entry_id == entry.id

            ensure_reversible(entry, payment_active=payment_active)
            if entry.origin == EntryOrigin.TRANSFER and entry.transfer_id is not None:
                self._reverse_transfer_legs(owner_id, entry.transfer_id)
                return self.entries.get(owner_id, entry.id)
            return self.reverse_entry(owner_id, entry)

        reversed_entry = run_in_transaction(self.db, "reverse_entry", work)
        ledger_reversal_counter.inc()
        log_operation(logger, "entry_reversed", owner_id, entry_id=entry_id)
        return reversed_entry

    def reverse_entry(self, owner_id: str, entry: LedgerEntry) -> LedgerEntry:
        """Flag ``entry`` reversed and append its reversal record, inside the caller's transaction"""
        if not self.entries.mark_reversed(entry.id):
            raise AlreadyReversed(f"Entry {entry.id} is already reversed")

        self.entries.add(
            owner_id,
            entry.bank_account_id,
            entry.kind,
            entry.amount,
            self.clock(),
            f"Reversal: {entry.memo}",
            origin=EntryOrigin.REVERSAL,
            reversal_of=entry.id,
            bill_id=entry.bill_id,
        )
        self.refresh_balance(owner_id, entry.bank_account_id)
        return self.entries.get(owner_id, entry.id)

    # Transfers

    def transfer(
        self,
        owner_id: str,
        from_account_id: uuid.UUID,
        to_account_id: uuid.UUID,
        amount: Any,
        entry_date: Optional[date] = None,
        memo: str | None = None,
    ) -> Transfer:
        """
        Move money between two active accounts of the owner.

        Flow (one transaction):
        1. Check both accounts exist, belong to the owner and are active
        2. Post an outflow on the source account
        3. Post an inflow on the destination account

        Both entries carry the same transfer id; either both are recorded or
        neither is.

        Raises:
            InvalidAmount, SameAccountTransfer, AccountNotFound
        """
        if from_account_id == to_account_id:
            raise SameAccountTransfer("Cannot transfer to the same account")
        value = parse_amount(amount)
        day = entry_date or self.clock()

        def work() -> Transfer:
            source = self.accounts.get(owner_id, from_account_id, active_only=True)
            if source is None:
                raise AccountNotFound(f"Source account {from_account_id} not found or inactive")
            target = self.accounts.get(owner_id, to_account_id, active_only=True)
            if target is None:
                raise AccountNotFound(f"Destination account {to_account_id} not found or inactive")

            transfer_id = uuid.uuid4()
            outflow = self.post_entry(
                owner_id,
                from_account_id,
                EntryKind.OUTFLOW,
                value,
                day,
                memo or f"Transfer to {target.name}",
                origin=EntryOrigin.TRANSFER,
                transfer_id=transfer_id,
            )
            inflow = self.post_entry(
                owner_id,
                to_account_id,
                EntryKind.INFLOW,
                value,
                day,
                memo or f"Transfer from {source.name}",
                origin=EntryOrigin.TRANSFER,
                transfer_id=transfer_id,
            )
            return transfer_from_legs(outflow, inflow)

        transfer = run_in_transaction(self.db, "transfer", work)
        ledger_post_counter.labels(kind=EntryKind.OUTFLOW.value).inc()
        ledger_post_counter.labels(kind=EntryKind.INFLOW.value).inc()
        log_operation(
            logger,
            "transfer_posted",
            owner_id,
            transfer_id=transfer.id,
            from_account_id=from_account_id,
            to_account_id=to_account_id,
            amount=value,
        )
        return transfer

    def get_transfer(self, owner_id: str, transfer_id: uuid.UUID) -> Transfer:
        legs = self.entries.transfer_legs(owner_id, transfer_id)
        if len(legs) != 2:
            raise TransferNotFound(f"Transfer {transfer_id} not found")
        return transfer_from_legs(*legs)

    def list_transfers(
        self,
        owner_id: str,
        account_id: uuid.UUID | None = None,
        start: date | None = None,
        end: date | None = None,
    ) -> List[Transfer]:
        """Transfer history, newest first; ``account_id`` matches either side"""
        transfers = []
        for outflow in self.entries.transfer_outflows(owner_id, start=start, end=end):
            legs = self.entries.transfer_legs(owner_id, outflow.transfer_id)
            if len(legs) != 2:
                continue
            transfer = transfer_from_legs(*legs)
            if account_id is None or account_id in (transfer.from_account_id, transfer.to_account_id):
                transfers.append(transfer)
        return transfers

    def reverse_transfer(self, owner_id: str, transfer_id: uuid.UUID) -> Transfer:
        """
        Void both legs of a transfer together.

        Raises:
            TransferNotFound, AlreadyReversed
        """

        def work() -> Transfer:
            self._reverse_transfer_legs(owner_id, transfer_id)
            return self.get_transfer(owner_id, transfer_id)

        transfer = run_in_transaction(self.db, "reverse_transfer", work)
        ledger_reversal_counter.inc(2)
        log_operation(logger, "transfer_reversed", owner_id, transfer_id=transfer_id)
        return transfer

    def _reverse_transfer_legs(self, owner_id: str, transfer_id: uuid.UUID) -> None:
        legs = self.entries.transfer_legs(owner_id, transfer_id)
        if len(legs) != 2:
            raise TransferNotFound(f"Transfer {transfer_id} not found")
        for leg in legs:
            ensure_reversible(leg)
        for leg in legs:
            self.reverse_entry(owner_id, leg)

    def refresh_balance(self, owner_id: str, account_id: uuid.UUID) -> Decimal:
        balance = compute_balance(self.entries.for_account(owner_id, account_id))
        self.accounts.store_balance(account_id, balance)
        return balance

    def balance(self, owner_id: str, account_id: uuid.UUID, as_of: Optional[date] = None) -> Decimal:
        """Balance from the ledger, optionally as of a date (inclusive); read-only"""
        if self.accounts.get(owner_id, account_id) is None:
            raise AccountNotFound(f"Bank account {account_id} not found")
        return compute_balance(self.entries.for_account(owner_id, account_id), as_of=as_of)

    def statement(
        self,
        owner_id: str,
        account_id: uuid.UUID | None = None,
        card_id: uuid.UUID | None = None,
        start: date | None = None,
        end: date | None = None,
    ) -> Statement:
        """Counting entries matching the filters plus their inflow/outflow totals"""
        if account_id is not None and self.accounts.get(owner_id, account_id) is None:
            raise AccountNotFound(f"Bank account {account_id} not found")

        entries = self.entries.search(owner_id, account_id=account_id, card_id=card_id, start=start, end=end)
        total_inflow = sum((e.amount for e in entries if e.kind != EntryKind.OUTFLOW), ZERO)
        total_outflow = sum((e.amount for e in entries if e.kind == EntryKind.OUTFLOW), ZERO)

        return Statement(
            entries=entries,
            total_inflow=total_inflow,
            total_outflow=total_outflow,
            balance=self.balance(owner_id, account_id) if account_id is not None else None,
        )

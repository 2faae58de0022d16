"""Domain models - pure Python dataclasses representing business entities"""

import uuid
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import List, Optional


class EntryKind(str, Enum):
    INFLOW = "inflow"
    OUTFLOW = "outflow"
    OPENING_BALANCE = "opening_balance"


class EntryOrigin(str, Enum):
    """How a ledger entry came to exist"""

    MANUAL = "manual"
    OPENING_BALANCE = "opening_balance"
    BILL_PAYMENT = "bill_payment"
    TRANSFER = "transfer"
    REVERSAL = "reversal"


class BillStatus(str, Enum):
    PENDING = "pending"
    OVERDUE = "overdue"  # Derived at read time, never stored
    PAID = "paid"
    CANCELLED = "cancelled"


class InstallmentMode(str, Enum):
    SPLIT = "split"
    SAME_AMOUNT = "same-amount-remaining"
    MANUAL = "manual"


class PaymentMethod(str, Enum):
    PIX = "pix"
    CREDIT_CARD = "credit_card"
    DEBIT_CARD = "debit_card"
    CASH = "cash"
    TRANSFER = "transfer"
    BOLETO = "boleto"


class CardKind(str, Enum):
    CREDIT = "credit"
    DEBIT = "debit"


@dataclass
class BankAccount:
    id: uuid.UUID
    owner_id: str
    name: str
    bank: str
    balance: Decimal
    active: bool = True
    account_number: Optional[str] = None
    branch: Optional[str] = None


@dataclass
class LedgerEntry:
    """Single money movement on a bank account"""

    id: uuid.UUID
    owner_id: str
    bank_account_id: uuid.UUID
    kind: EntryKind
    amount: Decimal
    entry_date: date
    memo: str
    origin: EntryOrigin = EntryOrigin.MANUAL
    reversed: bool = False
    reversal_of: Optional[uuid.UUID] = None
    bill_id: Optional[uuid.UUID] = None
    card_id: Optional[uuid.UUID] = None
    payment_method: Optional[PaymentMethod] = None
    transfer_id: Optional[uuid.UUID] = None

    @property
    def counts(self) -> bool:
        """Whether the entry takes part in balances and totals"""
        return not self.reversed and self.origin != EntryOrigin.REVERSAL


@dataclass
class Vendor:
    id: uuid.UUID
    owner_id: str
    name: str
    category: str = "General"
    active: bool = True


@dataclass
class Card:
    id: uuid.UUID
    owner_id: str
    name: str
    kind: CardKind
    bank: str
    credit_limit: Optional[Decimal] = None
    statement_day: Optional[int] = None
    active: bool = True


@dataclass
class Bill:
    """Payable obligation; ``status`` is the stored status (never OVERDUE)"""

    id: uuid.UUID
    owner_id: str
    name: str
    vendor_id: uuid.UUID
    due_date: date
    amount: Decimal
    status: BillStatus = BillStatus.PENDING
    notes: Optional[str] = None
    plan_id: Optional[uuid.UUID] = None
    installment_index: Optional[int] = None
    installment_count: Optional[int] = None
    installment_mode: Optional[InstallmentMode] = None
    plan_total: Optional[Decimal] = None
    # Payment record
    paid_date: Optional[date] = None
    payment_method: Optional[PaymentMethod] = None
    bank_account_id: Optional[uuid.UUID] = None
    card_id: Optional[uuid.UUID] = None
    interest: Decimal = Decimal("0.00")
    payment_entry_id: Optional[uuid.UUID] = None


@dataclass
class Installment:
    """Single payment in an installment plan"""

    due_date: date
    amount: Decimal


@dataclass
class DeleteOutcome:
    deleted: bool
    has_remaining_installments: bool
    remaining_count: int


@dataclass
class Statement:
    """Ledger listing with period totals"""

    entries: List[LedgerEntry]
    total_inflow: Decimal
    total_outflow: Decimal
    balance: Optional[Decimal] = None


@dataclass
class Transfer:
    """Movement between two accounts of one owner, stored as an outflow/inflow pair"""

    id: uuid.UUID
    owner_id: str
    from_account_id: uuid.UUID
    to_account_id: uuid.UUID
    amount: Decimal
    entry_date: date
    memo: str
    outflow_entry_id: uuid.UUID
    inflow_entry_id: uuid.UUID
    reversed: bool = False


# Report structures


@dataclass
class CountValue:
    count: int = 0
    value: Decimal = Decimal("0.00")

    def add(self, amount: Decimal) -> None:
        self.count += 1
        self.value += amount


@dataclass
class FinancialSummary:
    pending: CountValue
    paid: CountValue
    overdue: CountValue
    due_next_month: CountValue
    open_total: CountValue
    paid_interest: Decimal
    inflow: Decimal
    outflow: Decimal
    net: Decimal


@dataclass
class BalancePoint:
    as_of: date
    balance: Decimal


@dataclass
class BalanceSeries:
    bank_account_id: uuid.UUID
    name: str
    points: List[BalancePoint]


@dataclass
class BreakdownItem:
    label: str
    value: Decimal
    percent: Decimal
    count: int


@dataclass
class PaymentMethodUsage:
    payment_method: str
    total_bills: Decimal
    total_ledger: Decimal
    total_general: Decimal
    percent: Decimal


@dataclass
class CardUsage:
    card_id: uuid.UUID
    name: str
    kind: CardKind
    bank: str
    credit_limit: Optional[Decimal]
    total_bills: Decimal
    total_ledger: Decimal
    total_general: Decimal
    transaction_count: int
    utilization_percent: Optional[Decimal]
    available: Optional[Decimal]


@dataclass
class MonthTotal:
    year: int
    month: int
    total: Decimal


@dataclass
class DashboardReport:
    owner_id: str
    year: int
    month: int
    summary: FinancialSummary
    balance_evolution: List[BalanceSeries]
    categories: List[BreakdownItem]
    vendors: List[BreakdownItem]
    payment_methods: List[PaymentMethodUsage]
    cards: List[CardUsage]
    monthly_comparison: List[MonthTotal]
    cache_key: str
    generated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

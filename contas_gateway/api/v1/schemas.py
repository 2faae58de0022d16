"""Pydantic schemas for API request/response validation"""

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from contas_gateway.domain.models import (
    BillStatus,
    CardKind,
    EntryKind,
    EntryOrigin,
    InstallmentMode,
    PaymentMethod,
)


class ORMModel(BaseModel):
    """Response model read from domain dataclasses"""

    model_config = ConfigDict(from_attributes=True)


# Accounts


class AccountCreate(BaseModel):
    """Request body for POST /v1/accounts"""

    name: str = Field(..., min_length=1)
    bank: str = Field(..., min_length=1)
    account_number: Optional[str] = None
    branch: Optional[str] = None


class AccountUpdate(BaseModel):
    """Request body for PUT /v1/accounts/{id}; omitted fields are unchanged"""

    name: Optional[str] = Field(default=None, min_length=1)
    bank: Optional[str] = Field(default=None, min_length=1)
    account_number: Optional[str] = None
    branch: Optional[str] = None


class AccountResponse(ORMModel):
    id: uuid.UUID
    name: str
    bank: str
    balance: Decimal
    active: bool
    account_number: Optional[str] = None
    branch: Optional[str] = None


class BalanceResponse(BaseModel):
    bank_account_id: uuid.UUID
    as_of: Optional[date] = None
    balance: Decimal


# Ledger


class EntryCreate(BaseModel):
    """Request body for POST /v1/ledger"""

    bank_account_id: uuid.UUID
    kind: EntryKind
    amount: Decimal
    entry_date: date
    memo: str = ""
    card_id: Optional[uuid.UUID] = None
    payment_method: Optional[PaymentMethod] = None


class OpeningBalanceCreate(BaseModel):
    """Request body for POST /v1/ledger/opening-balance"""

    bank_account_id: uuid.UUID
    amount: Decimal
    entry_date: date


class EntryResponse(ORMModel):
    id: uuid.UUID
    bank_account_id: uuid.UUID
    kind: EntryKind
    amount: Decimal
    entry_date: date
    memo: str
    origin: EntryOrigin
    reversed: bool
    reversal_of: Optional[uuid.UUID] = None
    bill_id: Optional[uuid.UUID] = None
    card_id: Optional[uuid.UUID] = None
    payment_method: Optional[PaymentMethod] = None
    transfer_id: Optional[uuid.UUID] = None


class StatementResponse(ORMModel):
    """Response for GET /v1/ledger"""

    entries: List[EntryResponse]
    total_inflow: Decimal
    total_outflow: Decimal
    balance: Optional[Decimal] = None


# Transfers


class TransferCreate(BaseModel):
    """Request body for POST /v1/transfers"""

    from_account_id: uuid.UUID
    to_account_id: uuid.UUID
    amount: Decimal
    entry_date: Optional[date] = Field(default=None, description="Defaults to today")
    memo: Optional[str] = None


class TransferResponse(ORMModel):
    id: uuid.UUID
    from_account_id: uuid.UUID
    to_account_id: uuid.UUID
    amount: Decimal
    entry_date: date
    memo: str
    outflow_entry_id: uuid.UUID
    inflow_entry_id: uuid.UUID
    reversed: bool


# Vendors and cards


class VendorCreate(BaseModel):
    name: str = Field(..., min_length=1)
    category: Optional[str] = None


class VendorResponse(ORMModel):
    id: uuid.UUID
    name: str
    category: str
    active: bool


class CardCreate(BaseModel):
    name: str = Field(..., min_length=1)
    kind: CardKind
    bank: str = Field(..., min_length=1)
    credit_limit: Optional[Decimal] = None
    statement_day: Optional[int] = Field(default=None, ge=1, le=31)


class CardResponse(ORMModel):
    id: uuid.UUID
    name: str
    kind: CardKind
    bank: str
    credit_limit: Optional[Decimal] = None
    statement_day: Optional[int] = None
    active: bool


# Bills


class ManualInstallment(BaseModel):
    """Single caller-provided installment for manual mode"""

    amount: Decimal
    due_date: date


class BillCreate(BaseModel):
    """Request body for POST /v1/bills"""

    name: str = Field(..., min_length=1)
    due_date: date
    amount: Decimal = Field(..., description="Total (split/manual) or per-installment value (same-amount-remaining)")
    vendor_id: uuid.UUID
    installment_count: int = 1
    mode: InstallmentMode = InstallmentMode.SPLIT
    installments: Optional[List[ManualInstallment]] = None
    notes: Optional[str] = None


class BillUpdate(BaseModel):
    """Request body for PUT /v1/bills/{id}"""

    name: Optional[str] = None
    due_date: Optional[date] = None
    amount: Optional[Decimal] = None
    vendor_id: Optional[uuid.UUID] = None
    notes: Optional[str] = None


class BillResponse(ORMModel):
    """A bill with its effective status (overdue is derived)"""

    id: uuid.UUID
    name: str
    vendor_id: uuid.UUID
    due_date: date
    amount: Decimal
    status: BillStatus
    notes: Optional[str] = None
    plan_id: Optional[uuid.UUID] = None
    installment_index: Optional[int] = None
    installment_count: Optional[int] = None
    installment_mode: Optional[InstallmentMode] = None
    plan_total: Optional[Decimal] = None
    paid_date: Optional[date] = None
    payment_method: Optional[PaymentMethod] = None
    bank_account_id: Optional[uuid.UUID] = None
    card_id: Optional[uuid.UUID] = None
    interest: Decimal
    payment_entry_id: Optional[uuid.UUID] = None


class PaymentRequest(BaseModel):
    """Request body for POST /v1/bills/{id}/pay"""

    payment_method: PaymentMethod
    bank_account_id: uuid.UUID
    interest: Optional[Decimal] = None
    card_id: Optional[uuid.UUID] = None


class ReamortizeRequest(BaseModel):
    amount: Decimal


class DeleteResponse(ORMModel):
    deleted: bool
    has_remaining_installments: bool
    remaining_count: int


class CancelRemainingResponse(BaseModel):
    cancelled: int


class ReamortizeResponse(BaseModel):
    updated: int


# Dashboard


class CountValueSchema(ORMModel):
    count: int
    value: Decimal


class SummarySchema(ORMModel):
    pending: CountValueSchema
    paid: CountValueSchema
    overdue: CountValueSchema
    due_next_month: CountValueSchema
    open_total: CountValueSchema
    paid_interest: Decimal
    inflow: Decimal
    outflow: Decimal
    net: Decimal


class BalancePointSchema(ORMModel):
    as_of: date
    balance: Decimal


class BalanceSeriesSchema(ORMModel):
    bank_account_id: uuid.UUID
    name: str
    points: List[BalancePointSchema]


class BreakdownItemSchema(ORMModel):
    label: str
    value: Decimal
    percent: Decimal
    count: int


class PaymentMethodUsageSchema(ORMModel):
    payment_method: str
    total_bills: Decimal
    total_ledger: Decimal
    total_general: Decimal
    percent: Decimal


class CardUsageSchema(ORMModel):
    card_id: uuid.UUID
    name: str
    kind: CardKind
    bank: str
    credit_limit: Optional[Decimal] = None
    total_bills: Decimal
    total_ledger: Decimal
    total_general: Decimal
    transaction_count: int
    utilization_percent: Optional[Decimal] = None
    available: Optional[Decimal] = None


class MonthTotalSchema(ORMModel):
    year: int
    month: int
    total: Decimal


class DashboardResponse(ORMModel):
    """Response for GET /v1/dashboard"""

    year: int
    month: int
    summary: SummarySchema
    balance_evolution: List[BalanceSeriesSchema]
    categories: List[BreakdownItemSchema]
    vendors: List[BreakdownItemSchema]
    payment_methods: List[PaymentMethodUsageSchema]
    cards: List[CardUsageSchema]
    monthly_comparison: List[MonthTotalSchema]
    cache_key: str
    generated_at: datetime

"""SQLAlchemy ORM models

Money columns hold integer cents; the repositories convert them to Decimal.
"""

import uuid
from sqlalchemy import Column, String, BigInteger, Boolean, DateTime, Date, Integer, ForeignKey, Text, Uuid, Index
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func

Base = declarative_base()


class BankAccount(Base):
    """Bank account; ``balance_cents`` caches the ledger-derived balance"""

    __tablename__ = "bank_account"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    owner_id = Column(Text, nullable=False, index=True)
    name = Column(Text, nullable=False)
    bank = Column(Text, nullable=False)
    account_number = Column(Text, nullable=True)
    branch = Column(Text, nullable=True)
    balance_cents = Column(BigInteger, nullable=False, default=0)
    active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    entries = relationship("LedgerEntry", back_populates="bank_account", foreign_keys="LedgerEntry.bank_account_id")


class LedgerEntry(Base):
    """Append-only money movement; reversal flips ``reversed`` and never deletes"""

    __tablename__ = "ledger_entry"
    __table_args__ = (Index("ix_ledger_entry_account_date", "bank_account_id", "entry_date"),)

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    owner_id = Column(Text, nullable=False, index=True)
    bank_account_id = Column(Uuid, ForeignKey("bank_account.id"), nullable=False)
    kind = Column(String(32), nullable=False)
    origin = Column(String(32), nullable=False, default="manual")
    amount_cents = Column(BigInteger, nullable=False)
    entry_date = Column(Date, nullable=False)
    memo = Column(Text, nullable=False, default="")
    reversed = Column(Boolean, nullable=False, default=False)
    reversal_of = Column(Uuid, ForeignKey("ledger_entry.id"), nullable=True)
    bill_id = Column(Uuid, ForeignKey("bill.id"), nullable=True)
    card_id = Column(Uuid, ForeignKey("card.id"), nullable=True)
    payment_method = Column(String(32), nullable=True)
    transfer_id = Column(Uuid, nullable=True, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    bank_account = relationship("BankAccount", back_populates="entries", foreign_keys=[bank_account_id])


class Vendor(Base):
    __tablename__ = "vendor"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    owner_id = Column(Text, nullable=False, index=True)
    name = Column(Text, nullable=False)
    category = Column(Text, nullable=False, default="General")
    active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())


class Card(Base):
    __tablename__ = "card"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    owner_id = Column(Text, nullable=False, index=True)
    name = Column(Text, nullable=False)
    kind = Column(String(16), nullable=False)
    bank = Column(Text, nullable=False)
    credit_limit_cents = Column(BigInteger, nullable=True)
    statement_day = Column(Integer, nullable=True)
    active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())


class Bill(Base):
    """Payable bill; installments of one plan share ``plan_id``"""

    __tablename__ = "bill"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    owner_id = Column(Text, nullable=False, index=True)
    name = Column(Text, nullable=False)
    vendor_id = Column(Uuid, ForeignKey("vendor.id"), nullable=False)
    due_date = Column(Date, nullable=False, index=True)
    amount_cents = Column(BigInteger, nullable=False)
    status = Column(String(16), nullable=False, default="pending")
    notes = Column(Text, nullable=True)
    plan_id = Column(Uuid, nullable=True, index=True)
    installment_index = Column(Integer, nullable=True)
    installment_count = Column(Integer, nullable=True)
    installment_mode = Column(String(32), nullable=True)
    plan_total_cents = Column(BigInteger, nullable=True)
    paid_date = Column(Date, nullable=True)
    payment_method = Column(String(32), nullable=True)
    bank_account_id = Column(Uuid, ForeignKey("bank_account.id"), nullable=True)
    card_id = Column(Uuid, ForeignKey("card.id"), nullable=True)
    interest_cents = Column(BigInteger, nullable=False, default=0)
    payment_entry_id = Column(Uuid, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    vendor = relationship("Vendor")

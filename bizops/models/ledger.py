"""
Ledger Models
Chart of accounts, journal entries, general ledger log, balances and audit trail
"""
from sqlalchemy import (
    Column, String, Integer, Text, DECIMAL, Boolean, Date, ForeignKey, TIMESTAMP, UniqueConstraint
)
from sqlalchemy.orm import relationship
from datetime import datetime

from bizops.core.database import Base
from .organization import generate_id

ACCOUNT_TYPES = ("Asset", "Liability", "Equity", "Revenue", "Expense")

# Accounts whose natural balance is on the debit side
DEBIT_NORMAL_TYPES = ("Asset", "Expense")


class ChartOfAccount(Base):
    """Chart of accounts. Balance columns mirror AccountBalance."""
    __tablename__ = "chart_of_accounts"
    __table_args__ = (UniqueConstraint("organization_id", "code"),)

    id = Column(String(255), primary_key=True, default=generate_id)
    organization_id = Column(String(255), nullable=False, index=True)
    code = Column(String(20), nullable=False)
    name = Column(String(200), nullable=False)
    account_type = Column(String(20), nullable=False)
    description = Column(Text)
    is_active = Column(Boolean, default=True, nullable=False)

    debit_balance = Column(DECIMAL(12, 2), default=0, nullable=False)
    credit_balance = Column(DECIMAL(12, 2), default=0, nullable=False)

    created_at = Column(TIMESTAMP(timezone=True), default=datetime.utcnow)
    updated_at = Column(TIMESTAMP(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow)

    @property
    def is_debit_normal(self) -> bool:
        return self.account_type in DEBIT_NORMAL_TYPES


class JournalEntry(Base):
    """Journal entry header. Immutable once posted."""
    __tablename__ = "journal_entries"
    __table_args__ = (UniqueConstraint("organization_id", "entry_number"),)

    id = Column(String(255), primary_key=True, default=generate_id)
    organization_id = Column(String(255), nullable=False, index=True)
    entry_number = Column(String(30), nullable=False)
    date = Column(Date, nullable=False, index=True)
    description = Column(String(500), default="")
    reference = Column(String(100))
    status = Column(String(20), default="draft", nullable=False)  # draft, posted

    total_debit = Column(DECIMAL(12, 2), default=0, nullable=False)
    total_credit = Column(DECIMAL(12, 2), default=0, nullable=False)

    created_by = Column(String(255))
    posted_by = Column(String(255))
    posted_at = Column(TIMESTAMP(timezone=True))

    # Reversal links
    reversal_of_id = Column(String(255), ForeignKey("journal_entries.id"))
    reversed_by_id = Column(String(255), ForeignKey("journal_entries.id"))

    created_at = Column(TIMESTAMP(timezone=True), default=datetime.utcnow)
    updated_at = Column(TIMESTAMP(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow)

    lines = relationship(
        "JournalEntryLine",
        cascade="all, delete-orphan",
        order_by="JournalEntryLine.line_number",
        lazy="selectin",
    )


class JournalEntryLine(Base):
    __tablename__ = "journal_entry_lines"

    id = Column(String(255), primary_key=True, default=generate_id)
    journal_entry_id = Column(String(255), ForeignKey("journal_entries.id", ondelete="CASCADE"),
                              nullable=False, index=True)
    line_number = Column(Integer, nullable=False)
    account_id = Column(String(255), ForeignKey("chart_of_accounts.id"), nullable=False, index=True)
    description = Column(String(500))
    debit = Column(DECIMAL(12, 2), default=0, nullable=False)
    credit = Column(DECIMAL(12, 2), default=0, nullable=False)


class GeneralLedgerRecord(Base):
    """Append-only log of posted lines with the account's running balance"""
    __tablename__ = "general_ledger"

    id = Column(String(255), primary_key=True, default=generate_id)
    organization_id = Column(String(255), nullable=False, index=True)
    account_id = Column(String(255), ForeignKey("chart_of_accounts.id"), nullable=False, index=True)
    journal_entry_id = Column(String(255), ForeignKey("journal_entries.id"), nullable=False, index=True)
    journal_entry_line_id = Column(String(255), ForeignKey("journal_entry_lines.id"))
    date = Column(Date, nullable=False, index=True)
    description = Column(String(500))
    debit = Column(DECIMAL(12, 2), default=0, nullable=False)
    credit = Column(DECIMAL(12, 2), default=0, nullable=False)
    running_balance = Column(DECIMAL(12, 2), default=0, nullable=False)

    posted_by = Column(String(255))
    posted_at = Column(TIMESTAMP(timezone=True), default=datetime.utcnow)
    reversed = Column(Boolean, default=False, nullable=False)
    reversed_by = Column(String(255))

    created_at = Column(TIMESTAMP(timezone=True), default=datetime.utcnow, index=True)


class AccountBalance(Base):
    """Authoritative cumulative sums per account"""
    __tablename__ = "account_balances"
    __table_args__ = (UniqueConstraint("organization_id", "account_id"),)

    id = Column(String(255), primary_key=True, default=generate_id)
    organization_id = Column(String(255), nullable=False, index=True)
    account_id = Column(String(255), ForeignKey("chart_of_accounts.id"), nullable=False, index=True)
    balance = Column(DECIMAL(12, 2), default=0, nullable=False)
    debit_balance = Column(DECIMAL(12, 2), default=0, nullable=False)
    credit_balance = Column(DECIMAL(12, 2), default=0, nullable=False)
    last_updated = Column(TIMESTAMP(timezone=True), default=datetime.utcnow)


class AuditTrail(Base):
    """Append-only change log"""
    __tablename__ = "audit_trail"

    id = Column(String(255), primary_key=True, default=generate_id)
    organization_id = Column(String(255), nullable=False, index=True)
    table_name = Column(String(100), nullable=False, index=True)
    record_id = Column(String(255), nullable=False, index=True)
    action = Column(String(20), nullable=False)  # CREATE, UPDATE, REVERSE
    field_name = Column(String(100))
    old_value = Column(Text)
    new_value = Column(Text)
    user_id = Column(String(255))
    timestamp = Column(TIMESTAMP(timezone=True), default=datetime.utcnow, index=True)

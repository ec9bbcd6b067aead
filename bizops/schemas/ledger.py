"""Ledger Schemas"""

from pydantic import BaseModel, Field, ConfigDict, model_validator
from typing import Optional, List
from datetime import datetime, date
from decimal import Decimal
from enum import Enum


class AccountType(str, Enum):
    ASSET = "Asset"
    LIABILITY = "Liability"
    EQUITY = "Equity"
    REVENUE = "Revenue"
    EXPENSE = "Expense"


class JournalStatus(str, Enum):
    DRAFT = "draft"
    POSTED = "posted"


# Chart of accounts
class AccountCreate(BaseModel):
    code: str = Field(..., min_length=1, max_length=20)
    name: str = Field(..., min_length=1, max_length=200)
    account_type: AccountType
    description: Optional[str] = None


class AccountRead(BaseModel):
    id: str
    code: str
    name: str
    account_type: AccountType
    description: Optional[str] = None
    is_active: bool
    debit_balance: Decimal
    credit_balance: Decimal

    model_config = ConfigDict(from_attributes=True)


# Journal entries
class JournalLineCreate(BaseModel):
    account_id: str
    description: Optional[str] = None
    debit: Decimal = Field(default=Decimal("0"), ge=0, decimal_places=2)
    credit: Decimal = Field(default=Decimal("0"), ge=0, decimal_places=2)

    @model_validator(mode="after")
    def validate_one_side(self):
        if (self.debit > 0) == (self.credit > 0):
            raise ValueError("Line must have either a debit or a credit amount, not both or neither")
        return self


class JournalEntryCreate(BaseModel):
    date: date
    description: str = Field(default="", max_length=500)
    reference: Optional[str] = None
    status: JournalStatus = JournalStatus.DRAFT
    lines: List[JournalLineCreate] = Field(..., min_length=2)


class JournalEntryReverse(BaseModel):
    reversal_date: Optional[date] = None
    description: Optional[str] = None


class JournalLineRead(BaseModel):
    id: str
    line_number: int
    account_id: str
    description: Optional[str] = None
    debit: Decimal
    credit: Decimal

    model_config = ConfigDict(from_attributes=True)


class JournalEntryRead(BaseModel):
    id: str
    entry_number: str
    date: date
    description: Optional[str] = None
    reference: Optional[str] = None
    status: JournalStatus
    total_debit: Decimal
    total_credit: Decimal
    created_by: Optional[str] = None
    posted_by: Optional[str] = None
    posted_at: Optional[datetime] = None
    reversal_of_id: Optional[str] = None
    reversed_by_id: Optional[str] = None
    lines: List[JournalLineRead] = []

    model_config = ConfigDict(from_attributes=True)


# Reports
class TrialBalanceRow(BaseModel):
    account_id: str
    code: str
    name: str
    account_type: AccountType
    debit_balance: Decimal
    credit_balance: Decimal


class TrialBalance(BaseModel):
    as_of_date: Optional[date] = None
    rows: List[TrialBalanceRow]
    total_debit: Decimal
    total_credit: Decimal
    is_balanced: bool


class ReportLine(BaseModel):
    account_id: Optional[str] = None
    code: str
    name: str
    amount: Decimal


class ProfitLoss(BaseModel):
    start_date: date
    end_date: date
    revenue: List[ReportLine]
    expenses: List[ReportLine]
    total_revenue: Decimal
    total_expenses: Decimal
    net_income: Decimal


class BalanceSheet(BaseModel):
    as_of_date: Optional[date] = None
    assets: List[ReportLine]
    liabilities: List[ReportLine]
    equity: List[ReportLine]
    total_assets: Decimal
    total_liabilities: Decimal
    total_equity: Decimal
    is_balanced: bool


class LedgerRecordRead(BaseModel):
    id: str
    account_id: str
    account_code: str
    account_name: str
    journal_entry_id: str
    entry_number: str
    date: date
    description: Optional[str] = None
    debit: Decimal
    credit: Decimal
    running_balance: Decimal
    posted_by: Optional[str] = None
    posted_at: Optional[datetime] = None
    reversed: bool
    reversed_by: Optional[str] = None

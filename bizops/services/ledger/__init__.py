"""
Ledger Engine
Chart of accounts, journal posting and financial reports
"""
from .chart_of_accounts import ChartOfAccountsService, DEFAULT_ACCOUNTS
from .journal_entry import JournalEntryService
from .reports import FinancialReportService

__all__ = ["ChartOfAccountsService", "DEFAULT_ACCOUNTS", "JournalEntryService", "FinancialReportService"]

"""
Financial Report Service
Trial balance, profit and loss, balance sheet and general ledger listing
"""
from typing import Dict, List, Optional, Tuple
from datetime import date
from decimal import Decimal

from sqlalchemy.orm import Session

from bizops.core.gateway import PersistenceGateway
from bizops.models.ledger import AccountBalance, ChartOfAccount, GeneralLedgerRecord, JournalEntry
from bizops.services.calculations import ZERO, money, signed_delta

Sums = Dict[str, Tuple[Decimal, Decimal]]


class FinancialReportService:
    """
    Read-only reports. Nothing here writes to the database.

    Without an as-of date the cumulative sums come from AccountBalance.
    With one, they are rebuilt from ledger records dated on or before it;
    a reversed record still counts when its counterpart falls after that date.
    """

    def __init__(self, db: Session):
        self.db = db
        self.gateway = PersistenceGateway(db)

    def trial_balance(self, organization_id: str, as_of: Optional[date] = None) -> Dict:
        accounts = self._active_accounts(organization_id)
        sums = self._sums(organization_id, as_of)

        rows = []
        total_debit, total_credit = ZERO, ZERO
        for account in accounts:
            debit, credit = sums.get(account.id, (ZERO, ZERO))
            rows.append({
                "account_id": account.id,
                "code": account.code,
                "name": account.name,
                "account_type": account.account_type,
                "debit_balance": debit,
                "credit_balance": credit,
            })
            total_debit += debit
            total_credit += credit

        return {
            "as_of_date": as_of,
            "rows": rows,
            "total_debit": money(total_debit),
            "total_credit": money(total_credit),
            "is_balanced": total_debit == total_credit,
        }

    def profit_loss(self, organization_id: str, start: date, end: date) -> Dict:
        """Revenue and expense activity from ledger records dated within [start, end]"""
        accounts = [
            a for a in self._active_accounts(organization_id)
            if a.account_type in ("Revenue", "Expense")
        ]
        activity = {a.id: ZERO for a in accounts}
        by_id = {a.id: a for a in accounts}

        records = (
            self.gateway.scoped(GeneralLedgerRecord, organization_id)
            .filter(
                GeneralLedgerRecord.account_id.in_(list(by_id)),
                GeneralLedgerRecord.date >= start,
                GeneralLedgerRecord.date <= end,
            )
            .all()
        )
        for record in records:
            account = by_id[record.account_id]
            activity[account.id] += signed_delta(account.account_type, record.debit, record.credit)

        revenue = [self._line(a, activity[a.id]) for a in accounts if a.account_type == "Revenue"]
        expenses = [self._line(a, activity[a.id]) for a in accounts if a.account_type == "Expense"]
        total_revenue = money(sum((r["amount"] for r in revenue), ZERO))
        total_expenses = money(sum((e["amount"] for e in expenses), ZERO))

        return {
            "start_date": start,
            "end_date": end,
            "revenue": revenue,
            "expenses": expenses,
            "total_revenue": total_revenue,
            "total_expenses": total_expenses,
            "net_income": money(total_revenue - total_expenses),
        }

    def balance_sheet(self, organization_id: str, as_of: Optional[date] = None) -> Dict:
        """
        Assets, liabilities and equity with a computed current earnings line.

        Current earnings (revenue less expenses not yet closed to equity)
        belong in equity for the accounting equation to hold.
        """
        accounts = self._active_accounts(organization_id)
        sums = self._sums(organization_id, as_of)

        sections = {"Asset": [], "Liability": [], "Equity": []}
        earnings = ZERO
        for account in accounts:
            debit, credit = sums.get(account.id, (ZERO, ZERO))
            amount = signed_delta(account.account_type, debit, credit)
            if account.account_type in sections:
                sections[account.account_type].append(self._line(account, amount))
            elif account.account_type == "Revenue":
                earnings += amount
            elif account.account_type == "Expense":
                earnings -= amount

        sections["Equity"].append({
            "account_id": None,
            "code": "",
            "name": "Current Earnings",
            "amount": money(earnings),
        })

        total_assets = money(sum((l["amount"] for l in sections["Asset"]), ZERO))
        total_liabilities = money(sum((l["amount"] for l in sections["Liability"]), ZERO))
        total_equity = money(sum((l["amount"] for l in sections["Equity"]), ZERO))

        return {
            "as_of_date": as_of,
            "assets": sections["Asset"],
            "liabilities": sections["Liability"],
            "equity": sections["Equity"],
            "total_assets": total_assets,
            "total_liabilities": total_liabilities,
            "total_equity": total_equity,
            "is_balanced": total_assets == total_liabilities + total_equity,
        }

    def general_ledger(self, organization_id: str, account_id: Optional[str] = None,
                       start: Optional[date] = None, end: Optional[date] = None) -> List[Dict]:
        """Ledger records, newest first, with account and entry details"""
        query = (
            self.db.query(GeneralLedgerRecord, ChartOfAccount, JournalEntry)
            .join(ChartOfAccount, ChartOfAccount.id == GeneralLedgerRecord.account_id)
            .join(JournalEntry, JournalEntry.id == GeneralLedgerRecord.journal_entry_id)
            .filter(GeneralLedgerRecord.organization_id == organization_id)
        )
        if account_id:
            query = query.filter(GeneralLedgerRecord.account_id == account_id)
        if start:
            query = query.filter(GeneralLedgerRecord.date >= start)
        if end:
            query = query.filter(GeneralLedgerRecord.date <= end)

        rows = query.order_by(
            GeneralLedgerRecord.date.desc(), GeneralLedgerRecord.created_at.desc()
        ).all()

        return [
            {
                "id": record.id,
                "account_id": record.account_id,
                "account_code": account.code,
                "account_name": account.name,
                "journal_entry_id": record.journal_entry_id,
                "entry_number": entry.entry_number,
                "date": record.date,
                "description": record.description,
                "debit": record.debit,
                "credit": record.credit,
                "running_balance": record.running_balance,
                "posted_by": record.posted_by,
                "posted_at": record.posted_at,
                "reversed": record.reversed,
                "reversed_by": record.reversed_by,
            }
            for record, account, entry in rows
        ]

    def _active_accounts(self, organization_id: str) -> List[ChartOfAccount]:
        return (
            self.gateway.scoped(ChartOfAccount, organization_id)
            .filter(ChartOfAccount.is_active.is_(True))
            .order_by(ChartOfAccount.code)
            .all()
        )

    def _sums(self, organization_id: str, as_of: Optional[date]) -> Sums:
        """Cumulative (debit, credit) per account id"""
        if as_of is None:
            return {
                b.account_id: (money(b.debit_balance), money(b.credit_balance))
                for b in self.gateway.scoped(AccountBalance, organization_id).all()
            }

        records = (
            self.gateway.scoped(GeneralLedgerRecord, organization_id)
            .filter(GeneralLedgerRecord.date <= as_of)
            .all()
        )
        counterpart_ids = {r.reversed_by for r in records if r.reversed and r.reversed_by}
        counterpart_dates = {}
        if counterpart_ids:
            counterpart_dates = dict(
                self.db.query(JournalEntry.id, JournalEntry.date)
                .filter(JournalEntry.id.in_(counterpart_ids))
                .all()
            )

        sums: Dict[str, list] = {}
        for record in records:
            if record.reversed:
                other = counterpart_dates.get(record.reversed_by)
                if other is not None and other <= as_of:
                    continue
            debit, credit = sums.setdefault(record.account_id, [ZERO, ZERO])
            sums[record.account_id] = [debit + record.debit, credit + record.credit]
        return {k: (money(d), money(c)) for k, (d, c) in sums.items()}

    @staticmethod
    def _line(account: ChartOfAccount, amount: Decimal) -> Dict:
        return {"account_id": account.id, "code": account.code, "name": account.name, "amount": money(amount)}

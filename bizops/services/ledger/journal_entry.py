"""
Journal Entry Service
Creates balanced entries and posts them atomically to the general ledger
"""
from typing import Dict, List, Optional, Iterable
from datetime import date, datetime
from decimal import Decimal
import json

from sqlalchemy.orm import Session

from bizops.core.config import settings
from bizops.core.exceptions import (
    ConflictError, NotFoundError, UnbalancedEntryError, ValidationError
)
from bizops.core.gateway import PersistenceGateway
from bizops.core.logging import get_logger
from bizops.models.organization import JOURNAL_ENTRY_SEQUENCE, generate_id
from bizops.models.ledger import (
    AccountBalance, AuditTrail, ChartOfAccount, GeneralLedgerRecord, JournalEntry, JournalEntryLine
)
from bizops.schemas.ledger import JournalEntryCreate
from bizops.services.calculations import ZERO, money, signed_delta

logger = get_logger("ledger")


class JournalEntryService:
    """
    Journal entry lifecycle: draft, posted, and reversal by compensating entry.

    Posting keeps these in step inside one transaction:
    - one GeneralLedgerRecord per line, carrying the account's running balance
    - the AccountBalance cumulative sums and signed balance
    - the ChartOfAccount balance mirrors
    - an AuditTrail row per ledger record
    """

    def __init__(self, db: Session):
        self.db = db
        self.gateway = PersistenceGateway(db)

    def list_journal_entries(self, organization_id: str, status: Optional[str] = None,
                             start_date: Optional[date] = None, end_date: Optional[date] = None,
                             skip: int = 0, limit: int = 100) -> List[JournalEntry]:
        query = self.gateway.scoped(JournalEntry, organization_id)
        if status:
            query = query.filter(JournalEntry.status == status)
        if start_date:
            query = query.filter(JournalEntry.date >= start_date)
        if end_date:
            query = query.filter(JournalEntry.date <= end_date)
        return (
            query.order_by(JournalEntry.date.desc(), JournalEntry.created_at.desc())
            .offset(skip)
            .limit(limit)
            .all()
        )

    def get_journal_entry(self, organization_id: str, entry_id: str) -> JournalEntry:
        return self.gateway.require_scoped(JournalEntry, organization_id, entry_id, "Journal entry")

    def create_journal_entry(self, organization_id: str, data: JournalEntryCreate,
                             user_id: Optional[str] = None) -> JournalEntry:
        """
        Store a draft entry, posting it straight away when status is posted.

        Raises:
            ValidationError: a line carries both or neither of debit and credit
            UnbalancedEntryError: debits differ from credits or both are zero
            NotFoundError: a line references an unknown account
        """
        lines = [(line.account_id, money(line.debit), money(line.credit), line.description)
                 for line in data.lines]
        for _, debit, credit, _ in lines:
            self._check_line(debit, credit)
        total_debit, total_credit = self._check_balanced((d, c) for _, d, c, _ in lines)
        post_now = data.status.value == "posted"

        def work():
            self._load_accounts(organization_id, [account_id for account_id, _, _, _ in lines])
            entry = JournalEntry(
                organization_id=organization_id,
                entry_number=self._next_entry_number(organization_id),
                date=data.date,
                description=data.description,
                reference=data.reference,
                status="draft",
                total_debit=total_debit,
                total_credit=total_credit,
                created_by=user_id,
            )
            entry.lines = [
                JournalEntryLine(line_number=n, account_id=account_id, debit=debit,
                                 credit=credit, description=description)
                for n, (account_id, debit, credit, description) in enumerate(lines, start=1)
            ]
            self.gateway.add(entry)
            self.gateway.flush()
            self._audit(organization_id, "journal_entries", entry.id, "CREATE", user_id,
                        new_value={"entry_number": entry.entry_number, "total": str(total_debit)})
            if post_now:
                self._post(entry, user_id)
            return entry

        retries = settings.LEDGER_POST_MAX_RETRIES if post_now else 1
        entry = self.gateway.within_transaction(work, retries=retries)
        logger.info(f"Journal entry {entry.entry_number} created ({entry.status}) total {total_debit}")
        return entry

    def post_journal_entry(self, organization_id: str, entry_id: str,
                           user_id: Optional[str] = None) -> JournalEntry:
        """
        Move a draft entry to posted.

        All ledger records and balance updates commit together or not at
        all. Serialization failures are retried a bounded number of times.

        Raises:
            ConflictError: entry is not a draft
        """
        def work():
            entry = self.gateway.require_scoped(JournalEntry, organization_id, entry_id,
                                                "Journal entry", lock=True)
            self._post(entry, user_id)
            return entry

        entry = self.gateway.within_transaction(work, retries=settings.LEDGER_POST_MAX_RETRIES)
        logger.info(f"Journal entry {entry.entry_number} posted by {user_id or 'system'}")
        return entry

    def reverse_journal_entry(self, organization_id: str, entry_id: str, user_id: Optional[str] = None,
                              reversal_date: Optional[date] = None,
                              description: Optional[str] = None) -> JournalEntry:
        """
        Post a compensating entry with debits and credits swapped.

        The original's ledger records and the compensating records are all
        flagged as reversed, and the cumulative balance sums drop the
        original amounts, so balances only reflect non-reversed records.

        Returns:
            The compensating journal entry
        """
        def work():
            original = self.gateway.require_scoped(JournalEntry, organization_id, entry_id,
                                                   "Journal entry", lock=True)
            if original.status != "posted":
                raise ConflictError("Only posted entries can be reversed")
            if original.reversed_by_id:
                raise ConflictError("Journal entry already reversed")
            if original.reversal_of_id:
                raise ConflictError("A reversal entry cannot itself be reversed")

            reversal = JournalEntry(
                organization_id=organization_id,
                entry_number=self._next_entry_number(organization_id),
                date=reversal_date or original.date,
                description=description or f"Reversal of {original.entry_number}",
                reference=original.entry_number,
                status="draft",
                total_debit=original.total_credit,
                total_credit=original.total_debit,
                created_by=user_id,
                reversal_of_id=original.id,
            )
            reversal.lines = [
                JournalEntryLine(line_number=line.line_number, account_id=line.account_id,
                                 debit=line.credit, credit=line.debit, description=line.description)
                for line in original.lines
            ]
            self.gateway.add(reversal)
            self.gateway.flush()
            self._post(reversal, user_id, reversing=original)

            for record in self.db.query(GeneralLedgerRecord).filter(
                GeneralLedgerRecord.journal_entry_id == original.id
            ):
                record.reversed = True
                record.reversed_by = reversal.id
            original.reversed_by_id = reversal.id
            self._audit(organization_id, "journal_entries", original.id, "REVERSE", user_id,
                        field_name="reversed_by_id", new_value=reversal.id)
            self.gateway.flush()
            return reversal

        reversal = self.gateway.within_transaction(work, retries=settings.LEDGER_POST_MAX_RETRIES)
        logger.info(f"Journal entry {reversal.reference} reversed by {reversal.entry_number}")
        return reversal

    def _post(self, entry: JournalEntry, user_id: Optional[str],
              reversing: Optional[JournalEntry] = None) -> None:
        if entry.status != "draft":
            raise ConflictError(f"Journal entry {entry.entry_number} already posted")
        self._check_balanced((line.debit, line.credit) for line in entry.lines)

        org_id = entry.organization_id
        accounts = self._load_accounts(org_id, [line.account_id for line in entry.lines])
        balances = self._lock_balances(org_id, sorted(accounts))
        now = datetime.utcnow()

        for line in entry.lines:
            account = accounts[line.account_id]
            balance = balances[line.account_id]
            debit, credit = money(line.debit), money(line.credit)

            new_balance = money(balance.balance + signed_delta(account.account_type, debit, credit))
            record = GeneralLedgerRecord(
                id=generate_id(),
                organization_id=org_id,
                account_id=account.id,
                journal_entry_id=entry.id,
                journal_entry_line_id=line.id,
                date=entry.date,
                description=line.description or entry.description,
                debit=debit,
                credit=credit,
                running_balance=new_balance,
                posted_by=user_id,
                posted_at=now,
                created_at=now,
            )
            if reversing is not None:
                # Compensating line removes the original amounts from the sums
                record.reversed = True
                record.reversed_by = reversing.id
                balance.debit_balance = money(balance.debit_balance - credit)
                balance.credit_balance = money(balance.credit_balance - debit)
            else:
                balance.debit_balance = money(balance.debit_balance + debit)
                balance.credit_balance = money(balance.credit_balance + credit)
            balance.balance = new_balance
            balance.last_updated = now
            self.gateway.add(record)

            account.debit_balance = balance.debit_balance
            account.credit_balance = balance.credit_balance

            self._audit(org_id, "general_ledger", record.id,
                        "REVERSE" if reversing is not None else "CREATE", user_id,
                        new_value={"account": account.code, "debit": str(debit),
                                   "credit": str(credit), "running_balance": str(new_balance)})

        entry.status = "posted"
        entry.posted_by = user_id
        entry.posted_at = now
        self._audit(org_id, "journal_entries", entry.id, "UPDATE", user_id,
                    field_name="status", old_value="draft", new_value="posted")
        self.gateway.flush()

    def _lock_balances(self, organization_id: str, account_ids: Iterable[str]) -> Dict[str, AccountBalance]:
        """Read-or-create the balance row of each account, locked in account order"""
        account_ids = list(account_ids)
        rows = (
            self.db.query(AccountBalance)
            .filter(
                AccountBalance.organization_id == organization_id,
                AccountBalance.account_id.in_(account_ids),
            )
            .order_by(AccountBalance.account_id)
            .with_for_update()
            .all()
        )
        balances = {row.account_id: row for row in rows}
        for account_id in account_ids:
            if account_id not in balances:
                balances[account_id] = self.gateway.add(AccountBalance(
                    organization_id=organization_id,
                    account_id=account_id,
                    balance=ZERO,
                    debit_balance=ZERO,
                    credit_balance=ZERO,
                ))
        return balances

    def _load_accounts(self, organization_id: str, account_ids: Iterable[str]) -> Dict[str, ChartOfAccount]:
        wanted = set(account_ids)
        accounts = self.gateway.lock_rows(ChartOfAccount, organization_id, wanted)
        missing = wanted - set(accounts)
        if missing:
            raise NotFoundError("Account not found", details={"account_ids": sorted(missing)})
        inactive = [a.code for a in accounts.values() if not a.is_active]
        if inactive:
            raise ValidationError(f"Inactive accounts cannot be posted to: {', '.join(sorted(inactive))}")
        return accounts

    def _next_entry_number(self, organization_id: str) -> str:
        return f"JE-{self.gateway.next_sequence(organization_id, JOURNAL_ENTRY_SEQUENCE):06d}"

    @staticmethod
    def _check_line(debit: Decimal, credit: Decimal) -> None:
        if debit < 0 or credit < 0:
            raise ValidationError("Line amounts cannot be negative")
        if (debit > 0) == (credit > 0):
            raise ValidationError("Line must have either a debit or a credit amount, not both or neither")

    @staticmethod
    def _check_balanced(amounts: Iterable) -> tuple:
        total_debit, total_credit = ZERO, ZERO
        for debit, credit in amounts:
            total_debit += money(debit)
            total_credit += money(credit)
        if total_debit != total_credit or total_debit <= 0:
            raise UnbalancedEntryError(
                "Journal entry is not balanced",
                details={
                    "message": "Journal entry is not balanced",
                    "total_debit": str(total_debit),
                    "total_credit": str(total_credit),
                },
            )
        return total_debit, total_credit

    def _audit(self, organization_id: str, table_name: str, record_id: str, action: str,
               user_id: Optional[str], field_name: Optional[str] = None,
               old_value=None, new_value=None) -> None:
        def encode(value):
            if value is None or isinstance(value, str):
                return value
            return json.dumps(value, sort_keys=True)

        self.gateway.add(AuditTrail(
            organization_id=organization_id,
            table_name=table_name,
            record_id=record_id,
            action=action,
            field_name=field_name,
            old_value=encode(old_value),
            new_value=encode(new_value),
            user_id=user_id,
        ))

"""
Chart of Accounts Service
Account creation and the default chart for a new organization
"""
from typing import List, Optional

from sqlalchemy.orm import Session

from bizops.core.exceptions import ConflictError
from bizops.core.gateway import PersistenceGateway
from bizops.core.logging import get_logger
from bizops.models.ledger import ChartOfAccount
from bizops.schemas.ledger import AccountCreate

logger = get_logger("ledger")

DEFAULT_ACCOUNTS = [
    ("1000", "Cash", "Asset"),
    ("1200", "Accounts Receivable", "Asset"),
    ("1500", "Equipment", "Asset"),
    ("2000", "Accounts Payable", "Liability"),
    ("3000", "Owner's Equity", "Equity"),
    ("4000", "Service Revenue", "Revenue"),
    ("5000", "Operating Expenses", "Expense"),
    ("5100", "Rent Expense", "Expense"),
]


class ChartOfAccountsService:

    def __init__(self, db: Session):
        self.db = db
        self.gateway = PersistenceGateway(db)

    def list_accounts(self, organization_id: str, account_type: Optional[str] = None,
                      active_only: bool = False) -> List[ChartOfAccount]:
        query = self.gateway.scoped(ChartOfAccount, organization_id)
        if account_type:
            query = query.filter(ChartOfAccount.account_type == account_type)
        if active_only:
            query = query.filter(ChartOfAccount.is_active.is_(True))
        return query.order_by(ChartOfAccount.code).all()

    def get_account(self, organization_id: str, account_id: str) -> ChartOfAccount:
        return self.gateway.require_scoped(ChartOfAccount, organization_id, account_id, "Account")

    def create_account(self, organization_id: str, data: AccountCreate) -> ChartOfAccount:
        def work():
            self._ensure_code_free(organization_id, data.code)
            account = ChartOfAccount(
                organization_id=organization_id,
                code=data.code,
                name=data.name,
                account_type=data.account_type.value,
                description=data.description,
            )
            return self.gateway.add(account)

        account = self.gateway.within_transaction(work)
        logger.info(f"Account {account.code} {account.name} created")
        return account

    def initialize_default_accounts(self, organization_id: str) -> List[ChartOfAccount]:
        """Create the standard chart, skipping codes the organization already uses"""
        def work():
            existing = {
                a.code for a in self.gateway.scoped(ChartOfAccount, organization_id).all()
            }
            created = []
            for code, name, account_type in DEFAULT_ACCOUNTS:
                if code in existing:
                    continue
                created.append(self.gateway.add(ChartOfAccount(
                    organization_id=organization_id,
                    code=code,
                    name=name,
                    account_type=account_type,
                )))
            self.gateway.flush()
            return created

        created = self.gateway.within_transaction(work)
        logger.info(f"Initialized {len(created)} default accounts for organization {organization_id}")
        return self.list_accounts(organization_id)

    def _ensure_code_free(self, organization_id: str, code: str) -> None:
        clash = (
            self.gateway.scoped(ChartOfAccount, organization_id)
            .filter(ChartOfAccount.code == code)
            .first()
        )
        if clash:
            raise ConflictError(f"Account code {code} already exists")

"""
Cash Drawer Service
Open and close drawer sessions per terminal with expected-cash reconciliation
"""
from typing import List, Optional
from datetime import datetime
from decimal import Decimal

from sqlalchemy import func
from sqlalchemy.orm import Session

from bizops.core.exceptions import ConflictError
from bizops.core.gateway import PersistenceGateway
from bizops.core.logging import get_logger
from bizops.models.commerce import CashDrawer, POSPayment, POSTransaction
from bizops.schemas.commerce import CashDrawerClose, CashDrawerOpen
from bizops.services.calculations import ZERO, money

logger = get_logger("commerce")


class CashDrawerService:

    def __init__(self, db: Session):
        self.db = db
        self.gateway = PersistenceGateway(db)

    def list_drawers(self, organization_id: str, terminal_id: Optional[str] = None,
                     status: Optional[str] = None) -> List[CashDrawer]:
        query = self.gateway.scoped(CashDrawer, organization_id)
        if terminal_id:
            query = query.filter(CashDrawer.terminal_id == terminal_id)
        if status:
            query = query.filter(CashDrawer.status == status)
        return query.order_by(CashDrawer.opened_at.desc()).all()

    def open_cash_drawer(self, organization_id: str, user_id: Optional[str],
                         data: CashDrawerOpen) -> CashDrawer:
        """Start a drawer session; a terminal may only have one open drawer"""
        def work():
            already_open = (
                self.gateway.scoped(CashDrawer, organization_id)
                .filter(CashDrawer.terminal_id == data.terminal_id, CashDrawer.status == "open")
                .with_for_update()
                .first()
            )
            if already_open:
                raise ConflictError(f"Terminal {data.terminal_id} already has an open cash drawer")
            return self.gateway.add(CashDrawer(
                organization_id=organization_id,
                terminal_id=data.terminal_id,
                status="open",
                opened_by=user_id,
                opened_at=datetime.utcnow(),
                opening_amount=money(data.opening_amount),
            ))

        drawer = self.gateway.within_transaction(work)
        logger.info(f"Cash drawer opened on terminal {drawer.terminal_id} with {drawer.opening_amount}")
        return drawer

    def close_cash_drawer(self, organization_id: str, drawer_id: str, user_id: Optional[str],
                          data: CashDrawerClose) -> CashDrawer:
        """
        Close a drawer and reconcile it.

        Expected cash is the opening float plus cash payments on completed
        sales rung up at the same terminal since the drawer was opened.
        """
        def work():
            drawer = self.gateway.require_scoped(CashDrawer, organization_id, drawer_id,
                                                 "Cash drawer", lock=True)
            if drawer.status != "open":
                raise ConflictError("Cash drawer is already closed")

            expected = money(drawer.opening_amount) + self._cash_taken(organization_id, drawer)
            closing = money(data.closing_amount)
            drawer.status = "closed"
            drawer.closed_by = user_id
            drawer.closed_at = datetime.utcnow()
            drawer.closing_amount = closing
            drawer.expected_amount = money(expected)
            drawer.variance = money(closing - expected)
            drawer.notes = data.notes
            self.gateway.flush()
            return drawer

        drawer = self.gateway.within_transaction(work)
        logger.info(f"Cash drawer {drawer.id} closed: expected {drawer.expected_amount}, "
                    f"variance {drawer.variance}")
        return drawer

    def _cash_taken(self, organization_id: str, drawer: CashDrawer) -> Decimal:
        total = (
            self.db.query(func.coalesce(func.sum(POSPayment.amount), 0))
            .join(POSTransaction, POSTransaction.id == POSPayment.transaction_id)
            .filter(
                POSTransaction.organization_id == organization_id,
                POSTransaction.terminal_id == drawer.terminal_id,
                POSTransaction.status == "completed",
                POSTransaction.created_at >= drawer.opened_at,
                POSPayment.method == "cash",
            )
            .scalar()
        )
        return money(total or ZERO)

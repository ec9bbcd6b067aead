"""
Cash Drawer API endpoints
"""

from typing import List, Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from bizops.api import deps
from bizops.api.deps import RequestContext
from bizops.schemas.commerce import CashDrawerClose, CashDrawerOpen, CashDrawerRead
from bizops.schemas.common import Envelope, ok
from bizops.services.commerce import CashDrawerService

router = APIRouter()


@router.get("", response_model=Envelope[List[CashDrawerRead]])
def list_cash_drawers(
    terminal_id: Optional[str] = None,
    status_filter: Optional[str] = Query(None, alias="status"),
    db: Session = Depends(deps.get_db),
    ctx: RequestContext = Depends(deps.get_request_context),
):
    return ok(CashDrawerService(db).list_drawers(ctx.organization_id, terminal_id, status_filter))


@router.post("", response_model=Envelope[CashDrawerRead], status_code=status.HTTP_201_CREATED)
def open_cash_drawer(
    drawer: CashDrawerOpen,
    db: Session = Depends(deps.get_db),
    ctx: RequestContext = Depends(deps.get_request_context),
):
    return ok(CashDrawerService(db).open_cash_drawer(ctx.organization_id, ctx.user_id, drawer))


@router.post("/{drawer_id}/close", response_model=Envelope[CashDrawerRead])
def close_cash_drawer(
    drawer_id: str,
    close: CashDrawerClose,
    db: Session = Depends(deps.get_db),
    ctx: RequestContext = Depends(deps.get_request_context),
):
    """
    Close a drawer, recording expected cash and the variance against the count.
    """
    return ok(CashDrawerService(db).close_cash_drawer(ctx.organization_id, drawer_id, ctx.user_id, close))

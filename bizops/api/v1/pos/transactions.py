"""
POS Transactions API endpoints
"""

from typing import Optional
from datetime import date
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from bizops.api import deps
from bizops.api.deps import RequestContext
from bizops.schemas.commerce import SaleCreate, SaleRead, SaleVoid, TransactionStatus
from bizops.schemas.common import Envelope, Page, ok
from bizops.services.commerce import SaleService

router = APIRouter()


@router.get("", response_model=Envelope[Page[SaleRead]])
def list_transactions(
    status_filter: Optional[TransactionStatus] = Query(None, alias="status"),
    cashier_id: Optional[str] = None,
    customer_id: Optional[str] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    pagination: dict = Depends(deps.get_pagination_params),
    db: Session = Depends(deps.get_db),
    ctx: RequestContext = Depends(deps.get_request_context),
):
    page = SaleService(db).list_sales(
        ctx.organization_id,
        status=status_filter.value if status_filter else None,
        cashier_id=cashier_id,
        customer_id=customer_id,
        start_date=start_date,
        end_date=end_date,
        **pagination,
    )
    return ok(page)


@router.post("", response_model=Envelope[SaleRead], status_code=status.HTTP_201_CREATED)
def create_transaction(
    sale: SaleCreate,
    db: Session = Depends(deps.get_db),
    ctx: RequestContext = Depends(deps.get_request_context),
):
    """
    Ring up a sale.

    Product stock is checked and decremented atomically; any shortfall
    fails the whole sale with InsufficientStock.
    """
    return ok(SaleService(db).create_sale(ctx.organization_id, ctx.user_id, sale))


@router.get("/{transaction_id}", response_model=Envelope[SaleRead])
def get_transaction(
    transaction_id: str,
    db: Session = Depends(deps.get_db),
    ctx: RequestContext = Depends(deps.get_request_context),
):
    return ok(SaleService(db).get_sale(ctx.organization_id, transaction_id))


@router.post("/{transaction_id}/void", response_model=Envelope[SaleRead])
def void_transaction(
    transaction_id: str,
    void: SaleVoid,
    db: Session = Depends(deps.get_db),
    ctx: RequestContext = Depends(deps.get_request_context),
):
    """Void a completed sale and return its products to stock"""
    return ok(SaleService(db).void_sale(ctx.organization_id, transaction_id, void.reason, ctx.user_id))

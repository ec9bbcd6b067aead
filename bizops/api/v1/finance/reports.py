"""
Financial Reports API endpoints
"""

from typing import List, Optional
from datetime import date
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from bizops.api import deps
from bizops.api.deps import RequestContext
from bizops.core.exceptions import ValidationError
from bizops.schemas.common import Envelope, ok
from bizops.schemas.ledger import BalanceSheet, LedgerRecordRead, ProfitLoss, TrialBalance
from bizops.services.ledger import FinancialReportService

router = APIRouter()


@router.get("/trial-balance", response_model=Envelope[TrialBalance])
def trial_balance(
    as_of_date: Optional[date] = None,
    db: Session = Depends(deps.get_db),
    ctx: RequestContext = Depends(deps.get_request_context),
):
    return ok(FinancialReportService(db).trial_balance(ctx.organization_id, as_of_date))


@router.get("/profit-loss", response_model=Envelope[ProfitLoss])
def profit_loss(
    start_date: date = Query(...),
    end_date: date = Query(...),
    db: Session = Depends(deps.get_db),
    ctx: RequestContext = Depends(deps.get_request_context),
):
    """Revenue and expense activity between two dates, both inclusive"""
    if start_date > end_date:
        raise ValidationError("start_date must not be after end_date")
    return ok(FinancialReportService(db).profit_loss(ctx.organization_id, start_date, end_date))


@router.get("/balance-sheet", response_model=Envelope[BalanceSheet])
def balance_sheet(
    as_of_date: Optional[date] = None,
    db: Session = Depends(deps.get_db),
    ctx: RequestContext = Depends(deps.get_request_context),
):
    return ok(FinancialReportService(db).balance_sheet(ctx.organization_id, as_of_date))


@router.get("/general-ledger", response_model=Envelope[List[LedgerRecordRead]])
def general_ledger(
    account_id: Optional[str] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    db: Session = Depends(deps.get_db),
    ctx: RequestContext = Depends(deps.get_request_context),
):
    """Posted ledger records, newest first"""
    records = FinancialReportService(db).general_ledger(ctx.organization_id, account_id, start_date, end_date)
    return ok(records)

"""
Chart of Accounts API endpoints
"""

from typing import List, Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from bizops.api import deps
from bizops.api.deps import RequestContext
from bizops.schemas.common import Envelope, ok
from bizops.schemas.ledger import AccountCreate, AccountRead, AccountType
from bizops.services.ledger import ChartOfAccountsService

router = APIRouter()


@router.get("", response_model=Envelope[List[AccountRead]])
def list_accounts(
    account_type: Optional[AccountType] = None,
    active_only: bool = Query(False),
    db: Session = Depends(deps.get_db),
    ctx: RequestContext = Depends(deps.get_request_context),
):
    service = ChartOfAccountsService(db)
    return ok(service.list_accounts(
        ctx.organization_id,
        account_type=account_type.value if account_type else None,
        active_only=active_only,
    ))


@router.post("", response_model=Envelope[AccountRead], status_code=status.HTTP_201_CREATED)
def create_account(
    account: AccountCreate,
    db: Session = Depends(deps.get_db),
    ctx: RequestContext = Depends(deps.get_request_context),
):
    """Add an account; codes are unique within the organization"""
    return ok(ChartOfAccountsService(db).create_account(ctx.organization_id, account))


@router.post("/initialize", response_model=Envelope[List[AccountRead]], status_code=status.HTTP_201_CREATED)
def initialize_accounts(
    db: Session = Depends(deps.get_db),
    ctx: RequestContext = Depends(deps.get_request_context),
):
    """
    Seed the standard chart of accounts.

    Codes that already exist are left untouched, so the call can be repeated.
    """
    return ok(ChartOfAccountsService(db).initialize_default_accounts(ctx.organization_id))


@router.get("/{account_id}", response_model=Envelope[AccountRead])
def get_account(
    account_id: str,
    db: Session = Depends(deps.get_db),
    ctx: RequestContext = Depends(deps.get_request_context),
):
    return ok(ChartOfAccountsService(db).get_account(ctx.organization_id, account_id))

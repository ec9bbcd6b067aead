"""
Journal Entries API endpoints
"""

from typing import List, Optional
from datetime import date
from fastapi import APIRouter, Body, Depends, Query, status
from sqlalchemy.orm import Session

from bizops.api import deps
from bizops.api.deps import RequestContext
from bizops.schemas.common import Envelope, ok
from bizops.schemas.ledger import JournalEntryCreate, JournalEntryRead, JournalEntryReverse, JournalStatus
from bizops.services.ledger import JournalEntryService

router = APIRouter()


@router.get("", response_model=Envelope[List[JournalEntryRead]])
def list_journal_entries(
    status_filter: Optional[JournalStatus] = Query(None, alias="status"),
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=1000),
    db: Session = Depends(deps.get_db),
    ctx: RequestContext = Depends(deps.get_request_context),
):
    """
    Retrieve journal entries, newest first, with optional filtering.
    """
    entries = JournalEntryService(db).list_journal_entries(
        ctx.organization_id,
        status=status_filter.value if status_filter else None,
        start_date=start_date,
        end_date=end_date,
        skip=skip,
        limit=limit,
    )
    return ok(entries)


@router.post("", response_model=Envelope[JournalEntryRead], status_code=status.HTTP_201_CREATED)
def create_journal_entry(
    entry: JournalEntryCreate,
    db: Session = Depends(deps.get_db),
    ctx: RequestContext = Depends(deps.get_request_context),
):
    """
    Create a journal entry.

    Debits must equal credits. With ``status: posted`` the entry is posted
    to the general ledger in the same transaction.
    """
    return ok(JournalEntryService(db).create_journal_entry(ctx.organization_id, entry, ctx.user_id))


@router.get("/{entry_id}", response_model=Envelope[JournalEntryRead])
def get_journal_entry(
    entry_id: str,
    db: Session = Depends(deps.get_db),
    ctx: RequestContext = Depends(deps.get_request_context),
):
    return ok(JournalEntryService(db).get_journal_entry(ctx.organization_id, entry_id))


@router.post("/{entry_id}/post", response_model=Envelope[JournalEntryRead])
def post_journal_entry(
    entry_id: str,
    db: Session = Depends(deps.get_db),
    ctx: RequestContext = Depends(deps.get_request_context),
):
    """
    Post a draft journal entry to the general ledger.
    """
    return ok(JournalEntryService(db).post_journal_entry(ctx.organization_id, entry_id, ctx.user_id))


@router.post("/{entry_id}/reverse", response_model=Envelope[JournalEntryRead],
             status_code=status.HTTP_201_CREATED)
def reverse_journal_entry(
    entry_id: str,
    reverse: Optional[JournalEntryReverse] = Body(None),
    db: Session = Depends(deps.get_db),
    ctx: RequestContext = Depends(deps.get_request_context),
):
    """
    Reverse a posted entry with a compensating entry, which is returned.
    """
    reverse = reverse or JournalEntryReverse()
    reversal = JournalEntryService(db).reverse_journal_entry(
        ctx.organization_id,
        entry_id,
        ctx.user_id,
        reversal_date=reverse.reversal_date,
        description=reverse.description,
    )
    return ok(reversal)

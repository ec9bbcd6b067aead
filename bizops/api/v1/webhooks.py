"""
Chat provider webhook endpoints
"""

from typing import Optional
from fastapi import APIRouter, Depends, Query
from fastapi.responses import PlainTextResponse
from sqlalchemy.orm import Session

from bizops.api import deps
from bizops.schemas.common import Envelope, ok
from bizops.schemas.messaging import WebhookEvent
from bizops.services.messaging import WebhookService

router = APIRouter()


@router.get("/webhook/whatsapp", response_class=PlainTextResponse)
def verify_webhook(
    mode: Optional[str] = Query(None, alias="hub.mode"),
    verify_token: Optional[str] = Query(None, alias="hub.verify_token"),
    challenge: Optional[str] = Query(None, alias="hub.challenge"),
    db: Session = Depends(deps.get_db),
):
    """Subscription handshake: echo the challenge when the token matches"""
    return PlainTextResponse(WebhookService(db).verify(mode, verify_token, challenge))


@router.post("/webhook/whatsapp", response_model=Envelope[dict])
def receive_webhook(
    event: WebhookEvent,
    db: Session = Depends(deps.get_db),
):
    """
    Store inbound messages.
    """
    stored = WebhookService(db).receive(event)
    return ok({"received": len(stored)})

"""
Messaging Schemas
Inbound chat-provider webhook payload
"""
from pydantic import BaseModel, Field
from typing import Optional, List


class WebhookText(BaseModel):
    body: str = ""


class WebhookMessage(BaseModel):
    from_: str = Field(..., alias="from")
    id: str
    type: str = "text"
    timestamp: Optional[str] = None
    text: Optional[WebhookText] = None


class WebhookValue(BaseModel):
    messaging_product: Optional[str] = None
    messages: List[WebhookMessage] = []


class WebhookChange(BaseModel):
    field: str
    value: WebhookValue


class WebhookEntry(BaseModel):
    id: Optional[str] = None
    changes: List[WebhookChange] = []


class WebhookEvent(BaseModel):
    object: Optional[str] = None
    entry: List[WebhookEntry] = []

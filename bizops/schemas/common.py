"""
Common Schemas
Response envelopes shared by every endpoint
"""
from pydantic import BaseModel, Field
from typing import Any, Generic, List, Optional, TypeVar

T = TypeVar("T")


class Envelope(BaseModel, Generic[T]):
    """Success envelope: ``{"success": true, "data": ...}``"""
    success: bool = True
    data: T


class ErrorEnvelope(BaseModel):
    """Failure envelope rendered by the exception handlers"""
    success: bool = False
    error: str = Field(..., description="Error kind discriminator")
    details: Optional[Any] = None


class Page(BaseModel, Generic[T]):
    items: List[T]
    total: int
    page: int
    limit: int


def ok(data: Any) -> dict:
    return {"success": True, "data": data}

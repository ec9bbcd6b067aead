"""
Application Exceptions
Each error carries the discriminator rendered in the failure envelope
"""
from typing import Any, Optional


class BizOpsException(Exception):
    """Base exception for the application"""
    kind = "Internal"
    status_code = 500

    def __init__(self, message: str = "", details: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_details(self) -> Any:
        return self.details if self.details is not None else self.message


class ValidationError(BizOpsException):
    """Raised when request data violates schema or business rules"""
    kind = "Invalid"
    status_code = 400


class NotFoundError(BizOpsException):
    """Raised when an entity is absent in the organization scope"""
    kind = "NotFound"
    status_code = 404


class ConflictError(BizOpsException):
    """Raised on overlaps, duplicates and illegal state changes"""
    kind = "Conflict"
    status_code = 409


class UnbalancedEntryError(BizOpsException):
    """Raised when journal entry debits do not equal credits"""
    kind = "Unbalanced"
    status_code = 400


class InsufficientStockError(BizOpsException):
    """Raised when a movement would take stock below zero"""
    kind = "InsufficientStock"
    status_code = 400


class UnauthorizedError(BizOpsException):
    """Raised when no organization context can be resolved"""
    kind = "Unauthorized"
    status_code = 401


class InternalError(BizOpsException):
    """Raised on database or invariant failures"""
    kind = "Internal"
    status_code = 500


class ForbiddenError(UnauthorizedError):
    """Raised when a presented credential is recognised as wrong"""
    status_code = 403

"""
BizOps SQLAlchemy Models
Database models for every tenant-scoped subsystem
"""

# Import all models to ensure they are registered with SQLAlchemy
from .organization import Organization, DocumentSequence, generate_id
from .scheduling import Customer, Vehicle, Staff, Service, Booking, booking_services
from .ledger import (
    ChartOfAccount, JournalEntry, JournalEntryLine, GeneralLedgerRecord,
    AccountBalance, AuditTrail
)
from .commerce import Product, InventoryMovement, POSTransaction, POSItem, POSPayment, CashDrawer
from .signalling import WebRTCSignal, ScreenShare
from .messaging import MessageSettings, MessageThread, Message

__all__ = [
    "Organization",
    "DocumentSequence",
    "generate_id",
    "Customer",
    "Vehicle",
    "Staff",
    "Service",
    "Booking",
    "booking_services",
    "ChartOfAccount",
    "JournalEntry",
    "JournalEntryLine",
    "GeneralLedgerRecord",
    "AccountBalance",
    "AuditTrail",
    "Product",
    "InventoryMovement",
    "POSTransaction",
    "POSItem",
    "POSPayment",
    "CashDrawer",
    "WebRTCSignal",
    "ScreenShare",
    "MessageSettings",
    "MessageThread",
    "Message",
]

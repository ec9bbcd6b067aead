"""
Commerce Models
Products, inventory movements, point-of-sale transactions and cash drawers
"""
from sqlalchemy import (
    Column, String, Integer, Text, DECIMAL, Boolean, ForeignKey, TIMESTAMP
)
from sqlalchemy.orm import relationship
from datetime import datetime

from bizops.core.database import Base
from .organization import generate_id

MOVEMENT_TYPES = ("in", "out", "adjustment", "transfer")
TRANSACTION_STATUSES = ("pending", "completed", "voided", "refunded")
PAYMENT_METHODS = ("cash", "card", "mobile", "bank_transfer", "check", "store_credit")


class Product(Base):
    __tablename__ = "products"

    id = Column(String(255), primary_key=True, default=generate_id)
    organization_id = Column(String(255), nullable=False, index=True)
    sku = Column(String(100), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text)
    unit_of_measure = Column(String(20), default="each")
    cost_price = Column(DECIMAL(10, 2), default=0, nullable=False)
    selling_price = Column(DECIMAL(10, 2), default=0, nullable=False)
    current_stock = Column(Integer, default=0, nullable=False)
    reorder_point = Column(Integer, default=0, nullable=False)
    is_active = Column(Boolean, default=True)

    created_at = Column(TIMESTAMP(timezone=True), default=datetime.utcnow)
    updated_at = Column(TIMESTAMP(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow)
    deleted_at = Column(TIMESTAMP(timezone=True), index=True)


class InventoryMovement(Base):
    """Append-only stock change with before and after snapshots"""
    __tablename__ = "inventory_movements"

    id = Column(String(255), primary_key=True, default=generate_id)
    organization_id = Column(String(255), nullable=False, index=True)
    product_id = Column(String(255), ForeignKey("products.id"), nullable=False, index=True)
    movement_type = Column(String(20), nullable=False)
    quantity = Column(Integer, nullable=False)
    previous_quantity = Column(Integer, nullable=False)
    new_quantity = Column(Integer, nullable=False)
    unit_cost = Column(DECIMAL(10, 2), default=0)
    reference = Column(String(100))
    reference_type = Column(String(50))  # sale, void, manual, adjustment
    notes = Column(Text)
    created_by = Column(String(255))
    created_at = Column(TIMESTAMP(timezone=True), default=datetime.utcnow, index=True)


class POSTransaction(Base):
    """Point-of-sale transaction. Totals are computed once at creation."""
    __tablename__ = "pos_transactions"

    id = Column(String(255), primary_key=True, default=generate_id)
    organization_id = Column(String(255), nullable=False, index=True)
    transaction_number = Column(String(50), unique=True, nullable=False)
    customer_id = Column(String(255), ForeignKey("customers.id"), index=True)
    cashier_id = Column(String(255), index=True)
    terminal_id = Column(String(100), index=True)
    status = Column(String(20), default="completed", nullable=False, index=True)

    sub_total = Column(DECIMAL(12, 2), default=0, nullable=False)
    tax_amount = Column(DECIMAL(12, 2), default=0, nullable=False)
    discount_amount = Column(DECIMAL(12, 2), default=0, nullable=False)
    total_amount = Column(DECIMAL(12, 2), default=0, nullable=False)
    tender_amount = Column(DECIMAL(12, 2), default=0, nullable=False)
    change_amount = Column(DECIMAL(12, 2), default=0, nullable=False)
    notes = Column(Text, default="")

    voided_by = Column(String(255))
    voided_at = Column(TIMESTAMP(timezone=True))

    created_at = Column(TIMESTAMP(timezone=True), default=datetime.utcnow, index=True)
    updated_at = Column(TIMESTAMP(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow)

    items = relationship("POSItem", cascade="all, delete-orphan", lazy="selectin")
    payments = relationship("POSPayment", cascade="all, delete-orphan", lazy="selectin")


class POSItem(Base):
    __tablename__ = "pos_items"

    id = Column(String(255), primary_key=True, default=generate_id)
    transaction_id = Column(String(255), ForeignKey("pos_transactions.id", ondelete="CASCADE"),
                            nullable=False, index=True)
    product_id = Column(String(255), ForeignKey("products.id"), index=True)
    service_id = Column(String(255), ForeignKey("services.id"), index=True)
    item_name = Column(String(255), nullable=False)
    quantity = Column(Integer, nullable=False)
    unit_price = Column(DECIMAL(10, 2), nullable=False)
    discount_percent = Column(DECIMAL(5, 2), default=0, nullable=False)
    discount_amount = Column(DECIMAL(10, 2), default=0, nullable=False)
    tax_rate = Column(DECIMAL(5, 2), default=0, nullable=False)
    tax_amount = Column(DECIMAL(10, 2), default=0, nullable=False)
    total_price = Column(DECIMAL(12, 2), nullable=False)


class POSPayment(Base):
    __tablename__ = "pos_payments"

    id = Column(String(255), primary_key=True, default=generate_id)
    transaction_id = Column(String(255), ForeignKey("pos_transactions.id", ondelete="CASCADE"),
                            nullable=False, index=True)
    method = Column(String(30), nullable=False)
    amount = Column(DECIMAL(12, 2), nullable=False)
    reference = Column(String(100))
    status = Column(String(20), default="completed", nullable=False)
    processed_at = Column(TIMESTAMP(timezone=True), default=datetime.utcnow)


class CashDrawer(Base):
    """Cash drawer session for one terminal"""
    __tablename__ = "cash_drawers"

    id = Column(String(255), primary_key=True, default=generate_id)
    organization_id = Column(String(255), nullable=False, index=True)
    terminal_id = Column(String(100), nullable=False, index=True)
    status = Column(String(20), default="open", nullable=False)  # open, closed

    opened_by = Column(String(255))
    opened_at = Column(TIMESTAMP(timezone=True), default=datetime.utcnow)
    opening_amount = Column(DECIMAL(12, 2), default=0, nullable=False)

    closed_by = Column(String(255))
    closed_at = Column(TIMESTAMP(timezone=True))
    closing_amount = Column(DECIMAL(12, 2))
    expected_amount = Column(DECIMAL(12, 2))
    variance = Column(DECIMAL(12, 2))
    notes = Column(Text)

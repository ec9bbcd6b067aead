"""Commerce Schemas"""

from pydantic import BaseModel, Field, ConfigDict, model_validator
from typing import Optional, List
from datetime import datetime
from decimal import Decimal
from enum import Enum


class MovementType(str, Enum):
    IN = "in"
    OUT = "out"
    ADJUSTMENT = "adjustment"
    TRANSFER = "transfer"


class TransactionStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    VOIDED = "voided"
    REFUNDED = "refunded"


class PaymentMethod(str, Enum):
    CASH = "cash"
    CARD = "card"
    MOBILE = "mobile"
    BANK_TRANSFER = "bank_transfer"
    CHECK = "check"
    STORE_CREDIT = "store_credit"


# Products and inventory
class ProductCreate(BaseModel):
    sku: str = Field(..., min_length=1, max_length=100)
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    unit_of_measure: str = "each"
    cost_price: Decimal = Field(default=Decimal("0"), ge=0, decimal_places=2)
    selling_price: Decimal = Field(default=Decimal("0"), ge=0, decimal_places=2)
    current_stock: int = Field(default=0, ge=0)
    reorder_point: int = Field(default=0, ge=0)


class ProductRead(BaseModel):
    id: str
    sku: str
    name: str
    description: Optional[str] = None
    unit_of_measure: Optional[str] = None
    cost_price: Decimal
    selling_price: Decimal
    current_stock: int
    reorder_point: int
    is_active: bool

    model_config = ConfigDict(from_attributes=True)


class InventoryAdjustment(BaseModel):
    product_id: str
    movement_type: MovementType
    quantity: int = Field(..., ge=0)
    unit_cost: Optional[Decimal] = Field(None, ge=0)
    reference: Optional[str] = None
    notes: Optional[str] = None

    @model_validator(mode="after")
    def validate_quantity(self):
        if self.movement_type == MovementType.TRANSFER:
            raise ValueError("Transfers are not supported as manual adjustments")
        if self.movement_type != MovementType.ADJUSTMENT and self.quantity == 0:
            raise ValueError("Quantity must be greater than zero")
        return self


class MovementRead(BaseModel):
    id: str
    product_id: str
    movement_type: MovementType
    quantity: int
    previous_quantity: int
    new_quantity: int
    unit_cost: Optional[Decimal] = None
    reference: Optional[str] = None
    reference_type: Optional[str] = None
    notes: Optional[str] = None
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


# Sales
class SaleItemCreate(BaseModel):
    product_id: Optional[str] = None
    service_id: Optional[str] = None
    quantity: int = Field(..., gt=0)
    discount_percent: Decimal = Field(default=Decimal("0"), ge=0, le=100)
    discount_amount: Decimal = Field(default=Decimal("0"), ge=0)
    tax_rate: Decimal = Field(default=Decimal("0"), ge=0, le=100)

    @model_validator(mode="after")
    def validate_target(self):
        if bool(self.product_id) == bool(self.service_id):
            raise ValueError("Item must reference exactly one of product_id or service_id")
        return self


class PaymentCreate(BaseModel):
    method: PaymentMethod
    amount: Decimal = Field(..., gt=0, decimal_places=2)
    reference: Optional[str] = None


class SaleCreate(BaseModel):
    customer_id: Optional[str] = None
    terminal_id: Optional[str] = None
    items: List[SaleItemCreate] = Field(..., min_length=1)
    payments: List[PaymentCreate] = []
    discount: Decimal = Field(default=Decimal("0"), ge=0)
    notes: str = ""


class SaleVoid(BaseModel):
    reason: str = Field(..., min_length=1, max_length=500)


class SaleItemRead(BaseModel):
    id: str
    product_id: Optional[str] = None
    service_id: Optional[str] = None
    item_name: str
    quantity: int
    unit_price: Decimal
    discount_percent: Decimal
    discount_amount: Decimal
    tax_rate: Decimal
    tax_amount: Decimal
    total_price: Decimal

    model_config = ConfigDict(from_attributes=True)


class PaymentRead(BaseModel):
    id: str
    method: str
    amount: Decimal
    reference: Optional[str] = None
    status: str
    processed_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class SaleRead(BaseModel):
    id: str
    transaction_number: str
    customer_id: Optional[str] = None
    cashier_id: Optional[str] = None
    terminal_id: Optional[str] = None
    status: TransactionStatus
    sub_total: Decimal
    tax_amount: Decimal
    discount_amount: Decimal
    total_amount: Decimal
    tender_amount: Decimal
    change_amount: Decimal
    notes: Optional[str] = None
    voided_by: Optional[str] = None
    voided_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    items: List[SaleItemRead] = []
    payments: List[PaymentRead] = []

    model_config = ConfigDict(from_attributes=True)


# Cash drawers
class CashDrawerOpen(BaseModel):
    terminal_id: str = Field(..., min_length=1, max_length=100)
    opening_amount: Decimal = Field(default=Decimal("0"), ge=0)


class CashDrawerClose(BaseModel):
    closing_amount: Decimal = Field(..., ge=0)
    notes: Optional[str] = None


class CashDrawerRead(BaseModel):
    id: str
    terminal_id: str
    status: str
    opened_by: Optional[str] = None
    opened_at: Optional[datetime] = None
    opening_amount: Decimal
    closed_by: Optional[str] = None
    closed_at: Optional[datetime] = None
    closing_amount: Optional[Decimal] = None
    expected_amount: Optional[Decimal] = None
    variance: Optional[Decimal] = None
    notes: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)

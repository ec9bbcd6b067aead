"""Scheduling Schemas"""

from pydantic import BaseModel, Field, ConfigDict, field_validator
from typing import Optional, List, Dict
from datetime import datetime, date
from decimal import Decimal
from enum import Enum
import re

HHMM = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


class BookingStatus(str, Enum):
    SCHEDULED = "scheduled"
    CONFIRMED = "confirmed"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no_show"


# Master data
class CustomerCreate(BaseModel):
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(default="", max_length=100)
    email: Optional[str] = None
    phone: Optional[str] = None
    notes: Optional[str] = None


class CustomerRead(BaseModel):
    id: str
    first_name: str
    last_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class VehicleCreate(BaseModel):
    customer_id: str
    make: Optional[str] = None
    model: Optional[str] = None
    year: Optional[int] = Field(None, ge=1900, le=2100)
    license_plate: Optional[str] = None
    vin: Optional[str] = None


class VehicleRead(BaseModel):
    id: str
    customer_id: str
    make: Optional[str] = None
    model: Optional[str] = None
    year: Optional[int] = None
    license_plate: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class StaffCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    email: Optional[str] = None
    role: str = "technician"


class StaffRead(BaseModel):
    id: str
    name: str
    email: Optional[str] = None
    role: Optional[str] = None
    is_active: bool = True

    model_config = ConfigDict(from_attributes=True)


class ServiceCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    price: Decimal = Field(..., ge=0, decimal_places=2)
    duration_minutes: int = Field(60, gt=0)


class ServiceRead(BaseModel):
    id: str
    name: str
    price: Decimal
    duration_minutes: int

    model_config = ConfigDict(from_attributes=True)


# Organization settings
class DayHours(BaseModel):
    open: Optional[str] = None
    close: Optional[str] = None

    @field_validator("open", "close")
    @classmethod
    def validate_hhmm(cls, v):
        if v is not None and not HHMM.match(v):
            raise ValueError("Time must be HH:MM")
        return v


class OrganizationCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    timezone: str = "UTC"
    business_hours: Optional[Dict[str, DayHours]] = None


class BookingSettingsUpdate(BaseModel):
    timezone: Optional[str] = None
    business_hours: Optional[Dict[str, DayHours]] = None
    slot_duration_minutes: Optional[int] = Field(None, gt=0)
    buffer_minutes: Optional[int] = Field(None, ge=0)
    min_advance_hours: Optional[int] = Field(None, ge=0)
    max_advance_hours: Optional[int] = Field(None, ge=0)
    cancellation_window_hours: Optional[int] = Field(None, ge=0)
    require_approval: Optional[bool] = None
    allow_cancellation: Optional[bool] = None


class BookingSettingsRead(BaseModel):
    id: str
    name: str
    timezone: str
    business_hours: Dict[str, Dict[str, Optional[str]]]
    slot_duration_minutes: int
    buffer_minutes: int
    min_advance_hours: int
    max_advance_hours: int
    cancellation_window_hours: int
    require_approval: bool
    allow_cancellation: bool

    model_config = ConfigDict(from_attributes=True)


# Bookings
class BookingCreate(BaseModel):
    customer_id: str
    service_ids: List[str] = Field(..., min_length=1)
    start_time: datetime
    end_time: datetime
    staff_id: Optional[str] = None
    vehicle_id: Optional[str] = None
    notes: str = ""
    internal_notes: str = ""


class BookingPatch(BaseModel):
    """Partial update. Fields left out or sent as null are unchanged, as are zero timestamps."""
    vehicle_id: Optional[str] = None
    staff_id: Optional[str] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    status: Optional[BookingStatus] = None
    service_ids: Optional[List[str]] = None
    notes: Optional[str] = None
    internal_notes: Optional[str] = None


class BookingStatusUpdate(BaseModel):
    status: BookingStatus


class BookingFilter(BaseModel):
    status: Optional[BookingStatus] = None
    customer_id: Optional[str] = None
    staff_id: Optional[str] = None
    vehicle_id: Optional[str] = None
    date_from: Optional[date] = None
    date_to: Optional[date] = None


class BookingRead(BaseModel):
    id: str
    customer_id: str
    vehicle_id: Optional[str] = None
    staff_id: Optional[str] = None
    start_time: datetime
    end_time: datetime
    status: BookingStatus
    total_price: Decimal
    notes: Optional[str] = None
    internal_notes: Optional[str] = None
    services: List[ServiceRead] = []
    customer: Optional[CustomerRead] = None
    staff: Optional[StaffRead] = None
    vehicle: Optional[VehicleRead] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class AvailableSlots(BaseModel):
    date: date
    duration: int
    available_slots: List[str]

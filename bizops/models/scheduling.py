"""
Scheduling Models
Customers, vehicles, staff, services and bookings
"""
from sqlalchemy import (
    Column, String, Integer, Text, DECIMAL, Boolean, DateTime, ForeignKey, Table, TIMESTAMP
)
from sqlalchemy.orm import relationship
from datetime import datetime

from bizops.core.database import Base
from .organization import generate_id

BOOKING_STATUSES = ("scheduled", "confirmed", "in_progress", "completed", "cancelled", "no_show")

# Statuses that no longer hold a time slot
INACTIVE_BOOKING_STATUSES = ("cancelled", "no_show")


booking_services = Table(
    "booking_services",
    Base.metadata,
    Column("booking_id", String(255), ForeignKey("bookings.id", ondelete="CASCADE"), primary_key=True),
    Column("service_id", String(255), ForeignKey("services.id"), primary_key=True),
)


class Customer(Base):
    __tablename__ = "customers"

    id = Column(String(255), primary_key=True, default=generate_id)
    organization_id = Column(String(255), nullable=False, index=True)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), default="")
    email = Column(String(255))
    phone = Column(String(50))
    notes = Column(Text)

    created_at = Column(TIMESTAMP(timezone=True), default=datetime.utcnow)
    updated_at = Column(TIMESTAMP(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow)
    deleted_at = Column(TIMESTAMP(timezone=True), index=True)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name or ''}".strip()


class Vehicle(Base):
    """Vehicle owned by a customer; bookings may reserve it"""
    __tablename__ = "vehicles"

    id = Column(String(255), primary_key=True, default=generate_id)
    organization_id = Column(String(255), nullable=False, index=True)
    customer_id = Column(String(255), ForeignKey("customers.id"), nullable=False, index=True)
    make = Column(String(100))
    model = Column(String(100))
    year = Column(Integer)
    license_plate = Column(String(20))
    vin = Column(String(50))

    created_at = Column(TIMESTAMP(timezone=True), default=datetime.utcnow)
    updated_at = Column(TIMESTAMP(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow)
    deleted_at = Column(TIMESTAMP(timezone=True), index=True)


class Staff(Base):
    __tablename__ = "staff"

    id = Column(String(255), primary_key=True, default=generate_id)
    organization_id = Column(String(255), nullable=False, index=True)
    name = Column(String(200), nullable=False)
    email = Column(String(255))
    role = Column(String(50), default="technician")
    is_active = Column(Boolean, default=True)

    created_at = Column(TIMESTAMP(timezone=True), default=datetime.utcnow)
    updated_at = Column(TIMESTAMP(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow)


class Service(Base):
    """Bookable service with list price and nominal duration"""
    __tablename__ = "services"

    id = Column(String(255), primary_key=True, default=generate_id)
    organization_id = Column(String(255), nullable=False, index=True)
    name = Column(String(200), nullable=False)
    description = Column(Text)
    price = Column(DECIMAL(10, 2), default=0, nullable=False)
    duration_minutes = Column(Integer, default=60, nullable=False)
    is_active = Column(Boolean, default=True)

    created_at = Column(TIMESTAMP(timezone=True), default=datetime.utcnow)
    updated_at = Column(TIMESTAMP(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow)
    deleted_at = Column(TIMESTAMP(timezone=True), index=True)


class Booking(Base):
    """
    Appointment over the half-open interval [start_time, end_time).

    Times are wall-clock values in the organization's timezone.
    """
    __tablename__ = "bookings"

    id = Column(String(255), primary_key=True, default=generate_id)
    organization_id = Column(String(255), nullable=False, index=True)
    customer_id = Column(String(255), ForeignKey("customers.id"), nullable=False, index=True)
    vehicle_id = Column(String(255), ForeignKey("vehicles.id"), index=True)
    staff_id = Column(String(255), ForeignKey("staff.id"), index=True)

    start_time = Column(DateTime, nullable=False, index=True)
    end_time = Column(DateTime, nullable=False)
    status = Column(String(20), default="scheduled", nullable=False, index=True)
    total_price = Column(DECIMAL(10, 2), default=0, nullable=False)
    notes = Column(Text)
    internal_notes = Column(Text)

    created_at = Column(TIMESTAMP(timezone=True), default=datetime.utcnow)
    updated_at = Column(TIMESTAMP(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow)
    deleted_at = Column(TIMESTAMP(timezone=True), index=True)

    services = relationship("Service", secondary=booking_services, lazy="selectin")

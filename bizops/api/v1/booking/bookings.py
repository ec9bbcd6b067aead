"""
Booking API endpoints
"""

from typing import List, Optional
from datetime import date
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from bizops.api import deps
from bizops.api.deps import RequestContext
from bizops.schemas.common import Envelope, ok
from bizops.schemas.scheduling import (
    AvailableSlots,
    BookingCreate,
    BookingFilter,
    BookingPatch,
    BookingRead,
    BookingStatus,
    BookingStatusUpdate,
)
from bizops.services.scheduling import BookingService

router = APIRouter()


@router.get("/bookings", response_model=Envelope[List[BookingRead]])
def list_bookings(
    status_filter: Optional[BookingStatus] = Query(None, alias="status"),
    customer_id: Optional[str] = None,
    staff_id: Optional[str] = None,
    vehicle_id: Optional[str] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    db: Session = Depends(deps.get_db),
    ctx: RequestContext = Depends(deps.get_request_context),
):
    """
    List bookings, ordered by start time.

    ``date_to`` is inclusive of the whole day.
    """
    filters = BookingFilter(
        status=status_filter,
        customer_id=customer_id,
        staff_id=staff_id,
        vehicle_id=vehicle_id,
        date_from=date_from,
        date_to=date_to,
    )
    return ok(BookingService(db).list_bookings(ctx.organization_id, filters))


@router.post("/bookings", response_model=Envelope[BookingRead], status_code=status.HTTP_201_CREATED)
def create_booking(
    booking: BookingCreate,
    db: Session = Depends(deps.get_db),
    ctx: RequestContext = Depends(deps.get_request_context),
):
    """
    Create a booking.

    Fails with 409 when the staff member or vehicle is already booked for
    an overlapping interval.
    """
    return ok(BookingService(db).create_booking(ctx.organization_id, booking))


@router.get("/bookings/{booking_id}", response_model=Envelope[BookingRead])
def get_booking(
    booking_id: str,
    db: Session = Depends(deps.get_db),
    ctx: RequestContext = Depends(deps.get_request_context),
):
    return ok(BookingService(db).get_booking(ctx.organization_id, booking_id))


@router.put("/bookings/{booking_id}", response_model=Envelope[BookingRead])
def update_booking(
    booking_id: str,
    patch: BookingPatch,
    db: Session = Depends(deps.get_db),
    ctx: RequestContext = Depends(deps.get_request_context),
):
    return ok(BookingService(db).update_booking(ctx.organization_id, booking_id, patch))


@router.put("/bookings/{booking_id}/status", response_model=Envelope[BookingRead])
def update_booking_status(
    booking_id: str,
    update: BookingStatusUpdate,
    db: Session = Depends(deps.get_db),
    ctx: RequestContext = Depends(deps.get_request_context),
):
    return ok(BookingService(db).update_booking_status(ctx.organization_id, booking_id, update.status.value))


@router.delete("/bookings/{booking_id}", response_model=Envelope[dict])
def delete_booking(
    booking_id: str,
    db: Session = Depends(deps.get_db),
    ctx: RequestContext = Depends(deps.get_request_context),
):
    BookingService(db).delete_booking(ctx.organization_id, booking_id)
    return ok({"id": booking_id, "deleted": True})


@router.get("/available-slots", response_model=Envelope[AvailableSlots])
def available_slots(
    day: date = Query(..., alias="date"),
    duration: Optional[int] = Query(None, gt=0, description="Slot length in minutes"),
    staff_id: Optional[str] = None,
    db: Session = Depends(deps.get_db),
    ctx: RequestContext = Depends(deps.get_request_context),
):
    """
    Free start times (HH:MM) on a day, within business hours.
    """
    service = BookingService(db)
    if duration is None:
        duration = service.get_organization(ctx.organization_id).slot_duration_minutes
    slots = service.available_slots(ctx.organization_id, day, duration, staff_id)
    return ok({"date": day, "duration": duration, "available_slots": slots})

"""
Booking Service
Create, update and query bookings with resource conflict detection
"""
from typing import Dict, List, Optional, Any
from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import or_
from sqlalchemy.orm import Session

from bizops.core.exceptions import ConflictError, NotFoundError, ValidationError
from bizops.core.gateway import PersistenceGateway
from bizops.core.logging import get_logger
from bizops.models.organization import Organization
from bizops.models.scheduling import (
    Booking, Customer, Service, Staff, Vehicle, BOOKING_STATUSES, INACTIVE_BOOKING_STATUSES
)
from bizops.schemas.scheduling import BookingCreate, BookingFilter, BookingPatch
from .availability import day_window, generate_slots, is_zero_time, to_wall_clock

logger = get_logger("scheduling")

# Patch fields whose change requires a fresh conflict check
RESOURCE_FIELDS = ("start_time", "end_time", "staff_id", "vehicle_id")


class BookingService:
    """
    Booking lifecycle for one database session.

    Two bookings conflict when their intervals overlap and they share the
    staff member or the vehicle. Bookings that are cancelled or marked
    no-show never conflict.
    """

    def __init__(self, db: Session):
        self.db = db
        self.gateway = PersistenceGateway(db)

    def get_organization(self, organization_id: str) -> Organization:
        org = self.db.query(Organization).filter(Organization.id == organization_id).first()
        if not org:
            raise NotFoundError("Organization not found")
        return org

    def list_bookings(self, organization_id: str, filters: Optional[BookingFilter] = None) -> List[Booking]:
        """Bookings matching the filter, ordered by start time"""
        filters = filters or BookingFilter()
        query = self.gateway.scoped(Booking, organization_id)

        if filters.status:
            query = query.filter(Booking.status == filters.status.value)
        if filters.customer_id:
            query = query.filter(Booking.customer_id == filters.customer_id)
        if filters.staff_id:
            query = query.filter(Booking.staff_id == filters.staff_id)
        if filters.vehicle_id:
            query = query.filter(Booking.vehicle_id == filters.vehicle_id)
        if filters.date_from:
            query = query.filter(Booking.start_time >= day_window(filters.date_from)[0])
        if filters.date_to:
            # date_to is inclusive of its whole day
            query = query.filter(Booking.start_time < day_window(filters.date_to)[1])

        return query.order_by(Booking.start_time.asc()).all()

    def get_booking(self, organization_id: str, booking_id: str) -> Dict[str, Any]:
        booking = self.gateway.require_scoped(Booking, organization_id, booking_id, "Booking")
        return self._expand(booking)

    def create_booking(self, organization_id: str, req: BookingCreate) -> Dict[str, Any]:
        """
        Validate references, check for conflicts and store a new booking.

        Raises:
            NotFoundError: customer, service, staff or vehicle absent in the organization
            ValidationError: end before start, or vehicle owned by another customer
            ConflictError: overlapping booking for the same staff member or vehicle
        """
        org = self.get_organization(organization_id)
        start = to_wall_clock(req.start_time, org.timezone)
        end = to_wall_clock(req.end_time, org.timezone)

        def work():
            customer = self.gateway.require_scoped(Customer, organization_id, req.customer_id, "Customer")
            services = self._load_services(organization_id, req.service_ids)
            self._check_resources(organization_id, customer.id, req.staff_id, req.vehicle_id)
            self._check_interval(start, end)
            self._check_conflict(organization_id, start, end, req.staff_id, req.vehicle_id)

            booking = Booking(
                organization_id=organization_id,
                customer_id=customer.id,
                staff_id=req.staff_id,
                vehicle_id=req.vehicle_id,
                start_time=start,
                end_time=end,
                status="scheduled",
                total_price=self._total_price(services),
                notes=req.notes,
                internal_notes=req.internal_notes,
            )
            booking.services = services
            self.gateway.add(booking)
            self.gateway.flush()
            return booking

        booking = self.gateway.within_transaction(work)
        logger.info(f"Booking {booking.id} created for customer {booking.customer_id} "
                    f"{booking.start_time:%Y-%m-%d %H:%M}-{booking.end_time:%H:%M}")
        return self._expand(booking)

    def update_booking(self, organization_id: str, booking_id: str, patch: BookingPatch) -> Dict[str, Any]:
        """
        Apply a partial update. Unset or null fields and zero timestamps keep their value.

        Moving the booking in time or reassigning staff or vehicle re-runs
        the conflict check against every other booking.
        """
        org = self.get_organization(organization_id)
        changes = {k: v for k, v in patch.model_dump(exclude_unset=True).items() if v is not None}
        for field in ("start_time", "end_time"):
            # The zero timestamp means "not provided"
            if is_zero_time(changes.get(field)):
                del changes[field]
        if "status" in changes:
            changes["status"] = patch.status.value
        for field in ("start_time", "end_time"):
            if field in changes:
                changes[field] = to_wall_clock(changes[field], org.timezone)

        def work():
            booking = self.gateway.require_scoped(Booking, organization_id, booking_id, "Booking", lock=True)

            start = changes.get("start_time", booking.start_time)
            end = changes.get("end_time", booking.end_time)
            staff_id = changes.get("staff_id", booking.staff_id)
            vehicle_id = changes.get("vehicle_id", booking.vehicle_id)
            status = changes.get("status", booking.status)

            self._check_resources(
                organization_id,
                booking.customer_id,
                changes.get("staff_id"),
                changes.get("vehicle_id"),
            )
            self._check_interval(start, end)

            moved = any(f in changes for f in RESOURCE_FIELDS)
            reactivated = booking.status in INACTIVE_BOOKING_STATUSES
            if (moved or reactivated) and status not in INACTIVE_BOOKING_STATUSES:
                # Same locks create_booking takes, on the staff and vehicle the booking ends up with
                self._lock_resources(organization_id, staff_id, vehicle_id)
                self._check_conflict(organization_id, start, end, staff_id, vehicle_id, exclude_id=booking.id)

            if "service_ids" in changes:
                if not changes["service_ids"]:
                    raise ValidationError("At least one service is required")
                services = self._load_services(organization_id, changes["service_ids"])
                booking.services = services
                booking.total_price = self._total_price(services)

            booking.start_time = start
            booking.end_time = end
            booking.staff_id = staff_id
            booking.vehicle_id = vehicle_id
            booking.status = status
            for field in ("notes", "internal_notes"):
                if field in changes:
                    setattr(booking, field, changes[field])

            self.gateway.flush()
            return booking

        booking = self.gateway.within_transaction(work)
        logger.info(f"Booking {booking.id} updated: {', '.join(sorted(changes)) or 'no changes'}")
        return self._expand(booking)

    def update_booking_status(self, organization_id: str, booking_id: str, status: str) -> Dict[str, Any]:
        """Store a new status. Any value of the enumeration is accepted from any state."""
        if status not in BOOKING_STATUSES:
            raise ValidationError(f"Invalid status: {status}")

        def work():
            booking = self.gateway.require_scoped(Booking, organization_id, booking_id, "Booking", lock=True)
            booking.status = status
            self.gateway.flush()
            return booking

        booking = self.gateway.within_transaction(work)
        logger.info(f"Booking {booking.id} status set to {status}")
        return self._expand(booking)

    def delete_booking(self, organization_id: str, booking_id: str) -> None:
        """Soft delete; the booking disappears from reads and frees its slot"""
        def work():
            booking = self.gateway.require_scoped(Booking, organization_id, booking_id, "Booking", lock=True)
            booking.deleted_at = datetime.utcnow()

        self.gateway.within_transaction(work)
        logger.info(f"Booking {booking_id} deleted")

    def available_slots(
        self,
        organization_id: str,
        day: date,
        duration_minutes: Optional[int] = None,
        staff_id: Optional[str] = None,
    ) -> List[str]:
        """
        Free slot start times for a day.

        Uses the organization's hours for that weekday, its buffer, and the
        non-cancelled bookings of the day (only the given staff member's
        when ``staff_id`` is provided).
        """
        org = self.get_organization(organization_id)
        hours = org.hours_for(day.weekday())
        if hours is None:
            return []

        duration = duration_minutes or org.slot_duration_minutes
        window_start, window_end = day_window(day)
        query = (
            self.gateway.scoped(Booking, organization_id)
            .filter(
                Booking.status.notin_(INACTIVE_BOOKING_STATUSES),
                Booking.start_time < window_end,
                Booking.end_time > window_start,
            )
        )
        if staff_id:
            query = query.filter(Booking.staff_id == staff_id)

        busy = [(b.start_time, b.end_time) for b in query.all()]
        return generate_slots(day, hours[0], hours[1], duration, org.buffer_minutes, busy)

    def _load_services(self, organization_id: str, service_ids: List[str]) -> List[Service]:
        wanted = list(dict.fromkeys(service_ids))
        services = (
            self.gateway.scoped(Service, organization_id)
            .filter(Service.id.in_(wanted))
            .all()
        )
        if len(services) != len(wanted):
            raise NotFoundError("One or more services not found")
        by_id = {s.id: s for s in services}
        return [by_id[i] for i in wanted]

    def _check_resources(self, organization_id: str, customer_id: str,
                         staff_id: Optional[str], vehicle_id: Optional[str]) -> None:
        if staff_id:
            self.gateway.require_scoped(Staff, organization_id, staff_id, "Staff", lock=True)
        if vehicle_id:
            vehicle = self.gateway.require_scoped(Vehicle, organization_id, vehicle_id, "Vehicle", lock=True)
            if vehicle.customer_id != customer_id:
                raise ValidationError("Vehicle does not belong to customer")

    def _lock_resources(self, organization_id: str, staff_id: Optional[str],
                        vehicle_id: Optional[str]) -> None:
        """Lock the staff and vehicle rows a conflict check is about to rely on"""
        self.gateway.get_scoped(Staff, organization_id, staff_id, lock=True)
        self.gateway.get_scoped(Vehicle, organization_id, vehicle_id, lock=True)

    @staticmethod
    def _check_interval(start: datetime, end: datetime) -> None:
        if start >= end:
            raise ValidationError("start_time must be before end_time")

    def _check_conflict(self, organization_id: str, start: datetime, end: datetime,
                        staff_id: Optional[str], vehicle_id: Optional[str],
                        exclude_id: Optional[str] = None) -> None:
        """Raise ConflictError if an active booking overlaps and shares staff or vehicle"""
        shared = []
        if staff_id:
            shared.append(Booking.staff_id == staff_id)
        if vehicle_id:
            shared.append(Booking.vehicle_id == vehicle_id)
        if not shared:
            return

        query = (
            self.gateway.scoped(Booking, organization_id)
            .filter(
                Booking.status.notin_(INACTIVE_BOOKING_STATUSES),
                Booking.start_time < end,
                Booking.end_time > start,
                or_(*shared),
            )
        )
        if exclude_id:
            query = query.filter(Booking.id != exclude_id)

        clash = query.first()
        if clash:
            raise ConflictError(
                "Booking conflicts with an existing booking",
                details={
                    "message": "Booking conflicts with an existing booking",
                    "booking_id": clash.id,
                    "start_time": clash.start_time.isoformat(),
                    "end_time": clash.end_time.isoformat(),
                },
            )

    @staticmethod
    def _total_price(services: List[Service]) -> Decimal:
        return sum((Decimal(s.price) for s in services), Decimal("0.00"))

    def _expand(self, booking: Booking) -> Dict[str, Any]:
        """Booking columns plus the referenced customer, staff, vehicle and services"""
        org_id = booking.organization_id
        data = {c.name: getattr(booking, c.name) for c in Booking.__table__.columns}
        data["services"] = list(booking.services)
        data["customer"] = self.gateway.get_scoped(Customer, org_id, booking.customer_id)
        data["staff"] = self.gateway.get_scoped(Staff, org_id, booking.staff_id)
        data["vehicle"] = self.gateway.get_scoped(Vehicle, org_id, booking.vehicle_id)
        return data

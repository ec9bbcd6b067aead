"""
Scheduling Master Data
Organizations, booking settings, customers, vehicles, staff and services
"""
from typing import List, Optional

from sqlalchemy.orm import Session

from bizops.core.exceptions import NotFoundError
from bizops.core.gateway import PersistenceGateway
from bizops.core.logging import get_logger
from bizops.models.organization import DocumentSequence, Organization, SEEDED_SEQUENCES, WEEKDAYS
from bizops.models.scheduling import Customer, Service, Staff, Vehicle
from bizops.schemas.scheduling import (
    BookingSettingsUpdate, CustomerCreate, ServiceCreate, StaffCreate, VehicleCreate
)

logger = get_logger("scheduling")

DEFAULT_BUSINESS_HOURS = {
    day: ({"open": "09:00", "close": "17:00"} if day not in ("saturday", "sunday") else {})
    for day in WEEKDAYS
}


class MasterDataService:
    """Thin create/list operations for the records bookings refer to"""

    def __init__(self, db: Session):
        self.db = db
        self.gateway = PersistenceGateway(db)

    def create_organization(self, name: str, timezone: str = "UTC",
                            business_hours: Optional[dict] = None) -> Organization:
        org = Organization(
            name=name,
            timezone=timezone,
            business_hours=business_hours if business_hours is not None else dict(DEFAULT_BUSINESS_HOURS),
        )

        def work():
            self.gateway.add(org)
            self.gateway.flush()
            # Counters exist up front so concurrent first documents never race to insert them
            self.gateway.add_all([
                DocumentSequence(organization_id=org.id, name=sequence, next_value=1)
                for sequence in SEEDED_SEQUENCES
            ])
            return org

        self.gateway.within_transaction(work)
        logger.info(f"Organization {org.id} created")
        return org

    def get_settings(self, organization_id: str) -> Organization:
        org = self.db.query(Organization).filter(Organization.id == organization_id).first()
        if not org:
            raise NotFoundError("Organization not found")
        return org

    def update_settings(self, organization_id: str, update: BookingSettingsUpdate) -> Organization:
        def work():
            org = self.get_settings(organization_id)
            changes = update.model_dump(exclude_unset=True, exclude_none=True)
            hours = changes.pop("business_hours", None)
            if hours is not None:
                merged = dict(org.business_hours or {})
                for day, value in hours.items():
                    day = day.lower()
                    if day in WEEKDAYS:
                        merged[day] = {k: v for k, v in value.items() if v}
                # Reassign so the JSON column is flagged dirty
                org.business_hours = merged
            for field, value in changes.items():
                setattr(org, field, value)
            self.gateway.flush()
            return org

        return self.gateway.within_transaction(work)

    def create_customer(self, organization_id: str, data: CustomerCreate) -> Customer:
        customer = Customer(organization_id=organization_id, **data.model_dump())
        return self.gateway.within_transaction(lambda: self.gateway.add(customer))

    def list_customers(self, organization_id: str) -> List[Customer]:
        return self.gateway.scoped(Customer, organization_id).order_by(Customer.last_name, Customer.first_name).all()

    def create_vehicle(self, organization_id: str, data: VehicleCreate) -> Vehicle:
        def work():
            self.gateway.require_scoped(Customer, organization_id, data.customer_id, "Customer")
            return self.gateway.add(Vehicle(organization_id=organization_id, **data.model_dump()))

        return self.gateway.within_transaction(work)

    def list_vehicles(self, organization_id: str, customer_id: Optional[str] = None) -> List[Vehicle]:
        query = self.gateway.scoped(Vehicle, organization_id)
        if customer_id:
            query = query.filter(Vehicle.customer_id == customer_id)
        return query.all()

    def create_staff(self, organization_id: str, data: StaffCreate) -> Staff:
        staff = Staff(organization_id=organization_id, **data.model_dump())
        return self.gateway.within_transaction(lambda: self.gateway.add(staff))

    def list_staff(self, organization_id: str) -> List[Staff]:
        return self.gateway.scoped(Staff, organization_id).order_by(Staff.name).all()

    def create_service(self, organization_id: str, data: ServiceCreate) -> Service:
        service = Service(organization_id=organization_id, **data.model_dump())
        return self.gateway.within_transaction(lambda: self.gateway.add(service))

    def list_services(self, organization_id: str) -> List[Service]:
        return self.gateway.scoped(Service, organization_id).order_by(Service.name).all()

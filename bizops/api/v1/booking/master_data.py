"""
Customers, vehicles, staff and services API endpoints
"""

from typing import List, Optional
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from bizops.api import deps
from bizops.api.deps import RequestContext
from bizops.schemas.common import Envelope, ok
from bizops.schemas.scheduling import (
    CustomerCreate,
    CustomerRead,
    ServiceCreate,
    ServiceRead,
    StaffCreate,
    StaffRead,
    VehicleCreate,
    VehicleRead,
)
from bizops.services.scheduling import MasterDataService

router = APIRouter()


@router.get("/customers", response_model=Envelope[List[CustomerRead]])
def list_customers(
    db: Session = Depends(deps.get_db),
    ctx: RequestContext = Depends(deps.get_request_context),
):
    return ok(MasterDataService(db).list_customers(ctx.organization_id))


@router.post("/customers", response_model=Envelope[CustomerRead], status_code=status.HTTP_201_CREATED)
def create_customer(
    customer: CustomerCreate,
    db: Session = Depends(deps.get_db),
    ctx: RequestContext = Depends(deps.get_request_context),
):
    return ok(MasterDataService(db).create_customer(ctx.organization_id, customer))


@router.get("/vehicles", response_model=Envelope[List[VehicleRead]])
def list_vehicles(
    customer_id: Optional[str] = None,
    db: Session = Depends(deps.get_db),
    ctx: RequestContext = Depends(deps.get_request_context),
):
    return ok(MasterDataService(db).list_vehicles(ctx.organization_id, customer_id))


@router.post("/vehicles", response_model=Envelope[VehicleRead], status_code=status.HTTP_201_CREATED)
def create_vehicle(
    vehicle: VehicleCreate,
    db: Session = Depends(deps.get_db),
    ctx: RequestContext = Depends(deps.get_request_context),
):
    """Register a vehicle for an existing customer"""
    return ok(MasterDataService(db).create_vehicle(ctx.organization_id, vehicle))


@router.get("/staff", response_model=Envelope[List[StaffRead]])
def list_staff(
    db: Session = Depends(deps.get_db),
    ctx: RequestContext = Depends(deps.get_request_context),
):
    return ok(MasterDataService(db).list_staff(ctx.organization_id))


@router.post("/staff", response_model=Envelope[StaffRead], status_code=status.HTTP_201_CREATED)
def create_staff(
    staff: StaffCreate,
    db: Session = Depends(deps.get_db),
    ctx: RequestContext = Depends(deps.get_request_context),
):
    return ok(MasterDataService(db).create_staff(ctx.organization_id, staff))


@router.get("/services", response_model=Envelope[List[ServiceRead]])
def list_services(
    db: Session = Depends(deps.get_db),
    ctx: RequestContext = Depends(deps.get_request_context),
):
    return ok(MasterDataService(db).list_services(ctx.organization_id))


@router.post("/services", response_model=Envelope[ServiceRead], status_code=status.HTTP_201_CREATED)
def create_service(
    service: ServiceCreate,
    db: Session = Depends(deps.get_db),
    ctx: RequestContext = Depends(deps.get_request_context),
):
    return ok(MasterDataService(db).create_service(ctx.organization_id, service))

"""
Organization and booking settings API endpoints
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from bizops.api import deps
from bizops.api.deps import RequestContext
from bizops.schemas.common import Envelope, ok
from bizops.schemas.scheduling import BookingSettingsRead, BookingSettingsUpdate, OrganizationCreate
from bizops.services.scheduling import MasterDataService

router = APIRouter()


@router.post("/organizations", response_model=Envelope[BookingSettingsRead],
             status_code=status.HTTP_201_CREATED)
def create_organization(
    organization: OrganizationCreate,
    db: Session = Depends(deps.get_db),
):
    """
    Register an organization. Weekdays default to 09:00-17:00 when no
    business hours are given.
    """
    hours = None
    if organization.business_hours is not None:
        hours = {
            day.lower(): {k: v for k, v in value.model_dump().items() if v}
            for day, value in organization.business_hours.items()
        }
    org = MasterDataService(db).create_organization(organization.name, organization.timezone, hours)
    return ok(org)


@router.get("/booking/settings", response_model=Envelope[BookingSettingsRead])
def get_booking_settings(
    db: Session = Depends(deps.get_db),
    ctx: RequestContext = Depends(deps.get_request_context),
):
    return ok(MasterDataService(db).get_settings(ctx.organization_id))


@router.put("/booking/settings", response_model=Envelope[BookingSettingsRead])
def update_booking_settings(
    update: BookingSettingsUpdate,
    db: Session = Depends(deps.get_db),
    ctx: RequestContext = Depends(deps.get_request_context),
):
    """Partial update; business hours are merged day by day"""
    return ok(MasterDataService(db).update_settings(ctx.organization_id, update))

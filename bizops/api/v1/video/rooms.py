"""
Video Rooms API endpoints
Read-only view of the live signalling rooms
"""

from fastapi import APIRouter, Depends

from bizops.api import deps
from bizops.api.deps import RequestContext
from bizops.core.exceptions import NotFoundError
from bizops.schemas.common import Envelope, ok
from bizops.schemas.signalling import RoomInfo
from bizops.services.signalling import SignallingHub

router = APIRouter()


@router.get("/rooms/{room_id}", response_model=Envelope[RoomInfo])
def get_room(
    room_id: str,
    hub: SignallingHub = Depends(deps.get_signalling_hub),
    ctx: RequestContext = Depends(deps.get_request_context),
):
    """
    Participants and host of an active room in the caller's organization.
    """
    info = hub.room_info(ctx.organization_id, room_id)
    if info is None:
        raise NotFoundError("Room not found")
    return ok(info)

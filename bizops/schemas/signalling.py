"""Signalling Schemas"""

from pydantic import BaseModel
from typing import Optional, List
from datetime import datetime


class Participant(BaseModel):
    user_id: str
    connection_id: str
    is_host: bool


class RoomInfo(BaseModel):
    room_id: str
    call_id: Optional[str] = None
    host_id: str
    is_recording: bool
    created_at: datetime
    max_peers: int
    participant_count: int
    participants: List[Participant]

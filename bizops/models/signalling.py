"""
Signalling Models
Debug log of relayed WebRTC signals and screen-share sessions
"""
from sqlalchemy import Column, String, Text, Boolean, TIMESTAMP
from datetime import datetime

from bizops.core.database import Base
from .organization import generate_id


class WebRTCSignal(Base):
    """Offer, answer or ICE candidate relayed through the hub"""
    __tablename__ = "webrtc_signals"

    id = Column(String(255), primary_key=True, default=generate_id)
    organization_id = Column(String(255), nullable=False, index=True)
    session_id = Column(String(255), nullable=False, index=True)  # room id
    from_user_id = Column(String(255), nullable=False, index=True)
    to_user_id = Column(String(255), index=True)
    type = Column(String(30), nullable=False)
    data = Column(Text)  # JSON text
    processed = Column(Boolean, default=False)
    created_at = Column(TIMESTAMP(timezone=True), default=datetime.utcnow)


class ScreenShare(Base):
    __tablename__ = "screen_shares"

    id = Column(String(255), primary_key=True, default=generate_id)
    organization_id = Column(String(255), nullable=False, index=True)
    session_id = Column(String(255), unique=True, nullable=False, default=generate_id)
    room_id = Column(String(255), index=True)
    host_id = Column(String(255), nullable=False, index=True)
    status = Column(String(20), default="active", nullable=False)
    quality = Column(String(10), default="hd")
    started_at = Column(TIMESTAMP(timezone=True), default=datetime.utcnow)
    ended_at = Column(TIMESTAMP(timezone=True))
    created_at = Column(TIMESTAMP(timezone=True), default=datetime.utcnow)

"""
Messaging Models
Chat-provider settings, conversation threads and messages
"""
from sqlalchemy import Column, String, Text, Boolean, ForeignKey, TIMESTAMP
from datetime import datetime

from bizops.core.database import Base
from .organization import generate_id


class MessageSettings(Base):
    __tablename__ = "message_settings"

    id = Column(String(255), primary_key=True, default=generate_id)
    organization_id = Column(String(255), unique=True, nullable=False, index=True)
    whatsapp_enabled = Column(Boolean, default=False)
    whatsapp_phone_number_id = Column(String(100))
    whatsapp_verify_token = Column(String(255), index=True)
    created_at = Column(TIMESTAMP(timezone=True), default=datetime.utcnow)
    updated_at = Column(TIMESTAMP(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow)


class MessageThread(Base):
    """Conversation with one external contact"""
    __tablename__ = "message_threads"

    id = Column(String(255), primary_key=True, default=generate_id)
    organization_id = Column(String(255), nullable=False, index=True)
    channel = Column(String(20), default="whatsapp", nullable=False)
    contact_phone = Column(String(50), nullable=False, index=True)
    customer_id = Column(String(255), ForeignKey("customers.id"))
    status = Column(String(20), default="open")
    last_message_at = Column(TIMESTAMP(timezone=True))
    created_at = Column(TIMESTAMP(timezone=True), default=datetime.utcnow)


class Message(Base):
    __tablename__ = "messages"

    id = Column(String(255), primary_key=True, default=generate_id)
    organization_id = Column(String(255), nullable=False, index=True)
    thread_id = Column(String(255), ForeignKey("message_threads.id"), nullable=False, index=True)
    external_id = Column(String(255), index=True)
    direction = Column(String(10), default="inbound", nullable=False)  # inbound, outbound
    message_type = Column(String(20), default="text")
    content = Column(Text)
    sender = Column(String(50))
    created_at = Column(TIMESTAMP(timezone=True), default=datetime.utcnow)

"""
Chat Provider Webhook Service
Verification handshake and inbound message storage
"""
from typing import List, Optional
from datetime import datetime
import hmac

from sqlalchemy.orm import Session

from bizops.core.config import settings
from bizops.core.exceptions import ForbiddenError, ValidationError
from bizops.core.gateway import PersistenceGateway
from bizops.core.logging import get_logger
from bizops.models.messaging import Message, MessageSettings, MessageThread
from bizops.schemas.messaging import WebhookEvent

logger = get_logger("messaging")


class WebhookService:

    def __init__(self, db: Session):
        self.db = db
        self.gateway = PersistenceGateway(db)

    def verify(self, mode: Optional[str], token: Optional[str], challenge: Optional[str]) -> str:
        """
        Answer the provider's subscription handshake.

        Returns:
            The challenge string when the token matches a stored verify token

        Raises:
            ForbiddenError: wrong mode or unknown token
        """
        if mode != "subscribe" or not token or challenge is None:
            raise ForbiddenError("Webhook verification failed")
        if self._settings_for_token(token) is None and not self._matches_default(token):
            logger.warning("Webhook verification attempted with an unknown token")
            raise ForbiddenError("Webhook verification failed")
        logger.info("Webhook verified")
        return challenge

    def receive(self, event: WebhookEvent, organization_id: Optional[str] = None) -> List[Message]:
        """
        Store each inbound text message in the sender's thread.

        The receiving organization is the one whose settings have chat
        enabled; a thread is opened per sender phone number.
        """
        organization_id = organization_id or self._receiving_organization()

        def work():
            stored = []
            for entry in event.entry:
                for change in entry.changes:
                    if change.field != "messages":
                        continue
                    for incoming in change.value.messages:
                        thread = self._thread_for(organization_id, incoming.from_)
                        message = Message(
                            organization_id=organization_id,
                            thread_id=thread.id,
                            external_id=incoming.id,
                            direction="inbound",
                            message_type=incoming.type,
                            content=incoming.text.body if incoming.text else None,
                            sender=incoming.from_,
                        )
                        thread.last_message_at = datetime.utcnow()
                        stored.append(self.gateway.add(message))
            self.gateway.flush()
            return stored

        stored = self.gateway.within_transaction(work)
        logger.info(f"Stored {len(stored)} inbound message(s) for organization {organization_id}")
        return stored

    def _thread_for(self, organization_id: str, phone: str) -> MessageThread:
        thread = (
            self.gateway.scoped(MessageThread, organization_id)
            .filter(MessageThread.contact_phone == phone, MessageThread.channel == "whatsapp")
            .first()
        )
        if thread is None:
            thread = self.gateway.add(MessageThread(
                organization_id=organization_id,
                channel="whatsapp",
                contact_phone=phone,
            ))
            self.gateway.flush()
        return thread

    def _receiving_organization(self) -> str:
        row = (
            self.db.query(MessageSettings)
            .filter(MessageSettings.whatsapp_enabled.is_(True))
            .order_by(MessageSettings.created_at)
            .first()
        )
        if row is None:
            raise ValidationError("No organization is configured to receive chat messages")
        return row.organization_id

    def _settings_for_token(self, token: str) -> Optional[MessageSettings]:
        return (
            self.db.query(MessageSettings)
            .filter(MessageSettings.whatsapp_verify_token == token)
            .first()
        )

    @staticmethod
    def _matches_default(token: str) -> bool:
        expected = settings.WHATSAPP_VERIFY_TOKEN
        return bool(expected) and hmac.compare_digest(expected, token)

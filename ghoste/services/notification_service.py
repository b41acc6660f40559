"""
Manager notifications - outbound SMS/email for the autopilot.

The silence guard lives here, independent of any decision: a campaign in
silence mode gets at most one automated message per window.
"""
import uuid
import logging
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel.ext.asyncio.session import AsyncSession

from ghoste.config import settings
from ghoste.models.autopilot import ManagerNotification
from ghoste.models.campaign import AdCampaign
from ghoste.repositories.autopilot_repo import ManagerNotificationRepository
from ghoste.repositories.campaign_repo import CampaignRepository
from ghoste.services.integrations.base import SmsProvider, EmailProvider
from ghoste.services.integrations.sms import get_sms_provider
from ghoste.services.integrations.email import get_email_provider

logger = logging.getLogger(__name__)


class NotificationTypes:
    APPROVAL_REQUEST = "approval_request"
    CREATIVE_REQUEST = "creative_request"
    PAUSE_NOTICE = "pause_notice"


class NotificationStatus:
    SENT = "sent"
    SKIPPED = "skipped"
    FAILED = "failed"


EMAIL_SUBJECTS = {
    NotificationTypes.APPROVAL_REQUEST: "Your campaign needs a quick decision",
    NotificationTypes.CREATIVE_REQUEST: "Fresh content for your campaign",
    NotificationTypes.PAUSE_NOTICE: "I paused your ads",
}


class NotificationService:
    """Service for autopilot outreach."""

    def __init__(
        self,
        session: AsyncSession,
        sms_provider: Optional[SmsProvider] = None,
        email_provider: Optional[EmailProvider] = None
    ):
        self.session = session
        self.notification_repo = ManagerNotificationRepository(session)
        self.campaign_repo = CampaignRepository(session)
        self.sms = sms_provider or get_sms_provider()
        self.email = email_provider or get_email_provider()

    def is_silenced(self, campaign: AdCampaign, now: Optional[datetime] = None) -> bool:
        """True if silence mode is on and a message already went out inside the window."""
        if not campaign.silence_mode or not campaign.last_ai_message_at:
            return False
        now = now or datetime.utcnow()
        return now - campaign.last_ai_message_at < timedelta(hours=settings.SILENCE_WINDOW_HOURS)

    async def notify(
        self,
        campaign: AdCampaign,
        body: str,
        notification_type: str,
        approval_id: Optional[uuid.UUID] = None,
        now: Optional[datetime] = None
    ) -> str:
        """
        Deliver one automated message and record the attempt.

        Returns the recorded status: sent, skipped or failed. Delivery
        errors are logged and recorded, never raised.
        """
        now = now or datetime.utcnow()
        method = campaign.notification_method or settings.DEFAULT_NOTIFICATION_METHOD
        phone = campaign.notification_phone if method in ("sms", "both") else None
        email = campaign.notification_email if method in ("email", "both") else None

        record = {
            "owner_user_id": campaign.user_id,
            "campaign_id": campaign.id,
            "approval_id": approval_id,
            "notification_type": notification_type,
            "notification_method": method,
            "recipient_phone": phone,
            "recipient_email": email,
            "body": body,
        }

        if self.is_silenced(campaign, now):
            logger.info(f"Silence mode: suppressed {notification_type} for campaign {campaign.id}")
            await self._record(record, NotificationStatus.SKIPPED, skip_reason="silence_mode")
            return NotificationStatus.SKIPPED

        if not phone and not email:
            logger.warning(f"No recipient for {method} notification on campaign {campaign.id}")
            await self._record(record, NotificationStatus.SKIPPED, skip_reason="no_recipient")
            return NotificationStatus.SKIPPED

        try:
            delivered = False
            if phone:
                delivered = await self.sms.send(phone, body) or delivered
            if email:
                subject = EMAIL_SUBJECTS.get(notification_type, "Update on your campaign")
                delivered = await self.email.send(email, subject, body, from_email=settings.EMAIL_FROM) or delivered
        except Exception as e:
            logger.error(f"Notification delivery failed for campaign {campaign.id}: {e!r}")
            await self._record(record, NotificationStatus.FAILED, error_message=str(e) or e.__class__.__name__)
            return NotificationStatus.FAILED

        if not delivered:
            await self._record(record, NotificationStatus.FAILED, error_message="provider rejected message")
            return NotificationStatus.FAILED

        await self.campaign_repo.touch_last_message(campaign.id, now)
        await self._record(record, NotificationStatus.SENT)
        logger.info(f"Sent {notification_type} via {method} for campaign {campaign.id}")
        return NotificationStatus.SENT

    async def _record(self, record: dict, status: str, **extra) -> Optional[ManagerNotification]:
        try:
            return await self.notification_repo.create({**record, "status": status, **extra})
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error(f"Failed to record notification for campaign {record['campaign_id']}: {e!r}")
            return None

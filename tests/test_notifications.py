from datetime import datetime, timedelta

from ghoste.models.campaign import AdCampaign
from ghoste.repositories.autopilot_repo import ManagerNotificationRepository
from ghoste.services.integrations.base import SmsProvider
from ghoste.services.notification_service import NotificationService, NotificationStatus, NotificationTypes


class ExplodingSms(SmsProvider):
    async def send(self, to, body):
        raise ConnectionError("gateway down")


async def test_silence_mode_suppresses_within_window(session, campaign_factory, sms, email):
    now = datetime(2026, 3, 1, 12, 0)
    campaign = await campaign_factory(silence_mode=True, last_ai_message_at=now - timedelta(hours=10))
    service = NotificationService(session, sms, email)

    status = await service.notify(campaign, "Hi", NotificationTypes.CREATIVE_REQUEST, now=now)

    assert status == NotificationStatus.SKIPPED
    assert sms.outbox == []
    [record] = await ManagerNotificationRepository(session).get_for_campaign(campaign.id)
    assert record.status == NotificationStatus.SKIPPED
    assert record.skip_reason == "silence_mode"


async def test_silence_mode_allows_after_window(session, campaign_factory, sms, email):
    now = datetime(2026, 3, 1, 12, 0)
    campaign = await campaign_factory(silence_mode=True, last_ai_message_at=now - timedelta(hours=25))
    service = NotificationService(session, sms, email)

    status = await service.notify(campaign, "Hi", NotificationTypes.CREATIVE_REQUEST, now=now)

    assert status == NotificationStatus.SENT
    assert sms.outbox == [{"to": campaign.notification_phone, "body": "Hi"}]
    refreshed = await session.get(AdCampaign, campaign.id)
    await session.refresh(refreshed)
    assert refreshed.last_ai_message_at == now


async def test_both_channels(session, campaign_factory, sms, email):
    campaign = await campaign_factory(notification_method="both")
    service = NotificationService(session, sms, email)

    status = await service.notify(campaign, "Hi", NotificationTypes.APPROVAL_REQUEST)

    assert status == NotificationStatus.SENT
    assert len(sms.outbox) == 1
    assert email.outbox[0]["to"] == "artist@example.com"


async def test_no_recipient_is_skipped(session, campaign_factory, sms, email):
    campaign = await campaign_factory(notification_phone=None)
    status = await NotificationService(session, sms, email).notify(campaign, "Hi", NotificationTypes.PAUSE_NOTICE)
    assert status == NotificationStatus.SKIPPED


async def test_delivery_error_is_recorded_not_raised(session, campaign_factory, email):
    campaign = await campaign_factory()
    service = NotificationService(session, ExplodingSms(), email)

    status = await service.notify(campaign, "Hi", NotificationTypes.CREATIVE_REQUEST)

    assert status == NotificationStatus.FAILED
    [record] = await ManagerNotificationRepository(session).get_for_campaign(campaign.id)
    assert "gateway down" in record.error_message

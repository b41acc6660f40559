from datetime import datetime, timedelta

import pytest

from ghoste.core.exceptions import NotFoundError, ValidationError
from ghoste.models.campaign import CampaignStatus
from ghoste.services.publish_queue_service import PublishQueueService, ReconciliationService

from conftest import FakeAdPlatform


async def test_approve_publishes_immediately(session, user, credential, campaign_factory, activity, provider_factory):
    campaign = await campaign_factory(status=CampaignStatus.DRAFT)
    service = PublishQueueService(session, activity, provider_factory)

    item = await service.enqueue(user, campaign.id)
    assert [i.id for i in await service.list_pending(user)] == [item.id]

    result = await service.decide(user, item.id, "approve")

    assert result.ok is True
    assert result.status == "published"
    assert result.campaign_status == CampaignStatus.PUBLISHED
    assert await service.list_pending(user) == []


async def test_reject_has_no_side_effect(session, user, credential, campaign_factory, activity, provider_factory, ad_platform):
    campaign = await campaign_factory(status=CampaignStatus.DRAFT)
    service = PublishQueueService(session, activity, provider_factory)
    item = await service.enqueue(user, campaign.id)

    result = await service.decide(user, item.id, "reject")

    assert result.status == "rejected"
    assert ad_platform.calls == []
    await session.refresh(campaign)
    assert campaign.status == CampaignStatus.DRAFT


async def test_item_cannot_be_decided_twice(session, user, credential, campaign_factory, activity, provider_factory):
    campaign = await campaign_factory(status=CampaignStatus.DRAFT)
    service = PublishQueueService(session, activity, provider_factory)
    item = await service.enqueue(user, campaign.id)

    await service.decide(user, item.id, "reject")
    with pytest.raises(ValidationError) as exc:
        await service.decide(user, item.id, "approve")
    assert exc.value.code == "already_decided"


async def test_published_campaign_cannot_be_queued(session, user, campaign_factory, activity, provider_factory):
    campaign = await campaign_factory(status=CampaignStatus.PUBLISHED)
    service = PublishQueueService(session, activity, provider_factory)

    with pytest.raises(ValidationError) as exc:
        await service.enqueue(user, campaign.id)
    assert exc.value.code == "not_publishable"


async def test_other_users_item_is_not_found(session, user, other_user, campaign_factory, activity, provider_factory):
    campaign = await campaign_factory(status=CampaignStatus.DRAFT)
    service = PublishQueueService(session, activity, provider_factory)
    item = await service.enqueue(user, campaign.id)

    with pytest.raises(NotFoundError):
        await service.decide(other_user, item.id, "approve")


async def test_reconcile_resumes_stuck_campaigns(session, user, credential, campaign_factory, activity):
    now = datetime.utcnow()
    stuck = await campaign_factory(
        status=CampaignStatus.PUBLISHING,
        publish_started_at=now - timedelta(hours=2),
        meta_campaign_id="meta_campaign_id_0",
    )
    await campaign_factory(status=CampaignStatus.PUBLISHING, publish_started_at=now - timedelta(minutes=5))

    platform = FakeAdPlatform()
    result = await ReconciliationService(session, activity, lambda c: platform).run(now)

    assert (result.retried, result.published, result.failed) == (1, 1, 0)
    _, existing_ids = platform.calls[0]
    assert existing_ids["meta_campaign_id"] == "meta_campaign_id_0"

    await session.refresh(stuck)
    assert stuck.status == CampaignStatus.PUBLISHED
    assert stuck.meta_campaign_id == "meta_campaign_id_0"
    assert stuck.meta_ad_id == "meta_ad_id_1"

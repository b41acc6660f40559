"""
Publish queue and reconciliation.

Queued drafts wait for a human approve/reject. Reconciliation retries
campaigns left in `publishing` by a crash or timeout.
"""
import uuid
import logging
from datetime import datetime, timedelta
from typing import Optional, List

from sqlmodel.ext.asyncio.session import AsyncSession

from ghoste.config import settings
from ghoste.core.exceptions import NotFoundError, ValidationError
from ghoste.models.activity import Operations
from ghoste.models.campaign import CampaignStatus
from ghoste.models.publish_queue import PublishQueueItem
from ghoste.models.user import User
from ghoste.repositories.campaign_repo import CampaignRepository
from ghoste.repositories.publish_queue_repo import PublishQueueRepository
from ghoste.schemas.campaign import PublishQueueDecisionResponse, ReconcileResponse
from ghoste.services.activity_service import ActivityService
from ghoste.services.integrations.meta_ads import AdPlatformFactory
from ghoste.services.publisher_service import CampaignPublisher

logger = logging.getLogger(__name__)

PUBLISHABLE_STATUSES = (CampaignStatus.DRAFT, CampaignStatus.FAILED)


class PublishQueueService:
    """Service for the publish approval queue."""

    def __init__(
        self,
        session: AsyncSession,
        activity: Optional[ActivityService] = None,
        provider_factory: Optional[AdPlatformFactory] = None
    ):
        self.session = session
        self.queue_repo = PublishQueueRepository(session)
        self.campaign_repo = CampaignRepository(session)
        self.activity = activity or ActivityService()
        self.publisher = CampaignPublisher(session, provider_factory)

    async def enqueue(self, user: User, campaign_id: uuid.UUID) -> PublishQueueItem:
        campaign = await self.campaign_repo.get(campaign_id)
        if not campaign or campaign.user_id != user.id:
            raise NotFoundError("Campaign", str(campaign_id))
        if campaign.status not in PUBLISHABLE_STATUSES:
            raise ValidationError(f"Campaign is {campaign.status}", code="not_publishable")

        item = await self.queue_repo.create({"user_id": user.id, "campaign_id": campaign.id})
        logger.info(f"Campaign {campaign.id} queued for publish approval as {item.id}")
        return item

    async def list_pending(self, user: User) -> List[PublishQueueItem]:
        return await self.queue_repo.list(filters={"user_id": user.id, "status": "pending"})

    async def decide(self, user: User, queue_id: uuid.UUID, decision: str) -> PublishQueueDecisionResponse:
        """Approve publishes right away; reject only closes the item."""
        item = await self.queue_repo.get(queue_id)
        if not item or item.user_id != user.id:
            raise NotFoundError("Queue item", str(queue_id))

        new_status = "approved" if decision == "approve" else "rejected"
        if not await self.queue_repo.claim_pending(item.id, new_status):
            raise ValidationError("Queue item was already decided", code="already_decided")

        if decision != "approve":
            await self.activity.record(
                Operations.QUEUE_REJECTED, user_id=user.id, campaign_id=item.campaign_id,
                request={"queue_id": str(queue_id), "decision": decision}
            )
            logger.info(f"Queue item {queue_id} rejected")
            return PublishQueueDecisionResponse(
                ok=True, queue_id=item.id, status="rejected", campaign_id=item.campaign_id
            )

        await self.activity.record(
            Operations.QUEUE_APPROVED, user_id=user.id, campaign_id=item.campaign_id,
            request={"queue_id": str(queue_id), "decision": decision}
        )

        campaign = await self.campaign_repo.get(item.campaign_id)
        outcome = await self.publisher.publish(campaign)
        result = {
            "ok": outcome.ok,
            "error": outcome.error,
            "stage": outcome.stage,
            **{k: v for k, v in outcome.external_ids.items()},
        }
        status = "published" if outcome.ok else "failed"
        await self.queue_repo.set_result(item.id, status, result)

        await self.activity.record(
            Operations.PUBLISH_SUCCESS if outcome.ok else Operations.PUBLISH_FAILED,
            user_id=user.id, campaign_id=campaign.id, ok=outcome.ok, error=outcome.error,
            request={"queue_id": str(queue_id)}, response=result
        )

        return PublishQueueDecisionResponse(
            ok=outcome.ok,
            queue_id=item.id,
            status=status,
            campaign_id=campaign.id,
            campaign_status=outcome.campaign.status,
            error=outcome.error,
            stage=outcome.stage,
        )


class ReconciliationService:
    """Retries campaigns stuck in publishing past the timeout."""

    def __init__(
        self,
        session: AsyncSession,
        activity: Optional[ActivityService] = None,
        provider_factory: Optional[AdPlatformFactory] = None
    ):
        self.session = session
        self.campaign_repo = CampaignRepository(session)
        self.activity = activity or ActivityService()
        self.publisher = CampaignPublisher(session, provider_factory)

    async def run(self, now: Optional[datetime] = None) -> ReconcileResponse:
        now = now or datetime.utcnow()
        cutoff = now - timedelta(minutes=settings.PUBLISH_STUCK_MINUTES)
        # Plain values: a rollback below expires every loaded row
        stuck = [
            (c.id, c.user_id, c.publish_started_at)
            for c in await self.campaign_repo.get_stuck_publishing(cutoff)
        ]

        summary = ReconcileResponse()
        for campaign_id, user_id, started_at in stuck:
            summary.retried += 1
            await self.activity.record(
                Operations.RECONCILE_RETRY, user_id=user_id, campaign_id=campaign_id,
                request={"publish_started_at": started_at.isoformat()}
            )
            try:
                campaign = await self.campaign_repo.get(campaign_id)
                outcome = await self.publisher.publish(campaign)
            except Exception as e:
                logger.error(f"Reconcile retry crashed for campaign {campaign_id}: {e!r}")
                await self.session.rollback()
                summary.failed += 1
                continue

            if outcome.ok:
                summary.published += 1
            else:
                summary.failed += 1

        logger.info(f"Reconcile run: {summary.model_dump()}")
        return summary

"""
Campaign repository.
"""
import uuid
from typing import Optional, List, Dict
from datetime import datetime

from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession
from sqlalchemy import update

from ghoste.models.campaign import AdCampaign, CampaignStatus
from ghoste.repositories.base import BaseRepository


class CampaignRepository(BaseRepository[AdCampaign]):
    """Repository for AdCampaign operations."""

    def __init__(self, session: AsyncSession):
        super().__init__(AdCampaign, session)

    async def mark_publishing(self, campaign_id: uuid.UUID) -> Optional[AdCampaign]:
        """Enter the publishing state and stamp the attempt start."""
        campaign = await self.get(campaign_id)
        if not campaign:
            return None

        campaign.status = CampaignStatus.PUBLISHING
        campaign.publish_started_at = datetime.utcnow()
        campaign.updated_at = datetime.utcnow()
        self.session.add(campaign)
        await self.session.commit()
        await self.session.refresh(campaign)
        return campaign

    async def mark_failed(
        self,
        campaign_id: uuid.UUID,
        error: str,
        external_ids: Dict[str, Optional[str]]
    ) -> Optional[AdCampaign]:
        """Move to failed, keeping the verbatim error and any partial ids."""
        campaign = await self.get(campaign_id)
        if not campaign:
            return None

        campaign.status = CampaignStatus.FAILED
        campaign.last_error = error
        self._apply_external_ids(campaign, external_ids)
        campaign.updated_at = datetime.utcnow()
        self.session.add(campaign)
        await self.session.commit()
        await self.session.refresh(campaign)
        return campaign

    async def mark_published(
        self,
        campaign_id: uuid.UUID,
        external_ids: Dict[str, Optional[str]]
    ) -> Optional[AdCampaign]:
        campaign = await self.get(campaign_id)
        if not campaign:
            return None

        campaign.status = CampaignStatus.PUBLISHED
        campaign.last_error = None
        self._apply_external_ids(campaign, external_ids)
        campaign.updated_at = datetime.utcnow()
        self.session.add(campaign)
        await self.session.commit()
        await self.session.refresh(campaign)
        return campaign

    async def pause(self, campaign_id: uuid.UUID) -> Optional[AdCampaign]:
        return await self.update(campaign_id, {"status": CampaignStatus.PAUSED})

    async def touch_last_message(self, campaign_id: uuid.UUID, sent_at: datetime) -> None:
        await self.update(campaign_id, {"last_ai_message_at": sent_at})

    async def set_daily_budget_if_version(
        self,
        campaign_id: uuid.UUID,
        expected_version: int,
        daily_budget_cents: int
    ) -> bool:
        """
        Conditional budget write. Succeeds only if nobody else bumped
        the version since it was read.
        """
        stmt = (
            update(AdCampaign)
            .where(AdCampaign.id == campaign_id, AdCampaign.version == expected_version)
            .values(
                daily_budget_cents=daily_budget_cents,
                version=expected_version + 1,
                updated_at=datetime.utcnow(),
            )
        )
        result = await self.session.execute(stmt)
        await self.session.commit()
        return result.rowcount == 1

    async def get_autopilot_candidates(self) -> List[AdCampaign]:
        """Published campaigns with manager mode on and a score to act on."""
        query = select(AdCampaign).where(
            AdCampaign.status == CampaignStatus.PUBLISHED,
            AdCampaign.manager_mode_enabled == True,  # noqa: E712
            AdCampaign.latest_score.is_not(None)
        ).order_by(AdCampaign.created_at)
        result = await self.session.exec(query)
        return result.all()

    async def get_stuck_publishing(self, started_before: datetime) -> List[AdCampaign]:
        """Campaigns left in publishing (crash or timeout between phases)."""
        query = select(AdCampaign).where(
            AdCampaign.status == CampaignStatus.PUBLISHING,
            AdCampaign.publish_started_at < started_before
        )
        result = await self.session.exec(query)
        return result.all()

    async def has_active(self, user_id: uuid.UUID) -> bool:
        query = select(AdCampaign.id).where(
            AdCampaign.user_id == user_id,
            AdCampaign.status == CampaignStatus.PUBLISHED
        ).limit(1)
        result = await self.session.exec(query)
        return result.first() is not None

    def _apply_external_ids(self, campaign: AdCampaign, external_ids: Dict[str, Optional[str]]) -> None:
        for field in ("meta_campaign_id", "meta_adset_id", "meta_creative_id", "meta_ad_id"):
            value = external_ids.get(field)
            if value:
                setattr(campaign, field, value)

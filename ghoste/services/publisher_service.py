"""
Campaign publisher - phase two of the create-then-publish saga.

Phase one (the campaign row) is already committed when publish() runs.
Any external ids created before a failure are stored on the row, so a
retry resumes from the last completed stage instead of duplicating it.
"""
import logging
from dataclasses import dataclass, field
from typing import Optional, Dict

from sqlmodel.ext.asyncio.session import AsyncSession

from ghoste.core.exceptions import ExternalServiceError
from ghoste.models.campaign import AdCampaign
from ghoste.repositories.campaign_repo import CampaignRepository
from ghoste.repositories.credential_repo import MetaCredentialRepository
from ghoste.services.integrations.base import AdCampaignSpec
from ghoste.services.integrations.meta_ads import ID_FIELDS, AdPlatformFactory, get_ad_platform_factory

logger = logging.getLogger(__name__)


@dataclass
class PublishOutcome:
    ok: bool
    campaign: AdCampaign
    external_ids: Dict[str, Optional[str]] = field(default_factory=dict)
    error: Optional[str] = None
    stage: Optional[str] = None


class CampaignPublisher:
    """Pushes a stored campaign to the ad platform and records the result."""

    def __init__(self, session: AsyncSession, provider_factory: Optional[AdPlatformFactory] = None):
        self.session = session
        self.campaign_repo = CampaignRepository(session)
        self.credential_repo = MetaCredentialRepository(session)
        self.provider_factory = provider_factory or get_ad_platform_factory()

    async def publish(self, campaign: AdCampaign) -> PublishOutcome:
        campaign = await self.campaign_repo.mark_publishing(campaign.id)
        existing_ids = {name: getattr(campaign, name) for name in ID_FIELDS}

        credential = await self.credential_repo.get_active_for_user(campaign.user_id)
        if not credential or not credential.access_token:
            return await self._fail(campaign, "Meta is not connected", "preflight", existing_ids)
        if not credential.ad_account_id:
            return await self._fail(campaign, "No Meta ad account selected", "preflight", existing_ids)

        spec = AdCampaignSpec(
            name=campaign.campaign_name or f"Ghoste {campaign.ad_goal} {str(campaign.id)[:8]}",
            ad_goal=campaign.ad_goal,
            daily_budget_cents=campaign.daily_budget_cents,
            destination_url=campaign.destination_url,
            creative_urls=campaign.creative_urls or [],
            ad_account_id=credential.ad_account_id,
            page_id=credential.page_id,
            instagram_actor_id=credential.instagram_actor_id,
            pixel_id=credential.pixel_id,
        )

        provider = self.provider_factory(credential)
        try:
            ids = await provider.execute_campaign(spec, existing_ids)
        except ExternalServiceError as e:
            partial = {**existing_ids, **{k: v for k, v in e.partial_ids.items() if v}}
            return await self._fail(campaign, e.message, e.stage or "unknown", partial)

        campaign = await self.campaign_repo.mark_published(campaign.id, ids)
        logger.info(f"Campaign {campaign.id} published: {ids}")
        return PublishOutcome(ok=True, campaign=campaign, external_ids=ids)

    async def _fail(
        self,
        campaign: AdCampaign,
        error: str,
        stage: str,
        partial_ids: Dict[str, Optional[str]]
    ) -> PublishOutcome:
        logger.error(f"Campaign {campaign.id} publish failed at {stage}: {error}")
        campaign = await self.campaign_repo.mark_failed(campaign.id, error, partial_ids)
        return PublishOutcome(
            ok=False,
            campaign=campaign,
            external_ids={name: getattr(campaign, name) for name in ID_FIELDS},
            error=error,
            stage=stage,
        )

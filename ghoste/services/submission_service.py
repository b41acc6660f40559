"""
Campaign submission pipeline.

validate -> resolve creatives -> resolve destination -> build plan ->
persist draft -> (publish mode) push to the ad platform.
Every attempt is written to the ads operation log.
"""
import uuid
import logging
from datetime import datetime
from typing import Optional, List, Tuple

from sqlmodel.ext.asyncio.session import AsyncSession

from ghoste.config import settings
from ghoste.core.exceptions import GhosteException, ValidationError, ResolutionError, RateLimitError
from ghoste.models.activity import Operations
from ghoste.models.campaign import AdCampaign, CampaignStatus
from ghoste.models.user import User
from ghoste.repositories.campaign_repo import CampaignRepository
from ghoste.repositories.creative_repo import CreativeRepository
from ghoste.schemas.campaign import CampaignSubmit, CampaignSubmitResponse
from ghoste.services.activity_service import ActivityService
from ghoste.services.campaign_builder import AUTOMATION_MODES, build_campaign_plan, normalize_confidence
from ghoste.services.integrations.meta_ads import AdPlatformFactory
from ghoste.services.link_service import DestinationResolver
from ghoste.services.publisher_service import CampaignPublisher

logger = logging.getLogger(__name__)


def _as_uuid(value: str) -> Optional[uuid.UUID]:
    try:
        return uuid.UUID(str(value))
    except ValueError:
        return None


class SubmissionService:
    """Service for run-ads submissions."""

    def __init__(
        self,
        session: AsyncSession,
        activity: Optional[ActivityService] = None,
        provider_factory: Optional[AdPlatformFactory] = None
    ):
        self.session = session
        self.campaign_repo = CampaignRepository(session)
        self.creative_repo = CreativeRepository(session)
        self.destinations = DestinationResolver(session)
        self.activity = activity or ActivityService()
        self.provider_factory = provider_factory

    async def submit(self, user: User, data: CampaignSubmit) -> CampaignSubmitResponse:
        """
        Run one submission.

        Raises:
            GhosteException subclasses for validation and resolution
            failures (already written to the audit log). A failed publish
            is not raised; it comes back as ok=False with a stage.
        """
        request = data.model_dump(mode="json")
        # Plain values: a failed link insert rolls back and expires the session's User
        user_id, phone, email = user.id, user.phone, user.email
        try:
            return await self._submit(user_id, phone, email, data, request)
        except GhosteException as e:
            await self.activity.record(
                Operations.SUBMIT_REJECTED, user_id=user_id, ok=False, status_code=e.status_code,
                error=e.message, request=request, response={"code": e.code}
            )
            raise
        except Exception as e:
            logger.exception(f"Submission crashed for user {user_id}")
            await self.activity.record(
                Operations.SUBMIT_ERROR, user_id=user_id, ok=False, status_code=500,
                error=str(e) or e.__class__.__name__, request=request
            )
            raise

    async def _submit(
        self,
        user_id: uuid.UUID,
        phone: Optional[str],
        email: Optional[str],
        data: CampaignSubmit,
        request: dict
    ) -> CampaignSubmitResponse:
        self._validate_required(data)

        if not await self.activity.submission_allowed(user_id):
            raise RateLimitError("Too many campaign submissions in the last hour")

        creative_ids, creative_urls = await self._resolve_creatives(user_id, data)

        destination = await self.destinations.resolve(
            user_id,
            smart_link_id=data.smart_link_id,
            smart_link_slug=data.smart_link_slug,
            destination_url=data.destination_url,
        )

        plan = build_campaign_plan(
            data.ad_goal,
            data.automation_mode,
            data.daily_budget_cents,
            data.total_budget_cents,
            creative_count=len(creative_ids) or len(creative_urls),
        )

        raw_confidence = data.confidence if data.confidence is not None else plan.confidence
        confidence, confidence_label = normalize_confidence(raw_confidence)
        logger.info(f"Normalized confidence: raw={raw_confidence!r} score={confidence} label={confidence_label}")

        publishing = data.mode == "publish"
        payload = {
            "user_id": user_id,
            "draft_id": data.draft_id,
            "campaign_name": data.campaign_name or f"Ghoste {plan.campaign_type} {datetime.utcnow():%Y-%m-%d}",
            "ad_goal": data.ad_goal,
            "campaign_type": plan.campaign_type,
            "automation_mode": data.automation_mode,
            "status": CampaignStatus.PUBLISHING if publishing else CampaignStatus.DRAFT,
            # Reconciliation picks the row up if the publish below never runs
            "publish_started_at": datetime.utcnow() if publishing else None,
            "smart_link_id": destination.smart_link_id,
            "smart_link_slug": destination.smart_link_slug,
            "destination_url": destination.url,
            "daily_budget_cents": plan.daily_budget_cents,
            "total_budget_cents": plan.total_budget_cents,
            "max_daily_budget_cents": plan.max_daily_budget_cents,
            "creative_ids": creative_ids,
            "creative_urls": creative_urls,
            "reasoning": plan.reasoning,
            "confidence": confidence,
            "confidence_label": confidence_label,
            "guardrails_applied": plan.guardrails_applied,
            "manager_mode_enabled": data.automation_mode != "assist",
            "notification_method": settings.DEFAULT_NOTIFICATION_METHOD,
            "notification_phone": phone,
            "notification_email": email,
        }

        # Last check before the write: the numeric column must never get a label
        if isinstance(payload["confidence"], str):
            logger.warning("Confidence was still a string before insert, normalizing")
            payload["confidence"], payload["confidence_label"] = normalize_confidence(payload["confidence"])

        campaign = await self.campaign_repo.create(payload)
        logger.info(f"Campaign {campaign.id} saved: status={campaign.status} type={campaign.campaign_type}")

        response = self._response(campaign, ok=True)
        await self.activity.record(
            Operations.SAVE_DRAFT, user_id=user_id, campaign_id=campaign.id,
            request=request, response=response.model_dump(mode="json")
        )

        if not publishing:
            return response

        await self.activity.record(
            Operations.PUBLISH_START, user_id=user_id, campaign_id=campaign.id,
            request=request, response={"campaign_id": str(campaign.id), "stage": "starting_meta_publish"}
        )

        publisher = CampaignPublisher(self.session, self.provider_factory)
        outcome = await publisher.publish(campaign)
        response = self._response(outcome.campaign, ok=outcome.ok)

        if not outcome.ok:
            response.error = outcome.error
            response.stage = "publish_failed"
            response.failed_stage = outcome.stage
            await self.activity.record(
                Operations.PUBLISH_FAILED, user_id=user_id, campaign_id=campaign.id, ok=False,
                error=outcome.error, request=request, response=response.model_dump(mode="json")
            )
            return response

        await self.activity.record(
            Operations.PUBLISH_SUCCESS, user_id=user_id, campaign_id=campaign.id,
            request=request, response=response.model_dump(mode="json")
        )
        return response

    def _validate_required(self, data: CampaignSubmit) -> None:
        if not data.ad_goal or not data.daily_budget_cents or not data.automation_mode:
            raise ValidationError(
                "ad_goal, daily_budget_cents, and automation_mode are required",
                code="missing_required_fields",
            )
        if data.daily_budget_cents <= 0:
            raise ValidationError("must be positive", field="daily_budget_cents", code="budget_out_of_range")
        if data.automation_mode not in AUTOMATION_MODES:
            raise ValidationError(
                f"must be one of {', '.join(AUTOMATION_MODES)}",
                field="automation_mode",
                code="invalid_automation_mode",
            )

    async def _resolve_creatives(self, user_id: uuid.UUID, data: CampaignSubmit) -> Tuple[List[str], List[str]]:
        """Explicit ids, then inline creative objects, then the draft's uploads."""
        creative_ids: List[str] = []
        creative_urls: List[str] = []

        if data.creative_ids:
            creative_ids = list(data.creative_ids)
            known = [u for u in (_as_uuid(i) for i in creative_ids) if u]
            rows = {str(c.id): c for c in await self.creative_repo.get_by_ids(user_id, known)}
            creative_urls = [rows[i].public_url for i in creative_ids if i in rows and rows[i].public_url]
            logger.info(f"Using creative_ids from request: {len(creative_ids)}")

        elif data.creatives:
            creative_ids = [c.id for c in data.creatives if c.id]
            creative_urls = [c.url or c.public_url for c in data.creatives if c.url or c.public_url]
            logger.info(f"Using creatives from request: ids={len(creative_ids)} urls={len(creative_urls)}")

        if not creative_ids and not creative_urls and data.draft_id:
            rows = await self.creative_repo.get_by_draft(user_id, data.draft_id)
            creative_ids = [str(c.id) for c in rows]
            creative_urls = [c.public_url for c in rows if c.public_url]
            logger.info(f"Loaded {len(rows)} creatives for draft {data.draft_id}")

        if not creative_ids and not creative_urls:
            raise ResolutionError(
                "no_creatives_selected",
                "At least one creative is required. Upload creatives or provide creative_ids/creatives array.",
                details={
                    "creative_ids_count": len(data.creative_ids or []),
                    "creatives_count": len(data.creatives or []),
                    "draft_id": str(data.draft_id) if data.draft_id else None,
                },
            )

        return creative_ids, creative_urls

    def _response(self, campaign: AdCampaign, ok: bool) -> CampaignSubmitResponse:
        return CampaignSubmitResponse(
            ok=ok,
            campaign_id=campaign.id,
            status=campaign.status,
            campaign_type=campaign.campaign_type,
            reasoning=campaign.reasoning,
            confidence=campaign.confidence,
            confidence_label=campaign.confidence_label,
            guardrails_applied=campaign.guardrails_applied or [],
            destination_url=campaign.destination_url,
            smart_link_slug=campaign.smart_link_slug,
            meta_campaign_id=campaign.meta_campaign_id,
            meta_adset_id=campaign.meta_adset_id,
            meta_creative_id=campaign.meta_creative_id,
            meta_ad_id=campaign.meta_ad_id,
        )

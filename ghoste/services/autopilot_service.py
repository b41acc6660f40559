"""
Autopilot runner.

For every published campaign with manager mode on: decide, log the
decision, then apply it through the handler registered for its action.
"""
import logging
from datetime import datetime, timedelta
from typing import Optional, Dict, Callable, Awaitable

from sqlmodel.ext.asyncio.session import AsyncSession

from ghoste.config import settings
from ghoste.core.exceptions import ExternalServiceError
from ghoste.core.phone import normalize_phone
from ghoste.models.campaign import AdCampaign
from ghoste.repositories.autopilot_repo import (
    ApprovalRequestRepository, ManagerDecisionLogRepository, KillswitchRepository
)
from ghoste.repositories.campaign_repo import CampaignRepository
from ghoste.repositories.credential_repo import MetaCredentialRepository
from ghoste.repositories.user_repo import UserRepository
from ghoste.schemas.autopilot import AutopilotRunResponse
from ghoste.services.decision_engine import (
    Actions, DecisionContext, ManagerDecision, decide
)
from ghoste.services.integrations.meta_ads import AdPlatformFactory, get_ad_platform_factory
from ghoste.services.manager_messages import generate_message
from ghoste.services.notification_service import NotificationService, NotificationTypes, NotificationStatus

logger = logging.getLogger(__name__)

VALID_CONFIDENCE = ("low", "medium", "high")

Handler = Callable[[AdCampaign, ManagerDecision, datetime, AutopilotRunResponse], Awaitable[None]]


class AutopilotService:
    """Service for the autopilot run."""

    def __init__(
        self,
        session: AsyncSession,
        notifications: Optional[NotificationService] = None,
        provider_factory: Optional[AdPlatformFactory] = None
    ):
        self.session = session
        self.campaign_repo = CampaignRepository(session)
        self.approval_repo = ApprovalRequestRepository(session)
        self.decision_log_repo = ManagerDecisionLogRepository(session)
        self.killswitch_repo = KillswitchRepository(session)
        self.credential_repo = MetaCredentialRepository(session)
        self.user_repo = UserRepository(session)
        self.notifications = notifications or NotificationService(session)
        self.provider_factory = provider_factory or get_ad_platform_factory()

        self.handlers: Dict[str, Handler] = {
            Actions.NONE: self._hold,
            Actions.SPEND_MORE: self._request_budget_change,
            Actions.SPEND_LESS: self._request_budget_change,
            Actions.MAKE_MORE_CREATIVES: self._request_creatives,
        }

    async def run(self, now: Optional[datetime] = None) -> AutopilotRunResponse:
        now = now or datetime.utcnow()
        result = AutopilotRunResponse()

        killswitch = await self.killswitch_repo.current()
        if killswitch and (killswitch.pause_all_ads or killswitch.disable_ai_actions):
            logger.warning(
                f"Autopilot kill switch active (pause_all_ads={killswitch.pause_all_ads}, "
                f"disable_ai_actions={killswitch.disable_ai_actions}), skipping run"
            )
            result.killswitch_active = True
            return result

        # Ids only: a rollback expires every loaded row
        campaign_ids = [c.id for c in await self.campaign_repo.get_autopilot_candidates()]
        for campaign_id in campaign_ids:
            try:
                campaign = await self.campaign_repo.get(campaign_id)
                decision = await self.process_campaign(campaign, now, result)
            except Exception as e:
                logger.error(f"Autopilot failed for campaign {campaign_id}: {e!r}")
                await self.session.rollback()
                result.errors += 1
                continue

            result.evaluated += 1
            result.decisions[decision.action] = result.decisions.get(decision.action, 0) + 1

        logger.info(f"Autopilot run complete: {result.model_dump()}")
        return result

    async def process_campaign(
        self,
        campaign: AdCampaign,
        now: datetime,
        result: AutopilotRunResponse
    ) -> ManagerDecision:
        confidence = campaign.latest_confidence if campaign.latest_confidence in VALID_CONFIDENCE else "low"
        decision = decide(campaign.latest_score, confidence, DecisionContext.from_campaign(campaign, now))

        await self.decision_log_repo.create({
            "owner_user_id": campaign.user_id,
            "campaign_id": campaign.id,
            "score": campaign.latest_score,
            "score_confidence": campaign.latest_confidence,
            "action_decided": decision.action,
            "decision": decision.model_dump(mode="json"),
        })
        logger.info(f"Campaign {campaign.id}: score={campaign.latest_score} -> {decision.action} ({decision.reason})")

        await self.handlers[decision.action](campaign, decision, now, result)
        return decision

    async def _hold(self, campaign, decision, now, result) -> None:
        pass

    async def _request_budget_change(self, campaign, decision, now, result) -> None:
        body = await self._message(campaign, decision)

        # A reply must only ever approve a message the artist received
        if self.notifications.is_silenced(campaign, now):
            logger.info(f"Campaign {campaign.id} is silenced, no {decision.action} approval requested")
            status = await self.notifications.notify(
                campaign, body, NotificationTypes.APPROVAL_REQUEST, now=now
            )
            self._count(status, result)
            return

        approval = await self.approval_repo.create({
            "owner_user_id": campaign.user_id,
            "campaign_id": campaign.id,
            "action_requested": decision.action,
            "recommended_budget": decision.recommended_budget,
            "confidence": decision.confidence,
            "action_context": decision.model_dump(mode="json"),
            "notification_method": campaign.notification_method,
            "notification_body": body,
            "recipient_phone": normalize_phone(campaign.notification_phone),
            "recipient_email": campaign.notification_email,
            "expires_at": now + timedelta(hours=settings.APPROVAL_TTL_HOURS),
        })
        approval_id = approval.id
        result.approvals_created += 1

        status = await self.notifications.notify(
            campaign, body, NotificationTypes.APPROVAL_REQUEST, approval_id=approval_id, now=now
        )
        self._count(status, result)

        if status != NotificationStatus.SENT:
            await self.approval_repo.expire(approval_id, now)
            logger.info(f"Approval {approval_id} expired, the request was not delivered ({status})")

    async def _request_creatives(self, campaign, decision, now, result) -> None:
        notification_type = NotificationTypes.CREATIVE_REQUEST
        if decision.urgency == "high":
            await self._pause(campaign)
            result.paused += 1
            notification_type = NotificationTypes.PAUSE_NOTICE

        body = await self._message(campaign, decision)
        status = await self.notifications.notify(campaign, body, notification_type, now=now)
        self._count(status, result)

    async def _pause(self, campaign: AdCampaign) -> None:
        """Pause locally; also pause on Meta when the campaign lives there."""
        if campaign.meta_campaign_id:
            credential = await self.credential_repo.get_active_for_user(campaign.user_id)
            if credential:
                try:
                    await self.provider_factory(credential).pause_campaign(campaign.meta_campaign_id)
                except ExternalServiceError as e:
                    logger.error(f"Could not pause Meta campaign {campaign.meta_campaign_id}: {e.message}")
        await self.campaign_repo.pause(campaign.id)
        logger.info(f"Campaign {campaign.id} paused by autopilot")

    async def _message(self, campaign: AdCampaign, decision: ManagerDecision) -> str:
        user = await self.user_repo.get(campaign.user_id)
        return generate_message(decision, campaign.campaign_name or "Your", user.artist_name if user else None)

    def _count(self, status: str, result: AutopilotRunResponse) -> None:
        if status == NotificationStatus.SENT:
            result.notifications_sent += 1
        elif status == NotificationStatus.SKIPPED:
            result.notifications_skipped += 1

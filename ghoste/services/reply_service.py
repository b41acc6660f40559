"""
Approval replies.

Inbound SMS replies are matched to the sender's latest pending approval
and replay the decision stored on it. Nothing is re-scored here: the
budget applied is the one the artist was shown.
"""
import re
import logging
from datetime import datetime
from typing import Optional

from pydantic import ValidationError as PydanticValidationError
from sqlmodel.ext.asyncio.session import AsyncSession

from ghoste.core.phone import normalize_phone
from ghoste.models.autopilot import ApprovalRequest, ApprovalResponse
from ghoste.repositories.autopilot_repo import ApprovalRequestRepository
from ghoste.repositories.campaign_repo import CampaignRepository
from ghoste.schemas.autopilot import ReplyResponse
from ghoste.services.decision_engine import Actions, load_decision

logger = logging.getLogger(__name__)

AFFIRMATIVE = {"yes", "y", "yeah", "yep", "sure", "ok", "okay", "do it"}
NEGATIVE = {"no", "n", "nope", "nah", "stop", "cancel"}

BUDGET_ACTIONS = (Actions.SPEND_MORE, Actions.SPEND_LESS)
MAX_BUDGET_WRITE_ATTEMPTS = 3

_PUNCTUATION = re.compile(r"[^\w\s]")
_WHITESPACE = re.compile(r"\s+")


def classify_reply(body: Optional[str]) -> Optional[str]:
    """
    Returns "yes", "no" or None for an unrecognized reply.

    "YES!", " ok. " and "Do it" are all affirmative.
    """
    text = _WHITESPACE.sub(" ", _PUNCTUATION.sub("", (body or "").lower())).strip()
    if text in AFFIRMATIVE:
        return ApprovalResponse.YES
    if text in NEGATIVE:
        return ApprovalResponse.NO
    return None


class ReplyService:
    """Service for approval replies."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.approval_repo = ApprovalRequestRepository(session)
        self.campaign_repo = CampaignRepository(session)

    async def process(
        self,
        sender: Optional[str],
        body: Optional[str],
        now: Optional[datetime] = None
    ) -> ReplyResponse:
        now = now or datetime.utcnow()

        response = classify_reply(body)
        if response is None:
            logger.info(f"Unrecognized reply from {sender!r}, ignoring")
            return ReplyResponse(message="Reply not recognized. Text YES or NO.")

        phone = normalize_phone(sender)
        if not phone:
            return ReplyResponse(message="No pending request found")

        approval = await self.approval_repo.latest_pending_for_phone(phone, now)
        if not approval:
            logger.info(f"No pending approval for sender ending {phone[-4:]}")
            return ReplyResponse(message="No pending request found")

        # Read before claiming; the claim is a bulk update
        approval_id = approval.id
        action = approval.action_requested

        claimed = await self.approval_repo.claim(approval_id, response, (body or "").strip(), now)
        if not claimed:
            logger.info(f"Approval {approval_id} was already answered")
            return ReplyResponse(message="This request was already answered")

        logger.info(f"Approval {approval_id} answered '{response}' for {action}")

        if response == ApprovalResponse.NO:
            return ReplyResponse(
                message="Got it, no changes made.", response_recorded=True, action=action
            )

        budget_updated = False
        if action in BUDGET_ACTIONS:
            await self.session.refresh(approval)
            budget_updated = await self._apply_budget(approval)

        return ReplyResponse(
            message="Done! Your budget has been updated." if budget_updated else "Got it, thanks!",
            response_recorded=True,
            action=action,
            budget_updated=budget_updated
        )

    async def _apply_budget(self, approval: ApprovalRequest) -> bool:
        recommended = self._recommended_budget(approval)
        if recommended is None:
            logger.error(f"Approval {approval.id} carries no recommended budget")
            return False

        new_cents = int(round(recommended * 100))

        for attempt in range(1, MAX_BUDGET_WRITE_ATTEMPTS + 1):
            campaign = await self.campaign_repo.get(approval.campaign_id)
            if not campaign:
                logger.error(f"Campaign {approval.campaign_id} for approval {approval.id} not found")
                return False
            await self.session.refresh(campaign)

            old_cents = campaign.daily_budget_cents
            version = campaign.version
            if await self.campaign_repo.set_daily_budget_if_version(campaign.id, version, new_cents):
                await self.approval_repo.record_mutation(approval.id, {
                    "field": "daily_budget_cents",
                    "from": old_cents,
                    "to": new_cents,
                    "version": version + 1,
                })
                logger.info(
                    f"Campaign {campaign.id} daily budget {old_cents} -> {new_cents} cents "
                    f"(approval {approval.id})"
                )
                return True

            logger.warning(
                f"Budget write conflict on campaign {campaign.id} (attempt {attempt}/{MAX_BUDGET_WRITE_ATTEMPTS})"
            )

        logger.error(f"Gave up applying approval {approval.id} after {MAX_BUDGET_WRITE_ATTEMPTS} conflicts")
        return False

    def _recommended_budget(self, approval: ApprovalRequest) -> Optional[float]:
        try:
            decision = load_decision(approval.action_context or {})
        except PydanticValidationError:
            logger.warning(f"Approval {approval.id} has an unreadable decision, using the stored budget")
            return approval.recommended_budget
        return getattr(decision, "recommended_budget", None)

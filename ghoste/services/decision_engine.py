"""
Autopilot decision engine.

decide() is a pure function of a performance score, its confidence and
the campaign context. Persisting and notifying happen in the caller.

Budget-touching actions (spend_more, spend_less) always require approval;
make_more_creatives and none never do. The decision types encode this
so an approval flag can't drift from its action.
"""
import math
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Union, Literal, Annotated

from pydantic import BaseModel, Field, TypeAdapter

from ghoste.models.campaign import AdCampaign

Confidence = Literal["low", "medium", "high"]

SCALE_UP_FACTOR = 1.25
SCALE_DOWN_FACTOR = 0.75
STALE_CREATIVE_DAYS = 7
MIN_CREATIVES = 2


class Actions:
    NONE = "none"
    SPEND_MORE = "spend_more"
    SPEND_LESS = "spend_less"
    MAKE_MORE_CREATIVES = "make_more_creatives"

    ALL = (NONE, SPEND_MORE, SPEND_LESS, MAKE_MORE_CREATIVES)


class NoAction(BaseModel):
    action: Literal["none"] = "none"
    reason: str
    confidence: Confidence
    requires_approval: Literal[False] = False


class SpendMore(BaseModel):
    action: Literal["spend_more"] = "spend_more"
    reason: str
    confidence: Confidence
    requires_approval: Literal[True] = True
    recommended_budget: float  # major currency units per day


class SpendLess(BaseModel):
    action: Literal["spend_less"] = "spend_less"
    reason: str
    confidence: Confidence
    requires_approval: Literal[True] = True
    recommended_budget: float


class MakeMoreCreatives(BaseModel):
    action: Literal["make_more_creatives"] = "make_more_creatives"
    reason: str
    confidence: Confidence
    requires_approval: Literal[False] = False
    urgency: Literal["normal", "high"]
    creative_brief_needed: bool = True


ManagerDecision = Annotated[
    Union[NoAction, SpendMore, SpendLess, MakeMoreCreatives],
    Field(discriminator="action"),
]

_decision_adapter = TypeAdapter(ManagerDecision)


def load_decision(data: dict) -> ManagerDecision:
    """Rebuild a decision from its stored JSON (e.g. ApprovalRequest.action_context)."""
    return _decision_adapter.validate_python(data)


@dataclass
class DecisionContext:
    current_daily_budget: float
    max_daily_budget: float
    manager_mode_enabled: bool = True
    days_running: int = 0
    total_spend: float = 0.0
    creatives_count: int = 0
    last_creative_refresh_days: Optional[float] = None

    @classmethod
    def from_campaign(cls, campaign: AdCampaign, now: Optional[datetime] = None) -> "DecisionContext":
        now = now or datetime.utcnow()
        refreshed = campaign.last_creative_refresh_at
        return cls(
            current_daily_budget=campaign.daily_budget_cents / 100,
            max_daily_budget=campaign.max_daily_budget_cents / 100,
            manager_mode_enabled=campaign.manager_mode_enabled,
            days_running=max((now - campaign.created_at).days, 0),
            total_spend=(campaign.total_spend_cents or 0) / 100,
            creatives_count=len(campaign.creative_ids or []),
            last_creative_refresh_days=(now - refreshed).total_seconds() / 86400 if refreshed else None,
        )


def decide(score: Optional[float], confidence: Confidence, context: DecisionContext) -> ManagerDecision:
    """
    Decision table, first match wins:
      manager mode off   -> none
      score >= 80        -> spend_more (+25%, capped), unless confidence is low
      60 <= score < 80   -> none
      40 <= score < 60   -> make_more_creatives if creatives are stale/few, else spend_less (-25%)
      score < 40         -> make_more_creatives, urgent (caller pauses spend)
      otherwise          -> none, low confidence
    """
    if not context.manager_mode_enabled:
        return NoAction(reason="Manager mode disabled", confidence="high")

    if score is None or not math.isfinite(score):
        return NoAction(reason="Insufficient data to make a recommendation", confidence="low")

    if score >= 80 and confidence != "low":
        new_budget = round(min(context.current_daily_budget * SCALE_UP_FACTOR, context.max_daily_budget), 2)
        if new_budget <= context.current_daily_budget:
            return NoAction(
                reason="Already at max budget cap. Performance is strong but cannot scale further.",
                confidence="high",
            )
        return SpendMore(
            reason=f"Strong performance (score {score:g}). Recommending +25% budget increase.",
            confidence=confidence,
            recommended_budget=new_budget,
        )

    if 60 <= score < 80:
        return NoAction(
            reason=f"Good performance (score {score:g}). Maintaining current spend.",
            confidence=confidence,
        )

    if 40 <= score < 60:
        stale = (
            context.last_creative_refresh_days is not None
            and context.last_creative_refresh_days > STALE_CREATIVE_DAYS
        )
        if stale or context.creatives_count < MIN_CREATIVES:
            return MakeMoreCreatives(
                reason=(
                    f"Performance below target (score {score:g}). "
                    f"Creative {'fatigue detected' if stale else 'variety needed'}. Need 2-3 fresh videos."
                ),
                confidence=confidence,
                urgency="normal",
            )
        return SpendLess(
            reason=f"Weak performance (score {score:g}). Reducing budget 25% while optimizing.",
            confidence=confidence,
            recommended_budget=round(context.current_daily_budget * SCALE_DOWN_FACTOR, 2),
        )

    if score < 40:
        return MakeMoreCreatives(
            reason=f"Poor performance (score {score:g}). Pausing ads to protect budget. Need new content.",
            confidence="high",
            urgency="high",
        )

    return NoAction(reason="Insufficient data to make a recommendation", confidence="low")

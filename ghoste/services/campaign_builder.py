"""
Campaign build rules: type selection, budget templates, guardrails and
confidence normalization. Pure functions, no I/O.
"""
import math
import logging
from dataclasses import dataclass
from typing import Optional, List, Tuple, Any

from ghoste.core.exceptions import ValidationError

logger = logging.getLogger(__name__)


class CampaignTypes:
    SMART_LINK_PROBE = "smart_link_probe"
    ONE_CLICK_SOUND = "one_click_sound"
    FOLLOWER_GROWTH = "follower_growth"
    FAN_CAPTURE = "fan_capture"


AUTOMATION_MODES = ("assist", "guided", "autonomous")

CONFIDENCE_SCORES = {"low": 0.3, "medium": 0.6, "high": 0.9}

# promote_song campaigns with at least this many creatives go straight to one-click
ONE_CLICK_MIN_CREATIVES = 3

# Autopilot may scale a campaign up to this multiple of its launch budget
MAX_DAILY_MULTIPLIER = 2


@dataclass(frozen=True)
class BudgetTemplate:
    min_daily_cents: int
    max_daily_cents: int
    max_total_cents: Optional[int] = None
    target_cpl_cents: Optional[int] = None
    warm_audiences_only: bool = False


BUDGET_TEMPLATES = {
    CampaignTypes.SMART_LINK_PROBE: BudgetTemplate(500, 50000, max_total_cents=500000),
    CampaignTypes.ONE_CLICK_SOUND: BudgetTemplate(500, 50000),
    CampaignTypes.FOLLOWER_GROWTH: BudgetTemplate(1000, 100000, warm_audiences_only=True),
    CampaignTypes.FAN_CAPTURE: BudgetTemplate(1000, 50000, target_cpl_cents=500),
}


@dataclass
class CampaignPlan:
    campaign_type: str
    reasoning: str
    confidence: str
    daily_budget_cents: int
    total_budget_cents: Optional[int]
    max_daily_budget_cents: int
    guardrails_applied: List[str]


def select_campaign_type(ad_goal: str, creative_count: int) -> Tuple[str, str, str]:
    """Pick the campaign type for a goal. Returns (type, reasoning, confidence label)."""
    if ad_goal == "promote_song":
        if creative_count >= ONE_CLICK_MIN_CREATIVES:
            return (
                CampaignTypes.ONE_CLICK_SOUND,
                "Enough creatives to rotate. Using direct one-click promotion for maximum conversion.",
                "high",
            )
        return (
            CampaignTypes.SMART_LINK_PROBE,
            "Starting with smart link to test audience engagement across platforms. "
            "Will recommend one-click campaigns if performance is strong.",
            "medium",
        )
    if ad_goal == "grow_followers":
        return (
            CampaignTypes.FOLLOWER_GROWTH,
            "Follower growth campaign optimized for warm audience engagement. "
            "Will target users who have interacted with your content.",
            "high",
        )
    if ad_goal == "capture_fans":
        return (
            CampaignTypes.FAN_CAPTURE,
            "Lead generation campaign optimized for email/SMS capture. "
            "Will drive traffic to capture page with conversion tracking.",
            "high",
        )
    return (
        CampaignTypes.SMART_LINK_PROBE,
        "Defaulting to smart link probe for broad testing.",
        "low",
    )


def _dollars(cents: int) -> str:
    return f"${cents / 100:g}"


def apply_guardrails(
    campaign_type: str,
    automation_mode: str,
    daily_budget_cents: int,
    total_budget_cents: Optional[int] = None
) -> Tuple[int, Optional[int], List[str]]:
    """
    Clamp budgets to the campaign type's template.

    Returns:
        (daily_budget_cents, total_budget_cents, guardrail descriptions)

    Raises:
        ValidationError(code="budget_out_of_range") below the template minimum
    """
    template = BUDGET_TEMPLATES[campaign_type]
    guardrails: List[str] = []

    if daily_budget_cents < template.min_daily_cents:
        raise ValidationError(
            f"Minimum daily budget is {_dollars(template.min_daily_cents)}",
            code="budget_out_of_range",
        )

    if daily_budget_cents > template.max_daily_cents:
        guardrails.append(f"Daily budget capped at {_dollars(template.max_daily_cents)}")
        daily_budget_cents = template.max_daily_cents

    if template.max_total_cents and total_budget_cents and total_budget_cents > template.max_total_cents:
        guardrails.append(f"Total budget capped at {_dollars(template.max_total_cents)}")
        total_budget_cents = template.max_total_cents

    if automation_mode == "autonomous":
        guardrails.append("Autonomous mode: AI can scale budget within caps")
    elif automation_mode == "guided":
        guardrails.append("Guided mode: AI will suggest actions for approval")
    else:
        guardrails.append("Assist mode: Manual control with AI insights")

    if template.warm_audiences_only:
        guardrails.append("Follower growth: Warm audiences only (requires existing engagement)")

    if template.target_cpl_cents:
        guardrails.append(f"Target CPL: {_dollars(template.target_cpl_cents)}")

    return daily_budget_cents, total_budget_cents, guardrails


def build_campaign_plan(
    ad_goal: str,
    automation_mode: str,
    daily_budget_cents: int,
    total_budget_cents: Optional[int],
    creative_count: int
) -> CampaignPlan:
    campaign_type, reasoning, confidence = select_campaign_type(ad_goal, creative_count)
    daily, total, guardrails = apply_guardrails(campaign_type, automation_mode, daily_budget_cents, total_budget_cents)

    logger.info(f"Campaign plan: goal={ad_goal} type={campaign_type} confidence={confidence} daily={daily}")
    return CampaignPlan(
        campaign_type=campaign_type,
        reasoning=reasoning,
        confidence=confidence,
        daily_budget_cents=daily,
        total_budget_cents=total,
        max_daily_budget_cents=daily * MAX_DAILY_MULTIPLIER,
        guardrails_applied=guardrails,
    )


def normalize_confidence(value: Any) -> Tuple[Optional[float], Optional[str]]:
    """
    Map a qualitative or numeric confidence to (score, label).

    Known labels map to fixed scores; finite numbers pass through as the
    score. Anything else yields no score, so a string can never land in
    the numeric column.
    """
    if isinstance(value, bool):
        return None, None

    if isinstance(value, (int, float)):
        if math.isfinite(value):
            return float(value), None
        return None, None

    if isinstance(value, str):
        label = value.strip().lower()
        return CONFIDENCE_SCORES.get(label), label or None

    return None, None

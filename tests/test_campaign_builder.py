import math

import pytest

from ghoste.core.exceptions import ValidationError
from ghoste.services.campaign_builder import (
    CampaignTypes, build_campaign_plan, normalize_confidence, select_campaign_type
)


@pytest.mark.parametrize("value,expected", [
    ("low", (0.3, "low")),
    ("medium", (0.6, "medium")),
    (" HIGH ", (0.9, "high")),
    (0.42, (0.42, None)),
    (1, (1.0, None)),
])
def test_normalize_confidence(value, expected):
    assert normalize_confidence(value) == expected


@pytest.mark.parametrize("value", ["very sure", "", math.inf, math.nan, True, None, {"score": 1}])
def test_normalize_confidence_never_returns_a_string_score(value):
    score, _ = normalize_confidence(value)
    assert score is None or isinstance(score, float)


def test_promote_song_switches_to_one_click_with_three_creatives():
    assert select_campaign_type("promote_song", 2)[0] == CampaignTypes.SMART_LINK_PROBE
    assert select_campaign_type("promote_song", 3)[0] == CampaignTypes.ONE_CLICK_SOUND


def test_unknown_goal_defaults_with_low_confidence():
    campaign_type, _, confidence = select_campaign_type("get_famous", 5)
    assert campaign_type == CampaignTypes.SMART_LINK_PROBE
    assert confidence == "low"


def test_plan_caps_daily_budget_and_sets_autopilot_ceiling():
    plan = build_campaign_plan("promote_song", "autonomous", 80000, None, creative_count=1)

    assert plan.daily_budget_cents == 50000
    assert plan.max_daily_budget_cents == 100000
    assert "Daily budget capped at $500" in plan.guardrails_applied
    assert "Autonomous mode: AI can scale budget within caps" in plan.guardrails_applied


def test_plan_caps_total_budget_for_probe():
    plan = build_campaign_plan("promote_song", "guided", 2000, 900000, creative_count=1)
    assert plan.total_budget_cents == 500000
    assert "Total budget capped at $5000" in plan.guardrails_applied


def test_fan_capture_adds_cpl_target():
    plan = build_campaign_plan("capture_fans", "assist", 2000, None, creative_count=1)
    assert plan.campaign_type == CampaignTypes.FAN_CAPTURE
    assert "Target CPL: $5" in plan.guardrails_applied


def test_budget_below_template_minimum_is_rejected():
    with pytest.raises(ValidationError) as exc:
        build_campaign_plan("grow_followers", "guided", 500, None, creative_count=1)
    assert exc.value.code == "budget_out_of_range"

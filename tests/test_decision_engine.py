import math

import pytest

from ghoste.services.decision_engine import (
    Actions, DecisionContext, NoAction, SpendMore, SpendLess, MakeMoreCreatives,
    decide, load_decision
)


def _context(**overrides):
    values = dict(current_daily_budget=20.0, max_daily_budget=40.0, creatives_count=3)
    values.update(overrides)
    return DecisionContext(**values)


def test_score_80_boundary():
    assert decide(79, "high", _context()).action == Actions.NONE

    decision = decide(80, "high", _context())
    assert isinstance(decision, SpendMore)
    assert decision.recommended_budget == 25.0
    assert decision.requires_approval is True


def test_score_60_boundary():
    below = decide(59, "medium", _context())
    assert isinstance(below, SpendLess)
    assert below.recommended_budget == 15.0

    assert decide(60, "medium", _context()).action == Actions.NONE


def test_score_40_boundary():
    below = decide(39, "medium", _context())
    assert isinstance(below, MakeMoreCreatives)
    assert below.urgency == "high"
    assert below.requires_approval is False

    assert decide(40, "medium", _context()).action == Actions.SPEND_LESS


def test_middle_band_asks_for_creatives_when_few_or_stale():
    few = decide(50, "medium", _context(creatives_count=1))
    assert isinstance(few, MakeMoreCreatives)
    assert few.urgency == "normal"

    stale = decide(50, "medium", _context(last_creative_refresh_days=8))
    assert isinstance(stale, MakeMoreCreatives)
    assert "fatigue" in stale.reason


def test_spend_more_is_capped_at_max_budget():
    decision = decide(95, "high", _context(current_daily_budget=35.0, max_daily_budget=40.0))
    assert decision.recommended_budget == 40.0


def test_already_at_cap_holds():
    decision = decide(95, "high", _context(current_daily_budget=40.0, max_daily_budget=40.0))
    assert isinstance(decision, NoAction)
    assert "max budget cap" in decision.reason


def test_low_confidence_never_scales_up():
    assert decide(90, "low", _context()).action == Actions.NONE


def test_manager_mode_off_holds():
    decision = decide(95, "high", _context(manager_mode_enabled=False))
    assert decision.action == Actions.NONE
    assert decision.reason == "Manager mode disabled"


@pytest.mark.parametrize("score", [None, math.nan])
def test_missing_score_is_insufficient_data(score):
    decision = decide(score, "high", _context())
    assert decision.action == Actions.NONE
    assert decision.confidence == "low"


def test_only_budget_actions_require_approval():
    decisions = [
        decide(90, "high", _context()),
        decide(70, "high", _context()),
        decide(50, "high", _context()),
        decide(50, "high", _context(creatives_count=0)),
        decide(10, "high", _context()),
    ]
    for decision in decisions:
        assert decision.requires_approval == (decision.action in (Actions.SPEND_MORE, Actions.SPEND_LESS))


def test_stored_decision_loads_back_as_its_own_type():
    decision = decide(85, "medium", _context())
    stored = decision.model_dump(mode="json")

    loaded = load_decision(stored)

    assert isinstance(loaded, SpendMore)
    assert loaded.recommended_budget == decision.recommended_budget

from datetime import datetime, timedelta

import pytest
from sqlmodel import select

from ghoste.models.autopilot import ApprovalRequest, ApprovalResponse
from ghoste.models.campaign import AdCampaign
from ghoste.services.decision_engine import SpendMore, SpendLess
from ghoste.services.reply_service import ReplyService, classify_reply

NOW = datetime(2026, 3, 1, 12, 0)
PHONE = "5550102000"


async def _approval(session, campaign, decision, **overrides):
    values = dict(
        owner_user_id=campaign.user_id,
        campaign_id=campaign.id,
        action_requested=decision.action,
        recommended_budget=getattr(decision, "recommended_budget", None),
        confidence=decision.confidence,
        action_context=decision.model_dump(mode="json"),
        notification_body="Want me to push it a little more?",
        recipient_phone=PHONE,
        expires_at=NOW + timedelta(hours=48),
        created_at=NOW - timedelta(minutes=5),
    )
    values.update(overrides)
    approval = ApprovalRequest(**values)
    session.add(approval)
    await session.commit()
    await session.refresh(approval)
    return approval


async def _campaign(session, campaign_id):
    campaign = await session.get(AdCampaign, campaign_id)
    await session.refresh(campaign)
    return campaign


@pytest.mark.parametrize("body,expected", [
    ("YES", "yes"),
    ("yes!", "yes"),
    ("  Do it. ", "yes"),
    ("ok", "yes"),
    ("Nope", "no"),
    ("STOP", "no"),
    ("maybe later", None),
    ("", None),
    (None, None),
])
def test_classify_reply(body, expected):
    assert classify_reply(body) == expected


async def test_yes_applies_the_stored_budget_exactly(session, campaign_factory):
    campaign = await campaign_factory(daily_budget_cents=3200, version=1)
    approval = await _approval(session, campaign, SpendMore(reason="strong", confidence="high", recommended_budget=40.00))

    result = await ReplyService(session).process("+1 555-010-2000", "Yes", now=NOW)

    assert result.response_recorded is True
    assert result.budget_updated is True

    campaign = await _campaign(session, campaign.id)
    assert campaign.daily_budget_cents == 4000
    assert campaign.version == 2

    await session.refresh(approval)
    assert approval.response == ApprovalResponse.YES
    assert approval.raw_response == "Yes"
    assert approval.responded_at == NOW
    assert approval.executed_mutation == {"field": "daily_budget_cents", "from": 3200, "to": 4000, "version": 2}


async def test_spend_less_rounds_to_cents(session, campaign_factory):
    campaign = await campaign_factory(daily_budget_cents=2000)
    await _approval(session, campaign, SpendLess(reason="weak", confidence="medium", recommended_budget=12.345))

    await ReplyService(session).process(PHONE, "ok", now=NOW)

    assert (await _campaign(session, campaign.id)).daily_budget_cents == 1234


async def test_no_records_decline_without_mutation(session, campaign_factory):
    campaign = await campaign_factory(daily_budget_cents=2000)
    approval = await _approval(session, campaign, SpendMore(reason="strong", confidence="high", recommended_budget=25.0))

    result = await ReplyService(session).process(PHONE, "no", now=NOW)

    assert result.response_recorded is True
    assert result.budget_updated is False
    assert (await _campaign(session, campaign.id)).daily_budget_cents == 2000
    await session.refresh(approval)
    assert approval.response == ApprovalResponse.NO
    assert approval.executed_mutation is None


async def test_reply_without_pending_request_changes_nothing(session, campaign_factory):
    campaign = await campaign_factory(daily_budget_cents=2000)

    result = await ReplyService(session).process("+15559999999", "yes", now=NOW)

    assert result.ok is True
    assert result.response_recorded is False
    assert (await _campaign(session, campaign.id)).daily_budget_cents == 2000
    assert (await session.exec(select(ApprovalRequest))).all() == []


async def test_expired_request_is_ignored(session, campaign_factory):
    campaign = await campaign_factory(daily_budget_cents=2000)
    await _approval(
        session, campaign, SpendMore(reason="strong", confidence="high", recommended_budget=25.0),
        expires_at=NOW - timedelta(minutes=1),
    )

    result = await ReplyService(session).process(PHONE, "yes", now=NOW)

    assert result.response_recorded is False
    assert (await _campaign(session, campaign.id)).daily_budget_cents == 2000


async def test_unrecognized_reply_leaves_request_pending(session, campaign_factory):
    campaign = await campaign_factory()
    approval = await _approval(session, campaign, SpendMore(reason="strong", confidence="high", recommended_budget=25.0))

    result = await ReplyService(session).process(PHONE, "what does this mean", now=NOW)

    assert result.response_recorded is False
    await session.refresh(approval)
    assert approval.response == ApprovalResponse.PENDING


async def test_request_is_applied_once(session, campaign_factory):
    campaign = await campaign_factory(daily_budget_cents=2000)
    await _approval(session, campaign, SpendMore(reason="strong", confidence="high", recommended_budget=25.0))
    service = ReplyService(session)

    first = await service.process(PHONE, "yes", now=NOW)
    second = await service.process(PHONE, "yes", now=NOW)

    assert first.budget_updated is True
    assert second.response_recorded is False
    campaign = await _campaign(session, campaign.id)
    assert campaign.daily_budget_cents == 2500
    assert campaign.version == 2


async def test_latest_pending_request_wins(session, campaign_factory):
    old_campaign = await campaign_factory(daily_budget_cents=2000)
    new_campaign = await campaign_factory(daily_budget_cents=2000)
    await _approval(
        session, old_campaign, SpendMore(reason="strong", confidence="high", recommended_budget=25.0),
        created_at=NOW - timedelta(hours=3),
    )
    await _approval(session, new_campaign, SpendMore(reason="strong", confidence="high", recommended_budget=30.0))

    await ReplyService(session).process(PHONE, "yes", now=NOW)

    assert (await _campaign(session, old_campaign.id)).daily_budget_cents == 2000
    assert (await _campaign(session, new_campaign.id)).daily_budget_cents == 3000


async def test_conflicting_write_is_retried(session, campaign_factory, monkeypatch):
    campaign = await campaign_factory(daily_budget_cents=2000)
    await _approval(session, campaign, SpendMore(reason="strong", confidence="high", recommended_budget=25.0))

    from ghoste.repositories.campaign_repo import CampaignRepository
    original = CampaignRepository.set_daily_budget_if_version
    attempts = []

    async def conflicting_once(self, campaign_id, expected_version, cents):
        attempts.append(expected_version)
        if len(attempts) == 1:
            # Someone else edits the budget between our read and write
            await original(self, campaign_id, expected_version, 2100)
            return False
        return await original(self, campaign_id, expected_version, cents)

    monkeypatch.setattr(CampaignRepository, "set_daily_budget_if_version", conflicting_once)

    result = await ReplyService(session).process(PHONE, "yes", now=NOW)

    assert result.budget_updated is True
    assert attempts == [1, 2]
    campaign = await _campaign(session, campaign.id)
    assert campaign.daily_budget_cents == 2500
    assert campaign.version == 3

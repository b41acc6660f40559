import pytest
from pydantic import ValidationError as PydanticValidationError

from ghoste.database import async_session_factory
from ghoste.models.ad_platform import MetaCredential
from ghoste.models.link import SmartLink, OneClickLink, PublicTrackLink
from ghoste.services.context_service import Blockers, ContextResolver, LinkKinds, RunAdsContext


async def test_not_connected_is_the_first_blocker(session, user):
    context = await ContextResolver(async_session_factory).resolve(user.id)

    assert context.ready is False
    assert context.blocker == Blockers.PLATFORM_NOT_CONNECTED
    assert context.destination_candidates == []


async def test_connected_without_links_is_blocked_on_destination(session, user, credential):
    context = await ContextResolver(async_session_factory).resolve(user.id)

    assert context.has_ad_platform is True
    assert context.ready is False
    assert context.blocker == Blockers.NO_DESTINATION


async def test_ready_with_smart_link(session, user, credential):
    session.add(SmartLink(owner_user_id=user.id, slug="midnight", destination_url="https://open.spotify.com/x"))
    session.add(OneClickLink(owner_user_id=user.id, slug="mid-1c", target_url="https://open.spotify.com/y"))
    await session.commit()

    context = await ContextResolver(async_session_factory).resolve(user.id)

    assert context.ready is True
    assert context.blocker is None
    assert context.destination_candidates[0] == "https://ghoste.test/l/midnight"
    assert context.smart_links_count == 1
    assert context.secondary_links_count == 1
    assert context.latest_destination.slug == "midnight"
    assert "READY" in context.format_for_prompt()


async def test_one_click_link_alone_makes_the_user_ready(session, user, credential):
    session.add(OneClickLink(owner_user_id=user.id, slug="mid-1c", target_url="https://open.spotify.com/y"))
    await session.commit()

    context = await ContextResolver(async_session_factory).resolve(user.id)

    assert context.ready is True
    assert context.blocker is None
    assert context.smart_links_count == 0
    assert context.latest_destination.kind == LinkKinds.ONECLICK_LINK
    assert context.destination_candidates == ["https://open.spotify.com/y"]


async def test_public_track_link_alone_makes_the_user_ready(session, user, credential):
    session.add(PublicTrackLink(user_id=user.id, destination_url="https://ghoste.test/t/nova/midnight"))
    await session.commit()

    context = await ContextResolver(async_session_factory).resolve(user.id)

    assert context.ready is True
    assert context.latest_destination.kind == LinkKinds.PUBLIC_TRACK_LINK
    assert context.secondary_links_count == 1


async def test_missing_page_is_a_warning_not_a_blocker(session, user):
    session.add(MetaCredential(user_id=user.id, access_token="t", ad_account_id="act_1"))
    session.add(SmartLink(owner_user_id=user.id, slug="s1", destination_url="https://example.com"))
    await session.commit()

    context = await ContextResolver(async_session_factory).resolve(user.id)

    assert context.ready is True
    assert context.warnings == [Blockers.NO_PAGE]


async def test_failed_subquery_is_treated_as_absent(session, user, credential, monkeypatch):
    session.add(SmartLink(owner_user_id=user.id, slug="s1", destination_url="https://example.com"))
    await session.commit()

    async def broken(self, session, user_id):
        raise RuntimeError("connection reset")

    monkeypatch.setattr(ContextResolver, "_load_credential", broken)

    context = await ContextResolver(async_session_factory).resolve(user.id)

    assert context.ready is False
    assert context.blocker == Blockers.PLATFORM_NOT_CONNECTED
    assert context.degraded_sources == ["credential"]


def test_ready_without_destination_cannot_be_built():
    with pytest.raises(PydanticValidationError):
        RunAdsContext(has_ad_platform=True, destination_candidates=[], ready=True)

    with pytest.raises(PydanticValidationError):
        RunAdsContext(has_ad_platform=False, destination_candidates=["x"], ready=False)

import pytest
from sqlalchemy.exc import OperationalError

from ghoste.core.exceptions import ForbiddenError, ResolutionError
from ghoste.models.link import SmartLink
from ghoste.repositories.link_repo import SmartLinkRepository
from ghoste.services.link_service import (
    DestinationResolver, ResolutionMethods, auto_link_slug, extract_smart_link_slug
)


def test_extract_slug_from_managed_url():
    assert extract_smart_link_slug("https://ghoste.one/l/midnight-drive?utm=x") == "midnight-drive"
    assert extract_smart_link_slug("https://open.spotify.com/track/abc") is None
    assert extract_smart_link_slug(None) is None


async def test_auto_created_link_is_reused_on_retry(session, user):
    resolver = DestinationResolver(session)
    url = "https://open.spotify.com/track/abc123"

    first = await resolver.resolve(user.id, destination_url=url)
    second = await resolver.resolve(user.id, destination_url=url)

    assert first.method == ResolutionMethods.CREATED
    assert second.method == ResolutionMethods.EXISTING_AUTO
    assert first.smart_link_id == second.smart_link_id
    assert first.smart_link_slug == auto_link_slug(user.id, url)
    assert second.url == f"https://ghoste.test/l/{first.smart_link_slug}"


async def test_resolves_by_id_then_slug(session, user):
    link = SmartLink(owner_user_id=user.id, slug="midnight", destination_url="https://example.com")
    session.add(link)
    await session.commit()

    resolver = DestinationResolver(session)
    by_id = await resolver.resolve(user.id, smart_link_id=link.id)
    by_slug = await resolver.resolve(user.id, smart_link_slug="midnight")
    by_url = await resolver.resolve(user.id, destination_url="https://ghoste.test/l/midnight")

    assert by_id.method == ResolutionMethods.SMART_LINK_ID
    assert by_slug.method == ResolutionMethods.SMART_LINK_SLUG
    assert by_url.method == ResolutionMethods.EXTRACTED_SLUG
    assert {by_id.smart_link_id, by_slug.smart_link_id, by_url.smart_link_id} == {link.id}


async def test_someone_elses_link_is_forbidden(session, user, other_user):
    link = SmartLink(owner_user_id=other_user.id, slug="theirs", destination_url="https://example.com")
    session.add(link)
    await session.commit()

    with pytest.raises(ForbiddenError):
        await DestinationResolver(session).resolve(user.id, smart_link_id=link.id)


async def test_nothing_to_resolve(session, user):
    with pytest.raises(ResolutionError) as exc:
        await DestinationResolver(session).resolve(user.id)
    assert exc.value.code == "no_destination"


async def _lookup_misses(self, user_id, smart_link_id, smart_link_slug, destination_url):
    return None, None


async def test_concurrent_insert_reuses_the_existing_link(session, user, monkeypatch):
    user_id = user.id
    url = "https://open.spotify.com/track/abc123"
    link = SmartLink(owner_user_id=user_id, slug=auto_link_slug(user_id, url), destination_url=url)
    session.add(link)
    await session.commit()
    link_id = link.id

    # The other request's insert lands between our lookup and our create
    monkeypatch.setattr(DestinationResolver, "_lookup", _lookup_misses)

    resolved = await DestinationResolver(session).resolve(user_id, destination_url=url)

    assert resolved.method == ResolutionMethods.EXISTING_AUTO
    assert resolved.smart_link_id == link_id
    assert resolved.url == f"https://ghoste.test/l/{auto_link_slug(user_id, url)}"


async def test_conflicting_slug_owned_by_someone_else_is_forbidden(session, user, other_user, monkeypatch):
    user_id = user.id
    session.add(SmartLink(owner_user_id=other_user.id, slug="taken", destination_url="https://example.com"))
    await session.commit()
    monkeypatch.setattr(DestinationResolver, "_lookup", _lookup_misses)

    with pytest.raises(ForbiddenError):
        await DestinationResolver(session).resolve(
            user_id, smart_link_slug="taken", destination_url="https://open.spotify.com/track/abc123"
        )


async def test_failed_insert_falls_back_to_the_raw_url(session, user, monkeypatch):
    user_id = user.id

    async def broken_create(self, obj_in):
        raise OperationalError("INSERT INTO smart_links", {}, Exception("database is locked"))

    monkeypatch.setattr(SmartLinkRepository, "create", broken_create)

    resolved = await DestinationResolver(session).resolve(
        user_id, destination_url="https://open.spotify.com/track/abc123"
    )

    assert resolved.method == ResolutionMethods.FALLBACK_DESTINATION_URL
    assert resolved.url == "https://open.spotify.com/track/abc123"
    assert resolved.smart_link_id is None

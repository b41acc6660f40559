"""
Run-ads context resolution.

The only place allowed to answer "can this user run ads". Every caller
(submission, autopilot, chat) goes through ContextResolver.resolve().
"""
import asyncio
import logging
import uuid
from typing import Optional, List, Callable, Awaitable, Any

from pydantic import BaseModel, model_validator
from sqlmodel.ext.asyncio.session import AsyncSession

from ghoste.config import settings
from ghoste.database import async_session_factory
from ghoste.repositories.credential_repo import MetaCredentialRepository
from ghoste.repositories.link_repo import (
    SmartLinkRepository, OneClickLinkRepository, PublicTrackLinkRepository
)
from ghoste.repositories.creative_repo import CreativeRepository

logger = logging.getLogger(__name__)


class Blockers:
    PLATFORM_NOT_CONNECTED = "platform_not_connected"
    NO_DESTINATION = "no_destination"
    NO_AD_ACCOUNT = "no_ad_account"
    NO_PAGE = "no_page"


class LinkKinds:
    SMART_LINK = "smart_link"
    ONECLICK_LINK = "oneclick_link"
    PUBLIC_TRACK_LINK = "public_track_link"


def smart_link_url(slug: str) -> str:
    """Public URL of a managed smart link."""
    return f"{settings.PUBLIC_BASE_URL.rstrip('/')}/l/{slug}"


class DestinationLink(BaseModel):
    id: uuid.UUID
    kind: str
    url: str
    slug: Optional[str] = None
    title: Optional[str] = None


class RunAdsContext(BaseModel):
    """
    Derived view of a user's ad readiness. Never persisted.

    ready is true exactly when the ad platform is connected and at least
    one destination exists; blocker names the highest-priority unmet
    condition and is None when ready.
    """
    has_ad_platform: bool
    ad_account_id: Optional[str] = None
    page_id: Optional[str] = None
    pixel_id: Optional[str] = None

    destination_candidates: List[str] = []
    latest_destination: Optional[DestinationLink] = None
    smart_links_count: int = 0
    secondary_links_count: int = 0
    creative_count: int = 0

    ready: bool
    blocker: Optional[str] = None
    warnings: List[str] = []

    # Sub-queries that failed and were treated as absent
    degraded_sources: List[str] = []

    @model_validator(mode="after")
    def check_readiness(self):
        expected = self.has_ad_platform and len(self.destination_candidates) > 0
        if self.ready != expected:
            raise ValueError("ready must equal has_ad_platform and a non-empty destination list")
        if self.ready and self.blocker is not None:
            raise ValueError("blocker must be empty when ready")
        if not self.ready and self.blocker is None:
            raise ValueError("blocker is required when not ready")
        return self

    def format_for_prompt(self) -> str:
        """Plain-text summary handed to the assistant prompt."""
        lines = ["RUN ADS STATUS", ""]

        if self.has_ad_platform:
            lines.append("Meta: connected")
            if self.ad_account_id:
                lines.append(f"  Ad account: {self.ad_account_id}")
            if self.page_id:
                lines.append(f"  Page: {self.page_id}")
            if self.pixel_id:
                lines.append(f"  Pixel: {self.pixel_id}")
        else:
            lines.append("Meta: NOT connected (user must connect Meta in Profile)")

        lines.append("")
        total = self.smart_links_count + self.secondary_links_count
        if total > 0:
            lines.append(f"Destination links: {total} ({self.smart_links_count} smart links)")
            if self.latest_destination:
                lines.append(f"  Latest: {self.latest_destination.title or 'Untitled'} -> {self.latest_destination.url}")
        else:
            lines.append("Destination links: none yet (ask for the song link)")

        lines.append(f"Creatives uploaded: {self.creative_count}")
        for warning in self.warnings:
            lines.append(f"Warning: {warning}")

        lines.append("")
        if self.ready:
            lines.append("READY: a paused draft campaign can be created")
        else:
            lines.append(f"NOT READY: blocker={self.blocker}")

        return "\n".join(lines)


class ContextResolver:
    """
    Aggregates credential, link and creative state into a RunAdsContext.

    Sub-queries are independent, so each one runs in its own session and
    they are awaited together. A failing sub-query is logged and its field
    treated as absent, which can only ever add a blocker.
    """

    def __init__(self, session_factory: Callable[[], AsyncSession] = None):
        self.session_factory = session_factory or async_session_factory

    async def resolve(self, user_id: uuid.UUID) -> RunAdsContext:
        sources = {
            "credential": (self._load_credential, None),
            "smart_links": (self._load_smart_links, (0, None)),
            "oneclick_links": (self._load_oneclick_links, (0, None)),
            "public_track_links": (self._load_public_track_links, (0, None)),
            "creatives": (self._load_creative_count, 0),
        }

        results = await asyncio.gather(
            *(self._in_session(loader, user_id) for loader, _ in sources.values()),
            return_exceptions=True
        )

        resolved = {}
        degraded = []
        for (name, (_, default)), result in zip(sources.items(), results):
            if isinstance(result, asyncio.CancelledError):
                raise result
            if isinstance(result, Exception):
                logger.error(f"Context sub-query '{name}' failed for user {user_id}: {result!r}")
                degraded.append(name)
                result = default
            resolved[name] = result

        credential = resolved["credential"]
        smart_count, latest_smart = resolved["smart_links"]
        oneclick_count, latest_oneclick = resolved["oneclick_links"]
        track_count, latest_track = resolved["public_track_links"]

        candidates: List[DestinationLink] = []
        if latest_smart:
            candidates.append(DestinationLink(
                id=latest_smart.id, kind=LinkKinds.SMART_LINK, url=smart_link_url(latest_smart.slug),
                slug=latest_smart.slug, title=latest_smart.title
            ))
        if latest_oneclick:
            candidates.append(DestinationLink(
                id=latest_oneclick.id, kind=LinkKinds.ONECLICK_LINK, url=latest_oneclick.target_url,
                slug=latest_oneclick.slug, title=latest_oneclick.title
            ))
        if latest_track:
            candidates.append(DestinationLink(
                id=latest_track.id, kind=LinkKinds.PUBLIC_TRACK_LINK, url=latest_track.destination_url,
                title=latest_track.title
            ))

        has_ad_platform = credential is not None and bool(credential.access_token)

        warnings = []
        if has_ad_platform and not credential.ad_account_id:
            warnings.append(Blockers.NO_AD_ACCOUNT)
        if has_ad_platform and not credential.page_id:
            warnings.append(Blockers.NO_PAGE)

        ready = has_ad_platform and len(candidates) > 0
        blocker = None
        if not has_ad_platform:
            blocker = Blockers.PLATFORM_NOT_CONNECTED
        elif not candidates:
            blocker = Blockers.NO_DESTINATION

        context = RunAdsContext(
            has_ad_platform=has_ad_platform,
            ad_account_id=credential.ad_account_id if has_ad_platform else None,
            page_id=credential.page_id if has_ad_platform else None,
            pixel_id=credential.pixel_id if has_ad_platform else None,
            destination_candidates=[c.url for c in candidates],
            latest_destination=candidates[0] if candidates else None,
            smart_links_count=smart_count,
            secondary_links_count=oneclick_count + track_count,
            creative_count=resolved["creatives"],
            ready=ready,
            blocker=blocker,
            warnings=warnings,
            degraded_sources=degraded,
        )

        logger.info(
            f"Resolved run-ads context for user {user_id}: ready={ready} blocker={blocker} "
            f"destinations={len(candidates)} warnings={warnings} degraded={degraded}"
        )
        return context

    async def _in_session(self, loader: Callable[[AsyncSession, uuid.UUID], Awaitable[Any]], user_id: uuid.UUID):
        async with self.session_factory() as session:
            return await loader(session, user_id)

    async def _load_credential(self, session: AsyncSession, user_id: uuid.UUID):
        return await MetaCredentialRepository(session).get_active_for_user(user_id)

    async def _load_smart_links(self, session: AsyncSession, user_id: uuid.UUID):
        repo = SmartLinkRepository(session)
        return await repo.count_for_user(user_id), await repo.latest_for_user(user_id)

    async def _load_oneclick_links(self, session: AsyncSession, user_id: uuid.UUID):
        repo = OneClickLinkRepository(session)
        return await repo.count_for_user(user_id), await repo.latest_for_user(user_id)

    async def _load_public_track_links(self, session: AsyncSession, user_id: uuid.UUID):
        repo = PublicTrackLinkRepository(session)
        return await repo.count_for_user(user_id), await repo.latest_for_user(user_id)

    async def _load_creative_count(self, session: AsyncSession, user_id: uuid.UUID):
        return await CreativeRepository(session).count_for_user(user_id)

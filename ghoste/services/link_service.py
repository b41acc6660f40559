"""
Destination link resolution for campaign submission.
"""
import re
import hashlib
import logging
import uuid
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel.ext.asyncio.session import AsyncSession

from ghoste.core.exceptions import ForbiddenError, ResolutionError
from ghoste.models.link import SmartLink
from ghoste.repositories.link_repo import SmartLinkRepository
from ghoste.services.context_service import smart_link_url

logger = logging.getLogger(__name__)

SMART_LINK_SLUG_PATTERN = re.compile(r"/l/([a-zA-Z0-9_-]+)")


def extract_smart_link_slug(url: Optional[str]) -> Optional[str]:
    """Slug from a managed link URL such as https://ghoste.one/l/my-song."""
    if not url:
        return None
    match = SMART_LINK_SLUG_PATTERN.search(url)
    return match.group(1) if match else None


def auto_link_slug(user_id: uuid.UUID, destination_url: str) -> str:
    """Same (user, destination) always yields the same slug."""
    digest = hashlib.sha1(f"{user_id}:{destination_url.strip()}".encode("utf-8")).hexdigest()
    return f"campaign-{digest[:12]}"


class ResolutionMethods:
    SMART_LINK_ID = "smart_link_id"
    SMART_LINK_SLUG = "smart_link_slug"
    EXTRACTED_SLUG = "extracted_slug"
    EXISTING_AUTO = "existing_auto"
    CREATED = "created"
    FALLBACK_DESTINATION_URL = "fallback_destination_url"


@dataclass
class ResolvedDestination:
    url: str
    method: str
    smart_link: Optional[SmartLink] = None

    @property
    def smart_link_id(self) -> Optional[uuid.UUID]:
        return self.smart_link.id if self.smart_link else None

    @property
    def smart_link_slug(self) -> Optional[str]:
        return self.smart_link.slug if self.smart_link else None


class DestinationResolver:
    """
    Resolves the ad destination: link id, then slug, then a slug found in
    the destination URL, then an auto-created link, then the raw URL.
    A link owned by someone else is always a hard failure.
    """

    def __init__(self, session: AsyncSession):
        self.session = session
        self.link_repo = SmartLinkRepository(session)

    async def resolve(
        self,
        user_id: uuid.UUID,
        smart_link_id: Optional[uuid.UUID] = None,
        smart_link_slug: Optional[str] = None,
        destination_url: Optional[str] = None
    ) -> ResolvedDestination:
        link, method = await self._lookup(user_id, smart_link_id, smart_link_slug, destination_url)

        if link is None and destination_url:
            link, method = await self._create(user_id, smart_link_slug, destination_url)

        if link is not None:
            if link.owner_user_id != user_id:
                logger.error(f"Smart link ownership mismatch: link={link.id} owner={link.owner_user_id} user={user_id}")
                raise ForbiddenError("Smart link does not belong to user")
            resolved = ResolvedDestination(url=smart_link_url(link.slug), method=method, smart_link=link)
        elif destination_url:
            resolved = ResolvedDestination(url=destination_url, method=ResolutionMethods.FALLBACK_DESTINATION_URL)
        else:
            raise ResolutionError(
                "no_destination",
                "No destination_url provided and smart link resolution failed",
            )

        logger.info(
            f"Destination resolved: method={resolved.method} slug={resolved.smart_link_slug} url={resolved.url}"
        )
        return resolved

    async def _lookup(self, user_id, smart_link_id, smart_link_slug, destination_url):
        if smart_link_id:
            link = await self.link_repo.get(smart_link_id)
            if link:
                return link, ResolutionMethods.SMART_LINK_ID

        if smart_link_slug:
            link = await self.link_repo.get_by_slug(smart_link_slug)
            if link:
                return link, ResolutionMethods.SMART_LINK_SLUG

        extracted = extract_smart_link_slug(destination_url)
        if extracted:
            link = await self.link_repo.get_by_slug(extracted)
            if link:
                return link, ResolutionMethods.EXTRACTED_SLUG

        if destination_url:
            link = await self.link_repo.get_by_slug(auto_link_slug(user_id, destination_url))
            if link:
                return link, ResolutionMethods.EXISTING_AUTO

        return None, None

    async def _create(self, user_id, smart_link_slug, destination_url):
        slug = smart_link_slug or extract_smart_link_slug(destination_url) or auto_link_slug(user_id, destination_url)
        try:
            link = await self.link_repo.create({
                "owner_user_id": user_id,
                "slug": slug,
                "destination_url": destination_url,
                "title": "Campaign Link",
            })
        except IntegrityError:
            # Same slug inserted concurrently; use that one
            await self.session.rollback()
            link = await self.link_repo.get_by_slug(slug)
            if link:
                logger.info(f"Smart link '{slug}' already exists, reusing id={link.id}")
                return link, ResolutionMethods.EXISTING_AUTO
            logger.warning(f"Smart link '{slug}' conflicted but is not readable, continuing with destination_url only")
            return None, ResolutionMethods.FALLBACK_DESTINATION_URL
        except SQLAlchemyError as e:
            # Link creation never blocks a submission
            await self.session.rollback()
            logger.warning(f"Failed to create smart link '{slug}', continuing with destination_url only: {e}")
            return None, ResolutionMethods.FALLBACK_DESTINATION_URL

        logger.info(f"Smart link created: id={link.id} slug={link.slug}")
        return link, ResolutionMethods.CREATED

"""
Destination link repositories (smart links and secondary link types).
"""
import uuid
from typing import Optional

from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession
from sqlalchemy import func

from ghoste.models.link import SmartLink, OneClickLink, PublicTrackLink
from ghoste.repositories.base import BaseRepository


class SmartLinkRepository(BaseRepository[SmartLink]):
    """Repository for SmartLink operations."""

    def __init__(self, session: AsyncSession):
        super().__init__(SmartLink, session)

    async def get_by_slug(self, slug: str) -> Optional[SmartLink]:
        return await self.get_by_field("slug", slug)

    async def latest_for_user(self, user_id: uuid.UUID) -> Optional[SmartLink]:
        query = select(SmartLink).where(
            SmartLink.owner_user_id == user_id
        ).order_by(SmartLink.created_at.desc()).limit(1)
        result = await self.session.exec(query)
        return result.first()

    async def count_for_user(self, user_id: uuid.UUID) -> int:
        query = select(func.count()).select_from(SmartLink).where(SmartLink.owner_user_id == user_id)
        result = await self.session.exec(query)
        return result.one()


class OneClickLinkRepository(BaseRepository[OneClickLink]):
    """Repository for OneClickLink operations."""

    def __init__(self, session: AsyncSession):
        super().__init__(OneClickLink, session)

    async def latest_for_user(self, user_id: uuid.UUID) -> Optional[OneClickLink]:
        query = select(OneClickLink).where(
            OneClickLink.owner_user_id == user_id
        ).order_by(OneClickLink.created_at.desc()).limit(1)
        result = await self.session.exec(query)
        return result.first()

    async def count_for_user(self, user_id: uuid.UUID) -> int:
        query = select(func.count()).select_from(OneClickLink).where(OneClickLink.owner_user_id == user_id)
        result = await self.session.exec(query)
        return result.one()


class PublicTrackLinkRepository(BaseRepository[PublicTrackLink]):
    """Repository for PublicTrackLink operations."""

    def __init__(self, session: AsyncSession):
        super().__init__(PublicTrackLink, session)

    async def latest_for_user(self, user_id: uuid.UUID) -> Optional[PublicTrackLink]:
        query = select(PublicTrackLink).where(
            PublicTrackLink.user_id == user_id
        ).order_by(PublicTrackLink.created_at.desc()).limit(1)
        result = await self.session.exec(query)
        return result.first()

    async def count_for_user(self, user_id: uuid.UUID) -> int:
        query = select(func.count()).select_from(PublicTrackLink).where(PublicTrackLink.user_id == user_id)
        result = await self.session.exec(query)
        return result.one()

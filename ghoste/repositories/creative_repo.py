"""
Ad creative repository.
"""
import uuid
from typing import List

from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession
from sqlalchemy import func

from ghoste.models.creative import AdCreative
from ghoste.repositories.base import BaseRepository


class CreativeRepository(BaseRepository[AdCreative]):
    """Repository for AdCreative operations."""

    def __init__(self, session: AsyncSession):
        super().__init__(AdCreative, session)

    async def get_by_draft(self, user_id: uuid.UUID, draft_id: uuid.UUID) -> List[AdCreative]:
        """Creatives uploaded under a draft, oldest first."""
        query = select(AdCreative).where(
            AdCreative.owner_user_id == user_id,
            AdCreative.draft_id == draft_id
        ).order_by(AdCreative.created_at)
        result = await self.session.exec(query)
        return result.all()

    async def get_by_ids(self, user_id: uuid.UUID, creative_ids: List[uuid.UUID]) -> List[AdCreative]:
        """Owned creatives among the given ids."""
        if not creative_ids:
            return []
        query = select(AdCreative).where(
            AdCreative.owner_user_id == user_id,
            AdCreative.id.in_(creative_ids)
        )
        result = await self.session.exec(query)
        return result.all()

    async def count_for_user(self, user_id: uuid.UUID) -> int:
        query = select(func.count()).select_from(AdCreative).where(AdCreative.owner_user_id == user_id)
        result = await self.session.exec(query)
        return result.one()

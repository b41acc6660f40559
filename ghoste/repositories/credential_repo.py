"""
Meta credential repository.
"""
import uuid
from typing import Optional

from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from ghoste.models.ad_platform import MetaCredential
from ghoste.repositories.base import BaseRepository


class MetaCredentialRepository(BaseRepository[MetaCredential]):
    """Repository for MetaCredential operations."""

    def __init__(self, session: AsyncSession):
        super().__init__(MetaCredential, session)

    async def get_active_for_user(self, user_id: uuid.UUID) -> Optional[MetaCredential]:
        query = select(MetaCredential).where(
            MetaCredential.user_id == user_id,
            MetaCredential.is_active == True  # noqa: E712
        )
        result = await self.session.exec(query)
        return result.first()

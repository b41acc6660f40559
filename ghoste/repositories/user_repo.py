"""
User repository.
"""
from typing import List

from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from ghoste.models.user import User
from ghoste.repositories.base import BaseRepository


class UserRepository(BaseRepository[User]):
    """Repository for User operations."""

    def __init__(self, session: AsyncSession):
        super().__init__(User, session)

    async def get_active(self) -> List[User]:
        """All active users, oldest account first."""
        query = select(User).where(User.is_active == True).order_by(User.created_at)  # noqa: E712
        result = await self.session.exec(query)
        return list(result.all())

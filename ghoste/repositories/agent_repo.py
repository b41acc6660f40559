"""
Agent job and manager settings repositories.
"""
import uuid
from typing import Optional

from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from ghoste.models.agent import AgentJob, ManagerSettings, JobTypes
from ghoste.repositories.base import BaseRepository


class AgentJobRepository(BaseRepository[AgentJob]):
    """Repository for AgentJob operations."""

    def __init__(self, session: AsyncSession):
        super().__init__(AgentJob, session)

    async def last_checkin(self, user_id: uuid.UUID) -> Optional[AgentJob]:
        """Latest job that counts toward the check-in cadence (anything but campaign_watch)."""
        query = select(AgentJob).where(
            AgentJob.user_id == user_id,
            AgentJob.job_type != JobTypes.CAMPAIGN_WATCH
        ).order_by(AgentJob.created_at.desc()).limit(1)
        result = await self.session.exec(query)
        return result.first()

    async def last_of_type(self, user_id: uuid.UUID, job_type: str) -> Optional[AgentJob]:
        query = select(AgentJob).where(
            AgentJob.user_id == user_id,
            AgentJob.job_type == job_type
        ).order_by(AgentJob.created_at.desc()).limit(1)
        result = await self.session.exec(query)
        return result.first()


class ManagerSettingsRepository(BaseRepository[ManagerSettings]):
    """Repository for ManagerSettings operations."""

    def __init__(self, session: AsyncSession):
        super().__init__(ManagerSettings, session)

    async def get_for_user(self, user_id: uuid.UUID) -> Optional[ManagerSettings]:
        return await self.get_by_field("user_id", user_id)

"""
Ads operation log repository.
"""
import uuid
from typing import Optional
from datetime import datetime

from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession
from sqlalchemy import func

from ghoste.models.activity import AdsOperationLog, Operations
from ghoste.repositories.base import BaseRepository


class AdsOperationLogRepository(BaseRepository[AdsOperationLog]):
    """Repository for AdsOperationLog operations."""

    def __init__(self, session: AsyncSession):
        super().__init__(AdsOperationLog, session)

    async def log(
        self,
        label: str,
        user_id: Optional[uuid.UUID] = None,
        campaign_id: Optional[uuid.UUID] = None,
        ok: bool = True,
        status_code: int = 200,
        error: Optional[str] = None,
        request: Optional[dict] = None,
        response: Optional[dict] = None
    ) -> AdsOperationLog:
        """Create an operation log entry."""
        entry = AdsOperationLog(
            user_id=user_id,
            campaign_id=campaign_id,
            label=label,
            ok=ok,
            status_code=status_code,
            error=error,
            request=request or {},
            response=response or {}
        )
        self.session.add(entry)
        await self.session.commit()
        await self.session.refresh(entry)
        return entry

    async def count_submissions_since(self, user_id: uuid.UUID, since: datetime) -> int:
        """Submission attempts (one save_draft row each) since a point in time."""
        query = select(func.count()).select_from(AdsOperationLog).where(
            AdsOperationLog.user_id == user_id,
            AdsOperationLog.label == Operations.SAVE_DRAFT,
            AdsOperationLog.created_at >= since
        )
        result = await self.session.exec(query)
        return result.one()


"""
Publish queue repository.
"""
import uuid
from typing import Optional
from datetime import datetime

from sqlmodel.ext.asyncio.session import AsyncSession
from sqlalchemy import update

from ghoste.models.publish_queue import PublishQueueItem
from ghoste.repositories.base import BaseRepository


class PublishQueueRepository(BaseRepository[PublishQueueItem]):
    """Repository for PublishQueueItem operations."""

    def __init__(self, session: AsyncSession):
        super().__init__(PublishQueueItem, session)

    async def claim_pending(self, item_id: uuid.UUID, status: str) -> bool:
        """Move a pending item to `status`; False if already decided."""
        stmt = (
            update(PublishQueueItem)
            .where(PublishQueueItem.id == item_id, PublishQueueItem.status == "pending")
            .values(status=status, decided_at=datetime.utcnow())
        )
        result = await self.session.execute(stmt)
        await self.session.commit()
        return result.rowcount == 1

    async def set_result(self, item_id: uuid.UUID, status: str, result: dict) -> Optional[PublishQueueItem]:
        return await self.update(item_id, {"status": status, "result": result})

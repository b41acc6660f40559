"""
Activity service - ads operation audit log and the submission rate limit.

Audit rows are written through their own session so they survive a
rollback of the caller's unit of work.
"""
import uuid
import logging
from datetime import datetime, timedelta
from typing import Optional, Callable

from sqlmodel.ext.asyncio.session import AsyncSession

from ghoste.config import settings
from ghoste.database import async_session_factory
from ghoste.repositories.activity_repo import AdsOperationLogRepository
from ghoste.models.activity import AdsOperationLog

logger = logging.getLogger(__name__)


class ActivityService:
    """Service for ads operation logging."""

    def __init__(self, session_factory: Callable[[], AsyncSession] = None):
        self.session_factory = session_factory or async_session_factory

    async def record(
        self,
        label: str,
        user_id: Optional[uuid.UUID] = None,
        campaign_id: Optional[uuid.UUID] = None,
        ok: bool = True,
        status_code: int = 200,
        error: Optional[str] = None,
        request: Optional[dict] = None,
        response: Optional[dict] = None
    ) -> Optional[AdsOperationLog]:
        """Write an audit row. Failures are logged, never raised."""
        try:
            async with self.session_factory() as session:
                return await AdsOperationLogRepository(session).log(
                    label=label,
                    user_id=user_id,
                    campaign_id=campaign_id,
                    ok=ok,
                    status_code=status_code,
                    error=error,
                    request=request,
                    response=response
                )
        except Exception as e:
            logger.error(f"Failed to record ads operation '{label}' for user {user_id}: {e!r}")
            return None

    async def submission_allowed(self, user_id: uuid.UUID, now: Optional[datetime] = None) -> bool:
        """
        Per-user hourly submission limit. Fails open: if the count
        cannot be read, the submission is allowed.
        """
        limit = settings.SUBMIT_RATE_LIMIT_PER_HOUR
        if limit <= 0:
            return True

        since = (now or datetime.utcnow()) - timedelta(hours=1)
        try:
            async with self.session_factory() as session:
                count = await AdsOperationLogRepository(session).count_submissions_since(user_id, since)
        except Exception as e:
            logger.warning(f"Rate limit check failed for user {user_id}, allowing: {e!r}")
            return True

        if count >= limit:
            logger.warning(f"Submission rate limit hit for user {user_id}: {count}/{limit} in the last hour")
            return False
        return True

"""
Agent API routes.
"""
from fastapi import APIRouter, Depends
from sqlmodel.ext.asyncio.session import AsyncSession

from ghoste.database import get_session
from ghoste.api.deps import require_cron_secret
from ghoste.schemas.autopilot import EnqueueResponse
from ghoste.services.scheduler_service import SchedulerService

router = APIRouter(prefix="/api/agent", tags=["agent"])


@router.post("/enqueue", response_model=EnqueueResponse, dependencies=[Depends(require_cron_secret)])
async def enqueue_jobs(session: AsyncSession = Depends(get_session)):
    """Periodic trigger: enqueue due check-ins and campaign watches."""
    service = SchedulerService(session)
    return await service.enqueue_due()

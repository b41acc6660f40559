"""
Run-ads API routes: submission, campaigns, context, publish queue.
"""
import uuid
from typing import List, Optional
from fastapi import APIRouter, Depends, Query
from sqlmodel.ext.asyncio.session import AsyncSession

from ghoste.database import get_session, get_session_factory
from ghoste.api.deps import get_current_user, require_cron_secret
from ghoste.core.exceptions import raise_not_found
from ghoste.models.user import User
from ghoste.repositories.campaign_repo import CampaignRepository
from ghoste.schemas.campaign import (
    CampaignSubmit, CampaignSubmitResponse, CampaignResponse,
    PublishQueueCreate, PublishQueueDecision, PublishQueueResponse,
    PublishQueueDecisionResponse, ReconcileResponse
)
from ghoste.services.activity_service import ActivityService
from ghoste.services.context_service import ContextResolver, RunAdsContext
from ghoste.services.publish_queue_service import PublishQueueService, ReconciliationService
from ghoste.services.submission_service import SubmissionService

router = APIRouter(prefix="/api/ads", tags=["ads"])


@router.post("/submit", response_model=CampaignSubmitResponse)
async def submit_campaign(
    data: CampaignSubmit,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
    session_factory=Depends(get_session_factory)
):
    """
    Submit a run-ads request as a draft or publish it right away.

    Rejections come back as {ok: false, error, code} with a 4xx status.
    A publish the ad platform refused is still a 200 with ok=false and
    the failing stage.
    """
    service = SubmissionService(session, ActivityService(session_factory))
    return await service.submit(current_user, data)


@router.get("/context", response_model=RunAdsContext)
async def get_context(
    current_user: User = Depends(get_current_user),
    session_factory=Depends(get_session_factory)
):
    """Can the current user run ads, and with what."""
    return await ContextResolver(session_factory).resolve(current_user.id)


@router.get("/campaigns")
async def list_campaigns(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    status: Optional[str] = None,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session)
):
    """List the current user's campaigns, newest first."""
    campaign_repo = CampaignRepository(session)
    result = await campaign_repo.list_paginated(
        filters={"user_id": current_user.id, "status": status}, page=page, limit=limit
    )
    result["items"] = [CampaignResponse.model_validate(c) for c in result["items"]]
    return result


@router.get("/campaigns/{campaign_id}", response_model=CampaignResponse)
async def get_campaign(
    campaign_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session)
):
    campaign = await CampaignRepository(session).get(campaign_id)
    if not campaign or campaign.user_id != current_user.id:
        raise_not_found("Campaign", str(campaign_id))
    return campaign


@router.post("/publish-queue", response_model=PublishQueueResponse, status_code=201)
async def queue_for_publish(
    data: PublishQueueCreate,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
    session_factory=Depends(get_session_factory)
):
    """Queue a draft (or failed) campaign for publish approval."""
    service = PublishQueueService(session, ActivityService(session_factory))
    return await service.enqueue(current_user, data.campaign_id)


@router.get("/publish-queue", response_model=List[PublishQueueResponse])
async def list_publish_queue(
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
    session_factory=Depends(get_session_factory)
):
    service = PublishQueueService(session, ActivityService(session_factory))
    return await service.list_pending(current_user)


@router.post("/publish-queue/decide", response_model=PublishQueueDecisionResponse)
async def decide_publish(
    data: PublishQueueDecision,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
    session_factory=Depends(get_session_factory)
):
    """Approve (publish now) or reject a queued campaign."""
    service = PublishQueueService(session, ActivityService(session_factory))
    return await service.decide(current_user, data.queue_id, data.decision)


@router.post("/reconcile", response_model=ReconcileResponse, dependencies=[Depends(require_cron_secret)])
async def reconcile(
    session: AsyncSession = Depends(get_session),
    session_factory=Depends(get_session_factory)
):
    """Retry campaigns stuck in publishing."""
    service = ReconciliationService(session, ActivityService(session_factory))
    return await service.run()

"""
Autopilot repositories: approvals, notifications, decision log, kill switch.
"""
import uuid
from typing import Optional, List
from datetime import datetime

from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession
from sqlalchemy import update

from ghoste.models.autopilot import (
    ApprovalRequest, ApprovalResponse, ManagerNotification,
    ManagerDecisionLog, AutopilotKillswitch
)
from ghoste.repositories.base import BaseRepository


class ApprovalRequestRepository(BaseRepository[ApprovalRequest]):
    """Repository for ApprovalRequest operations."""

    def __init__(self, session: AsyncSession):
        super().__init__(ApprovalRequest, session)

    async def latest_pending_for_phone(
        self,
        phone: str,
        now: datetime
    ) -> Optional[ApprovalRequest]:
        """Most recent pending, unexpired request addressed to a (normalized) phone."""
        query = select(ApprovalRequest).where(
            ApprovalRequest.recipient_phone == phone,
            ApprovalRequest.response == ApprovalResponse.PENDING,
            ApprovalRequest.expires_at > now
        ).order_by(ApprovalRequest.created_at.desc()).limit(1)
        result = await self.session.exec(query)
        return result.first()

    async def claim(
        self,
        approval_id: uuid.UUID,
        response: str,
        raw_response: str,
        responded_at: datetime
    ) -> bool:
        """
        Record a response only if the request is still pending.
        Returns False when another reply got there first.
        """
        stmt = (
            update(ApprovalRequest)
            .where(
                ApprovalRequest.id == approval_id,
                ApprovalRequest.response == ApprovalResponse.PENDING
            )
            .values(response=response, raw_response=raw_response, responded_at=responded_at)
        )
        result = await self.session.execute(stmt)
        await self.session.commit()
        return result.rowcount == 1

    async def expire(self, approval_id: uuid.UUID, now: datetime) -> None:
        """Close a still-pending request so no reply can match it."""
        stmt = (
            update(ApprovalRequest)
            .where(
                ApprovalRequest.id == approval_id,
                ApprovalRequest.response == ApprovalResponse.PENDING
            )
            .values(expires_at=now)
        )
        await self.session.execute(stmt)
        await self.session.commit()

    async def record_mutation(self, approval_id: uuid.UUID, mutation: dict) -> None:
        approval = await self.get(approval_id)
        if approval:
            approval.executed_mutation = mutation
            self.session.add(approval)
            await self.session.commit()


class ManagerNotificationRepository(BaseRepository[ManagerNotification]):
    """Repository for ManagerNotification operations."""

    def __init__(self, session: AsyncSession):
        super().__init__(ManagerNotification, session)

    async def get_for_campaign(self, campaign_id: uuid.UUID) -> List[ManagerNotification]:
        query = select(ManagerNotification).where(
            ManagerNotification.campaign_id == campaign_id
        ).order_by(ManagerNotification.created_at.desc())
        result = await self.session.exec(query)
        return result.all()


class ManagerDecisionLogRepository(BaseRepository[ManagerDecisionLog]):
    """Repository for ManagerDecisionLog operations."""

    def __init__(self, session: AsyncSession):
        super().__init__(ManagerDecisionLog, session)


class KillswitchRepository(BaseRepository[AutopilotKillswitch]):
    """Repository for the global autopilot kill switch."""

    def __init__(self, session: AsyncSession):
        super().__init__(AutopilotKillswitch, session)

    async def current(self) -> Optional[AutopilotKillswitch]:
        query = select(AutopilotKillswitch).order_by(AutopilotKillswitch.updated_at.desc()).limit(1)
        result = await self.session.exec(query)
        return result.first()

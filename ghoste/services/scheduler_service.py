"""
Agent job scheduler.

Runs periodically; for each active user decides whether the manager
should reach out (a check-in or morning plan) and, separately, whether
their live campaigns are due a watch job.
"""
import uuid
import logging
from datetime import datetime, timezone
from typing import Optional, List
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from sqlmodel.ext.asyncio.session import AsyncSession

from ghoste.models.agent import AgentJob, ManagerSettings, JobTypes
from ghoste.repositories.agent_repo import AgentJobRepository, ManagerSettingsRepository
from ghoste.repositories.campaign_repo import CampaignRepository
from ghoste.repositories.user_repo import UserRepository
from ghoste.repositories.wallet_repo import WalletRepository
from ghoste.schemas.autopilot import EnqueueResponse

logger = logging.getLogger(__name__)


class ManagerModes:
    LIGHT = "light"
    MODERATE = "moderate"
    FULL = "full"


# Minimum hours between check-ins, and between campaign watches
CHECKIN_GAP_HOURS = {ManagerModes.LIGHT: 24, ManagerModes.MODERATE: 12, ManagerModes.FULL: 2}
WATCH_GAP_HOURS = {ManagerModes.LIGHT: 24, ManagerModes.MODERATE: 24, ManagerModes.FULL: 4}

# Light mode only reaches out in this local-hour window (inclusive)
LIGHT_MORNING_WINDOW = (8, 10)


def default_settings(user_id: uuid.UUID) -> ManagerSettings:
    return ManagerSettings(user_id=user_id)


def in_quiet_hours(hour: int, start: Optional[int], end: Optional[int]) -> bool:
    """
    Quiet window is [start, end) in local hours and may wrap midnight
    (start=22, end=7 covers 22:00 to 06:59).
    """
    if start is None or end is None or start == end:
        return False
    if start < end:
        return start <= hour < end
    return hour >= start or hour < end


def local_time(now: datetime, tz_name: Optional[str]) -> datetime:
    """`now` is naive UTC; returns the wall-clock time in the user's zone."""
    try:
        zone = ZoneInfo(tz_name or "UTC")
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning(f"Unknown timezone {tz_name!r}, using UTC")
        zone = ZoneInfo("UTC")
    return now.replace(tzinfo=timezone.utc).astimezone(zone)


def hours_since(job: Optional[AgentJob], now: datetime) -> Optional[float]:
    if not job:
        return None
    return (now - job.created_at).total_seconds() / 3600


def checkin_job_type(mode: str, hour: int, hours_since_last: Optional[float]) -> Optional[str]:
    """
    Which check-in job is due for this mode at this local hour, if any.

    light:    24h gap and only between 08:00 and 10:59 -> daily_plan
    moderate: 12h gap; daily_plan before 13:00, else checkin
    full:      2h gap; daily_plan before 10:00, else checkin
    """
    gap = CHECKIN_GAP_HOURS.get(mode)
    if gap is None:
        return None
    if hours_since_last is not None and hours_since_last < gap:
        return None

    if mode == ManagerModes.LIGHT:
        start, end = LIGHT_MORNING_WINDOW
        return JobTypes.DAILY_PLAN if start <= hour <= end else None
    if mode == ManagerModes.MODERATE:
        return JobTypes.DAILY_PLAN if hour < 13 else JobTypes.CHECKIN
    return JobTypes.DAILY_PLAN if hour < 10 else JobTypes.CHECKIN


def watch_due(mode: str, hours_since_watch: Optional[float]) -> bool:
    gap = WATCH_GAP_HOURS.get(mode)
    if gap is None:
        return False
    return hours_since_watch is None or hours_since_watch >= gap


class SchedulerService:
    """Service for enqueueing agent jobs."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.user_repo = UserRepository(session)
        self.settings_repo = ManagerSettingsRepository(session)
        self.job_repo = AgentJobRepository(session)
        self.wallet_repo = WalletRepository(session)
        self.campaign_repo = CampaignRepository(session)

    async def enqueue_due(self, now: Optional[datetime] = None) -> EnqueueResponse:
        """
        One scheduler pass. A user counts as enqueued if at least one job
        was created for them, otherwise as skipped. One user's failure
        never stops the pass.
        """
        now = now or datetime.utcnow()
        result = EnqueueResponse()

        user_ids = [user.id for user in await self.user_repo.get_active()]
        for user_id in user_ids:
            try:
                jobs = await self.enqueue_for_user(user_id, now)
            except Exception as e:
                logger.error(f"Scheduler failed for user {user_id}: {e!r}")
                await self.session.rollback()
                result.skipped += 1
                continue

            if jobs:
                result.enqueued += 1
            else:
                result.skipped += 1

        logger.info(f"Scheduler pass: enqueued={result.enqueued} skipped={result.skipped}")
        return result

    async def enqueue_for_user(self, user_id: uuid.UUID, now: datetime) -> List[AgentJob]:
        manager = await self.settings_repo.get_for_user(user_id) or default_settings(user_id)
        mode = manager.mode or ManagerModes.MODERATE

        wallet = await self.wallet_repo.get_for_user(user_id)
        balance = wallet.manager_budget_tokens if wallet else 0
        if balance < manager.tokens_per_message:
            logger.info(f"User {user_id} skipped: {balance} tokens < {manager.tokens_per_message} per message")
            return []

        local = local_time(now, manager.timezone)
        if in_quiet_hours(local.hour, manager.quiet_hours_start, manager.quiet_hours_end):
            logger.info(f"User {user_id} skipped: quiet hours ({local.hour}h local)")
            return []

        jobs: List[AgentJob] = []

        last_checkin = await self.job_repo.last_checkin(user_id)
        job_type = checkin_job_type(mode, local.hour, hours_since(last_checkin, now))
        if job_type:
            jobs.append(await self._enqueue(user_id, job_type, now, {"mode": mode}))

        if await self.campaign_repo.has_active(user_id):
            last_watch = await self.job_repo.last_of_type(user_id, JobTypes.CAMPAIGN_WATCH)
            if watch_due(mode, hours_since(last_watch, now)):
                jobs.append(await self._enqueue(
                    user_id, JobTypes.CAMPAIGN_WATCH, now, {"mode": mode, "has_active_campaigns": True}
                ))

        if not jobs:
            logger.debug(f"User {user_id}: nothing due ({mode})")
        return jobs

    async def _enqueue(self, user_id: uuid.UUID, job_type: str, now: datetime, context: dict) -> AgentJob:
        job = await self.job_repo.create({
            "user_id": user_id,
            "job_type": job_type,
            "status": "queued",
            "run_at": now,
            "context": {**context, "enqueued_at": now.isoformat()},
            "created_at": now,
        })
        logger.info(f"Enqueued {job_type} for user {user_id}")
        return job

"""
Agent job models - scheduled check-ins and per-user manager settings.
"""
import uuid
from datetime import datetime
from typing import Optional, Dict, Any

from sqlmodel import SQLModel, Field
from sqlalchemy import Column

from ghoste.models.types import JSONType


class JobTypes:
    CHECKIN = "checkin"
    DAILY_PLAN = "daily_plan"
    ALERT = "alert"
    CAMPAIGN_WATCH = "campaign_watch"
    TASKS_NUDGE = "tasks_nudge"


class AgentJob(SQLModel, table=True):
    """
    Unit of work for the external agent executor.
    """
    __tablename__ = "agent_job"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    user_id: uuid.UUID = Field(foreign_key="user.id", index=True)

    job_type: str = Field(index=True)
    status: str = Field(default="queued", index=True)  # queued, running, done, failed
    run_at: datetime = Field(default_factory=datetime.utcnow)
    context: Dict[str, Any] = Field(default={}, sa_column=Column(JSONType))

    created_at: datetime = Field(default_factory=datetime.utcnow, index=True)


class ManagerSettings(SQLModel, table=True):
    """
    How often the manager may reach out to a user.
    Users without a row get the defaults below.
    """
    __tablename__ = "manager_settings"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    user_id: uuid.UUID = Field(foreign_key="user.id", index=True, unique=True)

    mode: str = Field(default="moderate")  # light, moderate, full
    messages_per_day: int = Field(default=2)
    tokens_per_message: int = Field(default=6)

    # Quiet window in local hours [start, end); may wrap midnight
    quiet_hours_start: Optional[int] = None
    quiet_hours_end: Optional[int] = None
    timezone: str = Field(default="UTC")

    updated_at: datetime = Field(default_factory=datetime.utcnow)

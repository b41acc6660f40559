"""
Ad campaign model - canonical record of every run-ads submission.
Carries the publish state machine and the autopilot signals.
"""
import uuid
from datetime import datetime
from typing import Optional, List

from sqlmodel import SQLModel, Field
from sqlalchemy import Column

from ghoste.models.types import JSONType


class CampaignStatus:
    DRAFT = "draft"
    PUBLISHING = "publishing"
    PUBLISHED = "published"
    FAILED = "failed"
    PAUSED = "paused"


class AdCampaign(SQLModel, table=True):
    """
    Campaign entity.
    Status flow: draft -> publishing -> published, or draft/publishing -> failed.
    Never deleted here; only status-mutated.
    """
    __tablename__ = "ad_campaign"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    user_id: uuid.UUID = Field(foreign_key="user.id", index=True)
    draft_id: Optional[uuid.UUID] = Field(default=None, index=True)

    # Basic info
    campaign_name: Optional[str] = None
    ad_goal: str = Field(index=True)  # promote_song, grow_followers, capture_fans
    campaign_type: Optional[str] = None  # smart_link_probe, one_click_sound, ...
    automation_mode: str = Field(default="guided")  # assist, guided, autonomous

    # Status
    status: str = Field(default=CampaignStatus.DRAFT, index=True)
    last_error: Optional[str] = None
    publish_started_at: Optional[datetime] = None

    # Destination
    smart_link_id: Optional[uuid.UUID] = Field(default=None, index=True)
    smart_link_slug: Optional[str] = None
    destination_url: str

    # Budget (minor currency units)
    daily_budget_cents: int
    total_budget_cents: Optional[int] = None
    max_daily_budget_cents: int

    # Creatives, ordered
    creative_ids: List[str] = Field(default=[], sa_column=Column(JSONType))
    creative_urls: List[str] = Field(default=[], sa_column=Column(JSONType))

    # Build reasoning
    reasoning: Optional[str] = None
    confidence: Optional[float] = None
    confidence_label: Optional[str] = None
    guardrails_applied: List[str] = Field(default=[], sa_column=Column(JSONType))

    # External ad-platform ids (kept on failure for retry/cleanup)
    meta_campaign_id: Optional[str] = None
    meta_adset_id: Optional[str] = None
    meta_creative_id: Optional[str] = None
    meta_ad_id: Optional[str] = None

    # Autopilot
    manager_mode_enabled: bool = Field(default=True)
    silence_mode: bool = Field(default=False)
    last_ai_message_at: Optional[datetime] = None
    latest_score: Optional[float] = None
    latest_confidence: Optional[str] = None  # low, medium, high
    total_spend_cents: int = Field(default=0)
    last_creative_refresh_at: Optional[datetime] = None

    # Notifications
    notification_method: str = Field(default="sms")  # sms, email, both
    notification_phone: Optional[str] = None
    notification_email: Optional[str] = None

    # Optimistic concurrency token for budget mutations
    version: int = Field(default=1)

    # Timestamps
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

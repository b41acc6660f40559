"""
Autopilot models - approval requests, notifications, decision log, kill switch.
"""
import uuid
from datetime import datetime
from typing import Optional, Dict, Any

from sqlmodel import SQLModel, Field
from sqlalchemy import Column

from ghoste.models.types import JSONType


class ApprovalResponse:
    PENDING = "pending"
    YES = "yes"
    NO = "no"


class ApprovalRequest(SQLModel, table=True):
    """
    Human approval for a budget-touching autopilot decision.
    Terminal once a response is recorded or expires_at has passed.
    """
    __tablename__ = "approval_request"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    owner_user_id: uuid.UUID = Field(foreign_key="user.id", index=True)
    campaign_id: uuid.UUID = Field(foreign_key="ad_campaign.id", index=True)

    action_requested: str  # spend_more, spend_less, make_more_creatives, none
    recommended_budget: Optional[float] = None  # major currency units
    confidence: Optional[str] = None

    # Full decision, replayed verbatim when the reply arrives
    action_context: Dict[str, Any] = Field(default={}, sa_column=Column(JSONType))

    # Delivery
    notification_method: str = Field(default="sms")  # sms, email, both
    notification_body: str
    recipient_phone: Optional[str] = Field(default=None, index=True)
    recipient_email: Optional[str] = None

    # Response
    response: str = Field(default=ApprovalResponse.PENDING, index=True)
    raw_response: Optional[str] = None
    responded_at: Optional[datetime] = None
    executed_mutation: Optional[Dict[str, Any]] = Field(default=None, sa_column=Column(JSONType))

    expires_at: datetime
    created_at: datetime = Field(default_factory=datetime.utcnow)


class ManagerNotification(SQLModel, table=True):
    """
    Every automated outbound message attempt, including suppressed ones.
    """
    __tablename__ = "manager_notification"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    owner_user_id: uuid.UUID = Field(foreign_key="user.id", index=True)
    campaign_id: uuid.UUID = Field(foreign_key="ad_campaign.id", index=True)
    approval_id: Optional[uuid.UUID] = Field(default=None, foreign_key="approval_request.id")

    notification_type: str  # approval_request, creative_request, pause_notice
    notification_method: str  # sms, email, both
    recipient_phone: Optional[str] = None
    recipient_email: Optional[str] = None
    body: str

    status: str = Field(default="sent", index=True)  # sent, skipped, failed
    skip_reason: Optional[str] = None
    error_message: Optional[str] = None

    created_at: datetime = Field(default_factory=datetime.utcnow)


class ManagerDecisionLog(SQLModel, table=True):
    """Audit of every decision the autopilot computed."""
    __tablename__ = "manager_decision_log"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    owner_user_id: uuid.UUID = Field(foreign_key="user.id", index=True)
    campaign_id: uuid.UUID = Field(foreign_key="ad_campaign.id", index=True)

    score: Optional[float] = None
    score_confidence: Optional[str] = None
    action_decided: str
    decision: Dict[str, Any] = Field(default={}, sa_column=Column(JSONType))

    created_at: datetime = Field(default_factory=datetime.utcnow)


class AutopilotKillswitch(SQLModel, table=True):
    """Global switch; a single row is expected."""
    __tablename__ = "autopilot_killswitch"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    pause_all_ads: bool = Field(default=False)
    disable_ai_actions: bool = Field(default=False)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

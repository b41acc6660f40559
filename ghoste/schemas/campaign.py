"""
Campaign submission schemas.
"""
import uuid
from typing import Optional, List, Literal, Union
from datetime import datetime
from pydantic import BaseModel


class CreativeInput(BaseModel):
    """Creative passed inline by the client."""
    id: Optional[str] = None
    url: Optional[str] = None
    public_url: Optional[str] = None


class CampaignSubmit(BaseModel):
    """
    Run-ads submission.

    Required fields are optional here so that a missing one is reported
    as `missing_required_fields` rather than a generic 422.
    """
    ad_goal: Optional[str] = None
    daily_budget_cents: Optional[int] = None
    automation_mode: Optional[str] = None
    total_budget_cents: Optional[int] = None
    campaign_name: Optional[str] = None

    # Creatives: ids, inline objects, or a draft to load them from
    creative_ids: Optional[List[str]] = None
    creatives: Optional[List[CreativeInput]] = None
    draft_id: Optional[uuid.UUID] = None

    # Destination
    smart_link_id: Optional[uuid.UUID] = None
    smart_link_slug: Optional[str] = None
    destination_url: Optional[str] = None

    # Upstream reasoning may send a label or a number
    confidence: Optional[Union[float, str]] = None

    mode: Literal["draft", "publish"] = "draft"

    class Config:
        json_schema_extra = {
            "example": {
                "ad_goal": "promote_song",
                "daily_budget_cents": 2000,
                "automation_mode": "guided",
                "draft_id": "3f0c1c5e-8a55-4a8e-9a57-0f4a2f1b8d11",
                "destination_url": "https://open.spotify.com/track/abc123",
                "mode": "draft"
            }
        }


class CampaignSubmitResponse(BaseModel):
    """Submission outcome. `ok` is false for rejected or failed publishes."""
    ok: bool
    campaign_id: Optional[uuid.UUID] = None
    status: Optional[str] = None
    campaign_type: Optional[str] = None
    reasoning: Optional[str] = None
    confidence: Optional[float] = None
    confidence_label: Optional[str] = None
    guardrails_applied: List[str] = []
    destination_url: Optional[str] = None
    smart_link_slug: Optional[str] = None

    meta_campaign_id: Optional[str] = None
    meta_adset_id: Optional[str] = None
    meta_creative_id: Optional[str] = None
    meta_ad_id: Optional[str] = None

    error: Optional[str] = None
    code: Optional[str] = None
    stage: Optional[str] = None
    failed_stage: Optional[str] = None


class CampaignResponse(BaseModel):
    """Stored campaign."""
    id: uuid.UUID
    user_id: uuid.UUID
    draft_id: Optional[uuid.UUID]
    campaign_name: Optional[str]
    ad_goal: str
    campaign_type: Optional[str]
    automation_mode: str
    status: str
    last_error: Optional[str]
    smart_link_id: Optional[uuid.UUID]
    smart_link_slug: Optional[str]
    destination_url: str
    daily_budget_cents: int
    total_budget_cents: Optional[int]
    max_daily_budget_cents: int
    creative_ids: List[str]
    reasoning: Optional[str]
    confidence: Optional[float]
    confidence_label: Optional[str]
    guardrails_applied: List[str]
    meta_campaign_id: Optional[str]
    meta_adset_id: Optional[str]
    meta_creative_id: Optional[str]
    meta_ad_id: Optional[str]
    manager_mode_enabled: bool
    silence_mode: bool
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class PublishQueueCreate(BaseModel):
    campaign_id: uuid.UUID


class PublishQueueDecision(BaseModel):
    queue_id: uuid.UUID
    decision: Literal["approve", "reject"]


class PublishQueueResponse(BaseModel):
    id: uuid.UUID
    campaign_id: uuid.UUID
    status: str
    result: dict
    decided_at: Optional[datetime]
    created_at: datetime

    class Config:
        from_attributes = True


class PublishQueueDecisionResponse(BaseModel):
    ok: bool
    queue_id: uuid.UUID
    status: str
    campaign_id: uuid.UUID
    campaign_status: Optional[str] = None
    error: Optional[str] = None
    stage: Optional[str] = None


class ReconcileResponse(BaseModel):
    ok: bool = True
    retried: int = 0
    published: int = 0
    failed: int = 0

"""
Ads operation log - audit trail for every submission attempt.
Written independently of the campaign row so failures between
validation and persistence stay observable.
"""
import uuid
from datetime import datetime
from typing import Optional, Dict, Any

from sqlmodel import SQLModel, Field
from sqlalchemy import Column

from ghoste.models.types import JSONType


class AdsOperationLog(SQLModel, table=True):
    __tablename__ = "ads_operation_log"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    user_id: Optional[uuid.UUID] = Field(default=None, index=True)
    campaign_id: Optional[uuid.UUID] = Field(default=None, index=True)

    label: str = Field(index=True)
    ok: bool = Field(default=True)
    status_code: int = Field(default=200)
    error: Optional[str] = None

    request: Dict[str, Any] = Field(default={}, sa_column=Column(JSONType))
    response: Dict[str, Any] = Field(default={}, sa_column=Column(JSONType))

    created_at: datetime = Field(default_factory=datetime.utcnow, index=True)


# Operation labels for consistency
class Operations:
    SAVE_DRAFT = "save_draft"
    PUBLISH_START = "publish_start"
    PUBLISH_SUCCESS = "publish_success"
    PUBLISH_FAILED = "publish_failed"
    SUBMIT_ERROR = "submit_error"
    SUBMIT_REJECTED = "submit_rejected"

    QUEUE_APPROVED = "queue_approved"
    QUEUE_REJECTED = "queue_rejected"
    RECONCILE_RETRY = "reconcile_retry"

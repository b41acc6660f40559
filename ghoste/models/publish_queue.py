"""
Publish queue - drafts waiting for a human go/no-go before hitting Meta.
"""
import uuid
from datetime import datetime
from typing import Optional, Dict, Any

from sqlmodel import SQLModel, Field
from sqlalchemy import Column

from ghoste.models.types import JSONType


class PublishQueueItem(SQLModel, table=True):
    __tablename__ = "publish_queue_item"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    user_id: uuid.UUID = Field(foreign_key="user.id", index=True)
    campaign_id: uuid.UUID = Field(foreign_key="ad_campaign.id", index=True)

    status: str = Field(default="pending", index=True)  # pending, rejected, published, failed
    result: Dict[str, Any] = Field(default={}, sa_column=Column(JSONType))
    decided_at: Optional[datetime] = None

    created_at: datetime = Field(default_factory=datetime.utcnow)

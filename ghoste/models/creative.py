"""
Ad creative model - uploaded video/image assets.
"""
import uuid
from datetime import datetime
from typing import Optional

from sqlmodel import SQLModel, Field


class AdCreative(SQLModel, table=True):
    """
    Creative uploaded by a user, optionally grouped under a draft.
    """
    __tablename__ = "ad_creative"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    owner_user_id: uuid.UUID = Field(foreign_key="user.id", index=True)
    draft_id: Optional[uuid.UUID] = Field(default=None, index=True)

    creative_type: str = Field(default="video")  # video, image
    public_url: Optional[str] = None
    storage_path: Optional[str] = None

    created_at: datetime = Field(default_factory=datetime.utcnow)

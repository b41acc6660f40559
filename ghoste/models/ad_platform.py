"""
Ad-platform connection model.
One row per user holding the chosen Meta assets and access token.
"""
import uuid
from datetime import datetime
from typing import Optional

from sqlmodel import SQLModel, Field


class MetaCredential(SQLModel, table=True):
    """
    Meta (Facebook/Instagram) connection for a user.
    A row with is_active=False means the user disconnected.
    """
    __tablename__ = "meta_credential"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    user_id: uuid.UUID = Field(foreign_key="user.id", index=True, unique=True)

    # OAuth token
    access_token: Optional[str] = None
    token_expires_at: Optional[datetime] = None

    # Chosen assets
    ad_account_id: Optional[str] = None  # act_123...
    page_id: Optional[str] = None
    pixel_id: Optional[str] = None
    instagram_actor_id: Optional[str] = None

    is_active: bool = Field(default=True)

    # Timestamps
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

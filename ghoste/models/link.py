"""
Destination link models.
Smart links are the primary marketing link; one-click and public track
links are secondary link types that can also act as ad destinations.
"""
import uuid
from datetime import datetime
from typing import Optional

from sqlmodel import SQLModel, Field


class SmartLink(SQLModel, table=True):
    """
    Platform-managed short URL ({PUBLIC_BASE_URL}/l/{slug}).
    """
    __tablename__ = "smart_link"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    owner_user_id: uuid.UUID = Field(foreign_key="user.id", index=True)

    slug: str = Field(index=True, unique=True)
    title: Optional[str] = None
    destination_url: str

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)


class OneClickLink(SQLModel, table=True):
    """Direct-to-platform link (skips the smart link landing page)."""
    __tablename__ = "oneclick_link"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    owner_user_id: uuid.UUID = Field(foreign_key="user.id", index=True)

    slug: str = Field(index=True)
    title: Optional[str] = None
    target_url: str

    created_at: datetime = Field(default_factory=datetime.utcnow)


class PublicTrackLink(SQLModel, table=True):
    """Public track page link."""
    __tablename__ = "public_track_link"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    user_id: uuid.UUID = Field(foreign_key="user.id", index=True)

    title: Optional[str] = None
    destination_url: str

    created_at: datetime = Field(default_factory=datetime.utcnow)

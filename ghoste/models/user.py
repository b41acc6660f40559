"""
User model.
Identity lives in the external identity provider; this row holds the
profile fields the ads pipeline needs (contact details, artist name).
"""
import uuid
from datetime import datetime
from typing import Optional

from sqlmodel import SQLModel, Field


class User(SQLModel, table=True):
    """
    Artist account, keyed by the identity provider's subject id.
    """
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)

    # Contact
    email: Optional[str] = Field(default=None, index=True)
    phone: Optional[str] = Field(default=None, index=True)

    # Profile
    artist_name: Optional[str] = None

    # Status
    is_active: bool = Field(default=True)

    # Timestamps
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

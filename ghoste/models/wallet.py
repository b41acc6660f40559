"""
Wallet models - manager token budget and its ledger.
"""
import uuid
from datetime import datetime
from typing import Optional

from sqlmodel import SQLModel, Field


class Wallet(SQLModel, table=True):
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    user_id: uuid.UUID = Field(foreign_key="user.id", index=True, unique=True)

    manager_budget_tokens: int = Field(default=0)

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)


class WalletTransaction(SQLModel, table=True):
    """
    Ledger entry. external_reference is unique so a replayed
    payment event can never credit twice.
    """
    __tablename__ = "wallet_transaction"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    user_id: uuid.UUID = Field(foreign_key="user.id", index=True)

    amount: int
    budget_type: str = Field(default="MANAGER")
    reference_feature: Optional[str] = None
    external_reference: Optional[str] = Field(default=None, unique=True, index=True)

    created_at: datetime = Field(default_factory=datetime.utcnow)

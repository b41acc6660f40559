"""
Wallet repositories.
"""
import uuid
from typing import Optional

from sqlmodel.ext.asyncio.session import AsyncSession

from ghoste.models.wallet import Wallet, WalletTransaction
from ghoste.repositories.base import BaseRepository


class WalletRepository(BaseRepository[Wallet]):
    """Repository for Wallet operations."""

    def __init__(self, session: AsyncSession):
        super().__init__(Wallet, session)

    async def get_for_user(self, user_id: uuid.UUID) -> Optional[Wallet]:
        return await self.get_by_field("user_id", user_id)


class WalletTransactionRepository(BaseRepository[WalletTransaction]):
    """Repository for WalletTransaction operations."""

    def __init__(self, session: AsyncSession):
        super().__init__(WalletTransaction, session)

    async def get_by_external_reference(self, reference: str) -> Optional[WalletTransaction]:
        return await self.get_by_field("external_reference", reference)

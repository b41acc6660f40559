"""
Wallet service - manager token credits.
"""
import uuid
import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlmodel.ext.asyncio.session import AsyncSession

from ghoste.models.wallet import Wallet, WalletTransaction
from ghoste.repositories.wallet_repo import WalletRepository, WalletTransactionRepository

logger = logging.getLogger(__name__)


def payment_reference(session_id: str) -> str:
    return f"stripe_{session_id}"


class WalletService:
    """Service for wallet operations."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.wallet_repo = WalletRepository(session)
        self.transaction_repo = WalletTransactionRepository(session)

    async def get_balance(self, user_id: uuid.UUID) -> int:
        wallet = await self.wallet_repo.get_for_user(user_id)
        return wallet.manager_budget_tokens if wallet else 0

    async def credit(
        self,
        user_id: uuid.UUID,
        amount: int,
        session_id: str,
        reference_feature: Optional[str] = None
    ) -> WalletTransaction:
        """
        Credit manager tokens for a completed payment.

        Idempotent on the payment session id: a replayed event returns the
        existing ledger entry and leaves the balance untouched.
        """
        reference = payment_reference(session_id)

        existing = await self.transaction_repo.get_by_external_reference(reference)
        if existing:
            logger.info(f"Duplicate wallet credit {reference} for user {user_id}, skipping")
            return existing

        wallet = await self.wallet_repo.get_for_user(user_id)
        if not wallet:
            wallet = Wallet(user_id=user_id)

        transaction = WalletTransaction(
            user_id=user_id,
            amount=amount,
            reference_feature=reference_feature,
            external_reference=reference,
        )
        wallet.manager_budget_tokens += amount
        wallet.updated_at = datetime.utcnow()

        self.session.add(wallet)
        self.session.add(transaction)
        try:
            await self.session.commit()
        except IntegrityError:
            # Lost a race with a concurrent delivery of the same event
            await self.session.rollback()
            existing = await self.transaction_repo.get_by_external_reference(reference)
            if existing:
                logger.info(f"Concurrent duplicate wallet credit {reference}, skipping")
                return existing
            raise

        await self.session.refresh(transaction)
        logger.info(f"Credited {amount} manager tokens to user {user_id} ({reference})")
        return transaction

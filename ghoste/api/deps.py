"""
API dependencies - shared across all routes.
"""
import uuid
from typing import Optional

from fastapi import Depends, Header, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlmodel.ext.asyncio.session import AsyncSession

from ghoste.database import get_session
from ghoste.core.security import verify_token, verify_cron_secret
from ghoste.core.exceptions import raise_unauthorized
from ghoste.models.user import User
from ghoste.repositories.user_repo import UserRepository


bearer_scheme = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    session: AsyncSession = Depends(get_session)
) -> User:
    """Resolve the identity-provider bearer token to a user."""
    if not credentials:
        raise_unauthorized("Missing bearer token")

    subject = verify_token(credentials.credentials)
    if not subject:
        raise_unauthorized("Could not validate credentials")

    try:
        user_id = uuid.UUID(subject)
    except ValueError:
        raise_unauthorized("Could not validate credentials")

    user_repo = UserRepository(session)
    user = await user_repo.get(user_id)

    if not user:
        raise_unauthorized("User not found")

    if not user.is_active:
        raise_unauthorized("User account is deactivated")

    return user


async def require_cron_secret(x_cron_secret: Optional[str] = Header(default=None)) -> None:
    """Guard for scheduled endpoints."""
    if not verify_cron_secret(x_cron_secret):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid cron secret"
        )

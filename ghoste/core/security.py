"""
Security utilities for the Ghoste API.
Bearer tokens are JWTs issued by the identity provider; we only verify them.
"""
import hmac
from typing import Optional

import jwt

from ghoste.config import settings


def decode_token(token: str) -> Optional[dict]:
    """
    Decode and validate an identity-provider JWT.

    Returns:
        Decoded payload dict or None if invalid
    """
    options = {"verify_aud": bool(settings.JWT_AUDIENCE)}
    try:
        payload = jwt.decode(
            token,
            settings.SECRET_KEY,
            algorithms=[settings.ALGORITHM],
            audience=settings.JWT_AUDIENCE or None,
            options=options,
        )
        return payload
    except jwt.ExpiredSignatureError:
        return None
    except jwt.InvalidTokenError:
        return None


def verify_token(token: str) -> Optional[str]:
    """
    Verify a bearer token and return the subject (user id).

    Returns:
        The `sub` claim if the token is valid, None otherwise
    """
    payload = decode_token(token)
    if not payload:
        return None
    return payload.get("sub")


def verify_cron_secret(provided: Optional[str]) -> bool:
    """Check the scheduled-job shared secret. Disabled when no secret is configured."""
    if not settings.CRON_SECRET:
        return True
    if not provided:
        return False
    return hmac.compare_digest(provided, settings.CRON_SECRET)

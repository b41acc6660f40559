"""
Expiring cache value owned by the component that needs it.
The Meta client keeps its access token here.
"""
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Awaitable, Callable, Generic, Optional, Tuple, TypeVar

T = TypeVar("T")


@dataclass
class CachedValue(Generic[T]):
    """A value and the moment it stops being valid."""
    value: T
    expires_at: datetime

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        return (now or datetime.utcnow()) >= self.expires_at


class RefreshingCache(Generic[T]):
    """
    Holds at most one CachedValue and reloads it on expiry.

    The loader returns the new value and its time-to-live in seconds.
    """

    def __init__(self, loader: Callable[[], Awaitable[Tuple[T, int]]], skew_seconds: int = 60):
        self._loader = loader
        self._skew = timedelta(seconds=skew_seconds)
        self._cached: Optional[CachedValue[T]] = None

    async def get(self, now: Optional[datetime] = None) -> T:
        now = now or datetime.utcnow()
        if self._cached is None or self._cached.is_expired(now + self._skew):
            await self.refresh(now)
        return self._cached.value

    async def refresh(self, now: Optional[datetime] = None) -> T:
        now = now or datetime.utcnow()
        value, ttl_seconds = await self._loader()
        self._cached = CachedValue(value=value, expires_at=now + timedelta(seconds=ttl_seconds))
        return value

    def invalidate(self) -> None:
        self._cached = None

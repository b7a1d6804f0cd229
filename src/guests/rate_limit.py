"""Fixed-window rate limiting for RSVP submissions."""

from functools import lru_cache
from typing import Protocol

from limits import RateLimitItemPerSecond
from limits.aio.storage import MemoryStorage, Storage
from limits.aio.strategies import FixedWindowRateLimiter
from limits.storage import storage_from_string

from src.config.settings import settings


class RateLimiter(Protocol):
    async def hit(self, key: str, limit: int, window_seconds: int) -> bool:
        """Count one attempt for ``key``; False once the window's limit is exceeded."""
        ...


class WindowRateLimiter:
    """Fixed window counters kept in a ``limits`` storage.

    The default storage is process-local memory; pass a shared storage (for
    example ``async+redis://``) when running more than one worker.
    """

    def __init__(self, storage: Storage | None = None) -> None:
        self.storage = storage or MemoryStorage()
        self._strategy = FixedWindowRateLimiter(self.storage)

    async def hit(self, key: str, limit: int, window_seconds: int) -> bool:
        item = RateLimitItemPerSecond(limit, window_seconds)
        # denied attempts are not counted
        if not await self._strategy.test(item, key):
            return False
        return await self._strategy.hit(item, key)


def rsvp_rate_limit_key(guest_id: object, client_ip: str | None) -> str:
    return f"rsvp:{guest_id}:{client_ip or 'unknown'}"


@lru_cache
def get_rate_limiter() -> RateLimiter:
    return WindowRateLimiter(storage_from_string(settings.rate_limit_storage_url))

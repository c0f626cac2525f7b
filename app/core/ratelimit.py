from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable, Optional

from fastapi import Depends, Request

from app.core.config import settings
from app.core.errors import RateLimitedError
from app.core.security import get_current_user
from app.models import User

@dataclass(frozen=True)
class RateLimitTier:
    name: str
    window_seconds: int
    anonymous_max: int
    user_max: int
    message: str

API_TIER = RateLimitTier(
    "api", 15 * 60, 100, 100,
    "Too many requests from this IP, please try again later",
)
AI_TIER = RateLimitTier(
    "ai", 60 * 60, 5, 20,
    "You have exceeded the AI generation limit. Please try again later.",
)
GENERATION_TIER = RateLimitTier(
    "generation", 24 * 60 * 60, 2, 50,
    "Daily article generation limit reached. Please try again tomorrow.",
)
SPEECH_TIER = RateLimitTier(
    "speech", 60 * 60, 3, 30,
    "Speech generation limit reached. Please try again later.",
)

class RateLimiter:
    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        # (tier, client) -> (window start, count, window length)
        self._windows: dict[tuple[str, str], tuple[float, int, int]] = {}
        self._last_prune = clock()

    def reset(self) -> None:
        self._windows.clear()

    def _prune(self, now: float) -> None:
        if now - self._last_prune < API_TIER.window_seconds:
            return
        self._windows = {k: v for k, v in self._windows.items() if now - v[0] < v[2]}
        self._last_prune = now

    def hit(self, tier: RateLimitTier, client_key: str, authenticated: bool) -> None:
        """Count one request; raise RateLimitedError once the tier's budget is spent."""
        now = self._clock()
        self._prune(now)
        limit = tier.user_max if authenticated else tier.anonymous_max
        key = (tier.name, client_key)
        start, count, _ = self._windows.get(key, (now, 0, tier.window_seconds))
        if now - start >= tier.window_seconds:
            start, count = now, 0
        if count >= limit:
            retry_after = int(tier.window_seconds - (now - start)) + 1
            raise RateLimitedError(tier.message, retry_after=retry_after)
        self._windows[key] = (start, count + 1, tier.window_seconds)

limiter = RateLimiter()

def client_key(request: Request, user: Optional[User]) -> str:
    if user is not None:
        return f"user_{user.id}"
    return request.client.host if request.client else "unknown"

def rate_limit(*tiers: RateLimitTier):
    """Build a dependency that charges one request against each of ``tiers``."""

    async def _dependency(request: Request, user: Optional[User] = Depends(get_current_user)) -> None:
        if not settings.rate_limit_enabled:
            return
        key = client_key(request, user)
        for tier in tiers:
            limiter.hit(tier, key, authenticated=user is not None)

    return _dependency

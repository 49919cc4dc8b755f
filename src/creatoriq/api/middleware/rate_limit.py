import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Dict, Optional

from fastapi import Depends, Request, Response

from ...config import Settings
from ...errors import RateLimitExceeded
from ...models import SubscriptionTier
from ...utils import epoch_ms
from ..dependencies import get_app_settings

logger = logging.getLogger(__name__)

HOUR_MS = 60 * 60 * 1000
_MAX_KEYS = 50_000


@dataclass(frozen=True)
class RateLimitHit:
    total_hits: int
    time_to_reset_ms: int


@dataclass
class _Window:
    count: int
    reset_at_ms: int


class MemoryRateLimitStore:
    """
    Fixed-window request counters, per process.

    A key's window starts at its first hit and lasts ``window_ms``; the first
    hit at or after the reset time opens a new window with a count of 1.
    """

    def __init__(self, clock: Optional[Callable[[], int]] = None, max_keys: int = _MAX_KEYS):
        self._clock = clock or epoch_ms
        self._max_keys = max_keys
        self._windows: Dict[str, _Window] = {}

    def __len__(self) -> int:
        return len(self._windows)

    def now_ms(self) -> int:
        return self._clock()

    def increment(self, key: str, window_ms: int) -> RateLimitHit:
        now = self._clock()
        window = self._windows.get(key)
        if window is None or window.reset_at_ms <= now:
            window = _Window(count=1, reset_at_ms=now + window_ms)
            self._windows[key] = window
            self._evict_if_full()
        else:
            window.count += 1
        return RateLimitHit(total_hits=window.count, time_to_reset_ms=max(0, window.reset_at_ms - now))

    def cleanup(self) -> int:
        """Drop expired windows. Returns how many were removed."""
        now = self._clock()
        expired = [key for key, window in self._windows.items() if window.reset_at_ms <= now]
        for key in expired:
            del self._windows[key]
        return len(expired)

    async def run_sweeper(self, interval_seconds: float) -> None:
        while True:
            await asyncio.sleep(interval_seconds)
            removed = self.cleanup()
            if removed:
                logger.debug("Rate limit sweeper removed %d expired windows", removed)

    def _evict_if_full(self) -> None:
        # Prevent unbounded growth if keys explode.
        if len(self._windows) <= self._max_keys:
            return
        if self.cleanup() == 0:
            soonest = min(self._windows, key=lambda key: self._windows[key].reset_at_ms)
            del self._windows[soonest]


@dataclass(frozen=True)
class RateLimitPolicy:
    window_ms: int
    max_requests: int
    message: str = "Too many requests, please try again later"


DEFAULT_API_POLICY = RateLimitPolicy(
    window_ms=15 * 60 * 1000,
    max_requests=100,
    message="Too many requests from this IP, please try again later",
)
ANALYSIS_POLICY = RateLimitPolicy(
    window_ms=HOUR_MS,
    max_requests=20,
    message="Analysis rate limit exceeded, please upgrade or try again later",
)
SUBSCRIPTION_POLICIES: Dict[SubscriptionTier, RateLimitPolicy] = {
    "PRO": RateLimitPolicy(HOUR_MS, 200, "Rate limit exceeded, please try again later"),
    "CREATOR": RateLimitPolicy(HOUR_MS, 50, "Rate limit exceeded, please try again later"),
    "FREE": ANALYSIS_POLICY,
}


def get_rate_limit_store(request: Request) -> MemoryRateLimitStore:
    return request.app.state.rate_limit_store


def rate_limit_key(request: Request) -> str:
    """``<route path>:<identity>``; identity is the user id, else client host, else anonymous."""
    route = request.scope.get("route")
    path = getattr(route, "path", None) or request.url.path
    identity = getattr(request.state, "user_id", None)
    if not identity:
        identity = request.client.host if request.client and request.client.host else "anonymous"
    return f"{path}:{identity}"


def apply_rate_limit(
    request: Request,
    response: Response,
    store: MemoryRateLimitStore,
    policy: RateLimitPolicy,
) -> RateLimitHit:
    hit = store.increment(rate_limit_key(request), policy.window_ms)
    reset_at = datetime.fromtimestamp((store.now_ms() + hit.time_to_reset_ms) / 1000, tz=timezone.utc)
    headers = {
        "X-RateLimit-Limit": str(policy.max_requests),
        "X-RateLimit-Remaining": str(max(0, policy.max_requests - hit.total_hits)),
        "X-RateLimit-Reset": reset_at.isoformat(timespec="milliseconds").replace("+00:00", "Z"),
    }
    response.headers.update(headers)

    if hit.total_hits > policy.max_requests:
        raise RateLimitExceeded(
            policy.message,
            details={"limit": policy.max_requests, "window_ms": policy.window_ms},
            headers=headers,
        )
    return hit


def rate_limit(policy: RateLimitPolicy):
    """Dependency factory enforcing a fixed policy on a route."""

    async def dependency(
        request: Request,
        response: Response,
        store: MemoryRateLimitStore = Depends(get_rate_limit_store),
    ) -> RateLimitHit:
        return apply_rate_limit(request, response, store, policy)

    return dependency


async def api_rate_limit(
    request: Request,
    response: Response,
    store: MemoryRateLimitStore = Depends(get_rate_limit_store),
    settings: Settings = Depends(get_app_settings),
) -> RateLimitHit:
    """General API limit; window and ceiling come from settings."""
    policy = RateLimitPolicy(
        window_ms=settings.api_rate_limit_window_ms,
        max_requests=settings.api_rate_limit_max,
        message=DEFAULT_API_POLICY.message,
    )
    return apply_rate_limit(request, response, store, policy)


def policy_for_subscription(status: Optional[str]) -> RateLimitPolicy:
    """Anonymous callers and unknown tiers get the FREE policy."""
    return SUBSCRIPTION_POLICIES.get((status or "").upper(), ANALYSIS_POLICY)


async def subscription_rate_limit(
    request: Request,
    response: Response,
    store: MemoryRateLimitStore = Depends(get_rate_limit_store),
) -> RateLimitHit:
    status = getattr(request.state, "subscription_status", None)
    if not getattr(request.state, "user_id", None):
        status = None
    return apply_rate_limit(request, response, store, policy_for_subscription(status))

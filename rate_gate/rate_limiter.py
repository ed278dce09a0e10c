"""Per-client fixed-window rate limiter (in-memory)."""
import asyncio
import logging
import math
import time
from collections.abc import Mapping
from dataclasses import dataclass

from rate_gate.models import RouteQuota
from rate_gate.quotas import ROUTE_QUOTAS, effective_quota

logger = logging.getLogger(__name__)

CLEANUP_INTERVAL_SECONDS = 300


def _now_ms() -> int:
    return int(time.time() * 1000)


@dataclass
class ClientWindow:
    count: int
    reset_time: int  # epoch ms


@dataclass
class RateLimitDecision:
    allowed: bool
    limit: int
    remaining: int
    reset_time: int
    quota: RouteQuota
    role: str | None = None
    retry_after: int | None = None


class RateLimiter:
    """Fixed-window counters keyed by client identity.

    The window is shared across roles for the same identity: a role only
    changes the ceiling a check is compared against, never the count.
    """

    def __init__(
        self,
        quotas: Mapping[str, RouteQuota] = ROUTE_QUOTAS,
        per_route_buckets: bool = False,
    ) -> None:
        self.quotas = quotas
        self.per_route_buckets = per_route_buckets
        self._windows: dict[str | tuple[str, str], ClientWindow] = {}
        self._lock = asyncio.Lock()
        self._cleanup_task: asyncio.Task | None = None

    def __len__(self) -> int:
        return len(self._windows)

    def _key(self, route: str, identity: str) -> str | tuple[str, str]:
        return (route, identity) if self.per_route_buckets else identity

    async def check(self, route: str, identity: str, role: str | None = None) -> RateLimitDecision:
        """Count a request against its window, or reject it without counting."""
        quota = effective_quota(route, role, self.quotas)
        key = self._key(route, identity)

        async with self._lock:
            now = _now_ms()
            window = self._windows.get(key)
            if window is None:
                window = self._windows[key] = ClientWindow(count=0, reset_time=now + quota.window_ms)
            elif now > window.reset_time:
                window.count = 0
                window.reset_time = now + quota.window_ms

            if window.count >= quota.max_requests:
                return RateLimitDecision(
                    allowed=False,
                    limit=quota.max_requests,
                    remaining=0,
                    reset_time=window.reset_time,
                    quota=quota,
                    role=role,
                    retry_after=math.ceil((window.reset_time - now) / 1000),
                )

            window.count += 1
            return RateLimitDecision(
                allowed=True,
                limit=quota.max_requests,
                remaining=max(0, quota.max_requests - window.count),
                reset_time=window.reset_time,
                quota=quota,
                role=role,
            )

    async def cleanup(self) -> int:
        """Remove windows that have already expired. Returns how many were dropped."""
        async with self._lock:
            now = _now_ms()
            stale = [key for key, window in self._windows.items() if window.reset_time < now]
            for key in stale:
                del self._windows[key]
        if stale:
            logger.debug("Swept %d expired rate limit windows", len(stale))
        return len(stale)

    def reset(self, identity: str | None = None) -> None:
        """Forget one client's windows, or every window when no identity is given."""
        if identity is None:
            self._windows.clear()
            return
        if not self.per_route_buckets:
            self._windows.pop(identity, None)
            return
        for key in [k for k in self._windows if k[1] == identity]:
            del self._windows[key]

    def start_cleanup(self, interval_seconds: float = CLEANUP_INTERVAL_SECONDS) -> asyncio.Task:
        """Start the recurring sweep on the running loop. Idempotent."""
        if self._cleanup_task is not None and not self._cleanup_task.done():
            return self._cleanup_task

        async def _cleanup_loop():
            while True:
                await asyncio.sleep(interval_seconds)
                try:
                    await self.cleanup()
                except Exception:
                    logger.exception("Rate limit sweep failed")

        self._cleanup_task = asyncio.create_task(_cleanup_loop())
        self._cleanup_task.add_done_callback(
            lambda t: logger.error("Rate limit sweep terminated: %s", t.exception())
            if not t.cancelled() and t.exception() else None
        )
        return self._cleanup_task

    async def stop_cleanup(self) -> None:
        task, self._cleanup_task = self._cleanup_task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

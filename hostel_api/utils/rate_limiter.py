import asyncio
import logging
import math
import time
from collections import defaultdict, deque
from typing import Callable, Deque, Dict, Optional, Tuple

from fastapi import Request

from hostel_api.core.config import settings
from hostel_api.core.exceptions import TooManyRequestsError
from hostel_api.core.request_context import get_client_ip

logger = logging.getLogger(__name__)

RateLimitKey = Tuple[str, str]


class SlidingWindowRateLimiter:
    """
    In-memory sliding window rate limiter keyed by (client address, identifier).

    Counters live in this process only; several server instances each keep
    their own window.
    """

    def __init__(
        self,
        max_attempts: int = 5,
        window_seconds: float = 900,
        clock: Callable[[], float] = time.monotonic,
        name: str = "default",
    ):
        self.max_attempts = max_attempts
        self.window_seconds = window_seconds
        self.name = name
        self._clock = clock
        self._requests: Dict[RateLimitKey, Deque[float]] = defaultdict(deque)
        self._lock = asyncio.Lock()

    def _prune(self, timestamps: Deque[float], now: float) -> None:
        cutoff_time = now - self.window_seconds
        while timestamps and timestamps[0] <= cutoff_time:
            timestamps.popleft()

    def retry_after(self, key: RateLimitKey) -> int:
        """Seconds until the oldest attempt in the window expires"""
        timestamps = self._requests.get(key)
        if not timestamps:
            return 0
        remaining = timestamps[0] + self.window_seconds - self._clock()
        return max(1, math.ceil(remaining))

    async def hit(self, key: RateLimitKey) -> bool:
        """Record an attempt; False when the window is already full"""
        async with self._lock:
            now = self._clock()
            timestamps = self._requests[key]
            self._prune(timestamps, now)

            if len(timestamps) >= self.max_attempts:
                return False

            timestamps.append(now)
            return True

    async def check(self, key: RateLimitKey) -> None:
        """Record an attempt or raise TooManyRequestsError with a retry hint"""
        if await self.hit(key):
            return

        retry_after = self.retry_after(key)
        logger.warning(f"Rate limit '{self.name}' exceeded for {key[0]} / {key[1]}")
        raise TooManyRequestsError(
            detail=f"Too many attempts. Please try again in {format_retry_hint(retry_after)}.",
            retry_after=retry_after,
        )

    async def sweep(self) -> int:
        """Drop keys whose whole window has elapsed; returns the number removed"""
        async with self._lock:
            now = self._clock()
            keys_to_remove = []
            for key, timestamps in self._requests.items():
                self._prune(timestamps, now)
                if not timestamps:
                    keys_to_remove.append(key)

            for key in keys_to_remove:
                del self._requests[key]

        if keys_to_remove:
            logger.debug(f"Cleaned up {len(keys_to_remove)} '{self.name}' rate limit entries")
        return len(keys_to_remove)

    def reset(self) -> None:
        self._requests.clear()

    def __len__(self) -> int:
        return len(self._requests)


def format_retry_hint(seconds: int) -> str:
    if seconds >= 60:
        minutes = math.ceil(seconds / 60)
        return f"{minutes} minute{'s' if minutes != 1 else ''}"
    return f"{seconds} second{'s' if seconds != 1 else ''}"


class RateLimitSweeper:
    """Periodic cleanup task for a group of limiters, started and stopped by the app lifespan"""

    def __init__(self, *limiters: SlidingWindowRateLimiter, interval: float = 60.0):
        self.limiters = limiters
        self.interval = interval
        self._task: Optional[asyncio.Task] = None

    async def run_once(self) -> int:
        removed = 0
        for limiter in self.limiters:
            removed += await limiter.sweep()
        return removed

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            try:
                await self.run_once()
            except Exception as e:
                logger.error(f"Rate limit sweep failed: {str(e)}")

    def start(self) -> None:
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None


auth_rate_limiter = SlidingWindowRateLimiter(
    max_attempts=settings.AUTH_RATE_LIMIT_ATTEMPTS,
    window_seconds=settings.AUTH_RATE_LIMIT_WINDOW_SECONDS,
    name="auth",
)
otp_resend_rate_limiter = SlidingWindowRateLimiter(
    max_attempts=settings.OTP_RATE_LIMIT_ATTEMPTS,
    window_seconds=settings.OTP_RATE_LIMIT_WINDOW_SECONDS,
    name="otp_resend",
)


async def _submitted_identifier(request: Request) -> str:
    """Email (or phone) from a JSON body, lowercased; empty when absent"""
    try:
        body = await request.json()
    except ValueError:
        return ""
    if not isinstance(body, dict):
        return ""
    identifier = body.get("email") or body.get("phoneNumber") or ""
    return str(identifier).strip().lower()


def rate_limit(limiter: SlidingWindowRateLimiter):
    """Dependency factory: count the attempt against (client address, submitted identifier)"""

    async def rate_limit_dependency(request: Request) -> None:
        key = (get_client_ip(request), await _submitted_identifier(request))
        await limiter.check(key)

    return rate_limit_dependency


check_auth_rate_limit = rate_limit(auth_rate_limiter)

# Exported for the OTP resend routes, which are served by the verification
# service rather than this app; mount it with Depends() on those routes.
check_otp_resend_rate_limit = rate_limit(otp_resend_rate_limiter)

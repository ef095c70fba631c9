"""Per-client rate limiting using a sliding window."""

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass

from fastapi import Request

from subscribe.services.atomic import AtomicRef

logger = logging.getLogger(__name__)

# Maximum 10 subscription attempts per client per hour
DEFAULT_MAX_REQUESTS = 10
DEFAULT_WINDOW_SECONDS = 60 * 60

# Prune every client once this many are tracked
DEFAULT_MAX_TRACKED_CLIENTS = 1000

UNKNOWN_CLIENT = "unknown-ip"


@dataclass
class RateLimitResult:
    """Result of a rate limit check."""

    allowed: bool
    limit: int
    remaining: int
    reset: int  # Unix timestamp in seconds


class SlidingWindowRateLimiter:
    """In-memory sliding window rate limiter.

    Keeps the request timestamps of each client for the trailing window.
    Every attempt is recorded, including rejected ones, so a client that
    keeps hammering stays limited instead of resetting itself. Only the
    newest ``max_requests + 1`` timestamps are kept per client, which is
    all the allow/deny decision ever looks at.

    Note: This is suitable for single-instance deployments only.
    """

    def __init__(
        self,
        max_requests: int = DEFAULT_MAX_REQUESTS,
        window_seconds: float = DEFAULT_WINDOW_SECONDS,
        max_tracked_clients: int = DEFAULT_MAX_TRACKED_CLIENTS,
        clock: Callable[[], float] = time.time,
        prune_interval_seconds: float | None = None,
    ) -> None:
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.max_tracked_clients = max_tracked_clients
        self.prune_interval_seconds = (
            window_seconds if prune_interval_seconds is None else prune_interval_seconds
        )
        self._clock = clock
        # Maps client identity to its request timestamps, oldest first
        self._requests: AtomicRef[dict[str, tuple[float, ...]]] = AtomicRef({})
        self._last_pruned: AtomicRef[float] = AtomicRef(clock())

    def check_and_record(self, identifier: str) -> RateLimitResult:
        """Record a request and check it against the limit.

        Args:
            identifier: Client identity (usually the client IP)

        Returns:
            RateLimitResult; ``allowed`` is False once the client exceeds
            ``max_requests`` within the window
        """
        now = self._clock()
        window_start = now - self.window_seconds

        self._prune_if_due(now)
        keep = self.max_requests + 1

        def record(requests: dict[str, tuple[float, ...]]) -> dict[str, tuple[float, ...]]:
            recent = tuple(t for t in requests.get(identifier, ()) if t >= window_start)
            return {**requests, identifier: (*recent, now)[-keep:]}

        _, updated = self._requests.swap(record)
        timestamps = updated[identifier]
        count = len(timestamps)

        if count > self.max_requests:
            logger.debug(f"Rate limit exceeded for {identifier}: {count} requests in window")
            return RateLimitResult(
                allowed=False,
                limit=self.max_requests,
                remaining=0,
                reset=int(timestamps[0] + self.window_seconds),
            )

        return RateLimitResult(
            allowed=True,
            limit=self.max_requests,
            remaining=self.max_requests - count,
            reset=int(timestamps[0] + self.window_seconds),
        )

    def _prune_if_due(self, now: float) -> None:
        last = self._last_pruned.get()
        too_many = len(self._requests.get()) > self.max_tracked_clients
        if not too_many and now - last <= self.prune_interval_seconds:
            return
        # Only the caller that wins the timestamp update prunes
        if self._last_pruned.compare_and_set(last, now):
            self.prune(now)

    def prune(self, now: float | None = None) -> int:
        """Drop timestamps older than the window and clients left with none.

        Returns:
            Number of clients removed
        """
        if now is None:
            now = self._clock()
        window_start = now - self.window_seconds

        def drop_stale(requests: dict[str, tuple[float, ...]]) -> dict[str, tuple[float, ...]]:
            pruned = {}
            for identifier, timestamps in requests.items():
                recent = tuple(t for t in timestamps if t >= window_start)
                if recent:
                    pruned[identifier] = recent
            return pruned

        old, new = self._requests.swap(drop_stale)
        removed = len(old) - len(new)
        if removed:
            logger.debug(f"Pruned {removed} idle clients from rate limiter")
        return removed

    def now(self) -> float:
        return self._clock()

    def tracked_clients(self) -> int:
        return len(self._requests.get())

    def recorded_requests(self, identifier: str) -> int:
        """Number of timestamps currently stored for a client."""
        return len(self._requests.get().get(identifier, ()))

    def reset(self) -> None:
        """Reset all rate limit entries. Useful for testing."""
        self._requests.reset({})


def get_client_ip(request: Request) -> str:
    """Derive the client identity from proxy headers or the peer address."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        # x-forwarded-for can be a comma-separated list, take the first IP
        first = forwarded.split(",")[0].strip()
        if first:
            return first

    real_ip = request.headers.get("x-real-ip")
    if real_ip and real_ip.strip():
        return real_ip.strip()

    if request.client and request.client.host:
        return request.client.host

    return UNKNOWN_CLIENT


def rate_limit_headers(result: RateLimitResult, now: float | None = None) -> dict[str, str]:
    """Generate rate limit headers for a response."""
    headers = {
        "X-RateLimit-Limit": str(result.limit),
        "X-RateLimit-Remaining": str(result.remaining),
        "X-RateLimit-Reset": str(result.reset),
    }

    if not result.allowed:
        if now is None:
            now = time.time()
        headers["Retry-After"] = str(max(0, result.reset - int(now)))

    return headers

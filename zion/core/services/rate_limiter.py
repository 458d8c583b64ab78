"""
Rate Limiter Service

Sliding-window admission control per named external service.
"""

from __future__ import annotations

import logging
import threading
import time
from collections import deque
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field

from zion.core.config.app_config import RateLimitConfig
from zion.core.interfaces.rate_limiter_interface import IRateLimiter, RateLimitInfo

logger = logging.getLogger(__name__)


@dataclass
class RateLimitState:
    """Request window of one service.

    ``timestamps`` holds issue instants (seconds, from the limiter's clock)
    still inside the trailing window, oldest first.
    """

    max_requests: int
    window_ms: int
    timestamps: deque[float] = field(default_factory=deque)

    def prune(self, now: float) -> None:
        cutoff = now - self.window_ms / 1000.0
        while self.timestamps and self.timestamps[0] <= cutoff:
            self.timestamps.popleft()

    def has_capacity(self) -> bool:
        return len(self.timestamps) < self.max_requests


class SlidingWindowRateLimiter(IRateLimiter):
    """In-memory sliding-window rate limiter.

    A full window rejects new requests; old entries are only dropped once
    they age out of the window. Services without a configured limit are
    never limited.
    """

    def __init__(
        self,
        limits: Mapping[str, RateLimitConfig] | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the rate limiter.

        Args:
            limits: Per-service limits keyed by service name
            clock: Seconds clock; injectable for tests
        """
        self._clock = clock
        self._states: dict[str, RateLimitState] = {}
        self._lock = threading.Lock()
        for key, cfg in (limits or {}).items():
            self.set_limit(key, cfg.requests, cfg.window_ms)

    def check_limit(self, key: str) -> bool:
        """Return True if ``key`` may issue another request now.

        Prunes expired timestamps but never records a new one.
        """
        with self._lock:
            state = self._states.get(key)
            if state is None:
                return True
            state.prune(self._clock())
            allowed = state.has_capacity()

        if not allowed:
            logger.debug(
                "Rate limit reached for %s: %d/%d in %dms",
                key,
                len(state.timestamps),
                state.max_requests,
                state.window_ms,
            )
        return allowed

    def record_request(self, key: str) -> None:
        """Record one dispatched request for ``key``."""
        with self._lock:
            state = self._states.get(key)
            if state is None:
                return
            state.timestamps.append(self._clock())

    def try_acquire(self, key: str) -> bool:
        """Check and record in one step.

        Callers issuing requests concurrently use this instead of a separate
        check_limit/record_request pair so two callers cannot both take the
        last slot.
        """
        with self._lock:
            state = self._states.get(key)
            if state is None:
                return True
            now = self._clock()
            state.prune(now)
            if not state.has_capacity():
                return False
            state.timestamps.append(now)
            return True

    def get_info(self, key: str) -> RateLimitInfo:
        with self._lock:
            state = self._states.get(key)
            if state is None:
                return RateLimitInfo(is_limited=False)
            state.prune(self._clock())
            used = len(state.timestamps)
            is_limited = used >= state.max_requests
            reset_at = None
            if is_limited and state.timestamps:
                # when the oldest request falls out of the window
                reset_at = state.timestamps[0] + state.window_ms / 1000.0
            return RateLimitInfo(
                is_limited=is_limited,
                remaining=max(0, state.max_requests - used),
                reset_at=reset_at,
                limit=state.max_requests,
                window_ms=state.window_ms,
            )

    def set_limit(self, key: str, max_requests: int, window_ms: int) -> None:
        """Set (or replace) the limit for ``key``, keeping recorded requests."""
        if max_requests <= 0 or window_ms <= 0:
            raise ValueError("max_requests and window_ms must be positive")
        with self._lock:
            existing = self._states.get(key)
            timestamps = existing.timestamps if existing else deque()
            self._states[key] = RateLimitState(
                max_requests=max_requests, window_ms=window_ms, timestamps=timestamps
            )
        logger.debug("Set rate limit for %s: %d/%dms", key, max_requests, window_ms)

    def reset(self, key: str) -> None:
        with self._lock:
            state = self._states.get(key)
            if state is not None:
                state.timestamps.clear()

    def keys(self) -> list[str]:
        with self._lock:
            return list(self._states)

from __future__ import annotations

from abc import ABC, abstractmethod


class RateLimitInfo:
    is_limited: bool
    remaining: int
    reset_at: float | None = None
    limit: int
    window_ms: int

    def __init__(
        self,
        is_limited: bool = False,
        remaining: int = 0,
        reset_at: float | None = None,
        limit: int = 0,
        window_ms: int = 0,
    ) -> None:
        self.is_limited = is_limited
        self.remaining = remaining
        self.reset_at = reset_at
        self.limit = limit
        self.window_ms = window_ms


class IRateLimiter(ABC):
    @abstractmethod
    def check_limit(self, key: str) -> bool:
        pass

    @abstractmethod
    def record_request(self, key: str) -> None:
        pass

    @abstractmethod
    def try_acquire(self, key: str) -> bool:
        pass

    @abstractmethod
    def get_info(self, key: str) -> RateLimitInfo:
        pass

    @abstractmethod
    def set_limit(self, key: str, max_requests: int, window_ms: int) -> None:
        pass

    @abstractmethod
    def reset(self, key: str) -> None:
        pass

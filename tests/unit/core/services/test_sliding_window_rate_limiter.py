"""
Tests for SlidingWindowRateLimiter.
"""

import threading
from typing import Any

import pytest
from zion.core.config.app_config import RateLimitConfig
from zion.core.interfaces.rate_limiter_interface import RateLimitInfo
from zion.core.services.rate_limiter import SlidingWindowRateLimiter


class TestSlidingWindowRateLimiter:
    @pytest.fixture
    def limiter(self, fake_clock: Any) -> SlidingWindowRateLimiter:
        limiter = SlidingWindowRateLimiter(clock=fake_clock)
        limiter.set_limit("svc", max_requests=3, window_ms=1000)
        return limiter

    def test_allows_exactly_max_requests_per_window(
        self, limiter: SlidingWindowRateLimiter, fake_clock: Any
    ) -> None:
        allowed = []
        for _ in range(4):
            ok = limiter.check_limit("svc")
            allowed.append(ok)
            if ok:
                limiter.record_request("svc")
            fake_clock.advance(0.1)

        assert allowed == [True, True, True, False]

        fake_clock.advance(1.0)
        assert limiter.check_limit("svc") is True

    def test_window_slides_one_request_at_a_time(
        self, limiter: SlidingWindowRateLimiter, fake_clock: Any
    ) -> None:
        limiter.record_request("svc")  # t=0
        fake_clock.advance(0.5)
        limiter.record_request("svc")  # t=0.5
        limiter.record_request("svc")  # t=0.5
        assert limiter.check_limit("svc") is False

        fake_clock.advance(0.5)  # first request is now exactly one window old
        assert limiter.check_limit("svc") is True
        limiter.record_request("svc")
        assert limiter.check_limit("svc") is False

    def test_check_limit_does_not_record(
        self, limiter: SlidingWindowRateLimiter
    ) -> None:
        for _ in range(10):
            assert limiter.check_limit("svc") is True

        assert limiter.get_info("svc").remaining == 3

    def test_unknown_service_is_unlimited(
        self, limiter: SlidingWindowRateLimiter
    ) -> None:
        for _ in range(100):
            limiter.record_request("other")
            assert limiter.check_limit("other") is True
            assert limiter.try_acquire("other") is True

        info = limiter.get_info("other")
        assert isinstance(info, RateLimitInfo)
        assert info.is_limited is False

    def test_try_acquire_checks_and_records(
        self, limiter: SlidingWindowRateLimiter, fake_clock: Any
    ) -> None:
        assert [limiter.try_acquire("svc") for _ in range(4)] == [
            True,
            True,
            True,
            False,
        ]
        fake_clock.advance(1.0)
        assert limiter.try_acquire("svc") is True

    def test_try_acquire_is_atomic_across_threads(self) -> None:
        limiter = SlidingWindowRateLimiter()
        limiter.set_limit("svc", max_requests=50, window_ms=60_000)
        results: list[bool] = []
        lock = threading.Lock()

        def worker() -> None:
            for _ in range(25):
                ok = limiter.try_acquire("svc")
                with lock:
                    results.append(ok)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert results.count(True) == 50

    def test_get_info_reports_usage_and_reset(
        self, limiter: SlidingWindowRateLimiter, fake_clock: Any
    ) -> None:
        start = fake_clock.now
        for _ in range(3):
            limiter.record_request("svc")

        info = limiter.get_info("svc")

        assert info.is_limited is True
        assert info.remaining == 0
        assert info.limit == 3
        assert info.window_ms == 1000
        assert info.reset_at == pytest.approx(start + 1.0)

    def test_set_limit_keeps_recorded_requests(
        self, limiter: SlidingWindowRateLimiter
    ) -> None:
        limiter.record_request("svc")
        limiter.record_request("svc")

        limiter.set_limit("svc", max_requests=2, window_ms=1000)

        assert limiter.check_limit("svc") is False

    @pytest.mark.parametrize(("requests", "window"), [(0, 1000), (3, 0), (-1, 10)])
    def test_set_limit_rejects_non_positive(
        self, limiter: SlidingWindowRateLimiter, requests: int, window: int
    ) -> None:
        with pytest.raises(ValueError):
            limiter.set_limit("svc", requests, window)

    def test_reset_clears_window(self, limiter: SlidingWindowRateLimiter) -> None:
        for _ in range(3):
            limiter.record_request("svc")

        limiter.reset("svc")

        assert limiter.check_limit("svc") is True
        assert limiter.get_info("svc").remaining == 3

    def test_limits_from_config(self, fake_clock: Any) -> None:
        limiter = SlidingWindowRateLimiter(
            {"a": RateLimitConfig(requests=1, window_ms=500)}, clock=fake_clock
        )

        assert limiter.keys() == ["a"]
        assert limiter.try_acquire("a") is True
        assert limiter.try_acquire("a") is False

"""
Tests for RateLimitedAPIClient retry and admission behaviour.
"""

from typing import Any

import pytest
from zion.connectors.http_transport import HttpxTransport
from zion.core.common.exceptions import TransportError
from zion.core.config.app_config import RateLimitConfig, RetryConfig, ServiceConfig
from zion.core.interfaces.transport_interface import RequestSpec, TransportResponse
from zion.core.services.api_client import (
    APIResult,
    RateLimitedAPIClient,
    RetryPolicy,
    is_retryable_status,
)
from zion.core.services.rate_limiter import SlidingWindowRateLimiter


def _client(
    transport: Any,
    sleep: Any,
    clock: Any,
    *,
    requests: int = 100,
    policy: RetryPolicy | None = None,
) -> RateLimitedAPIClient:
    client = RateLimitedAPIClient(
        transport,
        SlidingWindowRateLimiter(clock=clock),
        policy or RetryPolicy(max_retries=3, base_delay_ms=1000, max_delay_ms=10_000),
        sleep=sleep,
        clock=clock,
    )
    client.register_service(
        "svc",
        ServiceConfig(
            base_url="https://api.example.com/v1/",
            timeout=2.5,
            rate_limit=RateLimitConfig(requests=requests, window_ms=1000),
        ),
    )
    return client


class TestRetryPolicy:
    def test_delay_doubles_and_caps(self) -> None:
        policy = RetryPolicy(max_retries=6, base_delay_ms=1000, max_delay_ms=5000)

        assert [policy.delay_ms(n) for n in range(1, 6)] == [
            1000,
            2000,
            4000,
            5000,
            5000,
        ]

    def test_from_config(self) -> None:
        policy = RetryPolicy.from_config(
            RetryConfig(max_retries=5, base_delay_ms=10, max_delay_ms=50)
        )

        assert policy == RetryPolicy(max_retries=5, base_delay_ms=10, max_delay_ms=50)

    @pytest.mark.parametrize(
        ("status", "retryable"),
        [(500, True), (503, True), (429, True), (400, False), (401, False), (404, False)],
    )
    def test_retryable_statuses(self, status: int, retryable: bool) -> None:
        assert is_retryable_status(status) is retryable


class TestRequest:
    @pytest.mark.asyncio
    async def test_success_after_two_server_errors(
        self, make_transport: Any, fake_sleep: Any, fake_clock: Any
    ) -> None:
        transport = make_transport([500, 500, 200])
        client = _client(transport, fake_sleep, fake_clock)

        result = await client.request("svc", RequestSpec(endpoint="/items"))

        assert result.success is True
        assert result.attempts == 3
        assert result.status == 200
        assert result.data == {"ok": True}
        assert fake_sleep.delays == [1.0, 2.0]
        assert len(transport.calls) == 3

    @pytest.mark.asyncio
    async def test_client_error_is_not_retried(
        self, make_transport: Any, fake_sleep: Any, fake_clock: Any
    ) -> None:
        transport = make_transport([401])
        client = _client(transport, fake_sleep, fake_clock)

        result = await client.request("svc", RequestSpec())

        assert result.success is False
        assert result.attempts == 1
        assert result.status == 401
        assert result.error == "Request failed with status code 401"
        assert fake_sleep.delays == []

    @pytest.mark.asyncio
    async def test_retries_exhausted(
        self, make_transport: Any, fake_sleep: Any, fake_clock: Any
    ) -> None:
        body = {"error": {"message": "upstream down"}}
        transport = make_transport([TransportResponse(status=503, body=body)] * 3)
        client = _client(transport, fake_sleep, fake_clock)

        result = await client.request("svc", RequestSpec())

        assert result.success is False
        assert result.attempts == 3
        assert result.status == 503
        assert result.error == "Request failed with status code 503: upstream down"
        assert fake_sleep.delays == [1.0, 2.0]

    @pytest.mark.asyncio
    async def test_transport_error_is_retried(
        self,
        make_transport: Any,
        fake_sleep: Any,
        fake_clock: Any,
        connection_error: Any,
    ) -> None:
        transport = make_transport([connection_error, 429, 200])
        client = _client(transport, fake_sleep, fake_clock)

        result = await client.request("svc", RequestSpec())

        assert result.success is True
        assert result.attempts == 3

    @pytest.mark.asyncio
    async def test_transport_error_exhausted_has_no_status(
        self,
        make_transport: Any,
        fake_sleep: Any,
        fake_clock: Any,
        connection_error: Any,
    ) -> None:
        transport = make_transport([connection_error] * 3)
        client = _client(transport, fake_sleep, fake_clock)

        result = await client.request("svc", RequestSpec())

        assert result.success is False
        assert result.status is None
        assert result.error == "Could not reach host"
        assert result.attempts == 3

    @pytest.mark.asyncio
    async def test_unsendable_request_is_not_retried(
        self, make_transport: Any, fake_sleep: Any, fake_clock: Any
    ) -> None:
        bad_scheme = TransportError(
            "Could not send request to ftp://example.com/x", retryable=False
        )
        transport = make_transport([bad_scheme, 200])
        client = _client(transport, fake_sleep, fake_clock)

        result = await client.request("svc", RequestSpec(endpoint="ftp://example.com/x"))

        assert result.success is False
        assert result.attempts == 1
        assert result.status is None
        assert result.error == "Could not send request to ftp://example.com/x"
        assert fake_sleep.delays == []

    @pytest.mark.asyncio
    async def test_malformed_url_becomes_failed_result(
        self, fake_sleep: Any, fake_clock: Any
    ) -> None:
        client = _client(HttpxTransport(), fake_sleep, fake_clock)

        result = await client.request("svc", RequestSpec(endpoint="http://[::1"))
        await client.aclose()

        assert result.success is False
        assert result.attempts == 1
        assert result.error is not None
        assert result.error.startswith("Invalid request to http://[::1")
        assert fake_sleep.delays == []

    @pytest.mark.asyncio
    async def test_single_attempt_policy(
        self, make_transport: Any, fake_sleep: Any, fake_clock: Any
    ) -> None:
        transport = make_transport([500, 200])
        client = _client(
            transport, fake_sleep, fake_clock, policy=RetryPolicy(max_retries=1)
        )

        result = await client.request("svc", RequestSpec())

        assert result.success is False
        assert result.attempts == 1

    @pytest.mark.asyncio
    async def test_rate_limit_refuses_without_attempt(
        self, make_transport: Any, fake_sleep: Any, fake_clock: Any
    ) -> None:
        transport = make_transport()
        client = _client(transport, fake_sleep, fake_clock, requests=2)

        first = await client.request("svc", RequestSpec())
        second = await client.request("svc", RequestSpec())
        third = await client.request("svc", RequestSpec())

        assert first.success and second.success
        assert third.success is False
        assert third.attempts == 0
        assert third.error == "Rate limit exceeded for API: svc"
        assert len(transport.calls) == 2

        fake_clock.advance(1.0)
        assert (await client.request("svc", RequestSpec())).success is True

    @pytest.mark.asyncio
    async def test_failed_requests_are_not_counted(
        self, make_transport: Any, fake_sleep: Any, fake_clock: Any
    ) -> None:
        transport = make_transport([400, 400, 400])
        client = _client(transport, fake_sleep, fake_clock, requests=2)

        for _ in range(3):
            result = await client.request("svc", RequestSpec())
            assert result.error == "Request failed with status code 400"

        assert client.check_limit("svc") is True

    @pytest.mark.asyncio
    async def test_unregistered_service(
        self, make_transport: Any, fake_sleep: Any, fake_clock: Any
    ) -> None:
        transport = make_transport()
        client = _client(transport, fake_sleep, fake_clock)

        result = await client.request("missing", RequestSpec())

        assert result == APIResult(success=False, error="API 'missing' not registered")
        assert transport.calls == []

    @pytest.mark.asyncio
    async def test_service_timeout_and_base_url_applied(
        self, make_transport: Any, fake_sleep: Any, fake_clock: Any
    ) -> None:
        transport = make_transport()
        client = _client(transport, fake_sleep, fake_clock)

        await client.request("svc", RequestSpec(endpoint="/a"))
        await client.request("svc", RequestSpec(endpoint="/b", timeout=30.0))

        (base_url, first), (_, second) = transport.calls
        assert base_url == "https://api.example.com/v1"
        assert first.timeout == 2.5
        assert second.timeout == 30.0

    @pytest.mark.asyncio
    async def test_duration_measured_with_clock(
        self, make_transport: Any, fake_sleep: Any, fake_clock: Any
    ) -> None:
        class SlowTransport(make_transport):  # type: ignore[misc, valid-type]
            async def send(self, base_url: str, request: RequestSpec) -> Any:
                fake_clock.advance(0.125)
                return await super().send(base_url, request)

        client = _client(SlowTransport(), fake_sleep, fake_clock)

        result = await client.request("svc", RequestSpec())

        assert result.duration_ms == pytest.approx(125.0)

    @pytest.mark.asyncio
    async def test_aclose_closes_transport(
        self, make_transport: Any, fake_sleep: Any, fake_clock: Any
    ) -> None:
        transport = make_transport()
        client = _client(transport, fake_sleep, fake_clock)

        await client.aclose()

        assert transport.closed is True


def test_api_result_to_dict() -> None:
    ok = APIResult(success=True, data={"a": 1}, status=200, duration_ms=5.0, attempts=1)
    failed = APIResult(success=False, error="nope", attempts=2)

    assert ok.to_dict() == {
        "success": True,
        "status": 200,
        "durationMs": 5.0,
        "attempts": 1,
        "data": {"a": 1},
    }
    assert failed.to_dict()["error"] == "nope"
    assert "data" not in failed.to_dict()

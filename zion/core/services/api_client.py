"""
Rate-limited API client.

Wraps a transport with per-service sliding-window admission and bounded
exponential-backoff retries. Every outcome is returned as an APIResult;
nothing raised by the transport escapes :meth:`RateLimitedAPIClient.request`.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field, replace
from typing import Any

from zion.core.common.exceptions import (
    RateLimitExceededError,
    ServiceNotRegisteredError,
    TransportError,
)
from zion.core.config.app_config import RetryConfig, ServiceConfig
from zion.core.interfaces.rate_limiter_interface import IRateLimiter
from zion.core.interfaces.transport_interface import (
    ITransport,
    RequestSpec,
    TransportResponse,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RetryPolicy:
    """Bounded exponential backoff.

    ``max_retries`` is the total number of attempts, the first included.
    """

    max_retries: int = 3
    base_delay_ms: int = 1000
    max_delay_ms: int = 10_000

    @classmethod
    def from_config(cls, config: RetryConfig) -> RetryPolicy:
        return cls(
            max_retries=config.max_retries,
            base_delay_ms=config.base_delay_ms,
            max_delay_ms=config.max_delay_ms,
        )

    def delay_ms(self, attempt: int) -> int:
        """Delay before the attempt following ``attempt`` (1-based)."""
        return min(self.base_delay_ms * 2 ** (attempt - 1), self.max_delay_ms)


@dataclass
class APIResult:
    success: bool
    data: Any = None
    status: int | None = None
    error: str | None = None
    duration_ms: float = 0.0
    attempts: int = 0
    headers: dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "success": self.success,
            "status": self.status,
            "durationMs": self.duration_ms,
            "attempts": self.attempts,
        }
        if self.success:
            result["data"] = self.data
        else:
            result["error"] = self.error
        return result


def is_retryable_status(status: int) -> bool:
    """Server errors and 429 are transient; other statuses are terminal."""
    return status >= 500 or status == 429


@dataclass(frozen=True)
class _Service:
    base_url: str
    timeout: float


class RateLimitedAPIClient:
    """Issues requests to named services under rate limit and retry policy."""

    def __init__(
        self,
        transport: ITransport,
        rate_limiter: IRateLimiter,
        retry_policy: RetryPolicy | None = None,
        *,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        clock: Callable[[], float] = time.perf_counter,
    ) -> None:
        """Initialize the client.

        Args:
            transport: Transport used to send each attempt
            rate_limiter: Admission control keyed by service name
            retry_policy: Backoff policy (defaults to 3 attempts, 1s..10s)
            sleep: Coroutine used to wait between attempts (seconds)
            clock: Seconds clock used to measure request duration
        """
        self._transport = transport
        self._limiter = rate_limiter
        self.retry_policy = retry_policy or RetryPolicy()
        self._sleep = sleep
        self._clock = clock
        self._services: dict[str, _Service] = {}

    @property
    def rate_limiter(self) -> IRateLimiter:
        return self._limiter

    def register_service(self, name: str, config: ServiceConfig) -> None:
        self._services[name] = _Service(base_url=config.base_url, timeout=config.timeout)
        self._limiter.set_limit(
            name, config.rate_limit.requests, config.rate_limit.window_ms
        )
        logger.debug("API registered: %s (%s)", name, config.base_url or "<any>")

    def services(self) -> list[str]:
        return list(self._services)

    def check_limit(self, service: str) -> bool:
        return self._limiter.check_limit(service)

    def record_request(self, service: str) -> None:
        self._limiter.record_request(service)

    async def request(self, service: str, spec: RequestSpec) -> APIResult:
        """
        Send ``spec`` to ``service``.

        A full rate-limit window fails immediately without any attempt.
        Transport failures with no response, 5xx and 429 are retried with
        backoff up to ``max_retries`` attempts. Other statuses, and requests
        the transport could not send as built, are final.

        Returns:
            APIResult with ``attempts`` set to the number of sends made
        """
        start = self._clock()

        svc = self._services.get(service)
        if svc is None:
            error = ServiceNotRegisteredError(
                f"API '{service}' not registered", service=service
            )
            logger.error("%s", error.message)
            return APIResult(success=False, error=error.message)

        if not self._limiter.check_limit(service):
            info = self._limiter.get_info(service)
            error = RateLimitExceededError(
                f"Rate limit exceeded for API: {service}",
                service=service,
                reset_at=info.reset_at,
            )
            logger.warning("%s", error.message)
            return APIResult(
                success=False,
                error=error.message,
                duration_ms=self._elapsed_ms(start),
            )

        if spec.timeout is None:
            spec = replace(spec, timeout=svc.timeout)

        policy = self.retry_policy
        attempt = 0
        status: int | None = None
        error_message = ""
        headers: dict[str, str] = {}

        while True:
            attempt += 1
            response: TransportResponse | None = None
            try:
                response = await self._transport.send(svc.base_url, spec)
            except TransportError as e:
                status = None
                error_message = e.message
                retryable = e.retryable
            else:
                status = response.status
                headers = dict(response.headers)
                if 200 <= status < 300:
                    self._limiter.record_request(service)
                    duration = self._elapsed_ms(start)
                    logger.debug(
                        "API call %s %s -> %d in %.1fms (attempt %d)",
                        service,
                        spec.endpoint or "/",
                        status,
                        duration,
                        attempt,
                    )
                    return APIResult(
                        success=True,
                        data=response.body,
                        status=status,
                        duration_ms=duration,
                        attempts=attempt,
                        headers=headers,
                    )
                error_message = _status_error(status, response.body)
                retryable = is_retryable_status(status)

            if not retryable or attempt >= policy.max_retries:
                break

            delay = policy.delay_ms(attempt)
            logger.debug(
                "Retrying %s request (attempt %d/%d) after %dms: %s",
                service,
                attempt + 1,
                policy.max_retries,
                delay,
                error_message,
            )
            await self._sleep(delay / 1000.0)

        duration = self._elapsed_ms(start)
        logger.error(
            "API request failed: %s %s (status=%s, attempts=%d): %s",
            service,
            spec.endpoint or "/",
            status,
            attempt,
            error_message,
        )
        return APIResult(
            success=False,
            error=error_message,
            status=status,
            duration_ms=duration,
            attempts=attempt,
            headers=headers,
        )

    async def ping(self, service: str, spec: RequestSpec) -> APIResult:
        """
        Send one unmetered attempt to ``service``.

        Reachability probe: any response, whatever its status, is a success.
        The rate-limit window is neither checked nor recorded and nothing
        is retried.
        """
        svc = self._services.get(service)
        if svc is None:
            return APIResult(success=False, error=f"API '{service}' not registered")

        start = self._clock()
        try:
            response = await self._transport.send(svc.base_url, spec)
        except TransportError as e:
            return APIResult(
                success=False,
                error=e.message,
                duration_ms=self._elapsed_ms(start),
                attempts=1,
            )
        return APIResult(
            success=True,
            status=response.status,
            duration_ms=self._elapsed_ms(start),
            attempts=1,
            headers=dict(response.headers),
        )

    def _elapsed_ms(self, start: float) -> float:
        return (self._clock() - start) * 1000.0

    async def aclose(self) -> None:
        await self._transport.aclose()


def _status_error(status: int, body: Any) -> str:
    message = f"Request failed with status code {status}"
    detail = None
    if isinstance(body, dict):
        detail = body.get("message") or body.get("error")
        if isinstance(detail, dict):
            detail = detail.get("message")
    if isinstance(detail, str) and detail:
        return f"{message}: {detail}"
    return message

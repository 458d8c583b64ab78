"""
API Manager

Service catalog for the chatbot's external capabilities (weather, news,
space, finance, geolocation and arbitrary URLs). Payloads are returned as
received; shaping them for display is left to the command handlers.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from zion.connectors.http_transport import HttpxTransport
from zion.core.config.app_config import AppConfig, ServiceConfig
from zion.core.interfaces.transport_interface import ITransport, RequestSpec
from zion.core.services.api_client import APIResult, RateLimitedAPIClient, RetryPolicy
from zion.core.services.rate_limiter import SlidingWindowRateLimiter

logger = logging.getLogger(__name__)

GENERIC_SERVICE = "generic"

MARS_PHOTOS_ENDPOINT = "/mars-photos/api/v1/rovers/curiosity/photos"

HEALTH_ENDPOINT = "/health"
HEALTH_TIMEOUT = 5.0

IPAPI_FIELDS = (
    "status,message,country,countryCode,region,regionName,city,zip,"
    "lat,lon,timezone,isp,org,as,query"
)


class APIManager:
    """Registers services and issues authenticated requests through the client."""

    def __init__(self, client: RateLimitedAPIClient) -> None:
        self.client = client
        self._configs: dict[str, ServiceConfig] = {}

    @classmethod
    def from_config(
        cls, config: AppConfig, transport: ITransport | None = None
    ) -> APIManager:
        """Build a manager, its client and limiter from application config."""
        client = RateLimitedAPIClient(
            transport or HttpxTransport(),
            SlidingWindowRateLimiter(),
            RetryPolicy.from_config(config.retry),
        )
        manager = cls(client)
        for name, service in config.services.items():
            manager.register_service(name, service)
        logger.info(
            "APIs initialized: %s", ", ".join(manager.client.services()) or "-"
        )
        return manager

    def register_service(self, name: str, config: ServiceConfig) -> None:
        self._configs[name] = config
        self.client.register_service(name, config)

    async def make_request(
        self,
        service: str,
        endpoint: str = "",
        *,
        method: str = "GET",
        params: Mapping[str, Any] | None = None,
        data: Any = None,
        headers: Mapping[str, str] | None = None,
    ) -> APIResult:
        """
        Make a request to a registered service.

        The service's API key, when it requires one, is added as its key
        query parameter.

        Returns:
            APIResult (failed when the service is unknown or has no key)
        """
        config = self._configs.get(service)
        if config is None:
            return APIResult(success=False, error=f"API '{service}' not registered")

        query: dict[str, Any] = dict(params or {})
        if config.requires_auth:
            if not config.api_key:
                return APIResult(
                    success=False, error=f"No API key configured for '{service}'"
                )
            query.setdefault(config.api_key_param, config.api_key)

        spec = RequestSpec(
            endpoint=endpoint,
            method=method,
            params=query or None,
            data=data,
            headers=headers,
        )
        return await self.client.request(service, spec)

    # Weather
    async def get_weather(self, location: str) -> APIResult:
        return await self.make_request(
            "openweather", "/weather", params={"q": location, "units": "metric"}
        )

    async def get_weather_forecast(self, location: str) -> APIResult:
        return await self.make_request(
            "openweather", "/forecast", params={"q": location, "units": "metric"}
        )

    # News
    async def get_top_headlines(
        self, country: str = "us", category: str = "general"
    ) -> APIResult:
        return await self.make_request(
            "newsapi",
            "/top-headlines",
            params={"country": country, "category": category},
        )

    async def search_news(
        self,
        query: str,
        *,
        sort_by: str = "publishedAt",
        language: str = "en",
        page_size: int = 20,
    ) -> APIResult:
        return await self.make_request(
            "newsapi",
            "/everything",
            params={
                "q": query,
                "sortBy": sort_by,
                "language": language,
                "pageSize": page_size,
            },
        )

    # Space
    async def get_nasa_image_of_day(self, date: str | None = None) -> APIResult:
        return await self.make_request("nasa", "/planetary/apod", params={"date": date})

    async def get_nasa_mars_photos(
        self, sol: int | str = "latest", camera: str = "all"
    ) -> APIResult:
        return await self.make_request(
            "nasa",
            MARS_PHOTOS_ENDPOINT,
            params={"sol": sol, "camera": None if camera == "all" else camera},
        )

    # Finance
    async def get_stock_price(self, symbol: str) -> APIResult:
        return await self.make_request(
            "alphavantage", params={"function": "GLOBAL_QUOTE", "symbol": symbol}
        )

    async def get_crypto_price(self, symbol: str, market: str = "USD") -> APIResult:
        return await self.make_request(
            "alphavantage",
            params={
                "function": "CURRENCY_EXCHANGE_RATE",
                "from_currency": symbol,
                "to_currency": market,
            },
        )

    # Geolocation
    async def get_location_info(self, ip: str | None = None) -> APIResult:
        endpoint = f"/{ip}" if ip else ""
        return await self.make_request(
            "ipapi", endpoint, params={"fields": IPAPI_FIELDS}
        )

    # Generic HTTP
    async def get(self, url: str, **kwargs: Any) -> APIResult:
        return await self.make_request(GENERIC_SERVICE, url, method="GET", **kwargs)

    async def post(self, url: str, data: Any, **kwargs: Any) -> APIResult:
        return await self.make_request(
            GENERIC_SERVICE, url, method="POST", data=data, **kwargs
        )

    async def health_check(self) -> dict[str, dict[str, Any]]:
        """
        Probe each service that has a base URL.

        A service answering with any status is healthy; one that cannot be
        reached is unhealthy. Probes bypass rate limits and retries.
        """
        results: dict[str, dict[str, Any]] = {}
        for name, config in self._configs.items():
            if not config.base_url:
                continue
            outcome = await self.client.ping(
                name, RequestSpec(endpoint=HEALTH_ENDPOINT, timeout=HEALTH_TIMEOUT)
            )
            if outcome.success:
                results[name] = {
                    "status": "healthy",
                    "response_time_ms": round(outcome.duration_ms),
                }
            else:
                results[name] = {"status": "unhealthy", "error": outcome.error}
        logger.info(
            "API health check completed: %s",
            ", ".join(f"{k}={v['status']}" for k, v in results.items()) or "-",
        )
        return results

    def get_api_stats(self) -> dict[str, dict[str, Any]]:
        """Return current window usage per service."""
        stats: dict[str, dict[str, Any]] = {}
        for name in self._configs:
            info = self.client.rate_limiter.get_info(name)
            used = info.limit - info.remaining
            stats[name] = {
                "recent_requests": used,
                "max_requests": info.limit,
                "window_minutes": info.window_ms / 60_000,
                "utilization_percent": (
                    round(used / info.limit * 100) if info.limit else 0
                ),
            }
        return stats

    async def close(self) -> None:
        await self.client.aclose()
        logger.info("APIManager closed")

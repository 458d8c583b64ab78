"""
HTTP transport backed by httpx.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from zion.constants import USER_AGENT
from zion.core.common.exceptions import TransportError
from zion.core.interfaces.transport_interface import (
    ITransport,
    RequestSpec,
    TransportResponse,
)

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0

# Raised before anything reaches the server; a resend fails the same way
_REQUEST_SIDE_ERRORS = (
    httpx.UnsupportedProtocol,
    httpx.LocalProtocolError,
    httpx.ProxyError,
)


def build_url(base_url: str, endpoint: str) -> str:
    """Join a service base URL and an endpoint.

    Absolute endpoints are used as-is, which is how the generic service
    reaches arbitrary URLs.
    """
    if endpoint.startswith(("http://", "https://")):
        return endpoint
    if not endpoint:
        return base_url
    if not base_url:
        return endpoint
    return f"{base_url.rstrip('/')}/{endpoint.lstrip('/')}"


def _decode_body(response: httpx.Response) -> Any:
    content_type = response.headers.get("content-type", "")
    if "json" in content_type:
        try:
            return response.json()
        except ValueError:
            logger.debug("Response declared JSON but could not be decoded")
    return response.text


class HttpxTransport(ITransport):
    """Sends requests with a shared ``httpx.AsyncClient``."""

    def __init__(self, client: httpx.AsyncClient | None = None) -> None:
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            headers={
                "User-Agent": USER_AGENT,
                "Accept": "application/json",
            },
            timeout=DEFAULT_TIMEOUT,
            follow_redirects=True,
        )

    async def send(self, base_url: str, request: RequestSpec) -> TransportResponse:
        url = build_url(base_url, request.endpoint)
        params = (
            {k: v for k, v in request.params.items() if v is not None}
            if request.params
            else None
        )
        kwargs: dict[str, Any] = {
            "params": params,
            "headers": dict(request.headers) if request.headers else None,
        }
        if request.data is not None:
            kwargs["json"] = request.data
        if request.timeout is not None:
            kwargs["timeout"] = request.timeout

        try:
            http_request = self._client.build_request(
                request.method.upper(), url, **kwargs
            )
        except (httpx.InvalidURL, TypeError, ValueError) as e:
            raise TransportError(
                f"Invalid request to {url}: {e}",
                details={"url": url, "error_type": type(e).__name__},
                retryable=False,
            ) from e

        try:
            response = await self._client.send(http_request)
        except _REQUEST_SIDE_ERRORS as e:
            raise TransportError(
                f"Could not send request to {url}: {e}",
                details={"url": url, "error_type": type(e).__name__},
                retryable=False,
            ) from e
        except httpx.TimeoutException as e:
            raise TransportError(
                f"Request to {url} timed out",
                details={"url": url, "error_type": type(e).__name__},
            ) from e
        except httpx.RequestError as e:
            raise TransportError(
                f"Could not reach {url}: {e}",
                details={"url": url, "error_type": type(e).__name__},
            ) from e

        return TransportResponse(
            status=response.status_code,
            headers=dict(response.headers),
            body=_decode_body(response),
        )

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

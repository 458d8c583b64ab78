from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from zion.core.interfaces.model_bases import InternalDTO


@dataclass(frozen=True)
class RequestSpec(InternalDTO):
    """An outbound request, relative to a service base URL."""

    endpoint: str = ""
    method: str = "GET"
    params: Mapping[str, Any] | None = None
    data: Any = None
    headers: Mapping[str, str] | None = None
    timeout: float | None = None


@dataclass(frozen=True)
class TransportResponse(InternalDTO):
    """A received response, whatever its status code."""

    status: int
    headers: Mapping[str, str] = field(default_factory=dict)
    body: Any = None


class ITransport(ABC):
    @abstractmethod
    async def send(self, base_url: str, request: RequestSpec) -> TransportResponse:
        """Send a request.

        Raises:
            TransportError: If no response was received at all.
        """

    async def aclose(self) -> None:  # noqa: B027
        """Release transport resources."""

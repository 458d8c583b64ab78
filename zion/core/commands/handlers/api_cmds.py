"""
Commands backed by external APIs.

Payloads are returned as received from the service; rendering them is up
to the caller.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from zion.core.commands.handlers.context import CommandContext
from zion.core.common.exceptions import ExternalServiceError
from zion.core.services.api_client import APIResult

NEWS_CATEGORIES = frozenset(
    {
        "business",
        "entertainment",
        "general",
        "health",
        "science",
        "sports",
        "technology",
    }
)


def _unwrap(result: APIResult, service: str) -> Any:
    if not result.success:
        raise ExternalServiceError(
            result.error or f"{service} request failed",
            service=service,
            status=result.status,
        )
    return result.data


async def handle_weather(
    full_args: str, args: Sequence[str], context: CommandContext
) -> Any:
    api = context.require_api_manager()
    return _unwrap(await api.get_weather(full_args), "openweather")


async def handle_news(
    full_args: str, args: Sequence[str], context: CommandContext
) -> Any:
    """Top headlines for a category, or a keyword search otherwise."""
    api = context.require_api_manager()
    if not args:
        return _unwrap(await api.get_top_headlines(), "newsapi")
    category = args[0].lower()
    if len(args) == 1 and category in NEWS_CATEGORIES:
        return _unwrap(await api.get_top_headlines(category=category), "newsapi")
    return _unwrap(await api.search_news(full_args), "newsapi")


async def handle_location(
    full_args: str, args: Sequence[str], context: CommandContext
) -> Any:
    api = context.require_api_manager()
    ip = args[0] if args else None
    return _unwrap(await api.get_location_info(ip), "ipapi")

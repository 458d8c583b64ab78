"""
Registration of the built-in chatbot commands.
"""

from __future__ import annotations

import functools
import inspect
import logging
from collections.abc import Sequence
from typing import Any

from zion.core.commands.command import CommandHandler, CommandSpec
from zion.core.commands.dispatcher import Dispatcher
from zion.core.commands.handlers.api_cmds import (
    handle_location,
    handle_news,
    handle_weather,
)
from zion.core.commands.handlers.calc_cmd import handle_calc
from zion.core.commands.handlers.context import CommandContext
from zion.core.commands.handlers.exit_cmd import handle_exit
from zion.core.commands.handlers.help_cmd import handle_help
from zion.core.commands.handlers.history_cmd import (
    handle_clear,
    handle_history,
    handle_search,
)
from zion.core.commands.handlers.stats_cmd import handle_stats
from zion.core.interfaces.message_store_interface import IMessageStore
from zion.core.services.api_manager import APIManager

logger = logging.getLogger(__name__)


def _bind(handler: CommandHandler, default: CommandContext) -> CommandHandler:
    """Use the caller's CommandContext when given one, else ``default``."""

    @functools.wraps(handler)
    async def bound(full_args: str, args: Sequence[str], context: Any = None) -> Any:
        ctx = context if isinstance(context, CommandContext) else default
        result = handler(full_args, args, ctx)
        if inspect.isawaitable(result):
            result = await result
        return result

    return bound


def builtin_command_specs(context: CommandContext) -> list[CommandSpec]:
    """Return the built-in commands bound to ``context``."""
    return [
        CommandSpec(
            name="calc",
            handler=handle_calc,
            description="Safe mathematical calculations",
            usage="calc <expression>",
            category="Utilities",
            requires_params=True,
            aliases=("calculate", "math", "c"),
        ),
        CommandSpec(
            name="help",
            handler=_bind(handle_help, context),
            description="Show available commands",
            usage="help [command]",
            category="System",
            aliases=("h", "?"),
        ),
        CommandSpec(
            name="stats",
            handler=_bind(handle_stats, context),
            description="Show command, conversation and API statistics",
            usage="stats",
            category="System",
        ),
        CommandSpec(
            name="history",
            handler=_bind(handle_history, context),
            description="Show recent conversation messages",
            usage="history [limit]",
            category="Conversation",
            aliases=("hist",),
        ),
        CommandSpec(
            name="search",
            handler=_bind(handle_search, context),
            description="Search the conversation history",
            usage="search <term>",
            category="Conversation",
            requires_params=True,
        ),
        CommandSpec(
            name="clear",
            handler=_bind(handle_clear, context),
            description="Clear the conversation history",
            usage="clear",
            category="Conversation",
        ),
        CommandSpec(
            name="weather",
            handler=_bind(handle_weather, context),
            description="Get weather information for a location",
            usage="weather <location>",
            category="Weather",
            requires_params=True,
            aliases=("w",),
        ),
        CommandSpec(
            name="news",
            handler=_bind(handle_news, context),
            description="Get latest news",
            usage="news [category|query]",
            category="News",
            aliases=("n",),
        ),
        CommandSpec(
            name="location",
            handler=_bind(handle_location, context),
            description="Look up geolocation for an IP address (default: your own)",
            usage="location [ip]",
            category="Geography",
            aliases=("geo", "ip"),
        ),
        CommandSpec(
            name="exit",
            handler=_bind(handle_exit, context),
            description="Exit ZION chatbot",
            usage="exit",
            category="System",
            aliases=("quit", "bye"),
        ),
    ]


def register_builtin_commands(
    dispatcher: Dispatcher,
    store: IMessageStore | None = None,
    api_manager: APIManager | None = None,
    *,
    history_limit: int = 10,
) -> CommandContext:
    """
    Register the built-in commands on ``dispatcher``.

    Args:
        dispatcher: Dispatcher to register on
        store: Message store used by the history commands
        api_manager: API manager used by weather, news and location
        history_limit: Default number of messages shown by history

    Returns:
        The CommandContext the handlers were bound to; pass it to
        ``Dispatcher.execute`` to observe ``exit_requested``.

    Raises:
        DuplicateCommandError: If a built-in name or alias is already taken
    """
    context = CommandContext(
        dispatcher=dispatcher,
        store=store,
        api_manager=api_manager,
        history_limit=history_limit,
    )
    specs = builtin_command_specs(context)
    for spec in specs:
        dispatcher.register(spec)
    logger.debug("Registered %d built-in commands", len(specs))
    return context

"""
Conversation history commands: history, search and clear.
"""

from __future__ import annotations

from collections.abc import Sequence

from zion.core.commands.handlers.context import CommandContext
from zion.core.interfaces.message_store_interface import StoredMessage

PREVIEW_LENGTH = 100


def _format_message(message: StoredMessage) -> str:
    content = message.content
    if len(content) > PREVIEW_LENGTH:
        content = content[:PREVIEW_LENGTH] + "..."
    return f"[{message.timestamp}] {message.role}: {content}"


async def handle_history(
    full_args: str, args: Sequence[str], context: CommandContext
) -> str:
    """Show the most recent messages, newest first.

    An optional first argument overrides the configured number of messages.
    """
    limit = context.history_limit
    if args:
        try:
            limit = int(args[0])
        except ValueError:
            raise ValueError(f"Invalid history limit: {args[0]}") from None
        if limit <= 0:
            raise ValueError("History limit must be a positive number")

    messages = await context.require_store().get_history(limit)
    if not messages:
        return "No messages in history"
    lines = [f"Last {len(messages)} message(s):"]
    lines.extend(_format_message(m) for m in messages)
    return "\n".join(lines)


async def handle_search(
    full_args: str, args: Sequence[str], context: CommandContext
) -> str:
    matches = await context.require_store().search_messages(full_args)
    if not matches:
        return f"No messages found for '{full_args}'"
    lines = [f"Found {len(matches)} message(s) for '{full_args}':"]
    lines.extend(_format_message(m) for m in matches)
    return "\n".join(lines)


async def handle_clear(
    full_args: str, args: Sequence[str], context: CommandContext
) -> str:
    await context.require_store().clear_history()
    return "Conversation history cleared"

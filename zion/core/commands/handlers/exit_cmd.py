from __future__ import annotations

from collections.abc import Sequence

from zion.core.commands.handlers.context import CommandContext


def handle_exit(full_args: str, args: Sequence[str], context: CommandContext) -> str:
    context.exit_requested = True
    return "Goodbye!"

from __future__ import annotations

from collections.abc import Sequence

from zion.core.commands.handlers.context import CommandContext


def handle_help(full_args: str, args: Sequence[str], context: CommandContext) -> str:
    """Show available commands or details for a single command."""
    dispatcher = context.dispatcher
    prefix = dispatcher.command_prefix

    if args:
        help_info = dispatcher.get_help(args[0])
        if help_info is None:
            return f"Command '{args[0]}' not found"
        lines = [
            f"Help for command: {help_info.name}",
            f"Description: {help_info.description}",
            f"Usage: {prefix}{help_info.usage}",
            f"Category: {help_info.category}",
        ]
        if help_info.aliases:
            lines.append("Aliases: " + ", ".join(help_info.aliases))
        return "\n".join(lines)

    lines = ["Available commands:"]
    for category, commands in dispatcher.list_by_category().items():
        lines.append("")
        lines.append(f"{category}:")
        for cmd in commands:
            aliases = f" ({', '.join(cmd['aliases'])})" if cmd["aliases"] else ""
            lines.append(f"  {cmd['name']}{aliases} - {cmd['description']}")
    lines.append("")
    lines.append(f'Use "{prefix}help <command>" for details about a specific command.')
    return "\n".join(lines)

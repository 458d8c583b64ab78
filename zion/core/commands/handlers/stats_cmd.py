from __future__ import annotations

from collections.abc import Sequence

from zion.core.commands.handlers.context import CommandContext


async def handle_stats(
    full_args: str, args: Sequence[str], context: CommandContext
) -> str:
    """Summarize command, conversation and API usage."""
    stats = context.dispatcher.get_statistics()
    lines = [
        "Commands:",
        f"  registered: {stats['commands_registered']}",
        f"  executed: {stats['commands_executed']}",
        f"  success rate: {stats['success_rate']:.1f}%",
        f"  average duration: {stats['average_duration_ms']:.2f}ms",
        f"  parse cache hits: {stats['cache_hits']}",
    ]
    if stats["command_usage"]:
        top = ", ".join(
            f"{name} ({count})" for name, count in list(stats["command_usage"].items())[:5]
        )
        lines.append(f"  most used: {top}")

    if context.store is not None:
        store_stats = await context.store.get_stats()
        lines.extend(
            [
                "Conversation:",
                f"  messages: {store_stats['total_messages']}",
                f"  user: {store_stats['user_messages']}",
                f"  assistant: {store_stats['assistant_messages']}",
            ]
        )
        if store_stats["first_message"]:
            lines.append(f"  first: {store_stats['first_message']}")

    if context.api_manager is not None:
        lines.append("APIs:")
        for name, usage in context.api_manager.get_api_stats().items():
            lines.append(
                f"  {name}: {usage['recent_requests']}/{usage['max_requests']} "
                f"per {usage['window_minutes']:g} min "
                f"({usage['utilization_percent']}%)"
            )
    return "\n".join(lines)

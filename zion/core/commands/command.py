"""
Core data structures for the command system.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import Any

# (full_args, args, context) -> result or awaitable result
CommandHandler = Callable[[str, Sequence[str], Any], Any]


@dataclass(frozen=True)
class CommandSpec:
    """
    Immutable registration record binding a name and aliases to a handler.

    Attributes:
        name: Primary command name (stored lower-cased).
        handler: Callable invoked with ``(full_args, args, context)``.
        description: Human readable description.
        usage: Syntax hint shown in help and parameter errors.
        category: Grouping used by help listings.
        requires_params: Reject calls with no arguments before the handler runs.
        aliases: Alternate names resolving to this spec (stored lower-cased).
    """

    name: str
    handler: CommandHandler
    description: str = ""
    usage: str = ""
    category: str = "Miscellaneous"
    requires_params: bool = False
    aliases: tuple[str, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        object.__setattr__(self, "name", self.name.strip().lower())
        object.__setattr__(
            self, "aliases", tuple(a.strip().lower() for a in self.aliases)
        )

    def summary(self) -> dict[str, Any]:
        """Return the display metadata (excludes the handler)."""
        return {
            "name": self.name,
            "description": self.description,
            "usage": self.usage,
            "category": self.category,
            "aliases": list(self.aliases),
        }


@dataclass(frozen=True)
class ParsedInput:
    """A tokenized command line.

    ``full_args`` is the argument tokens rejoined with single spaces, so
    handlers never see the original spacing.
    """

    command: str
    args: tuple[str, ...] = ()
    original_input: str = ""

    @property
    def full_args(self) -> str:
        return " ".join(self.args)

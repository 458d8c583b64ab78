"""
Command Results Domain Model

Uniform records returned by the dispatcher for every invocation.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass
class ExecutionResult:
    """
    Result of a command execution.

    ``result`` is set on success and ``error`` on failure. ``duration`` is the
    wall-clock time of the handler call in milliseconds; it stays ``None`` when
    the call was rejected before reaching a handler.
    """

    success: bool
    result: Any = None
    error: str | None = None
    duration: float | None = None
    command: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"success": self.success}
        if self.success:
            data["result"] = self.result
        else:
            data["error"] = self.error
        if self.duration is not None:
            data["duration"] = self.duration
        return data


@dataclass(frozen=True)
class CommandHelp:
    name: str
    description: str
    usage: str
    category: str
    aliases: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class CommandValidation:
    valid: bool
    error: str | None = None
    command: Any = None

"""
Parses command lines typed at the chatbot prompt.
"""

from __future__ import annotations

from zion.command_prefix import validate_command_prefix
from zion.constants import DEFAULT_COMMAND_PREFIX
from zion.core.commands.command import ParsedInput


class CommandParser:
    """Splits a raw input line into a command name and its arguments."""

    def __init__(self, command_prefix: str = DEFAULT_COMMAND_PREFIX):
        """Initialize the parser with the desired command prefix."""
        self._command_prefix: str = ""
        self.command_prefix = command_prefix

    @property
    def command_prefix(self) -> str:
        """Return the current command prefix."""
        return self._command_prefix

    @command_prefix.setter
    def command_prefix(self, value: str) -> None:
        if not isinstance(value, str):
            raise TypeError("Command prefix must be a string.")
        err = validate_command_prefix(value)
        if err:
            raise ValueError(err)
        self._command_prefix = value

    def parse(self, content: str) -> ParsedInput | None:
        """
        Parses a command from the given line.

        Tokens are split on runs of whitespace. The first token must carry
        the command prefix; it is stripped and lower-cased to form the
        command name.

        Args:
            content: The raw input line.

        Returns:
            A ParsedInput, or None when the line is empty, blank or not
            prefixed.
        """
        if not isinstance(content, str):
            return None

        tokens = content.split()
        if not tokens:
            return None

        head = tokens[0]
        if not head.startswith(self._command_prefix):
            return None

        name = head[len(self._command_prefix) :].lower()
        if not name:
            return None

        return ParsedInput(command=name, args=tuple(tokens[1:]), original_input=content)

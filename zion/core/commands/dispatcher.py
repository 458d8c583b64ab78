"""
Command dispatcher.

Owns the mapping from command names and aliases to CommandSpecs, parses
input lines, validates required parameters, invokes the bound handler and
reports every outcome as an ExecutionResult. Handler failures never
propagate past :meth:`Dispatcher.execute`.
"""

from __future__ import annotations

import inspect
import logging
import threading
import time
from collections import Counter, OrderedDict
from collections.abc import Callable, Iterable
from typing import Any

from zion.constants import DEFAULT_COMMAND_PREFIX
from zion.core.commands.command import CommandHandler, CommandSpec, ParsedInput
from zion.core.commands.parser import CommandParser
from zion.core.common.exceptions import (
    CommandRegistrationError,
    DuplicateCommandError,
)
from zion.core.common.logging_utils import get_logger
from zion.core.domain.command_results import (
    CommandHelp,
    CommandValidation,
    ExecutionResult,
)

logger = logging.getLogger(__name__)
event_logger = get_logger("zion.commands")

INVALID_FORMAT_ERROR = "Invalid command format"
DEFAULT_PARSE_CACHE_SIZE = 128


class Dispatcher:
    """
    Routes command lines to registered handlers.

    One instance is built at startup and passed to every caller; there is no
    module-level registry.
    """

    def __init__(
        self,
        command_prefix: str = DEFAULT_COMMAND_PREFIX,
        *,
        parse_cache_size: int = DEFAULT_PARSE_CACHE_SIZE,
        clock: Callable[[], float] = time.perf_counter,
    ) -> None:
        """
        Initialize the dispatcher.

        Args:
            command_prefix: Prefix marking a line as a command (e.g. "/")
            parse_cache_size: Number of parsed lines kept for reuse by execute
            clock: Seconds clock used to measure handler duration
        """
        self._parser = CommandParser(command_prefix)
        self._clock = clock

        self._commands: dict[str, CommandSpec] = {}  # primary name -> spec
        self._index: dict[str, CommandSpec] = {}  # name or alias -> spec

        self._parse_cache: OrderedDict[str, ParsedInput | None] = OrderedDict()
        self._parse_cache_size = max(0, parse_cache_size)

        self._stats_lock = threading.Lock()
        self._executed = 0
        self._successes = 0
        self._cache_hits = 0
        self._timed = 0
        self._total_duration_ms = 0.0
        self._usage: Counter[str] = Counter()

    @property
    def command_prefix(self) -> str:
        return self._parser.command_prefix

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register(self, spec: CommandSpec, *, force: bool = False) -> CommandSpec:
        """
        Register a command under its name and each of its aliases.

        Args:
            spec: The command specification
            force: Replace an existing command with the same primary name

        Returns:
            The registered spec

        Raises:
            CommandRegistrationError: If the name is empty or the handler is
                not callable
            DuplicateCommandError: If the name or an alias is already bound
                (to another command, or to this name without ``force``)
        """
        if not spec.name or any(c.isspace() for c in spec.name):
            raise CommandRegistrationError(
                f"Invalid command name: {spec.name!r}", command_name=spec.name
            )
        if not callable(spec.handler):
            raise CommandRegistrationError(
                f"Handler for command '{spec.name}' is not callable",
                command_name=spec.name,
            )

        keys = [spec.name]
        for alias in spec.aliases:
            if not alias:
                raise CommandRegistrationError(
                    f"Empty alias for command '{spec.name}'", command_name=spec.name
                )
            if alias in keys:
                raise DuplicateCommandError(
                    f"Alias '{alias}' repeats a name of command '{spec.name}'",
                    command_name=spec.name,
                )
            keys.append(alias)

        replacing = self._commands.get(spec.name)
        if replacing is not None and not force:
            raise DuplicateCommandError(
                f"Command '{spec.name}' already registered", command_name=spec.name
            )

        for key in keys:
            bound = self._index.get(key)
            if bound is None or bound is replacing:
                continue
            kind = "command" if key == bound.name else "alias"
            raise DuplicateCommandError(
                f"'{key}' conflicts with existing {kind} of command '{bound.name}'",
                command_name=spec.name,
                details={"key": key, "bound_to": bound.name},
            )

        if replacing is not None:
            for key in (replacing.name, *replacing.aliases):
                self._index.pop(key, None)
            logger.info("Replacing command '%s'", spec.name)

        self._commands[spec.name] = spec
        for key in keys:
            self._index[key] = spec

        logger.debug(
            "Registered command: %s (aliases: %s)",
            spec.name,
            ", ".join(spec.aliases) or "-",
        )
        return spec

    def register_command(
        self,
        name: str,
        handler: CommandHandler,
        description: str = "",
        usage: str = "",
        category: str = "Miscellaneous",
        requires_params: bool = False,
        aliases: Iterable[str] | None = None,
        force: bool = False,
    ) -> CommandSpec:
        """Build a CommandSpec from keyword metadata and register it."""
        spec = CommandSpec(
            name=name,
            handler=handler,
            description=description,
            usage=usage or name,
            category=category,
            requires_params=requires_params,
            aliases=tuple(aliases or ()),
        )
        return self.register(spec, force=force)

    def command(
        self,
        name: str,
        description: str = "",
        usage: str = "",
        category: str = "Miscellaneous",
        requires_params: bool = False,
        aliases: Iterable[str] | None = None,
    ) -> Callable[[CommandHandler], CommandHandler]:
        """
        A decorator to register a handler function.

        Returns:
            A decorator that registers the function and returns it unchanged.
        """

        def decorator(func: CommandHandler) -> CommandHandler:
            self.register_command(
                name,
                func,
                description=description or (inspect.getdoc(func) or "").split("\n")[0],
                usage=usage,
                category=category,
                requires_params=requires_params,
                aliases=aliases,
            )
            return func

        return decorator

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def parse(self, content: str) -> ParsedInput | None:
        """Tokenize a line; None when it is not command-shaped."""
        return self._parser.parse(content)

    def is_command(self, content: str) -> bool:
        """Return True iff the line names a registered command.

        Pure predicate: no statistics or cache are touched.
        """
        parsed = self._parser.parse(content)
        return parsed is not None and parsed.command in self._index

    def resolve(self, name: str | None) -> CommandSpec | None:
        """Look up a spec by name or alias, with or without the prefix."""
        if not name:
            return None
        key = name.strip().lower()
        prefix = self._parser.command_prefix
        if key.startswith(prefix) and key not in self._index:
            key = key[len(prefix) :]
        return self._index.get(key)

    def _parse_cached(self, content: str) -> ParsedInput | None:
        if not self._parse_cache_size or not isinstance(content, str):
            return self._parser.parse(content)

        if content in self._parse_cache:
            self._parse_cache.move_to_end(content)
            with self._stats_lock:
                self._cache_hits += 1
            return self._parse_cache[content]

        parsed = self._parser.parse(content)
        self._parse_cache[content] = parsed
        if len(self._parse_cache) > self._parse_cache_size:
            self._parse_cache.popitem(last=False)
        return parsed

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    async def execute(self, content: str, context: Any = None) -> ExecutionResult:
        """
        Parse, validate and run a command line.

        Args:
            content: Raw input line
            context: Caller context passed through to the handler

        Returns:
            An ExecutionResult; never raises for handler failures.
        """
        parsed = self._parse_cached(content)
        if parsed is None:
            logger.warning("Invalid command format: %r", content)
            return self._record(ExecutionResult(success=False, error=INVALID_FORMAT_ERROR))

        spec = self._index.get(parsed.command)
        if spec is None:
            logger.warning("Unknown command: %s", parsed.command)
            return self._record(
                ExecutionResult(
                    success=False, error=f"Unknown command: {parsed.command}"
                )
            )

        if spec.requires_params and not parsed.full_args:
            logger.warning(
                "Command '%s' missing required parameters (usage: %s)",
                parsed.command,
                spec.usage,
            )
            return self._record(
                ExecutionResult(
                    success=False,
                    error=f"Command '{parsed.command}' requires parameters. Usage: {spec.usage}",
                    command=spec.name,
                )
            )

        start = self._clock()
        try:
            result = spec.handler(parsed.full_args, list(parsed.args), context)
            if inspect.isawaitable(result):
                result = await result
        except Exception as exc:
            duration = (self._clock() - start) * 1000.0
            message = str(exc) or type(exc).__name__
            logger.debug("Handler for '%s' raised", spec.name, exc_info=True)
            event_logger.warning(
                "command_failed",
                command=spec.name,
                args=list(parsed.args),
                error=message,
                duration_ms=round(duration, 3),
            )
            return self._record(
                ExecutionResult(
                    success=False, error=message, duration=duration, command=spec.name
                )
            )

        duration = (self._clock() - start) * 1000.0
        event_logger.info(
            "command_executed",
            command=spec.name,
            success=True,
            duration_ms=round(duration, 3),
        )
        return self._record(
            ExecutionResult(
                success=True, result=result, duration=duration, command=spec.name
            )
        )

    def _record(self, outcome: ExecutionResult) -> ExecutionResult:
        with self._stats_lock:
            self._executed += 1
            if outcome.success:
                self._successes += 1
            if outcome.duration is not None:
                self._timed += 1
                self._total_duration_ms += outcome.duration
            if outcome.command:
                self._usage[outcome.command] += 1
        return outcome

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    def get_help(self, name: str | None) -> CommandHelp | None:
        spec = self.resolve(name)
        if spec is None:
            return None
        return CommandHelp(
            name=spec.name,
            description=spec.description,
            usage=spec.usage,
            category=spec.category,
            aliases=list(spec.aliases),
        )

    def list_by_category(self) -> dict[str, list[dict[str, Any]]]:
        """Group primary commands by category in registration order."""
        categories: dict[str, list[dict[str, Any]]] = {}
        for spec in self._commands.values():
            categories.setdefault(spec.category or "Miscellaneous", []).append(
                spec.summary()
            )
        return categories

    def get_all_commands(self) -> list[dict[str, Any]]:
        """Return summaries of primary commands sorted by name."""
        return [self._commands[name].summary() for name in sorted(self._commands)]

    def validate_command(
        self, name: str | None, args: list[str] | str | None = None
    ) -> CommandValidation:
        """Check a name and arguments without running the handler."""
        spec = self.resolve(name)
        if spec is None:
            return CommandValidation(valid=False, error=f"Unknown command: {name}")
        if spec.requires_params and not args:
            return CommandValidation(
                valid=False,
                error=f"Command '{name}' requires parameters. Usage: {spec.usage}",
            )
        return CommandValidation(valid=True, command=spec)

    def get_statistics(self) -> dict[str, Any]:
        with self._stats_lock:
            executed = self._executed
            successes = self._successes
            timed = self._timed
            return {
                "commands_registered": len(self._commands),
                "commands_executed": executed,
                "successes": successes,
                "failures": executed - successes,
                "success_rate": (successes / executed * 100) if executed else 0.0,
                "cache_hits": self._cache_hits,
                "average_duration_ms": (
                    self._total_duration_ms / timed if timed else 0.0
                ),
                "command_usage": dict(self._usage.most_common()),
            }

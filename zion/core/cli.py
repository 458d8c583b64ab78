"""
Command line entry point for the ZION chatbot.

Builds the dispatcher, message store and API manager from configuration
and either runs a single line (``--execute``) or an interactive loop.
"""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import json
import logging
import sys
import threading
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any

from zion import __version__
from zion.command_prefix import validate_command_prefix
from zion.constants import MessageRole
from zion.core.commands.dispatcher import Dispatcher
from zion.core.commands.handlers import CommandContext, register_builtin_commands
from zion.core.common.exceptions import ConfigurationError, ZionError
from zion.core.common.logging_utils import configure_logging
from zion.core.config.app_config import AppConfig, LogLevel, load_config
from zion.core.interfaces.message_store_interface import IMessageStore
from zion.core.interfaces.transport_interface import ITransport
from zion.core.repositories.message_store import SQLiteMessageStore
from zion.core.services.api_manager import APIManager

logger = logging.getLogger(__name__)

PROMPT = "You: "
# conventional status for termination by SIGINT
EXIT_INTERRUPTED = 130
NO_BACKEND_NOTICE = (
    "No chat backend is attached. Type {prefix}help to see available commands."
)


def build_cli_parser() -> argparse.ArgumentParser:
    """Build the CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="zion", description="Run the ZION command-line chatbot"
    )
    parser.add_argument(
        "--config",
        dest="config_file",
        metavar="FILE",
        help="Path to a YAML configuration file",
    )
    parser.add_argument(
        "--database",
        dest="database_path",
        metavar="PATH",
        help="SQLite database used for the message history",
    )
    parser.add_argument("--command-prefix")
    parser.add_argument(
        "--log-level",
        dest="log_level",
        choices=[level.value for level in LogLevel],
        default=None,
        help="Set the logging level (default: use config or WARNING)",
    )
    parser.add_argument(
        "--log",
        dest="log_file",
        metavar="FILE",
        help="Write logs to FILE",
    )
    parser.add_argument(
        "--execute",
        "-e",
        dest="execute",
        metavar="LINE",
        help="Run a single command line and exit",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}"
    )
    return parser


def parse_cli_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = build_cli_parser()
    return parser.parse_args(argv)


def apply_cli_args(args: argparse.Namespace) -> AppConfig:
    """Load configuration and apply command line overrides.

    Raises:
        ConfigurationError: If the configuration or an override is invalid
    """
    cfg = load_config(args.config_file)

    if args.command_prefix is not None:
        err = validate_command_prefix(args.command_prefix)
        if err:
            raise ConfigurationError(f"Invalid command prefix: {err}")
        cfg.command_prefix = args.command_prefix
    if args.database_path is not None:
        cfg.database_path = args.database_path
    if args.log_file is not None:
        cfg.logging.log_file = args.log_file
    if args.log_level is not None:
        cfg.logging.level = LogLevel(args.log_level)
    return cfg


def format_result(value: Any) -> str:
    """Render a handler result for the terminal."""
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, (dict, list)):
        return json.dumps(value, indent=2, ensure_ascii=False, default=str)
    return str(value)


@dataclass
class ChatSession:
    """Everything one run of the chatbot needs."""

    config: AppConfig
    dispatcher: Dispatcher
    context: CommandContext
    store: IMessageStore
    api_manager: APIManager

    async def close(self) -> None:
        await self.api_manager.close()
        await self.store.close()


def build_session(
    config: AppConfig,
    *,
    store: IMessageStore | None = None,
    transport: ITransport | None = None,
) -> ChatSession:
    """Wire the dispatcher, built-in commands, store and API manager."""
    dispatcher = Dispatcher(config.command_prefix)
    message_store = store or SQLiteMessageStore(config.database_path)
    api_manager = APIManager.from_config(config, transport=transport)
    context = register_builtin_commands(
        dispatcher,
        message_store,
        api_manager,
        history_limit=config.history_limit,
    )
    return ChatSession(
        config=config,
        dispatcher=dispatcher,
        context=context,
        store=message_store,
        api_manager=api_manager,
    )


async def handle_line(
    session: ChatSession, line: str, output: Callable[[str], Any] = print
) -> bool:
    """
    Process one line of user input.

    Command lines go to the dispatcher; anything else is stored as a user
    message and answered with a notice.

    Returns:
        False once the session should end, True otherwise
    """
    text = line.strip()
    if not text:
        return True

    dispatcher = session.dispatcher
    if dispatcher.is_command(text):
        outcome = await dispatcher.execute(text, session.context)
        if outcome.success:
            rendered = format_result(outcome.result)
            if rendered:
                output(rendered)
        else:
            output(f"Error: {outcome.error}")
        return not session.context.exit_requested

    await session.store.save_message(MessageRole.USER.value, text)
    output(NO_BACKEND_NOTICE.format(prefix=dispatcher.command_prefix))
    return True


def _deliver(
    future: asyncio.Future[str], line: str | None, error: BaseException | None
) -> None:
    if future.done():
        return
    if error is not None:
        future.set_exception(error)
    else:
        future.set_result(line or "")


async def read_line(input_func: Callable[[str], str], prompt: str = PROMPT) -> str:
    """
    Read one line without blocking the event loop.

    The blocking read runs in a daemon thread rather than the default
    executor, so cancelling the caller (Ctrl-C under ``asyncio.run``) does
    not leave interpreter shutdown waiting on a pending ``input()``.
    """
    loop = asyncio.get_running_loop()
    future: asyncio.Future[str] = loop.create_future()

    def reader() -> None:
        line: str | None = None
        error: BaseException | None = None
        try:
            line = input_func(prompt)
        except BaseException as e:
            error = e
        # the loop may be gone if the session ended while input was pending
        with contextlib.suppress(RuntimeError):
            loop.call_soon_threadsafe(_deliver, future, line, error)

    threading.Thread(target=reader, name="zion-input", daemon=True).start()
    return await future


async def run_repl(
    session: ChatSession,
    *,
    input_func: Callable[[str], str] = input,
    output: Callable[[str], Any] = print,
) -> None:
    """Read lines until exit, end of input or interrupt."""
    prefix = session.dispatcher.command_prefix
    output(f"ZION {__version__}. Type {prefix}help for commands, {prefix}exit to quit.")
    while True:
        try:
            line = await read_line(input_func)
        except (EOFError, KeyboardInterrupt):
            output("")
            break
        try:
            if not await handle_line(session, line, output):
                break
        except ZionError as e:
            # store failures outside the dispatcher, e.g. saving a chat line
            logger.error("Could not process input: %s", e.message)
            output(f"Error: {e.message}")


async def execute_once(session: ChatSession, line: str) -> int:
    """Run a single line through the dispatcher; return the exit status."""
    outcome = await session.dispatcher.execute(line, session.context)
    if outcome.success:
        rendered = format_result(outcome.result)
        if rendered:
            print(rendered)
        return 0
    print(f"Error: {outcome.error}", file=sys.stderr)
    return 1


async def _run(args: argparse.Namespace, config: AppConfig) -> int:
    session = build_session(config)
    try:
        if args.execute is not None:
            return await execute_once(session, args.execute)
        await run_repl(session)
        return 0
    finally:
        await session.close()


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point for the ``zion`` console script."""
    args = parse_cli_args(argv)
    try:
        config = apply_cli_args(args)
    except ConfigurationError as e:
        sys.stderr.write(f"ERROR: {e.message}\n")
        return 1

    configure_logging(
        level=config.logging.level.value,
        log_file=config.logging.log_file,
        api_keys=config.api_keys(),
    )

    try:
        return asyncio.run(_run(args, config))
    except KeyboardInterrupt:
        logger.info("Interrupted")
        sys.stderr.write("\n")
        return EXIT_INTERRUPTED
    except ZionError as e:
        logger.error("Startup failed: %s", e.message)
        sys.stderr.write(f"ERROR: {e.message}\n")
        return 1


if __name__ == "__main__":
    sys.exit(main())

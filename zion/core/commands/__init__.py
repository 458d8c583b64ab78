from .command import CommandHandler, CommandSpec, ParsedInput
from .dispatcher import Dispatcher
from .parser import CommandParser

__all__ = [
    "CommandHandler",
    "CommandParser",
    "CommandSpec",
    "Dispatcher",
    "ParsedInput",
]

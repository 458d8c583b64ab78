from .builtin import builtin_command_specs, register_builtin_commands
from .calc_cmd import evaluate_expression, format_number
from .context import CommandContext

__all__ = [
    "CommandContext",
    "builtin_command_specs",
    "evaluate_expression",
    "format_number",
    "register_builtin_commands",
]

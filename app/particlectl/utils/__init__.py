"""Console and subprocess helpers shared by the core and the CLI."""

from particlectl.utils.formatting import (
    console,
    err_console,
    print_config_summary,
    print_error,
    print_header,
    print_info,
    print_options,
    print_section,
    print_success,
    print_warning,
)
from particlectl.utils.shell import CommandResult, command_exists, run_command, run_streaming

__all__ = [
    "CommandResult",
    "command_exists",
    "console",
    "err_console",
    "print_config_summary",
    "print_error",
    "print_header",
    "print_info",
    "print_options",
    "print_section",
    "print_success",
    "print_warning",
    "run_command",
    "run_streaming",
]

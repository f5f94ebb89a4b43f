"""Shared helpers for command execution, configuration and console output."""
from __future__ import annotations

from .command_runner import (
    CommandError,
    CommandResult,
    CommandRunner,
    SubprocessCommandRunner,
    format_command,
)
from .config_loader import load_config_file, normalize_string_list
from .console import Console

__all__ = [
    "CommandError",
    "CommandResult",
    "CommandRunner",
    "Console",
    "SubprocessCommandRunner",
    "format_command",
    "load_config_file",
    "normalize_string_list",
]

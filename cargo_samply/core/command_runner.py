"""Utilities for executing external commands with captured, inherited or streamed output."""
from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, Iterator, Mapping, Sequence
import os
import shlex
import signal
import subprocess
import threading


@dataclass
class CommandResult:
    """Represents the outcome of an executed command."""

    command: Sequence[str]
    returncode: int
    stdout: str
    stderr: str
    streamed: bool = False

    @property
    def ok(self) -> bool:
        return self.returncode == 0


class CommandError(RuntimeError):
    """Raised when a command fails."""

    def __init__(self, result: CommandResult):
        message = f"Command failed with exit code {result.returncode}: {format_command(result.command)}"
        if result.streamed:
            message = f"{message}\nstdout/stderr already streamed above."
        else:
            message = (
                f"{message}\n"
                f"stdout: {result.stdout}\n"
                f"stderr: {result.stderr}"
            )
        super().__init__(message)
        self.result = result


def format_command(command: Sequence[str], env: Mapping[str, str] | None = None) -> str:
    """Return a shell-reproducible rendering of ``command`` with ``env`` assignments."""

    parts = [f"{key}={shlex.quote(value)}" for key, value in (env or {}).items()]
    parts.extend(shlex.quote(str(part)) for part in command)
    return " ".join(parts)


LineHandler = Callable[[str], None]


@contextmanager
def _interrupts_ignored() -> Iterator[None]:
    """Ignore SIGINT in this process for the duration of the block."""

    if threading.current_thread() is not threading.main_thread():
        yield
        return
    previous = signal.signal(signal.SIGINT, signal.SIG_IGN)
    try:
        yield
    finally:
        signal.signal(signal.SIGINT, previous if previous is not None else signal.SIG_DFL)


class CommandRunner:
    """Abstract command runner interface."""

    def run(
        self,
        command: Sequence[str],
        *,
        cwd: Path | None = None,
        env: Mapping[str, str] | None = None,
        check: bool = True,
    ) -> CommandResult:
        """Run ``command`` to completion and capture its output."""
        raise NotImplementedError

    def call(
        self,
        command: Sequence[str],
        *,
        cwd: Path | None = None,
        env: Mapping[str, str] | None = None,
    ) -> int:
        with subprocess.Popen(
            [str(part) for part in command],
            cwd=str(cwd) if cwd else None,
            env=self._merge_environment(env),
        ) as process:
            # The child shares our terminal and gets Ctrl-C itself; wait for it to finish.
            with _interrupts_ignored():
                return process.wait()

    def stream_lines(
        self,
        command: Sequence[str],
        on_line: LineHandler,
        *,
        cwd: Path | None = None,
        env: Mapping[str, str] | None = None,
        check: bool = True,
    ) -> CommandResult:
        # stderr stays attached to the terminal; only stdout is consumed here.
        with subprocess.Popen(
            [str(part) for part in command],
            cwd=str(cwd) if cwd else None,
            env=self._merge_environment(env),
            stdout=subprocess.PIPE,
            text=True,
            encoding="utf-8",
            errors="replace",
            bufsize=1,
        ) as process:
            assert process.stdout is not None
            for line in process.stdout:
                on_line(line.rstrip("\r\n"))
            returncode = process.wait()

        return self._finalize(
            CommandResult(
                command=command,
                returncode=returncode,
                stdout="",
                stderr="",
                streamed=True,
            ),
            check=check,
        )


__all__ = [
    "CommandError",
    "CommandResult",
    "CommandRunner",
    "LineHandler",
    "SubprocessCommandRunner",
    "format_command",
]

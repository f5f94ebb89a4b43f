"""Leveled console output shared by the command line tools."""
from __future__ import annotations

from typing import TextIO
import sys


class Console:
    """Simple console output handler with configurable log level.

    Levels: none < error < warn < info < debug
    Default: 'info'

    Messages are written to standard error so that standard output stays
    reserved for transcripts and for the output of launched programs.
    """

    LEVELS = {
        "none": 0,
        "error": 1,
        "warn": 2,
        "info": 3,
        "debug": 4,
    }

    def __init__(self, level: str = "info", stream: TextIO | None = None):
        if level not in self.LEVELS:
            raise ValueError(f"Unknown console level: {level}")
        self.level_name = level
        self.level = self.LEVELS[level]
        self._stream = stream

    @classmethod
    def from_flags(cls, *, verbose: bool = False, quiet: bool = False) -> "Console":
        if quiet:
            return cls("error")
        if verbose:
            return cls("debug")
        return cls("info")

    @property
    def stream(self) -> TextIO:
        # Resolved lazily so redirected/patched stderr is honored.
        return self._stream if self._stream is not None else sys.stderr

    def _emit(self, threshold: str, prefix: str, message: str, *, always: bool = False) -> None:
        if always or self.level >= self.LEVELS[threshold]:
            print(f"{prefix} {message}", file=self.stream)

    def error(self, message: str) -> None:
        self._emit("error", "[ERROR]", message)

    def warn(self, message: str, *, always: bool = False) -> None:
        self._emit("warn", "[WARN]", message, always=always)

    def info(self, message: str) -> None:
        self._emit("info", "[INFO]", message)

    def debug(self, message: str) -> None:
        self._emit("debug", "[DEBUG]", message)

    def raw(self, text: str) -> None:
        """Write ``text`` unconditionally, e.g. compiler diagnostics."""
        stream = self.stream
        stream.write(text if text.endswith("\n") else f"{text}\n")
        stream.flush()


__all__ = ["Console"]

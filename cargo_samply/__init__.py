"""cargo-samply: build a cargo target with debug info and profile it with samply."""
from __future__ import annotations

from .src.cli import main

__all__ = ["main"]

"""Entry point for ``python -m cargo_samply``."""
from __future__ import annotations

from .src.cli import main

if __name__ == "__main__":  # pragma: no cover - exercised via the console script
    raise SystemExit(main())

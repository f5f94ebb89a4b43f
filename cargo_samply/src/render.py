"""Dry-run transcript of an :class:`ExecutionPlan`."""
from __future__ import annotations

from typing import List, TextIO
import sys

from cargo_samply.core.command_runner import format_command
from cargo_samply.core.console import Console

from .plan import ExecutionPlan


def render_plan(plan: ExecutionPlan) -> List[str]:
    """Return the build and run command lines, shell-quoted and copy-pasteable."""

    return [
        format_command(plan.build.command),
        format_command(plan.run.command_for(), plan.run.env),
    ]


def print_plan(plan: ExecutionPlan, console: Console, stream: TextIO | None = None) -> None:
    for warning in plan.warnings:
        console.warn(warning, always=True)
    for note in plan.notes:
        console.info(note)
    out = stream if stream is not None else sys.stdout
    for line in render_plan(plan):
        print(line, file=out)


__all__ = ["print_plan", "render_plan"]

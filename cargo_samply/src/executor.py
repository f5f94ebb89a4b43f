"""Build the planned target, locate its artifact and launch it."""
from __future__ import annotations

from pathlib import Path
from typing import Any, Mapping
import json

from cargo_samply.core.command_runner import CommandRunner, format_command
from cargo_samply.core.console import Console

from .errors import BinaryNotFoundError, BuildFailedError, SamplyNotFoundError
from .plan import ExecutionPlan
from .targets import Target, TargetKind

RUNNABLE_KINDS = frozenset(kind.value for kind in TargetKind)


class BuildMessageCollector:
    """Consumes cargo's JSON message stream one line at a time.

    Compiler diagnostics are echoed as soon as they arrive; the executable
    reported for the planned target is remembered.
    """

    def __init__(self, target: Target, console: Console) -> None:
        self.target = target
        self.console = console
        self.executable: Path | None = None

    def __call__(self, line: str) -> None:
        if not line.strip():
            return
        try:
            message = json.loads(line)
        except json.JSONDecodeError:
            self.console.raw(line)
            return
        if not isinstance(message, Mapping):
            self.console.raw(line)
            return

        reason = message.get("reason")
        if reason == "compiler-message":
            rendered = (message.get("message") or {}).get("rendered")
            if rendered:
                self.console.raw(rendered)
        elif reason == "compiler-artifact":
            self._capture_artifact(message)

    def _capture_artifact(self, message: Mapping[str, Any]) -> None:
        target = message.get("target") or {}
        if target.get("name") != self.target.name:
            return
        if not RUNNABLE_KINDS.intersection(target.get("kind") or []):
            return
        executable = message.get("executable")
        if executable:
            self.executable = Path(executable)


def run_build(plan: ExecutionPlan, *, runner: CommandRunner, console: Console) -> Path | None:
    """Run the build; returns the executable cargo reported, if any."""

    collector = BuildMessageCollector(plan.target, console)
    command = plan.build.command
    console.debug(f"running {format_command(command)}")
    result = runner.stream_lines(command, collector, check=False)
    if result.returncode != 0:
        raise BuildFailedError(result.returncode)
    return collector.executable


def final_artifact_path(plan: ExecutionPlan, reported: Path | None, console: Console) -> Path:
    if reported is not None:
        return reported
    if plan.run.reresolution is not None:
        found = plan.run.reresolution.resolve()
        if found is not None:
            console.debug(f"re-resolved artifact to {found}")
            return found
    return plan.run.artifact


def execute_plan(plan: ExecutionPlan, *, runner: CommandRunner, console: Console) -> int:
    """Build, locate and launch; returns the launched process's exit code."""

    for warning in plan.warnings:
        console.warn(warning)
    for note in plan.notes:
        console.info(note)

    reported = run_build(plan, runner=runner, console=console)
    artifact = final_artifact_path(plan, reported, console)
    if not artifact.exists():
        raise BinaryNotFoundError(artifact)

    command = plan.run.command_for(artifact)
    console.debug(f"running {format_command(command, plan.run.env)}")
    try:
        return runner.call(command, env=plan.run.env)
    except FileNotFoundError as exc:
        if plan.run.use_profiler:
            raise SamplyNotFoundError() from exc
        raise


__all__ = [
    "BuildMessageCollector",
    "RUNNABLE_KINDS",
    "execute_plan",
    "final_artifact_path",
    "run_build",
]

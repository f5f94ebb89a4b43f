"""Execution plan construction: what to build and how to launch it."""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, Mapping, Optional, Tuple
import shlex
import shutil

from cargo_samply.core.command_runner import CommandRunner

from .artifacts import ReResolution, guess_artifact_path, profile_directory
from .environment import library_path_overrides
from .errors import InvalidSamplyArgsError, SamplyNotFoundError
from .project import SAMPLY_PROFILE_NAME, ensure_samply_profile, has_profile
from .settings import Settings
from .targets import Target, TargetKind

MESSAGE_FORMAT_FLAG = "--message-format=json-render-diagnostics"
PROFILER_SUBCOMMAND = "record"
PROFILER_SEPARATOR = "--"

Which = Callable[[str], Optional[str]]


@dataclass(frozen=True, slots=True)
class BuildPlan:
    program: str
    args: Tuple[str, ...]

    @property
    def command(self) -> List[str]:
        return [self.program, *self.args]


@dataclass(frozen=True, slots=True)
class RunPlan:
    artifact: Path
    runtime_args: Tuple[str, ...]
    env: Mapping[str, str] = field(default_factory=dict)
    use_profiler: bool = True
    profiler: str = "samply"
    profiler_args: Tuple[str, ...] = ()
    reresolution: ReResolution | None = None

    def command_for(self, artifact: Path | None = None) -> List[str]:
        """The launch argv for ``artifact`` (defaults to the planned path)."""

        path = str(artifact or self.artifact)
        if self.use_profiler:
            return [
                self.profiler,
                PROFILER_SUBCOMMAND,
                *self.profiler_args,
                PROFILER_SEPARATOR,
                path,
                *self.runtime_args,
            ]
        return [path, *self.runtime_args]


@dataclass(frozen=True, slots=True)
class ExecutionPlan:
    target: Target
    build: BuildPlan
    run: RunPlan
    warnings: Tuple[str, ...] = ()
    notes: Tuple[str, ...] = ()


def build_arguments(target: Target, settings: Settings) -> List[str]:
    args = ["build", MESSAGE_FORMAT_FLAG, "--profile", settings.profile]
    if settings.manifest_path:
        args.extend(["--manifest-path", settings.manifest_path])
    if settings.package:
        args.extend(["--package", settings.package])
    args.extend(target.cargo_args)
    if settings.feature_list:
        args.extend(["--features", settings.feature_list])
    if settings.no_default_features:
        args.append("--no-default-features")
    return args


def runtime_arguments(target: Target, settings: Settings) -> List[str]:
    flag = settings.harness_flag
    if target.kind is TargetKind.BENCHMARK and flag is not None:
        return [flag, *settings.trailing_args]
    return list(settings.trailing_args)


def parse_profiler_args(value: str | None) -> List[str]:
    if not value:
        return []
    try:
        return shlex.split(value)
    except ValueError as exc:
        raise InvalidSamplyArgsError(value, str(exc)) from exc


def _prepare_profile(manifest_path: Path, settings: Settings) -> Tuple[List[str], List[str]]:
    """Make sure the profiling profile exists; returns ``(warnings, notes)``."""

    warnings: List[str] = []
    notes: List[str] = []
    if settings.profile != SAMPLY_PROFILE_NAME:
        return warnings, notes
    if settings.no_profile_inject:
        if not has_profile(manifest_path):
            warnings.append(
                f"profile '{SAMPLY_PROFILE_NAME}' is missing from '{manifest_path}' and injection is disabled; "
                "cargo will reject the build unless the profile is defined elsewhere"
            )
        return warnings, notes
    if settings.dry_run:
        if not has_profile(manifest_path):
            notes.append(f"would add '{SAMPLY_PROFILE_NAME}' profile to '{manifest_path}'")
        return warnings, notes
    if ensure_samply_profile(manifest_path):
        notes.append(f"'{SAMPLY_PROFILE_NAME}' profile was added to '{manifest_path}'")
    return warnings, notes


def build_execution_plan(
    target: Target,
    *,
    manifest_path: Path,
    target_directory: Path,
    settings: Settings,
    runner: CommandRunner,
    which: Which = shutil.which,
) -> ExecutionPlan:
    """Compose the build and run steps for ``target``.

    The profiler check happens first so a missing profiler fails before
    anything is modified; it is skipped for dry runs. Unless this is a dry
    run, the ``samply`` profile may be written into ``manifest_path``.
    """

    if settings.use_profiler and not settings.dry_run and which(settings.samply_program) is None:
        raise SamplyNotFoundError()

    warnings, notes = _prepare_profile(manifest_path, settings)

    build = BuildPlan(settings.cargo_program, tuple(build_arguments(target, settings)))

    artifact, reresolution = guess_artifact_path(target_directory, settings.profile, target)

    runtime_args = runtime_arguments(target, settings)

    env: Dict[str, str] = library_path_overrides(
        artifact,
        settings.profile,
        settings,
        runner,
        profile_dir_name=profile_directory(target_directory, settings.profile).name,
    )

    profiler_args = parse_profiler_args(settings.samply_args)

    run = RunPlan(
        artifact=artifact,
        runtime_args=tuple(runtime_args),
        env=env,
        use_profiler=settings.use_profiler,
        profiler=settings.samply_program,
        profiler_args=tuple(profiler_args),
        reresolution=reresolution,
    )
    return ExecutionPlan(
        target=target,
        build=build,
        run=run,
        warnings=tuple(warnings),
        notes=tuple(notes),
    )


__all__ = [
    "BuildPlan",
    "ExecutionPlan",
    "MESSAGE_FORMAT_FLAG",
    "PROFILER_SEPARATOR",
    "PROFILER_SUBCOMMAND",
    "RunPlan",
    "build_arguments",
    "build_execution_plan",
    "parse_profiler_args",
    "runtime_arguments",
]

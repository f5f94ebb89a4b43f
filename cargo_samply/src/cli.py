"""Command line interface for cargo-samply."""
from __future__ import annotations

from argparse import ArgumentParser, Namespace
from pathlib import Path
from typing import Iterable, List, Mapping, Sequence, Tuple
import os
import sys

from cargo_samply.core.command_runner import CommandRunner, SubprocessCommandRunner
from cargo_samply.core.console import Console

from .errors import CargoSamplyError
from .executor import execute_plan
from .plan import build_execution_plan
from .project import locate_project
from .render import print_plan
from .settings import (
    BENCH_FLAG_NONE,
    DEFAULT_BENCH_FLAG,
    DEFAULT_PROFILE,
    Settings,
    build_settings,
    load_defaults,
    resolve_config_path,
)
from .targets import TargetSelectors, ensure_single_selector, resolve_target
from .workspace import WorkspaceMetadata, inspect_workspace

SUBCOMMAND_NAME = "samply"
EXIT_FAILURE = 1
EXIT_INTERRUPTED = 130


def _split_trailing(argv: Sequence[str]) -> Tuple[List[str], List[str]]:
    """Separate our own options from everything after the first ``--``."""

    items = list(argv)
    if "--" in items:
        index = items.index("--")
        return items[:index], items[index + 1:]
    return items, []


def _build_parser() -> ArgumentParser:
    parser = ArgumentParser(
        prog="cargo samply",
        description="Build a cargo target with debug info and profile it with samply",
    )
    parser.add_argument(
        "args",
        nargs="*",
        metavar="TRAILING_ARGUMENTS",
        help="Arguments passed to the profiled program (prefer placing them after --)",
    )
    parser.add_argument("-p", "--profile", help=f"Build with the specified profile (default: {DEFAULT_PROFILE})")
    parser.add_argument("--package", help="Package whose target should be run")
    parser.add_argument("--manifest-path", help="Path to Cargo.toml (skips cargo locate-project)")
    parser.add_argument("-b", "--bin", help="Binary to run")
    parser.add_argument("-e", "--example", help="Example to run")
    parser.add_argument("--bench", help="Benchmark target to run")
    parser.add_argument("--test", help="Test target to run")
    parser.add_argument(
        "-f",
        "--features",
        action="append",
        default=[],
        metavar="FEATURES",
        help="Build features to enable (repeat or separate with commas)",
    )
    parser.add_argument("--no-default-features", action="store_true", help="Disable default features")
    parser.add_argument("-v", "--verbose", action="store_true", help="Print extra output to help debug problems")
    parser.add_argument("-q", "--quiet", action="store_true", help="Suppress all output except errors")
    parser.add_argument("-n", "--no-samply", action="store_true", help="Run the program without samply")
    parser.add_argument("--dry-run", action="store_true", help="Print the commands that would run and exit")
    parser.add_argument(
        "--no-profile-inject",
        action="store_true",
        help="Do not add the samply profile to Cargo.toml",
    )
    parser.add_argument(
        "--bench-flag",
        metavar="FLAG",
        help=(
            f"Flag prepended to benchmark arguments (default: {DEFAULT_BENCH_FLAG}; "
            f"use '{BENCH_FLAG_NONE}' to omit it)"
        ),
    )
    parser.add_argument(
        "--samply-args",
        metavar="ARGS",
        help="Extra arguments for `samply record`, split like a shell command line",
    )
    parser.add_argument("--list-targets", action="store_true", help="List runnable targets and exit")
    parser.add_argument("-c", "--config", metavar="PATH", help="Defaults file (TOML, JSON or YAML)")
    return parser


def _parse_arguments(argv: Iterable[str]) -> Namespace:
    items = list(argv)
    # Invoked by cargo as `cargo-samply samply ...`.
    if items and items[0] == SUBCOMMAND_NAME:
        items = items[1:]
    own, trailing = _split_trailing(items)
    args = _build_parser().parse_args(own)
    args.trailing_args = [*args.args, *trailing]
    return args


def _selectors(args: Namespace) -> TargetSelectors:
    return TargetSelectors(bin=args.bin, example=args.example, bench=args.bench, test=args.test)


def format_target_listing(metadata: WorkspaceMetadata) -> List[str]:
    lines: List[str] = []
    groups = (
        ("Binaries", metadata.binaries),
        ("Examples", metadata.examples),
        ("Benches", metadata.benches),
        ("Tests", metadata.tests),
    )
    for label, names in groups:
        if not names:
            continue
        lines.append(f"{label}:")
        lines.extend(f"  {name}" for name in names)
    if not lines:
        lines.append("No runnable targets found")
    return lines


def _load_settings(args: Namespace, environ: Mapping[str, str], workspace_root: Path | None) -> Settings:
    config_path = resolve_config_path(args.config, environ, workspace_root)
    return build_settings(args, environ, load_defaults(config_path))


def run(
    args: Namespace,
    *,
    console: Console,
    runner: CommandRunner,
    environ: Mapping[str, str],
    cwd: Path,
) -> int:
    selectors = _selectors(args)
    ensure_single_selector(selectors)

    bootstrap = build_settings(args, environ)
    if args.manifest_path:
        manifest_path = Path(args.manifest_path).resolve()
    else:
        manifest_path = locate_project(runner, cargo=bootstrap.cargo_program, cwd=cwd)
    console.debug(f"Cargo.toml: {manifest_path}")

    settings = _load_settings(args, environ, manifest_path.parent)

    metadata = inspect_workspace(
        manifest_path,
        settings.package,
        runner=runner,
        cwd=cwd,
        cargo=settings.cargo_program,
    )

    if args.list_targets:
        for line in format_target_listing(metadata):
            print(line)
        return 0

    target = resolve_target(selectors, metadata)
    console.debug(f"resolved target: {target}")

    plan = build_execution_plan(
        target,
        manifest_path=manifest_path,
        target_directory=metadata.target_directory,
        settings=settings,
        runner=runner,
    )

    if settings.dry_run:
        print_plan(plan, console)
        return 0
    return execute_plan(plan, runner=runner, console=console)


def exit_status(returncode: int) -> int:
    """Shell-style exit status for a child's return code; signals map to 128+N."""

    if returncode < 0:
        return 128 - returncode
    return returncode


def main(argv: Iterable[str] | None = None) -> int:
    args = _parse_arguments(sys.argv[1:] if argv is None else argv)
    console = Console.from_flags(verbose=args.verbose, quiet=args.quiet)
    try:
        code = run(
            args,
            console=console,
            runner=SubprocessCommandRunner(),
            environ=dict(os.environ),
            cwd=Path.cwd(),
        )
    except CargoSamplyError as exc:
        console.error(str(exc))
        return EXIT_FAILURE
    except OSError as exc:
        console.error(f"{exc}")
        return EXIT_FAILURE
    except KeyboardInterrupt:
        return EXIT_INTERRUPTED
    return exit_status(code)


__all__ = ["exit_status", "format_target_listing", "main", "run"]

"""Dynamic library search path overrides for launching Rust binaries."""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Mapping, Sequence
import sys

from cargo_samply.core.command_runner import CommandRunner

from .errors import RustcError
from .settings import Settings


@dataclass(frozen=True, slots=True)
class LibraryPathPlatform:
    env_var_name: str
    separator: str

    @classmethod
    def current(cls, platform: str | None = None) -> "LibraryPathPlatform":
        name = platform or sys.platform
        if name == "darwin":
            return cls("DYLD_LIBRARY_PATH", ":")
        if name.startswith("win"):
            return cls("PATH", ";")
        return cls("LD_LIBRARY_PATH", ":")


def _rustc(runner: CommandRunner, args: Sequence[str]) -> str:
    command = ["rustc", *args]
    try:
        result = runner.run(command, check=False)
    except OSError as exc:
        raise RustcError(f"Failed to run rustc: {exc}") from exc
    if result.returncode != 0:
        raise RustcError(f"{' '.join(command)} failed: {result.stderr.strip()}")
    return result.stdout


def rust_sysroot(runner: CommandRunner) -> Path:
    return Path(_rustc(runner, ["--print", "sysroot"]).strip())


def rustc_host_target(runner: CommandRunner) -> str:
    for line in _rustc(runner, ["-vV"]).splitlines():
        if line.startswith("host: "):
            return line[len("host: "):].strip()
    raise RustcError("Could not find 'host:' line in rustc output")


def infer_target_triple(bin_path: Path, profile_dir_name: str, runner: CommandRunner) -> str:
    """Read ``target/<triple>/<profile>/...`` from the path, else ask rustc for the host."""

    parts = bin_path.parts
    if "target" in parts:
        index = parts.index("target")
        if len(parts) > index + 2 and parts[index + 2] == profile_dir_name:
            return parts[index + 1]
    try:
        return rustc_host_target(runner)
    except RustcError:
        return "unknown"


def _deps_directory(bin_path: Path) -> Path:
    parent = bin_path.parent
    return parent if parent.name == "deps" else parent / "deps"


def compose_search_path(
    extra_paths: Sequence[Path],
    sysroot: Path,
    target_triple: str,
    current_value: str,
    separator: str,
) -> str:
    """Join deps dirs, the sysroot libs and the inherited value without duplicates."""

    parts: List[str] = []
    seen: set[str] = set()

    def push(value: str) -> None:
        if value and value not in seen:
            seen.add(value)
            parts.append(value)

    for path in extra_paths:
        push(str(path))
    push(str(sysroot / "lib" / "rustlib" / target_triple / "lib"))
    push(str(sysroot / "lib"))
    for segment in current_value.split(separator) if current_value else []:
        push(segment.strip())
    return separator.join(parts)


def library_path_overrides(
    bin_path: Path,
    profile: str,
    settings: Settings,
    runner: CommandRunner,
    *,
    profile_dir_name: str | None = None,
    platform: LibraryPathPlatform | None = None,
) -> Dict[str, str]:
    """Environment overrides that let ``bin_path`` find ``libstd`` and dylib dependencies."""

    if settings.no_sysroot_injection:
        return {}
    platform = platform or LibraryPathPlatform.current()
    sysroot = rust_sysroot(runner)
    triple = infer_target_triple(bin_path, profile_dir_name or profile, runner)
    environ: Mapping[str, str] = settings.environ
    value = compose_search_path(
        [_deps_directory(bin_path)],
        sysroot,
        triple,
        environ.get(platform.env_var_name, ""),
        platform.separator,
    )
    return {platform.env_var_name: value}


__all__ = [
    "LibraryPathPlatform",
    "compose_search_path",
    "infer_target_triple",
    "library_path_overrides",
    "rust_sysroot",
    "rustc_host_target",
]

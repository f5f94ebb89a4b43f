"""Where cargo places compiled artifacts for each target kind."""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Tuple
import os

from .targets import Target, TargetKind

EXE_SUFFIX = ".exe" if os.name == "nt" else ""

# Files cargo writes next to test/bench executables in `deps/`.
_NON_EXECUTABLE_SUFFIXES = {
    ".a",
    ".d",
    ".dll",
    ".dylib",
    ".dwp",
    ".exp",
    ".lib",
    ".o",
    ".pdb",
    ".rlib",
    ".rmeta",
    ".so",
}

_PROFILE_DIRECTORIES = {
    "dev": "debug",
    "test": "debug",
    "bench": "release",
}


def profile_directory(target_directory: Path, profile: str) -> Path:
    return target_directory / _PROFILE_DIRECTORIES.get(profile, profile)


def _is_executable(path: Path) -> bool:
    if not path.is_file():
        return False
    if path.suffix.lower() in _NON_EXECUTABLE_SUFFIXES:
        return False
    if os.name == "nt":
        return path.suffix.lower() == ".exe"
    return os.access(path, os.X_OK)


def _name_prefixes(name: str) -> List[str]:
    prefixes = [f"{name}-"]
    mangled = name.replace("-", "_")
    if mangled != name:
        prefixes.append(f"{mangled}-")
    return prefixes


def newest_deps_executable(deps_dir: Path, name: str) -> Path | None:
    """Newest executable in ``deps_dir`` named ``<name>-<hash>`` (hyphens may become underscores)."""

    if not deps_dir.is_dir():
        return None
    prefixes = _name_prefixes(name)
    candidates: Iterable[Path] = (
        entry
        for entry in deps_dir.iterdir()
        if any(entry.name.startswith(prefix) for prefix in prefixes) and _is_executable(entry)
    )
    newest: Path | None = None
    newest_mtime = float("-inf")
    for candidate in candidates:
        mtime = candidate.stat().st_mtime
        if mtime > newest_mtime:
            newest, newest_mtime = candidate, mtime
    return newest


@dataclass(frozen=True, slots=True)
class ReResolution:
    """Context for locating a mangled artifact again once the build has run."""

    target_directory: Path
    profile: str
    target: Target

    def resolve(self) -> Path | None:
        deps_dir = profile_directory(self.target_directory, self.profile) / "deps"
        return newest_deps_executable(deps_dir, self.target.name)


def guess_artifact_path(target_directory: Path, profile: str, target: Target) -> Tuple[Path, ReResolution | None]:
    """Predict the artifact path before building.

    Binaries and examples have fixed names. Bench and test executables carry a
    hash suffix, so the newest match in ``deps/`` is used; when nothing
    matches yet the attempted path is returned together with a
    :class:`ReResolution` for the executor.
    """

    base = profile_directory(target_directory, profile)
    if target.kind is TargetKind.BINARY:
        return base / f"{target.name}{EXE_SUFFIX}", None
    if target.kind is TargetKind.EXAMPLE:
        return base / "examples" / f"{target.name}{EXE_SUFFIX}", None

    pending = ReResolution(target_directory, profile, target)
    found = pending.resolve()
    if found is not None:
        return found, None
    return base / "deps" / target.name, pending


__all__ = [
    "EXE_SUFFIX",
    "ReResolution",
    "guess_artifact_path",
    "newest_deps_executable",
    "profile_directory",
]

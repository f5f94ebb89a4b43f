"""Workspace inspection through ``cargo metadata``."""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Sequence, Tuple
import json

from cargo_samply.core.command_runner import CommandRunner

from .errors import MetadataError, PackageNotFoundError

# Classification order matters: a target lands in the first matching group.
_KIND_GROUPS = (
    ("bin", "binaries"),
    ("example", "examples"),
    ("bench", "benches"),
    ("test", "tests"),
)


@dataclass(frozen=True, slots=True)
class WorkspaceMetadata:
    """Sorted, de-duplicated runnable target names of the relevant packages."""

    binaries: Tuple[str, ...]
    examples: Tuple[str, ...]
    benches: Tuple[str, ...]
    tests: Tuple[str, ...]
    workspace_root: Path
    target_directory: Path
    default_run: str | None = None

    def is_empty(self) -> bool:
        return not (self.binaries or self.examples or self.benches or self.tests)


def query_metadata(manifest_path: Path, runner: CommandRunner, *, cargo: str = "cargo") -> Mapping[str, Any]:
    """Run ``cargo metadata --no-deps`` and decode its JSON document."""

    command = [
        cargo,
        "metadata",
        "--no-deps",
        "--format-version",
        "1",
        "--manifest-path",
        str(manifest_path),
    ]
    try:
        result = runner.run(command, cwd=manifest_path.parent, check=False)
    except OSError as exc:
        raise MetadataError(f"Failed to run cargo metadata: {exc}") from exc
    if result.returncode != 0:
        detail = result.stderr.strip() or f"exit code {result.returncode}"
        raise MetadataError(f"cargo metadata failed: {detail}")
    try:
        data = json.loads(result.stdout)
    except json.JSONDecodeError as exc:
        raise MetadataError(f"cargo metadata returned invalid JSON for {manifest_path}: {exc}") from exc
    if not isinstance(data, Mapping):
        raise MetadataError(f"cargo metadata returned an unexpected document for {manifest_path}")
    return data


def _resolved(path: Path) -> Path:
    try:
        return path.resolve()
    except OSError:
        return path


def find_current_package(packages: Sequence[Mapping[str, Any]], cwd: Path) -> Mapping[str, Any] | None:
    """Return the package whose directory is the longest prefix of ``cwd``."""

    current = _resolved(cwd)
    best: Mapping[str, Any] | None = None
    best_length = -1
    for package in packages:
        manifest = package.get("manifest_path")
        if not manifest:
            continue
        package_dir = _resolved(Path(manifest).parent)
        if not current.is_relative_to(package_dir):
            continue
        length = len(package_dir.parts)
        if length > best_length:
            best = package
            best_length = length
    return best


def _workspace_members(data: Mapping[str, Any]) -> List[Mapping[str, Any]]:
    packages = list(data.get("packages") or [])
    member_ids = data.get("workspace_members")
    if member_ids is None:
        return packages
    by_id = {package.get("id"): package for package in packages}
    return [by_id[member] for member in member_ids if member in by_id]


def _select_packages(
    data: Mapping[str, Any],
    package: str | None,
    cwd: Path,
) -> List[Mapping[str, Any]]:
    packages = list(data.get("packages") or [])
    if package is not None:
        for candidate in packages:
            if candidate.get("name") == package:
                return [candidate]
        raise PackageNotFoundError(package)

    current = find_current_package(packages, cwd)
    if current is not None:
        return [current]
    return _workspace_members(data)


def _root_package(data: Mapping[str, Any], workspace_root: Path) -> Mapping[str, Any] | None:
    root = _resolved(workspace_root)
    for package in data.get("packages") or []:
        manifest = package.get("manifest_path")
        if manifest and _resolved(Path(manifest).parent) == root:
            return package
    return None


def classify_targets(packages: Iterable[Mapping[str, Any]]) -> Dict[str, List[str]]:
    groups: Dict[str, set[str]] = {group: set() for _, group in _KIND_GROUPS}
    for package in packages:
        for target in package.get("targets") or []:
            kinds = target.get("kind") or []
            name = target.get("name")
            if not name:
                continue
            for kind, group in _KIND_GROUPS:
                if kind in kinds:
                    groups[group].add(name)
                    break
    return {group: sorted(names) for group, names in groups.items()}


def inspect_workspace(
    manifest_path: Path,
    package: str | None = None,
    *,
    runner: CommandRunner,
    cwd: Path | None = None,
    cargo: str = "cargo",
) -> WorkspaceMetadata:
    """Enumerate the runnable targets visible from ``cwd``.

    An explicit ``package`` restricts the listing to that package. Otherwise
    the workspace member containing ``cwd`` is used, falling back to every
    workspace member when ``cwd`` is outside all of them.
    """

    data = query_metadata(manifest_path, runner, cargo=cargo)
    workspace_root = Path(data.get("workspace_root") or manifest_path.parent)
    target_directory = Path(data.get("target_directory") or workspace_root / "target")

    selected = _select_packages(data, package, cwd or Path.cwd())
    groups = classify_targets(selected)

    if len(selected) == 1:
        owner: Mapping[str, Any] | None = selected[0]
    else:
        owner = _root_package(data, workspace_root)
    default_run = owner.get("default_run") if owner else None

    return WorkspaceMetadata(
        binaries=tuple(groups["binaries"]),
        examples=tuple(groups["examples"]),
        benches=tuple(groups["benches"]),
        tests=tuple(groups["tests"]),
        workspace_root=workspace_root,
        target_directory=target_directory,
        default_run=default_run or None,
    )


__all__ = [
    "WorkspaceMetadata",
    "classify_targets",
    "find_current_package",
    "inspect_workspace",
    "query_metadata",
]

"""Project location and ``Cargo.toml`` profile management."""
from __future__ import annotations

from pathlib import Path
from typing import Any, Mapping
import tomllib

import tomlkit
from tomlkit.exceptions import TOMLKitError

from cargo_samply.core.command_runner import CommandRunner
from cargo_samply.core.config_loader import load_config_file

from .errors import LocateProjectError, ManifestError

SAMPLY_PROFILE_NAME = "samply"
SAMPLY_PROFILE_SETTINGS = {
    "inherits": "release",
    "debug": True,
}


def locate_project(runner: CommandRunner, *, cargo: str = "cargo", cwd: Path | None = None) -> Path:
    """Return the workspace ``Cargo.toml`` reported by ``cargo locate-project``."""

    command = [cargo, "locate-project", "--workspace", "--message-format", "plain"]
    try:
        result = runner.run(command, cwd=cwd, check=False)
    except OSError as exc:
        raise LocateProjectError(str(exc)) from exc
    if result.returncode != 0:
        raise LocateProjectError(result.stderr.strip())
    location = result.stdout.strip()
    if not location:
        raise LocateProjectError("cargo locate-project returned no path")
    return Path(location)


def read_manifest(path: Path) -> Mapping[str, Any]:
    try:
        return load_config_file(path)
    except (OSError, tomllib.TOMLDecodeError, UnicodeDecodeError, TypeError) as exc:
        raise ManifestError(path, exc) from exc


def has_profile(path: Path, name: str = SAMPLY_PROFILE_NAME) -> bool:
    """Whether the manifest at ``path`` declares ``[profile.<name>]``."""

    profiles = read_manifest(path).get("profile")
    return isinstance(profiles, Mapping) and name in profiles


def ensure_samply_profile(path: Path, name: str = SAMPLY_PROFILE_NAME) -> bool:
    """Add the profiling profile to the manifest unless present.

    Returns ``True`` when the manifest was modified. Existing formatting and
    comments are preserved.
    """

    if has_profile(path, name):
        return False

    try:
        document = tomlkit.parse(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, TOMLKitError) as exc:
        raise ManifestError(path, exc) from exc

    section = tomlkit.table()
    for key, value in SAMPLY_PROFILE_SETTINGS.items():
        section.add(key, value)

    profiles = document.get("profile")
    if profiles is None:
        profiles = tomlkit.table(is_super_table=True)
        profiles.add(name, section)
        document.add("profile", profiles)
    else:
        profiles[name] = section

    try:
        path.write_text(tomlkit.dumps(document), encoding="utf-8")
    except OSError as exc:
        raise ManifestError(path, exc) from exc
    return True


__all__ = [
    "SAMPLY_PROFILE_NAME",
    "SAMPLY_PROFILE_SETTINGS",
    "ensure_samply_profile",
    "has_profile",
    "locate_project",
    "read_manifest",
]

"""Invocation settings assembled once from defaults, a config file, the environment and the CLI."""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Tuple
import shlex
import tomllib

from cargo_samply.core.config_loader import load_config_file, normalize_string_list

from .errors import ConfigError

DEFAULT_PROFILE = "samply"
DEFAULT_BENCH_FLAG = "--bench"
BENCH_FLAG_NONE = "none"

SAMPLY_PATH_ENV = "CARGO_SAMPLY_SAMPLY_PATH"
NO_PROFILE_INJECT_ENV = "CARGO_SAMPLY_NO_PROFILE_INJECT"
NO_SYSROOT_INJECTION_ENV = "CARGO_SAMPLY_NO_SYSROOT_INJECTION"
CONFIG_ENV = "CARGO_SAMPLY_CONFIG"
CARGO_ENV = "CARGO"

CONFIG_FILENAME = ".cargo-samply.toml"
CONFIG_SECTION = "samply"

_CONFIG_KEYS = {
    "profile",
    "samply_args",
    "bench_flag",
    "samply_path",
    "no_profile_inject",
    "no_sysroot_injection",
}


@dataclass(frozen=True, slots=True)
class Settings:
    """Read-only configuration threaded through planning and execution."""

    profile: str = DEFAULT_PROFILE
    package: str | None = None
    manifest_path: str | None = None
    features: Tuple[str, ...] = ()
    no_default_features: bool = False
    no_samply: bool = False
    dry_run: bool = False
    no_profile_inject: bool = False
    no_sysroot_injection: bool = False
    bench_flag: str | None = DEFAULT_BENCH_FLAG
    samply_args: str | None = None
    samply_program: str = "samply"
    cargo_program: str = "cargo"
    trailing_args: Tuple[str, ...] = ()
    environ: Mapping[str, str] = field(default_factory=dict, compare=False, repr=False)

    @property
    def use_profiler(self) -> bool:
        return not self.no_samply

    @property
    def harness_flag(self) -> str | None:
        """Benchmark harness flag to prepend, or ``None`` when disabled."""
        if self.bench_flag is None:
            return None
        flag = self.bench_flag.strip()
        if not flag or flag.lower() == BENCH_FLAG_NONE:
            return None
        return flag

    @property
    def feature_list(self) -> str | None:
        return ",".join(self.features) if self.features else None

    def with_overrides(self, **changes: Any) -> "Settings":
        return replace(self, **changes)


def _env_flag(environ: Mapping[str, str], name: str) -> bool:
    # Presence is what counts, any value enables the switch.
    return name in environ


def split_features(values: Iterable[str] | None) -> Tuple[str, ...]:
    """Split ``--features`` occurrences on commas and whitespace, keeping first-seen order."""

    seen: List[str] = []
    for value in values or ():
        if not value:
            continue
        for part in value.replace(",", " ").split():
            if part not in seen:
                seen.append(part)
    return tuple(seen)


def resolve_config_path(
    explicit: str | Path | None,
    environ: Mapping[str, str],
    workspace_root: Path | None,
) -> Path | None:
    """Pick the defaults file: CLI path, then ``CARGO_SAMPLY_CONFIG``, then the workspace file."""

    if explicit:
        return Path(explicit).expanduser()
    env_value = environ.get(CONFIG_ENV)
    if env_value:
        return Path(env_value).expanduser()
    if workspace_root is not None:
        candidate = workspace_root / CONFIG_FILENAME
        if candidate.is_file():
            return candidate
    return None


def load_defaults(path: Path | None) -> Dict[str, Any]:
    """Load the ``[samply]`` table (or the document root) of a defaults file."""

    if path is None:
        return {}
    try:
        data = load_config_file(path)
    except FileNotFoundError as exc:
        raise ConfigError(f"{path}: configuration file not found") from exc
    except (OSError, ValueError, TypeError, RuntimeError, tomllib.TOMLDecodeError) as exc:
        raise ConfigError(f"{path}: {exc}") from exc

    section = data.get(CONFIG_SECTION, data)
    if not isinstance(section, Mapping):
        raise ConfigError(f"{path}: [{CONFIG_SECTION}] must be a table")

    unknown = sorted(set(section) - _CONFIG_KEYS)
    if unknown:
        raise ConfigError(f"{path}: unknown setting(s): {', '.join(unknown)}")

    defaults: Dict[str, Any] = dict(section)
    if "samply_args" in defaults and not isinstance(defaults["samply_args"], str):
        try:
            parts = normalize_string_list(defaults["samply_args"], field_name="samply_args")
        except TypeError as exc:
            raise ConfigError(f"{path}: {exc}") from exc
        defaults["samply_args"] = shlex.join(parts)
    for key in ("no_profile_inject", "no_sysroot_injection"):
        if key in defaults and not isinstance(defaults[key], bool):
            raise ConfigError(f"{path}: {key} must be a boolean")
    for key in ("profile", "bench_flag", "samply_path"):
        if key in defaults and not isinstance(defaults[key], str):
            raise ConfigError(f"{path}: {key} must be a string")
    return defaults


def build_settings(
    args: Any,
    environ: Mapping[str, str],
    defaults: Mapping[str, Any] | None = None,
) -> Settings:
    """Combine parsed CLI ``args`` with ``environ`` and file ``defaults``.

    Precedence, lowest first: built-in defaults, the defaults file, the
    environment, explicit command line flags.
    """

    defaults = defaults or {}

    manifest_path = getattr(args, "manifest_path", None)
    if manifest_path:
        manifest_path = str(Path(manifest_path).resolve())

    profile = getattr(args, "profile", None) or defaults.get("profile") or DEFAULT_PROFILE

    bench_flag = getattr(args, "bench_flag", None)
    if bench_flag is None:
        bench_flag = defaults.get("bench_flag", DEFAULT_BENCH_FLAG)

    samply_args = getattr(args, "samply_args", None)
    if samply_args is None:
        samply_args = defaults.get("samply_args")

    samply_program = environ.get(SAMPLY_PATH_ENV) or defaults.get("samply_path") or "samply"

    no_profile_inject = (
        bool(getattr(args, "no_profile_inject", False))
        or _env_flag(environ, NO_PROFILE_INJECT_ENV)
        or bool(defaults.get("no_profile_inject", False))
    )
    no_sysroot_injection = _env_flag(environ, NO_SYSROOT_INJECTION_ENV) or bool(
        defaults.get("no_sysroot_injection", False)
    )

    return Settings(
        profile=profile,
        package=getattr(args, "package", None),
        manifest_path=manifest_path or None,
        features=split_features(getattr(args, "features", None)),
        no_default_features=bool(getattr(args, "no_default_features", False)),
        no_samply=bool(getattr(args, "no_samply", False)),
        dry_run=bool(getattr(args, "dry_run", False)),
        no_profile_inject=no_profile_inject,
        no_sysroot_injection=no_sysroot_injection,
        bench_flag=bench_flag,
        samply_args=samply_args,
        samply_program=samply_program,
        cargo_program=environ.get(CARGO_ENV) or "cargo",
        trailing_args=tuple(getattr(args, "trailing_args", None) or ()),
        environ=dict(environ),
    )


__all__ = [
    "BENCH_FLAG_NONE",
    "CONFIG_ENV",
    "CONFIG_FILENAME",
    "DEFAULT_BENCH_FLAG",
    "DEFAULT_PROFILE",
    "NO_PROFILE_INJECT_ENV",
    "NO_SYSROOT_INJECTION_ENV",
    "SAMPLY_PATH_ENV",
    "Settings",
    "build_settings",
    "load_defaults",
    "resolve_config_path",
    "split_features",
]

"""Error taxonomy for cargo-samply.

Every failure that terminates an invocation is a :class:`CargoSamplyError`;
the command line entry point reports the message and exits with status 1.
"""
from __future__ import annotations

from pathlib import Path


class CargoSamplyError(RuntimeError):
    """Base class for errors reported to the user."""


class MultipleTargetFlagsError(CargoSamplyError):
    def __init__(self) -> None:
        super().__init__(
            "Target selection flags (--bin, --example, --bench, --test) are mutually exclusive"
        )


class LocateProjectError(CargoSamplyError):
    def __init__(self, detail: str = "") -> None:
        message = "Failed to locate project"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)
        self.detail = detail


class MetadataError(CargoSamplyError):
    """Raised when ``cargo metadata`` fails or returns unusable output."""


class PackageNotFoundError(CargoSamplyError):
    def __init__(self, name: str) -> None:
        super().__init__(f"Package '{name}' not found in workspace")
        self.name = name


class NoBinaryFoundError(CargoSamplyError):
    def __init__(self) -> None:
        super().__init__("No binary found in 'Cargo.toml'")


class AmbiguousTargetError(CargoSamplyError):
    def __init__(self, suggestions: str) -> None:
        super().__init__(
            "The binary to run can't be determined. Use the `--bin` option to specify a binary, "
            f"or the `default-run` manifest key.{suggestions}"
        )
        self.suggestions = suggestions


class BuildFailedError(CargoSamplyError):
    def __init__(self, returncode: int | None = None) -> None:
        super().__init__("Build failed")
        self.returncode = returncode


class BinaryNotFoundError(CargoSamplyError):
    def __init__(self, path: Path) -> None:
        super().__init__(f"Binary not found: {path}")
        self.path = path


class SamplyNotFoundError(CargoSamplyError):
    def __init__(self) -> None:
        super().__init__("samply is not installed or not in PATH")


class InvalidSamplyArgsError(CargoSamplyError):
    def __init__(self, value: str, reason: str) -> None:
        super().__init__(f"Invalid --samply-args value {value!r}: {reason}")
        self.value = value


class ManifestError(CargoSamplyError):
    """Reading, parsing or writing a ``Cargo.toml`` failed."""

    def __init__(self, path: Path, reason: object) -> None:
        super().__init__(f"{path}: {reason}")
        self.path = path


class RustcError(CargoSamplyError):
    """Querying ``rustc`` for the sysroot or host triple failed."""


class ConfigError(CargoSamplyError):
    """The defaults file is unreadable or contains unknown settings."""


__all__ = [
    "AmbiguousTargetError",
    "BinaryNotFoundError",
    "BuildFailedError",
    "CargoSamplyError",
    "ConfigError",
    "InvalidSamplyArgsError",
    "LocateProjectError",
    "ManifestError",
    "MetadataError",
    "MultipleTargetFlagsError",
    "NoBinaryFoundError",
    "PackageNotFoundError",
    "RustcError",
    "SamplyNotFoundError",
]

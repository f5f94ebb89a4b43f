"""Target selection: which single artifact gets built and launched."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import List, Sequence, Tuple

from .errors import AmbiguousTargetError, MultipleTargetFlagsError, NoBinaryFoundError
from .workspace import WorkspaceMetadata

DEFAULT_PROGRAM_NAME = "cargo samply"


class TargetKind(str, Enum):
    BINARY = "bin"
    EXAMPLE = "example"
    BENCHMARK = "bench"
    TEST = "test"

    @property
    def flag(self) -> str:
        return f"--{self.value}"


@dataclass(frozen=True, slots=True)
class Target:
    kind: TargetKind
    name: str

    @property
    def cargo_args(self) -> List[str]:
        return [self.kind.flag, self.name]

    def __str__(self) -> str:
        return f"{self.kind.value} '{self.name}'"


@dataclass(frozen=True, slots=True)
class TargetSelectors:
    """The user's ``--bin``/``--example``/``--bench``/``--test`` choices."""

    bin: str | None = None
    example: str | None = None
    bench: str | None = None
    test: str | None = None

    def selected(self) -> List[Tuple[TargetKind, str]]:
        pairs = (
            (TargetKind.BINARY, self.bin),
            (TargetKind.EXAMPLE, self.example),
            (TargetKind.BENCHMARK, self.bench),
            (TargetKind.TEST, self.test),
        )
        return [(kind, name) for kind, name in pairs if name is not None]


def ensure_single_selector(selectors: TargetSelectors) -> None:
    if len(selectors.selected()) > 1:
        raise MultipleTargetFlagsError()


def resolve_bench_name(requested: str, metadata: WorkspaceMetadata) -> str:
    """Exact match against declared benches, otherwise ``requested`` unchanged."""

    for candidate in metadata.benches:
        if candidate == requested:
            return candidate
    return requested


def _suggestion_block(lines: List[str], names: Sequence[str], label: str, flag: str, program: str) -> None:
    if not names:
        return
    lines.append(f"\n\nAvailable {label}:")
    for name in names:
        lines.append(f"  {name}: {program} {flag} {name}")


def format_suggestions(metadata: WorkspaceMetadata, program: str = DEFAULT_PROGRAM_NAME) -> str:
    lines: List[str] = []
    _suggestion_block(lines, metadata.binaries, "binaries", TargetKind.BINARY.flag, program)
    _suggestion_block(lines, metadata.examples, "examples", TargetKind.EXAMPLE.flag, program)
    return "\n".join(lines)


def guess_default_binary(metadata: WorkspaceMetadata, program: str = DEFAULT_PROGRAM_NAME) -> str:
    """Pick ``default-run``, else the only binary; anything else is an error."""

    if metadata.default_run:
        return metadata.default_run
    if not metadata.binaries:
        raise NoBinaryFoundError()
    if len(metadata.binaries) == 1:
        return metadata.binaries[0]
    raise AmbiguousTargetError(format_suggestions(metadata, program))


def resolve_target(
    selectors: TargetSelectors,
    metadata: WorkspaceMetadata,
    *,
    program: str = DEFAULT_PROGRAM_NAME,
) -> Target:
    """Turn the selector flags into exactly one :class:`Target`.

    Explicitly named targets are not checked against ``metadata``; an
    unknown name is left for cargo to report during the build.
    """

    chosen = selectors.selected()
    if len(chosen) > 1:
        raise MultipleTargetFlagsError()
    if chosen:
        kind, name = chosen[0]
        if kind is TargetKind.BENCHMARK:
            name = resolve_bench_name(name, metadata)
        return Target(kind, name)
    return Target(TargetKind.BINARY, guess_default_binary(metadata, program))


__all__ = [
    "DEFAULT_PROGRAM_NAME",
    "Target",
    "TargetKind",
    "TargetSelectors",
    "ensure_single_selector",
    "format_suggestions",
    "guess_default_binary",
    "resolve_bench_name",
    "resolve_target",
]

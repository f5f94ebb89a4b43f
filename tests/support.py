"""Test doubles shared by the cargo-samply test modules."""
from __future__ import annotations

from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Mapping, Sequence, Tuple
import json

from cargo_samply.core.command_runner import CommandResult, CommandRunner

Response = Tuple[int, str, str]


class ScriptedRunner(CommandRunner):
    """Answers commands from canned responses keyed by their leading words."""

    def __init__(
        self,
        responses: Mapping[Tuple[str, ...], Response] | None = None,
        *,
        build_lines: Iterable[str] = (),
        build_returncode: int = 0,
        on_build: Callable[[], None] | None = None,
        call_returncode: int = 0,
        call_error: BaseException | None = None,
    ) -> None:
        self.responses: Dict[Tuple[str, ...], Response] = dict(responses or {})
        self.build_lines = list(build_lines)
        self.build_returncode = build_returncode
        self.on_build = on_build
        self.call_returncode = call_returncode
        self.call_error = call_error
        self.calls: List[Tuple[str, List[str], Mapping[str, str] | None]] = []

    def _lookup(self, command: Sequence[str]) -> Response:
        words = tuple(str(part) for part in command)
        for prefix in sorted(self.responses, key=len, reverse=True):
            if words[: len(prefix)] == prefix:
                return self.responses[prefix]
        raise FileNotFoundError(2, "No such file or directory", words[0])

    def run(self, command, *, cwd=None, env=None, check=True) -> CommandResult:
        self.calls.append(("run", [str(part) for part in command], env))
        returncode, stdout, stderr = self._lookup(command)
        return CommandResult(command=command, returncode=returncode, stdout=stdout, stderr=stderr)

    def stream_lines(self, command, on_line, *, cwd=None, env=None, check=True) -> CommandResult:
        self.calls.append(("stream", [str(part) for part in command], env))
        if self.on_build is not None:
            self.on_build()
        for line in self.build_lines:
            on_line(line)
        return CommandResult(
            command=command, returncode=self.build_returncode, stdout="", stderr="", streamed=True
        )

    def call(self, command, *, cwd=None, env=None) -> int:
        self.calls.append(("call", [str(part) for part in command], env))
        if self.call_error is not None:
            raise self.call_error
        return self.call_returncode

    def commands(self, kind: str | None = None) -> List[List[str]]:
        return [command for recorded, command, _ in self.calls if kind is None or recorded == kind]


def package(
    name: str,
    directory: Path,
    targets: Iterable[Tuple[str, str]],
    *,
    default_run: str | None = None,
) -> Dict[str, Any]:
    return {
        "name": name,
        "id": f"path+file://{directory}#{name}@0.1.0",
        "manifest_path": str(directory / "Cargo.toml"),
        "default_run": default_run,
        "targets": [{"name": target, "kind": [kind]} for kind, target in targets],
    }


def metadata_document(
    root: Path,
    packages: Sequence[Mapping[str, Any]],
    *,
    members: Sequence[str] | None = None,
    target_directory: Path | None = None,
) -> str:
    return json.dumps(
        {
            "packages": list(packages),
            "workspace_members": list(members) if members is not None else [p["id"] for p in packages],
            "workspace_root": str(root),
            "target_directory": str(target_directory or root / "target"),
            "version": 1,
        }
    )


def rustc_responses(sysroot: str = "/opt/rust", host: str = "x86_64-unknown-linux-gnu") -> Dict[Tuple[str, ...], Response]:
    return {
        ("rustc", "--print", "sysroot"): (0, f"{sysroot}\n", ""),
        ("rustc", "-vV"): (0, f"rustc 1.80.0\nhost: {host}\nrelease: 1.80.0\n", ""),
    }

from __future__ import annotations

from io import StringIO
from pathlib import Path
import json
import os
import tempfile
import unittest

from cargo_samply.core.console import Console

from cargo_samply.src.artifacts import ReResolution
from cargo_samply.src.errors import BinaryNotFoundError, BuildFailedError, SamplyNotFoundError
from cargo_samply.src.executor import BuildMessageCollector, execute_plan
from cargo_samply.src.plan import BuildPlan, ExecutionPlan, RunPlan
from cargo_samply.src.targets import Target, TargetKind

from tests.support import ScriptedRunner

APP = Target(TargetKind.BINARY, "app")


def _artifact_message(name: str, kind: str, executable: str | None) -> str:
    return json.dumps(
        {
            "reason": "compiler-artifact",
            "target": {"name": name, "kind": [kind]},
            "executable": executable,
        }
    )


def _diagnostic(rendered: str) -> str:
    return json.dumps({"reason": "compiler-message", "message": {"rendered": rendered}})


class BuildMessageCollectorTests(unittest.TestCase):
    def setUp(self) -> None:
        self.stream = StringIO()
        self.collector = BuildMessageCollector(APP, Console("info", stream=self.stream))

    def test_diagnostics_are_echoed_in_order(self) -> None:
        self.collector(_diagnostic("warning: unused variable `x`\n"))
        self.collector("plain text line")
        self.collector(_diagnostic("warning: dead code\n"))
        self.assertEqual(
            self.stream.getvalue(),
            "warning: unused variable `x`\nplain text line\nwarning: dead code\n",
        )

    def test_matching_runnable_artifact_is_captured(self) -> None:
        self.collector(_artifact_message("app", "lib", None))
        self.collector(_artifact_message("other", "bin", "/t/other"))
        self.assertIsNone(self.collector.executable)
        self.collector(_artifact_message("app", "bin", "/t/samply/app"))
        self.assertEqual(self.collector.executable, Path("/t/samply/app"))

    def test_build_finished_and_unknown_messages_are_ignored(self) -> None:
        self.collector(json.dumps({"reason": "build-finished", "success": True}))
        self.collector("")
        self.assertEqual(self.stream.getvalue(), "")


class ExecutePlanTests(unittest.TestCase):
    def setUp(self) -> None:
        self.temp_dir = tempfile.TemporaryDirectory()
        self.root = Path(self.temp_dir.name)
        self.binary = self.root / "target" / "samply" / "app"
        self.console = Console("none", stream=StringIO())

    def tearDown(self) -> None:
        self.temp_dir.cleanup()

    def _plan(self, target: Target = APP, **run_overrides) -> ExecutionPlan:
        run_values = dict(
            artifact=self.binary,
            runtime_args=("--flag",),
            env={"LD_LIBRARY_PATH": "/opt/rust/lib"},
        )
        run_values.update(run_overrides)
        return ExecutionPlan(
            target=target,
            build=BuildPlan("cargo", ("build", "--profile", "samply", *target.cargo_args)),
            run=RunPlan(**run_values),
        )

    def _create_binary(self) -> None:
        self.binary.parent.mkdir(parents=True, exist_ok=True)
        self.binary.write_text("")

    def test_profiled_run_uses_guessed_path(self) -> None:
        runner = ScriptedRunner(on_build=self._create_binary, call_returncode=0)
        self.assertEqual(execute_plan(self._plan(), runner=runner, console=self.console), 0)
        self.assertEqual(runner.commands("stream"), [["cargo", "build", "--profile", "samply", "--bin", "app"]])
        self.assertEqual(
            runner.commands("call"),
            [["samply", "record", "--", str(self.binary), "--flag"]],
        )
        self.assertEqual(runner.calls[-1][2], {"LD_LIBRARY_PATH": "/opt/rust/lib"})

    def test_reported_executable_overrides_guess(self) -> None:
        actual = self.root / "elsewhere" / "app"
        actual.parent.mkdir(parents=True)
        actual.write_text("")
        runner = ScriptedRunner(build_lines=[_artifact_message("app", "bin", str(actual))])
        execute_plan(self._plan(use_profiler=False), runner=runner, console=self.console)
        self.assertEqual(runner.commands("call"), [[str(actual), "--flag"]])

    def test_exit_code_is_propagated(self) -> None:
        runner = ScriptedRunner(on_build=self._create_binary, call_returncode=42)
        self.assertEqual(execute_plan(self._plan(), runner=runner, console=self.console), 42)

    def test_build_failure_stops_before_run(self) -> None:
        runner = ScriptedRunner(build_returncode=101)
        with self.assertRaises(BuildFailedError):
            execute_plan(self._plan(), runner=runner, console=self.console)
        self.assertEqual(runner.commands("call"), [])

    def test_missing_binary_is_reported_with_path(self) -> None:
        runner = ScriptedRunner()
        with self.assertRaises(BinaryNotFoundError) as ctx:
            execute_plan(self._plan(), runner=runner, console=self.console)
        self.assertEqual(ctx.exception.path, self.binary)
        self.assertEqual(runner.commands("call"), [])

    @unittest.skipIf(os.name == "nt", "relies on POSIX executable bits")
    def test_reresolution_finds_bench_built_during_build(self) -> None:
        target = Target(TargetKind.BENCHMARK, "throughput")
        target_dir = self.root / "target"
        built = target_dir / "samply" / "deps" / "throughput-abc123"

        def build() -> None:
            built.parent.mkdir(parents=True)
            built.write_text("")
            built.chmod(0o755)

        plan = self._plan(
            target,
            artifact=target_dir / "samply" / "deps" / "throughput",
            runtime_args=("--bench",),
            reresolution=ReResolution(target_dir, "samply", target),
        )
        runner = ScriptedRunner(on_build=build)
        execute_plan(plan, runner=runner, console=self.console)
        self.assertEqual(
            runner.commands("call"),
            [["samply", "record", "--", str(built), "--bench"]],
        )

    def test_profiler_missing_at_spawn_is_translated(self) -> None:
        runner = ScriptedRunner(on_build=self._create_binary, call_error=FileNotFoundError(2, "missing", "samply"))
        with self.assertRaises(SamplyNotFoundError):
            execute_plan(self._plan(), runner=runner, console=self.console)

    def test_direct_spawn_errors_are_not_translated(self) -> None:
        runner = ScriptedRunner(on_build=self._create_binary, call_error=FileNotFoundError(2, "missing", "app"))
        with self.assertRaises(FileNotFoundError):
            execute_plan(self._plan(use_profiler=False), runner=runner, console=self.console)

    def test_warnings_are_printed_before_the_build(self) -> None:
        stream = StringIO()
        console = Console("info", stream=stream)
        events = []
        runner = ScriptedRunner(on_build=lambda: events.append(stream.getvalue()), build_returncode=1)
        plan = ExecutionPlan(
            target=APP,
            build=BuildPlan("cargo", ("build",)),
            run=RunPlan(artifact=self.binary, runtime_args=()),
            warnings=("profile missing",),
        )
        with self.assertRaises(BuildFailedError):
            execute_plan(plan, runner=runner, console=console)
        self.assertIn("[WARN] profile missing", events[0])


if __name__ == "__main__":
    unittest.main()

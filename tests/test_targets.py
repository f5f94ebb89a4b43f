from __future__ import annotations

from itertools import combinations
from pathlib import Path
import unittest

from cargo_samply.src.errors import AmbiguousTargetError, MultipleTargetFlagsError, NoBinaryFoundError
from cargo_samply.src.targets import (
    Target,
    TargetKind,
    TargetSelectors,
    ensure_single_selector,
    resolve_bench_name,
    resolve_target,
)
from cargo_samply.src.workspace import WorkspaceMetadata


def _metadata(binaries=(), examples=(), benches=(), tests=(), default_run=None) -> WorkspaceMetadata:
    return WorkspaceMetadata(
        binaries=tuple(binaries),
        examples=tuple(examples),
        benches=tuple(benches),
        tests=tuple(tests),
        workspace_root=Path("/work"),
        target_directory=Path("/work/target"),
        default_run=default_run,
    )


class SelectorConflictTests(unittest.TestCase):
    def test_every_combination_of_two_or_more_conflicts(self) -> None:
        names = ["bin", "example", "bench", "test"]
        for size in range(2, 5):
            for chosen in combinations(names, size):
                selectors = TargetSelectors(**{name: "x" for name in chosen})
                with self.subTest(chosen=chosen):
                    with self.assertRaises(MultipleTargetFlagsError):
                        ensure_single_selector(selectors)
                    with self.assertRaises(MultipleTargetFlagsError):
                        resolve_target(selectors, _metadata(binaries=["x"]))

    def test_single_selector_is_accepted(self) -> None:
        ensure_single_selector(TargetSelectors(test="integration"))
        ensure_single_selector(TargetSelectors())


class ResolveTargetTests(unittest.TestCase):
    def test_explicit_selectors_map_to_kinds(self) -> None:
        metadata = _metadata()
        self.assertEqual(resolve_target(TargetSelectors(bin="app"), metadata), Target(TargetKind.BINARY, "app"))
        self.assertEqual(
            resolve_target(TargetSelectors(example="demo"), metadata), Target(TargetKind.EXAMPLE, "demo")
        )
        self.assertEqual(resolve_target(TargetSelectors(test="it"), metadata), Target(TargetKind.TEST, "it"))

    def test_explicit_names_are_not_validated(self) -> None:
        target = resolve_target(TargetSelectors(bin="missing"), _metadata(binaries=["app"]))
        self.assertEqual(target.name, "missing")

    def test_single_binary_is_default_regardless_of_examples(self) -> None:
        for examples in ([], ["demo"], ["a", "b", "c"]):
            with self.subTest(examples=examples):
                target = resolve_target(TargetSelectors(), _metadata(binaries=["app"], examples=examples))
                self.assertEqual(target, Target(TargetKind.BINARY, "app"))
                self.assertEqual(target.cargo_args, ["--bin", "app"])

    def test_default_run_wins(self) -> None:
        target = resolve_target(TargetSelectors(), _metadata(binaries=["a", "b", "c"], default_run="b"))
        self.assertEqual(target.name, "b")

    def test_no_binaries(self) -> None:
        with self.assertRaises(NoBinaryFoundError):
            resolve_target(TargetSelectors(), _metadata(examples=["demo"]))

    def test_ambiguous_binaries_list_every_candidate(self) -> None:
        metadata = _metadata(binaries=["alpha", "beta"], examples=["demo", "tour"])
        with self.assertRaises(AmbiguousTargetError) as ctx:
            resolve_target(TargetSelectors(), metadata)
        message = str(ctx.exception)
        self.assertIn("Use the `--bin` option", message)
        for line in (
            "  alpha: cargo samply --bin alpha",
            "  beta: cargo samply --bin beta",
            "  demo: cargo samply --example demo",
            "  tour: cargo samply --example tour",
        ):
            self.assertIn(line, message)
        self.assertLess(message.index("Available binaries:"), message.index("Available examples:"))
        self.assertLess(message.index("alpha:"), message.index("beta:"))


class BenchNameTests(unittest.TestCase):
    def test_exact_match_resolves(self) -> None:
        metadata = _metadata(benches=["throughput", "latency"])
        self.assertEqual(resolve_bench_name("throughput", metadata), "throughput")
        target = resolve_target(TargetSelectors(bench="latency"), metadata)
        self.assertEqual(target, Target(TargetKind.BENCHMARK, "latency"))

    def test_unknown_name_passes_through(self) -> None:
        metadata = _metadata(benches=["gather_rows_bench"])
        self.assertEqual(resolve_bench_name("gather_rows", metadata), "gather_rows")
        target = resolve_target(TargetSelectors(bench="gather_rows"), metadata)
        self.assertEqual(target.cargo_args, ["--bench", "gather_rows"])


if __name__ == "__main__":
    unittest.main()

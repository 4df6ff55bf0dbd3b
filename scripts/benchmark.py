#!/usr/bin/env python3
"""
ValueStream Performance Benchmarks

Scales each workload until a single run exceeds the time limit and reports
the throughput reached at that point, using rich for the output.

Usage:
    python scripts/benchmark.py            # Run all benchmarks
    python scripts/benchmark.py --config   # Show current benchmark configuration
    python scripts/benchmark.py --quiet    # Only show the final table

Configuration:
    Adjust the constants at the top of the file to change benchmark parameters.
"""

import argparse
import sys
import time
from typing import Any, Callable, Dict

# Add the project root to the Python path
sys.path.insert(0, ".")

from rich.align import Align
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from valuestream import Node

# Configuration constants - adjust these to change benchmark behavior
TIME_LIMIT_SECONDS = 1.0  # Maximum time allowed per operation
STARTING_N = 10  # Starting workload size
SCALE_FACTOR = 1.5  # How much to multiply N by each iteration
CASCADE_DEPTH = 50  # Composite levels above the leaf in the cascade benchmark


def _create_deep_tree(depth: int) -> Node:
    """Create a chain of composites `depth` levels deep ending in a scalar leaf."""
    root = Node("root")
    current = root
    for level in range(depth):
        name = f"level{level}"
        current.add_child(name)
        current = current.child(name)
    current.add_child("leaf", 0, "number")
    return root


def _create_wide_node(width: int) -> Node:
    """Create one composite with `width` numeric children and a batch action."""

    def bump_all(node, amount):
        for name in node.children:
            node.set(name, node.get(name) + amount)

    node = Node("wide")
    for i in range(width):
        node.add_child(f"c{i}", 0, "number")
    return node.define_action("bumpAll", bump_all, transactional=True)


class ValueStreamBenchmark:
    """Rich-formatted display for ValueStream benchmarking."""

    def __init__(self, quiet: bool = False):
        self.console = Console()
        self.quiet = quiet
        self.results: Dict[str, Dict[str, Any]] = {}

    def run_benchmarks(self):
        """Run all benchmarks and display results with rich formatting."""
        start_time = time.time()
        self._display_header()

        self._run_creation_benchmark()
        self._run_write_benchmark()
        self._run_cascade_benchmark()
        self._run_transaction_benchmark()

        self._display_final_results(start_time)

    def _display_header(self):
        header = Panel(
            Align.center("ValueStream Performance Benchmark Suite"),
            title="ValueStream Benchmarks",
            border_style="blue",
        )
        self.console.print(header)
        self.console.print()

    def _display_benchmark_progress(self, name: str, result: Dict[str, Any]):
        if self.quiet:
            return
        self.console.print(
            f"[green]✓[/green] {name}: {result['operations_per_second']:,.0f} ops/sec "
            f"({result['max_n']} items)"
        )

    def _display_final_results(self, start_time: float):
        elapsed = time.time() - start_time

        table = Table(title="Final Benchmark Results")
        table.add_column("Benchmark", style="cyan", no_wrap=True)
        table.add_column("Max Workload", style="magenta")
        table.add_column("Performance", style="green", justify="right")
        table.add_column("Time", style="yellow", justify="right")

        labels = {
            "creation": "Node Creation",
            "write": "Scalar Writes",
            "cascade": "Deep Cascade",
            "transaction": "Transactional Coalescing",
        }
        for key, label in labels.items():
            result = self.results.get(key)
            if result is None:
                continue
            table.add_row(
                label,
                f"{result['max_n']:,}",
                f"{result['operations_per_second']:,.0f} ops/sec",
                f"{result['operation_time'] * 1000:.1f} ms",
            )

        self.console.print()
        self.console.print(table)
        self.console.print(f"\n[dim]Completed in {elapsed:.1f}s[/dim]")

    def _run_creation_benchmark(self):
        """Create N composite nodes with two typed children each."""
        if not self.quiet:
            self.console.print("[yellow]Running Node Creation benchmark...[/yellow]")

        def operation(n):
            return [
                Node(f"n{i}").add_child("x", 0, "number").add_child("y", 0, "number")
                for i in range(n)
            ]

        result = self._run_adaptive_benchmark(operation, len)
        self.results["creation"] = result
        self._display_benchmark_progress("Node Creation", result)

    def _run_write_benchmark(self):
        """Write N distinct values to a subscribed scalar node."""
        if not self.quiet:
            self.console.print("[yellow]Running Scalar Writes benchmark...[/yellow]")

        def operation(n):
            node = Node("counter", 0, "number")
            received = []
            node.subscribe(received.append)
            for i in range(1, n + 1):
                node.set(i)
            assert received[-1] == n
            return n

        result = self._run_adaptive_benchmark(operation, lambda x: x)
        self.results["write"] = result
        self._display_benchmark_progress("Scalar Writes", result)

    def _run_cascade_benchmark(self):
        """Propagate N leaf writes through CASCADE_DEPTH levels of composites."""
        if not self.quiet:
            self.console.print("[yellow]Running Deep Cascade benchmark...[/yellow]")

        def operation(n):
            root = _create_deep_tree(CASCADE_DEPTH)
            leaf_parent = root
            for level in range(CASCADE_DEPTH):
                leaf_parent = leaf_parent.child(f"level{level}")
            received = []
            root.changes.subscribe(received.append)

            for i in range(1, n + 1):
                leaf_parent.set("leaf", i)

            assert received[-1]["value"] == n
            return n

        result = self._run_adaptive_benchmark(operation, lambda x: x)
        self.results["cascade"] = result
        self._display_benchmark_progress("Deep Cascade", result)

    def _run_transaction_benchmark(self):
        """Write N children inside one transaction; expect a single emission."""
        if not self.quiet:
            self.console.print(
                "[yellow]Running Transactional Coalescing benchmark...[/yellow]"
            )

        def operation(n):
            node = _create_wide_node(n)
            received = []
            node.subscribe(received.append)

            node.do.bumpAll(1)

            assert len(received) == 2
            return n

        result = self._run_adaptive_benchmark(operation, lambda x: x)
        self.results["transaction"] = result
        self._display_benchmark_progress("Transactional Coalescing", result)

    def _run_adaptive_benchmark(
        self, operation_func: Callable[[int], Any], operations_performed: Callable[[Any], int]
    ) -> Dict[str, Any]:
        """Run an adaptive benchmark that scales workload until time limit is reached."""
        n = STARTING_N

        while True:
            start_time = time.time()
            output = operation_func(n)
            operation_time = time.time() - start_time

            current_result = {
                "max_n": n,
                "operation_time": operation_time,
                "operations_per_second": operations_performed(output)
                / max(operation_time, 1e-9),
            }

            if operation_time >= TIME_LIMIT_SECONDS:
                return current_result
            n = int(n * SCALE_FACTOR)


def print_config():
    """Print the current benchmark configuration."""
    print("ValueStream Benchmark Configuration:")
    print(f"  TIME_LIMIT_SECONDS: {TIME_LIMIT_SECONDS}")
    print(f"  STARTING_N: {STARTING_N}")
    print(f"  SCALE_FACTOR: {SCALE_FACTOR}")


def main():
    """Main entry point for the benchmark script."""
    parser = argparse.ArgumentParser(description="ValueStream Performance Benchmarks")
    parser.add_argument(
        "--config", action="store_true", help="Show current benchmark configuration"
    )
    parser.add_argument(
        "--quiet",
        action="store_true",
        help="Suppress progress output, show only final results",
    )

    args = parser.parse_args()

    if args.config:
        print_config()
        return

    if not args.quiet:
        print_config()
        print()

    ValueStreamBenchmark(quiet=args.quiet).run_benchmarks()


if __name__ == "__main__":
    main()

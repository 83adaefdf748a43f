"""Benchmarks for bounded Newton-Raphson root finding.

Compares a Python loop of scalar solves against a single batched solve,
and shows how the batched solve scales with batch size.
"""

from __future__ import annotations

import time
from typing import Any, Callable

import numpy as np
import torch

from torchnewton.root_finding import find_root, try_find_root


def benchmark(
    func: Callable,
    *args: Any,
    warmup: int = 3,
    iterations: int = 10,
    **kwargs: Any,
) -> dict[str, float]:
    """Run a simple benchmark on a function.

    Parameters
    ----------
    func : callable
        Function to benchmark.
    *args : Any
        Positional arguments to pass to func.
    warmup : int, optional
        Number of warmup iterations. Default is 3.
    iterations : int, optional
        Number of timed iterations. Default is 10.
    **kwargs : Any
        Keyword arguments to pass to func.

    Returns
    -------
    dict
        Dictionary with timing statistics ('mean', 'std', 'min', 'max')
        in seconds.
    """
    for _ in range(warmup):
        func(*args, **kwargs)

    times = []
    for _ in range(iterations):
        start = time.perf_counter()
        func(*args, **kwargs)
        if torch.cuda.is_available():
            torch.cuda.synchronize()
        times.append(time.perf_counter() - start)

    return {
        "mean": np.mean(times),
        "std": np.std(times),
        "min": np.min(times),
        "max": np.max(times),
    }


def format_time(seconds: float) -> str:
    """Format time in appropriate units."""
    if seconds < 1e-6:
        return f"{seconds * 1e9:.3f}ns"
    elif seconds < 1e-3:
        return f"{seconds * 1e6:.3f}us"
    elif seconds < 1:
        return f"{seconds * 1e3:.3f}ms"
    else:
        return f"{seconds:.3f}s"


def print_comparison(name: str, times: dict[str, dict[str, float]]) -> None:
    """Print benchmark comparison results for multiple methods."""
    print(f"\n{name}")
    print("-" * len(name))

    fastest_name = min(times.keys(), key=lambda k: times[k]["mean"])
    fastest_time = times[fastest_name]["mean"]

    for method_name, t in times.items():
        slowdown = t["mean"] / fastest_time
        suffix = f" ({slowdown:.2f}x slower)" if slowdown > 1.01 else " (fastest)"
        print(
            f"  {method_name}: {format_time(t['mean'])} +/- {format_time(t['std'])}{suffix}"
        )


def _scalar_loop(values: list[float]) -> list[float]:
    return [
        try_find_root(
            lambda x, c=c: x * x - c, lambda x: 2 * x, 1.0, 0.0, 100.0
        )[0]
        for c in values
    ]


def _batched(values: torch.Tensor) -> torch.Tensor:
    lower = torch.zeros_like(values)
    upper = torch.full_like(values, 100.0)
    return find_root(lambda x: x * x - values, lambda x: 2 * x, lower, upper)


class BenchNewton:
    """Benchmark suite for Newton root finding."""

    def __init__(self, warmup: int = 3, iterations: int = 10):
        self.warmup = warmup
        self.iterations = iterations

    def bench_scalar_vs_batched(self, batch_size: int = 256) -> None:
        values = torch.linspace(1.0, 50.0, batch_size, dtype=torch.float64)
        times = {
            "scalar loop": benchmark(
                _scalar_loop,
                values.tolist(),
                warmup=self.warmup,
                iterations=self.iterations,
            ),
            "batched": benchmark(
                _batched,
                values,
                warmup=self.warmup,
                iterations=self.iterations,
            ),
        }
        print_comparison(f"sqrt via Newton (n={batch_size})", times)

    def run_scaling(self) -> None:
        print("=" * 60)
        print("SCALING BENCHMARKS")
        print("=" * 60)

        for batch_size in [1, 64, 4096, 262144]:
            values = torch.linspace(1.0, 50.0, batch_size, dtype=torch.float64)
            t = benchmark(
                _batched,
                values,
                warmup=self.warmup,
                iterations=self.iterations,
            )
            print(f"  batch={batch_size}: {format_time(t['mean'])}")


if __name__ == "__main__":
    bench = BenchNewton(warmup=3, iterations=10)
    bench.bench_scalar_vs_batched()
    print("\n")
    bench.run_scaling()

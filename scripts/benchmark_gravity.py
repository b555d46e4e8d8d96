#!/usr/bin/env python3
"""
Benchmark Barnes-Hut gravity against direct summation.

Usage:
    uv run python scripts/benchmark_gravity.py [--sizes N,...] [--theta T] [--workers W]

Examples:
    uv run python scripts/benchmark_gravity.py
    uv run python scripts/benchmark_gravity.py --sizes 100,1000,5000
    uv run python scripts/benchmark_gravity.py --theta 0.8 --workers 8 --output results.json
"""

from __future__ import annotations

import argparse
import json
import math
import random
import time
from typing import Any

from barnes_hut import (
    Body,
    GravitySolver,
    direct_accelerations,
    max_relative_error,
    mean_relative_error,
)


def generate_cluster(n: int, seed: int = 42, radius: float = 400.0) -> list[Body]:
    """Generate n bodies spread uniformly inside a sphere."""
    rng = random.Random(seed)
    bodies = []
    for i in range(n):
        r = radius * rng.random() ** (1.0 / 3.0)
        cos_t = rng.uniform(-1.0, 1.0)
        sin_t = math.sqrt(1.0 - cos_t * cos_t)
        phi = rng.uniform(0.0, 2.0 * math.pi)
        position = (r * sin_t * math.cos(phi), r * sin_t * math.sin(phi), r * cos_t)
        mass = rng.uniform(2000.0, 20000.0)
        bodies.append(Body(i, position, mass, 0.0))
    return bodies


def benchmark_size(
    n: int,
    theta: float,
    workers: int | None,
    check_direct: bool,
) -> dict[str, Any]:
    """
    Time one Barnes-Hut step (and optionally the direct reference).

    Returns:
        Dict with timing and accuracy info
    """
    bodies = generate_cluster(n)
    solver = GravitySolver(gravitational_constant=1.0, theta=theta, max_workers=workers)

    start = time.perf_counter()
    approx = solver.step(bodies)
    tree_time = time.perf_counter() - start

    result: dict[str, Any] = {"num_bodies": n, "theta": theta, "tree_seconds": tree_time}

    if check_direct:
        start = time.perf_counter()
        exact = direct_accelerations(bodies, 1.0)
        result["direct_seconds"] = time.perf_counter() - start
        result["max_relative_error"] = max_relative_error(approx, exact)
        result["mean_relative_error"] = mean_relative_error(approx, exact)

    return result


def run_benchmarks(
    sizes: list[int],
    theta: float = 0.5,
    workers: int | None = None,
    direct_limit: int = 3000,
) -> list[dict[str, Any]]:
    """Run benchmarks for every size."""
    print(f"\nBarnes-Hut (theta={theta}) vs direct summation")
    print("=" * 80)
    print(f"{'Bodies':>8s}{'Tree (s)':>12s}{'Direct (s)':>12s}{'Max err':>12s}{'Mean err':>12s}")
    print("-" * 80)

    results = []
    for n in sizes:
        # Direct summation needs O(n^2) memory
        check_direct = n <= direct_limit
        result = benchmark_size(n, theta, workers, check_direct)
        results.append(result)

        if check_direct:
            print(
                f"{n:>8d}{result['tree_seconds']:>12.4f}{result['direct_seconds']:>12.4f}"
                f"{result['max_relative_error']:>12.2e}{result['mean_relative_error']:>12.2e}"
            )
        else:
            print(f"{n:>8d}{result['tree_seconds']:>12.4f}{'--':>12s}{'--':>12s}{'--':>12s}")

    return results


def main():
    parser = argparse.ArgumentParser(description="Benchmark Barnes-Hut gravity")
    parser.add_argument("--sizes", default="100,500,1000,2000", help="Comma-separated body counts")
    parser.add_argument("--theta", type=float, default=0.5, help="Barnes-Hut opening angle")
    parser.add_argument("--workers", type=int, default=None, help="Evaluation threads")
    parser.add_argument(
        "--direct-limit", type=int, default=3000, help="Largest size checked against direct summation"
    )
    parser.add_argument("--output", help="Output JSON file for results")

    args = parser.parse_args()

    sizes = [int(s) for s in args.sizes.split(",")]
    results = run_benchmarks(sizes, args.theta, args.workers, args.direct_limit)

    if args.output:
        with open(args.output, "w") as f:
            json.dump(results, f, indent=2)
        print(f"\nResults saved to {args.output}")


if __name__ == "__main__":
    main()

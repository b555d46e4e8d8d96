"""
Parallel per-body evaluation over a built octree.

Each body's traversal is a pure function of (tree, body), so the bodies
are fanned out over a thread pool with no locking. The tree must be fully
built before this runs and must not be modified while it runs.
"""

from __future__ import annotations

from concurrent.futures import Executor, ThreadPoolExecutor
from typing import List, Optional

from ..spatial.octree import Octree
from ..types import Body, BodyResult
from ..validation import validate_max_workers
from .evaluator import ForceEvaluator

# Below this many bodies the pool costs more than it saves
DEFAULT_PARALLEL_THRESHOLD = 64


def evaluate_body(tree: Octree, evaluator: ForceEvaluator, body: Body) -> BodyResult:
    """Evaluate one body and package the result."""
    accel, collisions = evaluator.evaluate(tree, body)
    return BodyResult(body.id, accel, collisions)


def use_parallel(
    body_count: int,
    max_workers: Optional[int],
    parallel_threshold: int = DEFAULT_PARALLEL_THRESHOLD,
) -> bool:
    """True if ``body_count`` bodies should be fanned out over a pool."""
    return max_workers != 1 and body_count >= max(1, parallel_threshold)


def collect_accelerations(
    tree: Octree,
    evaluator: ForceEvaluator,
    *,
    max_workers: Optional[int] = None,
    parallel_threshold: int = DEFAULT_PARALLEL_THRESHOLD,
    executor: Optional[Executor] = None,
) -> List[BodyResult]:
    """
    Evaluate every body stored in a tree.

    Args:
        tree: Built octree (read-only from here on)
        evaluator: Force evaluator carrying G and theta
        max_workers: Thread count. None lets the executor choose; 1 runs
            serially on the calling thread.
        parallel_threshold: Bodies below this count are evaluated serially
        executor: Long-lived pool to run on. Without one, a pool is created
            for this call and shut down before returning.

    Returns:
        One BodyResult per body, in tree iteration order. An empty tree
        gives an empty list.
    """
    max_workers = validate_max_workers(max_workers)
    bodies = list(tree.iter_bodies())

    if not bodies:
        return []

    if not use_parallel(len(bodies), max_workers, parallel_threshold):
        return [evaluate_body(tree, evaluator, body) for body in bodies]

    def task(body: Body) -> BodyResult:
        return evaluate_body(tree, evaluator, body)

    if executor is not None:
        return list(executor.map(task, bodies))

    with ThreadPoolExecutor(max_workers=max_workers) as pool:
        return list(pool.map(task, bodies))


__all__ = [
    "DEFAULT_PARALLEL_THRESHOLD",
    "collect_accelerations",
    "evaluate_body",
    "use_parallel",
]

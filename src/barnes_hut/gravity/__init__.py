"""
Gravity evaluation over a built octree.

Available evaluators:
- ForceEvaluator: Barnes-Hut traversal for one body
- collect_accelerations: Thread-pool driver evaluating every body of a tree
- direct_accelerations: Exact O(n^2) pairwise reference
"""

from .direct import direct_accelerations
from .evaluator import DEFAULT_THETA, GRAVITATIONAL_CONSTANT, ForceEvaluator
from .parallel import DEFAULT_PARALLEL_THRESHOLD, collect_accelerations, evaluate_body, use_parallel

__all__ = [
    "DEFAULT_PARALLEL_THRESHOLD",
    "DEFAULT_THETA",
    "GRAVITATIONAL_CONSTANT",
    "ForceEvaluator",
    "collect_accelerations",
    "direct_accelerations",
    "evaluate_body",
    "use_parallel",
]

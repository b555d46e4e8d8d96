"""
Accuracy and mass-distribution metrics.

Provides quantitative measures for checking a Barnes-Hut run:
- Relative errors: Per-body deviation from an exact reference
- Max / mean relative error: Summaries of the above
- Total mass and center of mass of a body set

All metrics take the BodyResult lists produced by the tree driver and by
the direct summation reference.
"""

from __future__ import annotations

import math
from typing import Hashable, Iterable, Sequence

import numpy as np

from .types import BodyLike, BodyResult, Vec3, as_body


def relative_errors(
    approx: Sequence[BodyResult],
    exact: Sequence[BodyResult],
) -> dict[Hashable, float]:
    """
    Relative acceleration error of every body.

    The error is |a - e| / |e| using Euclidean norms. When the exact
    acceleration is zero the error is 0.0 if the approximation is also zero
    and infinity otherwise.

    Args:
        approx: Results from the approximation
        exact: Results from the reference, covering the same ids

    Returns:
        Mapping of body id to relative error

    Raises:
        KeyError: If a body of ``approx`` has no reference result
    """
    reference = {r.id: r.acceleration for r in exact}
    errors: dict[Hashable, float] = {}

    for result in approx:
        e = np.asarray(reference[result.id], dtype=np.float64)
        a = np.asarray(result.acceleration, dtype=np.float64)
        delta = float(np.linalg.norm(a - e))
        norm = float(np.linalg.norm(e))
        if norm == 0.0:
            errors[result.id] = 0.0 if delta == 0.0 else math.inf
        else:
            errors[result.id] = delta / norm

    return errors


def max_relative_error(approx: Sequence[BodyResult], exact: Sequence[BodyResult]) -> float:
    """Largest per-body relative error (0.0 for no bodies)."""
    errors = relative_errors(approx, exact)
    return max(errors.values()) if errors else 0.0


def mean_relative_error(approx: Sequence[BodyResult], exact: Sequence[BodyResult]) -> float:
    """Mean per-body relative error (0.0 for no bodies)."""
    errors = relative_errors(approx, exact)
    if not errors:
        return 0.0
    return float(np.mean(list(errors.values())))


def total_mass(bodies: Iterable[BodyLike]) -> float:
    """Sum of body masses."""
    return float(sum(as_body(b).mass for b in bodies))


def center_of_mass(bodies: Iterable[BodyLike]) -> Vec3:
    """
    Mass-weighted mean position of a body set.

    Raises:
        ValueError: If there are no bodies
    """
    items = [as_body(b) for b in bodies]
    if not items:
        raise ValueError("center_of_mass() requires at least one body")

    pos = np.array([b.position for b in items], dtype=np.float64)
    weights = np.array([b.mass for b in items], dtype=np.float64)
    cx, cy, cz = np.average(pos, axis=0, weights=weights)
    return (float(cx), float(cy), float(cz))


__all__ = [
    "relative_errors",
    "max_relative_error",
    "mean_relative_error",
    "total_mass",
    "center_of_mass",
]

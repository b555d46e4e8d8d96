"""
Exact O(n^2) pairwise gravity.

Serves as the reference the Barnes-Hut path is checked against. Uses the
same rules as a tree leaf: a body never attracts itself, and two bodies
whose radii overlap are reported as colliding instead of attracting each
other.
"""

from __future__ import annotations

from typing import Iterable, List

import numpy as np

from ..types import BodyLike, BodyResult, as_body
from .evaluator import GRAVITATIONAL_CONSTANT


def direct_accelerations(
    bodies: Iterable[BodyLike],
    gravitational_constant: float = GRAVITATIONAL_CONSTANT,
    *,
    min_distance: float = 0.0,
) -> List[BodyResult]:
    """
    Compute exact accelerations and collisions for every body.

    Args:
        bodies: Bodies or (id, position, mass, radius) records
        gravitational_constant: G in a = G * m / d^2
        min_distance: Pairs at or closer than this exert no force on each
            other (collisions are still reported)

    Returns:
        One BodyResult per body, in input order

    Time Complexity: O(n^2) time and memory
    """
    items = [as_body(b) for b in bodies]
    n = len(items)
    if n == 0:
        return []

    pos = np.array([b.position for b in items], dtype=np.float64)
    mass = np.array([b.mass for b in items], dtype=np.float64)
    radius = np.array([b.radius for b in items], dtype=np.float64)

    # diff[i, j] points from body i to body j
    diff = pos[np.newaxis, :, :] - pos[:, np.newaxis, :]
    dist_sq = np.einsum("ijk,ijk->ij", diff, diff)
    reach = radius[:, np.newaxis] + radius[np.newaxis, :]

    colliding = dist_sq <= reach * reach
    np.fill_diagonal(colliding, False)

    active = ~colliding & (dist_sq > min_distance * min_distance)
    np.fill_diagonal(active, False)

    with np.errstate(divide="ignore", invalid="ignore", over="ignore"):
        scale = np.where(
            active,
            gravitational_constant * mass[np.newaxis, :] / (dist_sq * np.sqrt(dist_sq)),
            0.0,
        )
        accel = np.einsum("ij,ijk->ik", scale, diff)
    accel[~np.isfinite(accel)] = 0.0

    return [
        BodyResult(
            body.id,
            (float(accel[i, 0]), float(accel[i, 1]), float(accel[i, 2])),
            [items[j].id for j in np.flatnonzero(colliding[i])],
        )
        for i, body in enumerate(items)
    ]


__all__ = ["direct_accelerations"]

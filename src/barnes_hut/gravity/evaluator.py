"""
Barnes-Hut force and collision evaluation.

For a target body the evaluator walks a built octree from the root:

- Leaves are evaluated exactly, skipping the body itself (by id) and
  reporting overlapping bodies as collisions instead of attracting them.
- Internal nodes that contain the body, or that look large from it
  (size / distance >= theta), are opened and their children visited.
- Every other internal node is treated as a single point mass at its
  center of mass. Approximated nodes never report collisions.

The evaluation only reads the tree, so any number of threads may evaluate
different bodies against the same tree at once.
"""

from __future__ import annotations

import math
from typing import Hashable, List, Tuple

from ..spatial.octree import EmptyNode, InternalNode, LeafNode, Octree, OctreeNode
from ..types import Body, Vec3, ZERO
from ..validation import validate_gravitational_constant, validate_theta

# Newton's gravitational constant in SI units (m^3 kg^-1 s^-2)
GRAVITATIONAL_CONSTANT = 6.674e-11

DEFAULT_THETA = 0.5


def _finite(ax: float, ay: float, az: float) -> Vec3:
    """Clamp non-finite components to zero."""
    return (
        ax if math.isfinite(ax) else 0.0,
        ay if math.isfinite(ay) else 0.0,
        az if math.isfinite(az) else 0.0,
    )


class ForceEvaluator:
    """
    Barnes-Hut acceleration and collision evaluator.

    The theta parameter controls the accuracy/speed tradeoff:
    - theta = 0: Exact calculation (every node is opened)
    - theta = 0.5: Good balance (default)
    - theta = 1.0+: Fast but less accurate

    Example:
        evaluator = ForceEvaluator(gravitational_constant=1.0, theta=0.5)
        accel, collisions = evaluator.evaluate(tree, body)
    """

    def __init__(
        self,
        gravitational_constant: float = GRAVITATIONAL_CONSTANT,
        theta: float = DEFAULT_THETA,
    ) -> None:
        """
        Args:
            gravitational_constant: G in a = G * m / d^2
            theta: Opening-angle threshold (0 = exact)

        Raises:
            InvalidParameterError: If either parameter is out of range
        """
        self.gravitational_constant = validate_gravitational_constant(gravitational_constant)
        self.theta = validate_theta(theta)

    def __repr__(self) -> str:
        return f"ForceEvaluator(G={self.gravitational_constant!r}, theta={self.theta!r})"

    def evaluate(self, tree: Octree, body: Body) -> Tuple[Vec3, List[Hashable]]:
        """
        Calculate the acceleration on a body and the bodies it collides with.

        Args:
            tree: Built octree (not modified)
            body: Body to evaluate, usually one of the tree's bodies

        Returns:
            (acceleration, collisions) where collisions holds the ids of the
            bodies overlapping ``body``
        """
        collisions: List[Hashable] = []
        accel = self._accumulate(tree.root, body, collisions)
        return accel, collisions

    def _accumulate(self, node: OctreeNode, body: Body, collisions: List[Hashable]) -> Vec3:
        """Recursively sum the acceleration contributed by a subtree."""
        if isinstance(node, EmptyNode):
            return ZERO

        if isinstance(node, LeafNode):
            ax = ay = az = 0.0
            for other in node.bodies:
                dx, dy, dz = self._leaf_acceleration(other, body, collisions)
                ax += dx
                ay += dy
                az += dz
            return _finite(ax, ay, az)

        assert isinstance(node, InternalNode)
        bx, by, bz = body.position
        cx, cy, cz = node.center_of_mass
        rx = cx - bx
        ry = cy - by
        rz = cz - bz
        dist_sq = rx * rx + ry * ry + rz * rz
        dist = math.sqrt(dist_sq)

        # Node is too close - recurse into children
        if (
            node.bounds.contains(body.position)
            or dist == 0.0
            or node.bounds.extent() / dist >= self.theta
        ):
            ax = ay = az = 0.0
            for child in node.children:
                dx, dy, dz = self._accumulate(child, body, collisions)
                ax += dx
                ay += dy
                az += dz
            return _finite(ax, ay, az)

        # Treat the subtree as a point mass at its center of mass
        guard = body.radius + body.radius
        if dist_sq < guard * guard:
            return ZERO
        scale = self.gravitational_constant * node.mass / dist_sq / dist
        return _finite(rx * scale, ry * scale, rz * scale)

    def _leaf_acceleration(
        self, other: Body, body: Body, collisions: List[Hashable]
    ) -> Vec3:
        """Exact contribution of one stored body."""
        if other.id == body.id:
            return ZERO

        rx = other.position[0] - body.position[0]
        ry = other.position[1] - body.position[1]
        rz = other.position[2] - body.position[2]
        dist_sq = rx * rx + ry * ry + rz * rz
        reach = body.radius + other.radius

        if dist_sq <= reach * reach:
            collisions.append(other.id)
            return ZERO

        dist = math.sqrt(dist_sq)
        scale = self.gravitational_constant * other.mass / dist_sq / dist
        return (rx * scale, ry * scale, rz * scale)


__all__ = ["GRAVITATIONAL_CONSTANT", "DEFAULT_THETA", "ForceEvaluator"]

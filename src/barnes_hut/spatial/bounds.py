"""
Axis-aligned bounding volumes for octree construction.

A BoundingVolume is computed fresh every step from all body positions and
split at its center into 8 octants. The octant code of a point is a 3-bit
value: bit 0 = x above center, bit 1 = y above center, bit 2 = z above
center. ``subdivide()`` returns the sub-volumes in that same order, so the
index from ``octant_index_for()`` always names the sub-volume that holds
the point.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Tuple

from ..types import ZERO, Vec3


@dataclass(frozen=True)
class BoundingVolume:
    """
    Axis-aligned box between two corners.

    Attributes:
        min: (x, y, z) lower corner
        max: (x, y, z) upper corner

    Invariant: min <= max componentwise. The box may be degenerate
    (a single point) when built from one sample.
    """

    min: Vec3 = ZERO
    max: Vec3 = ZERO

    @classmethod
    def from_corners(cls, p1: Vec3, p2: Vec3) -> BoundingVolume:
        """Create the box spanned by two arbitrary opposite corners."""
        return cls(
            (min(p1[0], p2[0]), min(p1[1], p2[1]), min(p1[2], p2[2])),
            (max(p1[0], p2[0]), max(p1[1], p2[1]), max(p1[2], p2[2])),
        )

    @classmethod
    def from_point(cls, p: Vec3) -> BoundingVolume:
        """Degenerate box at a single point."""
        point = (float(p[0]), float(p[1]), float(p[2]))
        return cls(point, point)

    @classmethod
    def from_points(cls, points: Iterable[Vec3]) -> BoundingVolume:
        """
        Smallest box containing every point.

        An empty iterable gives the zero box at the origin. Such a box must
        only ever back an empty tree.
        """
        it = iter(points)
        first = next(it, None)
        if first is None:
            return cls()

        min_x = max_x = float(first[0])
        min_y = max_y = float(first[1])
        min_z = max_z = float(first[2])
        for p in it:
            x, y, z = p[0], p[1], p[2]
            if x < min_x:
                min_x = x
            elif x > max_x:
                max_x = x
            if y < min_y:
                min_y = y
            elif y > max_y:
                max_y = y
            if z < min_z:
                min_z = z
            elif z > max_z:
                max_z = z

        return cls((min_x, min_y, min_z), (max_x, max_y, max_z))

    def encompass(self, p: Vec3) -> BoundingVolume:
        """Return the box grown minimally to include ``p``."""
        if self.contains(p):
            return self
        return BoundingVolume(
            (min(self.min[0], p[0]), min(self.min[1], p[1]), min(self.min[2], p[2])),
            (max(self.max[0], p[0]), max(self.max[1], p[1]), max(self.max[2], p[2])),
        )

    def padded(self, margin: float) -> BoundingVolume:
        """Return the box grown by ``margin`` on every side."""
        return BoundingVolume(
            (self.min[0] - margin, self.min[1] - margin, self.min[2] - margin),
            (self.max[0] + margin, self.max[1] + margin, self.max[2] + margin),
        )

    def center(self) -> Vec3:
        """Midpoint of the box on every axis."""
        return (
            self.min[0] + (self.max[0] - self.min[0]) / 2.0,
            self.min[1] + (self.max[1] - self.min[1]) / 2.0,
            self.min[2] + (self.max[2] - self.min[2]) / 2.0,
        )

    def extent(self) -> float:
        """Largest dimension of the box."""
        return max(
            self.max[0] - self.min[0],
            self.max[1] - self.min[1],
            self.max[2] - self.min[2],
        )

    def is_empty(self) -> bool:
        """True if the box is a single point."""
        return self.min == self.max

    def contains(self, p: Vec3) -> bool:
        """Inclusive containment test on all three axes."""
        return (
            self.min[0] <= p[0] <= self.max[0]
            and self.min[1] <= p[1] <= self.max[1]
            and self.min[2] <= p[2] <= self.max[2]
        )

    def octant_index_for(self, p: Vec3) -> int:
        """
        Get the octant code of a point relative to the box center.

        Points on a center plane go to the lower half along that axis.
        Points outside the box still get a code by comparison against the
        center; that is an extrapolation, not an error.

        Returns:
            0-7, matching the order of ``subdivide()``
        """
        cx, cy, cz = self.center()
        index = 0
        if p[0] > cx:
            index |= 1
        if p[1] > cy:
            index |= 2
        if p[2] > cz:
            index |= 4
        return index

    def subdivide(self) -> Tuple[BoundingVolume, ...]:
        """
        Split the box at its center into 8 octants.

        Each octant spans one corner of this box to the center. The order
        must stay aligned with ``octant_index_for()``: x is bit 0, y bit 1,
        z bit 2.
        """
        mid = self.center()
        lo, hi = self.min, self.max
        octants = []
        for index in range(8):
            corner = (
                hi[0] if index & 1 else lo[0],
                hi[1] if index & 2 else lo[1],
                hi[2] if index & 4 else lo[2],
            )
            octants.append(BoundingVolume.from_corners(corner, mid))
        return tuple(octants)


__all__ = ["BoundingVolume"]

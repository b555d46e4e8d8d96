"""
Common types for Barnes-Hut gravity evaluation.

This module provides the fundamental types shared across the package:
- Vec3: Plain (x, y, z) float triple
- Body: Immutable snapshot of one simulated particle for a single step
- BodyResult: Acceleration and collision partners computed for one body
- BodyLike: Anything accepted as body input (Body or 4-tuple)
- EventType / Event: Solver step events for callbacks
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Hashable, Optional, Sequence, Tuple, TypedDict, Union

Vec3 = Tuple[float, float, float]

ZERO: Vec3 = (0.0, 0.0, 0.0)


class EventType(IntEnum):
    """
    Solver step events.

    - build: The tree for this step has been built
    - end: Every body has been evaluated
    """

    build = 0
    end = 1


class Event(TypedDict, total=False):
    """Event payload passed to event listeners."""

    type: EventType
    body_count: int
    depth: Optional[int]
    collisions: Optional[int]


@dataclass(frozen=True)
class Body:
    """
    A body with identity, position, mass and radius.

    Bodies are created fresh every step from the caller's entity store and
    are never mutated once inserted into a tree.

    Attributes:
        id: Opaque handle back to the owning entity (must be unique per step)
        position: (x, y, z) position
        mass: Positive mass
        radius: Non-negative radius, used for the collision distance
    """

    id: Hashable
    position: Vec3
    mass: float = 1.0
    radius: float = 0.0

    @classmethod
    def from_tuple(cls, record: Sequence[object]) -> Body:
        """Create a body from an ``(id, position, mass, radius)`` record."""
        body_id, position, mass, radius = record
        x, y, z = position  # type: ignore[misc]
        return cls(body_id, (float(x), float(y), float(z)), float(mass), float(radius))  # type: ignore[arg-type]


@dataclass
class BodyResult:
    """
    Result of evaluating one body against a built tree.

    Attributes:
        id: Id of the evaluated body
        acceleration: (ax, ay, az) gravitational acceleration
        collisions: Ids of the bodies this body overlaps with
    """

    id: Hashable
    acceleration: Vec3 = ZERO
    collisions: list[Hashable] = field(default_factory=list)

    def __iter__(self):  # type: ignore[no-untyped-def]
        # Allows ``body_id, accel, collisions = result``
        return iter((self.id, self.acceleration, self.collisions))


BodyLike = Union[Body, Tuple[Hashable, Sequence[float], float, float]]


def as_body(item: BodyLike) -> Body:
    """Normalize a Body or ``(id, position, mass, radius)`` record to a Body."""
    if isinstance(item, Body):
        return item
    return Body.from_tuple(item)


__all__ = ["Vec3", "ZERO", "EventType", "Event", "Body", "BodyResult", "BodyLike", "as_body"]

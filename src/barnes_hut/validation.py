"""
Input validation utilities for Barnes-Hut gravity evaluation.

Provides centralized validation functions for bodies and solver
parameters. Raises descriptive exceptions on invalid input.
"""

from __future__ import annotations

import math
from typing import Hashable, Iterable, Optional

from .types import Body, BodyLike, as_body

# Insertion and traversal recurse once per level; keeps them under the interpreter recursion limit
MAX_DEPTH_LIMIT = 256


class ValidationError(ValueError):
    """Base exception for validation errors."""

    pass


class InvalidBodyError(ValidationError):
    """Raised when a body is malformed or duplicated."""

    pass


class InvalidParameterError(ValidationError):
    """Raised when a solver parameter is out of range."""

    pass


class TreeStructureError(RuntimeError):
    """Raised when an octree invariant is violated (a programming fault)."""

    pass


def validate_body(item: BodyLike) -> Body:
    """
    Validate a single body.

    Args:
        item: Body or (id, position, mass, radius) record

    Returns:
        Validated Body

    Raises:
        InvalidBodyError: If the record is malformed or a value is out of range
    """
    try:
        body = as_body(item)
    except (TypeError, ValueError) as e:
        raise InvalidBodyError(f"Malformed body record {item!r}: {e}") from e

    try:
        hash(body.id)
    except TypeError as e:
        raise InvalidBodyError(f"Body id must be hashable, got {body.id!r}") from e

    if len(body.position) != 3:
        raise InvalidBodyError(
            f"Body {body.id!r}: position must have 3 components, got {len(body.position)}"
        )
    if not all(math.isfinite(c) for c in body.position):
        raise InvalidBodyError(f"Body {body.id!r}: position must be finite, got {body.position}")
    if not math.isfinite(body.mass) or body.mass <= 0:
        raise InvalidBodyError(f"Body {body.id!r}: mass must be positive, got {body.mass}")
    if not math.isfinite(body.radius) or body.radius < 0:
        raise InvalidBodyError(
            f"Body {body.id!r}: radius must be non-negative, got {body.radius}"
        )
    return body


def validate_bodies(items: Iterable[BodyLike]) -> list[Body]:
    """
    Validate a collection of bodies, including id uniqueness.

    Args:
        items: Iterable of Body objects or (id, position, mass, radius) records

    Returns:
        List of validated bodies in input order

    Raises:
        InvalidBodyError: If any body is invalid or an id appears twice
    """
    bodies: list[Body] = []
    seen: set[Hashable] = set()

    for item in items:
        body = validate_body(item)
        if body.id in seen:
            raise InvalidBodyError(f"Duplicate body id {body.id!r}")
        seen.add(body.id)
        bodies.append(body)

    return bodies


def validate_theta(theta: float) -> float:
    """
    Validate the opening-angle threshold.

    Raises:
        InvalidParameterError: If theta is negative or not finite
    """
    theta = float(theta)
    if not math.isfinite(theta) or theta < 0:
        raise InvalidParameterError(f"theta must be a finite value >= 0, got {theta}")
    return theta


def validate_gravitational_constant(value: float) -> float:
    """
    Validate the gravitational constant.

    Raises:
        InvalidParameterError: If the value is not finite
    """
    value = float(value)
    if not math.isfinite(value):
        raise InvalidParameterError(f"gravitational_constant must be finite, got {value}")
    return value


def validate_max_workers(max_workers: Optional[int]) -> Optional[int]:
    """
    Validate the worker count. None means "let the executor decide".

    Raises:
        InvalidParameterError: If max_workers < 1
    """
    if max_workers is None:
        return None
    if max_workers < 1:
        raise InvalidParameterError(f"max_workers must be >= 1, got {max_workers}")
    return int(max_workers)


def validate_max_depth(max_depth: int) -> int:
    """
    Validate the subdivision depth cap.

    Raises:
        InvalidParameterError: If max_depth is outside [1, MAX_DEPTH_LIMIT]
    """
    if max_depth < 1:
        raise InvalidParameterError(f"max_depth must be >= 1, got {max_depth}")
    if max_depth > MAX_DEPTH_LIMIT:
        raise InvalidParameterError(
            f"max_depth must be <= {MAX_DEPTH_LIMIT}, got {max_depth}"
        )
    return int(max_depth)


__all__ = [
    "MAX_DEPTH_LIMIT",
    "ValidationError",
    "InvalidBodyError",
    "InvalidParameterError",
    "TreeStructureError",
    "validate_body",
    "validate_bodies",
    "validate_theta",
    "validate_gravitational_constant",
    "validate_max_workers",
    "validate_max_depth",
]

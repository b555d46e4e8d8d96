"""
barnes-hut: Barnes-Hut octree gravity for real-time N-body simulations.

This package approximates gravitational accelerations among point/sphere
bodies in O(n log n) and detects overlapping bodies along the way.

Available components:
- spatial: Bounding volumes and the octree
- gravity: Barnes-Hut evaluator, parallel driver, exact reference
- solver: Per-step build-then-evaluate driver
- metrics: Accuracy checks against the exact reference
"""

__version__ = "0.1.0"

# Gravity evaluation
from .gravity import (
    DEFAULT_THETA,
    GRAVITATIONAL_CONSTANT,
    ForceEvaluator,
    collect_accelerations,
    direct_accelerations,
)

# Accuracy metrics
from .metrics import (
    center_of_mass,
    max_relative_error,
    mean_relative_error,
    relative_errors,
    total_mass,
)

# Per-step solver
from .solver import GravitySolver, accelerations_array, results_by_id

# Spatial data structures
from .spatial import (
    BoundingVolume,
    DepthLimitWarning,
    EmptyNode,
    InternalNode,
    LeafNode,
    Octree,
)
from .types import Body, BodyResult, Event, EventType, Vec3

# Validation
from .validation import (
    InvalidBodyError,
    InvalidParameterError,
    TreeStructureError,
    ValidationError,
)

__all__ = [
    # Version
    "__version__",
    # Types
    "Body",
    "BodyResult",
    "Event",
    "EventType",
    "Vec3",
    # Spatial
    "BoundingVolume",
    "DepthLimitWarning",
    "EmptyNode",
    "InternalNode",
    "LeafNode",
    "Octree",
    # Gravity
    "DEFAULT_THETA",
    "GRAVITATIONAL_CONSTANT",
    "ForceEvaluator",
    "collect_accelerations",
    "direct_accelerations",
    # Solver
    "GravitySolver",
    "accelerations_array",
    "results_by_id",
    # Metrics
    "center_of_mass",
    "max_relative_error",
    "mean_relative_error",
    "relative_errors",
    "total_mass",
    # Validation
    "ValidationError",
    "InvalidBodyError",
    "InvalidParameterError",
    "TreeStructureError",
]

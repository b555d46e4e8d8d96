"""
Spatial data structures for Barnes-Hut gravity.

Provides the bounding volume and octree used for O(n log n) force
approximation.
"""

from .bounds import BoundingVolume
from .octree import (
    DEFAULT_MAX_DEPTH,
    DepthLimitWarning,
    EmptyNode,
    InternalNode,
    LeafNode,
    Octree,
    OctreeNode,
)

__all__ = [
    "BoundingVolume",
    "DEFAULT_MAX_DEPTH",
    "DepthLimitWarning",
    "EmptyNode",
    "InternalNode",
    "LeafNode",
    "Octree",
    "OctreeNode",
]

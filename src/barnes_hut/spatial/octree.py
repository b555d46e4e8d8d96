"""
Octree implementation for Barnes-Hut gravity approximation.

The octree recursively subdivides 3D space into octants, enabling
O(n log n) approximate n-body force calculations. Nodes are one of three
variants:

- EmptyNode: no body and no children (fresh children of a split)
- LeafNode: one body, or several coincident bodies at the depth cap
- InternalNode: exactly 8 children plus aggregate mass / center of mass

A node never holds a body and children at the same time. The tree is
built once per step by sequential insertion and is read-only afterwards.
"""

from __future__ import annotations

import warnings
from dataclasses import dataclass, field
from typing import Iterable, Iterator, List, Tuple, Union

from ..types import Body, BodyLike, Vec3, ZERO, as_body
from ..validation import TreeStructureError, validate_max_depth
from .bounds import BoundingVolume

# Subdivision stops here; deeper bodies share a leaf.
DEFAULT_MAX_DEPTH = 32


class DepthLimitWarning(UserWarning):
    """Warning issued when coincident bodies had to share a leaf."""

    pass


@dataclass
class EmptyNode:
    """A region holding no bodies."""

    bounds: BoundingVolume

    @property
    def mass(self) -> float:
        return 0.0

    @property
    def center_of_mass(self) -> Vec3:
        return self.bounds.center()


@dataclass
class LeafNode:
    """
    A region holding bodies directly.

    Below the depth cap a leaf always holds exactly one body. At the cap,
    further bodies are appended to ``bodies`` instead of splitting.
    """

    bounds: BoundingVolume
    bodies: Tuple[Body, ...]
    mass: float = 0.0
    center_of_mass: Vec3 = ZERO

    @property
    def body(self) -> Body:
        """The first (normally the only) body of this leaf."""
        return self.bodies[0]


@dataclass
class InternalNode:
    """
    A region split into 8 children, ordered by octant code.

    Attributes:
        bounds: Region covered by this node
        children: 8 child nodes, index = BoundingVolume.octant_index_for()
        mass: Total mass of all bodies in the subtree
        center_of_mass: Mass-weighted mean position of the subtree
    """

    bounds: BoundingVolume
    children: List[OctreeNode] = field(default_factory=list)
    mass: float = 0.0
    center_of_mass: Vec3 = ZERO


OctreeNode = Union[EmptyNode, LeafNode, InternalNode]


def aggregate_mass(items: Iterable[Tuple[float, Vec3]]) -> Tuple[float, Vec3]:
    """
    Total mass and center of mass of (mass, position) pairs.

    The weighted-position accumulator uses Kahan compensated summation.
    Zero-mass entries (empty children) are skipped.

    Raises:
        TreeStructureError: If the total mass is zero
    """
    total_mass = 0.0
    sx = sy = sz = 0.0
    cx = cy = cz = 0.0

    for mass, (px, py, pz) in items:
        if mass == 0.0:
            continue
        yx = px * mass - cx
        yy = py * mass - cy
        yz = pz * mass - cz
        tx = sx + yx
        ty = sy + yy
        tz = sz + yz
        cx = (tx - sx) - yx
        cy = (ty - sy) - yy
        cz = (tz - sz) - yz
        sx, sy, sz = tx, ty, tz
        total_mass += mass

    if total_mass == 0.0:
        raise TreeStructureError("Cannot compute center of mass of a node with zero total mass")

    return total_mass, (sx / total_mass, sy / total_mass, sz / total_mass)


def update_node(node: OctreeNode) -> None:
    """Recalculate a node's aggregate from its bodies or immediate children."""
    if isinstance(node, LeafNode):
        if len(node.bodies) == 1:
            body = node.bodies[0]
            node.mass = body.mass
            node.center_of_mass = body.position
        else:
            node.mass, node.center_of_mass = aggregate_mass(
                (b.mass, b.position) for b in node.bodies
            )
    elif isinstance(node, InternalNode):
        node.mass, node.center_of_mass = aggregate_mass(
            (child.mass, child.center_of_mass)
            for child in node.children
            if not isinstance(child, EmptyNode)
        )


class Octree:
    """
    Barnes-Hut octree over a fixed bounding volume.

    Usage:
        tree = Octree.from_bodies(bodies)
        for body in tree:
            ...

    Insertion keeps the aggregate mass and center of mass of every node on
    the insertion path up to date. ``build(..., bulk=True)`` defers that work
    to a single ``update_all()`` pass, which ends with identical aggregates.
    """

    def __init__(self, bounds: BoundingVolume, max_depth: int = DEFAULT_MAX_DEPTH):
        """
        Initialize an empty octree.

        Args:
            bounds: Region covered by the root node
            max_depth: Depth at which leaves stop splitting

        Raises:
            InvalidParameterError: If max_depth is outside [1, MAX_DEPTH_LIMIT]
        """
        self.bounds = bounds
        self.max_depth = validate_max_depth(max_depth)
        self.root: OctreeNode = EmptyNode(bounds)
        self.body_count = 0
        # Number of insertions that landed in an already occupied leaf at the cap
        self.bucketed_count = 0

    # -------------------------------------------------------------------------
    # Construction
    # -------------------------------------------------------------------------

    @classmethod
    def build(
        cls,
        bounds: BoundingVolume,
        bodies: Iterable[BodyLike],
        *,
        max_depth: int = DEFAULT_MAX_DEPTH,
        bulk: bool = False,
    ) -> Octree:
        """
        Build an octree by inserting bodies in iteration order.

        Args:
            bounds: Region covered by the root node
            bodies: Bodies or (id, position, mass, radius) records
            max_depth: Depth at which leaves stop splitting
            bulk: Insert without updating aggregates, then update once

        Returns:
            Octree with all bodies inserted and aggregates computed
        """
        tree = cls(bounds, max_depth=max_depth)

        if bulk:
            for item in bodies:
                tree.insert_no_update(as_body(item))
            tree.update_all()
        else:
            for item in bodies:
                tree.insert(as_body(item))

        if tree.bucketed_count:
            warnings.warn(
                f"{tree.bucketed_count} body insertion(s) reached the depth limit "
                f"({max_depth}) and share a leaf with coincident bodies.",
                DepthLimitWarning,
                stacklevel=2,
            )
        return tree

    @classmethod
    def from_bodies(
        cls,
        bodies: Iterable[BodyLike],
        *,
        padding: float = 0.0,
        max_depth: int = DEFAULT_MAX_DEPTH,
        bulk: bool = False,
    ) -> Octree:
        """
        Build an octree over the bounding volume of the given bodies.

        Args:
            bodies: Bodies or (id, position, mass, radius) records
            padding: Margin added around the bounding volume
            max_depth: Depth at which leaves stop splitting
            bulk: Insert without updating aggregates, then update once
        """
        items = [as_body(item) for item in bodies]
        bounds = BoundingVolume.from_points(b.position for b in items)
        if padding:
            bounds = bounds.padded(padding)
        return cls.build(bounds, items, max_depth=max_depth, bulk=bulk)

    def insert(self, body: Body) -> None:
        """Insert a body and refresh aggregates along its path."""
        self.root = self._insert_into(self.root, body, 0, True)
        self.body_count += 1

    def insert_no_update(self, body: Body) -> None:
        """Insert a body without touching any aggregate."""
        self.root = self._insert_into(self.root, body, 0, False)
        self.body_count += 1

    def _insert_into(self, node: OctreeNode, body: Body, depth: int, update: bool) -> OctreeNode:
        """Insert body into the subtree rooted at node; return the new subtree root."""
        if isinstance(node, InternalNode):
            ix = node.bounds.octant_index_for(body.position)
            node.children[ix] = self._insert_into(node.children[ix], body, depth + 1, update)

        elif isinstance(node, EmptyNode):
            node = LeafNode(node.bounds, (body,))

        elif depth >= self.max_depth:
            node = LeafNode(node.bounds, node.bodies + (body,))
            self.bucketed_count += 1

        else:
            # Leaf with an existing body - must subdivide
            existing = node.bodies
            node = InternalNode(node.bounds, [EmptyNode(b) for b in node.bounds.subdivide()])
            for other in existing + (body,):
                node = self._insert_into(node, other, depth, update)

        if update:
            update_node(node)
        return node

    def update_all(self) -> None:
        """Recompute aggregates for every node (post-order)."""
        self._update_subtree(self.root)

    def _update_subtree(self, node: OctreeNode) -> None:
        if isinstance(node, InternalNode):
            for child in node.children:
                self._update_subtree(child)
        update_node(node)

    # -------------------------------------------------------------------------
    # Aggregates
    # -------------------------------------------------------------------------

    @property
    def mass(self) -> float:
        """Total mass of the tree."""
        return self.root.mass

    @property
    def center_of_mass(self) -> Vec3:
        """Center of mass of the tree (the root's aggregate)."""
        return self.root.center_of_mass

    # -------------------------------------------------------------------------
    # Iteration
    # -------------------------------------------------------------------------

    def __len__(self) -> int:
        return self.body_count

    def __iter__(self) -> Iterator[Body]:
        return self.iter_bodies()

    def iter_bodies(self) -> Iterator[Body]:
        """
        Yield every stored body exactly once.

        Depth-first with an explicit stack, so deep trees never hit the
        recursion limit. The order depends only on the tree shape.
        """
        for node in self.iter_nodes():
            if isinstance(node, LeafNode):
                yield from node.bodies

    def iter_nodes(self) -> Iterator[OctreeNode]:
        """Yield every node, depth-first, parents before children."""
        stack: List[OctreeNode] = [self.root]
        while stack:
            node = stack.pop()
            yield node
            if isinstance(node, InternalNode):
                stack.extend(node.children)

    # -------------------------------------------------------------------------
    # Statistics
    # -------------------------------------------------------------------------

    def depth(self) -> int:
        """Depth of the deepest non-empty node (root = 0)."""
        deepest = 0
        stack: List[Tuple[OctreeNode, int]] = [(self.root, 0)]
        while stack:
            node, level = stack.pop()
            if isinstance(node, InternalNode):
                stack.extend((child, level + 1) for child in node.children)
            elif isinstance(node, LeafNode):
                deepest = max(deepest, level)
        return deepest

    def node_count(self) -> int:
        """Number of nodes of any kind."""
        return sum(1 for _ in self.iter_nodes())

    def leaf_count(self) -> int:
        """Number of leaves holding bodies."""
        return sum(1 for node in self.iter_nodes() if isinstance(node, LeafNode))


__all__ = [
    "DEFAULT_MAX_DEPTH",
    "DepthLimitWarning",
    "EmptyNode",
    "LeafNode",
    "InternalNode",
    "OctreeNode",
    "Octree",
    "aggregate_mass",
    "update_node",
]

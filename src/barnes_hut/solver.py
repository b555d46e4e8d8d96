"""
Per-step Barnes-Hut gravity solver.

GravitySolver carries the configuration (G, theta, worker count, depth
cap) and runs one simulation step at a time:

1. Validate the bodies supplied by the caller's entity store
2. Compute the bounding volume and build the octree by sequential insertion
3. Evaluate every body against the finished tree on the solver's thread pool
4. Return one BodyResult per body

The two phases never interleave; the tree is discarded after the step.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from typing import TYPE_CHECKING, Any, Callable, Hashable, Iterable, Optional, Sequence

import numpy as np

if TYPE_CHECKING:
    from typing_extensions import Self

from .gravity.evaluator import DEFAULT_THETA, GRAVITATIONAL_CONSTANT, ForceEvaluator
from .gravity.parallel import DEFAULT_PARALLEL_THRESHOLD, collect_accelerations, use_parallel
from .spatial.octree import DEFAULT_MAX_DEPTH, Octree
from .types import BodyLike, BodyResult, Event, EventType, as_body
from .validation import (
    validate_bodies,
    validate_gravitational_constant,
    validate_max_depth,
    validate_max_workers,
    validate_theta,
)


class GravitySolver:
    """
    Barnes-Hut gravity solver for one simulation step at a time.

    Example:
        solver = GravitySolver(gravitational_constant=1.0, theta=0.5)
        results = solver.step([
            ("sun", (0.0, 0.0, 0.0), 100.0, 1.0),
            ("earth", (10.0, 0.0, 0.0), 1.0, 0.1),
        ])

        for body_id, accel, collisions in results:
            print(body_id, accel, collisions)

    The worker pool is created on the first parallel step and reused by
    later steps. Call close(), or use the solver as a context manager, to
    shut it down.
    """

    def __init__(
        self,
        *,
        gravitational_constant: float = GRAVITATIONAL_CONSTANT,
        theta: float = DEFAULT_THETA,
        max_workers: Optional[int] = None,
        max_depth: int = DEFAULT_MAX_DEPTH,
        padding: float = 0.0,
        parallel_threshold: int = DEFAULT_PARALLEL_THRESHOLD,
        bulk_insert: bool = False,
        validate_input: bool = True,
        on_build: Optional[Callable[[Optional[Event]], None]] = None,
        on_end: Optional[Callable[[Optional[Event]], None]] = None,
    ) -> None:
        """
        Initialize the solver.

        Args:
            gravitational_constant: G in a = G * m / d^2
            theta: Barnes-Hut opening angle (0 = exact, 0.5 = balanced)
            max_workers: Evaluation threads. None lets the executor choose.
            max_depth: Depth at which coincident bodies stop subdividing
            padding: Margin added around the bodies' bounding volume
            parallel_threshold: Steps with fewer bodies are evaluated serially
            bulk_insert: Defer aggregate updates to one pass after insertion
            validate_input: Check bodies (finite, positive mass, unique ids)
            on_build: Callback fired once the tree is built
            on_end: Callback fired once every body is evaluated

        Raises:
            InvalidParameterError: If a parameter is out of range
        """
        self._gravitational_constant = validate_gravitational_constant(gravitational_constant)
        self._theta = validate_theta(theta)
        self._max_workers = validate_max_workers(max_workers)
        self._max_depth = validate_max_depth(max_depth)
        self._padding: float = max(0.0, float(padding))
        self._parallel_threshold: int = max(0, int(parallel_threshold))
        self._bulk_insert: bool = bool(bulk_insert)
        self._validate_input: bool = bool(validate_input)
        self._events: dict[EventType, Callable[[Optional[Event]], None]] = {}
        # Created on the first parallel step and reused until close()
        self._executor: Optional[ThreadPoolExecutor] = None

        if on_build:
            self._events[EventType.build] = on_build
        if on_end:
            self._events[EventType.end] = on_end

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------

    @property
    def gravitational_constant(self) -> float:
        """Get the gravitational constant G."""
        return self._gravitational_constant

    @gravitational_constant.setter
    def gravitational_constant(self, value: float) -> None:
        """Set the gravitational constant G."""
        self._gravitational_constant = validate_gravitational_constant(value)

    @property
    def theta(self) -> float:
        """Get Barnes-Hut theta parameter (accuracy)."""
        return self._theta

    @theta.setter
    def theta(self, value: float) -> None:
        """Set Barnes-Hut theta parameter."""
        self._theta = validate_theta(value)

    @property
    def max_workers(self) -> Optional[int]:
        """Get the evaluation thread count (None = executor default)."""
        return self._max_workers

    @max_workers.setter
    def max_workers(self, value: Optional[int]) -> None:
        value = validate_max_workers(value)
        if value != self._max_workers:
            self.close()
        self._max_workers = value

    @property
    def max_depth(self) -> int:
        """Get the subdivision depth cap."""
        return self._max_depth

    @max_depth.setter
    def max_depth(self, value: int) -> None:
        self._max_depth = validate_max_depth(value)

    @property
    def padding(self) -> float:
        """Get the margin added around the bounding volume."""
        return self._padding

    @padding.setter
    def padding(self, value: float) -> None:
        """Set the bounding volume margin (clamped to >= 0)."""
        self._padding = max(0.0, float(value))

    @property
    def parallel_threshold(self) -> int:
        """Get the body count below which evaluation is serial."""
        return self._parallel_threshold

    @parallel_threshold.setter
    def parallel_threshold(self, value: int) -> None:
        self._parallel_threshold = max(0, int(value))

    @property
    def evaluator(self) -> ForceEvaluator:
        """Evaluator configured with the current G and theta."""
        return ForceEvaluator(self._gravitational_constant, self._theta)

    # -------------------------------------------------------------------------
    # Event System
    # -------------------------------------------------------------------------

    def on(self, event: EventType | str, callback: Callable[[Optional[Event]], None]) -> Self:
        """
        Subscribe to a solver event.

        Args:
            event: Event type (EventType enum or string name)
            callback: Function to call when event fires

        Returns:
            self (for chaining)
        """
        if isinstance(event, str):
            event = EventType[event]
        self._events[event] = callback
        return self

    def trigger(self, event: Event) -> None:
        """Call the callback registered for the event's type, if any."""
        event_type = event.get("type")
        if event_type is not None and event_type in self._events:
            self._events[event_type](event)

    # -------------------------------------------------------------------------
    # Step
    # -------------------------------------------------------------------------

    def build_tree(self, bodies: Iterable[BodyLike]) -> Octree:
        """
        Build the octree for one step.

        Args:
            bodies: Bodies or (id, position, mass, radius) records

        Returns:
            Fully built octree
        """
        if self._validate_input:
            items = validate_bodies(bodies)
        else:
            items = [as_body(b) for b in bodies]

        return Octree.from_bodies(
            items,
            padding=self._padding,
            max_depth=self._max_depth,
            bulk=self._bulk_insert,
        )

    def step(self, bodies: Iterable[BodyLike]) -> list[BodyResult]:
        """
        Compute accelerations and collisions for every body.

        Args:
            bodies: All live bodies as Body objects or
                (id, position, mass, radius) records

        Returns:
            One BodyResult per body. No bodies gives an empty list.

        Raises:
            InvalidBodyError: If validate_input is on and a body is invalid
        """
        tree = self.build_tree(bodies)
        if EventType.build in self._events:
            self.trigger(
                {"type": EventType.build, "body_count": len(tree), "depth": tree.depth()}
            )

        executor = None
        if use_parallel(len(tree), self._max_workers, self._parallel_threshold):
            executor = self._get_executor()

        results = collect_accelerations(
            tree,
            self.evaluator,
            max_workers=self._max_workers,
            parallel_threshold=self._parallel_threshold,
            executor=executor,
        )

        if EventType.end in self._events:
            self.trigger(
                {
                    "type": EventType.end,
                    "body_count": len(results),
                    "collisions": sum(len(r.collisions) for r in results),
                }
            )
        return results

    # -------------------------------------------------------------------------
    # Worker Pool
    # -------------------------------------------------------------------------

    def _get_executor(self) -> ThreadPoolExecutor:
        if self._executor is None:
            self._executor = ThreadPoolExecutor(
                max_workers=self._max_workers, thread_name_prefix="barnes-hut"
            )
        return self._executor

    def close(self) -> None:
        """Shut down the worker pool. A later parallel step starts a new one."""
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None

    def __enter__(self) -> Self:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()


def results_by_id(results: Iterable[BodyResult]) -> dict[Hashable, BodyResult]:
    """Index step results by body id."""
    return {r.id: r for r in results}


def accelerations_array(
    results: Iterable[BodyResult],
    ids: Optional[Sequence[Hashable]] = None,
) -> np.ndarray:
    """
    Stack accelerations into an (n, 3) array.

    Args:
        results: Step results
        ids: Row order. Defaults to the order of ``results``.

    Returns:
        float64 array with one row per body

    Raises:
        KeyError: If an id in ``ids`` has no result
    """
    results = list(results)
    if ids is None:
        rows = [r.acceleration for r in results]
    else:
        indexed = results_by_id(results)
        rows = [indexed[i].acceleration for i in ids]
    return np.array(rows, dtype=np.float64).reshape(len(rows), 3)


__all__ = ["GravitySolver", "results_by_id", "accelerations_array"]

"""Tests for the per-step GravitySolver."""

import random

import numpy as np
import pytest

from barnes_hut import (
    Body,
    EventType,
    GravitySolver,
    InvalidBodyError,
    InvalidParameterError,
    accelerations_array,
    direct_accelerations,
    max_relative_error,
    results_by_id,
)
from barnes_hut.gravity.evaluator import GRAVITATIONAL_CONSTANT
from barnes_hut.spatial.octree import DEFAULT_MAX_DEPTH, DepthLimitWarning, Octree
from barnes_hut.validation import MAX_DEPTH_LIMIT


def _random_records(n, seed=0):
    rng = random.Random(seed)
    return [
        (
            i,
            (rng.uniform(-100, 100), rng.uniform(-100, 100), rng.uniform(-100, 100)),
            rng.uniform(1.0, 10.0),
            0.0,
        )
        for i in range(n)
    ]


class TestGravitySolverConfig:
    """Tests for solver configuration."""

    def test_defaults(self):
        """Default parameters."""
        solver = GravitySolver()
        assert solver.gravitational_constant == GRAVITATIONAL_CONSTANT
        assert solver.theta == 0.5
        assert solver.max_workers is None
        assert solver.max_depth == DEFAULT_MAX_DEPTH
        assert solver.padding == 0.0

    def test_setters(self):
        """Setters update configuration."""
        solver = GravitySolver()
        solver.theta = 0.8
        solver.gravitational_constant = 1.0
        solver.max_workers = 2
        solver.max_depth = 10
        solver.padding = 5.0

        assert solver.theta == 0.8
        assert solver.gravitational_constant == 1.0
        assert solver.max_workers == 2
        assert solver.max_depth == 10
        assert solver.padding == 5.0
        assert solver.evaluator.theta == 0.8
        assert solver.evaluator.gravitational_constant == 1.0

    def test_padding_clamped(self):
        """Negative padding is clamped to zero."""
        solver = GravitySolver(padding=-3.0)
        assert solver.padding == 0.0

    def test_invalid_parameters(self):
        """Out-of-range parameters raise InvalidParameterError."""
        with pytest.raises(InvalidParameterError):
            GravitySolver(theta=-1.0)
        with pytest.raises(InvalidParameterError):
            GravitySolver(max_workers=0)
        with pytest.raises(InvalidParameterError):
            GravitySolver(max_depth=0)
        with pytest.raises(InvalidParameterError):
            GravitySolver(max_depth=1500)

        solver = GravitySolver()
        with pytest.raises(InvalidParameterError):
            solver.theta = float("nan")


class TestGravitySolverStep:
    """Tests for running steps."""

    def test_empty_step(self):
        """No bodies gives no results."""
        assert GravitySolver().step([]) == []

    def test_single_body(self):
        """A lone body feels nothing."""
        (result,) = GravitySolver(gravitational_constant=1.0).step([("solo", (1.0, 2.0, 3.0), 5.0, 1.0)])
        assert result.id == "solo"
        assert result.acceleration == (0.0, 0.0, 0.0)
        assert result.collisions == []

    def test_three_body_example(self):
        """The body at x=20 is pulled toward -x, the origin toward +x."""
        solver = GravitySolver(gravitational_constant=1.0, theta=0.5)
        results = results_by_id(
            solver.step(
                [
                    ("heavy", (0.0, 0.0, 0.0), 100.0, 0.0),
                    ("mid", (10.0, 0.0, 0.0), 1.0, 0.0),
                    ("far", (20.0, 0.0, 0.0), 1.0, 0.0),
                ]
            )
        )
        assert results["far"].acceleration[0] < 0
        assert results["heavy"].acceleration[0] > 0
        assert results["far"].acceleration[0] == pytest.approx(-(100.0 / 400.0 + 1.0 / 100.0))

    def test_theta_zero_matches_direct(self):
        """Exact opening matches the direct reference."""
        records = _random_records(50, seed=1)
        solver = GravitySolver(gravitational_constant=1.0, theta=0.0, parallel_threshold=0)

        approx = solver.step(records)
        exact = direct_accelerations(records, 1.0)
        assert max_relative_error(approx, exact) < 1e-3

    def test_collisions_reported(self):
        """Overlapping bodies report each other."""
        solver = GravitySolver(gravitational_constant=1.0)
        results = results_by_id(
            solver.step(
                [
                    Body("a", (0.0, 0.0, 0.0), radius=1.0),
                    Body("b", (0.5, 0.0, 0.0), radius=1.0),
                    Body("c", (30.0, 0.0, 0.0), radius=1.0),
                ]
            )
        )
        assert results["a"].collisions == ["b"]
        assert results["b"].collisions == ["a"]
        assert results["c"].collisions == []

    def test_bulk_insert_same_results(self):
        """Bulk insertion does not change any result."""
        records = _random_records(200, seed=2)
        first = results_by_id(GravitySolver(gravitational_constant=1.0).step(records))
        second = results_by_id(
            GravitySolver(gravitational_constant=1.0, bulk_insert=True).step(records)
        )
        for body_id, result in first.items():
            assert second[body_id].acceleration == result.acceleration

    def test_padding_keeps_results_close(self):
        """Padding the root volume only reshapes the tree."""
        records = _random_records(40, seed=3)
        plain = GravitySolver(gravitational_constant=1.0, theta=0.0).step(records)
        padded = GravitySolver(gravitational_constant=1.0, theta=0.0, padding=25.0).step(records)
        assert max_relative_error(padded, plain) < 1e-9

    def test_threaded_step(self):
        """Multi-threaded steps cover every body."""
        records = _random_records(150, seed=4)
        results = GravitySolver(gravitational_constant=1.0, max_workers=4, parallel_threshold=0).step(records)
        assert sorted(r.id for r in results) == list(range(150))

    def test_invalid_body(self):
        """Invalid bodies raise before any tree is built."""
        with pytest.raises(InvalidBodyError, match="mass must be positive"):
            GravitySolver().step([("a", (0.0, 0.0, 0.0), 0.0, 0.0)])

    def test_duplicate_ids(self):
        """Duplicate ids are rejected."""
        with pytest.raises(InvalidBodyError, match="Duplicate"):
            GravitySolver().step([("a", (0, 0, 0), 1.0, 0.0), ("a", (1, 1, 1), 1.0, 0.0)])

    def test_validation_can_be_skipped(self):
        """validate_input=False trusts the caller."""
        solver = GravitySolver(gravitational_constant=1.0, validate_input=False)
        results = solver.step([("a", (0, 0, 0), 1.0, 0.0), ("b", (1, 0, 0), 1.0, 0.0)])
        assert len(results) == 2

    def test_coincident_bodies_at_deepest_cap(self):
        """Coincident bodies at the largest allowed cap complete a step."""
        solver = GravitySolver(gravitational_constant=1.0, max_depth=MAX_DEPTH_LIMIT)
        bodies = [Body(i, (1.0, 1.0, 1.0)) for i in range(3)]

        with pytest.warns(DepthLimitWarning):
            results = results_by_id(solver.step(bodies))

        assert sorted(results[0].collisions) == [1, 2]
        assert results[0].acceleration == (0.0, 0.0, 0.0)


class TestGravitySolverEvents:
    """Tests for step events."""

    def test_events_fire(self):
        """Build and end events carry step statistics."""
        events = []
        solver = GravitySolver(
            gravitational_constant=1.0,
            on_build=events.append,
            on_end=events.append,
        )
        solver.step(
            [
                ("a", (0.0, 0.0, 0.0), 1.0, 1.0),
                ("b", (1.0, 0.0, 0.0), 1.0, 1.0),
                ("c", (9.0, 9.0, 9.0), 1.0, 0.0),
            ]
        )

        assert [e["type"] for e in events] == [EventType.build, EventType.end]
        assert events[0]["body_count"] == 3
        assert events[0]["depth"] >= 1
        assert events[1]["body_count"] == 3
        assert events[1]["collisions"] == 2

    def test_on_chaining(self):
        """on() accepts string names and returns the solver."""
        seen = []
        solver = GravitySolver().on("end", seen.append)
        assert isinstance(solver, GravitySolver)

        solver.step([])
        assert seen[0]["type"] == EventType.end
        assert seen[0]["body_count"] == 0


class TestResultHelpers:
    """Tests for result post-processing helpers."""

    def test_accelerations_array_order(self):
        """Rows follow the requested id order."""
        records = _random_records(10, seed=5)
        results = GravitySolver(gravitational_constant=1.0).step(records)
        ids = [r[0] for r in records]

        array = accelerations_array(results, ids)
        indexed = results_by_id(results)

        assert array.shape == (10, 3)
        assert array.dtype == np.float64
        for row, body_id in zip(array, ids):
            assert tuple(row) == indexed[body_id].acceleration

    def test_accelerations_array_empty(self):
        """No results gives an empty (0, 3) array."""
        assert accelerations_array([]).shape == (0, 3)


class TestGravitySolverPool:
    """Tests for the solver-owned worker pool."""

    def test_pool_reused_across_steps(self):
        """Parallel steps share one pool until close()."""
        solver = GravitySolver(gravitational_constant=1.0, max_workers=2, parallel_threshold=0)
        records = _random_records(20, seed=6)

        solver.step(records)
        pool = solver._executor
        assert pool is not None

        solver.step(records)
        assert solver._executor is pool

        solver.close()
        assert solver._executor is None

    def test_serial_steps_create_no_pool(self):
        """Small steps never start a pool."""
        solver = GravitySolver(gravitational_constant=1.0)
        solver.step(_random_records(10, seed=7))
        assert solver._executor is None

    def test_context_manager_closes(self):
        """Leaving the with block shuts the pool down."""
        with GravitySolver(gravitational_constant=1.0, max_workers=2, parallel_threshold=0) as solver:
            results = solver.step(_random_records(30, seed=8))
            assert solver._executor is not None

        assert len(results) == 30
        assert solver._executor is None

    def test_worker_change_replaces_pool(self):
        """Changing max_workers retires the old pool."""
        solver = GravitySolver(gravitational_constant=1.0, max_workers=2, parallel_threshold=0)
        solver.step(_random_records(20, seed=9))
        old = solver._executor

        solver.max_workers = 3
        assert solver._executor is None

        solver.step(_random_records(20, seed=9))
        assert solver._executor is not None
        assert solver._executor is not old
        solver.close()

    def test_pooled_matches_serial(self):
        """A reused pool gives the same results as serial evaluation."""
        records = _random_records(100, seed=10)
        serial = GravitySolver(gravitational_constant=1.0, max_workers=1).step(records)

        with GravitySolver(gravitational_constant=1.0, max_workers=4, parallel_threshold=0) as solver:
            first = solver.step(records)
            second = solver.step(records)

        for a, b, c in zip(serial, first, second):
            assert a.id == b.id == c.id
            assert a.acceleration == b.acceleration == c.acceleration


class TestGravitySolverEventCost:
    """Tests for event payload work."""

    def test_depth_skipped_without_listener(self, monkeypatch):
        """The tree depth is only walked when a build listener exists."""

        def fail(self):
            raise AssertionError("depth computed without a listener")

        monkeypatch.setattr(Octree, "depth", fail)
        results = GravitySolver(gravitational_constant=1.0).step(_random_records(10, seed=11))
        assert len(results) == 10

    def test_depth_reported_with_listener(self):
        """A build listener still receives the depth."""
        events = []
        GravitySolver(gravitational_constant=1.0).on("build", events.append).step(
            _random_records(10, seed=12)
        )
        assert events[0]["depth"] >= 1

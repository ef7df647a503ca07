"""
Tests for the quadtree spatial index.

Tests cover:
- Tree construction and subtree aggregates
- Barnes-Hut repulsion against the exact pairwise sum
- Coincident points and depth limiting
- Radius queries
"""

import math

import pytest

from forcelayout.layout.spatial_index import (
    MAX_DEPTH,
    QuadTree,
    brute_force_repulsion,
    deterministic_jitter,
    separation_direction,
)


def grid_points(n=6, spacing=37.0):
    xs, ys = [], []
    for i in range(n):
        for j in range(n):
            # Slight irregularity so no two rows line up exactly
            xs.append(i * spacing + (j % 3) * 1.7)
            ys.append(j * spacing + (i % 4) * 2.3)
    return xs, ys


class TestConstruction:
    """Tree building and aggregates."""

    def test_empty(self):
        tree = QuadTree.build([], [])
        assert len(tree) == 0
        assert tree.root is None
        assert tree.query_radius(0, 0, 100) == []

    def test_single_point(self):
        tree = QuadTree.build([5.0], [7.0])
        assert tree.root.count == 1
        assert tree.repulsion(0, 0.81, 10, 300) == (0.0, 0.0)

    def test_root_aggregates(self):
        xs, ys = grid_points()
        charges = [-(1 + i % 3) for i in range(len(xs))]
        tree = QuadTree.build(xs, ys, charges)
        root = tree.root
        assert root.count == len(xs)
        assert root.charge == pytest.approx(sum(charges))
        assert root.cx == pytest.approx(sum(xs) / len(xs))
        assert root.cy == pytest.approx(sum(ys) / len(ys))

    def test_every_point_in_exactly_one_leaf(self):
        xs, ys = grid_points()
        tree = QuadTree.build(xs, ys)
        held = sorted(j for cell in tree.cells if cell.children is None for j in cell.points)
        assert held == list(range(len(xs)))

    def test_mismatched_lengths(self):
        with pytest.raises(ValueError):
            QuadTree.build([1.0, 2.0], [1.0])

    def test_coincident_points_share_leaf(self):
        tree = QuadTree.build([10.0] * 5, [10.0] * 5)
        assert tree.root.count == 5
        assert max(cell.depth for cell in tree.cells) <= MAX_DEPTH


class TestRepulsion:
    """Barnes-Hut force queries."""

    def test_theta_zero_matches_brute_force(self):
        xs, ys = grid_points()
        charges = [-300.0] * len(xs)
        tree = QuadTree.build(xs, ys, charges)
        for i in (0, 7, 20, len(xs) - 1):
            fx, fy = tree.repulsion(i, 0.0, 10.0, 1e9)
            bx, by = brute_force_repulsion(xs, ys, charges, i, 10.0, 1e9)
            assert fx == pytest.approx(bx, rel=1e-9, abs=1e-9)
            assert fy == pytest.approx(by, rel=1e-9, abs=1e-9)

    def test_default_theta_close_to_exact(self):
        xs, ys = grid_points(8, 25.0)
        charges = [-300.0] * len(xs)
        tree = QuadTree.build(xs, ys, charges)
        for i in (0, 7, 56, 63):
            fx, fy = tree.repulsion(i, 0.81, 10.0, 1e9)
            bx, by = brute_force_repulsion(xs, ys, charges, i, 10.0, 1e9)
            exact = math.hypot(bx, by)
            assert math.hypot(fx - bx, fy - by) <= 0.2 * exact + 1e-6

    def test_negative_charge_repels(self):
        tree = QuadTree.build([0.0, 100.0], [0.0, 0.0], [-300.0, -300.0])
        fx, fy = tree.repulsion(0, 0.81, 10.0, 300.0)
        assert fx < 0
        assert fy == pytest.approx(0.0)

    def test_magnitude_falls_off_with_distance(self):
        tree = QuadTree.build([0.0, 100.0], [0.0, 0.0], [-300.0, -300.0])
        fx, _ = tree.repulsion(0, 0.81, 10.0, 300.0)
        assert fx == pytest.approx(-3.0)

    def test_distance_min_floor(self):
        tree = QuadTree.build([0.0, 2.0], [0.0, 0.0], [-300.0, -300.0])
        fx, _ = tree.repulsion(0, 0.81, 10.0, 300.0)
        assert fx == pytest.approx(-30.0)

    def test_beyond_distance_max_ignored(self):
        tree = QuadTree.build([0.0, 500.0], [0.0, 0.0], [-300.0, -300.0])
        assert tree.repulsion(0, 0.81, 10.0, 300.0) == (0.0, 0.0)

    def test_coincident_pair_pushed_apart(self):
        tree = QuadTree.build([50.0, 50.0], [50.0, 50.0], [-300.0, -300.0])
        f0 = tree.repulsion(0, 0.81, 10.0, 300.0)
        f1 = tree.repulsion(1, 0.81, 10.0, 300.0)
        assert all(math.isfinite(v) for v in f0 + f1)
        assert math.hypot(*f0) > 0
        # Equal and opposite
        assert f0[0] == pytest.approx(-f1[0])
        assert f0[1] == pytest.approx(-f1[1])


class TestQueryRadius:
    """Neighborhood lookups."""

    def test_matches_linear_scan(self):
        xs, ys = grid_points()
        tree = QuadTree.build(xs, ys)
        cx, cy, r = 90.0, 100.0, 60.0
        expected = sorted(
            j for j in range(len(xs)) if (xs[j] - cx) ** 2 + (ys[j] - cy) ** 2 <= r * r
        )
        assert sorted(tree.query_radius(cx, cy, r)) == expected


class TestJitter:
    """Deterministic offsets."""

    def test_reproducible_and_bounded(self):
        assert deterministic_jitter("node-1") == deterministic_jitter("node-1")
        dx, dy = deterministic_jitter("node-1", 0.5)
        assert abs(dx) <= 0.5 and abs(dy) <= 0.5

    def test_separation_direction_antisymmetric_unit(self):
        ux, uy = separation_direction(3, 7)
        vx, vy = separation_direction(7, 3)
        assert math.hypot(ux, uy) == pytest.approx(1.0)
        assert (ux, uy) == pytest.approx((-vx, -vy))

"""
Quadtree Spatial Index

Region quadtree over node positions, rebuilt every tick. Cells live in a
flat arena (a list addressed by integer index) and refer to their children
by index, so the tree has no parent/child object references to untangle.

Each cell caches the node count, the centroid and the summed charge of its
subtree, which lets the Barnes-Hut query treat a distant cell as a single
point charge and bring the repulsion sum from O(N^2) to O(N log N).
"""

import hashlib
import math
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

# Coincident points stop splitting at this depth and share a leaf
MAX_DEPTH = 16

# Below this squared distance two points count as coincident
COINCIDENT_EPSILON = 1e-12


def deterministic_jitter(key: str, scale: float = 0.5) -> Tuple[float, float]:
    """Generate deterministic jitter based on a string key.

    Uses MD5 hash to produce reproducible pseudo-random offsets,
    ensuring layouts are consistent across runs.

    Args:
        key: String to hash (e.g., "3:7" for a node pair)
        scale: Maximum offset magnitude

    Returns:
        (dx, dy) offset tuple in range [-scale, scale]
    """
    h = hashlib.md5(key.encode()).hexdigest()
    x_val = int(h[:8], 16) / 0xFFFFFFFF  # Normalize to [0, 1]
    y_val = int(h[8:16], 16) / 0xFFFFFFFF
    return (x_val * 2 * scale - scale, y_val * 2 * scale - scale)


def separation_direction(i: int, j: int) -> Tuple[float, float]:
    """Unit vector from point i toward point j for coincident points.

    Antisymmetric: the direction for (j, i) is the negation of (i, j), so a
    coincident pair is pushed apart rather than dragged the same way.
    """
    lo, hi = (i, j) if i < j else (j, i)
    dx, dy = deterministic_jitter(f"{lo}:{hi}", scale=1.0)
    length = math.sqrt(dx * dx + dy * dy)
    if length < 1e-9:
        dx, dy, length = 1.0, 0.0, 1.0
    sign = 1.0 if i < j else -1.0
    return (sign * dx / length, sign * dy / length)


@dataclass
class QuadCell:
    """One square region of the quadtree."""
    x0: float
    y0: float
    size: float
    depth: int
    children: Optional[List[int]] = None  # Arena indices (NW, NE, SW, SE); None for leaves
    points: List[int] = field(default_factory=list)  # Point indices held by a leaf

    # Subtree aggregates
    count: int = 0
    cx: float = 0.0
    cy: float = 0.0
    charge: float = 0.0

    def contains(self, x: float, y: float) -> bool:
        return (self.x0 <= x <= self.x0 + self.size and
                self.y0 <= y <= self.y0 + self.size)

    def distance_sq_to(self, x: float, y: float) -> float:
        """Squared distance from a point to the nearest point of this cell."""
        dx = max(self.x0 - x, 0.0, x - (self.x0 + self.size))
        dy = max(self.y0 - y, 0.0, y - (self.y0 + self.size))
        return dx * dx + dy * dy


class QuadTree:
    """Arena-indexed region quadtree with Barnes-Hut repulsion queries."""

    def __init__(self):
        self.cells: List[QuadCell] = []
        self.xs: List[float] = []
        self.ys: List[float] = []
        self.charges: List[float] = []

    @classmethod
    def build(cls, xs: Sequence[float], ys: Sequence[float],
              charges: Optional[Sequence[float]] = None) -> "QuadTree":
        """
        Build a tree over the given points.

        Args:
            xs, ys: Point coordinates (same length)
            charges: Per-point charge (defaults to 1.0 each)
        """
        tree = cls()
        tree.xs = list(xs)
        tree.ys = list(ys)
        tree.charges = list(charges) if charges is not None else [1.0] * len(tree.xs)
        if len(tree.xs) != len(tree.ys) or len(tree.xs) != len(tree.charges):
            raise ValueError("xs, ys and charges must have the same length")
        if not tree.xs:
            return tree

        min_x, max_x = min(tree.xs), max(tree.xs)
        min_y, max_y = min(tree.ys), max(tree.ys)
        size = max(max_x - min_x, max_y - min_y, 1.0)
        # Small margin so points on the far edge fall strictly inside
        size *= 1.0 + 1e-6
        tree.cells.append(QuadCell(min_x, min_y, size, 0))

        for i in range(len(tree.xs)):
            tree._insert(i)
        tree._aggregate()
        return tree

    def __len__(self) -> int:
        return len(self.xs)

    @property
    def root(self) -> Optional[QuadCell]:
        return self.cells[0] if self.cells else None

    def _child_slot(self, cell: QuadCell, x: float, y: float) -> int:
        half = cell.size / 2
        qx = 1 if x >= cell.x0 + half else 0
        qy = 1 if y >= cell.y0 + half else 0
        return qy * 2 + qx

    def _split(self, cell_index: int):
        cell = self.cells[cell_index]
        half = cell.size / 2
        children = []
        for qy in (0, 1):
            for qx in (0, 1):
                children.append(len(self.cells))
                self.cells.append(QuadCell(cell.x0 + qx * half, cell.y0 + qy * half,
                                           half, cell.depth + 1))
        cell.children = children

        existing, cell.points = cell.points, []
        for j in existing:
            slot = self._child_slot(cell, self.xs[j], self.ys[j])
            self.cells[children[slot]].points.append(j)

    def _insert(self, i: int):
        x, y = self.xs[i], self.ys[i]
        cell_index = 0
        while True:
            cell = self.cells[cell_index]
            if cell.children is None:
                if not cell.points or cell.depth >= MAX_DEPTH:
                    cell.points.append(i)
                    return
                self._split(cell_index)
            cell_index = cell.children[self._child_slot(cell, x, y)]

    def _aggregate(self):
        # Children are always appended after their parent, so a reverse
        # sweep visits every child before the cell that owns it.
        for cell in reversed(self.cells):
            if cell.children is None:
                members = cell.points
                cell.count = len(members)
                if members:
                    cell.cx = sum(self.xs[j] for j in members) / cell.count
                    cell.cy = sum(self.ys[j] for j in members) / cell.count
                    cell.charge = sum(self.charges[j] for j in members)
                continue

            count = 0
            sx = sy = charge = 0.0
            for child_index in cell.children:
                child = self.cells[child_index]
                if child.count == 0:
                    continue
                count += child.count
                sx += child.cx * child.count
                sy += child.cy * child.count
                charge += child.charge
            cell.count = count
            cell.charge = charge
            if count:
                cell.cx = sx / count
                cell.cy = sy / count

    def repulsion(self, index: int, theta: float, distance_min: float,
                  distance_max: float) -> Tuple[float, float]:
        """
        Approximate the summed charge interaction on one point (Barnes-Hut).

        Each contribution is charge * unit(other - self) / max(d, distance_min);
        negative charges therefore push the point away. Cells not containing
        the query point whose width/distance ratio is below theta act as a
        single charge at their centroid. Anything beyond distance_max is
        ignored.

        Returns:
            (fx, fy) before alpha scaling
        """
        if len(self.xs) < 2:
            return (0.0, 0.0)

        x, y = self.xs[index], self.ys[index]
        max_sq = distance_max * distance_max
        theta_sq = theta * theta
        fx = fy = 0.0

        stack = [0]
        while stack:
            cell = self.cells[stack.pop()]
            if cell.count == 0 or cell.distance_sq_to(x, y) > max_sq:
                continue

            if cell.children is not None:
                dx = cell.cx - x
                dy = cell.cy - y
                d_sq = dx * dx + dy * dy
                far_enough = (not cell.contains(x, y) and d_sq > COINCIDENT_EPSILON and
                              cell.size * cell.size < theta_sq * d_sq)
                if not far_enough:
                    stack.extend(cell.children)
                    continue
                if d_sq > max_sq:
                    continue
                d = math.sqrt(d_sq)
                scale = cell.charge / (d * max(d, distance_min))
                fx += dx * scale
                fy += dy * scale
                continue

            for j in cell.points:
                if j == index:
                    continue
                pfx, pfy = self._pair(index, j, x, y, distance_min, max_sq)
                fx += pfx
                fy += pfy

        return (fx, fy)

    def _pair(self, i: int, j: int, x: float, y: float, distance_min: float,
              max_sq: float) -> Tuple[float, float]:
        dx = self.xs[j] - x
        dy = self.ys[j] - y
        d_sq = dx * dx + dy * dy
        if d_sq > max_sq:
            return (0.0, 0.0)
        if d_sq < COINCIDENT_EPSILON:
            ux, uy = separation_direction(i, j)
            magnitude = self.charges[j] / distance_min
            return (ux * magnitude, uy * magnitude)
        d = math.sqrt(d_sq)
        scale = self.charges[j] / (d * max(d, distance_min))
        return (dx * scale, dy * scale)

    def query_radius(self, x: float, y: float, radius: float) -> List[int]:
        """Return indices of all points within radius of (x, y)."""
        found: List[int] = []
        if not self.cells:
            return found
        r_sq = radius * radius
        stack = [0]
        while stack:
            cell = self.cells[stack.pop()]
            if cell.count == 0 or cell.distance_sq_to(x, y) > r_sq:
                continue
            if cell.children is not None:
                stack.extend(cell.children)
                continue
            for j in cell.points:
                dx = self.xs[j] - x
                dy = self.ys[j] - y
                if dx * dx + dy * dy <= r_sq:
                    found.append(j)
        return found


def brute_force_repulsion(xs: Sequence[float], ys: Sequence[float],
                          charges: Sequence[float], index: int,
                          distance_min: float, distance_max: float) -> Tuple[float, float]:
    """Exact O(N) reference for QuadTree.repulsion on a single point."""
    tree = QuadTree()
    tree.xs, tree.ys, tree.charges = list(xs), list(ys), list(charges)
    x, y = tree.xs[index], tree.ys[index]
    max_sq = distance_max * distance_max
    fx = fy = 0.0
    for j in range(len(tree.xs)):
        if j == index:
            continue
        pfx, pfy = tree._pair(index, j, x, y, distance_min, max_sq)
        fx += pfx
        fy += pfy
    return (fx, fy)

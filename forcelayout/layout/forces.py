"""
Force Accumulators

Independent force contributors for the layout simulation. Each one adds
its contribution for the current tick into the nodes' net force
accumulators (fx, fy); the integrator then turns the summed force into a
velocity change. All forces are scaled by the simulation temperature
(alpha) so the layout settles as the system cools.

Forces applied:
1. Link - springs along edges, stiffer for structural edge types
2. Repulsion - Barnes-Hut many-body repulsion through the quadtree
3. Center - pulls every node toward the middle of the bounds
4. Boundary - soft spring back inside the padded bounds

Collision resolution is not a force: it runs after integration and moves
overlapping nodes apart directly.
"""

import logging
import math
from enum import Enum
from typing import Dict, List, Optional, Sequence

from ..graph.abstraction import DEPENDENCY, HIERARCHY, LayoutEdge, LayoutNode
from .config import SimulationConfig
from .spatial_index import QuadTree, separation_direction

logger = logging.getLogger(__name__)

# Floor for any distance used as a denominator
DISTANCE_EPSILON = 1e-6

# Spring stiffness multiplier per edge type; other types use 1.0
LINK_TYPE_MULTIPLIERS: Dict[str, float] = {
    HIERARCHY: 1.5,
    DEPENDENCY: 0.7,
}

# Largest overlap, in world units, left by the end-of-run settle
SETTLE_TOLERANCE = 0.5
MAX_SETTLE_PASSES = 100


class ForceType(Enum):
    """Types of forces in the simulation."""
    LINK = "link"               # Springs along edges
    REPULSION = "repulsion"     # Many-body repulsion
    CENTER = "center"           # Pull toward the center of the bounds
    BOUNDARY = "boundary"       # Keeps nodes inside the padded bounds


def _split(source: LayoutNode, target: LayoutNode):
    """Share of a pairwise correction applied to (source, target)."""
    if source.fixed:
        return 0.0, 1.0
    if target.fixed:
        return 1.0, 0.0
    return 0.5, 0.5


def _mass_split(a: LayoutNode, b: LayoutNode):
    """Like _split, but the lighter node takes the larger share."""
    if a.fixed or b.fixed:
        return _split(a, b)
    total = a.mass + b.mass
    return b.mass / total, a.mass / total


class ForceAccumulator:
    """Base class for one force contributor."""

    force_type: ForceType

    def __init__(self, config: SimulationConfig):
        self.config = config
        self.dropped = 0  # Non-finite contributions discarded so far

    @property
    def enabled(self) -> bool:
        return True

    def accumulate(self, nodes: Sequence[LayoutNode], alpha: float,
                   index: Optional[QuadTree] = None) -> float:
        """Add this force to every node's accumulator.

        Returns:
            Sum of the magnitudes added (for diagnostics)
        """
        raise NotImplementedError

    def _add(self, node: LayoutNode, fx: float, fy: float) -> float:
        if not node.add_force(fx, fy):
            self.dropped += 1
            return 0.0
        return math.sqrt(fx * fx + fy * fy)


class LinkForce(ForceAccumulator):
    """Spring force along each edge.

    The spring's rest length is the edge's own distance or the configured
    link distance. The correction is proportional to the stretch, points
    along the edge axis, and is split equally between the endpoints unless
    one of them is fixed, in which case the free endpoint takes all of it.
    """

    force_type = ForceType.LINK

    def __init__(self, config: SimulationConfig, edges: Sequence[LayoutEdge]):
        super().__init__(config)
        self.edges = list(edges)

    @property
    def enabled(self) -> bool:
        return bool(self.edges) and self.config.force_strength > 0

    def stiffness(self, edge: LayoutEdge) -> float:
        multiplier = LINK_TYPE_MULTIPLIERS.get(edge.type, 1.0)
        return self.config.force_strength * multiplier * max(0.0, edge.weight)

    def rest_length(self, edge: LayoutEdge) -> float:
        if edge.distance is not None:
            return max(0.0, edge.distance)
        return self.config.link_distance

    def accumulate(self, nodes, alpha, index=None) -> float:
        total = 0.0
        if not self.enabled:
            return total

        for edge in self.edges:
            source = nodes[edge.source]
            target = nodes[edge.target]
            if source.fixed and target.fixed:
                continue

            dx = target.x - source.x
            dy = target.y - source.y
            distance = math.sqrt(dx * dx + dy * dy)
            if distance < DISTANCE_EPSILON:
                ux, uy = separation_direction(edge.source, edge.target)
                distance = DISTANCE_EPSILON
                dx, dy = ux * distance, uy * distance

            stretch = (distance - self.rest_length(edge)) / distance
            k = stretch * self.stiffness(edge) * alpha
            cx, cy = dx * k, dy * k  # Positive stretch pulls source toward target

            source_share, target_share = _split(source, target)
            if source_share:
                total += self._add(source, cx * source_share, cy * source_share)
            if target_share:
                total += self._add(target, -cx * target_share, -cy * target_share)

        return total


class ManyBodyForce(ForceAccumulator):
    """Barnes-Hut repulsion between all nodes.

    Each node carries a charge of -node_repulsion scaled by its size, so
    larger nodes push harder. Interactions closer than distance_min are
    evaluated at distance_min; those beyond distance_max are ignored.
    """

    force_type = ForceType.REPULSION

    @property
    def enabled(self) -> bool:
        return self.config.node_repulsion > 0

    def charges(self, nodes: Sequence[LayoutNode]) -> List[float]:
        strength = -self.config.node_repulsion
        return [strength * node.charge_scale for node in nodes]

    def accumulate(self, nodes, alpha, index=None) -> float:
        total = 0.0
        if not self.enabled or len(nodes) < 2:
            return total

        if index is None:
            index = QuadTree.build([n.x for n in nodes], [n.y for n in nodes],
                                   self.charges(nodes))

        for node in nodes:
            # Fixed nodes still repel through their charge in the tree
            if node.fixed:
                continue
            fx, fy = index.repulsion(node.index, self.config.theta,
                                     self.config.distance_min, self.config.distance_max)
            total += self._add(node, fx * alpha, fy * alpha)
        return total


class CenterForce(ForceAccumulator):
    """Pulls every node toward the center of the bounds."""

    force_type = ForceType.CENTER

    @property
    def enabled(self) -> bool:
        return self.config.center_force > 0

    def accumulate(self, nodes, alpha, index=None) -> float:
        total = 0.0
        if not self.enabled:
            return total

        cx, cy = self.config.center
        k = self.config.center_force * alpha
        for node in nodes:
            if node.fixed:
                continue
            total += self._add(node, (cx - node.x) * k, (cy - node.y) * k)
        return total


class BoundaryForce(ForceAccumulator):
    """Soft spring pulling nodes back inside [padding, dimension - padding].

    Nodes inside the padded area feel nothing; nodes outside are pulled
    toward the nearest legal coordinate with a low strength, so the
    boundary never fights harder than the primary forces.
    """

    force_type = ForceType.BOUNDARY

    @property
    def enabled(self) -> bool:
        return self.config.boundary_strength > 0

    def accumulate(self, nodes, alpha, index=None) -> float:
        total = 0.0
        if not self.enabled:
            return total

        padding = self.config.padding
        min_x, max_x = padding, self.config.bounds.width - padding
        min_y, max_y = padding, self.config.bounds.height - padding
        k = self.config.boundary_strength * alpha

        for node in nodes:
            if node.fixed:
                continue
            fx = fy = 0.0
            if node.x < min_x:
                fx = (min_x - node.x) * k
            elif node.x > max_x:
                fx = (max_x - node.x) * k
            if node.y < min_y:
                fy = (min_y - node.y) * k
            elif node.y > max_y:
                fy = (max_y - node.y) * k
            if fx or fy:
                total += self._add(node, fx, fy)
        return total


class CollisionResolver:
    """Post-integration relaxation that pushes overlapping nodes apart.

    Nodes are approximated by circles of radius max(width, height) / 2
    times the configured collision radius. Each pass moves every
    overlapping pair apart along the line between their centers by the
    overlap times collision_strength, and removes the velocity with which
    they were approaching each other. The push is shared in inverse
    proportion to node mass, so heavier nodes give way less.
    """

    def __init__(self, config: SimulationConfig):
        self.config = config
        self._skip_logged = False

    @property
    def enabled(self) -> bool:
        return self.config.enable_collision and self.config.collision_radius > 0

    def _active(self, nodes: Sequence[LayoutNode]) -> bool:
        if not self.enabled or len(nodes) < 2:
            return False
        if len(nodes) > self.config.collision_node_limit:
            if not self._skip_logged:
                logger.debug("Collision resolution skipped: %d nodes exceeds limit %d",
                             len(nodes), self.config.collision_node_limit)
                self._skip_logged = True
            return False
        return True

    def resolve(self, nodes: Sequence[LayoutNode]) -> int:
        """Run the configured relaxation passes.

        Returns:
            Number of overlapping pairs corrected (summed over passes)
        """
        if not self._active(nodes):
            return 0

        corrected = 0
        for _ in range(self.config.collision_iterations):
            count, _overlap = self.relax(nodes, self.config.collision_strength)
            corrected += count
        return corrected

    def settle(self, nodes: Sequence[LayoutNode]) -> int:
        """Run full-strength passes until no pair overlaps by more than
        SETTLE_TOLERANCE, or MAX_SETTLE_PASSES have run.

        Returns:
            Number of passes run
        """
        if not self._active(nodes):
            return 0

        passes = 0
        overlap = math.inf
        while overlap > SETTLE_TOLERANCE and passes < MAX_SETTLE_PASSES:
            _count, overlap = self.relax(nodes, 1.0)
            passes += 1

        if overlap > SETTLE_TOLERANCE:
            logger.debug("Overlap of %.2f left after %d settle passes", overlap, passes)
        return passes

    def relax(self, nodes: Sequence[LayoutNode], strength: float):
        """One relaxation pass over every overlapping pair.

        Returns:
            (pairs corrected, largest overlap found)
        """
        radii = [node.collision_radius(self.config.collision_radius) for node in nodes]
        max_radius = max(radii)
        index = QuadTree.build([n.x for n in nodes], [n.y for n in nodes])

        corrected = 0
        max_overlap = 0.0
        for i, a in enumerate(nodes):
            for j in index.query_radius(a.x, a.y, radii[i] + max_radius):
                if j <= i:
                    continue
                b = nodes[j]
                if a.fixed and b.fixed:
                    continue
                overlap = self._separate(a, b, radii[i] + radii[j], strength)
                if overlap > 0:
                    corrected += 1
                    max_overlap = max(max_overlap, overlap)
        return corrected, max_overlap

    def _separate(self, a: LayoutNode, b: LayoutNode, min_distance: float,
                  strength: float) -> float:
        dx = b.x - a.x
        dy = b.y - a.y
        d_sq = dx * dx + dy * dy
        if d_sq >= min_distance * min_distance:
            return 0.0

        distance = math.sqrt(d_sq)
        if distance < DISTANCE_EPSILON:
            ux, uy = separation_direction(a.index, b.index)
        else:
            ux, uy = dx / distance, dy / distance

        overlap = min_distance - distance
        push = overlap * strength
        a_share, b_share = _mass_split(a, b)
        a.x -= ux * push * a_share
        a.y -= uy * push * a_share
        b.x += ux * push * b_share
        b.y += uy * push * b_share

        # Inelastic contact: cancel the approaching part of the relative velocity
        approach = (b.vx - a.vx) * ux + (b.vy - a.vy) * uy
        if approach < 0:
            a.vx += ux * approach * a_share
            a.vy += uy * approach * a_share
            b.vx -= ux * approach * b_share
            b.vy -= uy * approach * b_share
        return overlap


def build_forces(config: SimulationConfig,
                 edges: Sequence[LayoutEdge]) -> List[ForceAccumulator]:
    """Create the standard force contributors for a run."""
    return [
        LinkForce(config, edges),
        ManyBodyForce(config),
        CenterForce(config),
        BoundaryForce(config),
    ]

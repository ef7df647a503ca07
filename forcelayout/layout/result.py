"""Immutable layout result handed to rendering."""

import math
from dataclasses import dataclass
from typing import Any, Dict, Sequence, Tuple

from ..graph.abstraction import LayoutEdge, LayoutNode
from .integrator import SimulationState


@dataclass(frozen=True)
class Bounds:
    """Axis-aligned bounding box of the laid-out graph."""
    min_x: float
    min_y: float
    max_x: float
    max_y: float

    @property
    def width(self) -> float:
        return self.max_x - self.min_x

    @property
    def height(self) -> float:
        return self.max_y - self.min_y

    @property
    def center(self) -> Tuple[float, float]:
        return ((self.min_x + self.max_x) / 2, (self.min_y + self.max_y) / 2)

    @classmethod
    def around(cls, nodes: Sequence[LayoutNode], padding: float = 0.0) -> "Bounds":
        """Box over node centers plus half their size, grown by padding."""
        min_x = min_y = math.inf
        max_x = max_y = -math.inf
        for node in nodes:
            half_w, half_h = node.width / 2, node.height / 2
            min_x = min(min_x, node.x - half_w)
            min_y = min(min_y, node.y - half_h)
            max_x = max(max_x, node.x + half_w)
            max_y = max(max_y, node.y + half_h)
        if not nodes:
            min_x = min_y = max_x = max_y = 0.0
        return cls(min_x - padding, min_y - padding, max_x + padding, max_y + padding)

    def to_dict(self) -> Dict[str, float]:
        return {
            "minX": self.min_x,
            "minY": self.min_y,
            "maxX": self.max_x,
            "maxY": self.max_y,
            "width": self.width,
            "height": self.height,
        }


@dataclass(frozen=True)
class PositionedNode:
    """Final placement of one node."""
    id: str
    x: float
    y: float
    width: float
    height: float
    fixed: bool = False


@dataclass(frozen=True)
class EdgeGeometry:
    """Edge with endpoint coordinates copied from the final node positions."""
    id: str
    source_id: str
    target_id: str
    type: str
    x1: float
    y1: float
    x2: float
    y2: float

    @property
    def length(self) -> float:
        return math.hypot(self.x2 - self.x1, self.y2 - self.y1)


@dataclass(frozen=True)
class LayoutResult:
    """Outcome of one layout run."""
    nodes: Tuple[PositionedNode, ...]
    edges: Tuple[EdgeGeometry, ...]
    bounds: Bounds
    converged: bool
    iterations: int
    final_alpha: float
    state: SimulationState
    elapsed: float = 0.0  # seconds

    @classmethod
    def from_simulation(cls, nodes: Sequence[LayoutNode], edges: Sequence[LayoutEdge],
                        state: SimulationState, iterations: int, final_alpha: float,
                        padding: float, elapsed: float = 0.0) -> "LayoutResult":
        placed = tuple(
            PositionedNode(n.id, n.x, n.y, n.width, n.height, n.fixed) for n in nodes
        )
        geometry = []
        for edge in edges:
            source, target = nodes[edge.source], nodes[edge.target]
            geometry.append(EdgeGeometry(
                id=edge.id,
                source_id=source.id,
                target_id=target.id,
                type=edge.type,
                x1=source.x,
                y1=source.y,
                x2=target.x,
                y2=target.y,
            ))
        return cls(
            nodes=placed,
            edges=tuple(geometry),
            bounds=Bounds.around(nodes, padding),
            converged=state is SimulationState.CONVERGED,
            iterations=iterations,
            final_alpha=final_alpha,
            state=state,
            elapsed=elapsed,
        )

    @property
    def positions(self) -> Dict[str, Tuple[float, float]]:
        """Fresh id -> (x, y) mapping."""
        return {n.id: (n.x, n.y) for n in self.nodes}

    def position(self, node_id: str) -> Tuple[float, float]:
        for node in self.nodes:
            if node.id == node_id:
                return (node.x, node.y)
        raise KeyError(node_id)

    def distance(self, a: str, b: str) -> float:
        ax, ay = self.position(a)
        bx, by = self.position(b)
        return math.hypot(bx - ax, by - ay)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "nodes": [
                {
                    "id": n.id,
                    "position": {"x": n.x, "y": n.y},
                    "size": {"width": n.width, "height": n.height},
                    "fixed": n.fixed,
                }
                for n in self.nodes
            ],
            "edges": [
                {
                    "id": e.id,
                    "sourceId": e.source_id,
                    "targetId": e.target_id,
                    "type": e.type,
                    "source": {"x": e.x1, "y": e.y1},
                    "target": {"x": e.x2, "y": e.y2},
                }
                for e in self.edges
            ],
            "bounds": self.bounds.to_dict(),
            "converged": self.converged,
            "iterations": self.iterations,
            "finalAlpha": self.final_alpha,
            "state": self.state.value,
            "elapsed": self.elapsed,
        }

"""
Graph Abstraction Layer

Describes the attributed graph handed to the layout engine by the graph
preparation stage, and the per-run kinematic state the engine builds from
it. Input objects (GraphNode, GraphEdge, Graph) are plain data; LayoutNode
and LayoutEdge are created fresh for every run and owned by that run.
"""

import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from ..errors import GraphValidationError

DEFAULT_NODE_WIDTH = 50.0
DEFAULT_NODE_HEIGHT = 50.0

HIERARCHY = "hierarchy"
DEPENDENCY = "dependency"
CONNECTION = "connection"


def _point(value: Any, what: str) -> Optional[Tuple[float, float]]:
    """Coerce {x, y} mappings or (x, y) pairs into a float tuple."""
    if value is None:
        return None
    try:
        if isinstance(value, dict):
            x, y = float(value["x"]), float(value["y"])
        else:
            x, y = (float(v) for v in value)
    except (KeyError, TypeError, ValueError):
        raise GraphValidationError(f"{what} must be an (x, y) pair, got {value!r}")
    if not (math.isfinite(x) and math.isfinite(y)):
        raise GraphValidationError(f"{what} must be finite, got ({x}, {y})")
    return (x, y)


def _number(value: Any, what: str) -> float:
    """Coerce a value to a finite float."""
    if isinstance(value, bool):
        raise GraphValidationError(f"{what} must be a number, got {value!r}")
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise GraphValidationError(f"{what} must be a number, got {value!r}")
    if not math.isfinite(number):
        raise GraphValidationError(f"{what} must be finite, got {number}")
    return number


@dataclass
class GraphNode:
    """A node as produced by graph preparation."""
    id: str
    type: str = "default"
    width: float = DEFAULT_NODE_WIDTH
    height: float = DEFAULT_NODE_HEIGHT
    position: Optional[Tuple[float, float]] = None  # Prior position, seeds re-layout
    fixed: bool = False
    fixed_position: Optional[Tuple[float, float]] = None
    weight: float = 1.0

    @property
    def is_fixed(self) -> bool:
        return self.fixed or self.fixed_position is not None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GraphNode":
        if not isinstance(data, dict):
            raise GraphValidationError(f"Node entry must be a mapping, got {data!r}")
        node_id = data.get("id")
        if node_id is None or str(node_id) == "":
            raise GraphValidationError(f"Node is missing required 'id': {data!r}")

        size = data.get("size") or {}
        if not isinstance(size, dict):
            raise GraphValidationError(
                f"Node '{node_id}' size must be a mapping with width and height, got {size!r}"
            )
        width = data.get("width", size.get("width", DEFAULT_NODE_WIDTH))
        height = data.get("height", size.get("height", DEFAULT_NODE_HEIGHT))
        try:
            width, height = float(width), float(height)
        except (TypeError, ValueError):
            raise GraphValidationError(f"Node '{node_id}' has a non-numeric size")

        weight = _number(data.get("weight", 1.0), f"Node '{node_id}' weight")
        if weight <= 0:
            raise GraphValidationError(f"Node '{node_id}' weight must be positive, got {weight}")

        fixed_position = data.get("fixed_position", data.get("fixedPosition"))
        return cls(
            id=str(node_id),
            type=str(data.get("type", "default")),
            width=max(0.0, width),
            height=max(0.0, height),
            position=_point(data.get("position"), f"Node '{node_id}' position"),
            fixed=bool(data.get("fixed", False)),
            fixed_position=_point(fixed_position, f"Node '{node_id}' fixed position"),
            weight=weight,
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": self.id,
            "type": self.type,
            "size": {"width": self.width, "height": self.height},
        }
        if self.position is not None:
            data["position"] = {"x": self.position[0], "y": self.position[1]}
        if self.fixed:
            data["fixed"] = True
        if self.fixed_position is not None:
            data["fixedPosition"] = {"x": self.fixed_position[0], "y": self.fixed_position[1]}
        if self.weight != 1.0:
            data["weight"] = self.weight
        return data


@dataclass
class GraphEdge:
    """A typed, weighted connection between two nodes."""
    id: str
    source_id: str
    target_id: str
    type: str = CONNECTION  # "hierarchy", "dependency", "connection"
    weight: float = 1.0
    distance: Optional[float] = None  # Overrides the configured link distance

    @classmethod
    def from_dict(cls, data: Dict[str, Any], index: int = 0) -> "GraphEdge":
        if not isinstance(data, dict):
            raise GraphValidationError(f"Edge entry must be a mapping, got {data!r}")
        source = data.get("source_id", data.get("sourceId", data.get("source")))
        target = data.get("target_id", data.get("targetId", data.get("target")))
        if source is None or target is None:
            raise GraphValidationError(
                f"Edge at index {index} is missing its source or target: {data!r}"
            )
        edge_id = str(data.get("id", f"edge-{index}"))
        distance = data.get("distance")
        return cls(
            id=edge_id,
            source_id=str(source),
            target_id=str(target),
            type=str(data.get("type", CONNECTION)),
            weight=_number(data.get("weight", 1.0), f"Edge '{edge_id}' weight"),
            distance=(_number(distance, f"Edge '{edge_id}' distance")
                      if distance is not None else None),
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": self.id,
            "sourceId": self.source_id,
            "targetId": self.target_id,
            "type": self.type,
        }
        if self.weight != 1.0:
            data["weight"] = self.weight
        if self.distance is not None:
            data["distance"] = self.distance
        return data


@dataclass
class GraphStats:
    """Summary statistics used to pick a layout preset."""
    node_count: int
    edge_count: int
    avg_degree: float
    is_hierarchical: bool


@dataclass
class Graph:
    """Flat node/edge list produced by graph preparation."""
    nodes: List[GraphNode] = field(default_factory=list)
    edges: List[GraphEdge] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Graph":
        if not isinstance(data, dict):
            raise GraphValidationError("Graph data must be a mapping with 'nodes' and 'edges'")
        nodes = data.get("nodes")
        edges = data.get("edges", [])
        if not isinstance(nodes, list) or not isinstance(edges, list):
            raise GraphValidationError("Graph data must contain 'nodes' and 'edges' lists")
        return cls(
            nodes=[GraphNode.from_dict(n) for n in nodes],
            edges=[GraphEdge.from_dict(e, i) for i, e in enumerate(edges)],
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "nodes": [n.to_dict() for n in self.nodes],
            "edges": [e.to_dict() for e in self.edges],
        }

    def add_node(self, node_id: str, **kwargs) -> GraphNode:
        node = GraphNode(id=node_id, **kwargs)
        self.nodes.append(node)
        return node

    def add_edge(self, source_id: str, target_id: str, edge_type: str = CONNECTION,
                 edge_id: Optional[str] = None, **kwargs) -> GraphEdge:
        edge = GraphEdge(
            id=edge_id or f"{source_id}->{target_id}",
            source_id=source_id,
            target_id=target_id,
            type=edge_type,
            **kwargs,
        )
        self.edges.append(edge)
        return edge

    def get_node(self, node_id: str) -> Optional[GraphNode]:
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    def validate(self):
        """Re-check the preconditions of a layout run.

        Raises:
            GraphValidationError: empty node set, duplicate node ids, a
                non-positive node weight, or an edge referencing an unknown node
        """
        if not self.nodes:
            raise GraphValidationError("Graph must contain at least one node")

        seen = set()
        for node in self.nodes:
            if node.id in seen:
                raise GraphValidationError(f"Duplicate node id '{node.id}'")
            seen.add(node.id)
            if not node.weight > 0:
                raise GraphValidationError(
                    f"Node '{node.id}' weight must be positive, got {node.weight}"
                )

        for edge in self.edges:
            for endpoint in (edge.source_id, edge.target_id):
                if endpoint not in seen:
                    raise GraphValidationError(
                        f"Edge '{edge.id}' references unknown node '{endpoint}'"
                    )

    def statistics(self) -> GraphStats:
        node_count = len(self.nodes)
        edge_count = len(self.edges)
        avg_degree = (2.0 * edge_count / node_count) if node_count else 0.0
        hierarchy_edges = sum(1 for e in self.edges if e.type == HIERARCHY)
        is_hierarchical = edge_count > 0 and hierarchy_edges * 2 >= edge_count
        return GraphStats(
            node_count=node_count,
            edge_count=edge_count,
            avg_degree=avg_degree,
            is_hierarchical=is_hierarchical,
        )


@dataclass
class LayoutNode:
    """Kinematic state of one node for the duration of a single run."""
    id: str
    index: int
    x: float
    y: float
    width: float = DEFAULT_NODE_WIDTH
    height: float = DEFAULT_NODE_HEIGHT
    vx: float = 0.0
    vy: float = 0.0
    fx: float = 0.0  # Net force accumulated this tick
    fy: float = 0.0
    fixed: bool = False
    pin_x: float = 0.0
    pin_y: float = 0.0
    mass: float = 1.0  # From the node weight; divides every force

    def clear_force(self):
        self.fx = 0.0
        self.fy = 0.0

    def add_force(self, fx: float, fy: float) -> bool:
        """Accumulate a force contribution, dropping non-finite values."""
        if not (math.isfinite(fx) and math.isfinite(fy)):
            return False
        self.fx += fx
        self.fy += fy
        return True

    def collision_radius(self, multiplier: float) -> float:
        return max(self.width, self.height) / 2 * multiplier

    @property
    def charge_scale(self) -> float:
        """Repulsion multiplier; larger nodes push harder."""
        return (self.width + self.height) / 100.0


@dataclass(frozen=True)
class LayoutEdge:
    """Edge with endpoints resolved to node indices."""
    id: str
    source: int
    target: int
    type: str = CONNECTION
    weight: float = 1.0
    distance: Optional[float] = None

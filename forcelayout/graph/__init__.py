"""Graph model consumed by the layout engine."""

from .abstraction import (
    Graph,
    GraphNode,
    GraphEdge,
    GraphStats,
    LayoutNode,
    LayoutEdge,
    HIERARCHY,
    DEPENDENCY,
    CONNECTION,
)
from .loader import load_graph, save_graph

__all__ = [
    "Graph",
    "GraphNode",
    "GraphEdge",
    "GraphStats",
    "LayoutNode",
    "LayoutEdge",
    "HIERARCHY",
    "DEPENDENCY",
    "CONNECTION",
    "load_graph",
    "save_graph",
]

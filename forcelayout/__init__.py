"""
ForceLayout - Force-Directed Diagram Layout

Positions the nodes of a diagram graph by simulating springs along edges,
Barnes-Hut repulsion between nodes, and a gentle pull toward the center,
cooled until the layout settles.
"""

__version__ = "0.1.0"

from .errors import (
    ConfigError,
    GraphValidationError,
    LayoutError,
    SimulationCancelled,
    SimulationTimeout,
)
from .graph import Graph, GraphEdge, GraphNode, load_graph
from .layout import (
    LayoutBounds,
    LayoutResult,
    LayoutSession,
    SimulationConfig,
    get_preset,
    list_presets,
    run_layout,
)

__all__ = [
    "ConfigError",
    "GraphValidationError",
    "LayoutError",
    "SimulationCancelled",
    "SimulationTimeout",
    "Graph",
    "GraphEdge",
    "GraphNode",
    "load_graph",
    "LayoutBounds",
    "LayoutResult",
    "LayoutSession",
    "SimulationConfig",
    "get_preset",
    "list_presets",
    "run_layout",
]

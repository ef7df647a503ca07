"""Force-directed layout engine: parameters, physics and session driver."""

from .config import LayoutBounds, SimulationConfig, load_config, size_tier_for
from .presets import LayoutPreset, PRESETS, get_preset, list_presets, preset_for_graph
from .spatial_index import QuadTree
from .forces import (
    ForceType,
    LinkForce,
    ManyBodyForce,
    CenterForce,
    BoundaryForce,
    CollisionResolver,
)
from .integrator import CoolingController, Integrator, SimulationState
from .result import Bounds, EdgeGeometry, LayoutResult, PositionedNode
from .session import LayoutRun, LayoutSession, TickProgress, layout_many, run_layout

__all__ = [
    "LayoutBounds",
    "SimulationConfig",
    "load_config",
    "size_tier_for",
    "LayoutPreset",
    "PRESETS",
    "get_preset",
    "list_presets",
    "preset_for_graph",
    "QuadTree",
    "ForceType",
    "LinkForce",
    "ManyBodyForce",
    "CenterForce",
    "BoundaryForce",
    "CollisionResolver",
    "CoolingController",
    "Integrator",
    "SimulationState",
    "Bounds",
    "EdgeGeometry",
    "LayoutResult",
    "PositionedNode",
    "LayoutRun",
    "LayoutSession",
    "TickProgress",
    "layout_many",
    "run_layout",
]

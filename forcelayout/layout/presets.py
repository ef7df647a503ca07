"""
Layout Presets

Named parameter sets for common diagram shapes. Presets are pure data:
applying one replaces the force and cooling parameters of a config while
keeping its bounds, padding and engine limits.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional

from ..errors import ConfigError
from .config import SimulationConfig


@dataclass(frozen=True)
class LayoutPreset:
    """Force and cooling parameters tuned for one kind of diagram."""

    name: str
    description: str = ""

    force_strength: float = 0.3
    link_distance: float = 100.0
    node_repulsion: float = 300.0
    center_force: float = 0.1
    iterations: int = 300
    alpha_decay: float = 0.0228
    velocity_decay: float = 0.4
    enable_collision: bool = True
    collision_radius: float = 1.5

    def to_overrides(self) -> Dict[str, object]:
        return {
            "force_strength": self.force_strength,
            "link_distance": self.link_distance,
            "node_repulsion": self.node_repulsion,
            "center_force": self.center_force,
            "iterations": self.iterations,
            "alpha_decay": self.alpha_decay,
            "velocity_decay": self.velocity_decay,
            "enable_collision": self.enable_collision,
            "collision_radius": self.collision_radius,
        }

    def apply(self, config: Optional[SimulationConfig] = None) -> SimulationConfig:
        """Return a copy of config (or the defaults) with this preset applied."""
        base = config if config is not None else SimulationConfig()
        return base.with_overrides(**self.to_overrides())


# Pre-defined presets

SMALL = LayoutPreset(
    name="small",
    description="Small diagrams (< 20 nodes), favors visual quality",
    force_strength=0.4,
    link_distance=80.0,
    node_repulsion=200.0,
    center_force=0.15,
    iterations=400,
    alpha_decay=0.02,
    enable_collision=True,
    collision_radius=2.0,
)

MEDIUM = LayoutPreset(
    name="medium",
    description="Medium diagrams (20-99 nodes), balanced",
    force_strength=0.3,
    link_distance=100.0,
    node_repulsion=300.0,
    center_force=0.1,
    iterations=250,
    alpha_decay=0.03,
    enable_collision=True,
    collision_radius=1.5,
)

LARGE = LayoutPreset(
    name="large",
    description="Large diagrams (100+ nodes), favors speed",
    force_strength=0.2,
    link_distance=120.0,
    node_repulsion=400.0,
    center_force=0.05,
    iterations=150,
    alpha_decay=0.05,
    velocity_decay=0.6,
    enable_collision=False,
)

HIERARCHICAL = LayoutPreset(
    name="hierarchical",
    description="Trees and parent/child structures, stiff short links",
    force_strength=0.5,
    link_distance=90.0,
    node_repulsion=250.0,
    center_force=0.1,
    iterations=350,
    alpha_decay=0.025,
    enable_collision=True,
    collision_radius=1.5,
)

NETWORK = LayoutPreset(
    name="network",
    description="Densely connected graphs, long links and strong repulsion",
    force_strength=0.25,
    link_distance=130.0,
    node_repulsion=450.0,
    center_force=0.08,
    iterations=300,
    alpha_decay=0.03,
    enable_collision=True,
    collision_radius=1.2,
)

PERFORMANCE = LayoutPreset(
    name="performance",
    description="Fastest settling, no collision pass",
    force_strength=0.2,
    link_distance=100.0,
    node_repulsion=250.0,
    center_force=0.1,
    iterations=100,
    alpha_decay=0.1,
    velocity_decay=0.7,
    enable_collision=False,
)

QUALITY = LayoutPreset(
    name="quality",
    description="Slow cooling and wide collision spacing",
    force_strength=0.4,
    link_distance=90.0,
    node_repulsion=350.0,
    center_force=0.12,
    iterations=500,
    alpha_decay=0.015,
    velocity_decay=0.3,
    enable_collision=True,
    collision_radius=2.0,
)

# Preset registry
PRESETS: Dict[str, LayoutPreset] = {
    "small": SMALL,
    "medium": MEDIUM,
    "large": LARGE,
    "hierarchical": HIERARCHICAL,
    "network": NETWORK,
    "performance": PERFORMANCE,
    "quality": QUALITY,
}

# Average degree at which a graph counts as a dense network
NETWORK_DEGREE = 3.0


def get_preset(name: str) -> LayoutPreset:
    """
    Get layout preset by name.

    Raises:
        ConfigError: If preset name is not found
    """
    if name not in PRESETS:
        available = ", ".join(sorted(PRESETS.keys()))
        raise ConfigError(f"Unknown layout preset '{name}'. Available: {available}")
    return PRESETS[name]


def list_presets() -> List[str]:
    """List all available preset names."""
    return sorted(PRESETS.keys())


def preset_for_graph(stats) -> str:
    """
    Infer the preset name from graph statistics.

    Very large graphs always get the speed-oriented presets; otherwise
    structure (hierarchy, density) wins over size.
    """
    if stats.node_count >= 200:
        return "performance"
    if stats.node_count >= 100:
        return "large"
    if stats.is_hierarchical:
        return "hierarchical"
    if stats.avg_degree >= NETWORK_DEGREE:
        return "network"
    if stats.node_count >= 20:
        return "medium"
    return "small"

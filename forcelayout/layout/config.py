"""
Simulation Parameters

Validated configuration for the force-directed layout engine. Numeric
parameters are clamped into their documented ranges when the config is
built and whenever a field is reassigned, so the engine never runs on an
out-of-range value. Only structurally broken input (non-numeric values,
missing or non-positive bounds) is rejected.
"""

import dataclasses
import logging
import math
import numbers
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

import yaml

from ..errors import ConfigError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LayoutBounds:
    """World extent the layout is centered in and softly confined to."""
    width: float = 800.0
    height: float = 600.0

    def __post_init__(self):
        for name in ("width", "height"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, numbers.Real):
                raise ConfigError(f"Bounds {name} must be a number, got {value!r}")
            if not math.isfinite(value) or value <= 0:
                raise ConfigError(f"Bounds {name} must be a positive number, got {value!r}")
            object.__setattr__(self, name, float(value))

    @property
    def center(self) -> Tuple[float, float]:
        return (self.width / 2, self.height / 2)

    @classmethod
    def coerce(cls, value: Any) -> "LayoutBounds":
        """Build bounds from a LayoutBounds, a mapping or a (w, h) pair."""
        if isinstance(value, cls):
            return value
        if isinstance(value, dict):
            missing = [k for k in ("width", "height") if value.get(k) is None]
            if missing:
                raise ConfigError(f"Bounds missing required keys: {missing}")
            return cls(width=value["width"], height=value["height"])
        if isinstance(value, (tuple, list)) and len(value) == 2:
            return cls(width=value[0], height=value[1])
        raise ConfigError(f"Bounds must be a mapping with width and height, got {value!r}")


# Valid range per numeric field. Upper bounds that depend on other fields
# (padding, distance_max) are refined in SimulationConfig._range().
_RANGES: Dict[str, Tuple[float, float]] = {
    "force_strength": (0.0, 1.0),
    "link_distance": (1.0, math.inf),
    "node_repulsion": (0.0, math.inf),
    "center_force": (0.0, 1.0),
    "iterations": (1, 10000),
    "alpha": (0.0, 1.0),
    "alpha_decay": (0.0, 1.0),
    "velocity_decay": (0.0, 1.0),
    "collision_radius": (0.0, math.inf),
    "padding": (0.0, math.inf),
    "theta": (0.0, 2.0),
    "distance_min": (0.01, math.inf),
    "distance_max": (0.01, math.inf),
    "convergence_threshold": (0.0, 1.0),
    "convergence_window": (1, 1000),
    "min_alpha": (0.0, 1.0),
    "stabilization_timeout": (0.0, math.inf),
    "boundary_strength": (0.0, 1.0),
    "collision_strength": (0.0, 1.0),
    "collision_iterations": (1, 2),
    "collision_node_limit": (0, 10000),
    "seed_radius": (0.0, math.inf),
    "result_padding": (0.0, math.inf),
}

_INT_FIELDS = frozenset({
    "iterations",
    "convergence_window",
    "collision_iterations",
    "collision_node_limit",
})

_CAMEL_RE = re.compile(r"(?<!^)(?=[A-Z])")


def _snake(key: str) -> str:
    return _CAMEL_RE.sub("_", key).lower()


@dataclass(frozen=True)
class SizeTier:
    """One row of the node-count optimization table."""
    name: str
    max_nodes: Optional[int]  # Exclusive upper bound, None = unbounded
    iteration_factor: float
    min_iterations: int
    alpha_decay_factor: float
    max_alpha_decay: float
    force_strength_factor: float
    min_force_strength: float = 0.0
    velocity_decay_factor: float = 1.0
    max_velocity_decay: float = 1.0
    disable_collision: bool = False


SIZE_TIERS: Tuple[SizeTier, ...] = (
    # Favor quality: more iterations, stiffer springs
    SizeTier("small", 20, 1.5, 300, 1.0, 1.0, 1.2),
    # Balanced: slightly faster cooling
    SizeTier("medium", 100, 1.0, 200, 1.2, 0.05, 1.0),
    # Favor speed: fewer iterations, fast cooling, more damping, no collision
    SizeTier("large", None, 0.5, 100, 2.0, 0.1, 0.7, 0.05, 1.5, 0.8, True),
)


def size_tier_for(node_count: int) -> SizeTier:
    """Look up the optimization tier for a node count."""
    if node_count < 0:
        raise ConfigError(f"Node count must be non-negative, got {node_count}")
    for tier in SIZE_TIERS:
        if tier.max_nodes is None or node_count < tier.max_nodes:
            return tier
    return SIZE_TIERS[-1]


@dataclass
class SimulationConfig:
    """Configuration for a force-directed layout run."""
    # Force magnitudes
    force_strength: float = 0.3  # Spring stiffness
    link_distance: float = 100.0  # Spring rest length
    node_repulsion: float = 300.0
    center_force: float = 0.1

    # Iteration budget and cooling
    iterations: int = 300
    alpha: float = 1.0  # Initial temperature
    alpha_decay: float = 0.0228
    velocity_decay: float = 0.4  # Friction applied each tick

    # Collision
    enable_collision: bool = True
    collision_radius: float = 1.5  # Multiplier on node half-extent

    # World
    bounds: LayoutBounds = field(default_factory=LayoutBounds)
    padding: float = 50.0  # Boundary force keeps nodes this far from the edges

    # Repulsion approximation
    theta: float = 0.81  # Barnes-Hut opening criterion
    distance_min: float = 10.0
    distance_max: float = 300.0

    # Termination
    convergence_threshold: float = 0.01  # Max alpha change per tick to count as stable
    convergence_window: int = 5  # Consecutive stable ticks required
    min_alpha: float = 0.001
    stabilization_timeout: float = 10.0  # seconds

    # Secondary force tuning
    boundary_strength: float = 0.1
    collision_strength: float = 0.8
    collision_iterations: int = 2
    collision_node_limit: int = 200  # Collision skipped above this node count

    # Seeding and result
    seed_radius: float = 200.0
    result_padding: float = 100.0

    def __post_init__(self):
        # Values as supplied at construction, restored by reset()
        self._initial = {f.name: getattr(self, f.name) for f in dataclasses.fields(self)}

    def __setattr__(self, name: str, value: Any):
        if name in _RANGES:
            value = self._clamp(name, value)
        elif name == "enable_collision":
            value = bool(value)
        elif name == "bounds":
            value = LayoutBounds.coerce(value)
        super().__setattr__(name, value)

        # Re-clamp fields whose range depends on the one just set
        if name == "bounds" and "padding" in self.__dict__:
            super().__setattr__("padding", self._clamp("padding", self.padding))
        elif name == "distance_min" and "distance_max" in self.__dict__:
            super().__setattr__("distance_max", self._clamp("distance_max", self.distance_max))

    def _range(self, name: str) -> Tuple[float, float]:
        lo, hi = _RANGES[name]
        if name == "padding" and "bounds" in self.__dict__:
            hi = min(self.bounds.width, self.bounds.height) / 2
        elif name == "distance_max" and "distance_min" in self.__dict__:
            lo = max(lo, self.distance_min)
        return lo, hi

    def _clamp(self, name: str, value: Any):
        if isinstance(value, bool) or not isinstance(value, numbers.Real):
            raise ConfigError(f"{name} must be a number, got {value!r}")
        if math.isnan(value):
            raise ConfigError(f"{name} must not be NaN")

        lo, hi = self._range(name)
        clamped = min(max(float(value), lo), hi)
        if name in _INT_FIELDS:
            clamped = int(round(clamped))
        if clamped != value:
            logger.debug("Clamped %s from %r to %r", name, value, clamped)
        return clamped

    # ------------------------------------------------------------------
    # Construction helpers
    # ------------------------------------------------------------------

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]] = None) -> "SimulationConfig":
        """
        Build a config from a partial mapping, merged with the defaults.

        Keys may be snake_case or camelCase (forceStrength, linkDistance...).
        Unknown keys are logged and ignored.

        Raises:
            ConfigError: On non-numeric values or missing/non-positive bounds
        """
        if data is None:
            return cls()
        if not isinstance(data, dict):
            raise ConfigError(f"Configuration must be a mapping, got {type(data).__name__}")

        known = {f.name for f in dataclasses.fields(cls)}
        kwargs: Dict[str, Any] = {}
        for key, value in data.items():
            name = _snake(str(key))
            if name not in known:
                logger.warning("Ignoring unknown layout setting '%s'", key)
                continue
            kwargs[name] = value
        return cls(**kwargs)

    def copy(self) -> "SimulationConfig":
        return dataclasses.replace(self)

    def to_dict(self) -> Dict[str, Any]:
        return dataclasses.asdict(self)

    def with_overrides(self, **overrides) -> "SimulationConfig":
        """Return a copy with the given fields replaced (and clamped)."""
        return dataclasses.replace(self, **overrides)

    def reset(self) -> "SimulationConfig":
        """Restore every field to the value this config was created with.

        Copies remember the values they were copied with.
        """
        initial = self._initial
        # Ranges of padding and distance_max depend on these
        for name in ("bounds", "distance_min"):
            setattr(self, name, initial[name])
        for name, value in initial.items():
            setattr(self, name, value)
        return self

    @property
    def center(self) -> Tuple[float, float]:
        return self.bounds.center

    # ------------------------------------------------------------------
    # Optimization
    # ------------------------------------------------------------------

    def optimize_for_size(self, node_count: int) -> "SimulationConfig":
        """
        Tune the config for a graph of the given size.

        Uses the fixed SIZE_TIERS table, so the same node count always
        yields the same parameters.

        Args:
            node_count: Number of nodes to be laid out

        Returns:
            New SimulationConfig; this instance is left untouched
        """
        tier = size_tier_for(node_count)
        optimized = self.copy()

        optimized.iterations = max(
            min(tier.min_iterations, self.iterations),
            round(self.iterations * tier.iteration_factor),
        )
        optimized.alpha_decay = min(tier.max_alpha_decay,
                                    self.alpha_decay * tier.alpha_decay_factor)
        optimized.force_strength = max(tier.min_force_strength,
                                       self.force_strength * tier.force_strength_factor)
        if tier.velocity_decay_factor != 1.0:
            optimized.velocity_decay = min(tier.max_velocity_decay,
                                           self.velocity_decay * tier.velocity_decay_factor)
        if tier.disable_collision:
            optimized.enable_collision = False

        logger.debug(
            "Optimized for %d nodes (%s tier): iterations=%d alpha_decay=%.4f "
            "force_strength=%.3f collision=%s",
            node_count, tier.name, optimized.iterations, optimized.alpha_decay,
            optimized.force_strength, optimized.enable_collision,
        )
        return optimized

    def optimize_for_graph(self, stats) -> "SimulationConfig":
        """Apply the preset inferred from graph statistics.

        Bounds, padding and engine limits of this config are kept.
        """
        from .presets import get_preset, preset_for_graph

        preset = get_preset(preset_for_graph(stats))
        logger.debug("Selected preset '%s' for %d nodes / %d edges",
                      preset.name, stats.node_count, stats.edge_count)
        return preset.apply(self)

    def optimize_for_performance(self) -> "SimulationConfig":
        """Trade visual quality for speed."""
        optimized = self.copy()
        optimized.iterations = min(100, self.iterations)
        optimized.alpha_decay = max(0.1, self.alpha_decay * 2)
        optimized.force_strength = max(0.1, self.force_strength * 0.7)
        optimized.enable_collision = False
        return optimized

    def optimize_for_quality(self) -> "SimulationConfig":
        """Trade speed for visual quality."""
        optimized = self.copy()
        optimized.iterations = max(500, round(self.iterations * 1.5))
        optimized.alpha_decay = min(0.01, self.alpha_decay * 0.5)
        optimized.force_strength = min(0.5, self.force_strength * 1.2)
        optimized.enable_collision = True
        optimized.collision_radius = max(1.5, self.collision_radius)
        return optimized

    def performance_profile(self, node_count: int = 0) -> Dict[str, Any]:
        """Estimate the cost of running this config on node_count nodes.

        Returns:
            Dict with 'complexity' ('low'/'medium'/'high'),
            'estimated_render_time' (ms), 'node_count' and 'recommendations'
        """
        score = self.iterations / 100
        score += self.force_strength * 10
        if self.enable_collision:
            score += 5
        score += (1 - self.alpha_decay) * 10

        if score < 5:
            complexity = "low"
        elif score < 15:
            complexity = "medium"
        else:
            complexity = "high"

        collision_penalty = node_count * 0.5 if self.enable_collision else 0
        estimated = round(50 + node_count * 2 + self.iterations * 0.5 + collision_penalty)

        recommendations: List[str] = []
        if node_count >= 100 and self.iterations > 150:
            recommendations.append("Optimize for node count to reduce iterations on large graphs")
        if self.iterations > 300 and node_count > 30:
            recommendations.append("Reduce iterations for better performance with large diagrams")
        if self.enable_collision and node_count > self.collision_node_limit:
            recommendations.append("Disable collision detection for very large diagrams")
        if self.alpha_decay < 0.02:
            recommendations.append("Increase alpha decay to reduce convergence time")

        return {
            "complexity": complexity,
            "estimated_render_time": estimated,
            "node_count": node_count,
            "recommendations": recommendations,
        }


def load_config(config_path: Union[str, Path]) -> SimulationConfig:
    """
    Load a layout configuration from a YAML file.

    The file may hold the settings at the top level or under a 'layout'
    key, and may name a base preset with 'preset'; explicit settings
    override the preset's values.

    Raises:
        FileNotFoundError: If the file does not exist
        ConfigError: If the file is a symlink or does not hold a mapping
    """
    config_path = Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(f"Layout configuration file not found: {config_path}")

    # Security: Check for symlinks to prevent reading unintended files
    if config_path.is_symlink():
        raise ConfigError(f"Layout configuration file cannot be a symlink: {config_path}")

    with open(config_path, "r") as f:
        try:
            data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Could not parse {config_path}: {e}")

    if not isinstance(data, dict):
        raise ConfigError(f"Layout configuration must be a mapping: {config_path}")
    if isinstance(data.get("layout"), dict):
        data = data["layout"]

    data = dict(data)
    preset_name = data.pop("preset", None)
    if preset_name is None:
        return SimulationConfig.from_dict(data)

    from .presets import get_preset

    base = get_preset(str(preset_name)).apply(SimulationConfig())
    merged = base.to_dict()
    merged.update({_snake(str(k)): v for k, v in data.items()})
    return SimulationConfig.from_dict(merged)

"""
Integrator and Cooling Controller

Advances the simulation one tick at a time. The Integrator owns the
physics of a tick (index rebuild, force accumulation, semi-implicit Euler
update, collision relaxation); the CoolingController owns the temperature
schedule and decides when the run is over.

Run states:
    IDLE -> RUNNING -> CONVERGED | TIMED_OUT | MAX_ITERATIONS | CANCELLED
"""

import logging
import math
from enum import Enum
from typing import Dict, List, Optional, Sequence

from ..graph.abstraction import LayoutEdge, LayoutNode
from .config import SimulationConfig
from .forces import CollisionResolver, ForceAccumulator, ForceType, ManyBodyForce, build_forces
from .spatial_index import QuadTree

logger = logging.getLogger(__name__)


class SimulationState(Enum):
    """Lifecycle state of one layout run."""
    IDLE = "idle"
    RUNNING = "running"
    CONVERGED = "converged"
    TIMED_OUT = "timed_out"
    MAX_ITERATIONS = "max_iterations"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self not in (SimulationState.IDLE, SimulationState.RUNNING)


class CoolingController:
    """Alpha decay schedule and termination detection.

    Termination is checked after every tick, in this order:
    - iteration budget exhausted -> MAX_ITERATIONS
    - alpha changed by less than convergence_threshold for
      convergence_window consecutive ticks -> CONVERGED
    - alpha below min_alpha -> CONVERGED
    - wall clock past stabilization_timeout -> TIMED_OUT
    """

    def __init__(self, config: SimulationConfig):
        self.config = config
        self.alpha = config.alpha
        self.iteration = 0
        self.state = SimulationState.IDLE
        self._stable_ticks = 0

    @property
    def progress(self) -> float:
        return min(self.iteration / self.config.iterations, 1.0)

    @property
    def converged(self) -> bool:
        return self.state is SimulationState.CONVERGED

    def start(self):
        if self.state is not SimulationState.IDLE:
            raise RuntimeError(f"Cannot start a simulation in state {self.state.value}")
        self.state = SimulationState.RUNNING

    def advance(self, elapsed: float) -> SimulationState:
        """Cool by one tick and evaluate the termination criteria.

        Args:
            elapsed: Wall-clock seconds since the run started

        Returns:
            State after this tick (RUNNING or a terminal state)
        """
        if self.state is not SimulationState.RUNNING:
            raise RuntimeError(f"Cannot advance a simulation in state {self.state.value}")

        previous = self.alpha
        self.alpha = previous * (1.0 - self.config.alpha_decay)
        self.iteration += 1

        if abs(previous - self.alpha) < self.config.convergence_threshold:
            self._stable_ticks += 1
        else:
            self._stable_ticks = 0

        if self.iteration >= self.config.iterations:
            self.state = SimulationState.MAX_ITERATIONS
        elif self._stable_ticks >= self.config.convergence_window:
            self.state = SimulationState.CONVERGED
        elif self.alpha < self.config.min_alpha:
            self.state = SimulationState.CONVERGED
        elif elapsed > self.config.stabilization_timeout:
            self.state = SimulationState.TIMED_OUT
        return self.state

    def cancel(self):
        if self.state.is_terminal:
            raise RuntimeError(f"Cannot cancel a simulation in state {self.state.value}")
        self.state = SimulationState.CANCELLED


class Integrator:
    """
    Semi-implicit Euler integration of the layout forces.

    Per tick:
    1. Rebuild the quadtree from current positions
    2. Accumulate every force into the nodes' net force
    3. velocity = (velocity + force / mass) * (1 - velocity_decay); position += velocity
       (fixed nodes keep zero velocity and their pinned position)
    4. Collision relaxation, if enabled
    """

    def __init__(self, nodes: Sequence[LayoutNode], edges: Sequence[LayoutEdge],
                 config: SimulationConfig,
                 forces: Optional[List[ForceAccumulator]] = None):
        self.nodes = list(nodes)
        self.edges = list(edges)
        self.config = config
        self.forces = forces if forces is not None else build_forces(config, self.edges)
        self.collision = CollisionResolver(config)
        self.index: Optional[QuadTree] = None
        self.last_force_totals: Dict[ForceType, float] = {}
        self.last_collisions = 0

    def rebuild_index(self) -> QuadTree:
        charges = None
        for force in self.forces:
            if isinstance(force, ManyBodyForce):
                charges = force.charges(self.nodes)
        self.index = QuadTree.build([n.x for n in self.nodes],
                                    [n.y for n in self.nodes], charges)
        return self.index

    def accumulate_forces(self, alpha: float) -> Dict[ForceType, float]:
        for node in self.nodes:
            node.clear_force()
        totals: Dict[ForceType, float] = {}
        for force in self.forces:
            totals[force.force_type] = force.accumulate(self.nodes, alpha, self.index)
        return totals

    def integrate(self) -> float:
        """Apply accumulated forces to velocities and positions.

        Returns:
            Largest displacement of any node this tick
        """
        retain = 1.0 - self.config.velocity_decay
        max_movement = 0.0

        for node in self.nodes:
            if node.fixed:
                node.vx = node.vy = 0.0
                node.x, node.y = node.pin_x, node.pin_y
                continue

            vx = (node.vx + node.fx / node.mass) * retain
            vy = (node.vy + node.fy / node.mass) * retain
            if not (math.isfinite(vx) and math.isfinite(vy)):
                vx = vy = 0.0

            node.vx, node.vy = vx, vy
            node.x += vx
            node.y += vy
            max_movement = max(max_movement, math.sqrt(vx * vx + vy * vy))

        return max_movement

    def step(self, alpha: float) -> float:
        """Run one full tick at the given temperature.

        Returns:
            Largest displacement of any node this tick
        """
        self.rebuild_index()
        self.last_force_totals = self.accumulate_forces(alpha)
        max_movement = self.integrate()
        self.last_collisions = self.collision.resolve(self.nodes)
        return max_movement

    def settle(self) -> int:
        """Relax leftover overlaps once the simulation has stopped.

        Returns:
            Number of relaxation passes run
        """
        return self.collision.settle(self.nodes)

    def dropped_contributions(self) -> int:
        return sum(force.dropped for force in self.forces)

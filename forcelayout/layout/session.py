"""
Layout Session

Entry point of the engine: turns a prepared Graph into a LayoutResult.

A session seeds the kinematic state of every node, drives the Integrator
tick by tick under the CoolingController, reports progress, and packages
the final positions. Runs can be driven to completion with run(), or
stepped through with start(), which returns an iterable LayoutRun.

Seeding:
- Fixed nodes are pinned at their fixed position (or prior position)
- Nodes with a prior position start there
- All other nodes are spread on a circle around the center of the bounds,
  with a small deterministic offset so no two start exactly aligned
"""

import logging
import math
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, Dict, Iterator, List, Optional, Sequence

from ..errors import SimulationCancelled, SimulationTimeout
from ..graph.abstraction import Graph, LayoutEdge, LayoutNode
from .config import SimulationConfig
from .forces import ForceType
from .integrator import CoolingController, Integrator, SimulationState
from .result import LayoutResult
from .spatial_index import deterministic_jitter

logger = logging.getLogger(__name__)

# Bound on the seed offset, in world units
SEED_JITTER = 0.5


@dataclass(frozen=True)
class TickProgress:
    """Snapshot reported after every tick."""
    iteration: int
    alpha: float
    progress: float  # iteration / iterations, capped at 1.0
    converged: bool
    max_movement: float = 0.0


ProgressCallback = Callable[[TickProgress], None]
EndCallback = Callable[[LayoutResult], None]


def seed_nodes(graph: Graph, config: SimulationConfig) -> List[LayoutNode]:
    """Create the initial kinematic state for every node of the graph."""
    cx, cy = config.center
    unseeded = [n.id for n in graph.nodes
                if n.position is None and n.fixed_position is None]
    radius = config.seed_radius if len(unseeded) > 1 else 0.0
    slots = {node_id: k for k, node_id in enumerate(unseeded)}

    nodes: List[LayoutNode] = []
    for index, node in enumerate(graph.nodes):
        if node.fixed_position is not None:
            x, y = node.fixed_position
        elif node.position is not None:
            x, y = node.position
        else:
            angle = 2 * math.pi * slots[node.id] / len(unseeded)
            jx, jy = deterministic_jitter(node.id, SEED_JITTER)
            x = cx + radius * math.cos(angle) + jx
            y = cy + radius * math.sin(angle) + jy

        fixed = node.is_fixed
        nodes.append(LayoutNode(
            id=node.id,
            index=index,
            x=x,
            y=y,
            width=node.width,
            height=node.height,
            fixed=fixed,
            pin_x=x if fixed else 0.0,
            pin_y=y if fixed else 0.0,
            mass=node.weight,
        ))
    return nodes


def resolve_edges(graph: Graph) -> List[LayoutEdge]:
    """Resolve edge endpoint ids to node indices.

    Self-loops carry no spring and are dropped.
    """
    positions: Dict[str, int] = {node.id: i for i, node in enumerate(graph.nodes)}
    edges: List[LayoutEdge] = []
    for edge in graph.edges:
        source, target = positions[edge.source_id], positions[edge.target_id]
        if source == target:
            logger.debug("Skipping self-loop edge '%s'", edge.id)
            continue
        edges.append(LayoutEdge(
            id=edge.id,
            source=source,
            target=target,
            type=edge.type,
            weight=edge.weight,
            distance=edge.distance,
        ))
    return edges


class LayoutRun:
    """
    One layout run, driven tick by tick.

    Iterating a run advances the simulation and yields a TickProgress per
    tick until a terminal state is reached. result() drives any remaining
    ticks and returns the final LayoutResult.

    Example:
        run = session.start(graph)
        for tick in run:
            if tick.iteration >= 50:
                run.cancel()
        result = run.result()
    """

    def __init__(self, graph: Graph, config: SimulationConfig,
                 progress_callback: Optional[ProgressCallback] = None,
                 clock: Callable[[], float] = time.monotonic,
                 strict: bool = False,
                 on_end: Optional[EndCallback] = None):
        self.config = config
        self.strict = strict
        self._callback = progress_callback
        self._on_end = on_end
        self._clock = clock
        self._cancel_requested = threading.Event()

        self.nodes = seed_nodes(graph, config)
        self.edges = resolve_edges(graph)
        self.integrator = Integrator(self.nodes, self.edges, config)
        self.cooling = CoolingController(config)

        self._ticks: Optional[Iterator[TickProgress]] = None
        self._started_at = 0.0
        self._elapsed = 0.0
        self._result: Optional[LayoutResult] = None

    @property
    def state(self) -> SimulationState:
        return self.cooling.state

    @property
    def iteration(self) -> int:
        return self.cooling.iteration

    @property
    def alpha(self) -> float:
        return self.cooling.alpha

    def cancel(self):
        """Request a stop; honored at the top of the next tick."""
        self._cancel_requested.set()

    @property
    def cancel_requested(self) -> bool:
        return self._cancel_requested.is_set()

    def __iter__(self) -> Iterator[TickProgress]:
        if self._ticks is None:
            self._ticks = self._run_ticks()
        return self._ticks

    def _run_ticks(self) -> Iterator[TickProgress]:
        self.cooling.start()
        self._started_at = self._clock()
        logger.info("Layout started: %d nodes, %d edges, %d max iterations",
                    len(self.nodes), len(self.edges), self.config.iterations)
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(
                "Layout config: strength=%.3f link_distance=%.1f repulsion=%.1f "
                "center=%.3f alpha_decay=%.4f velocity_decay=%.3f collision=%s",
                self.config.force_strength,
                self.config.link_distance,
                self.config.node_repulsion,
                self.config.center_force,
                self.config.alpha_decay,
                self.config.velocity_decay,
                self.config.enable_collision,
            )

        log_every = 10
        while True:
            if self._cancel_requested.is_set():
                self.cooling.cancel()
                logger.info("Layout cancelled after %d ticks", self.cooling.iteration)
                break

            alpha = self.cooling.alpha
            max_movement = self.integrator.step(alpha)
            state = self.cooling.advance(self._clock() - self._started_at)

            tick = TickProgress(
                iteration=self.cooling.iteration,
                alpha=self.cooling.alpha,
                progress=self.cooling.progress,
                converged=self.cooling.converged,
                max_movement=max_movement,
            )

            if logger.isEnabledFor(logging.DEBUG) and tick.iteration % log_every == 0:
                totals = self.integrator.last_force_totals
                logger.debug(
                    "Tick %d: alpha=%.4f max_move=%.4f collisions=%d",
                    tick.iteration, tick.alpha, max_movement,
                    self.integrator.last_collisions,
                )
                logger.debug(
                    "  Force totals: link=%.3f repulsion=%.3f center=%.3f boundary=%.3f",
                    totals.get(ForceType.LINK, 0.0),
                    totals.get(ForceType.REPULSION, 0.0),
                    totals.get(ForceType.CENTER, 0.0),
                    totals.get(ForceType.BOUNDARY, 0.0),
                )

            self._notify(tick)
            yield tick

            if state.is_terminal:
                break

        if self.cooling.state is not SimulationState.CANCELLED:
            passes = self.integrator.settle()
            if passes:
                logger.debug("Settled remaining overlaps in %d passes", passes)
        self._elapsed = self._clock() - self._started_at
        self._report()

    def _notify(self, tick: TickProgress):
        if self._callback is None:
            return
        try:
            self._callback(tick)
        except Exception:
            logger.warning("Progress callback failed at tick %d", tick.iteration,
                           exc_info=True)

    def _notify_end(self, result: LayoutResult):
        if self._on_end is None:
            return
        try:
            self._on_end(result)
        except Exception:
            logger.warning("End-of-run callback failed", exc_info=True)

    def _report(self):
        state = self.cooling.state
        dropped = self.integrator.dropped_contributions()
        if dropped:
            logger.debug("Dropped %d non-finite force contributions", dropped)

        if state is SimulationState.CONVERGED:
            logger.info("Layout converged after %d ticks (alpha=%.4f, %.2fs)",
                        self.cooling.iteration, self.cooling.alpha, self._elapsed)
        elif state is SimulationState.TIMED_OUT:
            logger.warning(
                "Layout stopped at the %.1fs stabilization timeout after %d ticks "
                "(alpha=%.4f). Returning best-effort positions.",
                self.config.stabilization_timeout, self.cooling.iteration, self.cooling.alpha,
            )
        elif state is SimulationState.MAX_ITERATIONS:
            logger.warning(
                "Layout did not converge after %d iterations (alpha=%.4f). "
                "Consider lowering alpha_decay or raising iterations.",
                self.cooling.iteration, self.cooling.alpha,
            )

    def result(self) -> LayoutResult:
        """
        Drive the run to its end and return the final layout.

        Raises:
            SimulationCancelled: If the run was cancelled before its first tick
            SimulationTimeout: If strict and the stabilization timeout expired
        """
        if self._result is None:
            for _ in self:
                pass
            if self.cooling.state is SimulationState.CANCELLED and self.cooling.iteration == 0:
                raise SimulationCancelled("Layout cancelled before the first tick")
            self._result = LayoutResult.from_simulation(
                self.nodes,
                self.edges,
                state=self.cooling.state,
                iterations=self.cooling.iteration,
                final_alpha=self.cooling.alpha,
                padding=self.config.result_padding,
                elapsed=self._elapsed,
            )
            self._notify_end(self._result)

        if self.strict and self._result.state is SimulationState.TIMED_OUT:
            raise SimulationTimeout(
                f"Layout did not stabilize within {self.config.stabilization_timeout}s",
                result=self._result,
            )
        return self._result


class LayoutSession:
    """
    Runs force-directed layouts with a shared default configuration.

    A session may be reused for many graphs; each run gets its own copy of
    the configuration and its own node state. cancel() stops whichever run
    the session is currently driving.

    progress_callback receives a TickProgress after every tick; on_end
    receives the LayoutResult once per run, including best-effort results
    of timed-out and cancelled runs. Exceptions raised by either are
    logged and do not stop the run.
    """

    def __init__(self, config: Optional[SimulationConfig] = None,
                 progress_callback: Optional[ProgressCallback] = None,
                 clock: Callable[[], float] = time.monotonic,
                 on_end: Optional[EndCallback] = None):
        self.config = config if config is not None else SimulationConfig()
        self.progress_callback = progress_callback
        self.on_end = on_end
        self.clock = clock
        self._lock = threading.Lock()
        self._active: Optional[LayoutRun] = None

    def start(self, graph: Graph, config: Optional[SimulationConfig] = None, *,
              strict: bool = False, optimize: bool = False) -> LayoutRun:
        """
        Validate the graph and prepare a run without ticking it.

        Args:
            graph: Graph to lay out
            config: Per-run configuration (defaults to the session's)
            strict: Raise SimulationTimeout instead of returning on timeout
            optimize: Tune the configuration for the graph's node count

        Raises:
            GraphValidationError: If the graph is empty or inconsistent
        """
        graph.validate()
        run_config = (config if config is not None else self.config).copy()
        if optimize:
            run_config = run_config.optimize_for_size(len(graph.nodes))

        run = LayoutRun(graph, run_config, self.progress_callback, self.clock, strict,
                        self.on_end)
        with self._lock:
            self._active = run
        return run

    def run(self, graph: Graph, config: Optional[SimulationConfig] = None, *,
            strict: bool = False, optimize: bool = False) -> LayoutResult:
        """Lay out a graph and return the final positions."""
        run = self.start(graph, config, strict=strict, optimize=optimize)
        try:
            return run.result()
        finally:
            with self._lock:
                if self._active is run:
                    self._active = None

    def cancel(self) -> bool:
        """Cancel the active run, if any.

        Returns:
            True if a run was signalled
        """
        with self._lock:
            run = self._active
        if run is None:
            return False
        run.cancel()
        return True


def run_layout(graph: Graph, config: Optional[SimulationConfig] = None,
               **kwargs) -> LayoutResult:
    """Lay out a single graph with a throwaway session."""
    return LayoutSession(config).run(graph, **kwargs)


def layout_many(graphs: Sequence[Graph], config: Optional[SimulationConfig] = None,
                max_workers: int = 4) -> List[LayoutResult]:
    """
    Lay out independent graphs concurrently.

    Each graph runs in its own session on a worker thread. Results are
    returned in input order; the first failure is re-raised.
    """
    if not graphs:
        return []
    with ThreadPoolExecutor(max_workers=max(1, max_workers)) as pool:
        futures = [pool.submit(run_layout, graph, config) for graph in graphs]
        return [future.result() for future in futures]

"""
Tests for the integrator and cooling controller.

Tests cover:
- Alpha decay and the termination order
- State machine transitions
- Semi-implicit Euler updates
- Fixed node pinning
"""

import math

import pytest

from forcelayout.graph.abstraction import LayoutEdge
from forcelayout.layout.config import SimulationConfig
from forcelayout.layout.forces import ForceType
from forcelayout.layout.integrator import CoolingController, Integrator, SimulationState


def run_until_done(controller, elapsed=0.0):
    controller.start()
    while controller.advance(elapsed) is SimulationState.RUNNING:
        pass
    return controller


# =============================================================================
# Cooling controller
# =============================================================================

class TestCoolingController:
    """Temperature schedule and termination."""

    def test_initial_state(self, default_config):
        controller = CoolingController(default_config)
        assert controller.state is SimulationState.IDLE
        assert controller.alpha == 1.0
        assert controller.iteration == 0

    def test_alpha_decays_geometrically(self, default_config):
        controller = CoolingController(default_config)
        controller.start()
        controller.advance(0.0)
        controller.advance(0.0)
        assert controller.alpha == pytest.approx((1 - 0.0228) ** 2)

    def test_alpha_never_increases(self, default_config):
        controller = CoolingController(default_config)
        controller.start()
        previous = controller.alpha
        while controller.advance(0.0) is SimulationState.RUNNING:
            assert controller.alpha <= previous
            previous = controller.alpha

    def test_defaults_converge_on_alpha_delta(self, default_config):
        # Per-tick alpha change drops below 0.01 from tick 37; five stable ticks
        controller = run_until_done(CoolingController(default_config))
        assert controller.state is SimulationState.CONVERGED
        assert controller.iteration == 41
        assert controller.converged

    def test_iteration_budget(self):
        controller = run_until_done(CoolingController(SimulationConfig(iterations=10)))
        assert controller.state is SimulationState.MAX_ITERATIONS
        assert controller.iteration == 10
        assert not controller.converged

    def test_budget_checked_before_convergence(self):
        config = SimulationConfig(iterations=5, alpha_decay=0.0)
        controller = run_until_done(CoolingController(config))
        assert controller.state is SimulationState.MAX_ITERATIONS

    def test_zero_decay_converges_after_window(self):
        controller = run_until_done(CoolingController(SimulationConfig(alpha_decay=0.0)))
        assert controller.state is SimulationState.CONVERGED
        assert controller.iteration == 5
        assert controller.alpha == 1.0

    def test_min_alpha_floor(self):
        config = SimulationConfig(alpha_decay=0.5, convergence_threshold=0.0, min_alpha=0.01)
        controller = run_until_done(CoolingController(config))
        assert controller.state is SimulationState.CONVERGED
        assert controller.iteration == 7

    def test_timeout(self, default_config):
        controller = CoolingController(default_config)
        controller.start()
        assert controller.advance(11.0) is SimulationState.TIMED_OUT

    def test_progress(self):
        controller = CoolingController(SimulationConfig(iterations=10))
        controller.start()
        controller.advance(0.0)
        assert controller.progress == pytest.approx(0.1)

    def test_invalid_transitions(self, default_config):
        controller = CoolingController(default_config)
        with pytest.raises(RuntimeError):
            controller.advance(0.0)
        controller.start()
        with pytest.raises(RuntimeError):
            controller.start()
        controller.cancel()
        assert controller.state is SimulationState.CANCELLED
        assert controller.state.is_terminal
        with pytest.raises(RuntimeError):
            controller.cancel()


# =============================================================================
# Integrator
# =============================================================================

class TestIntegrator:
    """Per-tick physics."""

    def test_semi_implicit_euler(self, default_config, make_nodes):
        nodes = make_nodes([(100, 100)])
        integrator = Integrator(nodes, [], default_config, forces=[])
        nodes[0].fx = 10.0
        movement = integrator.integrate()
        # (0 + 10) * (1 - 0.4)
        assert nodes[0].vx == pytest.approx(6.0)
        assert nodes[0].x == pytest.approx(106.0)
        assert movement == pytest.approx(6.0)

    def test_mass_divides_force(self, default_config, make_nodes):
        nodes = make_nodes([(100, 100)])
        nodes[0].mass = 4.0
        nodes[0].fx = 10.0
        Integrator(nodes, [], default_config, forces=[]).integrate()
        # (0 + 10 / 4) * (1 - 0.4)
        assert nodes[0].vx == pytest.approx(1.5)

    def test_settle_after_run(self, default_config, make_nodes):
        nodes = make_nodes([(400, 300), (405, 300), (400, 305)])
        integrator = Integrator(nodes, [], default_config, forces=[])
        assert integrator.settle() > 0
        for a, b in ((0, 1), (0, 2), (1, 2)):
            distance = math.hypot(nodes[b].x - nodes[a].x, nodes[b].y - nodes[a].y)
            assert distance >= 74.0

    def test_velocity_carries_over(self, default_config, make_nodes):
        nodes = make_nodes([(0, 0)])
        nodes[0].vx = 10.0
        Integrator(nodes, [], default_config, forces=[]).integrate()
        assert nodes[0].vx == pytest.approx(6.0)

    def test_non_finite_velocity_zeroed(self, default_config, make_nodes):
        nodes = make_nodes([(100, 100)])
        integrator = Integrator(nodes, [], default_config, forces=[])
        nodes[0].fx = float("inf")
        integrator.integrate()
        assert (nodes[0].vx, nodes[0].vy) == (0.0, 0.0)
        assert (nodes[0].x, nodes[0].y) == (100, 100)

    def test_fixed_node_never_moves(self, default_config, make_nodes):
        nodes = make_nodes([(400, 300), (410, 300), (300, 250)])
        nodes[0].fixed = True
        nodes[0].pin_x, nodes[0].pin_y = 400.0, 300.0
        edges = [LayoutEdge("a", 0, 1), LayoutEdge("b", 1, 2)]
        integrator = Integrator(nodes, edges, default_config)
        for _ in range(50):
            integrator.step(alpha=1.0)
            assert (nodes[0].x, nodes[0].y) == (400.0, 300.0)
            assert (nodes[0].vx, nodes[0].vy) == (0.0, 0.0)

    def test_step_records_diagnostics(self, default_config, make_nodes):
        nodes = make_nodes([(300, 300), (310, 300)])
        integrator = Integrator(nodes, [LayoutEdge("e", 0, 1)], default_config)
        integrator.step(alpha=1.0)
        assert set(integrator.last_force_totals) == set(ForceType)
        assert integrator.last_force_totals[ForceType.REPULSION] > 0
        assert integrator.last_collisions > 0
        assert integrator.index is not None and len(integrator.index) == 2

    def test_pair_settles_near_rest_length(self, make_nodes):
        config = SimulationConfig(node_repulsion=0, center_force=0, enable_collision=False)
        nodes = make_nodes([(300, 300), (500, 300)])
        integrator = Integrator(nodes, [LayoutEdge("e", 0, 1)], config)
        for _ in range(200):
            integrator.step(alpha=1.0)
        distance = math.hypot(nodes[1].x - nodes[0].x, nodes[1].y - nodes[0].y)
        assert distance == pytest.approx(100.0, abs=1.0)

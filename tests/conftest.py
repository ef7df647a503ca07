"""
Shared test fixtures for ForceLayout tests.

Provides reusable graphs, configurations and a controllable clock
for testing the layout engine.
"""

import pytest

from forcelayout.graph.abstraction import (
    CONNECTION,
    HIERARCHY,
    Graph,
    LayoutNode,
)
from forcelayout.layout.config import SimulationConfig


@pytest.fixture
def default_config() -> SimulationConfig:
    """Configuration with all defaults."""
    return SimulationConfig()


@pytest.fixture
def three_node_graph() -> Graph:
    """A-B hierarchy edge and B-C connection edge, all 50x50."""
    graph = Graph()
    for node_id in ("A", "B", "C"):
        graph.add_node(node_id)
    graph.add_edge("A", "B", HIERARCHY, edge_id="e1")
    graph.add_edge("B", "C", CONNECTION, edge_id="e2")
    return graph


@pytest.fixture
def chain_graph() -> Graph:
    """Ten nodes connected in a line."""
    graph = Graph()
    for i in range(10):
        graph.add_node(f"n{i}")
    for i in range(9):
        graph.add_edge(f"n{i}", f"n{i + 1}")
    return graph


@pytest.fixture
def isolated_graph() -> Graph:
    """Eight nodes and no edges."""
    graph = Graph()
    for i in range(8):
        graph.add_node(f"n{i}")
    return graph


@pytest.fixture
def tree_graph() -> Graph:
    """Root with three children, each with two leaves."""
    graph = Graph()
    graph.add_node("root")
    for i in range(3):
        child = f"c{i}"
        graph.add_node(child)
        graph.add_edge("root", child, HIERARCHY)
        for j in range(2):
            leaf = f"{child}l{j}"
            graph.add_node(leaf)
            graph.add_edge(child, leaf, HIERARCHY)
    return graph


@pytest.fixture
def make_nodes():
    """Factory for LayoutNode lists from (x, y) pairs."""
    def _make(points, size=50.0):
        return [
            LayoutNode(id=f"n{i}", index=i, x=x, y=y, width=size, height=size)
            for i, (x, y) in enumerate(points)
        ]
    return _make


class FakeClock:
    """Deterministic clock that advances by a fixed step per call."""

    def __init__(self, step: float = 0.0):
        self.now = 0.0
        self.step = step

    def __call__(self) -> float:
        self.now += self.step
        return self.now


@pytest.fixture
def fake_clock():
    """Clock factory; FakeClock(step) advances step seconds per reading."""
    return FakeClock

"""Tests for src.simulator.topology — seeded node layout and wiring."""

from __future__ import annotations

import pytest

from src.contracts.config import DEFAULT_REGIONS
from src.contracts.enums import NodeStatus
from src.simulator.topology import (
    MAX_LINKS,
    MIN_LINKS,
    initialize_nodes,
    region_centers,
)
from tests.conftest import BASE_TIME


def _layout(nodes):
    return {
        i: (n.name, n.type, n.region, n.x, n.y, n.risk_score, tuple(n.connections))
        for i, n in nodes.items()
    }


class TestInitializeNodes:
    def test_count_and_ids(self):
        nodes = initialize_nodes(seed=12345, node_count=50, now=BASE_TIME)
        assert len(nodes) == 50
        assert list(nodes)[0] == "node_0000"
        assert list(nodes)[-1] == "node_0049"

    def test_same_seed_identical_layout(self):
        a = initialize_nodes(seed=12345, node_count=50, now=BASE_TIME)
        b = initialize_nodes(seed=12345, node_count=50, now=BASE_TIME)
        assert _layout(a) == _layout(b)

    def test_different_seed_different_layout(self):
        a = initialize_nodes(seed=1, node_count=30, now=BASE_TIME)
        b = initialize_nodes(seed=2, node_count=30, now=BASE_TIME)
        assert _layout(a) != _layout(b)

    def test_initial_metrics_in_range(self):
        for n in initialize_nodes(seed=12345, node_count=50, now=BASE_TIME).values():
            assert 0.05 <= n.risk_score < 0.25
            assert 0.85 <= n.health < 1.0
            assert 0.3 <= n.load_ratio < 0.7
            assert 35 <= n.temperature < 55
            assert 10 <= n.power_draw < 100
            assert 0 <= n.x <= 100 and 0 <= n.y <= 100
            assert n.status == NodeStatus.ONLINE
            assert n.region in DEFAULT_REGIONS

    def test_name_starts_with_region(self):
        for n in initialize_nodes(seed=3, node_count=20, now=BASE_TIME).values():
            assert n.name.startswith(n.region + " ")

    def test_custom_regions(self):
        nodes = initialize_nodes(seed=3, node_count=20, regions=["A", "B"], now=BASE_TIME)
        assert {n.region for n in nodes.values()} <= {"A", "B"}

    def test_zero_nodes(self):
        assert initialize_nodes(seed=3, node_count=0, now=BASE_TIME) == {}


class TestWiring:
    def test_connections_symmetric(self):
        nodes = initialize_nodes(seed=12345, node_count=50, now=BASE_TIME)
        for node_id, node in nodes.items():
            for peer in node.connections:
                assert node_id in nodes[peer].connections

    def test_no_self_or_duplicate_links(self):
        nodes = initialize_nodes(seed=12345, node_count=50, now=BASE_TIME)
        for node_id, node in nodes.items():
            assert node_id not in node.connections
            assert len(node.connections) == len(set(node.connections))

    def test_every_node_wired(self):
        nodes = initialize_nodes(seed=12345, node_count=50, now=BASE_TIME)
        assert all(n.connections for n in nodes.values())

    @pytest.mark.parametrize("seed,count", [(12345, 200), (7, 20), (3, 5), (99, 3)])
    def test_degree_between_two_and_five(self, seed, count):
        nodes = initialize_nodes(seed=seed, node_count=count, now=BASE_TIME)
        degrees = {i: len(n.connections) for i, n in nodes.items()}
        assert all(MIN_LINKS <= d <= MAX_LINKS for d in degrees.values()), degrees
        for node_id, node in nodes.items():
            for peer in node.connections:
                assert node_id in nodes[peer].connections

    def test_two_nodes_link_to_each_other(self):
        nodes = initialize_nodes(seed=3, node_count=2, now=BASE_TIME)
        assert nodes["node_0000"].connections == ["node_0001"]
        assert nodes["node_0001"].connections == ["node_0000"]


class TestRegionCenters:
    def test_centres_on_circle(self):
        centres = region_centers(["A", "B", "C", "D"])
        assert centres["A"][0] == 85.0
        assert centres["A"][1] == 50.0
        for cx, cy in centres.values():
            assert ((cx - 50) ** 2 + (cy - 50) ** 2) ** 0.5 == pytest.approx(35.0)

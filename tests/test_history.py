"""Tests for src.analyzer.history — rolling buffers and series statistics."""

from __future__ import annotations

import pytest

from src.analyzer.history import (
    HistoryStore,
    NodeHistory,
    least_squares_slope,
    tail,
    velocity,
)
from src.simulator.engine import get_system_state
from tests.conftest import BASE_TIME, make_node, node_map


class TestSeriesStats:
    def test_slope_of_line(self):
        assert least_squares_slope([0.1, 0.2, 0.3, 0.4]) == pytest.approx(0.1)

    def test_slope_flat_and_short(self):
        assert least_squares_slope([0.5, 0.5, 0.5]) == pytest.approx(0.0)
        assert least_squares_slope([0.5]) == 0.0
        assert least_squares_slope([]) == 0.0

    def test_slope_negative(self):
        assert least_squares_slope([1.0, 0.8, 0.6]) == pytest.approx(-0.2)

    def test_velocity(self):
        values = [0.1] * 5 + [0.6] * 5
        assert velocity(values) == pytest.approx(0.1)

    def test_velocity_short_series(self):
        assert velocity([0.1, 0.2, 0.3]) == 0.0
        assert velocity([0.1]) == 0.0

    def test_tail(self):
        assert tail([1, 2, 3, 4], 2) == [3, 4]
        assert tail([1, 2], 5) == [1, 2]
        assert tail([1, 2], 0) == []


class TestNodeHistory:
    def test_window_bounded(self):
        h = NodeHistory(3)
        for i in range(5):
            h.append(make_node(risk_score=i / 10), f"t{i}")
        assert len(h) == 3
        assert list(h.risk_scores) == [0.2, 0.3, 0.4]
        assert list(h.timestamps) == ["t2", "t3", "t4"]


class TestHistoryStore:
    def test_update_records_system_and_nodes(self):
        store = HistoryStore(window=10)
        nodes = node_map(make_node(node_id="a"), make_node(node_id="b"))
        state = get_system_state(nodes, now=BASE_TIME)
        store.update([state], nodes)
        store.update([state], nodes)
        assert len(store.system) == 2
        assert len(store.get("a")) == 2
        assert store.get("a").timestamps[-1] == "2026-02-26T10:00:00Z"
        assert store.get("zzz") is None

    def test_window_caps_system(self):
        store = HistoryStore(window=3)
        nodes = node_map(make_node())
        for _ in range(5):
            store.update([get_system_state(nodes, now=BASE_TIME)], nodes)
        assert len(store.system) == 3
        assert len(store.get("node_0000")) == 3

    def test_empty_states_uses_last_seen(self):
        store = HistoryStore()
        store.update([], node_map(make_node()))
        assert store.get("node_0000").timestamps[-1] == "2026-02-26T10:00:00Z"

    def test_clear(self):
        store = HistoryStore()
        nodes = node_map(make_node())
        store.update([get_system_state(nodes, now=BASE_TIME)], nodes)
        store.clear()
        assert len(store.system) == 0
        assert store.nodes == {}

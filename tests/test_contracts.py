"""Tests for src.contracts — Node, SystemState, Prediction, Alert, CascadeEvent."""

from __future__ import annotations

import csv
import dataclasses
import io
import json

import pytest

from src.contracts.alert import ALERT_CSV_COLUMNS, Alert
from src.contracts.cascade import CascadeEvent, CascadeHop
from src.contracts.enums import (
    AlertSeverity,
    AlertStatus,
    AlertType,
    NodeStatus,
    NodeType,
)
from src.contracts.node import NODE_CSV_COLUMNS, Node, SystemState
from src.contracts.prediction import PREDICTION_CSV_COLUMNS, Prediction
from tests.conftest import make_node, make_prediction


def _parse(row: str) -> list[str]:
    return next(csv.reader(io.StringIO(row)))


# ═══════════════════════════════════════════════════════════════════════════
#  Node
# ═══════════════════════════════════════════════════════════════════════════


class TestNode:
    def test_csv_header_matches_columns(self):
        assert Node.csv_header() == ",".join(NODE_CSV_COLUMNS)

    def test_to_csv_row(self):
        values = _parse(make_node(connections=["node_0001"]).to_csv_row())
        assert len(values) == len(NODE_CSV_COLUMNS)
        assert values[0] == "node_0000"
        assert values[2] == "substation"
        assert values[11] == "online"

    def test_to_json(self):
        data = json.loads(make_node(connections=["node_0001"]).to_json())
        assert data["type"] == "substation"
        assert data["connections"] == ["node_0001"]
        assert data["risk_score"] == 0.2

    def test_from_dict_round_trip(self):
        node = make_node(node_type=NodeType.DATACENTER, status=NodeStatus.DEGRADED)
        again = Node.from_dict(node.to_dict())
        assert again == node

    def test_from_dict_defaults(self):
        node = Node.from_dict({"id": "n1"})
        assert node.name == "n1"
        assert node.type == NodeType.SUBSTATION
        assert node.status == NodeStatus.ONLINE
        assert node.connections == []

    def test_from_dict_rejects_unknown_status(self):
        with pytest.raises(ValueError):
            Node.from_dict({"id": "n1", "status": "melting"})


class TestSystemState:
    def test_counts_and_row(self):
        state = SystemState(0.9, 0.7, 0.5, ["a", "b"], ["c"], 10, 9, "2026-02-26T10:00:00Z")
        assert state.critical_count == 2
        assert state.warning_count == 1
        row = state.to_row()
        assert list(row) == SystemState.csv_header().split(",")
        assert row["critical_count"] == 2
        assert row["online_nodes"] == 9


# ═══════════════════════════════════════════════════════════════════════════
#  Prediction
# ═══════════════════════════════════════════════════════════════════════════


class TestPrediction:
    def test_urgency(self):
        assert make_prediction(probability=0.8, hours_to_event=4).urgency == pytest.approx(0.2)
        # sub-hour events are not amplified beyond their probability
        assert make_prediction(probability=0.8, hours_to_event=0.5).urgency == pytest.approx(0.8)

    def test_row_is_flat(self):
        row = make_prediction().to_row()
        assert list(row) == PREDICTION_CSV_COLUMNS
        assert row["type"] == "overload"
        assert row["severity"] == "high"

    def test_csv_row(self):
        values = _parse(make_prediction().to_csv_row())
        assert values[0] == "pred_node_0000_0001"
        assert values[-1] == "test reasoning"

    def test_json_includes_nested(self):
        data = json.loads(make_prediction().to_json())
        assert data["contributing_factors"] == []
        assert data["was_accurate"] is None


# ═══════════════════════════════════════════════════════════════════════════
#  Alert
# ═══════════════════════════════════════════════════════════════════════════


class TestAlert:
    @pytest.fixture
    def sample_alert(self):
        return Alert(
            id="alert_1",
            rule_id="r1",
            type=AlertType.CASCADE_DETECTED,
            severity=AlertSeverity.CRITICAL,
            title="Cascade, North",
            message="spreading",
            node_ids=["a", "b", "c"],
            created_at="2026-02-26T10:00:00Z",
        )

    def test_defaults(self, sample_alert):
        assert sample_alert.status == AlertStatus.ACTIVE
        assert sample_alert.prediction_id is None
        assert sample_alert.resolved_at is None

    def test_csv_row(self, sample_alert):
        values = _parse(sample_alert.to_csv_row())
        assert len(values) == len(ALERT_CSV_COLUMNS)
        assert values[5] == "Cascade, North"
        assert values[7] == "a;b;c"
        assert values[8] == ""

    def test_to_json(self, sample_alert):
        data = json.loads(sample_alert.to_json())
        assert data["type"] == "cascade_detected"
        assert data["node_ids"] == ["a", "b", "c"]


# ═══════════════════════════════════════════════════════════════════════════
#  CascadeEvent
# ═══════════════════════════════════════════════════════════════════════════


class TestCascadeEvent:
    def _event(self, hops=()):
        return CascadeEvent(
            id="cascade_1",
            origin_node="a",
            affected_nodes=("a", "b", "c"),
            impact_score=0.3,
            start_time="2026-02-26T10:00:00Z",
            propagation_path=tuple(hops),
            total_damage=0.5,
        )

    def test_max_depth(self):
        hops = [
            CascadeHop("a", "b", "2026-02-26T10:00:00Z", 0.3, 1),
            CascadeHop("b", "c", "2026-02-26T10:00:00Z", 0.2, 2),
        ]
        assert self._event(hops).max_depth == 2
        assert self._event().max_depth == 0

    def test_immutable(self):
        with pytest.raises(dataclasses.FrozenInstanceError):
            self._event().impact_score = 1.0

    def test_to_dict(self):
        hop = CascadeHop("a", "b", "2026-02-26T10:00:00Z", 0.3, 1)
        data = self._event([hop]).to_dict()
        assert data["affected_nodes"] == ["a", "b", "c"]
        assert data["propagation_path"][0]["to_node"] == "b"

"""Shared fixtures for Sentinel Grid tests."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from src.contracts.alert import AlertAction, AlertCondition, AlertRule
from src.contracts.config import PredictiveConfig, SimulationConfig
from src.contracts.enums import (
    ActionType,
    NodeStatus,
    NodeType,
    Operator,
    PredictionStatus,
    PredictionType,
    Severity,
)
from src.contracts.node import Node
from src.contracts.prediction import Prediction

BASE_TIME = datetime(2026, 2, 26, 10, 0, 0, tzinfo=timezone.utc)


# ── Helper: create Node with sensible defaults ──────────────────────────


def make_node(
    *,
    node_id: str = "node_0000",
    name: str = "North Substation 512",
    node_type: NodeType = NodeType.SUBSTATION,
    region: str = "North",
    x: float = 50.0,
    y: float = 50.0,
    risk_score: float = 0.2,
    health: float = 0.9,
    load_ratio: float = 0.5,
    temperature: float = 45.0,
    power_draw: float = 50.0,
    status: NodeStatus = NodeStatus.ONLINE,
    connections: list[str] | None = None,
) -> Node:
    return Node(
        id=node_id,
        name=name,
        type=node_type,
        region=region,
        x=x,
        y=y,
        risk_score=risk_score,
        health=health,
        load_ratio=load_ratio,
        temperature=temperature,
        power_draw=power_draw,
        status=status,
        last_seen="2026-02-26T10:00:00Z",
        connections=list(connections or []),
    )


def node_map(*nodes: Node) -> dict[str, Node]:
    return {n.id: n for n in nodes}


def make_prediction(
    *,
    pred_id: str = "pred_node_0000_0001",
    node_id: str = "node_0000",
    node_name: str = "North Substation 512",
    ptype: PredictionType = PredictionType.OVERLOAD,
    probability: float = 0.8,
    confidence: float = 0.75,
    hours_to_event: float = 4.0,
    severity: Severity = Severity.HIGH,
    created_at: str = "2026-02-26T10:00:00Z",
    predicted_time: str = "2026-02-26T14:00:00Z",
    status: PredictionStatus = PredictionStatus.ACTIVE,
    was_accurate: bool | None = None,
) -> Prediction:
    return Prediction(
        id=pred_id,
        node_id=node_id,
        node_name=node_name,
        type=ptype,
        probability=probability,
        confidence=confidence,
        hours_to_event=hours_to_event,
        predicted_time=predicted_time,
        severity=severity,
        reasoning="test reasoning",
        created_at=created_at,
        status=status,
        was_accurate=was_accurate,
    )


def make_rule(
    *,
    rule_id: str = "rule_test",
    name: str = "Test Rule",
    conditions: list[tuple[str, str, float | str]] | None = None,
    actions: list[AlertAction] | None = None,
    cooldown_minutes: float = 5.0,
    enabled: bool = True,
) -> AlertRule:
    conds = conditions if conditions is not None else [("risk_score", "gt", 0.8)]
    return AlertRule(
        id=rule_id,
        name=name,
        enabled=enabled,
        conditions=[AlertCondition(m, Operator(op), v) for m, op, v in conds],
        actions=actions if actions is not None else [AlertAction(ActionType.LOG, "system")],
        cooldown_minutes=cooldown_minutes,
    )


# ── Timestamp helpers ────────────────────────────────────────────────────


def at(minutes: float = 0, base: datetime = BASE_TIME) -> datetime:
    """BASE_TIME shifted by *minutes*."""
    return base + timedelta(minutes=minutes)


# ── Config fixtures ─────────────────────────────────────────────────────


@pytest.fixture
def sim_config() -> SimulationConfig:
    """Small grid for fast tests."""
    return SimulationConfig(seed=12345, node_count=50)


@pytest.fixture
def pred_config() -> PredictiveConfig:
    return PredictiveConfig()

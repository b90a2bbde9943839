"""Головний движок симуляції: tick, каскади, мітигація, стан системи.

All functions here are pure with respect to their input node map: they
return a *new* map (updated nodes are copies) and never mutate the
caller's nodes.  Randomness comes exclusively from the ``SeededRandom``
passed in, so a run is reproducible from its seed.

Bounds after every operation
────────────────────────────
  risk_score   ∈ [0, 1]
  health       ∈ [0.1, 1]
  load_ratio   ∈ [0.1, 1]
  temperature  ∈ [20, 100] °C
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import replace
from datetime import datetime

from src.contracts.cascade import CascadeEvent, CascadeHop
from src.contracts.config import SimulationConfig
from src.contracts.enums import NodeStatus, NodeType, ThreatType, WeatherCondition
from src.contracts.environment import Threat, WeatherSnapshot
from src.contracts.node import MitigationResult, Node, SystemState
from src.shared.rng import SeededRandom
from src.shared.timeutil import iso, utcnow
from src.simulator.weather import weather_impact

log = logging.getLogger(__name__)

MAX_CASCADE_DEPTH = 4
MIN_CASCADE_TRANSFER = 0.1
THREAT_SPILLOVER_PROB = 0.1

_DEFAULT_CFG = SimulationConfig()


class NodeNotFoundError(LookupError):
    """Raised when an operation that requires an existing node gets an unknown id."""

    def __init__(self, node_id: str) -> None:
        super().__init__(f"Node {node_id} not found")
        self.node_id = node_id


def _clamp(v: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, v))


def derive_status(
    risk: float,
    health: float,
    config: SimulationConfig | None = None,
) -> NodeStatus:
    """Status as a pure function of risk and health."""
    cfg = config or _DEFAULT_CFG
    if risk > cfg.critical_threshold or health < 0.3:
        return NodeStatus.CRITICAL
    if risk > cfg.warning_threshold or health < 0.6:
        return NodeStatus.DEGRADED
    return NodeStatus.ONLINE


# ═══════════════════════════════════════════════════════════════════════════
#  Tick
# ═══════════════════════════════════════════════════════════════════════════


def tick(
    nodes: dict[str, Node],
    threat: Threat | None,
    weather: WeatherSnapshot,
    rng: SeededRandom,
    config: SimulationConfig | None = None,
    now: datetime | None = None,
) -> dict[str, Node]:
    """Advance every node by one simulation step.

    Order per node: random drift → weather → threat → recovery →
    neighbour contagion → clamp → status.  Neighbour risk is read from
    the *pre-tick* map so the result does not depend on iteration order.
    """
    cfg = config or _DEFAULT_CFG
    impact = weather_impact(weather, cfg.weather_impact_multiplier)
    stamp = iso(now or utcnow())
    updated: dict[str, Node] = {}

    for node_id, node in nodes.items():
        risk = node.risk_score
        health = node.health
        load = node.load_ratio
        temp = node.temperature

        # ── drift ──
        risk += rng.next_gaussian(0, cfg.base_risk_drift)
        health += rng.next_gaussian(0, 0.01)
        load += rng.next_gaussian(0, 0.02)

        # ── weather ──
        if weather.condition == WeatherCondition.EXTREME_HEAT:
            temp += rng.next_float(0.5, 2)
            if temp > 70:
                risk += 0.05
        elif weather.condition == WeatherCondition.STORM:
            risk += rng.next_float(0.01, 0.05) * impact
            if node.type == NodeType.TELECOM_TOWER:
                risk += 0.03

        # ── threat ──
        if threat is not None and threat.active:
            targeted = threat.target == node_id or (
                bool(threat.region) and node.region == threat.region
            )
            if targeted or rng.next_bool(THREAT_SPILLOVER_PROB):
                risk, health, load = _apply_threat(
                    threat, risk, health, load, impact, rng
                )

        # ── recovery ──
        if risk < 0.3 and rng.next_bool(0.3):
            risk -= 0.01
            health += 0.005

        # ── contagion ──
        neighbour_risks = [
            nodes[c].risk_score for c in node.connections
            if c in nodes and nodes[c].risk_score > 0
        ]
        if neighbour_risks:
            mean = sum(neighbour_risks) / len(neighbour_risks)
            if mean > cfg.critical_threshold:
                risk += 0.02 * cfg.cascade_propagation_rate

        risk = _clamp(risk, 0.0, 1.0)
        health = _clamp(health, 0.1, 1.0)
        load = _clamp(load, 0.1, 1.0)
        temp = _clamp(temp, 20.0, 100.0)

        updated[node_id] = replace(
            node,
            risk_score=risk,
            health=health,
            load_ratio=load,
            temperature=temp,
            status=derive_status(risk, health, cfg),
            last_seen=stamp,
        )

    return updated


def _apply_threat(
    threat: Threat,
    risk: float,
    health: float,
    load: float,
    impact: float,
    rng: SeededRandom,
) -> tuple[float, float, float]:
    sev = threat.severity or 0.5
    if threat.type == ThreatType.CYBER_ATTACK:
        risk += rng.next_float(0.05, 0.15) * sev
        health -= rng.next_float(0.02, 0.08) * sev
    elif threat.type == ThreatType.OVERLOAD:
        load += rng.next_float(0.1, 0.3) * sev
        risk += 0.1 if load > 0.9 else 0.03
    elif threat.type == ThreatType.EQUIPMENT_FAILURE:
        health -= rng.next_float(0.05, 0.2) * sev
        risk += rng.next_float(0.05, 0.15) * sev
    elif threat.type == ThreatType.WEATHER_STRESS:
        risk += rng.next_float(0.03, 0.1) * impact * sev
    return risk, health, load


# ═══════════════════════════════════════════════════════════════════════════
#  Cascade propagation
# ═══════════════════════════════════════════════════════════════════════════


def simulate_cascade(
    nodes: dict[str, Node],
    origin_id: str,
    severity: float = 0.7,
    rng: SeededRandom | None = None,
    config: SimulationConfig | None = None,
    now: datetime | None = None,
) -> tuple[dict[str, Node], CascadeEvent]:
    """Propagate a failure breadth-first from ``origin_id``.

    Each queue entry carries a risk *budget*; an edge fires with
    probability ``rate × (1 − depth × 0.15)`` and hands 40–80 % of the
    budget to the neighbour.  Expansion stops at depth 4 or when the
    budget falls below 0.1, and the visited set guarantees every node is
    touched at most once.

    Raises:
        NodeNotFoundError: ``origin_id`` is not in ``nodes``.
    """
    if origin_id not in nodes:
        raise NodeNotFoundError(origin_id)

    cfg = config or _DEFAULT_CFG
    rng = rng or SeededRandom(cfg.seed)
    stamp = iso(now or utcnow())
    updated = dict(nodes)

    origin = nodes[origin_id]
    updated[origin_id] = replace(
        origin,
        risk_score=min(1.0, origin.risk_score + severity * 0.5),
        health=max(0.1, origin.health - severity * 0.3),
        status=NodeStatus.CRITICAL,
    )

    affected: list[str] = [origin_id]
    path: list[CascadeHop] = []
    visited: set[str] = {origin_id}
    queue: deque[tuple[str, int, float]] = deque([(origin_id, 0, severity)])

    while queue:
        node_id, depth, budget = queue.popleft()
        if depth >= MAX_CASCADE_DEPTH or budget < MIN_CASCADE_TRANSFER:
            continue

        chance = cfg.cascade_propagation_rate * (1 - depth * 0.15)
        for conn_id in updated[node_id].connections:
            if conn_id in visited or conn_id not in updated:
                continue
            if not rng.next_bool(chance):
                continue

            visited.add(conn_id)
            transfer = budget * rng.next_float(0.4, 0.8)
            peer = updated[conn_id]
            risk = min(1.0, peer.risk_score + transfer)
            health = max(0.1, peer.health - transfer * 0.2)
            updated[conn_id] = replace(
                peer,
                risk_score=risk,
                health=health,
                status=derive_status(risk, health, cfg),
            )
            affected.append(conn_id)
            path.append(
                CascadeHop(
                    from_node=node_id,
                    to_node=conn_id,
                    timestamp=stamp,
                    risk_transfer=transfer,
                    depth=depth + 1,
                )
            )
            queue.append((conn_id, depth + 1, transfer))

    damage = sum(updated[i].risk_score - nodes[i].risk_score for i in affected)
    event = CascadeEvent(
        id=f"cascade_{rng.next_uuid()[:8]}",
        origin_node=origin_id,
        affected_nodes=tuple(affected),
        impact_score=len(affected) / len(nodes),
        start_time=stamp,
        propagation_path=tuple(path),
        total_damage=damage,
    )
    log.info(
        "Cascade %s from %s: %d nodes affected (impact=%.3f, damage=%.3f)",
        event.id, origin_id, len(affected), event.impact_score, damage,
    )
    return updated, event


# ═══════════════════════════════════════════════════════════════════════════
#  Mitigation
# ═══════════════════════════════════════════════════════════════════════════


def auto_mitigate(
    nodes: dict[str, Node],
    node_id: str,
    config: SimulationConfig | None = None,
) -> MitigationResult:
    """Apply every mitigation whose trigger condition holds for ``node_id``.

    Unknown ids produce ``success=False`` instead of raising.
    """
    cfg = config or _DEFAULT_CFG
    node = nodes.get(node_id)
    if node is None:
        log.warning("Mitigation skipped: node %s not found", node_id)
        return MitigationResult(success=False, node_id=node_id)

    actions: list[str] = []
    risk_reduction = 0.0
    health_gain = 0.0

    if node.risk_score > cfg.critical_threshold:
        actions.append("Emergency load shedding")
        risk_reduction += 0.2
        actions.append("Activated backup systems")
        risk_reduction += 0.1
    if node.load_ratio > 0.85:
        actions.append("Load balancing to adjacent nodes")
        risk_reduction += 0.1
    if node.temperature > 65:
        actions.append("Activated cooling systems")
        risk_reduction += 0.05
        health_gain += 0.05
    if node.health < 0.5:
        actions.append("Scheduled maintenance dispatch")
        health_gain += 0.1

    risk_reduction *= cfg.mitigation_effectiveness
    health_gain *= cfg.mitigation_effectiveness

    risk = max(0.0, node.risk_score - risk_reduction)
    health = min(1.0, node.health + health_gain)
    mitigated = replace(
        node,
        risk_score=risk,
        health=health,
        load_ratio=max(0.3, node.load_ratio - 0.1),
        status=derive_status(risk, health, cfg),
    )
    if actions:
        log.info(
            "Mitigated %s: %s (risk -%.3f, health +%.3f)",
            node_id, "; ".join(actions), risk_reduction, health_gain,
        )
    return MitigationResult(
        success=bool(actions),
        node_id=node_id,
        node_name=node.name,
        node=mitigated,
        actions=actions,
        risk_reduction=risk_reduction,
        health_gain=health_gain,
    )


# ═══════════════════════════════════════════════════════════════════════════
#  System state
# ═══════════════════════════════════════════════════════════════════════════


def get_system_state(
    nodes: dict[str, Node],
    config: SimulationConfig | None = None,
    now: datetime | None = None,
) -> SystemState:
    cfg = config or _DEFAULT_CFG
    stamp = iso(now or utcnow())
    if not nodes:
        return SystemState(0.0, 0.0, 0.0, [], [], 0, 0, stamp)

    node_list = list(nodes.values())
    n = len(node_list)
    critical: list[str] = []
    warning: list[str] = []
    for node in node_list:
        status = derive_status(node.risk_score, node.health, cfg)
        if status == NodeStatus.CRITICAL or node.status == NodeStatus.CRITICAL:
            critical.append(node.id)
        elif status == NodeStatus.DEGRADED:
            warning.append(node.id)

    return SystemState(
        max_risk=max(nd.risk_score for nd in node_list),
        avg_health=sum(nd.health for nd in node_list) / n,
        avg_load=sum(nd.load_ratio for nd in node_list) / n,
        critical_nodes=critical,
        warning_nodes=warning,
        total_nodes=n,
        online_nodes=sum(1 for nd in node_list if nd.status != NodeStatus.OFFLINE),
        timestamp=stamp,
    )

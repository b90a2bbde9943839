"""Pattern detection — Node map + history → Pattern list.

Every call recomputes the full set from the current node map and the
rolling history; nothing is carried over between calls.

Detected patterns
─────────────────
  correlated_degradation  — ≥2 nodes in one region with rising risk
  load_imbalance          — nodes >130 % and <70 % of mean load co-exist
  thermal_cluster         — hot (>60 °C) nodes within 15 units of each other
  cascading_risk          — critical node with ≥2 neighbours above warning
  geographic_stress       — region mean risk above 0.5
"""

from __future__ import annotations

import logging
import math
from collections import defaultdict
from datetime import datetime

from src.analyzer.history import HistoryStore, least_squares_slope, tail
from src.contracts.config import PredictiveConfig
from src.contracts.enums import PatternTrend, PatternType
from src.contracts.node import Node
from src.contracts.prediction import Pattern
from src.shared.timeutil import iso, utcnow

log = logging.getLogger(__name__)

DEGRADATION_SLOPE = 0.02
HOT_TEMPERATURE = 60.0
CLUSTER_RADIUS = 15.0
STRESSED_REGION_RISK = 0.5
SLOPE_SAMPLES = 5


def analyze_patterns(
    nodes: dict[str, Node],
    history: HistoryStore,
    config: PredictiveConfig | None = None,
    now: datetime | None = None,
) -> list[Pattern]:
    cfg = config or PredictiveConfig()
    stamp = iso(now or utcnow())
    node_list = list(nodes.values())
    if not node_list:
        return []

    samples = slope_samples(cfg)
    patterns: list[Pattern] = []
    patterns.extend(_correlated_degradation(node_list, history, samples, stamp))
    patterns.extend(_load_imbalance(node_list, stamp))
    patterns.extend(_thermal_clusters(node_list, history, samples, stamp))
    patterns.extend(_cascading_risk(nodes, cfg, stamp))
    patterns.extend(_geographic_stress(node_list, stamp))

    log.debug("Pattern analysis: %d patterns over %d nodes", len(patterns), len(node_list))
    return patterns


# ── detectors ────────────────────────────────────────────────────────────


def _correlated_degradation(
    node_list: list[Node], history: HistoryStore, samples: int, stamp: str
) -> list[Pattern]:
    by_region: dict[str, list[Node]] = defaultdict(list)
    for node in node_list:
        hist = history.get(node.id)
        if hist is None or len(hist.risk_scores) < samples:
            continue
        if least_squares_slope(tail(hist.risk_scores, samples)) > DEGRADATION_SLOPE:
            by_region[node.region].append(node)

    out: list[Pattern] = []
    for region, members in by_region.items():
        if len(members) < 2:
            continue
        out.append(
            Pattern(
                id=f"pattern_corr_{region}",
                type=PatternType.CORRELATED_DEGRADATION,
                description=f"{len(members)} nodes in {region} showing correlated risk increase",
                affected_nodes=[n.id for n in members],
                confidence=min(0.9, 0.5 + len(members) * 0.1),
                detected_at=stamp,
                trend=PatternTrend.ESCALATING,
            )
        )
    return out


def _load_imbalance(node_list: list[Node], stamp: str) -> list[Pattern]:
    avg = sum(n.load_ratio for n in node_list) / len(node_list)
    over = [n for n in node_list if n.load_ratio > avg * 1.3]
    under = [n for n in node_list if n.load_ratio < avg * 0.7]
    if not over or not under:
        return []
    return [
        Pattern(
            id="pattern_load_imbalance",
            type=PatternType.LOAD_IMBALANCE,
            description=(
                f"Load imbalance: {len(over)} overloaded, {len(under)} underutilized"
            ),
            affected_nodes=[n.id for n in over + under],
            confidence=min(0.85, 0.5 + len(over) * 0.05),
            detected_at=stamp,
            trend=PatternTrend.STABLE,
        )
    ]


def _thermal_clusters(
    node_list: list[Node], history: HistoryStore, samples: int, stamp: str
) -> list[Pattern]:
    hot = [n for n in node_list if n.temperature > HOT_TEMPERATURE]
    out: list[Pattern] = []
    for i, cluster in enumerate(spatial_clusters(hot, CLUSTER_RADIUS)):
        out.append(
            Pattern(
                id=f"pattern_thermal_{i}",
                type=PatternType.THERMAL_CLUSTER,
                description=(
                    f"Thermal hotspot: {len(cluster)} nodes exceeding temperature thresholds"
                ),
                affected_nodes=[n.id for n in cluster],
                confidence=min(0.88, 0.6 + len(cluster) * 0.07),
                detected_at=stamp,
                trend=temperature_trend(cluster, history, samples),
            )
        )
    return out


def _cascading_risk(
    nodes: dict[str, Node], cfg: PredictiveConfig, stamp: str
) -> list[Pattern]:
    out: list[Pattern] = []
    for node in nodes.values():
        if node.risk_score <= cfg.critical_threshold:
            continue
        at_risk = [
            c for c in node.connections
            if c in nodes and nodes[c].risk_score > cfg.warning_threshold
        ]
        if len(at_risk) < 2:
            continue
        out.append(
            Pattern(
                id=f"pattern_cascade_{node.id}",
                type=PatternType.CASCADING_RISK,
                description=(
                    f"Cascade risk from {node.name}: "
                    f"{len(at_risk)} connected nodes at elevated risk"
                ),
                affected_nodes=[node.id, *at_risk],
                confidence=min(0.95, 0.75 + len(at_risk) * 0.05),
                detected_at=stamp,
                trend=PatternTrend.ESCALATING,
            )
        )
    return out


def _geographic_stress(node_list: list[Node], stamp: str) -> list[Pattern]:
    by_region: dict[str, list[Node]] = defaultdict(list)
    for node in node_list:
        by_region[node.region].append(node)

    out: list[Pattern] = []
    for region, members in by_region.items():
        avg_risk = sum(n.risk_score for n in members) / len(members)
        if avg_risk <= STRESSED_REGION_RISK:
            continue
        out.append(
            Pattern(
                id=f"pattern_geo_{region}",
                type=PatternType.GEOGRAPHIC_STRESS,
                description=(
                    f"Region {region} under elevated stress (avg risk: {avg_risk * 100:.0f}%)"
                ),
                affected_nodes=[n.id for n in members],
                confidence=min(0.9, avg_risk + 0.2),
                detected_at=stamp,
                trend=PatternTrend.ESCALATING if avg_risk > 0.7 else PatternTrend.STABLE,
            )
        )
    return out


# ── helpers ──────────────────────────────────────────────────────────────


def slope_samples(cfg: PredictiveConfig) -> int:
    """Trend slopes read the last 5 samples, never more than the detection window."""
    return max(2, min(SLOPE_SAMPLES, cfg.pattern_detection_window))


def spatial_clusters(nodes: list[Node], radius: float) -> list[list[Node]]:
    """Greedy clustering: each unvisited seed collects unvisited nodes within ``radius``.

    Only clusters with at least two members are returned.
    """
    clusters: list[list[Node]] = []
    visited: set[str] = set()
    for seed in nodes:
        if seed.id in visited:
            continue
        visited.add(seed.id)
        cluster = [seed]
        for other in nodes:
            if other.id in visited:
                continue
            if math.hypot(seed.x - other.x, seed.y - other.y) < radius:
                cluster.append(other)
                visited.add(other.id)
        if len(cluster) >= 2:
            clusters.append(cluster)
    return clusters


def temperature_trend(
    cluster: list[Node], history: HistoryStore, samples: int = SLOPE_SAMPLES
) -> PatternTrend:
    """Escalating/resolving when rising (falling) members outnumber the others 1.5:1."""
    rising = falling = 0
    for node in cluster:
        hist = history.get(node.id)
        if hist is None or len(hist.temperatures) < min(3, samples):
            continue
        slope = least_squares_slope(tail(hist.temperatures, samples))
        if slope > 0.01:
            rising += 1
        elif slope < -0.01:
            falling += 1
    if rising > falling * 1.5:
        return PatternTrend.ESCALATING
    if falling > rising * 1.5:
        return PatternTrend.RESOLVING
    return PatternTrend.STABLE

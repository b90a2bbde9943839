"""Predictive engine — history → patterns → ranked per-node predictions.

Predictions come from explainable weighted heuristics, not a trained
model.  Per node, up to six signals are evaluated:

  F1  Risk Velocity        least-squares risk trend projected to critical
  F2  Current Risk Level   absolute risk above the warning threshold
  F3  Health Status        health below 0.7
  F4  Load Ratio           load above 0.85
  F5  Temperature          temperature above 60 °C
  F6  Connected Node Risk  ≥2 neighbours above the warning threshold

The node's probability is the maximum over fired signals; the prediction
type is taken from the last signal that sets one.  Small seeded Gaussian
noise is added before emission, so results are reproducible per seed.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Iterable

from src.analyzer.history import HistoryStore, NodeHistory, least_squares_slope, tail, velocity
from src.analyzer.metrics import compute_accuracy
from src.analyzer.patterns import analyze_patterns
from src.contracts.config import PredictiveConfig
from src.contracts.enums import (
    ActionPriority,
    NodeStatus,
    PatternTrend,
    PredictionStatus,
    PredictionType,
    Severity,
    Trend,
)
from src.contracts.node import Node, SystemState
from src.contracts.prediction import (
    AccuracyMetrics,
    ContributingFactor,
    Pattern,
    Prediction,
    SuggestedAction,
)
from src.shared.rng import SeededRandom
from src.shared.timeutil import iso, parse_iso, utcnow

log = logging.getLogger(__name__)

_TYPE_DESCRIPTIONS: dict[PredictionType, str] = {
    PredictionType.CASCADE_FAILURE: "Cascade failure risk detected due to",
    PredictionType.EQUIPMENT_FAILURE: "Equipment failure predicted based on",
    PredictionType.OVERLOAD: "System overload anticipated from",
    PredictionType.THERMAL_STRESS: "Thermal stress condition identified via",
    PredictionType.CYBER_VULNERABILITY: "Cyber vulnerability exposure indicated by",
    PredictionType.WEATHER_IMPACT: "Weather impact expected from",
    PredictionType.CAPACITY_BREACH: "Capacity breach likely due to",
}

_P, _S = ActionPriority, Severity

# (action, priority, impact, estimated effect, automated)
_ACTION_CATALOG: dict[PredictionType, list[tuple[str, ActionPriority, Severity, float, bool]]] = {
    PredictionType.CASCADE_FAILURE: [
        ("Isolate node from critical neighbors", _P.IMMEDIATE, _S.CRITICAL, 0.4, True),
        ("Pre-position backup resources", _P.HIGH, _S.HIGH, 0.25, False),
    ],
    PredictionType.OVERLOAD: [
        ("Initiate load shedding protocol", _P.IMMEDIATE, _S.HIGH, 0.35, True),
        ("Redistribute load to underutilized nodes", _P.HIGH, _S.MEDIUM, 0.2, True),
    ],
    PredictionType.THERMAL_STRESS: [
        ("Activate enhanced cooling systems", _P.HIGH, _S.MEDIUM, 0.25, True),
        ("Reduce operational load by 20%", _P.MEDIUM, _S.MEDIUM, 0.15, True),
    ],
    PredictionType.EQUIPMENT_FAILURE: [
        ("Schedule immediate maintenance inspection", _P.IMMEDIATE, _S.HIGH, 0.3, False),
        ("Prepare failover to backup systems", _P.HIGH, _S.CRITICAL, 0.4, True),
    ],
}
_DEFAULT_ACTION = ("Monitor closely and prepare contingency", _P.MEDIUM, _S.MEDIUM, 0.15, False)
_CAPACITY_ACTION = ("Emergency capacity expansion", _P.IMMEDIATE, _S.HIGH, 0.3, False)
MAX_ACTIONS = 4


class PredictiveEngine:
    """Stateful analytics: owns history, the latest batch, and the resolved pool."""

    def __init__(
        self,
        config: PredictiveConfig | None = None,
        rng: SeededRandom | None = None,
    ) -> None:
        self.config = config or PredictiveConfig()
        self.rng = rng or SeededRandom(self.config.seed)
        self.history = HistoryStore(self.config.history_window)
        self._predictions: list[Prediction] = []
        self._patterns: list[Pattern] = []
        self._resolved: list[Prediction] = []
        self._mitigated: list[Prediction] = []
        self._missed_events = 0
        self._batch = 0

    # ── accessors ────────────────────────────────────────────────────

    @property
    def latest_predictions(self) -> list[Prediction]:
        return list(self._predictions)

    @property
    def latest_patterns(self) -> list[Pattern]:
        return list(self._patterns)

    @property
    def resolved_predictions(self) -> list[Prediction]:
        return list(self._resolved)

    @property
    def mitigated_predictions(self) -> list[Prediction]:
        return list(self._mitigated)

    @property
    def system_history(self) -> list[SystemState]:
        return list(self.history.system)

    # ── history ──────────────────────────────────────────────────────

    def update_histories(
        self,
        system_snapshots: Iterable[SystemState],
        nodes: dict[str, Node],
    ) -> None:
        self.history.update(system_snapshots, nodes)

    # ── patterns ─────────────────────────────────────────────────────

    def analyze_patterns(
        self,
        nodes: dict[str, Node],
        now: datetime | None = None,
    ) -> list[Pattern]:
        self._patterns = analyze_patterns(nodes, self.history, self.config, now)
        return list(self._patterns)

    # ── predictions ──────────────────────────────────────────────────

    def generate_predictions(
        self,
        nodes: dict[str, Node],
        now: datetime | None = None,
    ) -> list[Prediction]:
        """Evaluate every node and return predictions sorted by urgency."""
        now = now or utcnow()
        self._batch += 1
        predictions: list[Prediction] = []
        for node in nodes.values():
            pred = self._predict_node(node, nodes, now)
            if pred is not None:
                predictions.append(pred)

        predictions.sort(key=lambda p: p.urgency, reverse=True)
        self._predictions = predictions
        log.info(
            "Generated %d predictions (batch %d, %d nodes)",
            len(predictions), self._batch, len(nodes),
        )
        return list(predictions)

    def _predict_node(
        self,
        node: Node,
        nodes: dict[str, Node],
        now: datetime,
    ) -> Prediction | None:
        cfg = self.config
        hist = self.history.get(node.id)
        factors: list[ContributingFactor] = []
        max_p = 0.0
        ptype = PredictionType.EQUIPMENT_FAILURE
        hours = cfg.prediction_horizon_hours

        # F1: risk trend projected to the critical threshold
        if hist is not None and len(hist.risk_scores) >= 5:
            recent = tail(hist.risk_scores, 10)
            slope = least_squares_slope(recent)
            vel = velocity(recent)
            if slope > 0.01:
                if vel > 0:
                    projected = (cfg.critical_threshold - node.risk_score) / vel
                    if 0 < projected < cfg.prediction_horizon_hours:
                        hours = min(hours, projected)
                        max_p = max(max_p, 0.3 + slope * 10)
                        ptype = PredictionType.CASCADE_FAILURE
                factors.append(
                    ContributingFactor(
                        factor="Risk Velocity",
                        weight=0.3,
                        current_value=vel,
                        threshold=0.05,
                        trend=Trend.INCREASING if slope > 0.02 else Trend.STABLE,
                    )
                )

        # F2: absolute risk
        if node.risk_score > cfg.warning_threshold:
            max_p = max(max_p, 0.4 + (node.risk_score - cfg.warning_threshold) * 2)
            if node.risk_score > cfg.critical_threshold:
                hours = min(hours, 6)
                ptype = PredictionType.CASCADE_FAILURE
            else:
                hours = min(hours, 24)
            factors.append(
                ContributingFactor(
                    "Current Risk Level", 0.35, node.risk_score,
                    cfg.warning_threshold, Trend.INCREASING,
                )
            )

        # F3: health degradation
        if node.health < 0.7:
            max_p = max(max_p, 0.3 + (0.7 - node.health))
            hours = min(hours, 36)
            if node.health < 0.5:
                ptype = PredictionType.EQUIPMENT_FAILURE
                hours = min(hours, 12)
            factors.append(
                ContributingFactor("Health Status", 0.25, node.health, 0.7, Trend.DECREASING)
            )

        # F4: load stress
        if node.load_ratio > 0.85:
            max_p = max(max_p, 0.35 + (node.load_ratio - 0.85) * 3)
            ptype = PredictionType.OVERLOAD
            hours = min(hours, 8)
            factors.append(
                ContributingFactor("Load Ratio", 0.2, node.load_ratio, 0.85, Trend.INCREASING)
            )

        # F5: temperature
        if node.temperature > 60:
            max_p = max(max_p, 0.25 + (node.temperature - 60) * 0.02)
            ptype = PredictionType.THERMAL_STRESS
            hours = min(hours, 18)
            factors.append(
                ContributingFactor(
                    "Temperature", 0.15, node.temperature, 60,
                    Trend.INCREASING if node.temperature > 70 else Trend.STABLE,
                )
            )

        # F6: neighbour contagion
        risky = [
            nodes[c].risk_score for c in node.connections
            if c in nodes and nodes[c].risk_score > cfg.warning_threshold
        ]
        if len(risky) >= 2:
            avg = sum(risky) / len(risky)
            max_p = max(max_p, 0.3 + avg * 0.4)
            ptype = PredictionType.CASCADE_FAILURE
            factors.append(
                ContributingFactor(
                    "Connected Node Risk", 0.2, avg, cfg.warning_threshold, Trend.INCREASING
                )
            )

        if max_p < cfg.min_confidence_threshold or not factors:
            return None

        probability = max(0.5, min(0.98, max_p + self.rng.next_gaussian(0, 0.05)))
        hours = max(1.0, hours + self.rng.next_gaussian(0, 2))

        return Prediction(
            id=f"pred_{node.id}_{self._batch:04d}",
            node_id=node.id,
            node_name=node.name,
            type=ptype,
            probability=probability,
            confidence=self._confidence(hist, factors),
            hours_to_event=hours,
            predicted_time=iso(now + timedelta(hours=hours)),
            severity=severity_for(probability, hours),
            reasoning=build_reasoning(ptype, factors),
            contributing_factors=factors,
            suggested_actions=suggest_actions(ptype, factors),
            created_at=iso(now),
            status=PredictionStatus.ACTIVE,
        )

    @staticmethod
    def _confidence(hist: NodeHistory | None, factors: list[ContributingFactor]) -> float:
        confidence = 0.6
        if hist is not None:
            confidence += min(0.2, len(hist) / 100)
        confidence += min(0.15, len(factors) * 0.03)
        if sum(f.weight for f in factors) > 0.5:
            confidence += 0.05
        return min(0.95, confidence)

    # ── scores & bookkeeping ─────────────────────────────────────────

    def get_system_health_score(self, nodes: dict[str, Node]) -> float:
        """Blend of mean health and (1 − mean risk), penalised by urgent
        predictions and escalating patterns; clamped to [0, 1]."""
        if not nodes:
            return 0.0
        n = len(nodes)
        avg_health = sum(x.health for x in nodes.values()) / n
        avg_risk = sum(x.risk_score for x in nodes.values()) / n
        urgent = sum(
            1 for p in self._predictions if p.hours_to_event < 12 and p.probability > 0.7
        )
        escalating = sum(1 for p in self._patterns if p.trend == PatternTrend.ESCALATING)
        score = (
            avg_health * 0.4 + (1 - avg_risk) * 0.4 + 0.2
            - min(0.3, urgent * 0.05)
            - min(0.2, escalating * 0.04)
        )
        return max(0.0, min(1.0, score))

    def resolve_prediction(
        self,
        prediction_id: str,
        was_accurate: bool,
        now: datetime | None = None,
    ) -> bool:
        """Move an active prediction into the resolved pool.

        Accurate predictions become ``occurred``, inaccurate ones ``expired``.
        Returns False when no active prediction has that id.
        """
        for pred in self._predictions:
            if pred.id == prediction_id and pred.status == PredictionStatus.ACTIVE:
                pred.status = (
                    PredictionStatus.OCCURRED if was_accurate else PredictionStatus.EXPIRED
                )
                pred.was_accurate = was_accurate
                pred.resolved_at = iso(now or utcnow())
                self._resolved.append(pred)
                self._predictions.remove(pred)
                log.info("Prediction %s resolved (accurate=%s)", prediction_id, was_accurate)
                return True
        log.warning("Prediction %s not found among active predictions", prediction_id)
        return False

    def has_active_prediction(self, node_id: str) -> bool:
        return any(p.node_id == node_id for p in self._predictions)

    def evaluate_outcomes(
        self,
        nodes: dict[str, Node],
        now: datetime | None = None,
    ) -> int:
        """Resolve active predictions against the current node map.

        A prediction whose node has gone critical counts as occurred; one
        whose predicted time has passed without that counts as expired.
        Returns the number resolved.
        """
        now = now or utcnow()
        resolved = 0
        for pred in list(self._predictions):
            node = nodes.get(pred.node_id)
            if node is not None and node.status == NodeStatus.CRITICAL:
                resolved += self.resolve_prediction(pred.id, True, now)
            elif now >= parse_iso(pred.predicted_time):
                resolved += self.resolve_prediction(pred.id, False, now)
        return resolved

    def mark_mitigated(self, node_id: str, now: datetime | None = None) -> int:
        """Close active predictions for ``node_id`` as mitigated; returns how many."""
        stamp = iso(now or utcnow())
        hits = [p for p in self._predictions if p.node_id == node_id]
        for pred in hits:
            pred.status = PredictionStatus.MITIGATED
            pred.resolved_at = stamp
            self._mitigated.append(pred)
        if hits:
            self._predictions = [p for p in self._predictions if p.node_id != node_id]
        return len(hits)

    def record_missed_event(self, node_id: str, prediction_type: PredictionType | str) -> None:
        """Register a failure that occurred with no prediction ahead of it."""
        self._missed_events += 1
        log.info("Missed event recorded: %s on %s", PredictionType(prediction_type).value, node_id)

    def get_accuracy_metrics(self) -> AccuracyMetrics:
        return compute_accuracy(self._resolved, self._missed_events)

    def reset(self) -> None:
        self.history.clear()
        self._predictions.clear()
        self._patterns.clear()
        self._resolved.clear()
        self._mitigated.clear()
        self._missed_events = 0
        self._batch = 0
        self.rng.reset()


# ═══════════════════════════════════════════════════════════════════════════
#  Explanation helpers
# ═══════════════════════════════════════════════════════════════════════════


def severity_for(probability: float, hours: float) -> Severity:
    if probability > 0.85 or hours < 4:
        return Severity.CRITICAL
    if probability > 0.7 or hours < 8:
        return Severity.HIGH
    if probability > 0.55 or hours < 16:
        return Severity.MEDIUM
    return Severity.LOW


def _describe_factor(f: ContributingFactor) -> str:
    if f.factor == "Temperature":
        return f"{f.factor} ({f.current_value:.1f}°C vs {f.threshold:.0f}°C threshold)"
    return f"{f.factor} ({f.current_value * 100:.0f}% vs {f.threshold * 100:.0f}% threshold)"


def build_reasoning(ptype: PredictionType, factors: list[ContributingFactor]) -> str:
    top = sorted(factors, key=lambda f: f.weight, reverse=True)[:3]
    listed = ", ".join(_describe_factor(f) for f in top)
    return (
        f"{_TYPE_DESCRIPTIONS[ptype]} {listed}. "
        "Historical patterns and real-time telemetry support this prediction."
    )


def suggest_actions(
    ptype: PredictionType, factors: list[ContributingFactor]
) -> list[SuggestedAction]:
    rows = list(_ACTION_CATALOG.get(ptype, [_DEFAULT_ACTION]))
    if any(f.factor == "Load Ratio" and f.current_value > 0.9 for f in factors):
        rows.append(_CAPACITY_ACTION)
    return [SuggestedAction(*row) for row in rows[:MAX_ACTIONS]]

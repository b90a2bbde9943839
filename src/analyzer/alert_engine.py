"""Alert engine — rule evaluation, cooldowns and alert lifecycle.

Rules are evaluated independently against three contexts, each with its
own metric lookup:

  prediction  probability, hours_to_event, confidence, type, severity
  system      system_health, max_risk, avg_load, critical_count
  node        risk_score, health, load_ratio, temperature

A condition on a metric the context does not provide is false, so a
rule only fires in the contexts that know all of its metrics.  Cooldowns
are keyed by rule id (prediction/system) or ``"{rule}_{node}"`` (node).

Lifecycle: active → acknowledged → resolved (acknowledgement optional).
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Any

from src.analyzer.actions import ActionDispatcher
from src.contracts.alert import Alert, AlertAction, AlertCondition, AlertRule
from src.contracts.enums import (
    ActionType,
    AlertSeverity,
    AlertStatus,
    AlertType,
    Operator,
    PredictionType,
)
from src.contracts.node import Node, SystemState
from src.contracts.prediction import Prediction
from src.shared.rng import SeededRandom
from src.shared.timeutil import iso, parse_iso, utcnow

log = logging.getLogger(__name__)

DEFAULT_ALERT_SEED = 99999

DEFAULT_RULES_CFG: dict[str, Any] = {
    "rules": [
        {
            "id": "alert_critical_risk",
            "name": "Critical Risk Threshold",
            "conditions": [{"metric": "risk_score", "operator": "gt", "value": 0.8}],
            "actions": [
                {"type": "log", "target": "system"},
                {"type": "webhook", "target": "/api/alerts"},
            ],
            "cooldown_minutes": 5,
        },
        {
            "id": "alert_prediction_urgent",
            "name": "Urgent Prediction",
            "conditions": [
                {"metric": "hours_to_event", "operator": "lt", "value": 6},
                {"metric": "probability", "operator": "gt", "value": 0.7},
            ],
            "actions": [{"type": "log", "target": "system"}],
            "cooldown_minutes": 15,
        },
        {
            "id": "alert_cascade_detected",
            "name": "Cascade Event Detected",
            "conditions": [{"metric": "type", "operator": "eq", "value": "cascade_failure"}],
            "actions": [
                {"type": "log", "target": "system"},
                {"type": "webhook", "target": "/api/cascade-alert"},
            ],
            "cooldown_minutes": 10,
        },
        {
            "id": "alert_system_degradation",
            "name": "System Health Degradation",
            "conditions": [{"metric": "system_health", "operator": "lt", "value": 0.6}],
            "actions": [{"type": "log", "target": "system"}],
            "cooldown_minutes": 30,
        },
    ]
}

_PREDICTION_SEVERITY: dict[str, AlertSeverity] = {
    "critical": AlertSeverity.CRITICAL,
    "high": AlertSeverity.ERROR,
    "medium": AlertSeverity.WARNING,
    "low": AlertSeverity.INFO,
}


# ═══════════════════════════════════════════════════════════════════════════
#  Rule parsing
# ═══════════════════════════════════════════════════════════════════════════


def parse_rule(raw: dict[str, Any]) -> AlertRule:
    """Build an AlertRule from a rules.yaml entry.

    Raises:
        ValueError: missing id, unknown operator or unknown action type.
    """
    if not raw.get("id"):
        raise ValueError(f"Alert rule without id: {raw!r}")
    try:
        conditions = [
            AlertCondition(
                metric=str(c["metric"]),
                operator=Operator(c["operator"]),
                value=c["value"],
            )
            for c in raw.get("conditions", [])
        ]
        actions = [
            AlertAction(
                type=ActionType(a["type"]),
                target=str(a.get("target", "")),
                template=a.get("template"),
            )
            for a in raw.get("actions", [])
        ]
    except (KeyError, ValueError) as exc:
        raise ValueError(f"Invalid alert rule {raw['id']}: {exc}") from exc
    return AlertRule(
        id=str(raw["id"]),
        name=str(raw.get("name", raw["id"])),
        enabled=bool(raw.get("enabled", True)),
        conditions=conditions,
        actions=actions,
        cooldown_minutes=float(raw.get("cooldown_minutes", 5)),
    )


def load_rules(rules_cfg: dict[str, Any] | None) -> list[AlertRule]:
    """Parse the ``rules:`` list of config/rules.yaml (defaults when absent)."""
    cfg = rules_cfg if rules_cfg and rules_cfg.get("rules") else DEFAULT_RULES_CFG
    return [parse_rule(r) for r in cfg["rules"]]


# ═══════════════════════════════════════════════════════════════════════════
#  Metric lookups & comparison
# ═══════════════════════════════════════════════════════════════════════════


def prediction_metric(pred: Prediction, metric: str) -> float | str | None:
    return {
        "probability": pred.probability,
        "hours_to_event": pred.hours_to_event,
        "confidence": pred.confidence,
        "type": pred.type.value,
        "severity": pred.severity.value,
    }.get(metric)


def system_metric(state: SystemState, metric: str) -> float | None:
    return {
        "system_health": state.avg_health,
        "max_risk": state.max_risk,
        "avg_load": state.avg_load,
        "critical_count": float(state.critical_count),
    }.get(metric)


def node_metric(node: Node, metric: str) -> float | None:
    return {
        "risk_score": node.risk_score,
        "health": node.health,
        "load_ratio": node.load_ratio,
        "temperature": node.temperature,
    }.get(metric)


def compare(actual: float | str | None, op: Operator, expected: float | str) -> bool:
    """Numeric comparison; strings support only eq/ne.  Unknown (None) is false."""
    if actual is None:
        return False
    if isinstance(actual, str) or isinstance(expected, str):
        if op == Operator.EQ:
            return str(actual) == str(expected)
        if op == Operator.NE:
            return str(actual) != str(expected)
        return False
    a, e = float(actual), float(expected)
    if op == Operator.GT:
        return a > e
    if op == Operator.GTE:
        return a >= e
    if op == Operator.LT:
        return a < e
    if op == Operator.LTE:
        return a <= e
    if op == Operator.EQ:
        return a == e
    if op == Operator.NE:
        return a != e
    return False


def _all_hold(conditions: list[AlertCondition], lookup) -> bool:
    if not conditions:
        return False
    return all(compare(lookup(c.metric), c.operator, c.value) for c in conditions)


# ═══════════════════════════════════════════════════════════════════════════
#  Engine
# ═══════════════════════════════════════════════════════════════════════════


class AlertEngine:
    """Evaluates rules, stamps cooldowns, keeps alerts and dispatches actions."""

    def __init__(
        self,
        rules: list[AlertRule] | None = None,
        rng: SeededRandom | None = None,
        dispatcher: ActionDispatcher | None = None,
    ) -> None:
        self._rules: dict[str, AlertRule] = {
            r.id: r for r in (rules if rules is not None else load_rules(None))
        }
        self.rng = rng or SeededRandom(DEFAULT_ALERT_SEED)
        self.dispatcher = dispatcher or ActionDispatcher()
        self._alerts: list[Alert] = []
        self._cooldowns: dict[str, datetime] = {}

    # ── rule management ──────────────────────────────────────────────

    def get_rules(self) -> list[AlertRule]:
        return list(self._rules.values())

    def get_rule(self, rule_id: str) -> AlertRule | None:
        return self._rules.get(rule_id)

    def set_rule(self, rule: AlertRule) -> None:
        """Insert or replace a rule."""
        self._rules[rule.id] = rule
        log.info("Alert rule set: %s (%s)", rule.id, rule.name)

    def remove_rule(self, rule_id: str) -> bool:
        if self._rules.pop(rule_id, None) is None:
            return False
        log.info("Alert rule removed: %s", rule_id)
        return True

    def toggle_rule(self, rule_id: str, enabled: bool) -> bool:
        rule = self._rules.get(rule_id)
        if rule is None:
            return False
        rule.enabled = enabled
        return True

    # ── cooldowns ────────────────────────────────────────────────────

    def _cooling_down(self, key: str, rule: AlertRule, now: datetime) -> bool:
        last = self._cooldowns.get(key)
        if last is None:
            return False
        return now - last < timedelta(minutes=rule.cooldown_minutes)

    def _stamp(self, key: str, rule: AlertRule, now: datetime) -> None:
        self._cooldowns[key] = now
        rule.last_triggered = iso(now)

    def _emit(self, alert: Alert, rule: AlertRule) -> None:
        self._alerts.append(alert)
        log.info(
            "Alert %s [%s] from rule %s: %s",
            alert.id, alert.severity.value, rule.id, alert.title,
        )
        self.dispatcher.execute(rule.actions, alert)

    # ── evaluation ───────────────────────────────────────────────────

    def check_predictions_for_alerts(
        self,
        predictions: list[Prediction],
        now: datetime | None = None,
    ) -> list[Alert]:
        now = now or utcnow()
        log.debug(
            "Evaluating %d rules against %d predictions", len(self._rules), len(predictions)
        )
        fired: list[Alert] = []
        for pred in predictions:
            for rule in self._rules.values():
                if not rule.enabled or self._cooling_down(rule.id, rule, now):
                    continue
                if not _all_hold(rule.conditions, lambda m: prediction_metric(pred, m)):
                    continue
                alert = self._alert_from_prediction(pred, rule, now)
                self._stamp(rule.id, rule, now)
                self._emit(alert, rule)
                fired.append(alert)
        return fired

    def check_system_state_for_alerts(
        self,
        state: SystemState,
        nodes: dict[str, Node],
        now: datetime | None = None,
    ) -> list[Alert]:
        """System-wide rules first, then every rule against every node."""
        now = now or utcnow()
        fired: list[Alert] = []
        for rule in self._rules.values():
            if not rule.enabled:
                continue
            log.debug("Evaluating rule %s against system state and %d nodes", rule.id, len(nodes))
            if not self._cooling_down(rule.id, rule, now) and _all_hold(
                rule.conditions, lambda m: system_metric(state, m)
            ):
                alert = self._alert_from_state(state, rule, now)
                self._stamp(rule.id, rule, now)
                self._emit(alert, rule)
                fired.append(alert)

            for node in nodes.values():
                key = f"{rule.id}_{node.id}"
                if self._cooling_down(key, rule, now):
                    continue
                if not _all_hold(rule.conditions, lambda m: node_metric(node, m)):
                    continue
                alert = self._alert_from_node(node, rule, now)
                self._stamp(key, rule, now)
                self._emit(alert, rule)
                fired.append(alert)
        return fired

    # ── alert builders ───────────────────────────────────────────────

    def _new_id(self) -> str:
        return f"alert_{self.rng.next_uuid()}"

    def _alert_from_prediction(self, pred: Prediction, rule: AlertRule, now: datetime) -> Alert:
        if pred.type == PredictionType.CASCADE_FAILURE:
            atype = AlertType.CASCADE_DETECTED
        elif pred.type == PredictionType.EQUIPMENT_FAILURE:
            atype = AlertType.MAINTENANCE_REQUIRED
        else:
            atype = AlertType.PREDICTION_TRIGGERED
        return Alert(
            id=self._new_id(),
            rule_id=rule.id,
            prediction_id=pred.id,
            type=atype,
            severity=_PREDICTION_SEVERITY.get(pred.severity.value, AlertSeverity.WARNING),
            title=f"{rule.name}: {pred.node_name}",
            message=(
                f"{pred.type.value} predicted for {pred.node_name} within "
                f"{pred.hours_to_event:.1f} hours ({pred.probability * 100:.0f}% probability)"
            ),
            node_ids=[pred.node_id],
            created_at=iso(now),
        )

    def _alert_from_state(self, state: SystemState, rule: AlertRule, now: datetime) -> Alert:
        return Alert(
            id=self._new_id(),
            rule_id=rule.id,
            type=AlertType.SYSTEM_DEGRADATION,
            severity=AlertSeverity.CRITICAL if state.avg_health < 0.4 else AlertSeverity.WARNING,
            title=rule.name,
            message=(
                f"System health at {state.avg_health * 100:.0f}%. "
                f"{state.critical_count} critical nodes detected."
            ),
            node_ids=list(state.critical_nodes),
            created_at=iso(now),
        )

    def _alert_from_node(self, node: Node, rule: AlertRule, now: datetime) -> Alert:
        if node.risk_score > 0.9:
            severity = AlertSeverity.CRITICAL
        elif node.risk_score > 0.8:
            severity = AlertSeverity.ERROR
        else:
            severity = AlertSeverity.WARNING
        return Alert(
            id=self._new_id(),
            rule_id=rule.id,
            type=AlertType.THRESHOLD_BREACH,
            severity=severity,
            title=f"{rule.name}: {node.name}",
            message=(
                f"Node {node.name} has risk score {node.risk_score * 100:.0f}% "
                f"and health {node.health * 100:.0f}%"
            ),
            node_ids=[node.id],
            created_at=iso(now),
        )

    # ── lifecycle ────────────────────────────────────────────────────

    def _find(self, alert_id: str) -> Alert | None:
        return next((a for a in self._alerts if a.id == alert_id), None)

    def acknowledge_alert(
        self,
        alert_id: str,
        user: str = "operator",
        now: datetime | None = None,
    ) -> bool:
        alert = self._find(alert_id)
        if alert is None or alert.status != AlertStatus.ACTIVE:
            return False
        alert.status = AlertStatus.ACKNOWLEDGED
        alert.acknowledged_at = iso(now or utcnow())
        alert.acknowledged_by = user
        return True

    def resolve_alert(self, alert_id: str, now: datetime | None = None) -> bool:
        alert = self._find(alert_id)
        if alert is None or alert.status == AlertStatus.RESOLVED:
            return False
        alert.status = AlertStatus.RESOLVED
        alert.resolved_at = iso(now or utcnow())
        return True

    def get_alerts(
        self,
        status: AlertStatus | str | None = None,
        limit: int | None = None,
    ) -> list[Alert]:
        """Newest first, optionally filtered by status."""
        out = list(reversed(self._alerts))
        if status is not None:
            wanted = AlertStatus(status)
            out = [a for a in out if a.status == wanted]
        return out[:limit] if limit is not None else out

    def get_active_alerts(self) -> list[Alert]:
        return self.get_alerts(AlertStatus.ACTIVE)

    def clear_old_alerts(self, max_age_hours: float = 24, now: datetime | None = None) -> int:
        """Purge resolved/expired alerts created strictly before the cutoff."""
        cutoff = (now or utcnow()) - timedelta(hours=max_age_hours)
        closed = (AlertStatus.RESOLVED, AlertStatus.EXPIRED)
        keep = [
            a for a in self._alerts
            if a.status not in closed or parse_iso(a.created_at) >= cutoff
        ]
        removed = len(self._alerts) - len(keep)
        self._alerts = keep
        if removed:
            log.info("Cleared %d old alerts", removed)
        return removed

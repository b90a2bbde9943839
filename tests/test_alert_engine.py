"""Tests for src.analyzer.alert_engine — rules, cooldowns, lifecycle."""

from __future__ import annotations

import pytest

from src.analyzer.actions import ActionDispatcher
from src.analyzer.alert_engine import (
    DEFAULT_RULES_CFG,
    AlertEngine,
    compare,
    load_rules,
    parse_rule,
)
from src.contracts.alert import AlertAction
from src.contracts.enums import (
    ActionType,
    AlertSeverity,
    AlertStatus,
    AlertType,
    Operator,
    PredictionType,
    Severity,
)
from src.shared.rng import SeededRandom
from src.simulator.engine import get_system_state
from tests.conftest import at, make_node, make_prediction, make_rule, node_map


@pytest.fixture
def engine():
    return AlertEngine(rules=[], rng=SeededRandom(99999))


def _risky_grid():
    return node_map(
        make_node(node_id="a", name="Alpha", risk_score=0.95),
        make_node(node_id="b", name="Beta", risk_score=0.2),
    )


# ═══════════════════════════════════════════════════════════════════════════
#  Rule parsing
# ═══════════════════════════════════════════════════════════════════════════

class TestRuleParsing:
    def test_defaults_when_missing(self):
        rules = load_rules(None)
        assert [r.id for r in rules] == [
            "alert_critical_risk",
            "alert_prediction_urgent",
            "alert_cascade_detected",
            "alert_system_degradation",
        ]
        assert load_rules({}) == rules

    def test_default_rule_shapes(self):
        rules = {r.id: r for r in load_rules(DEFAULT_RULES_CFG)}
        crit = rules["alert_critical_risk"]
        assert crit.cooldown_minutes == 5
        assert [a.type for a in crit.actions] == [ActionType.LOG, ActionType.WEBHOOK]
        urgent = rules["alert_prediction_urgent"]
        assert [(c.metric, c.operator) for c in urgent.conditions] == [
            ("hours_to_event", Operator.LT),
            ("probability", Operator.GT),
        ]
        assert rules["alert_system_degradation"].cooldown_minutes == 30

    def test_parse_rule_errors(self):
        with pytest.raises(ValueError):
            parse_rule({"name": "no id"})
        with pytest.raises(ValueError):
            parse_rule({"id": "x", "conditions": [{"metric": "m", "operator": "~", "value": 1}]})
        with pytest.raises(ValueError):
            parse_rule({"id": "x", "actions": [{"type": "pager"}]})

    def test_parse_rule_defaults(self):
        rule = parse_rule({"id": "x"})
        assert rule.name == "x"
        assert rule.enabled
        assert rule.cooldown_minutes == 5.0
        assert rule.conditions == []


class TestCompare:
    @pytest.mark.parametrize(
        "actual, op, expected, result",
        [
            (0.9, Operator.GT, 0.8, True),
            (0.8, Operator.GT, 0.8, False),
            (0.8, Operator.GTE, 0.8, True),
            (0.5, Operator.LT, 0.6, True),
            (0.6, Operator.LTE, 0.6, True),
            (1.0, Operator.EQ, 1, True),
            (1.0, Operator.NE, 2, True),
            ("cascade_failure", Operator.EQ, "cascade_failure", True),
            ("overload", Operator.NE, "cascade_failure", True),
            ("overload", Operator.GT, "a", False),
            (None, Operator.GT, 0.1, False),
        ],
    )
    def test_compare(self, actual, op, expected, result):
        assert compare(actual, op, expected) is result


# ═══════════════════════════════════════════════════════════════════════════
#  System / node evaluation
# ═══════════════════════════════════════════════════════════════════════════

class TestSystemStateAlerts:
    def test_node_rule_fires_per_node(self, engine):
        engine.set_rule(make_rule(rule_id="crit", conditions=[("risk_score", "gt", 0.8)]))
        nodes = _risky_grid()
        fired = engine.check_system_state_for_alerts(get_system_state(nodes, now=at(0)), nodes, at(0))
        assert len(fired) == 1
        alert = fired[0]
        assert alert.node_ids == ["a"]
        assert alert.type == AlertType.THRESHOLD_BREACH
        assert alert.severity == AlertSeverity.CRITICAL
        assert alert.title == "Test Rule: Alpha"
        assert alert.id.startswith("alert_")
        assert alert.created_at == "2026-02-26T10:00:00Z"

    def test_node_severity_bands(self, engine):
        engine.set_rule(make_rule(rule_id="r", conditions=[("risk_score", "gt", 0.5)]))
        nodes = node_map(
            make_node(node_id="x", risk_score=0.85),
            make_node(node_id="y", risk_score=0.6),
        )
        fired = engine.check_system_state_for_alerts(get_system_state(nodes, now=at(0)), nodes, at(0))
        sev = {a.node_ids[0]: a.severity for a in fired}
        assert sev == {"x": AlertSeverity.ERROR, "y": AlertSeverity.WARNING}

    def test_system_rule(self, engine):
        engine.set_rule(make_rule(rule_id="deg", conditions=[("system_health", "lt", 0.6)]))
        nodes = node_map(
            make_node(node_id="a", health=0.3),
            make_node(node_id="b", health=0.3),
        )
        fired = engine.check_system_state_for_alerts(get_system_state(nodes, now=at(0)), nodes, at(0))
        assert len(fired) == 1
        assert fired[0].type == AlertType.SYSTEM_DEGRADATION
        assert fired[0].severity == AlertSeverity.CRITICAL
        assert fired[0].message.startswith("System health at 30%")

    def test_per_node_cooldown_scenario(self, engine):
        engine.set_rule(make_rule(rule_id="crit", cooldown_minutes=5))
        nodes = _risky_grid()
        state = get_system_state(nodes, now=at(0))
        assert len(engine.check_system_state_for_alerts(state, nodes, at(0))) == 1
        assert engine.check_system_state_for_alerts(state, nodes, at(1)) == []
        assert len(engine.check_system_state_for_alerts(state, nodes, at(6))) == 1
        assert engine.get_rule("crit").last_triggered == "2026-02-26T10:06:00Z"

    def test_cooldown_is_per_node(self, engine):
        engine.set_rule(make_rule(rule_id="crit"))
        nodes = _risky_grid()
        engine.check_system_state_for_alerts(get_system_state(nodes, now=at(0)), nodes, at(0))
        nodes["b"].risk_score = 0.9
        fired = engine.check_system_state_for_alerts(get_system_state(nodes, now=at(1)), nodes, at(1))
        assert [a.node_ids for a in fired] == [["b"]]

    def test_disabled_rule_skipped(self, engine):
        engine.set_rule(make_rule(rule_id="crit", enabled=False))
        nodes = _risky_grid()
        assert engine.check_system_state_for_alerts(get_system_state(nodes, now=at(0)), nodes, at(0)) == []

    def test_rule_without_conditions_never_fires(self, engine):
        engine.set_rule(make_rule(rule_id="empty", conditions=[]))
        nodes = _risky_grid()
        assert engine.check_system_state_for_alerts(get_system_state(nodes, now=at(0)), nodes, at(0)) == []


# ═══════════════════════════════════════════════════════════════════════════
#  Prediction evaluation
# ═══════════════════════════════════════════════════════════════════════════

class TestPredictionAlerts:
    def test_urgent_prediction(self, engine):
        engine.set_rule(
            make_rule(
                rule_id="urgent",
                name="Urgent Prediction",
                conditions=[("hours_to_event", "lt", 6), ("probability", "gt", 0.7)],
            )
        )
        pred = make_prediction(hours_to_event=4.0, probability=0.8, severity=Severity.HIGH)
        fired = engine.check_predictions_for_alerts([pred], at(0))
        assert len(fired) == 1
        assert fired[0].prediction_id == pred.id
        assert fired[0].type == AlertType.PREDICTION_TRIGGERED
        assert fired[0].severity == AlertSeverity.ERROR
        assert "within 4.0 hours (80% probability)" in fired[0].message

    def test_rule_cooldown_spans_predictions(self, engine):
        engine.set_rule(make_rule(rule_id="urgent", conditions=[("probability", "gt", 0.5)]))
        preds = [make_prediction(pred_id="p1"), make_prediction(pred_id="p2", node_id="n2")]
        assert len(engine.check_predictions_for_alerts(preds, at(0))) == 1

    def test_type_mapping(self):
        rules = load_rules(None)
        engine = AlertEngine(rules, rng=SeededRandom(1))
        cascade = make_prediction(
            ptype=PredictionType.CASCADE_FAILURE, hours_to_event=20, probability=0.6
        )
        fired = engine.check_predictions_for_alerts([cascade], at(0))
        assert [a.rule_id for a in fired] == ["alert_cascade_detected"]
        assert fired[0].type == AlertType.CASCADE_DETECTED

    def test_equipment_failure_maps_to_maintenance(self, engine):
        engine.set_rule(make_rule(rule_id="any", conditions=[("probability", "gt", 0.1)]))
        pred = make_prediction(ptype=PredictionType.EQUIPMENT_FAILURE)
        assert engine.check_predictions_for_alerts([pred], at(0))[0].type == AlertType.MAINTENANCE_REQUIRED

    def test_node_metrics_do_not_apply_to_predictions(self, engine):
        engine.set_rule(make_rule(rule_id="crit", conditions=[("risk_score", "gt", 0.0)]))
        assert engine.check_predictions_for_alerts([make_prediction()], at(0)) == []


# ═══════════════════════════════════════════════════════════════════════════
#  Lifecycle & rule management
# ═══════════════════════════════════════════════════════════════════════════

class TestLifecycle:
    def _fire(self, engine, minute=0):
        engine.set_rule(make_rule(rule_id="crit", cooldown_minutes=0))
        nodes = _risky_grid()
        return engine.check_system_state_for_alerts(
            get_system_state(nodes, now=at(minute)), nodes, at(minute)
        )[0]

    def test_acknowledge_then_resolve(self, engine):
        alert = self._fire(engine)
        assert engine.acknowledge_alert(alert.id, "alice", at(1))
        assert alert.status == AlertStatus.ACKNOWLEDGED
        assert alert.acknowledged_by == "alice"
        assert alert.acknowledged_at == "2026-02-26T10:01:00Z"
        assert not engine.acknowledge_alert(alert.id)
        assert engine.resolve_alert(alert.id, at(2))
        assert alert.status == AlertStatus.RESOLVED
        assert not engine.resolve_alert(alert.id)

    def test_resolve_without_ack(self, engine):
        alert = self._fire(engine)
        assert engine.resolve_alert(alert.id, at(1))
        assert not engine.acknowledge_alert(alert.id)

    def test_unknown_ids(self, engine):
        assert not engine.acknowledge_alert("alert_nope")
        assert not engine.resolve_alert("alert_nope")

    def test_get_alerts_newest_first_and_filters(self, engine):
        first = self._fire(engine, 0)
        second = self._fire(engine, 1)
        engine.resolve_alert(first.id, at(2))
        assert engine.get_alerts() == [second, first]
        assert engine.get_alerts(limit=1) == [second]
        assert engine.get_active_alerts() == [second]
        assert engine.get_alerts("resolved") == [first]

    def test_clear_old_alerts(self, engine):
        old = self._fire(engine, 0)
        still_active = self._fire(engine, 1)
        fresh = self._fire(engine, 60 * 30)
        engine.resolve_alert(old.id, at(60 * 30))
        engine.resolve_alert(fresh.id, at(60 * 30))
        removed = engine.clear_old_alerts(24, at(60 * 30))
        assert removed == 1
        assert old not in engine.get_alerts()
        assert still_active in engine.get_alerts()
        assert fresh in engine.get_alerts()

    def test_rule_crud(self, engine):
        rule = make_rule(rule_id="r1")
        engine.set_rule(rule)
        assert engine.get_rule("r1") is rule
        assert engine.toggle_rule("r1", False)
        assert not engine.get_rule("r1").enabled
        assert not engine.toggle_rule("missing", True)
        assert engine.remove_rule("r1")
        assert not engine.remove_rule("r1")
        assert engine.get_rules() == []


# ═══════════════════════════════════════════════════════════════════════════
#  Actions
# ═══════════════════════════════════════════════════════════════════════════

class TestActionFailures:
    def test_failing_action_does_not_abort(self):
        dispatcher = ActionDispatcher()
        calls = []

        def broken(action, alert):
            raise RuntimeError("smtp down")

        dispatcher.register_handler(ActionType.EMAIL, broken)
        dispatcher.register_handler(ActionType.CHAT, lambda a, al: calls.append(al.id))
        rule = make_rule(
            rule_id="crit",
            actions=[
                AlertAction(ActionType.EMAIL, "ops@example.org"),
                AlertAction(ActionType.CHAT, "#grid-ops"),
            ],
        )
        engine = AlertEngine([rule], rng=SeededRandom(1), dispatcher=dispatcher)
        nodes = node_map(
            make_node(node_id="a", risk_score=0.95),
            make_node(node_id="b", risk_score=0.9),
        )
        fired = engine.check_system_state_for_alerts(get_system_state(nodes, now=at(0)), nodes, at(0))
        assert len(fired) == 2
        assert calls == [a.id for a in fired]
        assert [t for t, _ in dispatcher.failed] == ["email", "email"]

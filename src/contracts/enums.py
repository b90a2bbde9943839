"""Canonical enumerations shared by the simulator and the analyzer."""

from __future__ import annotations

from enum import Enum

# ── grid ─────────────────────────────────────────────────────────────────


class NodeType(str, Enum):
    SUBSTATION = "substation"
    TRANSFORMER = "transformer"
    GENERATOR = "generator"
    DATACENTER = "datacenter"
    TELECOM_TOWER = "telecom_tower"
    WATER_PUMP = "water_pump"
    CONTROL_CENTER = "control_center"


class NodeStatus(str, Enum):
    ONLINE = "online"
    DEGRADED = "degraded"
    CRITICAL = "critical"
    OFFLINE = "offline"


class WeatherCondition(str, Enum):
    CLEAR = "clear"
    CLOUDY = "cloudy"
    RAIN = "rain"
    STORM = "storm"
    EXTREME_HEAT = "extreme_heat"
    EXTREME_COLD = "extreme_cold"


class ThreatType(str, Enum):
    CYBER_ATTACK = "cyber_attack"
    PHYSICAL_INTRUSION = "physical_intrusion"
    EQUIPMENT_FAILURE = "equipment_failure"
    OVERLOAD = "overload"
    WEATHER_STRESS = "weather_stress"
    CASCADE_ORIGIN = "cascade_origin"


# ── analytics ────────────────────────────────────────────────────────────


class PredictionType(str, Enum):
    CASCADE_FAILURE = "cascade_failure"
    EQUIPMENT_FAILURE = "equipment_failure"
    OVERLOAD = "overload"
    THERMAL_STRESS = "thermal_stress"
    CYBER_VULNERABILITY = "cyber_vulnerability"
    WEATHER_IMPACT = "weather_impact"
    CAPACITY_BREACH = "capacity_breach"


class PredictionStatus(str, Enum):
    ACTIVE = "active"
    MITIGATED = "mitigated"
    EXPIRED = "expired"
    OCCURRED = "occurred"


class Severity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class Trend(str, Enum):
    INCREASING = "increasing"
    STABLE = "stable"
    DECREASING = "decreasing"


class PatternType(str, Enum):
    CORRELATED_DEGRADATION = "correlated_degradation"
    LOAD_IMBALANCE = "load_imbalance"
    THERMAL_CLUSTER = "thermal_cluster"
    CASCADING_RISK = "cascading_risk"
    PERIODIC_ANOMALY = "periodic_anomaly"
    GEOGRAPHIC_STRESS = "geographic_stress"


class PatternTrend(str, Enum):
    ESCALATING = "escalating"
    STABLE = "stable"
    RESOLVING = "resolving"


class ActionPriority(str, Enum):
    IMMEDIATE = "immediate"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


# ── alerting ─────────────────────────────────────────────────────────────


class AlertType(str, Enum):
    PREDICTION_TRIGGERED = "prediction_triggered"
    THRESHOLD_BREACH = "threshold_breach"
    CASCADE_DETECTED = "cascade_detected"
    SYSTEM_DEGRADATION = "system_degradation"
    MAINTENANCE_REQUIRED = "maintenance_required"


class AlertSeverity(str, Enum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AlertStatus(str, Enum):
    ACTIVE = "active"
    ACKNOWLEDGED = "acknowledged"
    RESOLVED = "resolved"
    EXPIRED = "expired"


class Operator(str, Enum):
    GT = "gt"
    GTE = "gte"
    LT = "lt"
    LTE = "lte"
    EQ = "eq"
    NE = "ne"


class ActionType(str, Enum):
    LOG = "log"
    WEBHOOK = "webhook"
    EMAIL = "email"
    CHAT = "chat"

"""Grid contracts — canonical data structures shared by all modules."""

from src.contracts.alert import Alert, AlertAction, AlertCondition, AlertRule
from src.contracts.cascade import CascadeEvent, CascadeHop, SignedHash
from src.contracts.config import PredictiveConfig, SimulationConfig
from src.contracts.enums import (
    AlertSeverity,
    AlertStatus,
    AlertType,
    NodeStatus,
    NodeType,
    PatternType,
    PredictionStatus,
    PredictionType,
    Severity,
    ThreatType,
    WeatherCondition,
)
from src.contracts.environment import Threat, WeatherSnapshot
from src.contracts.node import MitigationResult, Node, SystemState
from src.contracts.prediction import (
    AccuracyMetrics,
    ContributingFactor,
    Pattern,
    Prediction,
    SuggestedAction,
)

__all__ = [
    "AccuracyMetrics",
    "Alert",
    "AlertAction",
    "AlertCondition",
    "AlertRule",
    "AlertSeverity",
    "AlertStatus",
    "AlertType",
    "CascadeEvent",
    "CascadeHop",
    "ContributingFactor",
    "MitigationResult",
    "Node",
    "NodeStatus",
    "NodeType",
    "Pattern",
    "PatternType",
    "Prediction",
    "PredictionStatus",
    "PredictionType",
    "PredictiveConfig",
    "Severity",
    "SignedHash",
    "SimulationConfig",
    "SuggestedAction",
    "SystemState",
    "Threat",
    "ThreatType",
    "WeatherCondition",
    "WeatherSnapshot",
]

"""Predictive-analytics contracts: Pattern, Prediction, AccuracyMetrics."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from src.contracts.enums import (
    ActionPriority,
    PatternTrend,
    PatternType,
    PredictionStatus,
    PredictionType,
    Severity,
    Trend,
)
from src.contracts.serialize import csv_line, dumps, to_plain

PREDICTION_CSV_COLUMNS: list[str] = [
    "id",
    "node_id",
    "node_name",
    "type",
    "probability",
    "confidence",
    "hours_to_event",
    "predicted_time",
    "severity",
    "status",
    "created_at",
    "reasoning",
]


@dataclass(slots=True)
class ContributingFactor:
    factor: str             # "Current Risk Level", "Load Ratio" …
    weight: float
    current_value: float
    threshold: float
    trend: Trend


@dataclass(slots=True)
class SuggestedAction:
    action: str
    priority: ActionPriority
    impact: Severity
    estimated_effect: float     # expected risk reduction, 0..1
    automated: bool


@dataclass(slots=True)
class Prediction:
    """Per-node forecast of one failure mode."""

    id: str
    node_id: str
    node_name: str
    type: PredictionType
    probability: float          # 0..1
    confidence: float           # 0..1
    hours_to_event: float
    predicted_time: str         # ISO-8601 UTC
    severity: Severity
    reasoning: str
    contributing_factors: list[ContributingFactor] = field(default_factory=list)
    suggested_actions: list[SuggestedAction] = field(default_factory=list)
    created_at: str = ""
    status: PredictionStatus = PredictionStatus.ACTIVE
    resolved_at: str | None = None
    was_accurate: bool | None = None

    @property
    def urgency(self) -> float:
        return self.probability / max(1.0, self.hours_to_event)

    def to_dict(self) -> dict[str, Any]:
        return to_plain(self)

    def to_json(self) -> str:
        return dumps(self)

    def to_row(self) -> dict[str, Any]:
        """Flat record for tabular export."""
        return {c: to_plain(getattr(self, c)) for c in PREDICTION_CSV_COLUMNS}

    def to_csv_row(self) -> str:
        return csv_line([getattr(self, c) for c in PREDICTION_CSV_COLUMNS])

    @staticmethod
    def csv_header() -> str:
        return ",".join(PREDICTION_CSV_COLUMNS)


@dataclass(slots=True)
class Pattern:
    """A correlation detected across several nodes."""

    id: str
    type: PatternType
    description: str
    affected_nodes: list[str]
    confidence: float
    detected_at: str
    trend: PatternTrend = PatternTrend.STABLE

    def to_dict(self) -> dict[str, Any]:
        return to_plain(self)


@dataclass(slots=True)
class TypeAccuracy:
    total: int = 0
    accurate: int = 0
    accuracy: float = 0.0


@dataclass(slots=True)
class AccuracyMetrics:
    total_predictions: int = 0
    accurate_predictions: int = 0
    accuracy: float = 0.0
    precision: float = 0.0
    recall: float = 0.0
    f1_score: float = 0.0
    avg_lead_time: float = 0.0      # hours
    by_type: dict[str, TypeAccuracy] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return to_plain(self)

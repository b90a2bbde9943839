"""Typed engine configuration (defaults mirror config/simulation.yaml)."""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from typing import Any

DEFAULT_REGIONS: list[str] = ["North", "South", "East", "West", "Central"]


def _known(cls: type, data: dict[str, Any] | None) -> dict[str, Any]:
    names = {f.name for f in fields(cls)}
    return {k: v for k, v in (data or {}).items() if k in names}


@dataclass(slots=True)
class SimulationConfig:
    seed: int = 12345
    node_count: int = 200
    regions: list[str] = field(default_factory=lambda: list(DEFAULT_REGIONS))
    tick_interval_ms: int = 3000
    prediction_interval_ms: int = 10000
    critical_threshold: float = 0.8
    warning_threshold: float = 0.6
    base_risk_drift: float = 0.02
    weather_impact_multiplier: float = 1.5
    cascade_propagation_rate: float = 0.3
    mitigation_effectiveness: float = 0.4
    weather_refresh_ticks: int = 10
    auto_mitigation: bool = False

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> SimulationConfig:
        """Build from a YAML section; unknown keys are ignored."""
        return cls(**_known(cls, data))


@dataclass(slots=True)
class PredictiveConfig:
    seed: int = 54321
    history_window: int = 500
    prediction_horizon_hours: float = 48.0
    min_confidence_threshold: float = 0.5
    pattern_detection_window: int = 20
    critical_threshold: float = 0.8
    warning_threshold: float = 0.6

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> PredictiveConfig:
        return cls(**_known(cls, data))

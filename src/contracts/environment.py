"""Ambient conditions acting on the grid: weather and threats."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from src.contracts.enums import ThreatType, WeatherCondition
from src.contracts.serialize import dumps, to_plain


@dataclass(slots=True)
class WeatherSnapshot:
    """Current weather; regenerated periodically, no identity of its own."""

    condition: WeatherCondition
    temperature: float          # °C
    humidity: float             # %
    wind_speed: float           # km/h
    precipitation: float        # mm
    storm_probability: float    # 0..1
    heat_index: float           # °C

    def to_dict(self) -> dict[str, Any]:
        return to_plain(self)


@dataclass(slots=True)
class Threat:
    """An active disturbance targeting one node, one region, or anything."""

    id: str
    type: ThreatType
    severity: float             # 0..1
    target: str | None = None   # node id
    region: str | None = None
    active: bool = True
    until: str = ""             # ISO-8601 UTC expiry
    duration_sec: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return to_plain(self)

    def to_json(self) -> str:
        return dumps(self)

"""Модель оповіщення (Alert) та правила, що його породжують."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from src.contracts.enums import (
    ActionType,
    AlertSeverity,
    AlertStatus,
    AlertType,
    Operator,
)
from src.contracts.serialize import csv_line, dumps, to_plain

ALERT_CSV_COLUMNS: list[str] = [
    "id",
    "rule_id",
    "type",
    "severity",
    "status",
    "title",
    "message",
    "node_ids",
    "prediction_id",
    "created_at",
    "acknowledged_at",
    "acknowledged_by",
    "resolved_at",
]


@dataclass(slots=True)
class AlertCondition:
    metric: str             # risk_score | probability | system_health …
    operator: Operator
    value: float | str


@dataclass(slots=True)
class AlertAction:
    type: ActionType
    target: str             # logger name, URL / route, address, channel
    template: str | None = None


@dataclass(slots=True)
class AlertRule:
    """Налаштування правила: умови (AND), дії та cooldown."""

    id: str
    name: str
    enabled: bool = True
    conditions: list[AlertCondition] = field(default_factory=list)
    actions: list[AlertAction] = field(default_factory=list)
    cooldown_minutes: float = 5.0
    last_triggered: str | None = None   # ISO-8601 UTC

    def to_dict(self) -> dict[str, Any]:
        return to_plain(self)


@dataclass(slots=True)
class Alert:
    """Оповіщення, згенероване при спрацюванні правила."""

    id: str                 # alert_<uuid>
    rule_id: str
    type: AlertType
    severity: AlertSeverity
    title: str
    message: str
    node_ids: list[str] = field(default_factory=list)
    prediction_id: str | None = None
    status: AlertStatus = AlertStatus.ACTIVE
    created_at: str = ""
    acknowledged_at: str | None = None
    acknowledged_by: str | None = None
    resolved_at: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return to_plain(self)

    def to_json(self) -> str:
        return dumps(self)

    def to_csv_row(self) -> str:
        values = [getattr(self, c) for c in ALERT_CSV_COLUMNS]
        idx = ALERT_CSV_COLUMNS.index("node_ids")
        values[idx] = ";".join(self.node_ids)
        return csv_line(["" if v is None else v for v in values])

    @staticmethod
    def csv_header() -> str:
        return ",".join(ALERT_CSV_COLUMNS)

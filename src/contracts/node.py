"""Grid node and system-wide aggregate."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from src.contracts.enums import NodeStatus, NodeType
from src.contracts.serialize import csv_line, dumps, to_plain

NODE_CSV_COLUMNS: list[str] = [
    "id",
    "name",
    "type",
    "region",
    "x",
    "y",
    "risk_score",
    "health",
    "load_ratio",
    "temperature",
    "power_draw",
    "status",
    "last_seen",
]


@dataclass(slots=True)
class Node:
    """One infrastructure asset in the grid."""

    id: str                 # node_0000 …
    name: str               # "North Substation 512"
    type: NodeType
    region: str
    x: float                # 0..100
    y: float                # 0..100
    risk_score: float       # 0..1
    health: float           # 0.1..1
    load_ratio: float       # 0.1..1
    temperature: float      # °C
    power_draw: float       # MW
    status: NodeStatus = NodeStatus.ONLINE
    last_seen: str = ""     # ISO-8601 UTC
    connections: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return to_plain(self)

    def to_json(self) -> str:
        return dumps(self)

    def to_csv_row(self) -> str:
        return csv_line([getattr(self, c) for c in NODE_CSV_COLUMNS])

    @staticmethod
    def csv_header() -> str:
        return ",".join(NODE_CSV_COLUMNS)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Node:
        return cls(
            id=data["id"],
            name=data.get("name", data["id"]),
            type=NodeType(data.get("type", "substation")),
            region=data.get("region", ""),
            x=float(data.get("x", 0.0)),
            y=float(data.get("y", 0.0)),
            risk_score=float(data.get("risk_score", 0.0)),
            health=float(data.get("health", 1.0)),
            load_ratio=float(data.get("load_ratio", 0.5)),
            temperature=float(data.get("temperature", 40.0)),
            power_draw=float(data.get("power_draw", 0.0)),
            status=NodeStatus(data.get("status", "online")),
            last_seen=data.get("last_seen", ""),
            connections=list(data.get("connections", [])),
        )


STATE_CSV_COLUMNS: list[str] = [
    "timestamp",
    "max_risk",
    "avg_health",
    "avg_load",
    "critical_count",
    "warning_count",
    "total_nodes",
    "online_nodes",
]


@dataclass(slots=True)
class SystemState:
    """Aggregate of the whole node map at one instant."""

    max_risk: float
    avg_health: float
    avg_load: float
    critical_nodes: list[str]
    warning_nodes: list[str]
    total_nodes: int
    online_nodes: int
    timestamp: str

    @property
    def critical_count(self) -> int:
        return len(self.critical_nodes)

    @property
    def warning_count(self) -> int:
        return len(self.warning_nodes)

    def to_dict(self) -> dict[str, Any]:
        return to_plain(self)

    def to_json(self) -> str:
        return dumps(self)

    def to_row(self) -> dict[str, Any]:
        """Flat record for tabular export (counts instead of id lists)."""
        return {c: getattr(self, c) for c in STATE_CSV_COLUMNS}

    @staticmethod
    def csv_header() -> str:
        return ",".join(STATE_CSV_COLUMNS)


@dataclass(slots=True)
class MitigationResult:
    """Outcome of one automated mitigation attempt."""

    success: bool
    node_id: str
    node_name: str = ""
    node: Node | None = None    # updated node; None when the id is unknown
    actions: list[str] = field(default_factory=list)
    risk_reduction: float = 0.0
    health_gain: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return to_plain(self)

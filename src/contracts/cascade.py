"""Cascade propagation record and signed integrity digest."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from src.contracts.serialize import dumps, to_plain


@dataclass(slots=True, frozen=True)
class CascadeHop:
    """One edge actually traversed during propagation."""

    from_node: str
    to_node: str
    timestamp: str
    risk_transfer: float
    depth: int              # depth of the receiving node, origin = 0


@dataclass(slots=True, frozen=True)
class CascadeEvent:
    """Immutable record of a single propagation run."""

    id: str
    origin_node: str
    affected_nodes: tuple[str, ...]
    impact_score: float     # affected / total
    start_time: str
    propagation_path: tuple[CascadeHop, ...] = field(default_factory=tuple)
    total_damage: float = 0.0   # Σ Δrisk over affected nodes

    @property
    def max_depth(self) -> int:
        return max((h.depth for h in self.propagation_path), default=0)

    def to_dict(self) -> dict[str, Any]:
        return to_plain(self)

    def to_json(self) -> str:
        return dumps(self)


@dataclass(slots=True, frozen=True)
class SignedHash:
    sha256: str
    signature: str

    def to_dict(self) -> dict[str, Any]:
        return {"sha256": self.sha256, "signature": self.signature}

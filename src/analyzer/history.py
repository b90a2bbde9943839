"""Rolling history buffers and the small series statistics built on them."""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from typing import Iterable

from src.contracts.node import Node, SystemState


@dataclass(slots=True)
class NodeHistory:
    """Bounded per-node sample buffers (oldest samples fall off the left)."""

    window: int
    timestamps: deque[str] = field(init=False)
    risk_scores: deque[float] = field(init=False)
    health_scores: deque[float] = field(init=False)
    load_ratios: deque[float] = field(init=False)
    temperatures: deque[float] = field(init=False)

    def __post_init__(self) -> None:
        self.timestamps = deque(maxlen=self.window)
        self.risk_scores = deque(maxlen=self.window)
        self.health_scores = deque(maxlen=self.window)
        self.load_ratios = deque(maxlen=self.window)
        self.temperatures = deque(maxlen=self.window)

    def append(self, node: Node, timestamp: str) -> None:
        self.timestamps.append(timestamp)
        self.risk_scores.append(node.risk_score)
        self.health_scores.append(node.health)
        self.load_ratios.append(node.load_ratio)
        self.temperatures.append(node.temperature)

    def __len__(self) -> int:
        return len(self.timestamps)


class HistoryStore:
    """System-level and per-node history, both capped at ``window`` entries."""

    def __init__(self, window: int = 500) -> None:
        self.window = window
        self.system: deque[SystemState] = deque(maxlen=window)
        self.nodes: dict[str, NodeHistory] = {}

    def update(self, states: Iterable[SystemState], nodes: dict[str, Node]) -> None:
        states = list(states)
        self.system.extend(states)
        stamp = states[-1].timestamp if states else ""
        for node_id, node in nodes.items():
            hist = self.nodes.get(node_id)
            if hist is None:
                hist = NodeHistory(self.window)
                self.nodes[node_id] = hist
            hist.append(node, stamp or node.last_seen)

    def get(self, node_id: str) -> NodeHistory | None:
        return self.nodes.get(node_id)

    def clear(self) -> None:
        self.system.clear()
        self.nodes.clear()


# ── series statistics ────────────────────────────────────────────────────


def tail(values: Iterable[float], n: int) -> list[float]:
    """Last ``n`` values as a list (works on deques)."""
    seq = list(values)
    return seq[-n:] if n > 0 else []


def least_squares_slope(values: list[float]) -> float:
    """Slope of the least-squares line through ``(i, values[i])``."""
    n = len(values)
    if n < 2:
        return 0.0
    sum_x = sum_y = sum_xy = sum_x2 = 0.0
    for i, v in enumerate(values):
        sum_x += i
        sum_y += v
        sum_xy += i * v
        sum_x2 += i * i
    return (n * sum_xy - sum_x * sum_y) / (n * sum_x2 - sum_x * sum_x)


def velocity(values: list[float]) -> float:
    """Change of the 5-sample mean against the 5 samples before it, per sample."""
    if len(values) < 2:
        return 0.0
    recent = values[-5:]
    older = values[-10:-5]
    if not older:
        return 0.0
    return (sum(recent) / len(recent) - sum(older) / len(older)) / 5

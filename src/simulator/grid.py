"""GridSimulation — stateful engine object around the pure engine functions.

The node map is the only state shared between the fast tick loop, the
slower prediction loop and operator requests.  Every mutation (tick,
cascade, mitigation, reset, threat changes) runs under one re-entrant
lock, so they never interleave.

Observers are plain callables ``callback(event, payload)`` registered
with :meth:`GridSimulation.subscribe`; events are ``tick``, ``cascade``,
``mitigation``, ``threat`` and ``reset``.
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime
from typing import Any, Callable

from src.contracts.cascade import CascadeEvent
from src.contracts.config import SimulationConfig
from src.contracts.enums import NodeStatus, ThreatType
from src.contracts.environment import Threat, WeatherSnapshot
from src.contracts.node import MitigationResult, Node, SystemState
from src.contracts.prediction import Pattern, Prediction
from src.contracts.serialize import to_plain
from src.shared.rng import SeededRandom
from src.shared.timeutil import iso, utcnow
from src.simulator.engine import (
    NodeNotFoundError,
    auto_mitigate,
    get_system_state,
    simulate_cascade,
    tick,
)
from src.simulator.integrity import create_signed_hash
from src.simulator.threats import build_threat, threat_expired
from src.simulator.topology import initialize_nodes
from src.simulator.weather import generate_weather

log = logging.getLogger(__name__)

Observer = Callable[[str, Any], None]

# offset so tick draws do not replay the layout sequence
_ENGINE_SEED_OFFSET = 1


class GridSimulation:
    """Owns the node map, weather, active threat and engine RNG."""

    def __init__(
        self,
        config: SimulationConfig | None = None,
        now: datetime | None = None,
    ) -> None:
        self.config = config or SimulationConfig()
        self._lock = threading.RLock()
        self._observers: list[Observer] = []
        self._init_state(now)

    def _init_state(self, now: datetime | None) -> None:
        cfg = self.config
        self.rng = SeededRandom(cfg.seed + _ENGINE_SEED_OFFSET)
        self.nodes: dict[str, Node] = initialize_nodes(
            cfg.seed, cfg.node_count, cfg.regions, now=now
        )
        self.weather: WeatherSnapshot = generate_weather(self.rng)
        self.threat: Threat | None = None
        self.tick_count = 0
        self.cascades: list[CascadeEvent] = []

    # ── observers ────────────────────────────────────────────────────

    def subscribe(self, callback: Observer) -> None:
        self._observers.append(callback)

    def unsubscribe(self, callback: Observer) -> None:
        if callback in self._observers:
            self._observers.remove(callback)

    def _emit(self, event: str, payload: Any) -> None:
        for cb in list(self._observers):
            try:
                cb(event, payload)
            except Exception:
                log.exception("Observer %r failed on %s", cb, event)

    # ── ticking ──────────────────────────────────────────────────────

    def tick(self, now: datetime | None = None) -> SystemState:
        """Advance one step and return the resulting system state."""
        now = now or utcnow()
        with self._lock:
            if self.threat is not None and threat_expired(self.threat, now):
                log.info("Threat %s expired", self.threat.id)
                self.threat = None
                self._emit("threat", None)

            self.tick_count += 1
            if self.tick_count % max(1, self.config.weather_refresh_ticks) == 0:
                self.weather = generate_weather(self.rng)
                log.debug("Weather refreshed: %s", self.weather.condition.value)

            self.nodes = tick(
                self.nodes, self.threat, self.weather, self.rng, self.config, now
            )
            state = get_system_state(self.nodes, self.config, now)

        log.debug(
            "Tick %d: max_risk=%.3f avg_health=%.3f critical=%d",
            self.tick_count, state.max_risk, state.avg_health, state.critical_count,
        )
        self._emit("tick", state)
        return state

    # ── threats ──────────────────────────────────────────────────────

    def deploy_threat(
        self,
        threat_type: ThreatType | str,
        severity: float = 0.6,
        target: str | None = None,
        region: str | None = None,
        duration_sec: float | None = None,
        now: datetime | None = None,
    ) -> Threat:
        """Construct and hold a new active threat (replaces any current one)."""
        if target is not None and target not in self.nodes:
            raise NodeNotFoundError(target)
        with self._lock:
            self.threat = build_threat(
                threat_type, severity, self.rng,
                target=target, region=region,
                duration_sec=duration_sec, now=now,
            )
            threat = self.threat
        self._emit("threat", threat)
        return threat

    def clear_threat(self) -> None:
        with self._lock:
            self.threat = None
        log.info("Threat cleared")
        self._emit("threat", None)

    # ── operator actions ─────────────────────────────────────────────

    def trigger_cascade(
        self,
        origin_id: str,
        severity: float = 0.7,
        now: datetime | None = None,
    ) -> CascadeEvent:
        """Run a cascade from ``origin_id``; raises NodeNotFoundError if unknown."""
        with self._lock:
            self.nodes, event = simulate_cascade(
                self.nodes, origin_id, severity, self.rng, self.config, now
            )
            self.cascades.append(event)
        self._emit("cascade", event)
        return event

    def mitigate(self, node_id: str) -> MitigationResult:
        """Auto-mitigate one node; the update is applied only on success."""
        with self._lock:
            result = self._apply_mitigation(node_id)
        self._emit("mitigation", result)
        return result

    def mitigate_critical(self) -> list[MitigationResult]:
        """Auto-mitigate every node currently in critical status.

        All updates happen under one lock hold; observers are notified
        after it is released.
        """
        with self._lock:
            critical = [n.id for n in self.nodes.values() if n.status == NodeStatus.CRITICAL]
            results = [self._apply_mitigation(i) for i in critical]
        for result in results:
            self._emit("mitigation", result)
        return [r for r in results if r.success]

    def _apply_mitigation(self, node_id: str) -> MitigationResult:
        result = auto_mitigate(self.nodes, node_id, self.config)
        if result.success and result.node is not None:
            self.nodes[node_id] = result.node
        return result

    def reset(self, seed: int | None = None, now: datetime | None = None) -> None:
        """Rebuild topology from ``seed`` (or the configured seed)."""
        with self._lock:
            if seed is not None:
                self.config.seed = seed
            self._init_state(now)
        log.info("Simulation reset (seed=%d, nodes=%d)", self.config.seed, len(self.nodes))
        self._emit("reset", self.config.seed)

    # ── read access ──────────────────────────────────────────────────

    def nodes_snapshot(self) -> dict[str, Node]:
        with self._lock:
            return dict(self.nodes)

    def get_node(self, node_id: str) -> Node | None:
        with self._lock:
            return self.nodes.get(node_id)

    def system_state(self, now: datetime | None = None) -> SystemState:
        with self._lock:
            return get_system_state(self.nodes, self.config, now)

    def export_state(self, now: datetime | None = None) -> dict[str, Any]:
        """JSON-ready dump of the whole simulation."""
        with self._lock:
            return {
                "config": to_plain(self.config),
                "tick_count": self.tick_count,
                "weather": self.weather.to_dict(),
                "threat": self.threat.to_dict() if self.threat else None,
                "system_state": get_system_state(self.nodes, self.config, now).to_dict(),
                "nodes": [n.to_dict() for n in self.nodes.values()],
                "cascades": [c.to_dict() for c in self.cascades],
            }

    def create_snapshot(
        self,
        hmac_key: str,
        predictions: list[Prediction] | None = None,
        patterns: list[Pattern] | None = None,
        now: datetime | None = None,
    ) -> dict[str, Any]:
        """Signed summary handed to the anchoring collaborator."""
        now = now or utcnow()
        with self._lock:
            state = get_system_state(self.nodes, self.config, now)
            data = {
                "timestamp": iso(now),
                "system_state": state.to_dict(),
                "predictions": [p.to_dict() for p in (predictions or [])[:10]],
                "patterns": [p.to_dict() for p in (patterns or [])[:5]],
                "node_count": len(self.nodes),
                "critical_nodes": state.critical_count,
                "tick_count": self.tick_count,
            }
        signed = create_signed_hash(data, hmac_key)
        log.info("Snapshot signed: sha256=%s…", signed.sha256[:16])
        return {"data": data, "hash": signed.to_dict()}

"""Pipeline — orchestrator: tick -> history -> alerts -> predictions -> report.

The grid, the predictive engine and the alert engine are driven over a
simulated clock: each tick advances ``tick_interval_ms``, and every
``prediction_interval_ms`` the analytics pass runs.  Nothing here sleeps,
so a run of N ticks is fully reproducible from the configured seeds.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Callable

from src.analyzer.alert_engine import DEFAULT_ALERT_SEED, AlertEngine, load_rules
from src.analyzer.predictor import PredictiveEngine
from src.analyzer.reporter import (
    write_accuracy_csv,
    write_alerts_csv,
    write_history_csv,
    write_json,
    write_nodes_jsonl,
    write_plots,
    write_predictions_csv,
    write_report_txt,
)
from src.contracts.alert import AlertRule
from src.contracts.cascade import CascadeEvent
from src.contracts.config import PredictiveConfig, SimulationConfig
from src.contracts.enums import PredictionType
from src.contracts.node import MitigationResult, SystemState
from src.shared.config_loader import (
    load_predictive_config,
    load_simulation_config,
    load_yaml,
)
from src.shared.rng import SeededRandom
from src.simulator.grid import GridSimulation

log = logging.getLogger(__name__)

DEMO_HMAC_KEY = "sentinel-grid-demo-key"
HMAC_KEY_ENV = "SENTINEL_HMAC_KEY"

# fixed epoch for the simulated clock when no start time is given
DEFAULT_START = datetime(2025, 1, 1, tzinfo=timezone.utc)

Observer = Callable[[str, Any], None]


def resolve_hmac_key(flag: str | None = None) -> str:
    """--hmac-key > $SENTINEL_HMAC_KEY > demo key."""
    if flag:
        return flag
    env = os.environ.get(HMAC_KEY_ENV)
    if env:
        return env
    log.warning("No HMAC key configured — using the demo key")
    return DEMO_HMAC_KEY


# ═══════════════════════════════════════════════════════════════════════════
#  Config
# ═══════════════════════════════════════════════════════════════════════════


@dataclass
class PipelineConfig:
    """Everything run_pipeline needs, already parsed."""

    simulation: SimulationConfig = field(default_factory=SimulationConfig)
    predictive: PredictiveConfig = field(default_factory=PredictiveConfig)
    rules: list[AlertRule] = field(default_factory=lambda: load_rules(None))
    alert_seed: int = DEFAULT_ALERT_SEED


def load_pipeline_config(
    config_dir: str = "config",
    overrides: dict[str, Any] | None = None,
) -> PipelineConfig:
    """Read simulation.yaml and rules.yaml from ``config_dir``.

    Missing files fall back to built-in defaults (logged).
    """
    sim_path = Path(config_dir) / "simulation.yaml"
    rules_path = Path(config_dir) / "rules.yaml"

    if sim_path.is_file():
        simulation = load_simulation_config(sim_path, overrides)
        predictive = load_predictive_config(sim_path)
        alert_seed = int(
            (load_yaml(sim_path).get("alerts") or {}).get("seed", DEFAULT_ALERT_SEED)
        )
    else:
        log.warning("%s not found — using default simulation config", sim_path)
        simulation = SimulationConfig.from_dict(
            {k: v for k, v in (overrides or {}).items() if v is not None}
        )
        predictive = PredictiveConfig(
            critical_threshold=simulation.critical_threshold,
            warning_threshold=simulation.warning_threshold,
        )
        alert_seed = DEFAULT_ALERT_SEED

    if rules_path.is_file():
        rules = load_rules(load_yaml(rules_path))
    else:
        log.warning("%s not found — using default alert rules", rules_path)
        rules = load_rules(None)

    return PipelineConfig(simulation, predictive, rules, alert_seed)


# ═══════════════════════════════════════════════════════════════════════════
#  Scheduled events
# ═══════════════════════════════════════════════════════════════════════════


@dataclass
class ScheduledThreat:
    type: str
    severity: float = 0.6
    at_tick: int = 1
    target: str | None = None
    region: str | None = None
    duration_sec: float | None = None


@dataclass
class ScheduledCascade:
    origin: str
    severity: float = 0.7
    at_tick: int = 1


# ═══════════════════════════════════════════════════════════════════════════
#  Pipeline core
# ═══════════════════════════════════════════════════════════════════════════


def prediction_every(sim: SimulationConfig) -> int:
    """Ticks between analytics passes (at least 1)."""
    if sim.tick_interval_ms <= 0:
        return 1
    return max(1, sim.prediction_interval_ms // sim.tick_interval_ms)


def run_pipeline(
    cfg: PipelineConfig | None = None,
    ticks: int = 100,
    out_dir: str | None = "out",
    threat: ScheduledThreat | None = None,
    cascade: ScheduledCascade | None = None,
    hmac_key: str | None = None,
    start_time: datetime | None = None,
    plots: bool = True,
    observers: list[Observer] | None = None,
) -> dict[str, Any]:
    """Execute a full simulation run and (optionally) write outputs.

    Parameters
    ──────────
    cfg : PipelineConfig
        Parsed configuration; defaults when None.
    ticks : int
        Number of simulation ticks.
    out_dir : str | None
        Output directory; ``None`` skips writing files.
    threat, cascade :
        Optional events injected at a given tick (1-based).
    hmac_key : str | None
        Snapshot signing key (see ``resolve_hmac_key``).

    Returns
    ───────
    dict with keys: states, predictions, patterns, alerts, cascade,
    mitigations, accuracy, health_score, snapshot.
    """
    cfg = cfg or PipelineConfig()
    key = resolve_hmac_key(hmac_key)
    clock = start_time or DEFAULT_START
    step = timedelta(milliseconds=cfg.simulation.tick_interval_ms)
    every = prediction_every(cfg.simulation)

    grid = GridSimulation(cfg.simulation, now=clock)
    predictor = PredictiveEngine(cfg.predictive)
    alerts = AlertEngine(cfg.rules, rng=SeededRandom(cfg.alert_seed))
    for cb in observers or []:
        grid.subscribe(cb)

    log.info(
        "Pipeline start: %d ticks, %d nodes, analytics every %d ticks",
        ticks, len(grid.nodes), every,
    )

    states: list[SystemState] = []
    mitigations: list[MitigationResult] = []
    cascade_event: CascadeEvent | None = None
    critical_before: set[str] = set()

    for i in range(1, ticks + 1):
        clock += step

        if threat is not None and i == threat.at_tick:
            grid.deploy_threat(
                threat.type, threat.severity,
                target=threat.target, region=threat.region,
                duration_sec=threat.duration_sec, now=clock,
            )
        if cascade is not None and i == cascade.at_tick:
            cascade_event = grid.trigger_cascade(cascade.origin, cascade.severity, now=clock)

        state = grid.tick(clock)
        nodes = grid.nodes_snapshot()
        states.append(state)
        predictor.update_histories([state], nodes)

        # failures nobody saw coming count against recall
        critical_now = set(state.critical_nodes)
        for node_id in sorted(critical_now - critical_before):
            if not predictor.has_active_prediction(node_id):
                predictor.record_missed_event(node_id, PredictionType.EQUIPMENT_FAILURE)
        critical_before = critical_now

        alerts.check_system_state_for_alerts(state, nodes, clock)

        if cfg.simulation.auto_mitigation:
            for result in grid.mitigate_critical():
                mitigations.append(result)
                predictor.mark_mitigated(result.node_id, clock)
            nodes = grid.nodes_snapshot()

        if i % every == 0:
            predictor.evaluate_outcomes(nodes, clock)
            predictor.analyze_patterns(nodes, clock)
            preds = predictor.generate_predictions(nodes, clock)
            fired = alerts.check_predictions_for_alerts(preds, clock)
            for cb in observers or []:
                cb("predictions", preds)
                for alert in fired:
                    cb("alert", alert)

    predictions = predictor.latest_predictions
    patterns = predictor.latest_patterns
    nodes = grid.nodes_snapshot()
    health = predictor.get_system_health_score(nodes)
    accuracy = predictor.get_accuracy_metrics()
    snapshot = grid.create_snapshot(key, predictions, patterns, now=clock)
    all_alerts = alerts.get_alerts()

    log.info(
        "Pipeline complete: %d predictions, %d patterns, %d alerts, health=%.3f",
        len(predictions), len(patterns), len(all_alerts), health,
    )

    results: dict[str, Any] = {
        "states": states,
        "nodes": nodes,
        "predictions": predictions,
        "patterns": patterns,
        "alerts": all_alerts,
        "cascade": cascade_event,
        "mitigations": mitigations,
        "accuracy": accuracy,
        "mitigated_predictions": predictor.mitigated_predictions,
        "health_score": health,
        "snapshot": snapshot,
    }

    if out_dir is not None:
        write_outputs(results, out_dir, plots=plots)
    return results


def write_outputs(results: dict[str, Any], out_dir: str, plots: bool = True) -> None:
    out = Path(out_dir)
    out.mkdir(parents=True, exist_ok=True)

    write_history_csv(results["states"], str(out / "system_history.csv"))
    write_predictions_csv(results["predictions"], str(out / "predictions.csv"))
    write_alerts_csv(results["alerts"], str(out / "alerts.csv"))
    write_nodes_jsonl(results["nodes"], str(out / "nodes.jsonl"))
    write_json(results["snapshot"], str(out / "snapshot.json"))
    write_accuracy_csv(results["accuracy"], str(out / "accuracy.csv"))
    write_report_txt(
        results["states"],
        results["predictions"],
        results["patterns"],
        results["alerts"],
        results["accuracy"],
        results["health_score"],
        str(out / "report.txt"),
        mitigated=len(results["mitigated_predictions"]),
    )
    if plots:
        write_plots(results["states"], results["predictions"], str(out))
    log.info("Outputs in %s/", out_dir)

"""Командний інтерфейс симулятора енергомережі.

Batch mode runs N ticks over a simulated clock and writes one system-state
JSON object per line.  Live mode ticks in wall-clock time, appending each
state as it is produced, until Ctrl+C or ``--max-ticks``.
"""

from __future__ import annotations

import argparse
import logging
import time
from datetime import datetime, timedelta
from pathlib import Path

from src.contracts.config import SimulationConfig
from src.contracts.enums import ThreatType
from src.shared.config_loader import load_simulation_config
from src.shared.logger import setup_logging
from src.shared.timeutil import parse_iso, utcnow
from src.simulator.engine import NodeNotFoundError
from src.simulator.grid import GridSimulation

log = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="sentinel-simulator",
        description="Run the Sentinel Grid simulation and stream system states.",
    )
    p.add_argument(
        "--config",
        type=str,
        default="config/simulation.yaml",
        help="Path to simulation.yaml (default: config/simulation.yaml).",
    )
    p.add_argument("--ticks", type=int, default=100, help="Ticks in batch mode (default: 100).")
    p.add_argument("--seed", type=int, default=None, help="Override simulation seed.")
    p.add_argument("--nodes", type=int, default=None, help="Override node count.")
    p.add_argument(
        "--out",
        type=str,
        default="data/states.jsonl",
        help="Output JSONL path (default: data/states.jsonl).",
    )
    p.add_argument(
        "--nodes-out",
        type=str,
        default=None,
        help="Also write the final node map as JSONL.",
    )
    p.add_argument(
        "--start_time",
        type=str,
        default=None,
        help="Simulated start time in ISO-8601 (e.g. 2026-02-26T10:00:00Z). "
        "Defaults to now.",
    )
    p.add_argument(
        "--threat",
        choices=[t.value for t in ThreatType],
        default=None,
        help="Deploy a threat before the first tick.",
    )
    p.add_argument("--threat-severity", type=float, default=0.6)
    p.add_argument("--threat-target", default=None)
    p.add_argument("--threat-region", default=None)
    p.add_argument(
        "--cascade-origin",
        default=None,
        help="Trigger a cascade from this node before the first tick.",
    )
    p.add_argument("--cascade-severity", type=float, default=0.7)
    p.add_argument(
        "--live",
        action="store_true",
        default=False,
        help="Tick in real time (tick_interval_ms) and append states as they come.",
    )
    p.add_argument(
        "--max-ticks",
        type=int,
        default=None,
        help="Stop live mode after this many ticks (default: run until Ctrl+C).",
    )
    p.add_argument(
        "--log-level",
        type=str,
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: INFO).",
    )
    return p


def _load_config(args: argparse.Namespace) -> SimulationConfig:
    overrides = {"seed": args.seed, "node_count": args.nodes}
    if Path(args.config).is_file():
        return load_simulation_config(args.config, overrides)
    log.warning("%s not found — using default simulation config", args.config)
    return SimulationConfig.from_dict({k: v for k, v in overrides.items() if v is not None})


def run_batch(grid: GridSimulation, ticks: int, out_path: Path, start: datetime) -> int:
    """Run ``ticks`` steps over a simulated clock; returns lines written."""
    step = timedelta(milliseconds=grid.config.tick_interval_ms)
    clock = start
    lines: list[str] = []
    for _ in range(ticks):
        clock += step
        lines.append(grid.tick(clock).to_json())
    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_text("".join(line + "\n" for line in lines), encoding="utf-8")
    return len(lines)


def run_live(grid: GridSimulation, out_path: Path, max_ticks: int | None = None) -> int:
    """Tick in wall-clock time, appending each state; blocks until done or Ctrl+C."""
    interval_sec = grid.config.tick_interval_ms / 1000.0
    out_path.parent.mkdir(parents=True, exist_ok=True)
    count = 0
    with out_path.open("a", encoding="utf-8") as fh:
        while max_ticks is None or count < max_ticks:
            state = grid.tick(utcnow())
            fh.write(state.to_json() + "\n")
            fh.flush()
            count += 1
            if state.critical_count:
                log.warning(
                    "Tick %d: %d critical node(s), max_risk=%.3f",
                    grid.tick_count, state.critical_count, state.max_risk,
                )
            time.sleep(interval_sec)
    return count


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.log_level)

    cfg = _load_config(args)
    start = parse_iso(args.start_time) if args.start_time else utcnow()
    grid = GridSimulation(cfg, now=start)

    event = None
    try:
        if args.threat:
            grid.deploy_threat(
                args.threat, args.threat_severity,
                target=args.threat_target, region=args.threat_region, now=start,
            )
        if args.cascade_origin:
            event = grid.trigger_cascade(args.cascade_origin, args.cascade_severity, now=start)
    except NodeNotFoundError as exc:
        parser.error(f"{exc} (grid has {len(grid.nodes)} nodes)")
    if event is not None:
        print(
            f"Cascade {event.id}: {len(event.affected_nodes)} nodes affected, "
            f"impact={event.impact_score:.3f}"
        )

    out_path = Path(args.out)
    if args.live:
        print(f"Simulator live mode -> {out_path}")
        print(f"  interval: {cfg.tick_interval_ms} ms, max_ticks: {args.max_ticks or 'infinite'}")
        print("  Press Ctrl+C to stop.")
        try:
            count = run_live(grid, out_path, args.max_ticks)
            print(f"Simulator live mode complete: {count} ticks -> {out_path}")
        except KeyboardInterrupt:
            print(f"\nSimulator stopped by user after {grid.tick_count} ticks.")
    else:
        count = run_batch(grid, args.ticks, out_path, start)
        print(f"Simulator batch complete: {count} ticks -> {out_path}")

    if args.nodes_out:
        nodes_path = Path(args.nodes_out)
        nodes_path.parent.mkdir(parents=True, exist_ok=True)
        nodes_path.write_text(
            "".join(n.to_json() + "\n" for n in grid.nodes_snapshot().values()),
            encoding="utf-8",
        )
        print(f"Final node map -> {nodes_path}")


if __name__ == "__main__":
    main()

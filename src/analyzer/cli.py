"""CLI entry-point for the Sentinel Grid analyzer.

Usage examples
--------------
# Default run (config/simulation.yaml + config/rules.yaml, 100 ticks):
python -m src.analyzer

# Longer run with a cyber attack at tick 10 and a cascade at tick 20:
python -m src.analyzer --ticks 300 --threat cyber_attack --threat-severity 0.8 \
    --cascade-origin node_0007 --cascade-at 20

# Auto-mitigate critical nodes, skip plots:
python -m src.analyzer --auto-mitigate --no-plots
"""

from __future__ import annotations

import argparse

from src.analyzer.pipeline import (
    ScheduledCascade,
    ScheduledThreat,
    load_pipeline_config,
    run_pipeline,
)
from src.contracts.enums import ThreatType
from src.shared.logger import setup_logging
from src.simulator.engine import NodeNotFoundError


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="analyzer",
        description="Sentinel Grid — simulate, predict, alert, report",
    )
    p.add_argument(
        "--config-dir",
        default="config",
        help="Directory with simulation.yaml and rules.yaml. Default: config/",
    )
    p.add_argument(
        "--out-dir",
        default="out",
        help="Output directory. Default: out/",
    )
    p.add_argument(
        "--ticks",
        type=int,
        default=100,
        help="Number of simulation ticks (default: 100).",
    )
    p.add_argument("--seed", type=int, default=None, help="Override simulation seed.")
    p.add_argument("--nodes", type=int, default=None, help="Override node count.")
    p.add_argument(
        "--threat",
        choices=[t.value for t in ThreatType],
        default=None,
        help="Deploy a threat during the run.",
    )
    p.add_argument("--threat-severity", type=float, default=0.6)
    p.add_argument("--threat-at", type=int, default=10, help="Tick to deploy the threat.")
    p.add_argument("--threat-target", default=None, help="Target node id.")
    p.add_argument("--threat-region", default=None, help="Target region.")
    p.add_argument(
        "--cascade-origin",
        default=None,
        help="Node id to start a cascade failure from.",
    )
    p.add_argument("--cascade-severity", type=float, default=0.7)
    p.add_argument("--cascade-at", type=int, default=20, help="Tick to trigger the cascade.")
    p.add_argument(
        "--auto-mitigate",
        action="store_true",
        default=None,
        help="Auto-mitigate critical nodes every tick.",
    )
    p.add_argument(
        "--hmac-key",
        default=None,
        help="Snapshot signing key (default: $SENTINEL_HMAC_KEY or a demo key).",
    )
    p.add_argument(
        "--no-plots",
        action="store_true",
        default=False,
        help="Do not render PNG charts.",
    )
    p.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level. Default: INFO",
    )
    p.add_argument("--log-file", default=None, help="Also log to this file.")
    return p


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.log_level, args.log_file)

    cfg = load_pipeline_config(
        args.config_dir,
        overrides={
            "seed": args.seed,
            "node_count": args.nodes,
            "auto_mitigation": args.auto_mitigate,
        },
    )

    threat = None
    if args.threat:
        threat = ScheduledThreat(
            type=args.threat,
            severity=args.threat_severity,
            at_tick=args.threat_at,
            target=args.threat_target,
            region=args.threat_region,
        )
    cascade = None
    if args.cascade_origin:
        cascade = ScheduledCascade(
            origin=args.cascade_origin,
            severity=args.cascade_severity,
            at_tick=args.cascade_at,
        )

    try:
        results = run_pipeline(
            cfg,
            ticks=args.ticks,
            out_dir=args.out_dir,
            threat=threat,
            cascade=cascade,
            hmac_key=args.hmac_key,
            plots=not args.no_plots,
        )
    except NodeNotFoundError as exc:
        parser.error(f"{exc} (grid has {cfg.simulation.node_count} nodes)")

    print(f"Ticks:        {len(results['states'])}")
    print(f"Predictions:  {len(results['predictions'])}")
    print(f"Patterns:     {len(results['patterns'])}")
    print(f"Alerts:       {len(results['alerts'])}")
    print(f"Health score: {results['health_score']:.3f}")
    print(f"Snapshot:     {results['snapshot']['hash']['sha256']}")
    print(f"Outputs in {args.out_dir}/")


if __name__ == "__main__":
    main()

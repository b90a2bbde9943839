"""Звітування: запис CSV, JSONL, JSON, TXT, PNG."""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any

import pandas as pd

from src.analyzer.metrics import ACCURACY_CSV_COLUMNS, accuracy_csv_row
from src.contracts.alert import Alert
from src.contracts.node import Node, SystemState
from src.contracts.prediction import AccuracyMetrics, Pattern, Prediction

log = logging.getLogger(__name__)


def _atomic_write(path: str, content: str) -> None:
    """Атомарно записує content у файл path."""
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp = tempfile.mkstemp(
        dir=str(target.parent),
        prefix=f".{target.name}.",
        suffix=".tmp",
    )
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            fh.write(content)
            fh.flush()
            os.fsync(fh.fileno())
        os.replace(tmp, path)
    except BaseException:
        try:
            os.unlink(tmp)
        except OSError:
            pass
        raise


# ═══════════════════════════════════════════════════════════════════════════
#  Tables (pandas)
# ═══════════════════════════════════════════════════════════════════════════


def history_frame(states: list[SystemState]) -> pd.DataFrame:
    """System history as a DataFrame indexed by tick number."""
    df = pd.DataFrame([s.to_row() for s in states], columns=SystemState.csv_header().split(","))
    df.index.name = "tick"
    return df


def predictions_frame(predictions: list[Prediction]) -> pd.DataFrame:
    return pd.DataFrame(
        [p.to_row() for p in predictions],
        columns=Prediction.csv_header().split(","),
    )


def summarize_predictions(predictions: list[Prediction]) -> pd.DataFrame:
    """Count / mean probability / min hours per prediction type."""
    df = predictions_frame(predictions)
    if df.empty:
        return pd.DataFrame(columns=["count", "mean_probability", "min_hours"])
    return (
        df.groupby("type")
        .agg(
            count=("id", "size"),
            mean_probability=("probability", "mean"),
            min_hours=("hours_to_event", "min"),
        )
        .sort_values("count", ascending=False)
    )


def write_history_csv(states: list[SystemState], path: str) -> None:
    df = history_frame(states)
    _atomic_write(path, df.to_csv(float_format="%.4f"))
    log.info("Wrote system history → %s (%d ticks)", path, len(df))


def write_predictions_csv(predictions: list[Prediction], path: str) -> None:
    df = predictions_frame(predictions)
    _atomic_write(path, df.to_csv(index=False, float_format="%.4f"))
    log.info("Wrote predictions → %s (%d rows)", path, len(df))


def write_alerts_csv(alerts: list[Alert], path: str) -> None:
    lines = [Alert.csv_header()]
    for a in alerts:
        lines.append(a.to_csv_row())
    _atomic_write(path, "\n".join(lines) + "\n")
    log.info("Wrote alerts → %s (%d rows)", path, len(alerts))


def write_accuracy_csv(accuracy: AccuracyMetrics, path: str) -> None:
    """Header plus one summary row."""
    _atomic_write(path, ",".join(ACCURACY_CSV_COLUMNS) + "\n" + accuracy_csv_row(accuracy) + "\n")
    log.info("Wrote accuracy → %s (%d resolved)", path, accuracy.total_predictions)


# ═══════════════════════════════════════════════════════════════════════════
#  JSON / JSONL
# ═══════════════════════════════════════════════════════════════════════════


def write_nodes_jsonl(nodes: dict[str, Node], path: str) -> None:
    """One node per line."""
    _atomic_write(path, "".join(n.to_json() + "\n" for n in nodes.values()))
    log.info("Wrote nodes → %s (%d nodes)", path, len(nodes))


def write_json(data: dict[str, Any], path: str) -> None:
    _atomic_write(path, json.dumps(data, indent=2, ensure_ascii=False) + "\n")
    log.info("Wrote %s", path)


# ═══════════════════════════════════════════════════════════════════════════
#  TXT report
# ═══════════════════════════════════════════════════════════════════════════


def write_report_txt(
    states: list[SystemState],
    predictions: list[Prediction],
    patterns: list[Pattern],
    alerts: list[Alert],
    accuracy: AccuracyMetrics,
    health_score: float,
    path: str,
    mitigated: int = 0,
) -> None:
    """Генерує текстовий звіт."""
    lines: list[str] = []
    lines.append("=" * 60)
    lines.append("  Sentinel Grid — Simulation Report")
    lines.append("=" * 60)
    lines.append("")

    lines.append("--- System ---")
    if states:
        last = states[-1]
        df = history_frame(states)
        lines.append(f"  Ticks:            {len(states)}")
        lines.append(f"  Nodes:            {last.total_nodes} ({last.online_nodes} online)")
        lines.append(f"  Final max risk:   {last.max_risk:.3f}")
        lines.append(f"  Final avg health: {last.avg_health:.3f}")
        lines.append(f"  Peak max risk:    {df['max_risk'].max():.3f}")
        lines.append(f"  Peak critical:    {int(df['critical_count'].max())}")
    lines.append(f"  Health score:     {health_score:.3f}")
    lines.append("")

    lines.append("--- Predictions ---")
    lines.append(f"  Active:           {len(predictions)}")
    lines.append(f"  Mitigated:        {mitigated}")
    summary = summarize_predictions(predictions)
    for ptype, row in summary.iterrows():
        lines.append(
            f"  {ptype:<20} n={int(row['count']):<4} "
            f"mean_p={row['mean_probability']:.2f}  min_h={row['min_hours']:.1f}"
        )
    for p in predictions[:5]:
        lines.append(
            f"  * {p.node_name}: {p.type.value} {p.probability * 100:.0f}% "
            f"in {p.hours_to_event:.1f}h [{p.severity.value}]"
        )
    lines.append("")

    lines.append("--- Patterns ---")
    for pat in patterns:
        lines.append(
            f"  {pat.type.value:<24} conf={pat.confidence:.2f} {pat.trend.value:<10} "
            f"{pat.description}"
        )
    if not patterns:
        lines.append("  (none)")
    lines.append("")

    lines.append("--- Alerts ---")
    by_sev: dict[str, int] = {}
    for a in alerts:
        by_sev[a.severity.value] = by_sev.get(a.severity.value, 0) + 1
    lines.append(f"  Total:            {len(alerts)}")
    sev_str = ", ".join(f"{k}={v}" for k, v in sorted(by_sev.items()))
    lines.append(f"  By severity:      {sev_str or '-'}")
    lines.append("")

    lines.append("--- Prediction accuracy ---")
    lines.append(f"  Resolved:         {accuracy.total_predictions}")
    lines.append(f"  Accuracy:         {accuracy.accuracy:.3f}")
    lines.append(f"  Recall:           {accuracy.recall:.3f}")
    lines.append(f"  F1:               {accuracy.f1_score:.3f}")
    lines.append("")
    lines.append("=" * 60)

    _atomic_write(path, "\n".join(lines) + "\n")
    log.info("Wrote report → %s", path)


# ═══════════════════════════════════════════════════════════════════════════
#  Plots (matplotlib)
# ═══════════════════════════════════════════════════════════════════════════


def write_plots(
    states: list[SystemState],
    predictions: list[Prediction],
    out_dir: str,
) -> None:
    """Generate PNG charts into out_dir/plots/."""
    try:
        import matplotlib

        matplotlib.use("Agg")
        import matplotlib.pyplot as plt
    except ImportError:
        log.warning("matplotlib not installed — skipping plots")
        return

    plots_dir = Path(out_dir) / "plots"
    plots_dir.mkdir(parents=True, exist_ok=True)

    # ── 1. Risk / health over time ───────────────────────────────────
    if states:
        df = history_frame(states)
        fig, ax = plt.subplots(figsize=(9, 5))
        ax.plot(df.index, df["max_risk"], label="Max risk", color="#e74c3c")
        ax.plot(df.index, df["avg_health"], label="Avg health", color="#27ae60")
        ax.plot(df.index, df["avg_load"], label="Avg load", color="#3498db")
        ax.axhline(0.8, color="#c0392b", linestyle="--", linewidth=0.8)
        ax.set_xlabel("Tick")
        ax.set_ylim(0, 1.05)
        ax.set_title("System State over Time")
        ax.legend(loc="lower left")
        fig.tight_layout()
        fig.savefig(str(plots_dir / "system_state.png"), dpi=150)
        plt.close(fig)
        log.info("Wrote plots/system_state.png")

    # ── 2. Predictions by type ───────────────────────────────────────
    summary = summarize_predictions(predictions)
    if not summary.empty:
        fig, ax = plt.subplots(figsize=(8, 5))
        bars = ax.bar(summary.index, summary["count"], color="#f39c12",
                      edgecolor="black", linewidth=0.5)
        for bar, v in zip(bars, summary["mean_probability"]):
            ax.text(
                bar.get_x() + bar.get_width() / 2,
                bar.get_height(),
                f"{v * 100:.0f}%",
                ha="center",
                va="bottom",
                fontsize=9,
            )
        ax.set_ylabel("Active predictions")
        ax.set_title("Predictions by Type (label: mean probability)")
        plt.setp(ax.get_xticklabels(), rotation=20, ha="right")
        fig.tight_layout()
        fig.savefig(str(plots_dir / "predictions_by_type.png"), dpi=150)
        plt.close(fig)
        log.info("Wrote plots/predictions_by_type.png")

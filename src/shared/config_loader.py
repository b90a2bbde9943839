"""Завантаження YAML конфігурацій."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml

from src.contracts.config import PredictiveConfig, SimulationConfig

log = logging.getLogger(__name__)


def load_yaml(path: str | Path) -> dict[str, Any]:
    """Зчитує YAML файл та повертає його вміст як dict.

    Args:
        path: Шлях до файлу.

    Returns:
        Вміст файлу як словник (порожній dict для порожнього файлу).

    Raises:
        FileNotFoundError: Якщо файл не знайдено.
        ValueError: Якщо верхній рівень YAML не є mapping.
    """
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"Config not found: {p}")
    with p.open("r", encoding="utf-8") as fh:
        data = yaml.safe_load(fh)
    if data is not None and not isinstance(data, dict):
        raise ValueError(f"Config {p} must be a mapping, got {type(data).__name__}")
    log.debug("Loaded config %s (%d top-level keys)", p.name, len(data or {}))
    return data or {}


def load_simulation_config(
    path: str | Path,
    overrides: dict[str, Any] | None = None,
) -> SimulationConfig:
    """Секція ``simulation:`` з simulation.yaml; ``overrides`` (CLI) мають пріоритет."""
    section = dict(load_yaml(path).get("simulation") or {})
    section.update({k: v for k, v in (overrides or {}).items() if v is not None})
    cfg = SimulationConfig.from_dict(section)
    log.info(
        "Simulation config: seed=%d nodes=%d regions=%d",
        cfg.seed, cfg.node_count, len(cfg.regions),
    )
    return cfg


def load_predictive_config(path: str | Path) -> PredictiveConfig:
    """Секція ``predictive:``; пороги успадковуються від ``simulation:``."""
    data = load_yaml(path)
    section = dict(data.get("predictive") or {})
    sim = data.get("simulation") or {}
    for key in ("critical_threshold", "warning_threshold"):
        if key in sim:
            section.setdefault(key, sim[key])
    return PredictiveConfig.from_dict(section)

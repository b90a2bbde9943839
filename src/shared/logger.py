"""Налаштування логування."""

from __future__ import annotations

import logging
import sys
from pathlib import Path

LOG_FORMAT = "%(asctime)s | %(levelname)-7s | %(name)s | %(message)s"


def setup_logging(level: str = "INFO", log_file: str | None = None) -> None:
    """Налаштовує кореневий логер: stderr та (опційно) файл.

    Args:
        level: Рівень логування (DEBUG, INFO, WARNING, ERROR).
        log_file: Якщо задано — дублювати записи у цей файл
            (каталог створюється автоматично).
    """
    numeric = getattr(logging, level.upper(), logging.INFO)
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))
    logging.basicConfig(
        level=numeric,
        format=LOG_FORMAT,
        datefmt="%H:%M:%S",
        handlers=handlers,
        force=True,
    )
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(max(numeric, logging.WARNING))

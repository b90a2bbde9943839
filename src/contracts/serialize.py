"""JSON/CSV helpers shared by every contract data-class."""

from __future__ import annotations

import csv
import io
import json
from dataclasses import fields, is_dataclass
from enum import Enum
from typing import Any


def to_plain(obj: Any) -> Any:
    """Recursively convert dataclasses / enums / containers to JSON-ready values."""
    if isinstance(obj, Enum):
        return obj.value
    if is_dataclass(obj) and not isinstance(obj, type):
        return {f.name: to_plain(getattr(obj, f.name)) for f in fields(obj)}
    if isinstance(obj, dict):
        return {str(to_plain(k)): to_plain(v) for k, v in obj.items()}
    if isinstance(obj, (set, frozenset)):
        return _sorted_members([to_plain(v) for v in obj])
    if isinstance(obj, (list, tuple)):
        return [to_plain(v) for v in obj]
    return obj


def _sorted_members(items: list[Any]) -> list[Any]:
    """Set members in a fixed order, whatever the hash seed."""
    try:
        return sorted(items)
    except TypeError:
        return sorted(items, key=lambda v: json.dumps(v, sort_keys=True, default=str))


def dumps(obj: Any) -> str:
    """Compact JSON string."""
    return json.dumps(to_plain(obj), ensure_ascii=False, separators=(",", ":"))


def csv_line(values: list[Any]) -> str:
    """Return a single CSV line (no trailing newline)."""
    buf = io.StringIO()
    writer = csv.writer(buf)
    writer.writerow([to_plain(v) for v in values])
    return buf.getvalue().rstrip("\r\n")

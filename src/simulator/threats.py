"""Threat construction and expiry."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta

from src.contracts.enums import ThreatType
from src.contracts.environment import Threat
from src.shared.rng import SeededRandom
from src.shared.timeutil import iso, parse_iso, utcnow

log = logging.getLogger(__name__)

DEFAULT_DURATION_SEC = 120.0

THREAT_DURATIONS: dict[ThreatType, float] = {
    ThreatType.CYBER_ATTACK: 180.0,
    ThreatType.OVERLOAD: 90.0,
}


def build_threat(
    threat_type: ThreatType | str,
    severity: float,
    rng: SeededRandom,
    target: str | None = None,
    region: str | None = None,
    duration_sec: float | None = None,
    now: datetime | None = None,
) -> Threat:
    """Construct an active threat that expires ``duration_sec`` after ``now``.

    Raises:
        ValueError: unknown ``threat_type``.
    """
    ttype = ThreatType(threat_type)
    if duration_sec is None:
        duration_sec = THREAT_DURATIONS.get(ttype, DEFAULT_DURATION_SEC)
    start = now or utcnow()
    threat = Threat(
        id=f"threat_{rng.next_uuid()}",
        type=ttype,
        severity=max(0.0, min(1.0, float(severity))),
        target=target,
        region=region,
        active=True,
        until=iso(start + timedelta(seconds=duration_sec)),
        duration_sec=float(duration_sec),
    )
    log.info(
        "Threat built: %s sev=%.2f target=%s region=%s until=%s",
        ttype.value, threat.severity, target or "-", region or "-", threat.until,
    )
    return threat


def threat_expired(threat: Threat, now: datetime | None = None) -> bool:
    """True once the clock has passed ``threat.until`` (or it was deactivated)."""
    if not threat.active:
        return True
    if not threat.until:
        return False
    return (now or utcnow()) >= parse_iso(threat.until)

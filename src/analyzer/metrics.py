"""Accuracy metrics over resolved predictions.

Definitions
───────────
  accurate_predictions
      Resolved predictions whose forecast event actually occurred
      (status ``occurred``); these are the true positives.

  accuracy / precision
      ``accurate / total`` over the resolved pool.  Every resolved
      prediction is a positive call, so both ratios coincide.

  recall
      ``accurate / (accurate + missed)`` where *missed* counts failures
      recorded without any prior prediction (false negatives).

  f1_score
      Harmonic mean of precision and recall.

  avg_lead_time
      Mean ``hours_to_event`` of accurate predictions, in hours.

When nothing has been resolved yet every figure is zero and ``by_type``
is empty.
"""

from __future__ import annotations

import logging
from collections import Counter
from typing import Iterable

from src.contracts.prediction import AccuracyMetrics, Prediction, TypeAccuracy

log = logging.getLogger(__name__)

ACCURACY_CSV_COLUMNS = [
    "total_predictions",
    "accurate_predictions",
    "accuracy",
    "precision",
    "recall",
    "f1_score",
    "avg_lead_time",
]


def _ratio(num: float, den: float) -> float:
    return num / den if den else 0.0


def compute_accuracy(
    resolved: Iterable[Prediction],
    missed_events: int = 0,
) -> AccuracyMetrics:
    """Обчислює метрики точності для пулу розв'язаних прогнозів.

    Args:
        resolved: Прогнози зі статусом occurred/expired.
        missed_events: Кількість подій, які не були передбачені.

    Returns:
        AccuracyMetrics (нулі, якщо пул порожній).
    """
    pool = [p for p in resolved if p.was_accurate is not None]
    total = len(pool)
    if total == 0 and missed_events == 0:
        return AccuracyMetrics()

    hits = [p for p in pool if p.was_accurate]
    accurate = len(hits)
    precision = _ratio(accurate, total)
    recall = _ratio(accurate, accurate + missed_events)
    f1 = _ratio(2 * precision * recall, precision + recall)
    lead = _ratio(sum(p.hours_to_event for p in hits), accurate)

    totals: Counter[str] = Counter(p.type.value for p in pool)
    goods: Counter[str] = Counter(p.type.value for p in hits)
    by_type = {
        t: TypeAccuracy(total=n, accurate=goods[t], accuracy=_ratio(goods[t], n))
        for t, n in sorted(totals.items())
    }

    metrics = AccuracyMetrics(
        total_predictions=total,
        accurate_predictions=accurate,
        accuracy=precision,
        precision=precision,
        recall=recall,
        f1_score=f1,
        avg_lead_time=lead,
        by_type=by_type,
    )
    log.debug(
        "Accuracy: %d/%d (precision=%.3f recall=%.3f f1=%.3f)",
        accurate, total, precision, recall, f1,
    )
    return metrics


def accuracy_csv_row(m: AccuracyMetrics) -> str:
    vals = [
        str(m.total_predictions),
        str(m.accurate_predictions),
        f"{m.accuracy:.4f}",
        f"{m.precision:.4f}",
        f"{m.recall:.4f}",
        f"{m.f1_score:.4f}",
        f"{m.avg_lead_time:.2f}",
    ]
    return ",".join(vals)

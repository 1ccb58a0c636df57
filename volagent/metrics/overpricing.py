"""Overpricing: where the current implied volatility ranks in its history."""

from __future__ import annotations

from bisect import bisect_right
from typing import Iterable

from volagent.models import MetricResult, MetricStatus

from .base import insufficient, round_half_up, status_for

THRESHOLD = 70
MIN_HISTORY = 20


def iv_percentile(current_iv: float, historical_iv: Iterable[float]) -> float:
    """Share of historical readings at or below ``current_iv``, in percent."""

    ordered = sorted(float(value) for value in historical_iv)
    if not ordered:
        return 0.0
    return bisect_right(ordered, current_iv) / len(ordered) * 100.0


def calculate(current_iv: float, historical_iv: Iterable[float]) -> MetricResult:
    values = list(historical_iv)
    if len(values) < MIN_HISTORY:
        return insufficient(THRESHOLD, "Insufficient IV history for percentile calculation")

    raw_percentile = iv_percentile(current_iv, values)
    status = status_for(raw_percentile, THRESHOLD)
    percentile = round_half_up(raw_percentile)

    if status is MetricStatus.PASS:
        explanation = f"IV percentile {percentile}% - options are overpriced"
    else:
        explanation = f"IV percentile {percentile}% - below threshold of {THRESHOLD}%"

    return MetricResult(score=percentile, status=status, threshold=THRESHOLD, explanation=explanation)


__all__ = ["MIN_HISTORY", "THRESHOLD", "calculate", "iv_percentile"]

"""Fear: aggressive price expansion or stress in the underlying.

Combines the average and peak step-to-step price changes over the last
twenty observations with a volume spike on the current observation.
"""

from __future__ import annotations

from typing import Sequence

import numpy as np

from volagent.models import MarketObservation, MetricResult, MetricStatus

from .base import clamp_score, insufficient, round_half_up, status_for

THRESHOLD = 70
WINDOW = 20


def calculate(current: MarketObservation, history: Sequence[MarketObservation]) -> MetricResult:
    if len(history) < 2:
        return insufficient(THRESHOLD, "Insufficient historical data for fear calculation")

    window = history[-WINDOW:]
    prices = np.array([point.price for point in window], dtype=float)
    volumes = np.array([point.volume for point in window], dtype=float)

    steps = np.abs(np.diff(prices))
    previous = prices[:-1]
    changes = np.divide(steps, previous, out=np.zeros_like(steps), where=previous > 0)
    avg_volatility = float(changes.mean())
    max_volatility = float(changes.max())

    avg_volume = float(volumes.mean())
    volume_spike = current.volume / max(avg_volume, 1.0)

    volatility_score = min(100.0, avg_volatility * 1000 + max_volatility * 500)
    volume_score = min(100.0, (volume_spike - 1) * 50)
    score = round_half_up(clamp_score(volatility_score * 0.7 + volume_score * 0.3))
    status = status_for(score, THRESHOLD)

    if status is MetricStatus.PASS:
        explanation = f"High fear detected: Volatility {score}% above baseline"
    else:
        explanation = f"Fear level {score}% - below threshold of {THRESHOLD}%"

    return MetricResult(score=score, status=status, threshold=THRESHOLD, explanation=explanation)


__all__ = ["THRESHOLD", "calculate"]

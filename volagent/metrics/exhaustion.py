"""Exhaustion: loss of momentum and participation after an expansion."""

from __future__ import annotations

from typing import Sequence

import numpy as np

from volagent.models import MarketObservation, MetricResult, MetricStatus

from .base import clamp_score, insufficient, round_half_up, status_for

THRESHOLD = 60
WINDOW = 10


def _momentum(window: Sequence[MarketObservation]) -> float:
    prices = np.array([point.price for point in window], dtype=float)
    return float(np.abs(np.diff(prices)).mean())


def _average_volume(window: Sequence[MarketObservation]) -> float:
    return float(np.mean([point.volume for point in window]))


def _decline(before: float, after: float) -> float:
    if before <= 0:
        return 0.0
    return max(0.0, (before - after) / before * 100)


def calculate(current: MarketObservation, history: Sequence[MarketObservation]) -> MetricResult:
    """Compare the last ten observations against the ten before them.

    ``current`` is accepted for parity with the other market calculators;
    the comparison is driven entirely by ``history``. When fewer than two
    earlier observations exist the recent window is reused, which yields no
    decline.
    """

    if len(history) < WINDOW:
        return insufficient(THRESHOLD, "Insufficient data for exhaustion detection")

    recent = history[-WINDOW:]
    earlier = history[-2 * WINDOW : -WINDOW]

    recent_momentum = _momentum(recent)
    earlier_momentum = _momentum(earlier) if len(earlier) > 1 else recent_momentum
    momentum_decline = _decline(earlier_momentum, recent_momentum)

    recent_volume = _average_volume(recent)
    earlier_volume = _average_volume(earlier) if earlier else recent_volume
    volume_decline = _decline(earlier_volume, recent_volume)

    score = round_half_up(clamp_score(momentum_decline * 0.6 + volume_decline * 0.4))
    status = status_for(score, THRESHOLD)

    if status is MetricStatus.PASS:
        explanation = f"Exhaustion detected: Momentum decline {score}%"
    else:
        explanation = f"Exhaustion level {score}% - below threshold of {THRESHOLD}%"

    return MetricResult(score=score, status=status, threshold=THRESHOLD, explanation=explanation)


__all__ = ["THRESHOLD", "calculate"]

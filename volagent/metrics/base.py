"""Shared helpers for the metric calculators."""

from __future__ import annotations

import math

from volagent.models import MetricResult, MetricStatus

SCORE_MIN = 0.0
SCORE_MAX = 100.0


def round_half_up(value: float) -> int:
    """Round to the nearest integer with halves rounded up (2.5 -> 3)."""

    return int(math.floor(value + 0.5))


def clamp_score(value: float) -> float:
    return max(SCORE_MIN, min(SCORE_MAX, value))


def status_for(score: float, threshold: float) -> MetricStatus:
    return MetricStatus.PASS if score >= threshold else MetricStatus.FAIL


def insufficient(threshold: float, explanation: str) -> MetricResult:
    """Degraded result returned when a calculator lacks the data it needs."""

    return MetricResult(
        score=0,
        status=MetricStatus.FAIL,
        threshold=threshold,
        explanation=explanation,
    )


__all__ = ["clamp_score", "insufficient", "round_half_up", "status_for"]

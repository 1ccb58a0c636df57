"""Options liquidity: spread tightness, traded volume and open interest."""

from __future__ import annotations

from volagent.models import MetricResult, MetricStatus, OptionsSnapshot

from .base import clamp_score, round_half_up, status_for

THRESHOLD = 65


def spread_percent(bid: float, ask: float) -> float:
    """Quoted spread as a percent of mid; 100 when the mid is unusable."""

    mid = (bid + ask) / 2
    if mid <= 0:
        return 100.0
    return (ask - bid) / mid * 100


def calculate(snapshot: OptionsSnapshot) -> MetricResult:
    spread_pct = spread_percent(snapshot.bid, snapshot.ask)

    spread_score = max(0.0, 100 - spread_pct * 10)
    volume_score = min(100.0, snapshot.volume / 1000 * 10)
    oi_score = min(100.0, snapshot.open_interest / 500 * 10)

    score = round_half_up(clamp_score(spread_score * 0.5 + volume_score * 0.3 + oi_score * 0.2))
    status = status_for(score, THRESHOLD)

    if status is MetricStatus.PASS:
        explanation = (
            f"Liquidity adequate: Spread {spread_pct:.2f}%, "
            f"Volume {snapshot.volume}, OI {snapshot.open_interest}"
        )
    else:
        explanation = f"Liquidity insufficient: Score {score}% below threshold of {THRESHOLD}%"

    return MetricResult(score=score, status=status, threshold=THRESHOLD, explanation=explanation)


__all__ = ["THRESHOLD", "calculate", "spread_percent"]

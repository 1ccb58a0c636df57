"""Tradable structure: can a defined-risk call credit spread be built?"""

from __future__ import annotations

from typing import List

from volagent.models import MetricResult, MetricStatus, OptionsSnapshot, StrikeQuote

from .base import insufficient, round_half_up, status_for

THRESHOLD = 60
MIN_STRIKES = 2
MAX_RELATIVE_SPREAD = 0.2


def is_viable_strike(quote: StrikeQuote, current_price: float) -> bool:
    """OTM call with some activity and a two-sided market tighter than 20% of mid."""

    if quote.strike <= current_price:
        return False
    if not (quote.call_volume > 10 or quote.call_open_interest > 50):
        return False
    if quote.call_bid <= 0 or quote.call_ask <= 0:
        return False
    return (quote.call_ask - quote.call_bid) / quote.call_mid < MAX_RELATIVE_SPREAD


def viable_strikes(snapshot: OptionsSnapshot, current_price: float) -> List[StrikeQuote]:
    return [quote for quote in snapshot.strikes if is_viable_strike(quote, current_price)]


def calculate(snapshot: OptionsSnapshot, current_price: float) -> MetricResult:
    if len(snapshot.strikes) < MIN_STRIKES:
        return insufficient(THRESHOLD, "Insufficient strike data for structure evaluation")

    viable = viable_strikes(snapshot, current_price)
    count = len(viable)

    credit_score = 70 if count > 0 else 0
    strike_spacing = 80 if count >= 2 else 40
    risk_reward_score = 60 if count >= 2 else 0

    score = round_half_up(credit_score * 0.4 + strike_spacing * 0.3 + risk_reward_score * 0.3)
    status = status_for(score, THRESHOLD)

    if status is MetricStatus.PASS:
        explanation = f"Viable structure: {count} tradable strikes identified"
    else:
        explanation = (
            f"Structure not viable: {count} strikes available, "
            "insufficient for defined-risk spread"
        )

    return MetricResult(score=score, status=status, threshold=THRESHOLD, explanation=explanation)


__all__ = ["THRESHOLD", "calculate", "is_viable_strike", "viable_strikes"]

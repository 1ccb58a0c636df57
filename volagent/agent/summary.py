"""Headline numbers shown next to an analysis on the dashboard."""

from __future__ import annotations

from typing import Sequence

from volagent.metrics import round_half_up
from volagent.models import DashboardSummary, MarketObservation, SymbolAnalysis


def sell_probability_label(probability: float) -> str:
    if probability >= 80:
        return "HIGH"
    if probability >= 50:
        return "MEDIUM"
    return "LOW"


def summarize(analysis: SymbolAnalysis, market_history: Sequence[MarketObservation]) -> DashboardSummary:
    metrics = analysis.metrics
    scores = [result.score for result in metrics.results()]
    overall = round_half_up(sum(scores) / len(scores))

    critical = [metrics.fear, metrics.overpricing, metrics.exhaustion]
    sell_probability = round_half_up(sum(1 for m in critical if m.passed) / len(critical) * 100)

    current_price = previous_price = 0.0
    if market_history:
        current_price = market_history[-1].price
        previous_price = market_history[-2].price if len(market_history) > 1 else current_price
    change = current_price - previous_price
    change_pct = change / previous_price * 100 if previous_price else 0.0

    return DashboardSummary(
        symbol=analysis.symbol,
        state=analysis.state,
        overall_score=overall,
        passing_metrics=metrics.passed_count,
        sell_probability=sell_probability,
        sell_probability_label=sell_probability_label(sell_probability),
        current_price=current_price,
        price_change=round(change, 4),
        price_change_percent=round(change_pct, 4),
    )


__all__ = ["sell_probability_label", "summarize"]

"""Ties raw market observations to a classified :class:`SymbolAnalysis`."""

from __future__ import annotations

import logging
import time
from typing import Callable, Iterable, Sequence

from volagent.metrics import exhaustion, fear, options_liquidity, overpricing, tradable_structure
from volagent.models import (
    AgentMetrics,
    AgentState,
    MarketObservation,
    OptionsSnapshot,
    SymbolAnalysis,
)

from .state import determine_state, explain_state

logger = logging.getLogger(__name__)


def _now_ms() -> int:
    return int(time.time() * 1000)


def compute_metrics(
    market_history: Sequence[MarketObservation],
    options_snapshot: OptionsSnapshot,
    historical_iv: Iterable[float],
) -> AgentMetrics:
    """Run all five calculators against the latest observation."""

    if not market_history:
        raise ValueError("market history must contain at least one observation")

    current = market_history[-1]
    return AgentMetrics(
        fear=fear.calculate(current, market_history),
        overpricing=overpricing.calculate(options_snapshot.iv, historical_iv),
        exhaustion=exhaustion.calculate(current, market_history),
        options_liquidity=options_liquidity.calculate(options_snapshot),
        tradable_structure=tradable_structure.calculate(options_snapshot, current.price),
    )


def analyze(
    symbol: str,
    market_history: Sequence[MarketObservation],
    options_snapshot: OptionsSnapshot,
    historical_iv: Iterable[float],
    *,
    now_provider: Callable[[], int] | None = None,
) -> SymbolAnalysis:
    """Classify ``symbol`` from its market series, options chain and IV history.

    Args:
        symbol: Ticker being analysed.
        market_history: Observations ordered oldest to newest. Must not be
            empty; the last element is treated as current.
        options_snapshot: Options chain supplying the current IV, the
            representative quote and the strike ladder.
        historical_iv: Past IV readings in percent; order is irrelevant.
        now_provider: Optional clock returning epoch milliseconds.

    Raises:
        ValueError: If ``market_history`` is empty.
    """

    metrics = compute_metrics(market_history, options_snapshot, list(historical_iv))
    state = determine_state(metrics)
    explanation = explain_state(state, metrics)
    timestamp = (now_provider or _now_ms)()

    logger.debug("Classified %s as %s (%d/5 passing)", symbol, state.value, metrics.passed_count)
    return SymbolAnalysis(
        symbol=symbol,
        state=state,
        metrics=metrics,
        timestamp=timestamp,
        explanation=explanation,
    )


def should_emit_signal(analysis: SymbolAnalysis) -> bool:
    """Only a SELL state is worth surfacing as a trade alert."""

    return analysis.state is AgentState.SELL


__all__ = ["analyze", "compute_metrics", "should_emit_signal"]

"""One-call analysis used by the HTTP API and the CLI."""

from __future__ import annotations

from datetime import date
from typing import Callable, Iterable, Optional, Sequence

from volagent.models import AnalysisReport, MarketObservation, OptionsSnapshot

from .orchestrator import analyze
from .spreads import build_signal
from .summary import summarize


def build_report(
    symbol: str,
    market_history: Sequence[MarketObservation],
    options_snapshot: OptionsSnapshot,
    historical_iv: Iterable[float],
    *,
    source: Optional[str] = None,
    today: date | None = None,
    now_provider: Callable[[], int] | None = None,
) -> AnalysisReport:
    """Analyse a symbol and attach its dashboard summary and, on SELL, a signal."""

    analysis = analyze(symbol, market_history, options_snapshot, historical_iv, now_provider=now_provider)
    current_price = market_history[-1].price
    return AnalysisReport(
        analysis=analysis,
        summary=summarize(analysis, market_history),
        signal=build_signal(analysis, options_snapshot, current_price, today=today),
        source=source,
    )


__all__ = ["build_report"]

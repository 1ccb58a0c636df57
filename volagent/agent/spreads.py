"""Call credit spread suggestion for symbols that reach SELL."""

from __future__ import annotations

import math
from datetime import date
from typing import Optional

from scipy.stats import norm

from volagent.metrics.tradable_structure import viable_strikes
from volagent.models import CallCreditSpread, OptionsSnapshot, Signal, SymbolAnalysis

from .orchestrator import should_emit_signal

RISK_FREE_RATE = 0.05
MIN_VOLATILITY = 0.01


def probability_below(
    stock_price: float,
    level: float,
    implied_vol: float,
    days_to_expiration: int,
    risk_free_rate: float = RISK_FREE_RATE,
) -> float:
    """Log-normal probability (percent) that the underlying finishes below ``level``."""

    if days_to_expiration <= 0:
        return 100.0 if stock_price < level else 0.0

    sigma = max(implied_vol, MIN_VOLATILITY)
    t = days_to_expiration / 365.0
    d2 = (math.log(stock_price / level) + (risk_free_rate - 0.5 * sigma**2) * t) / (sigma * math.sqrt(t))
    return float(norm.cdf(-d2)) * 100.0


def build_call_credit_spread(
    snapshot: OptionsSnapshot,
    current_price: float,
    *,
    today: date | None = None,
) -> Optional[CallCreditSpread]:
    """Sell the nearest viable OTM call and buy the next viable strike above it.

    Returns ``None`` when fewer than two viable strikes exist or the pair
    does not collect a positive credit.
    """

    viable = viable_strikes(snapshot, current_price)
    if len(viable) < 2:
        return None

    short_leg, long_leg = viable[0], viable[1]
    credit = round(short_leg.call_mid - long_leg.call_mid, 2)
    if credit <= 0:
        return None

    width = long_leg.strike - short_leg.strike
    days = (snapshot.expiration - (today or date.today())).days
    probability = probability_below(
        current_price,
        short_leg.strike + credit,
        snapshot.iv / 100.0,
        days,
    )

    return CallCreditSpread(
        sell_strike=short_leg.strike,
        buy_strike=long_leg.strike,
        expiration=snapshot.expiration,
        credit=credit,
        max_risk=round(width - credit, 2),
        max_reward=credit,
        probability=round(probability, 2),
    )


def build_signal(
    analysis: SymbolAnalysis,
    snapshot: OptionsSnapshot,
    current_price: float,
    *,
    today: date | None = None,
) -> Optional[Signal]:
    """Wrap a SELL analysis into a :class:`Signal`; other states yield ``None``."""

    if not should_emit_signal(analysis):
        return None

    return Signal(
        symbol=analysis.symbol,
        state=analysis.state,
        metrics=analysis.metrics,
        call_credit_spread=build_call_credit_spread(snapshot, current_price, today=today),
        timestamp=analysis.timestamp,
        explanation=analysis.explanation,
    )


__all__ = ["build_call_credit_spread", "build_signal", "probability_below"]

from __future__ import annotations

from datetime import date
from enum import Enum
from typing import List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field


class MetricStatus(str, Enum):
    PASS = "pass"
    FAIL = "fail"


class AgentState(str, Enum):
    """Trading-readiness state; every symbol is always in exactly one."""

    WAIT = "WAIT"
    WATCH = "WATCH"
    SELL = "SELL"


class MetricResult(BaseModel):
    """Output of a single metric calculator."""

    model_config = ConfigDict(frozen=True)

    score: float
    status: MetricStatus
    threshold: float
    explanation: str

    @property
    def passed(self) -> bool:
        return self.status is MetricStatus.PASS


METRIC_LABELS: Tuple[Tuple[str, str], ...] = (
    ("fear", "Fear"),
    ("overpricing", "Overpricing"),
    ("exhaustion", "Exhaustion"),
    ("options_liquidity", "Options Liquidity"),
    ("tradable_structure", "Tradable Structure"),
)


class AgentMetrics(BaseModel):
    """The five context metrics; all are always present."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    fear: MetricResult
    overpricing: MetricResult
    exhaustion: MetricResult
    options_liquidity: MetricResult = Field(alias="optionsLiquidity")
    tradable_structure: MetricResult = Field(alias="tradableStructure")

    def named(self) -> List[Tuple[str, MetricResult]]:
        """Return ``(label, result)`` pairs in display order."""

        return [(label, getattr(self, field)) for field, label in METRIC_LABELS]

    def results(self) -> List[MetricResult]:
        return [result for _, result in self.named()]

    @property
    def passed_count(self) -> int:
        return sum(1 for result in self.results() if result.passed)


class SymbolAnalysis(BaseModel):
    """Classified analysis of one symbol at one instant."""

    model_config = ConfigDict(frozen=True)

    symbol: str
    state: AgentState
    metrics: AgentMetrics
    timestamp: int  # milliseconds since epoch
    explanation: str


class CallCreditSpread(BaseModel):
    """Suggested defined-risk structure: sell one OTM call, buy a further OTM call."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    sell_strike: float = Field(alias="sellStrike")
    buy_strike: float = Field(alias="buyStrike")
    expiration: date
    credit: float
    max_risk: float = Field(alias="maxRisk")
    max_reward: float = Field(alias="maxReward")
    probability: float  # percent

    @property
    def width(self) -> float:
        return self.buy_strike - self.sell_strike


class Signal(BaseModel):
    """Trade alert emitted when a symbol reaches SELL."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    symbol: str
    state: AgentState
    metrics: AgentMetrics
    call_credit_spread: Optional[CallCreditSpread] = Field(default=None, alias="callCreditSpread")
    timestamp: int
    explanation: str


class DashboardSummary(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    symbol: str
    state: AgentState
    overall_score: int = Field(alias="overallScore")
    passing_metrics: int = Field(alias="passingMetrics")
    sell_probability: int = Field(alias="sellProbability")
    sell_probability_label: str = Field(alias="sellProbabilityLabel")
    current_price: float = Field(alias="currentPrice")
    price_change: float = Field(alias="priceChange")
    price_change_percent: float = Field(alias="priceChangePercent")

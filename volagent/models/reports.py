"""Request and response envelopes for the HTTP API."""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .analysis import DashboardSummary, Signal, SymbolAnalysis
from .market import MarketObservation, OptionsSnapshot


class AnalyzeRequest(BaseModel):
    """Client-supplied inputs for a single analysis."""

    model_config = ConfigDict(populate_by_name=True)

    symbol: str
    market_history: List[MarketObservation] = Field(default_factory=list, alias="marketHistory")
    options_snapshot: OptionsSnapshot = Field(alias="optionsSnapshot")
    historical_iv: List[float] = Field(default_factory=list, alias="historicalIV")


class AnalysisReport(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    analysis: SymbolAnalysis
    summary: DashboardSummary
    signal: Optional[Signal] = None
    source: Optional[str] = None

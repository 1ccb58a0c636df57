from .analysis import (
    METRIC_LABELS,
    AgentMetrics,
    AgentState,
    CallCreditSpread,
    DashboardSummary,
    MetricResult,
    MetricStatus,
    Signal,
    SymbolAnalysis,
)
from .market import MarketObservation, OptionsSnapshot, StrikeQuote
from .reports import AnalysisReport, AnalyzeRequest
from .serialization import (
    serialize_analysis,
    serialize_report,
    serialize_signal,
    serialize_snapshot,
    serialize_summary,
)

__all__ = [
    "METRIC_LABELS",
    "AgentMetrics",
    "AgentState",
    "AnalysisReport",
    "AnalyzeRequest",
    "CallCreditSpread",
    "DashboardSummary",
    "MarketObservation",
    "MetricResult",
    "MetricStatus",
    "OptionsSnapshot",
    "Signal",
    "StrikeQuote",
    "SymbolAnalysis",
    "serialize_analysis",
    "serialize_report",
    "serialize_signal",
    "serialize_snapshot",
    "serialize_summary",
]

"""Classification and orchestration on top of the metric calculators."""

from .orchestrator import analyze, compute_metrics, should_emit_signal
from .report import build_report
from .spreads import build_call_credit_spread, build_signal, probability_below
from .state import determine_state, explain_state
from .summary import sell_probability_label, summarize

__all__ = [
    "analyze",
    "build_call_credit_spread",
    "build_report",
    "build_signal",
    "compute_metrics",
    "determine_state",
    "explain_state",
    "probability_below",
    "sell_probability_label",
    "should_emit_signal",
    "summarize",
]

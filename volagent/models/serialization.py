"""Serialization helpers shared between the API and the CLI."""

from __future__ import annotations

from typing import Any, Dict

from .analysis import DashboardSummary, Signal, SymbolAnalysis
from .market import OptionsSnapshot
from .reports import AnalysisReport


def serialize_analysis(analysis: SymbolAnalysis) -> Dict[str, Any]:
    """Return a JSON-compatible representation of an analysis."""

    return analysis.model_dump(mode="json", by_alias=True)


def serialize_signal(signal: Signal) -> Dict[str, Any]:
    """Return a JSON-compatible representation of a signal."""

    return signal.model_dump(mode="json", by_alias=True)


def serialize_summary(summary: DashboardSummary) -> Dict[str, Any]:
    return summary.model_dump(mode="json", by_alias=True)


def serialize_report(report: AnalysisReport) -> Dict[str, Any]:
    """Return the analysis, summary and optional signal as one JSON document."""

    return report.model_dump(mode="json", by_alias=True)


def serialize_snapshot(snapshot: OptionsSnapshot) -> Dict[str, Any]:
    return snapshot.model_dump(mode="json", by_alias=True)


__all__ = [
    "serialize_analysis",
    "serialize_report",
    "serialize_signal",
    "serialize_snapshot",
    "serialize_summary",
]

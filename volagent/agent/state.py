"""Stateless classifier mapping the five metric outcomes to a trading state.

Rules:
    * SELL  - every metric passes
    * WATCH - some, but not all, metrics pass
    * WAIT  - no metric passes
"""

from __future__ import annotations

from volagent.models import AgentMetrics, AgentState


def determine_state(metrics: AgentMetrics) -> AgentState:
    passed = metrics.passed_count
    total = len(metrics.results())

    if passed == total:
        return AgentState.SELL
    if passed > 0:
        return AgentState.WATCH
    return AgentState.WAIT


def explain_state(state: AgentState, metrics: AgentMetrics) -> str:
    passed = metrics.passed_count
    failed = len(metrics.results()) - passed

    if state is AgentState.SELL:
        return f"All metrics aligned. {passed} metrics passing. Context supports volatility selling."
    if state is AgentState.WATCH:
        return (
            f"{passed} metrics passing, {failed} metrics not yet aligned. "
            "Monitoring for full context."
        )
    return (
        f"Insufficient context. {failed} metrics not aligned. "
        "Waiting for market conditions to develop."
    )


__all__ = ["determine_state", "explain_state"]

"""Command line interface for the volatility agent."""

from __future__ import annotations

import argparse
import json
import logging
import os
import time
from typing import Dict, List, Optional, Sequence

import pandas as pd

from volagent.adapters import AdapterError, MarketDataSource
from volagent.agent import build_report
from volagent.config import build_data_source, get_data_source, get_settings
from volagent.models import METRIC_LABELS, AnalysisReport, serialize_report

LOGGER = logging.getLogger("volagent.cli")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="volagent", description="Classify symbols for volatility selling")
    subparsers = parser.add_subparsers(dest="command", required=True)

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("symbols", nargs="*", help="Symbols to analyse (defaults to the configured watchlist)")
    common.add_argument("--provider", default=None, help="Market data provider (mock, massive, etrade, yfinance)")
    common.add_argument("--seed", type=int, default=None, help="Seed for the synthetic mock source")
    common.add_argument("--watchlist", default="default", help="Watchlist used when no symbols are given")

    analyze_parser = subparsers.add_parser("analyze", parents=[common], help="Analyse symbols once")
    analyze_parser.add_argument("--json", action="store_true", help="Print the full reports as JSON")

    watch_parser = subparsers.add_parser("watch", parents=[common], help="Re-analyse symbols periodically")
    watch_parser.add_argument(
        "--interval",
        type=float,
        default=None,
        help="Seconds between refreshes (defaults to the configured refresh interval)",
    )
    watch_parser.add_argument(
        "--iterations",
        type=int,
        default=None,
        help="Stop after this many refreshes (runs until interrupted by default)",
    )
    return parser


def _configure_logging() -> None:
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "WARNING").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _resolve_source(provider: Optional[str], seed: Optional[int]) -> MarketDataSource:
    if seed is not None:
        return build_data_source(provider, mock_seed=seed)
    return get_data_source(provider)


def _analyse(source: MarketDataSource, symbols: Sequence[str]) -> Dict[str, AnalysisReport]:
    reports: Dict[str, AnalysisReport] = {}
    for symbol in symbols:
        try:
            bundle = source.fetch_bundle(symbol)
        except AdapterError as exc:
            LOGGER.error("Skipping %s: %s", symbol, exc)
            continue
        reports[bundle.symbol] = build_report(
            bundle.symbol,
            bundle.market_history,
            bundle.options_snapshot,
            bundle.historical_iv,
            source=bundle.source,
        )
    return reports


def reports_frame(reports: Dict[str, AnalysisReport]) -> pd.DataFrame:
    """Flatten reports into one row per symbol."""

    rows: List[Dict[str, object]] = []
    for symbol, report in reports.items():
        row: Dict[str, object] = {
            "symbol": symbol,
            "state": report.analysis.state.value,
            "passing": f"{report.summary.passing_metrics}/5",
        }
        for name, label in METRIC_LABELS:
            row[label.lower()] = getattr(report.analysis.metrics, name).score
        row["sell_prob"] = f"{report.summary.sell_probability:.0f}% {report.summary.sell_probability_label}"
        row["price"] = report.summary.current_price
        row["source"] = report.source
        rows.append(row)
    return pd.DataFrame(rows)


def _display(reports: Dict[str, AnalysisReport]) -> None:
    frame = reports_frame(reports)
    if frame.empty:
        print("No symbols could be analysed.")
        return
    with pd.option_context("display.max_columns", None, "display.width", 160):
        print(frame.to_string(index=False))
    for report in reports.values():
        spread = report.signal.call_credit_spread if report.signal else None
        if spread is not None:
            print(
                f"{report.analysis.symbol}: sell {spread.sell_strike:g}C / buy {spread.buy_strike:g}C "
                f"exp {spread.expiration} for {spread.credit:.2f} credit ({spread.probability:.1f}% POP)"
            )


def run_from_args(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    _configure_logging()

    settings = get_settings()
    symbols = [symbol.upper() for symbol in args.symbols] or settings.get_watchlist(args.watchlist)
    if not symbols:
        parser.error(f"No symbols given and watchlist '{args.watchlist}' is empty")

    source = _resolve_source(args.provider, args.seed)
    LOGGER.info("Analysing %s with %s", ", ".join(symbols), source.name)

    if args.command == "analyze":
        reports = _analyse(source, symbols)
        if args.json:
            print(json.dumps([serialize_report(report) for report in reports.values()], indent=2))
        else:
            _display(reports)
        return 0 if reports else 1

    interval = args.interval if args.interval is not None else settings.refresh.interval_seconds
    iteration = 0
    try:
        while args.iterations is None or iteration < args.iterations:
            if iteration:
                time.sleep(interval)
            print(f"--- refresh {iteration + 1} ---")
            _display(_analyse(source, symbols))
            iteration += 1
    except KeyboardInterrupt:
        LOGGER.info("Watch interrupted after %d refreshes", iteration)
    return 0


def main() -> None:
    raise SystemExit(run_from_args())


__all__ = ["build_parser", "main", "reports_frame", "run_from_args"]

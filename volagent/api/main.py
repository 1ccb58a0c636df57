"""FastAPI application exposing the in-process volatility agent."""

from __future__ import annotations

import logging
import os
from typing import Any, Dict, List

from fastapi import FastAPI, HTTPException

from volagent.adapters import AdapterError
from volagent.agent import build_report
from volagent.config import get_data_source, get_settings
from volagent.models import AnalyzeRequest, serialize_report

logger = logging.getLogger(__name__)
logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO").upper())

app = FastAPI(title="Volatility Agent API", version="1.0.0")


@app.on_event("startup")
async def on_startup() -> None:
    settings = get_settings()
    logger.info("Starting volatility agent API (env=%s, provider=%s)", settings.env, settings.adapter.provider)


@app.on_event("shutdown")
async def on_shutdown() -> None:
    logger.info("Shutting down volatility agent API")


@app.get("/health")
async def health() -> Dict[str, str]:
    return {"status": "ok", "env": get_settings().env}


@app.get("/symbols")
async def symbols(watchlist: str = "default") -> Dict[str, Any]:
    """Return the symbols of a configured watchlist."""

    members: List[str] = get_settings().get_watchlist(watchlist)
    if not members:
        raise HTTPException(status_code=404, detail=f"Unknown watchlist: {watchlist}")
    return {"watchlist": watchlist, "symbols": members}


@app.get("/analysis/{symbol}")
def analysis(symbol: str) -> Dict[str, Any]:
    """Fetch live (or fallback) data for ``symbol`` and classify it."""

    source = get_data_source()
    try:
        bundle = source.fetch_bundle(symbol)
    except AdapterError as exc:
        logger.warning("Data source %s failed for %s: %s", source.name, symbol, exc)
        raise HTTPException(status_code=502, detail=str(exc)) from exc

    report = build_report(
        bundle.symbol,
        bundle.market_history,
        bundle.options_snapshot,
        bundle.historical_iv,
        source=bundle.source,
    )
    return serialize_report(report)


@app.post("/analyze")
def analyze_payload(payload: AnalyzeRequest) -> Dict[str, Any]:
    """Classify client-supplied observations without touching a data source."""

    if not payload.market_history:
        raise HTTPException(status_code=400, detail="marketHistory must contain at least one observation")

    report = build_report(
        payload.symbol.upper(),
        payload.market_history,
        payload.options_snapshot,
        payload.historical_iv,
        source="request",
    )
    return serialize_report(report)


__all__ = ["app"]

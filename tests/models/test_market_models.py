from __future__ import annotations

from datetime import date, datetime, timezone

import pytest
from pydantic import ValidationError

from volagent.models import MarketObservation, OptionsSnapshot, StrikeQuote, serialize_snapshot


def test_observation_rejects_non_positive_price():
    with pytest.raises(ValidationError):
        MarketObservation(symbol="SPY", price=0, volume=1, timestamp=1)


def test_observation_rejects_negative_volume():
    with pytest.raises(ValidationError):
        MarketObservation(symbol="SPY", price=1, volume=-1, timestamp=1)


@pytest.mark.parametrize("volume", [2.7, -0.5])
def test_observation_rejects_fractional_volume(volume):
    with pytest.raises(ValidationError):
        MarketObservation(symbol="SPY", price=1, volume=volume, timestamp=1)


def test_whole_float_counts_are_accepted():
    observation = MarketObservation(symbol="SPY", price=1, volume=1200.0, timestamp=1)
    quote = StrikeQuote(strike=100, call_volume=15.0, put_open_interest=30.0)

    assert observation.volume == 1200
    assert (quote.call_volume, quote.put_open_interest) == (15, 30)


def test_strike_quote_rejects_fractional_open_interest():
    with pytest.raises(ValidationError):
        StrikeQuote(strike=100, call_open_interest=12.5)


def test_observation_accepts_datetime_timestamp():
    stamp = datetime(2030, 1, 2, 14, 30, tzinfo=timezone.utc)

    observation = MarketObservation(symbol="SPY", price=1, volume=None, timestamp=stamp)

    assert observation.timestamp == int(stamp.timestamp() * 1000)
    assert observation.volume == 0


def test_strike_quote_rejects_crossed_market():
    with pytest.raises(ValidationError):
        StrikeQuote(strike=100, call_bid=1.2, call_ask=1.0)


def test_strike_quote_accepts_camel_case():
    quote = StrikeQuote(strike=100, callBid=1.0, callAsk=1.2, callVolume="15", callOpenInterest=None)

    assert quote.call_volume == 15
    assert quote.call_open_interest == 0
    assert quote.call_mid == pytest.approx(1.1)


def test_snapshot_sorts_strikes_and_derives_spread():
    snapshot = OptionsSnapshot(
        symbol="SPY",
        strikes=[StrikeQuote(strike=110), StrikeQuote(strike=100)],
        expiration="2030-01-18T00:00:00",
        iv=25,
        openInterest=10,
        bid=1.0,
        ask=1.25,
    )

    assert [quote.strike for quote in snapshot.strikes] == [100.0, 110.0]
    assert snapshot.expiration == date(2030, 1, 18)
    assert snapshot.spread == pytest.approx(0.25)

    payload = serialize_snapshot(snapshot)
    assert payload["openInterest"] == 10
    assert payload["spread"] == pytest.approx(0.25)
    assert payload["strikes"][0]["callBid"] == 0.0


def test_snapshot_rejects_ask_below_bid():
    with pytest.raises(ValidationError):
        OptionsSnapshot(symbol="SPY", expiration=date(2030, 1, 18), bid=1.0, ask=0.9)

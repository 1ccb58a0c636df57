from __future__ import annotations

from datetime import date
from unittest.mock import MagicMock

import pytest

from volagent.adapters.base import AdapterError, AuthenticationError, DataNotAvailable, RateLimitError
from volagent.adapters.massive import MassiveClient, MassiveDataSource, MassiveTTLs
from volagent.adapters.massive_mapper import (
    extract_implied_volatilities,
    map_market_history,
    map_options_chain,
)

TODAY = date(2029, 12, 19)
NOW_MS = 1_900_000_000_000


def _response(payload=None, status=200):
    response = MagicMock()
    response.status_code = status
    response.ok = 200 <= status < 300
    response.text = "error body"
    response.json.return_value = payload if payload is not None else {}
    return response


class _Clock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


@pytest.fixture
def session():
    return MagicMock()


@pytest.fixture
def clock():
    return _Clock()


@pytest.fixture
def sleep():
    return MagicMock()


@pytest.fixture
def client(session, clock, sleep):
    return MassiveClient(api_key="secret", session=session, clock=clock, sleep=sleep)


def _contract(strike, kind, expiration="2030-01-18", bid=1.0, ask=1.1, volume=100, oi=500, iv=0.3, **extra):
    contract = {
        "details": {
            "strike_price": strike,
            "expiration_date": expiration,
            "contract_type": kind,
            "ticker": f"O:SPY{expiration[2:4]}{expiration[5:7]}{expiration[8:10]}{kind[0].upper()}{int(strike * 1000):08d}",
        },
        "last_quote": {"bid": bid, "ask": ask},
        "day": {"volume": volume},
        "open_interest": oi,
        "implied_volatility": iv,
        "underlying_asset": {"ticker": "SPY", "price": 108.0},
    }
    contract.update(extra)
    return contract


def _chain_payload():
    return {
        "status": "OK",
        "results": [
            _contract(100, "call", bid=9.0, ask=9.2, volume=100, oi=500, iv=0.30),
            _contract(110, "call", bid=1.0, ask=1.1, volume=50, oi=300, iv=0.20),
            _contract(100, "put", bid=0.5, ask=0.6, volume=30, oi=200, iv=0.40),
            _contract(110, "call", expiration="2030-06-21", iv=0.5),
        ],
    }


def test_missing_api_key_is_an_authentication_error(session):
    client = MassiveClient(api_key="", session=session)

    with pytest.raises(AuthenticationError):
        client.call_rest("/v3/snapshot")
    session.get.assert_not_called()


def test_api_key_is_read_from_environment(monkeypatch, session):
    monkeypatch.setenv("MASSIVE_API_KEY", "from-env")
    session.get.return_value = _response({"results": []})

    MassiveClient(session=session).call_rest("/v3/snapshot")

    headers = session.get.call_args.kwargs["headers"]
    assert headers["Authorization"] == "Bearer from-env"


def test_responses_are_cached_until_ttl_expires(client, session, clock):
    session.get.return_value = _response({"results": [1]})

    assert client.call_rest("/v3/snapshot", {"ticker": "SPY"}, ttl_seconds=10) == {"results": [1]}
    clock.now = 9.0
    client.call_rest("/v3/snapshot", {"ticker": "SPY"}, ttl_seconds=10)
    assert session.get.call_count == 1

    clock.now = 11.0
    client.call_rest("/v3/snapshot", {"ticker": "SPY"}, ttl_seconds=10)
    assert session.get.call_count == 2


def test_expired_entries_are_dropped_on_write(client, session, clock):
    session.get.return_value = _response({"results": []})

    client.call_rest("/v2/aggs/ticker/SPY/range/1/minute/2030-01-01/2030-01-02", ttl_seconds=5)
    client.call_rest("/v2/aggs/ticker/SPY/range/1/minute/2030-01-02/2030-01-03", ttl_seconds=60)
    assert len(client._cache) == 2

    clock.now = 10.0
    client.call_rest("/v2/aggs/ticker/SPY/range/1/minute/2030-01-03/2030-01-04", ttl_seconds=5)

    assert len(client._cache) == 2
    assert not any("2030-01-01" in key for key in client._cache)


def test_cache_key_includes_params(client, session):
    session.get.return_value = _response({"results": []})

    client.call_rest("/v3/snapshot", {"ticker": "SPY"})
    client.call_rest("/v3/snapshot", {"ticker": "QQQ"})

    assert session.get.call_count == 2


def test_failures_are_retried_with_exponential_backoff(client, session, sleep):
    session.get.side_effect = [_response(status=500), _response(status=502), _response({"ok": True})]

    assert client.call_rest("/v2/aggs") == {"ok": True}
    assert [call.args[0] for call in sleep.call_args_list] == [pytest.approx(0.1), pytest.approx(0.2)]


def test_rate_limit_surfaces_after_retries(client, session, sleep):
    session.get.return_value = _response(status=429)

    with pytest.raises(RateLimitError):
        client.call_rest("/v2/aggs")
    assert session.get.call_count == 3
    assert sleep.call_count == 2


def test_rejected_credentials_are_not_retried(client, session, sleep):
    session.get.return_value = _response(status=401)

    with pytest.raises(AuthenticationError):
        client.call_rest("/v2/aggs")
    assert session.get.call_count == 1
    sleep.assert_not_called()


def test_invalid_json_is_an_adapter_error(session, clock, sleep):
    response = _response()
    response.json.side_effect = ValueError("no json")
    session.get.return_value = response
    client = MassiveClient(api_key="secret", session=session, retries=0, clock=clock, sleep=sleep)

    with pytest.raises(AdapterError):
        client.call_rest("/v3/snapshot")


def test_try_candidates_returns_first_success(session, clock, sleep):
    session.get.side_effect = [_response(status=404), _response({"results": ["second"]})]
    client = MassiveClient(api_key="secret", session=session, retries=0, clock=clock, sleep=sleep)

    assert client.try_candidates(["/first", "/second"]) == {"results": ["second"]}


def test_try_candidates_raises_when_all_fail(session, clock, sleep):
    session.get.return_value = _response(status=404)
    client = MassiveClient(api_key="secret", session=session, retries=0, clock=clock, sleep=sleep)

    with pytest.raises(AdapterError, match="No Massive endpoints succeeded"):
        client.try_candidates(["/first", "/second"])


def test_options_snapshot_follows_next_url(client, session):
    next_url = "https://api.massive.com/v3/snapshot/options/SPY?cursor=abc"
    session.get.side_effect = [
        _response({"status": "OK", "results": [{"id": 1}], "next_url": next_url}),
        _response({"status": "OK", "results": [{"id": 2}]}),
    ]

    payload = client.get_options_chain_snapshot("SPY")

    assert payload == {"status": "OK", "results": [{"id": 1}, {"id": 2}]}
    assert session.get.call_args_list[1].args[0] == next_url


def test_market_history_maps_timestamps_to_milliseconds():
    payload = {
        "results": [
            {"c": 101.0, "v": 20, "t": 1_700_000_060_000_000_000},
            {"c": 100.0, "v": 10, "t": 1_700_000_000},
            {"c": 0, "v": 5, "t": 1_700_000_120_000},
        ]
    }

    observations = map_market_history(payload, "SPY", NOW_MS)

    assert [point.timestamp for point in observations] == [1_700_000_000_000, 1_700_000_060_000]
    assert [point.price for point in observations] == [100.0, 101.0]


def test_options_chain_keeps_expiration_nearest_thirty_days():
    chain = map_options_chain(_chain_payload(), "SPY", TODAY)

    assert chain is not None
    assert chain.expiration == date(2030, 1, 18)
    assert chain.underlying_price == 108.0

    snapshot = chain.to_snapshot(108.0)
    assert [quote.strike for quote in snapshot.strikes] == [100.0, 110.0]
    assert snapshot.iv == pytest.approx(30.0)
    assert snapshot.volume == 180
    assert snapshot.open_interest == 1000
    assert (snapshot.bid, snapshot.ask) == (1.0, 1.1)


def test_contract_type_falls_back_to_occ_ticker_and_trade_price():
    contract = _contract(105, "put", iv=0.25)
    contract["details"]["contract_type"] = None
    del contract["last_quote"]
    contract["last_trade"] = {"price": 2.5, "size": 7}
    del contract["day"]

    chain = map_options_chain({"results": [contract]}, "SPY", TODAY)

    row = chain.to_frame().iloc[0]
    assert row["put_bid"] == row["put_ask"] == 2.5
    assert row["put_volume"] == 7
    assert row["call_bid"] == 0.0


def test_no_usable_contracts_maps_to_none():
    assert map_options_chain({"results": [{"details": {}}]}, "SPY", TODAY) is None


def test_implied_volatilities_span_all_expirations():
    assert extract_implied_volatilities(_chain_payload()) == pytest.approx([30.0, 20.0, 40.0, 50.0])


@pytest.fixture
def massive_client():
    return MagicMock(spec=MassiveClient)


@pytest.fixture
def source(massive_client):
    return MassiveDataSource(client=massive_client, today=lambda: TODAY, clock_ms=lambda: NOW_MS)


def test_history_prefers_aggregates(source, massive_client):
    massive_client.get_aggregates.return_value = {
        "results": [{"c": 100.0, "v": 10, "t": 1_700_000_000_000}, {"c": 101.0, "v": 20, "t": 1_700_000_060_000}]
    }

    history = source.get_market_history("SPY", 50)

    assert [point.price for point in history] == [100.0, 101.0]
    massive_client.get_stock_snapshot.assert_not_called()
    start, end = massive_client.get_aggregates.call_args.args[1:]
    assert end == TODAY
    assert (end - start).days == 5


def test_history_falls_back_to_stock_snapshot(source, massive_client):
    massive_client.get_aggregates.side_effect = AdapterError("aggregates unavailable")
    massive_client.get_stock_snapshot.return_value = {
        "results": [{"ticker": "SPY", "last_trade": {"price": 450.0}, "session": {"volume": 1000}}]
    }

    history = source.get_market_history("SPY", 50)

    assert len(history) == 1
    assert history[0].price == 450.0
    assert history[0].volume == 1000
    assert history[0].timestamp == NOW_MS


def test_history_falls_back_to_underlying_asset(source, massive_client):
    massive_client.get_aggregates.side_effect = AdapterError("down")
    massive_client.get_stock_snapshot.side_effect = RateLimitError("slow down")
    massive_client.get_options_chain_snapshot.return_value = _chain_payload()

    history = source.get_market_history("SPY", 50)

    assert [point.price for point in history] == [108.0]


def test_history_without_any_data_is_not_available(source, massive_client):
    massive_client.get_aggregates.return_value = {"results": []}
    massive_client.get_stock_snapshot.return_value = {"results": []}
    massive_client.get_options_chain_snapshot.return_value = {"results": []}

    with pytest.raises(DataNotAvailable):
        source.get_market_history("SPY", 50)


def test_authentication_errors_are_not_swallowed(source, massive_client):
    massive_client.get_aggregates.side_effect = AuthenticationError("bad key")

    with pytest.raises(AuthenticationError):
        source.get_market_history("SPY", 50)


def test_options_snapshot_and_iv_history(source, massive_client):
    massive_client.get_options_chain_snapshot.return_value = _chain_payload()

    snapshot = source.get_options_snapshot("SPY", 108.0)
    historical_iv = source.get_historical_iv("SPY", 2)

    assert snapshot.expiration == date(2030, 1, 18)
    assert historical_iv == pytest.approx([30.0, 20.0])


def test_empty_chain_is_not_available(source, massive_client):
    massive_client.get_options_chain_snapshot.return_value = {"results": []}

    with pytest.raises(DataNotAvailable):
        source.get_options_snapshot("SPY", 100.0)


def test_client_settings_are_forwarded():
    source = MassiveDataSource(api_key="k", retries=5, ttls=MassiveTTLs(market=1.0))

    assert source.client.retries == 5
    assert source.client.ttls.market == 1.0
    assert source.name == "massive"

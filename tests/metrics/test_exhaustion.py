from __future__ import annotations

from volagent.metrics import exhaustion
from volagent.models import MetricStatus


def test_fewer_than_ten_points_is_insufficient(make_history):
    history = make_history([100.0] * 9)

    result = exhaustion.calculate(history[-1], history)

    assert result.score == 0
    assert result.status is MetricStatus.FAIL
    assert result.threshold == 60
    assert result.explanation == "Insufficient data for exhaustion detection"


def test_without_earlier_window_there_is_no_decline(make_history):
    history = make_history([100.0, 102.0] * 5)

    result = exhaustion.calculate(history[-1], history)

    assert result.score == 0
    assert result.explanation == "Exhaustion level 0% - below threshold of 60%"


def test_momentum_and_volume_decline_passes(make_history):
    prices = [100.0, 102.0] * 5 + [100.0] * 10
    volumes = [2000] * 10 + [1000] * 10
    history = make_history(prices, volumes)

    result = exhaustion.calculate(history[-1], history)

    assert result.score == 80
    assert result.status is MetricStatus.PASS
    assert result.explanation == "Exhaustion detected: Momentum decline 80%"


def test_accelerating_market_is_not_exhausted(make_history):
    prices = [100.0, 101.0] * 5 + [100.0, 105.0] * 5
    volumes = [1000] * 10 + [3000] * 10
    history = make_history(prices, volumes)

    result = exhaustion.calculate(history[-1], history)

    assert result.score == 0
    assert result.status is MetricStatus.FAIL


def test_single_earlier_point_falls_back_for_momentum_only(make_history):
    prices = [100.0] + [100.0, 103.0] * 5
    volumes = [2000] + [1000] * 10
    history = make_history(prices, volumes)

    result = exhaustion.calculate(history[-1], history)

    # momentum reuses the recent window, volume still compares 1000 against 2000
    assert result.score == 20

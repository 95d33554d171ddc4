from __future__ import annotations

from datetime import datetime, timezone

import pytest
import requests

from btc_dca.engine import DcaSession
from btc_dca.errors import IngestionError, InputValidationError
from btc_dca.strategies import CycleLiquidityBlendStrategy, TanhMomentumStrategy, build_strategy

from conftest import FakeFeed

NOW = datetime(2025, 7, 14, tzinfo=timezone.utc)


def test_load_caches_signals_and_score(feed):
    session = DcaSession(feed, "deviation_ratio")
    assessment = session.load(NOW)

    assert session.ready
    assert session.spot_price == 60000.0
    assert len(session.series) == 200
    assert session.signals.sma == pytest.approx(50000.0 + 100 * 199 / 2)
    assert 0.0 <= assessment.score <= 1.0
    assert feed.spot_calls == 1
    assert feed.history_calls == [200]


def test_recommend_reuses_cached_score(feed):
    session = DcaSession(feed)
    session.load(NOW)

    first = session.recommend("100")
    second = session.recommend("250")

    assert feed.spot_calls == 1
    assert len(feed.history_calls) == 1
    assert second.usd_amount == pytest.approx(first.usd_amount * 2.5)
    assert second.btc_amount == pytest.approx(second.usd_amount / 60000.0)


def test_recommend_before_load_is_withheld(feed):
    session = DcaSession(feed)
    assert session.recommend("100") is None


def test_recommend_empty_or_zero_is_withheld(feed):
    session = DcaSession(feed)
    session.load(NOW)
    assert session.recommend("") is None
    assert session.recommend("0") is None


def test_recommend_rejects_negative_amount(feed):
    session = DcaSession(feed)
    session.load(NOW)
    with pytest.raises(InputValidationError):
        session.recommend("-10")


def test_flat_history_gives_neutral_score():
    session = DcaSession(FakeFeed(spot=99999.0, prices=[42000.0] * 200))
    assert session.load(NOW).score == 0.5


@pytest.mark.parametrize("price", [60000.1, 63123.456789, 42000.0, 0.3])
@pytest.mark.parametrize("mapping", ["symmetric", "asymmetric"])
def test_flat_history_with_inexact_price_is_neutral(price, mapping):
    strategy = build_strategy("deviation_ratio", mapping=mapping)
    session = DcaSession(FakeFeed(spot=price * 3, prices=[price] * 200), strategy)
    assessment = session.load(NOW)
    assert session.signals.max_deviation == 0.0
    assert assessment.score == 0.5
    assert assessment.label == "Neutral"


def test_short_history_produces_no_score():
    session = DcaSession(FakeFeed(prices=[50000.0] * 10))
    with pytest.raises(IngestionError):
        session.load(NOW)
    assert not session.ready
    assert session.signals is None
    assert session.recommend("100") is None


@pytest.mark.parametrize(
    "kwargs",
    [
        {"spot_error": requests.ConnectionError("down")},
        {"history_error": requests.Timeout("slow")},
        {"history_error": IngestionError("Failed to load historical price data for SMA.")},
    ],
)
def test_partial_fetch_failure_is_ingestion_error(kwargs):
    session = DcaSession(FakeFeed(**kwargs))
    with pytest.raises(IngestionError):
        session.load(NOW)
    assert session.spot_price is None
    assert session.assessment is None


def test_failed_reload_clears_previous_state(feed):
    session = DcaSession(feed)
    session.load(NOW)
    feed.history_error = requests.ConnectionError("down")
    with pytest.raises(IngestionError):
        session.load(NOW)
    assert session.recommend("100") is None


def test_history_days_follow_strategy():
    feed = FakeFeed()
    DcaSession(feed, CycleLiquidityBlendStrategy()).load(NOW)
    assert feed.history_calls == [200]


def test_set_strategy_rescores_from_cache(feed):
    session = DcaSession(feed)
    session.load(NOW)

    assessment = session.set_strategy(TanhMomentumStrategy())

    assert assessment.strategy == "tanh_momentum"
    assert -1.0 < assessment.score < 1.0
    assert feed.spot_calls == 1
    # 30-day change over the ramp: 50000 + 100*199 vs 50000 + 100*169
    assert assessment.components["pct_change"] == pytest.approx((3000 / 66900) * 100)


def test_set_strategy_reloads_when_history_grows(feed):
    session = DcaSession(feed)
    session.load(NOW)
    feed.prices = [50000.0 + 100 * i for i in range(400)]

    assessment = session.set_strategy(build_strategy("tanh_momentum", pct_window=365), NOW)

    assert feed.history_calls == [200, 366]
    assert session.loaded_days == 366
    assert len(session.series) == 400
    assert assessment.components["pct_change"] == pytest.approx((36500 / 53400) * 100)


def test_set_strategy_with_uncovered_window_is_ingestion_error(feed):
    session = DcaSession(feed)
    session.load(NOW)

    with pytest.raises(IngestionError):
        session.set_strategy(build_strategy("tanh_momentum", pct_window=365), NOW)

    assert feed.history_calls == [200, 366]
    assert not session.ready
    assert session.recommend("100") is None


def test_set_strategy_before_load(feed):
    session = DcaSession(feed)
    assert session.set_strategy("cycle_liquidity") is None
    assert not session.ready


def test_refresh_score_moves_time_signal(feed):
    session = DcaSession(feed, "cycle_liquidity")
    first = session.load(NOW)
    later = session.refresh_score(datetime(2026, 1, 1, tzinfo=timezone.utc))
    assert later.components["cycle_risk"] != pytest.approx(first.components["cycle_risk"])
    assert feed.spot_calls == 1


def test_refresh_score_needs_data(feed):
    with pytest.raises(IngestionError):
        DcaSession(feed).refresh_score(NOW)


def test_unknown_strategy_key(feed):
    with pytest.raises(KeyError):
        DcaSession(feed, "nope")

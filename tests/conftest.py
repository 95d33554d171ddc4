from __future__ import annotations

from datetime import datetime, timezone
from typing import Dict, Optional, Sequence

import pytest

from btc_dca.models import PriceSeries, Signals

DAY_MS = 86_400_000
START_MS = 1_700_000_000_000


def make_series(prices: Sequence[float], start_ms: int = START_MS) -> PriceSeries:
    """PriceSeries with one point per day starting at ``start_ms``."""
    return PriceSeries.from_points([(start_ms + i * DAY_MS, p) for i, p in enumerate(prices)])


def make_signals(
    spot_price: float = 60000.0,
    sma: float = 50000.0,
    max_deviation: float = 10000.0,
    days_since_reference: float = 450.0,
    pct_changes: Optional[Dict[int, float]] = None,
) -> Signals:
    return Signals(
        spot_price=spot_price,
        sma=sma,
        sma_points=200,
        max_deviation=max_deviation,
        days_since_reference=days_since_reference,
        evaluated_at=datetime(2025, 7, 14, tzinfo=timezone.utc),
        pct_changes=pct_changes or {},
    )


class FakeFeed:
    """Market data feed that serves canned values or raises."""

    def __init__(self, spot=60000.0, prices=None, spot_error=None, history_error=None):
        self.spot = spot
        self.prices = prices if prices is not None else [50000.0 + 100 * i for i in range(200)]
        self.spot_error = spot_error
        self.history_error = history_error
        self.spot_calls = 0
        self.history_calls = []

    def get_spot_price(self) -> float:
        self.spot_calls += 1
        if self.spot_error:
            raise self.spot_error
        return self.spot

    def get_price_history(self, days: int) -> PriceSeries:
        self.history_calls.append(days)
        if self.history_error:
            raise self.history_error
        return make_series(self.prices)


@pytest.fixture
def feed() -> FakeFeed:
    return FakeFeed()

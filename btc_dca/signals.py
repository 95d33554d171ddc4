"""Signal extraction from daily BTC price history."""

from __future__ import annotations

import math
from datetime import datetime
from typing import Iterable, Optional

import numpy as np
import pandas as pd

from .config import HALVING_DATE, MIN_HISTORY_POINTS, SMA_WINDOW
from .errors import IngestionError
from .logger import get_logger
from .models import PriceSeries, Signals
from .utils import to_utc_datetime, utc_now

logger = get_logger(__name__)

SECONDS_PER_DAY = 86_400


def simple_moving_average(series: PriceSeries | pd.Series, window: int) -> float:
    """Mean of the last ``window`` prices, or of every price if fewer exist."""

    if window <= 0:
        raise ValueError("SMA window must be positive")
    prices = series.prices if isinstance(series, PriceSeries) else series
    if prices.empty:
        raise IngestionError("Cannot average an empty price series.")
    window_prices = prices.tail(window)
    low, high = window_prices.min(), window_prices.max()
    if low == high:
        # a flat window averages to its own price exactly
        return float(low)
    return float(window_prices.mean())


def max_absolute_deviation(prices: PriceSeries | pd.Series | Iterable[float], reference: float) -> float:
    """Largest ``abs(price - reference)`` over ``prices``; 0.0 when empty."""

    if isinstance(prices, PriceSeries):
        values = prices.prices.to_numpy(dtype=float)
    elif isinstance(prices, pd.Series):
        values = prices.to_numpy(dtype=float)
    else:
        values = np.fromiter(prices, dtype=float)
    if values.size == 0:
        return 0.0
    return float(np.max(np.abs(values - reference)))


def percent_change(start: float, end: float) -> float:
    """``(end - start) / start * 100``.

    A zero or non-finite start price is unusable input, not a numeric edge
    case, so it raises IngestionError instead of returning an infinity.
    """

    if start == 0 or not math.isfinite(start) or not math.isfinite(end):
        raise IngestionError(f"Cannot compute percent change from base price {start!r}.")
    return (end - start) / start * 100


def window_percent_change(series: PriceSeries, days: int) -> float:
    """Percent change from ``days`` points before the last point to the last point."""

    if days <= 0:
        raise ValueError("Percent change window must be positive")
    prices = series.prices
    start_pos = max(len(prices) - 1 - days, 0)
    return percent_change(float(prices.iloc[start_pos]), float(prices.iloc[-1]))


def days_since(reference: datetime, now: Optional[datetime] = None) -> float:
    """Fractional days elapsed from ``reference`` to ``now`` (negative if before)."""

    ref = to_utc_datetime(reference)
    current = to_utc_datetime(now) if now is not None else utc_now()
    if ref is None or current is None:
        raise ValueError("days_since needs datetime-like arguments")
    return (current - ref).total_seconds() / SECONDS_PER_DAY


def extract_signals(
    series: PriceSeries,
    spot_price: float,
    now: Optional[datetime] = None,
    *,
    sma_window: int = SMA_WINDOW,
    pct_windows: Iterable[int] = (),
    reference_date: datetime = HALVING_DATE,
    min_points: int = MIN_HISTORY_POINTS,
) -> Signals:
    """Derive every signal a strategy may need from one fetch cycle."""

    if len(series) < min_points:
        raise IngestionError(
            f"Not enough price history: {len(series)} points, need at least {min_points}."
        )
    try:
        spot = float(spot_price)
    except (TypeError, ValueError) as exc:
        raise IngestionError(f"Invalid spot price: {spot_price!r}") from exc
    if not math.isfinite(spot) or spot <= 0:
        raise IngestionError(f"Invalid spot price: {spot_price!r}")

    evaluated_at = to_utc_datetime(now) if now is not None else utc_now()
    window_prices = series.prices.tail(sma_window)
    sma = simple_moving_average(window_prices, sma_window)
    max_dev = max_absolute_deviation(window_prices, sma)
    windows = sorted({int(w) for w in pct_windows})
    if windows and windows[-1] >= len(series):
        raise IngestionError(
            f"Not enough price history for a {windows[-1]}-day change: {len(series)} points."
        )
    pct_changes = {w: window_percent_change(series, w) for w in windows}

    signals = Signals(
        spot_price=spot,
        sma=sma,
        sma_points=len(window_prices),
        max_deviation=max_dev,
        days_since_reference=days_since(reference_date, evaluated_at),
        evaluated_at=evaluated_at,
        pct_changes=pct_changes,
    )
    logger.debug(
        f"Signals from {len(series)} points ({series.first_timestamp}..{series.last_timestamp}): "
        f"sma={sma:.2f} over {len(window_prices)}, max_dev={max_dev:.2f}, pct={pct_changes}"
    )
    return signals

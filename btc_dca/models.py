"""Data models for price history, signals and purchase recommendations."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Iterable, Mapping, Sequence

import numpy as np
import pandas as pd

from .errors import IngestionError


@dataclass(frozen=True, eq=False)
class PriceSeries:
    """Daily prices indexed by epoch milliseconds.

    Attributes:
        prices: float Series, index strictly increasing, values finite and > 0
    """
    prices: pd.Series

    @classmethod
    def from_points(cls, points: Iterable[Sequence[float]]) -> "PriceSeries":
        """Build a series from ``[timestamp_ms, price]`` pairs.

        Points are sorted by timestamp and a repeated timestamp keeps its last
        price. Raises IngestionError for malformed pairs or unusable prices.
        """
        timestamps = []
        values = []
        for point in points:
            try:
                ts, price = point[0], point[1]
                timestamps.append(int(ts))
                values.append(float(price))
            except (TypeError, ValueError, IndexError) as exc:
                raise IngestionError(f"Malformed price point: {point!r}") from exc

        if not values:
            raise IngestionError("Price history is empty.")

        prices = pd.Series(values, index=pd.Index(timestamps, dtype="int64"), dtype=float)
        prices = prices[~prices.index.duplicated(keep="last")].sort_index()

        if not np.isfinite(prices.to_numpy()).all() or (prices <= 0).any():
            raise IngestionError("Price history contains non-positive or missing prices.")

        return cls(prices=prices)

    def __len__(self) -> int:
        return len(self.prices)

    @property
    def first_timestamp(self) -> int:
        return int(self.prices.index[0])

    @property
    def last_timestamp(self) -> int:
        return int(self.prices.index[-1])


@dataclass(frozen=True)
class Signals:
    """Scalars derived from one PriceSeries at one evaluation instant."""
    spot_price: float
    sma: float
    sma_points: int
    max_deviation: float
    days_since_reference: float
    evaluated_at: datetime
    pct_changes: Mapping[int, float] = field(default_factory=dict)

    def pct_change(self, window: int) -> float:
        try:
            return self.pct_changes[window]
        except KeyError:
            raise KeyError(f"No {window}-day percent change was extracted") from None


@dataclass(frozen=True)
class RiskAssessment:
    """A risk score together with the strategy that produced it."""
    score: float
    strategy: str
    label: str
    components: Dict[str, float] = field(default_factory=dict)


@dataclass(frozen=True)
class Recommendation:
    usd_amount: float
    btc_amount: float
    multiplier: float

"""Session-scoped DCA calculator state.

A ``DcaSession`` fetches market data once, extracts and caches signals and the
risk assessment, and then answers any number of amount edits synchronously
from that cache.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from typing import Any, Optional, Protocol

from .config import DEFAULT_STRATEGY, HALVING_DATE, MIN_HISTORY_POINTS
from .errors import DcaError, IngestionError
from .logger import get_logger
from .models import PriceSeries, Recommendation, RiskAssessment, Signals
from .recommendation import parse_base_amount, recommend
from .signals import extract_signals
from .strategies import NormalizationStrategy, build_strategy
from .utils import utc_now

logger = get_logger(__name__)


class MarketDataFeed(Protocol):
    def get_spot_price(self) -> float: ...

    def get_price_history(self, days: int) -> PriceSeries: ...


class DcaSession:
    """Cached market data, signals and risk score for one user session."""

    def __init__(
        self,
        feed: MarketDataFeed,
        strategy: NormalizationStrategy | str | None = None,
        *,
        min_points: int = MIN_HISTORY_POINTS,
        reference_date: datetime = HALVING_DATE,
    ) -> None:
        self.feed = feed
        self.strategy = self._resolve(strategy)
        self.min_points = min_points
        self.reference_date = reference_date

        self.series: Optional[PriceSeries] = None
        self.spot_price: Optional[float] = None
        self.signals: Optional[Signals] = None
        self.assessment: Optional[RiskAssessment] = None
        self.loaded_days = 0

    @staticmethod
    def _resolve(strategy: NormalizationStrategy | str | None) -> NormalizationStrategy:
        if isinstance(strategy, NormalizationStrategy):
            return strategy
        return build_strategy(strategy or DEFAULT_STRATEGY)

    @property
    def ready(self) -> bool:
        return self.assessment is not None

    def _clear(self) -> None:
        self.series = None
        self.loaded_days = 0
        self.spot_price = None
        self.signals = None
        self.assessment = None

    def load(self, now: Optional[datetime] = None) -> RiskAssessment:
        """Fetch spot price and history concurrently, then score them.

        Both requests must succeed. Any failure clears cached state and
        raises IngestionError.
        """
        self._clear()
        days = self.strategy.history_days
        logger.info(f"Fetching spot price and {days} days of history...")

        with ThreadPoolExecutor(max_workers=2) as executor:
            spot_future = executor.submit(self.feed.get_spot_price)
            history_future = executor.submit(self.feed.get_price_history, days)
            spot_price = self._result(spot_future, "spot price")
            series = self._result(history_future, "price history")

        signals = extract_signals(
            series,
            spot_price,
            now or utc_now(),
            sma_window=self.strategy.sma_window,
            pct_windows=self.strategy.pct_windows,
            reference_date=self.reference_date,
            min_points=self.min_points,
        )
        assessment = self.strategy.compute_risk(signals)

        self.series = series
        self.loaded_days = days
        self.spot_price = spot_price
        self.signals = signals
        self.assessment = assessment
        logger.info(
            f"Risk score {assessment.score:.4f} ({assessment.label}) from {self.strategy.key}, "
            f"spot ${spot_price:,.2f}, {len(series)} points"
        )
        return assessment

    @staticmethod
    def _result(future, what: str) -> Any:
        try:
            return future.result()
        except DcaError:
            raise
        except Exception as exc:
            logger.error(f"Failed to fetch {what}: {exc}")
            raise IngestionError(f"Failed to fetch {what}.") from exc

    def refresh_score(self, now: Optional[datetime] = None) -> RiskAssessment:
        """Re-evaluate the cached series at ``now`` without refetching."""
        if self.series is None or self.spot_price is None:
            raise IngestionError("No market data loaded.")
        self.signals = extract_signals(
            self.series,
            self.spot_price,
            now or utc_now(),
            sma_window=self.strategy.sma_window,
            pct_windows=self.strategy.pct_windows,
            reference_date=self.reference_date,
            min_points=self.min_points,
        )
        self.assessment = self.strategy.compute_risk(self.signals)
        return self.assessment

    def set_strategy(
        self, strategy: NormalizationStrategy | str, now: Optional[datetime] = None
    ) -> Optional[RiskAssessment]:
        """Switch strategy and rescore.

        The cached series is reused when it was fetched for at least the new
        strategy's ``history_days``; otherwise market data is reloaded.
        """
        self.strategy = self._resolve(strategy)
        self.signals = None
        self.assessment = None
        if self.series is None:
            return None
        if self.strategy.history_days > self.loaded_days:
            logger.info(f"{self.strategy.key} needs {self.strategy.history_days} days of history; reloading.")
            return self.load(now)
        return self.refresh_score(now)

    def recommend(self, amount: Any) -> Optional[Recommendation]:
        """Recommendation for a raw user-entered amount.

        Raises InputValidationError for invalid input; returns None while the
        recommendation must be withheld.
        """
        base_amount = parse_base_amount(amount)
        return recommend(base_amount, self.spot_price, self.assessment, self.strategy)

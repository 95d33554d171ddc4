"""Risk normalization strategies.

Every strategy turns a ``Signals`` snapshot into a bounded risk score and owns
the multiplier that score implies. Sign conventions are per strategy:

* ``deviation_ratio`` and ``cycle_liquidity`` score in [0, 1]; higher means
  the price looks expensive, so the multiplier shrinks.
* ``tanh_momentum`` scores in (-1, 1); positive means buy more, and the
  multiplier is ``1 + score``.
"""

from __future__ import annotations

import math
import sys
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Dict, List, Literal, Optional, Tuple

import numpy as np
from scipy.special import expit

from .config import (
    BUY_LESS_THRESHOLD,
    BUY_MORE_THRESHOLD,
    CYCLE_LENGTH_DAYS,
    CYCLE_PHASE_SHIFT_DAYS,
    CYCLE_WEIGHT,
    HISTORY_DAYS,
    LIQUIDITY_DIVISOR,
    LIQUIDITY_WEIGHT,
    LIQUIDITY_WINDOW,
    MAX_MULTIPLIER,
    MIN_MULTIPLIER,
    MOMENTUM_DIVISOR,
    MOMENTUM_WINDOW,
    SMA_WINDOW,
)
from .models import RiskAssessment, Signals

NEUTRAL_SCORE = 0.5
# Largest double below 1.0; keeps tanh scores strictly inside (-1, 1).
_TANH_LIMIT = math.nextafter(1.0, 0.0)


def clamp(value: float, low: float, high: float) -> float:
    return float(np.clip(value, low, high))


def interpolate_multiplier(score: float, low: float, high: float) -> float:
    """``low`` at score 1, ``high`` at score 0, linear in ``1 - score``."""
    return low + (1 - score) * (high - low)


def label_unit_score(score: float) -> str:
    if score > BUY_LESS_THRESHOLD:
        return "Buy less"
    if score < BUY_MORE_THRESHOLD:
        return "Buy more"
    return "Neutral"


class NormalizationStrategy(ABC):
    """Maps signals to a risk score and a score to a purchase multiplier."""

    key: str = ""
    score_range: Tuple[float, float] = (0.0, 1.0)

    @property
    def sma_window(self) -> int:
        return SMA_WINDOW

    @property
    def pct_windows(self) -> Tuple[int, ...]:
        return ()

    @property
    def history_days(self) -> int:
        """Days of history the market data request must cover."""
        return max([HISTORY_DAYS, self.sma_window, *(w + 1 for w in self.pct_windows)])

    @abstractmethod
    def compute_risk(self, signals: Signals) -> RiskAssessment:
        raise NotImplementedError

    @abstractmethod
    def multiplier(self, score: float) -> float:
        raise NotImplementedError

    def label(self, score: float) -> str:
        return label_unit_score(score)


@dataclass(frozen=True)
class DeviationRatioConfig:
    window: int = SMA_WINDOW
    min_multiplier: float = MIN_MULTIPLIER
    max_multiplier: float = MAX_MULTIPLIER
    mapping: Literal["symmetric", "asymmetric"] = "symmetric"


class DeviationRatioStrategy(NormalizationStrategy):
    """Distance of the spot price from the SMA, scaled by the window's max deviation.

    ``raw = (spot - sma) / max_deviation``. A flat window (max deviation below
    machine epsilon) scores neutral. Otherwise the score is either
    ``0.5 + 0.5 * clamp(raw, -1, 1)`` (symmetric) or ``clamp((raw + 1) / 2, 0, 1)``
    (asymmetric).
    """

    key = "deviation_ratio"

    def __init__(self, config: Optional[DeviationRatioConfig] = None) -> None:
        self.config = config or DeviationRatioConfig()
        if self.config.window <= 0:
            raise ValueError("window must be positive")
        if self.config.mapping not in ("symmetric", "asymmetric"):
            raise ValueError(f"Unknown mapping: {self.config.mapping}")

    @property
    def sma_window(self) -> int:
        return self.config.window

    def compute_risk(self, signals: Signals) -> RiskAssessment:
        max_dev = signals.max_deviation
        if not math.isfinite(max_dev) or max_dev < sys.float_info.epsilon:
            score = NEUTRAL_SCORE
            raw = 0.0
        else:
            raw = (signals.spot_price - signals.sma) / max_dev
            if self.config.mapping == "symmetric":
                score = NEUTRAL_SCORE + 0.5 * clamp(raw, -1.0, 1.0)
            else:
                score = clamp((raw + 1) / 2, 0.0, 1.0)
        return RiskAssessment(
            score=score,
            strategy=self.key,
            label=self.label(score),
            components={"raw_deviation": raw},
        )

    def multiplier(self, score: float) -> float:
        return interpolate_multiplier(score, self.config.min_multiplier, self.config.max_multiplier)


@dataclass(frozen=True)
class TanhMomentumConfig:
    pct_window: int = MOMENTUM_WINDOW
    k: float = MOMENTUM_DIVISOR


class TanhMomentumStrategy(NormalizationStrategy):
    """``tanh(pct_change / k)`` over a trailing window; positive buys more."""

    key = "tanh_momentum"
    score_range = (-1.0, 1.0)

    def __init__(self, config: Optional[TanhMomentumConfig] = None) -> None:
        self.config = config or TanhMomentumConfig()
        if self.config.k <= 0:
            raise ValueError("k must be positive")
        if self.config.pct_window <= 0:
            raise ValueError("pct_window must be positive")

    @property
    def pct_windows(self) -> Tuple[int, ...]:
        return (self.config.pct_window,)

    def compute_risk(self, signals: Signals) -> RiskAssessment:
        pct = signals.pct_change(self.config.pct_window)
        score = clamp(math.tanh(pct / self.config.k), -_TANH_LIMIT, _TANH_LIMIT)
        return RiskAssessment(
            score=score,
            strategy=self.key,
            label=self.label(score),
            components={"pct_change": pct},
        )

    def multiplier(self, score: float) -> float:
        return 1 + score

    def label(self, score: float) -> str:
        if score > BUY_MORE_THRESHOLD:
            return "Buy more"
        if score < -BUY_MORE_THRESHOLD:
            return "Buy less"
        return "Neutral"


@dataclass(frozen=True)
class CycleLiquidityConfig:
    cycle_length: float = CYCLE_LENGTH_DAYS
    phase_shift: float = CYCLE_PHASE_SHIFT_DAYS
    pct_window: int = LIQUIDITY_WINDOW
    k: float = LIQUIDITY_DIVISOR
    cycle_weight: float = CYCLE_WEIGHT
    liquidity_weight: float = LIQUIDITY_WEIGHT
    # (min, max) to interpolate like the deviation ratio; None uses 1 - score
    multiplier_bounds: Optional[Tuple[float, float]] = None


class CycleLiquidityBlendStrategy(NormalizationStrategy):
    """Weighted blend of a halving-cycle sine and a logistic liquidity proxy.

    cycle     = 0.5 + 0.5 * sin(2*pi * (days_since_halving + shift) / length)
    liquidity = 1 / (1 + exp(pct_change / k))
    score     = clamp(w_cycle * cycle + w_liquidity * liquidity, 0, 1)
    """

    key = "cycle_liquidity"

    def __init__(self, config: Optional[CycleLiquidityConfig] = None) -> None:
        self.config = config or CycleLiquidityConfig()
        if self.config.cycle_length <= 0:
            raise ValueError("cycle_length must be positive")
        if self.config.k <= 0:
            raise ValueError("k must be positive")
        if self.config.pct_window <= 0:
            raise ValueError("pct_window must be positive")

    @property
    def pct_windows(self) -> Tuple[int, ...]:
        return (self.config.pct_window,)

    def cycle_risk(self, days: float) -> float:
        phase = 2 * math.pi * (days + self.config.phase_shift) / self.config.cycle_length
        return 0.5 + 0.5 * math.sin(phase)

    def liquidity_risk(self, pct: float) -> float:
        # expit(-x) == 1 / (1 + exp(x)) without overflowing for large x
        return float(expit(-pct / self.config.k))

    def compute_risk(self, signals: Signals) -> RiskAssessment:
        pct = signals.pct_change(self.config.pct_window)
        cycle = self.cycle_risk(signals.days_since_reference)
        liquidity = self.liquidity_risk(pct)
        composite = self.config.cycle_weight * cycle + self.config.liquidity_weight * liquidity
        score = clamp(composite, 0.0, 1.0)
        return RiskAssessment(
            score=score,
            strategy=self.key,
            label=self.label(score),
            components={"cycle_risk": cycle, "liquidity_risk": liquidity, "pct_change": pct},
        )

    def multiplier(self, score: float) -> float:
        if self.config.multiplier_bounds is not None:
            low, high = self.config.multiplier_bounds
            return interpolate_multiplier(score, low, high)
        return 1 - score


StrategyFactory = Callable[..., NormalizationStrategy]


@dataclass(frozen=True)
class StrategySpec:
    key: str
    name: str
    description: str
    factory: StrategyFactory


def _deviation_factory(**params) -> NormalizationStrategy:
    return DeviationRatioStrategy(DeviationRatioConfig(**params))


def _tanh_factory(**params) -> NormalizationStrategy:
    return TanhMomentumStrategy(TanhMomentumConfig(**params))


def _cycle_factory(**params) -> NormalizationStrategy:
    return CycleLiquidityBlendStrategy(CycleLiquidityConfig(**params))


STRATEGY_SPECS: List[StrategySpec] = [
    StrategySpec(
        key=DeviationRatioStrategy.key,
        name="Deviation Ratio",
        description="Spot vs 200-day SMA, scaled by the window's max deviation",
        factory=_deviation_factory,
    ),
    StrategySpec(
        key=TanhMomentumStrategy.key,
        name="Tanh Momentum",
        description="tanh of the 30-day percent change; positive buys more",
        factory=_tanh_factory,
    ),
    StrategySpec(
        key=CycleLiquidityBlendStrategy.key,
        name="Cycle + Liquidity",
        description="Halving-cycle sine blended with a logistic 108-day liquidity proxy",
        factory=_cycle_factory,
    ),
]


def get_spec(key: str) -> Optional[StrategySpec]:
    for spec in STRATEGY_SPECS:
        if spec.key == key:
            return spec
    return None


def build_strategy(key: str, **params) -> NormalizationStrategy:
    spec = get_spec(key)
    if not spec:
        raise KeyError(f"Strategy not found: {key}")
    return spec.factory(**params)


def strategy_keys() -> List[str]:
    return [spec.key for spec in STRATEGY_SPECS]


def describe_strategies() -> Dict[str, str]:
    return {spec.key: f"{spec.name}: {spec.description}" for spec in STRATEGY_SPECS}

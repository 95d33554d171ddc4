"""Turning a risk assessment into a concrete purchase."""

from __future__ import annotations

import math
from typing import Any, Optional

from .errors import InputValidationError
from .models import Recommendation, RiskAssessment
from .strategies import NormalizationStrategy


def parse_base_amount(value: Any) -> Optional[float]:
    """Validate a user-entered DCA amount.

    Returns None for an empty entry (nothing to recommend yet). Raises
    InputValidationError for non-numeric, non-finite or negative input so it
    never reaches the engine.
    """
    if value is None:
        return None
    if isinstance(value, str):
        value = value.strip()
        if value == "":
            return None
    if isinstance(value, bool):
        raise InputValidationError(f"Invalid DCA amount: {value!r}")
    try:
        amount = float(value)
    except (TypeError, ValueError):
        raise InputValidationError(f"DCA amount must be a number, got {value!r}") from None
    if not math.isfinite(amount):
        raise InputValidationError(f"DCA amount must be finite, got {value!r}")
    if amount < 0:
        raise InputValidationError("DCA amount cannot be negative")
    return amount


def recommend(
    base_amount: Optional[float],
    spot_price: Optional[float],
    assessment: Optional[RiskAssessment],
    strategy: NormalizationStrategy,
) -> Optional[Recommendation]:
    """Scale ``base_amount`` by the strategy's multiplier and convert to BTC.

    Returns None (recommendation withheld) until an amount, a spot price and a
    risk score are all available.
    """
    if not base_amount or assessment is None:
        return None
    if spot_price is None or not spot_price > 0:
        return None

    multiplier = max(strategy.multiplier(assessment.score), 0.0)
    usd = base_amount * multiplier
    return Recommendation(usd_amount=usd, btc_amount=usd / spot_price, multiplier=multiplier)

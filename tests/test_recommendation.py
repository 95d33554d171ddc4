from __future__ import annotations

import pytest

from btc_dca.errors import InputValidationError
from btc_dca.models import RiskAssessment
from btc_dca.recommendation import parse_base_amount, recommend
from btc_dca.strategies import DeviationRatioStrategy, TanhMomentumStrategy


def _assessment(score: float, strategy: str = "deviation_ratio") -> RiskAssessment:
    return RiskAssessment(score=score, strategy=strategy, label="")


@pytest.mark.parametrize("value, expected", [("100", 100.0), (" 42.5 ", 42.5), (0, 0.0), ("0", 0.0), (7, 7.0)])
def test_parse_base_amount_accepts_numbers(value, expected):
    assert parse_base_amount(value) == expected


@pytest.mark.parametrize("value", [None, "", "   "])
def test_parse_base_amount_empty_is_none(value):
    assert parse_base_amount(value) is None


@pytest.mark.parametrize("value", ["-1", -0.01, "abc", "nan", "inf", True, [1]])
def test_parse_base_amount_rejects(value):
    with pytest.raises(InputValidationError):
        parse_base_amount(value)


def test_input_validation_error_is_value_error():
    with pytest.raises(ValueError):
        parse_base_amount("-5")


def test_recommend_deviation_example():
    rec = recommend(100.0, 60000.0, _assessment(1.0), DeviationRatioStrategy())
    assert rec.usd_amount == pytest.approx(50.00)
    assert rec.multiplier == pytest.approx(0.5)


def test_recommend_tanh_example():
    rec = recommend(100.0, 60000.0, _assessment(-0.7616, "tanh_momentum"), TanhMomentumStrategy())
    assert rec.usd_amount == pytest.approx(23.84)


@pytest.mark.parametrize("base, spot, score", [(100.0, 60000.0, 0.3), (12.34, 101234.56, 0.91), (1e6, 0.5, 0.0)])
def test_recommend_btc_matches_usd_over_spot(base, spot, score):
    rec = recommend(base, spot, _assessment(score), DeviationRatioStrategy())
    assert rec.btc_amount == pytest.approx(rec.usd_amount / spot)
    assert rec.usd_amount >= 0 and rec.btc_amount >= 0


@pytest.mark.parametrize(
    "base, spot, assessment",
    [
        (None, 60000.0, _assessment(0.5)),
        (0.0, 60000.0, _assessment(0.5)),
        (100.0, None, _assessment(0.5)),
        (100.0, 0.0, _assessment(0.5)),
        (100.0, 60000.0, None),
    ],
)
def test_recommend_withheld(base, spot, assessment):
    assert recommend(base, spot, assessment, DeviationRatioStrategy()) is None

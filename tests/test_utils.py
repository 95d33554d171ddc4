from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pandas as pd
import pytest

from btc_dca.utils import to_milliseconds, to_utc_datetime


def test_naive_datetime_is_taken_as_utc():
    assert to_utc_datetime(datetime(2025, 7, 14, 12)) == datetime(2025, 7, 14, 12, tzinfo=timezone.utc)


def test_aware_datetime_is_converted_to_utc():
    local = datetime(2025, 7, 14, 14, tzinfo=timezone(timedelta(hours=2)))
    assert to_utc_datetime(local) == datetime(2025, 7, 14, 12, tzinfo=timezone.utc)


def test_epoch_seconds_and_milliseconds_agree():
    expected = datetime(2023, 11, 14, 22, 13, 20, tzinfo=timezone.utc)
    assert to_utc_datetime(1_700_000_000) == expected
    assert to_utc_datetime(1_700_000_000_000) == expected
    assert to_utc_datetime(pd.Timestamp(expected)) == expected


def test_iso_strings():
    assert to_utc_datetime("2025-07-14T00:00:00Z") == datetime(2025, 7, 14, tzinfo=timezone.utc)


@pytest.mark.parametrize(
    "value",
    [None, True, "", "yesterday", -1, 99999999999999999999, 1e300, "1e300", float("inf")],
)
def test_uninterpretable_values_are_none(value):
    assert to_utc_datetime(value) is None


def test_to_milliseconds():
    assert to_milliseconds(datetime(2023, 11, 14, 22, 13, 20, tzinfo=timezone.utc)) == 1_700_000_000_000

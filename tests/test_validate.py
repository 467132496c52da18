import math

import pytest

from pipelines.extraction.specs import RATE_METRICS, RPR_METRICS, spec_by_key
from pipelines.extraction.validate import round_half_away, validate

MEDIAN_PRICE = spec_by_key(RPR_METRICS, "medianPrice")
DOM = spec_by_key(RPR_METRICS, "dom")
MONTHS_SUPPLY = spec_by_key(RPR_METRICS, "monthsSupply")
RATE = spec_by_key(RATE_METRICS, "rate")


def test_round_half_away_from_zero():
    assert round_half_away(1.48) == 1.5
    assert round_half_away(1.44) == 1.4
    assert round_half_away(2.25) == 2.3
    assert round_half_away(-2.25) == -2.3
    assert round_half_away(6.1255, 3) == 6.126


def test_same_number_is_valid_for_one_metric_only():
    assert validate(18, DOM) == 18
    assert validate(18, MEDIAN_PRICE) is None


def test_range_bounds_are_inclusive():
    assert validate(2_000_000, MEDIAN_PRICE) == 2_000_000
    assert validate(20_000, MEDIAN_PRICE) == 20_000
    assert validate(2_500_000, MEDIAN_PRICE) is None
    assert validate(19_999, MEDIAN_PRICE) is None


def test_decimal_metrics_are_rounded():
    assert validate(1.48, MONTHS_SUPPLY) == 1.5
    assert validate(50.01, MONTHS_SUPPLY) is None
    assert validate(6.1254, RATE) == 6.125


def test_integer_metrics_come_back_as_int():
    value = validate(48, DOM)

    assert value == 48
    assert isinstance(value, int)


@pytest.mark.parametrize("value", [None, math.nan, math.inf])
def test_non_values_are_rejected(value):
    assert validate(value, MONTHS_SUPPLY) is None

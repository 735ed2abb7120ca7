import math

import pytest

from services.common import (
    Amount, sum_amounts, normalize_symbol, to_number, is_available,
    format_number, encode_number, decode_number
)


def test_normalize_symbol():
    assert normalize_symbol(" aapl ") == "AAPL"
    assert normalize_symbol(None) == ""


def test_to_number():
    assert to_number("12.5") == 12.5
    assert math.isnan(to_number(None))
    assert math.isnan(to_number("abc"))


def test_is_available():
    assert is_available(0.0)
    assert not is_available(None)
    assert not is_available(math.nan)
    assert not is_available(math.inf)


def test_negative_unbounded_dominates_sum():
    total = sum_amounts([Amount.bounded(-100.0), Amount.unbounded(-1), Amount.bounded(50.0)])
    assert total == Amount.unbounded(-1)
    assert total.format("EUR") == "-∞"


def test_bounded_sum():
    assert sum_amounts([Amount.bounded(1.5), Amount.bounded(2.5)]) == Amount.bounded(4.0)
    assert Amount.bounded(1.0) + 2.0 == Amount.bounded(3.0)


def test_opposite_infinities_are_unavailable():
    total = Amount.unbounded(-1) + Amount.unbounded(1)
    assert not total.is_available
    assert total.format() == "N/A"


def test_amount_scaling_keeps_unbounded():
    assert Amount.unbounded(-1) / 1.1 == Amount.unbounded(-1)
    assert (Amount.bounded(110.0) / 1.1).value == pytest.approx(100.0)
    assert -Amount.unbounded(1) == Amount.unbounded(-1)
    assert abs(Amount.bounded(-3.0)) == Amount.bounded(3.0)


def test_invalid_unbounded_direction():
    with pytest.raises(ValueError):
        Amount.unbounded(0)


def test_amount_json_tokens():
    assert Amount.unbounded(-1).to_json() == "-Infinity"
    assert Amount.unbounded(1).to_json() == "Infinity"
    assert Amount.bounded(math.nan).to_json() == "NaN"
    assert Amount.from_json("-Infinity") == Amount.unbounded(-1)
    assert Amount.from_json(12.0) == Amount.bounded(12.0)


def test_missing_json_amount_is_nan():
    amount = Amount.from_json(None)
    assert not amount.is_unbounded
    assert math.isnan(amount.value)
    assert amount.to_json() == "NaN"


def test_number_tokens():
    assert encode_number(math.inf) == "Infinity"
    assert encode_number(-math.inf) == "-Infinity"
    assert decode_number("NaN") != decode_number("NaN")
    assert decode_number(None) is None
    assert decode_number(3) == 3.0


def test_format_number():
    assert format_number(1020.0, "EUR") == "1,020.00 EUR"
    assert format_number(math.nan, "EUR") == "N/A"
    assert format_number(None) == "N/A"
    assert format_number(-math.inf) == "-∞"

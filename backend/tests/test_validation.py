"""
Input parsing and business-time tests.
"""

from datetime import date, datetime
from decimal import Decimal

import pytest

from fuelops.errors import ValidationError
from fuelops.time_utils import TimeParseError, format_business, parse_business_datetime, to_utc_z
from fuelops.validation import parse_amount, parse_id, parse_page, require_fields


class TestParseAmount:
    def test_normalizes_to_cents(self):
        assert parse_amount("12.345", "q") == Decimal("12.35")
        assert parse_amount(7, "q") == Decimal("7.00")
        assert parse_amount(0.1, "q") == Decimal("0.10")

    @pytest.mark.parametrize("bad", [True, "abc", "NaN", "Infinity", -1, "99999999999"])
    def test_rejects(self, bad):
        with pytest.raises(ValidationError):
            parse_amount(bad, "q")

    def test_zero_handling(self):
        assert parse_amount(0, "q") == Decimal("0.00")
        with pytest.raises(ValidationError):
            parse_amount(0, "q", allow_zero=False)
        assert parse_amount(None, "q", required=False) is None

    def test_sub_cent_value_rounding_to_zero_is_not_positive(self):
        assert parse_amount("0.004", "q") == Decimal("0.00")
        with pytest.raises(ValidationError, match="greater than zero"):
            parse_amount("0.004", "q", allow_zero=False)
        assert parse_amount("0.005", "q", allow_zero=False) == Decimal("0.01")


def test_parse_id():
    assert parse_id("12", "id") == 12
    for bad in ("1.5", 1.0, False, 0, "x"):
        with pytest.raises(ValidationError):
            parse_id(bad, "id")


def test_parse_page_clamps():
    assert parse_page(None, None) == (1, 50)
    assert parse_page("0", "10000") == (1, 500)
    with pytest.raises(ValidationError):
        parse_page("one", None)


def test_require_fields_lists_all_missing():
    with pytest.raises(ValidationError) as exc:
        require_fields({"a": 1, "b": ""}, "a", "b", "c")
    assert str(exc.value) == "Missing required fields: b, c"
    with pytest.raises(ValidationError):
        require_fields(["not", "a", "dict"])


class TestBusinessTime:
    def test_date_only(self):
        assert parse_business_datetime("2024-02-15") == datetime(2024, 2, 15)
        assert parse_business_datetime("2024-02-15", end_of_day=True) == datetime(2024, 2, 15, 23, 59, 59)
        assert parse_business_datetime(date(2024, 2, 15)) == datetime(2024, 2, 15)

    def test_naive_is_business_time(self):
        assert parse_business_datetime("2024-02-15 10:30:00") == datetime(2024, 2, 15, 10, 30)

    def test_offsets_convert_to_business_time(self):
        # default offset is UTC+3
        assert parse_business_datetime("2024-02-15T22:00:00Z") == datetime(2024, 2, 16, 1, 0)
        assert parse_business_datetime("2024-02-15T10:00:00+01:00") == datetime(2024, 2, 15, 12, 0)

    def test_invalid(self):
        with pytest.raises(TimeParseError):
            parse_business_datetime("2024-13-01")
        with pytest.raises(TimeParseError):
            parse_business_datetime(12345)
        assert parse_business_datetime("  ") is None

    def test_formatting(self):
        assert format_business(datetime(2024, 2, 15, 8, 5, 1)) == "2024-02-15 08:05:01"
        assert to_utc_z(datetime(2024, 2, 15, 8, 5, 1, 999)) == "2024-02-15T08:05:01Z"

"""
Date Handling Tests
===================
Parsing, formatting and validation of record dates.
"""

import pytest

from citekit.records.dates import (
    format_date,
    is_valid_date,
    is_valid_date_or_range,
    parse_date,
    parse_month,
    parse_year_month,
)
from citekit.records.schema import DateValue, PartialDate


class TestValidation:
    @pytest.mark.unit
    @pytest.mark.parametrize("value", ["", None, "2020", "2020-03", "2020-3", "2020-03-09", "2020-02-29"])
    def test_valid_single_dates(self, value):
        assert is_valid_date(value)

    @pytest.mark.unit
    @pytest.mark.parametrize("value", ["2020-13", "2020-00", "2020-01-32", "20", "March 2020", "2020-01/2021-06"])
    def test_invalid_single_dates(self, value):
        assert not is_valid_date(value)

    @pytest.mark.unit
    def test_range_only_valid_for_range_validator(self):
        assert is_valid_date_or_range("2020-01/2021-06")
        assert is_valid_date_or_range("2020")
        assert not is_valid_date_or_range("2020-01/2021-13")
        assert not is_valid_date_or_range("2020/")


class TestParsing:
    @pytest.mark.unit
    def test_year_only(self):
        value = parse_date("2020")
        assert value == DateValue(start=PartialDate(2020))
        assert format_date(value) == "2020"

    @pytest.mark.unit
    def test_iso_with_time_suffix(self):
        assert parse_date("2021-06-03T10:00:00Z").to_string() == "2021-06-03"

    @pytest.mark.unit
    def test_month_names(self):
        assert parse_date("March 2020").to_string() == "2020-03"
        assert parse_date("9 Mar 2020").to_string() == "2020-03-09"
        assert parse_date("Sept. 4, 2019").to_string() == "2019-09-04"

    @pytest.mark.unit
    def test_range(self):
        value = parse_date("2021-06-01/2021-06-03")
        assert value.is_range
        assert value.to_string() == "2021-06-01/2021-06-03"
        assert value.to_dict() == {"date-parts": [[2021, 6, 1], [2021, 6, 3]]}

    @pytest.mark.unit
    def test_open_range_keeps_start(self):
        assert parse_date("2020/").to_string() == "2020"
        assert parse_date("2020/..").to_string() == "2020"

    @pytest.mark.unit
    @pytest.mark.parametrize("value", ["", "   ", None, "2020-13", "2021-02-32", "2020-00-10", "someday", "2020/never"])
    def test_unparsable_returns_none(self, value):
        assert parse_date(value) is None

    @pytest.mark.unit
    def test_leap_day(self):
        assert parse_date("2020-02-29").to_string() == "2020-02-29"

    @pytest.mark.unit
    def test_day_checked_against_format_only(self):
        assert parse_date("2021-02-29").to_string() == "2021-02-29"
        assert parse_date("31 April 2020").to_string() == "2020-04-31"


class TestYearMonth:
    @pytest.mark.unit
    def test_year_and_abbreviated_month(self):
        assert parse_year_month("2020", "mar").to_string() == "2020-03"

    @pytest.mark.unit
    def test_unknown_month_keeps_year(self):
        assert parse_year_month("2020", "spring").to_string() == "2020"

    @pytest.mark.unit
    def test_year_embedded_in_text(self):
        assert parse_year_month("circa 1999", None).to_string() == "1999"

    @pytest.mark.unit
    def test_missing_year(self):
        assert parse_year_month("", "mar") is None
        assert parse_year_month("n.d.", None) is None


@pytest.mark.unit
@pytest.mark.parametrize(
    "text,expected",
    [("1", 1), ("12", 12), ("13", None), ("jan", 1), ("February", 2), ("sep.", 9), ("ma", None), ("", None)],
)
def test_parse_month(text, expected):
    assert parse_month(text) == expected


@pytest.mark.unit
def test_partial_date_requires_month_for_day():
    with pytest.raises(ValueError):
        PartialDate(2020, None, 3)

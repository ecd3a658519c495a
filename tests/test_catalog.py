from datetime import date, datetime

import pytest

from iris_mobility.data.catalog import (
    DEFAULT_CATALOG,
    build_catalog,
    day_descriptor,
    resolve_range,
)
from iris_mobility.errors import RangeNotFound


def test_default_catalog_spans_sep_and_oct_2017():
    assert len(DEFAULT_CATALOG) == 61
    assert DEFAULT_CATALOG[0].date == "2017-09-01"
    assert DEFAULT_CATALOG[-1].date == "2017-10-31"


def test_day_descriptor_labels_and_file_id():
    d = day_descriptor(date(2017, 9, 5))
    assert d.date == "2017-09-05"
    assert d.label == "Sep 5"
    assert d.file_id == "2017-09-05.csv"


def test_weekly_returns_last_seven_days_ascending():
    days = resolve_range("weekly")
    assert len(days) == 7
    assert [d.date for d in days] == [
        "2017-10-25", "2017-10-26", "2017-10-27", "2017-10-28",
        "2017-10-29", "2017-10-30", "2017-10-31",
    ]


def test_daily_and_monthly_sizes():
    assert [d.date for d in resolve_range("daily")] == ["2017-10-31"]
    monthly = resolve_range("monthly")
    assert len(monthly) == 30
    assert monthly[0].date == "2017-10-02"


def test_all_returns_whole_catalog():
    assert resolve_range("all") == DEFAULT_CATALOG


def test_selector_is_case_insensitive():
    assert resolve_range(" Weekly ") == resolve_range("weekly")


def test_explicit_date_forms():
    expected = ("2017-09-15",)
    assert tuple(d.date for d in resolve_range("2017-09-15")) == expected
    assert tuple(d.date for d in resolve_range(date(2017, 9, 15))) == expected
    assert tuple(d.date for d in resolve_range(datetime(2017, 9, 15, 13, 0))) == expected


def test_date_outside_catalog_raises():
    with pytest.raises(RangeNotFound):
        resolve_range("2018-01-01")


def test_unknown_selector_raises_value_error():
    with pytest.raises(ValueError):
        resolve_range("fortnightly")


def test_short_catalog_returns_what_exists():
    catalog = build_catalog(date(2017, 9, 1), date(2017, 9, 3))
    assert len(resolve_range("weekly", catalog)) == 3


def test_empty_catalog_gives_empty_range():
    assert resolve_range("weekly", ()) == ()


def test_build_catalog_rejects_inverted_bounds():
    with pytest.raises(ValueError):
        build_catalog(date(2017, 9, 2), date(2017, 9, 1))

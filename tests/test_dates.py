"""Tests for the date helpers used by the miners."""

from __future__ import annotations

from datetime import datetime, timezone
from types import SimpleNamespace

import pytest

from deckreports.mining.dates import (
    parse_absolute_date,
    parse_relative_date,
    sort_by_posted_at,
    truncate_to_utc_midnight,
)

NOW = datetime(2024, 7, 15, 13, 45, 30, tzinfo=timezone.utc)


class TestParseRelativeDate:
    def test_two_months_ago_shifts_calendar_month(self) -> None:
        assert parse_relative_date("2 months ago", now=NOW) == datetime(
            2024, 5, 15, 13, 45, 30, tzinfo=timezone.utc
        )

    def test_month_shift_crosses_year(self) -> None:
        now = datetime(2024, 2, 10, tzinfo=timezone.utc)
        assert parse_relative_date("3 months ago", now=now) == datetime(
            2023, 11, 10, tzinfo=timezone.utc
        )

    def test_month_shift_clamps_day(self) -> None:
        now = datetime(2024, 3, 31, tzinfo=timezone.utc)
        assert parse_relative_date("1 month ago", now=now) == datetime(
            2024, 2, 29, tzinfo=timezone.utc
        )

    def test_years(self) -> None:
        assert parse_relative_date("1 year ago", now=NOW).year == 2023
        assert parse_relative_date("1 year ago", now=NOW).month == 7

    @pytest.mark.parametrize(
        "text, expected",
        [
            ("30 seconds ago", datetime(2024, 7, 15, 13, 45, 0, tzinfo=timezone.utc)),
            ("5 minutes ago", datetime(2024, 7, 15, 13, 40, 30, tzinfo=timezone.utc)),
            ("1 hour ago", datetime(2024, 7, 15, 12, 45, 30, tzinfo=timezone.utc)),
            ("3 days ago", datetime(2024, 7, 12, 13, 45, 30, tzinfo=timezone.utc)),
            ("2 weeks ago", datetime(2024, 7, 1, 13, 45, 30, tzinfo=timezone.utc)),
        ],
    )
    def test_fixed_length_units(self, text: str, expected: datetime) -> None:
        assert parse_relative_date(text, now=NOW) == expected

    def test_case_insensitive_and_embedded(self) -> None:
        assert parse_relative_date("Posted 3 DAYS AGO", now=NOW) == datetime(
            2024, 7, 12, 13, 45, 30, tzinfo=timezone.utc
        )

    @pytest.mark.parametrize("text", ["yesterday", "a week ago", "", "3 fortnights ago"])
    def test_non_matching_returns_none(self, text: str) -> None:
        assert parse_relative_date(text, now=NOW) is None

    def test_defaults_to_current_time(self) -> None:
        before = datetime.now(timezone.utc)
        result = parse_relative_date("1 day ago")
        after = datetime.now(timezone.utc)
        assert result is not None
        assert (before - result).days in (0, 1)
        assert result < after


class TestTruncateToUtcMidnight:
    def test_drops_time_of_day(self) -> None:
        assert truncate_to_utc_midnight(NOW) == datetime(2024, 7, 15, tzinfo=timezone.utc)

    def test_naive_datetime_is_treated_as_utc(self) -> None:
        assert truncate_to_utc_midnight(datetime(2024, 1, 2, 23, 59)) == datetime(
            2024, 1, 2, tzinfo=timezone.utc
        )


class TestParseAbsoluteDate:
    @pytest.mark.parametrize(
        "text", ["March 1, 2024", "Mar 1, 2024", "1 March 2024", "2024-03-01", "  March 1, 2024 "]
    )
    def test_formats(self, text: str) -> None:
        assert parse_absolute_date(text) == datetime(2024, 3, 1, tzinfo=timezone.utc)

    @pytest.mark.parametrize(
        "text", ["Mar 1 2024", "1 Mar 2024", "March 1st, 2024", "1st March 2024", "March 1 2024"]
    )
    def test_loose_formats(self, text: str) -> None:
        assert parse_absolute_date(text) == datetime(2024, 3, 1, tzinfo=timezone.utc)

    @pytest.mark.parametrize(
        "text, expected",
        [
            ("March 1, 2024 10:00 am", datetime(2024, 3, 1, 10, 0, tzinfo=timezone.utc)),
            ("March 1, 2024 12:15 AM", datetime(2024, 3, 1, 0, 15, tzinfo=timezone.utc)),
            ("Mar 1 2024 at 2:30 p.m.", datetime(2024, 3, 1, 14, 30, tzinfo=timezone.utc)),
            ("2024-03-01 14:30:05", datetime(2024, 3, 1, 14, 30, 5, tzinfo=timezone.utc)),
        ],
    )
    def test_trailing_time(self, text: str, expected: datetime) -> None:
        assert parse_absolute_date(text) == expected

    @pytest.mark.parametrize("text", ["March 1, 2024 25:00", "March 32, 2024"])
    def test_out_of_range_returns_none(self, text: str) -> None:
        assert parse_absolute_date(text) is None

    @pytest.mark.parametrize("text", ["", "sometime in spring", "2024/03/01"])
    def test_unparseable_returns_none(self, text: str) -> None:
        assert parse_absolute_date(text) is None


class TestSortByPostedAt:
    def test_dated_first_descending_then_undated_in_order(self) -> None:
        a = SimpleNamespace(name="A", posted_at=None)
        b = SimpleNamespace(name="B", posted_at=datetime(2024, 1, 1, tzinfo=timezone.utc))
        c = SimpleNamespace(name="C", posted_at=None)
        d = SimpleNamespace(name="D", posted_at=datetime(2024, 6, 1, tzinfo=timezone.utc))

        result = sort_by_posted_at([a, b, c, d])

        assert [r.name for r in result] == ["D", "B", "A", "C"]

    def test_ties_keep_relative_order(self) -> None:
        same = datetime(2024, 1, 1, tzinfo=timezone.utc)
        items = [SimpleNamespace(name=n, posted_at=same) for n in "xyz"]
        assert [r.name for r in sort_by_posted_at(items)] == ["x", "y", "z"]

    def test_custom_key(self) -> None:
        items = [{"d": 1}, {"d": None}, {"d": 3}]
        assert sort_by_posted_at(items, key=lambda i: i["d"]) == [{"d": 3}, {"d": 1}, {"d": None}]

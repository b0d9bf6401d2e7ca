"""Unit tests for timespan window generation."""

from datetime import datetime

import pytest

from topicsnap.errors import ConfigurationError
from topicsnap.models import Period
from topicsnap.periods import parse_period, period_windows, truncate_to_monday


class TestTruncate:
    def test_monday_is_kept(self) -> None:
        assert truncate_to_monday(datetime(2020, 1, 6, 15, 30)) == datetime(2020, 1, 6)

    def test_wednesday_goes_back(self) -> None:
        assert truncate_to_monday(datetime(2020, 1, 1)) == datetime(2019, 12, 30)


class TestPeriodWindows:
    def test_overall_is_topic_range(self) -> None:
        start, end = datetime(2020, 1, 1), datetime(2020, 3, 1)
        assert list(period_windows("overall", start, end)) == [(start, end)]

    def test_single_month(self) -> None:
        windows = list(period_windows(Period.MONTHLY, datetime(2020, 1, 1), datetime(2020, 2, 1)))
        assert windows == [(datetime(2020, 1, 1), datetime(2020, 2, 1))]

    def test_monthly_handles_month_lengths(self) -> None:
        windows = list(period_windows("monthly", datetime(2020, 1, 15), datetime(2020, 3, 10)))
        assert [w[0] for w in windows] == [
            datetime(2020, 1, 1),
            datetime(2020, 2, 1),
            datetime(2020, 3, 1),
        ]
        assert windows[-1][1] == datetime(2020, 4, 1)

    def test_weekly_windows_start_on_mondays(self) -> None:
        windows = list(period_windows("weekly", datetime(2020, 1, 1), datetime(2020, 1, 20)))
        assert windows[0][0] == datetime(2019, 12, 30)
        assert all(start.weekday() == 0 for start, _ in windows)
        assert len(windows) == 3

    def test_windows_are_contiguous(self) -> None:
        windows = list(period_windows("weekly", datetime(2020, 1, 1), datetime(2020, 3, 1)))
        for (_, end), (next_start, _) in zip(windows, windows[1:]):
            assert end == next_start

    def test_custom_uses_configured_ranges(self) -> None:
        custom = [
            (datetime(2020, 2, 1), datetime(2020, 2, 10)),
            (datetime(2020, 1, 5), datetime(2020, 1, 8)),
        ]
        windows = list(period_windows("custom", datetime(2020, 1, 1), datetime(2020, 3, 1), custom))
        assert windows == sorted(custom)

    def test_custom_without_ranges_is_empty(self) -> None:
        assert list(period_windows("custom", datetime(2020, 1, 1), datetime(2020, 3, 1))) == []


class TestParsePeriod:
    def test_known_period(self) -> None:
        assert parse_period("weekly") is Period.WEEKLY

    def test_unknown_period_raises(self) -> None:
        with pytest.raises(ConfigurationError):
            parse_period("daily")

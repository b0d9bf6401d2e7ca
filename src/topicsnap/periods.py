"""Turn a topic's date range and a period kind into concrete timespan windows."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from datetime import datetime, timedelta

from topicsnap.errors import ConfigurationError
from topicsnap.models import Period

logger = logging.getLogger(__name__)

Window = tuple[datetime, datetime]


def _midnight(d: datetime) -> datetime:
    return d.replace(hour=0, minute=0, second=0, microsecond=0)


def truncate_to_monday(d: datetime) -> datetime:
    """Return the latest Monday on or before *d*."""
    return _midnight(d) - timedelta(days=d.weekday())


def truncate_to_start_of_month(d: datetime) -> datetime:
    """Return the first day of the month containing *d*."""
    return _midnight(d).replace(day=1)


def parse_period(value: str | Period) -> Period:
    try:
        return Period(value)
    except ValueError:
        raise ConfigurationError(f"unknown period: '{value}'") from None


def period_windows(
    period: str | Period,
    start_date: datetime,
    end_date: datetime,
    custom_dates: Iterable[Window] = (),
) -> Iterator[Window]:
    """Yield ``(window_start, window_end)`` pairs covering the topic range.

    Weekly and monthly windows are aligned to calendar boundaries, so the
    first window may start before *start_date* and the last may end after
    *end_date*. ``custom`` windows come from *custom_dates*.
    """
    period = parse_period(period)

    if period is Period.OVERALL:
        yield start_date, end_date

    elif period is Period.WEEKLY:
        w_start = truncate_to_monday(start_date)
        while w_start < end_date:
            w_end = w_start + timedelta(days=7)
            yield w_start, w_end
            w_start = w_end

    elif period is Period.MONTHLY:
        m_start = truncate_to_start_of_month(start_date)
        while m_start < end_date:
            # 32 days always lands in the next month whatever its length
            m_end = truncate_to_start_of_month(m_start + timedelta(days=32))
            yield m_start, m_end
            m_start = m_end

    else:
        for c_start, c_end in sorted(custom_dates):
            yield c_start, c_end

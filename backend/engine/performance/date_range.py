"""Calendar-day expansion for report windows.

Every report indexes its columns against the ordered list of UTC calendar
days returned by :func:`expand_date_range`.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone

from engine.performance.errors import InvalidRange

DAY_FORMAT = "%Y-%m-%d"


def to_utc_day(value: date | datetime | str) -> date:
    """Normalize a date, datetime or ISO string to its UTC calendar day.

    Naive datetimes are taken to already be in UTC.
    """
    if isinstance(value, str):
        value = datetime.fromisoformat(value)
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value.date()
    return value


def format_day(value: date | datetime) -> str:
    """``YYYY-MM-DD`` label used in titles, headers and filenames."""
    return to_utc_day(value).strftime(DAY_FORMAT)


def expand_date_range(
    start: date | datetime | str,
    end: date | datetime | str,
) -> tuple[date, ...]:
    """Return every calendar day from *start* to *end*, inclusive.

    Raises
    ------
    InvalidRange
        If *end* falls on an earlier day than *start*.
    """
    first = to_utc_day(start)
    last = to_utc_day(end)
    if last < first:
        raise InvalidRange(first, last)

    span = (last - first).days
    return tuple(first + timedelta(days=offset) for offset in range(span + 1))


def resolve_report_window(
    specific_date: date | datetime | str | None = None,
    start: date | datetime | str | None = None,
    end: date | datetime | str | None = None,
    today: date | None = None,
) -> tuple[date, date]:
    """Pick the (start, end) window for a report request.

    An explicit start/end pair wins, then a specific date, then *today*
    (the current UTC day when not given).
    """
    if start is not None and end is not None:
        return to_utc_day(start), to_utc_day(end)
    if specific_date is not None:
        day = to_utc_day(specific_date)
        return day, day
    if today is None:
        today = datetime.now(timezone.utc).date()
    return today, today

"""Calendar-date helpers shared by the scheduler and its callers.

Every date that enters the scheduler goes through ``to_date``. It accepts a
``date``, a ``datetime`` or an ISO-8601 string and nothing else. Time of day
and timezone offset are dropped after conversion: a datetime contributes the
calendar date it carries in its own offset.

Aware datetimes are not shifted to a common zone first. Callers that mix
offsets should convert to one zone before passing values in, otherwise
``"2024-01-02T01:00:00+09:00"`` reads as January 2 even though it is
still January 1 in UTC.
"""

from datetime import date, datetime, timedelta


class InvalidDate(ValueError):
    """Raised when a value cannot be read as a calendar date."""


def to_date(value) -> date:
    """Calendar date of ``value``. Aware datetimes keep their own offset's day, not UTC's."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        try:
            return datetime.fromisoformat(text).date()
        except ValueError:
            raise InvalidDate(f"Not an ISO-8601 date: {value!r}") from None
    raise InvalidDate(f"Expected date, datetime or ISO-8601 string, got {type(value).__name__}")


def add_days(reference, days: int) -> date:
    """Calendar-day addition. Works on dates, so DST shifts never apply."""
    return to_date(reference) + timedelta(days=days)


def today() -> date:
    return date.today()

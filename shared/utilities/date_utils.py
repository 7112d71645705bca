"""
Date and time utility functions.

Wiki timestamps are stored as 14-digit UTC strings (YYYYMMDDHHMMSS) so that
lexical order matches chronological order.
"""
import re
from datetime import datetime, timedelta
from typing import Optional, Union
import pytz


TS_FORMAT = '%Y%m%d%H%M%S'

INFINITY_VALUES = ('infinite', 'indefinite', 'infinity', 'never')

_RELATIVE_UNITS = {
    'second': timedelta(seconds=1),
    'minute': timedelta(minutes=1),
    'hour': timedelta(hours=1),
    'day': timedelta(days=1),
    'week': timedelta(weeks=1),
    'month': timedelta(days=30),
    'year': timedelta(days=365),
}

_RELATIVE_PATTERN = re.compile(r'^(\d+)\s*(second|minute|hour|day|week|month|year)s?$')


def get_utc_now() -> datetime:
    """
    Get current time in UTC.

    Returns:
        Current timezone-aware UTC datetime
    """
    return datetime.now(pytz.utc)


def convert_to_utc(dt: datetime) -> datetime:
    """
    Convert datetime to UTC. Naive datetimes are assumed to already be UTC.

    Args:
        dt: Datetime to convert

    Returns:
        UTC datetime
    """
    if dt.tzinfo is None:
        return pytz.utc.localize(dt)
    return dt.astimezone(pytz.utc)


def to_timestamp(dt: Optional[datetime] = None) -> str:
    """
    Format a datetime as a 14-digit wiki timestamp.

    Args:
        dt: Datetime to format (default: current time)

    Returns:
        Timestamp string such as '20240101120000'
    """
    if dt is None:
        dt = get_utc_now()
    return convert_to_utc(dt).strftime(TS_FORMAT)


def parse_timestamp(value: Union[str, datetime]) -> datetime:
    """
    Parse a wiki timestamp, an ISO 8601 string or a datetime.

    Args:
        value: Value to parse

    Returns:
        UTC datetime

    Raises:
        ValueError: If the value is not a recognised timestamp
    """
    if isinstance(value, datetime):
        return convert_to_utc(value)

    text = value.strip()
    if re.match(r'^\d{14}$', text):
        return pytz.utc.localize(datetime.strptime(text, TS_FORMAT))

    if text.endswith('Z'):
        text = text[:-1] + '+00:00'
    return convert_to_utc(datetime.fromisoformat(text))


def is_infinity(expiry: Optional[str]) -> bool:
    """Check whether an expiry string means "never expires"."""
    return expiry is not None and expiry.strip().lower() in INFINITY_VALUES


def normalize_expiry(
    expiry: Union[str, datetime],
    now: Optional[datetime] = None
) -> Optional[str]:
    """
    Normalize a watch expiry into a 14-digit timestamp.

    Accepts infinity words, relative durations ('1 week', '3 days'),
    wiki timestamps and ISO 8601 strings.

    Args:
        expiry: Expiry value
        now: Reference time for relative durations (default: current time)

    Returns:
        Timestamp string, or None for an infinite expiry

    Raises:
        ValueError: If the expiry can't be parsed
    """
    if isinstance(expiry, str):
        if is_infinity(expiry):
            return None

        match = _RELATIVE_PATTERN.match(expiry.strip().lower())
        if match:
            base = convert_to_utc(now) if now else get_utc_now()
            return to_timestamp(base + int(match.group(1)) * _RELATIVE_UNITS[match.group(2)])

    return to_timestamp(parse_timestamp(expiry))

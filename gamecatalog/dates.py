"""Release-date helpers for games."""
import datetime
from typing import Dict, Optional, Tuple

_YEAR_ONLY_LIMIT = 10000
_SECONDS_THRESHOLD = 1000000000


def _from_timestamp(seconds: float) -> Optional[datetime.datetime]:
    try:
        return datetime.datetime.fromtimestamp(seconds, tz=datetime.timezone.utc)
    except (OverflowError, OSError, ValueError):
        return None


def create_release_date(value) -> Optional[Dict[str, Optional[int]]]:
    """Turn a remote release-date value into ``{'day', 'month', 'year'}``.

    Accepted inputs:

    * ``datetime.date`` / ``datetime.datetime``;
    * a bare year (``0 < value < 10000``), giving ``day`` and ``month`` of
      ``None``;
    * a Unix timestamp in seconds.  Values between 10000 and 1e9 are tried as
      seconds first and fall back to milliseconds when the resulting year is
      outside 1970-2100.  Larger values beyond the seconds range are treated
      as milliseconds.

    Timestamps are interpreted in UTC.  Anything else returns ``None``.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime.date):
        return {'day': value.day, 'month': value.month, 'year': value.year}
    if not isinstance(value, (int, float)):
        return None

    if value > _SECONDS_THRESHOLD:
        date = _from_timestamp(value)
        if date is None:
            date = _from_timestamp(value / 1000)
    elif 0 < value < _YEAR_ONLY_LIMIT:
        return {'day': None, 'month': None, 'year': int(value)}
    elif _YEAR_ONLY_LIMIT <= value <= _SECONDS_THRESHOLD:
        date = _from_timestamp(value)
        if date is None or not 1970 <= date.year <= 2100:
            date = _from_timestamp(value / 1000)
    else:
        date = _from_timestamp(value / 1000)

    if date is None:
        return None
    return {'day': date.day, 'month': date.month, 'year': date.year}


def _as_int(value) -> int:
    try:
        return int(value) if value else 0
    except (TypeError, ValueError):
        return 0


def release_sort_key(game: Optional[Dict]) -> Tuple[int, int, int]:
    """Return ``(year, month, day)`` for ordering, with missing parts as 0.

    A game without a year sorts as ``(0, 0, 0)`` regardless of month/day.
    """
    if not game:
        return (0, 0, 0)
    year = _as_int(game.get('year'))
    if not year:
        return (0, 0, 0)
    return (year, _as_int(game.get('month')), _as_int(game.get('day')))

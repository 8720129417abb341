"""
Date helpers shared by the resolver, the mutations and the CLI.

Dates travel through the application as ``YYYY-MM-DD`` strings; these helpers
convert between that key and pendulum dates, and lay out month grids.
"""

from datetime import date as _date
from typing import List, Optional, Tuple, Union

import pendulum
from pendulum import Date

DateLike = Union[str, _date]

DATE_FORMAT = "YYYY-MM-DD"


def parse_date(value: DateLike) -> Date:
    """
    Turn a ``YYYY-MM-DD`` string or a date into a pendulum Date.

    Raises:
        ValueError: If the string is not a valid calendar date
    """
    if isinstance(value, str):
        try:
            return pendulum.from_format(value.strip(), DATE_FORMAT).date()
        except Exception as exc:
            raise ValueError(f"Invalid date '{value}', expected YYYY-MM-DD") from exc

    # Also strips the time part off datetimes
    return pendulum.date(value.year, value.month, value.day)


def date_key(value: DateLike) -> str:
    """Canonical ``YYYY-MM-DD`` key for a date."""
    return parse_date(value).format(DATE_FORMAT)


def weekday_index(value: DateLike) -> int:
    """Weekday with Sunday as 0 and Saturday as 6."""
    return parse_date(value).isoweekday() % 7


def today(timezone: str = "UTC") -> Date:
    """Current date in the given timezone."""
    return pendulum.now(timezone).date()


def is_past(value: DateLike, reference: DateLike) -> bool:
    """True if the date lies strictly before ``reference`` (today stays bookable)."""
    return parse_date(value) < parse_date(reference)


def month_days(year: int, month: int) -> List[Date]:
    """Every date of the month, first to last."""
    current = pendulum.date(year, month, 1)
    last = current.end_of("month")

    days: List[Date] = []
    while current <= last:
        days.append(current)
        current = current.add(days=1)

    return days


def month_grid(year: int, month: int) -> List[List[Optional[Date]]]:
    """
    Lay out a month as Sunday-first weeks.

    Cells before the 1st and after the last day are ``None``.

    Example (May 2024 starts on a Wednesday):
        [[None, None, None, 1, 2, 3, 4], [5, ...], ...]
    """
    days = month_days(year, month)
    cells: List[Optional[Date]] = [None] * weekday_index(days[0])
    cells.extend(days)

    while len(cells) % 7:
        cells.append(None)

    return [cells[i:i + 7] for i in range(0, len(cells), 7)]


def shift_month(year: int, month: int, amount: int) -> Tuple[int, int]:
    """Move ``amount`` months forward (or back when negative)."""
    index = year * 12 + (month - 1) + amount
    return index // 12, index % 12 + 1

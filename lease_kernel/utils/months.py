"""
Calendar month helpers for reporting windows.

Month filters are expressed as half-open date ranges
``[first day, first day of next month)`` so they translate into plain
indexed comparisons on every database backend.
"""

from datetime import MAXYEAR, MINYEAR, date

from lease_kernel.exceptions import InvalidPeriodError


def _validate(month: int, year: int) -> None:
    # the following month must still be a representable date
    if not 1 <= month <= 12 or not MINYEAR <= year < MAXYEAR:
        raise InvalidPeriodError(month, year)


def month_range(month: int, year: int) -> tuple[date, date]:
    """
    Return (first day of the month, first day of the following month).

    Raises:
        InvalidPeriodError: If month is outside 1..12 or year is out of range.
    """
    _validate(month, year)
    first = date(year, month, 1)
    if month == 12:
        return first, date(year + 1, 1, 1)
    return first, date(year, month + 1, 1)


def previous_month(month: int, year: int) -> tuple[int, int]:
    """(month, year) of the month before the given one."""
    _validate(month, year)
    if month == 1:
        return 12, year - 1
    return month - 1, year


def resolve_month(month: int | None, year: int | None, today: date) -> tuple[int, int]:
    """Fill in a missing month or year from ``today``."""
    return (
        month if month is not None else today.month,
        year if year is not None else today.year,
    )

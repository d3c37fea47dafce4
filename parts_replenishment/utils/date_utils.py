# parts_replenishment/utils/date_utils.py
from datetime import date, datetime
from typing import Optional, Union
import calendar


def month_key(value: Union[date, datetime, str]) -> str:
    """Get the YYYY-MM bucket key of a date.

    Args:
        value: Date, datetime or ISO date string

    Returns:
        Month key such as '2024-03'
    """
    if isinstance(value, str):
        return value[:7]
    return f"{value.year:04d}-{value.month:02d}"


def month_key_to_date(key: str) -> date:
    """Get the first day of the month identified by a YYYY-MM key."""
    year, month = key.split('-')[:2]
    return date(int(year), int(month), 1)


def calendar_month(key: str) -> str:
    """Get the two-digit calendar month ('MM') of a YYYY-MM key."""
    return key.split('-')[1]


def add_months(start_date: date, months: int) -> date:
    """Add a number of months to a date, clamping the day to the month end.

    Args:
        start_date: Starting date
        months: Number of months to add (may be negative)

    Returns:
        Shifted date
    """
    month_index = start_date.month - 1 + months
    year = start_date.year + month_index // 12
    month = month_index % 12 + 1
    day = min(start_date.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def months_ago(months: int, as_of: Optional[date] = None) -> date:
    """Get the date a number of months before as_of (default today)."""
    if as_of is None:
        as_of = date.today()
    return add_months(as_of, -months)


def days_between(start_date: date, end_date: date) -> int:
    """Get the number of days between two dates.

    Args:
        start_date: Start date
        end_date: End date

    Returns:
        Number of days (negative when end_date precedes start_date)
    """
    return (end_date - start_date).days


def to_base36(number: int) -> str:
    """Encode a non-negative integer in lowercase base 36."""
    alphabet = '0123456789abcdefghijklmnopqrstuvwxyz'
    if number == 0:
        return '0'
    digits = []
    while number > 0:
        number, remainder = divmod(number, 36)
        digits.append(alphabet[remainder])
    return ''.join(reversed(digits))

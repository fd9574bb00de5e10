"""
YYYY-MM month keys.

Keys sort lexicographically in chronological order, so plain string
comparison is the ordering; these helpers give the successor/predecessor
and the first calendar day used as the survival cutoff.
"""
from datetime import date
from typing import Union


def month_key(value: Union[date, str]) -> str:
    """Month key containing a date or an ISO date/timestamp string"""
    if isinstance(value, date):
        return f"{value.year:04d}-{value.month:02d}"
    return value[:7]


def month_start(key: str) -> date:
    """First calendar day of the month"""
    year, month = key.split("-")
    return date(int(year), int(month), 1)


def next_month(key: str) -> str:
    start = month_start(key)
    if start.month == 12:
        return f"{start.year + 1:04d}-01"
    return f"{start.year:04d}-{start.month + 1:02d}"


def previous_month(key: str) -> str:
    start = month_start(key)
    if start.month == 1:
        return f"{start.year - 1:04d}-12"
    return f"{start.year:04d}-{start.month - 1:02d}"


def month_label(key: str) -> str:
    """Short upper-case month name for axis labels, e.g. "JUL" """
    return month_start(key).strftime("%b").upper()

"""Utility functions for the credit engine.

This module provides helpers for parsing user input into Python data types and
for handling dates: ISO date parsing, month arithmetic with end-of-month
clamping and the conversion of timestamps into business calendar dates.
"""

from __future__ import annotations

from datetime import date, datetime, tzinfo
from decimal import Decimal, InvalidOperation, getcontext
import calendar
from typing import Iterable, Optional, Union

getcontext().prec = 28  # increase decimal precision to avoid rounding errors

DateLike = Union[date, datetime, str]


def parse_iso_date(value: str) -> date:
    """Parse a ``YYYY-MM-DD`` string (an ISO timestamp is accepted too).

    Raises
    ------
    ValueError
        If the string is not a valid calendar date.
    """
    try:
        text = value.strip()
        if "T" in text or " " in text:
            return parse_iso_datetime(text).date()
        return date.fromisoformat(text[:10])
    except (AttributeError, ValueError) as exc:
        raise ValueError(f"Invalid date string: {value}") from exc


def parse_iso_datetime(value: str) -> datetime:
    """Parse an ISO timestamp, accepting a trailing ``Z`` for UTC."""
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError as exc:
        raise ValueError(f"Invalid timestamp: {value}") from exc


def add_months(dt: date, months: int) -> date:
    """Return a new date a number of months after ``dt``.

    The day of the month is clamped to the last valid day if needed (e.g.,
    adding one month to Jan 31 yields Feb 28 or 29).
    """
    return month_day(dt, months, dt.day)


def month_day(dt: date, months: int, day: int) -> date:
    """Return ``day`` of the month ``months`` after the month of ``dt``.

    Days past the end of the target month are clamped to its last day rather
    than spilling into the following month.
    """
    year = dt.year + (dt.month - 1 + months) // 12
    month = (dt.month - 1 + months) % 12 + 1
    day = min(day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def to_decimal(value) -> Decimal:
    """Convert a number or numeric string into a ``Decimal``.

    Floats go through ``str`` so that ``0.1`` becomes ``Decimal("0.1")``.
    Commas are stripped from strings. Raises ``ValueError`` on bad input.
    """
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise ValueError(f"Invalid numeric value: {value}")
    try:
        if isinstance(value, str):
            return Decimal(value.replace(",", "").strip())
        return Decimal(str(value))
    except (InvalidOperation, TypeError) as exc:
        raise ValueError(f"Invalid numeric value: {value}") from exc


def to_business_date(value: DateLike, tz: Optional[tzinfo] = None) -> date:
    """Return the business calendar date of ``value``.

    Aware datetimes are first converted into ``tz``; naive datetimes and plain
    dates are taken as already expressed in business time.
    """
    if isinstance(value, str):
        value = parse_iso_datetime(value) if ("T" in value or " " in value.strip()) else parse_iso_date(value)
    if isinstance(value, datetime):
        if value.tzinfo is not None and tz is not None:
            value = value.astimezone(tz)
        return value.date()
    return value


def parse_holidays(values: Iterable[DateLike]) -> frozenset:
    """Normalise a collection of holiday dates or ``YYYY-MM-DD`` strings."""
    return frozenset(to_business_date(v) for v in values)

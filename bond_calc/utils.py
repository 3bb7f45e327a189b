"""Utility functions for the bond calculators.

This module provides helpers for turning user input into ``Decimal`` values,
rounding to cents, handling year-month dates and formatting figures the way
the calculator pages display them (``R1,234.56`` and ``"3 years, 2 months"``).
"""

from __future__ import annotations

import calendar
from datetime import date
from decimal import ROUND_DOWN, ROUND_HALF_UP, Decimal, InvalidOperation, getcontext
from typing import Optional, Union

from .exceptions import InvalidInput

getcontext().prec = 28  # increase decimal precision to avoid rounding errors

CENT = Decimal("0.01")

Number = Union[Decimal, int, float, str]


def to_decimal(value: Number, field: Optional[str] = None) -> Decimal:
    """Convert ``value`` into a ``Decimal``.

    Floats go through ``str`` so that ``0.1125 / 12`` becomes
    ``Decimal("0.009375")`` rather than its binary expansion. Strings may
    contain thousands separators and spaces (``"1 200 000"``, ``"900,000"``).
    """
    if isinstance(value, bool):
        raise InvalidInput(f"Invalid numeric value: {value!r}", field)
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, int):
        result = Decimal(value)
    else:
        cleaned = str(value).replace(",", "").replace(" ", "").strip()
        try:
            result = Decimal(cleaned)
        except InvalidOperation as exc:
            raise InvalidInput(f"Invalid numeric value: {value!r}", field) from exc
    if not result.is_finite():
        raise InvalidInput(f"Invalid numeric value: {value!r}", field)
    return result


def round_currency(value: Decimal) -> Decimal:
    """Round to the nearest cent, halves away from zero."""
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def floor_currency(value: Decimal) -> Decimal:
    """Truncate to whole cents (never rounds up)."""
    return value.quantize(CENT, rounding=ROUND_DOWN)


def parse_amount(value: str) -> Decimal:
    """Parse a currency amount with optional ``k``/``m`` suffixes.

    Accepts plain numbers ("500000", "R1,250,000") and shorthand such as
    "500k" (500 000) or "1.2m" (1 200 000).
    """
    text = value.strip().lower().replace(",", "").replace(" ", "")
    if text.startswith("r"):
        text = text[1:]
    factor = Decimal(1)
    if text.endswith("k"):
        factor = Decimal(1_000)
        text = text[:-1]
    elif text.endswith("m"):
        factor = Decimal(1_000_000)
        text = text[:-1]
    try:
        return Decimal(text) * factor
    except InvalidOperation as exc:
        raise InvalidInput(f"Invalid amount: {value}") from exc


def parse_year_month(ym: str) -> date:
    """Parse a YYYY-MM string into a ``date`` (first day of month).

    Raises
    ------
    InvalidInput
        If the string is not a valid year-month.
    """
    parts = ym.split("-")
    try:
        if len(parts) < 2:
            raise ValueError(ym)
        return date(int(parts[0]), int(parts[1]), 1)
    except ValueError as exc:
        raise InvalidInput(f"Invalid year-month string: {ym}") from exc


def add_months(dt: date, months: int) -> date:
    """Return a new date a number of months after ``dt``.

    The day of the month is clamped to the last valid day if needed (e.g.,
    adding one month to Jan 31 yields Feb 28 or 29).
    """
    year = dt.year + (dt.month - 1 + months) // 12
    month = (dt.month - 1 + months) % 12 + 1
    day = min(dt.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def format_currency(amount: Decimal) -> str:
    """Format an amount in rand with thousands separators: ``R10,492.56``."""
    rounded = round_currency(amount)
    sign = "-" if rounded < 0 else ""
    return f"{sign}R{abs(rounded):,.2f}"


def format_duration(months: int) -> str:
    """Render a month count as ``"N years, M months"``."""
    years, rest = divmod(months, 12)
    year_word = "year" if years == 1 else "years"
    month_word = "month" if rest == 1 else "months"
    if rest == 0:
        return f"{years} {year_word}"
    if years == 0:
        return f"{rest} {month_word}"
    return f"{years} {year_word}, {rest} {month_word}"

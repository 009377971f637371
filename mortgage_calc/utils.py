"""Utility functions for the mortgage calculator.

This module provides helpers for coercing user input into ``Decimal`` values,
validating engine parameters and labelling payment periods with calendar
dates. Validation failures raise :class:`InvalidParameterError`, a subclass of
``ValueError`` so callers that already guard against ``ValueError`` keep
working.
"""

from __future__ import annotations

import calendar
from datetime import date, timedelta
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP, getcontext
from typing import Optional, Union

getcontext().prec = 28  # increase decimal precision to avoid rounding errors

Number = Union[Decimal, int, float, str]

CENT = Decimal("0.01")


class InvalidParameterError(ValueError):
    """Raised when an engine input is outside its valid domain."""


def to_decimal(value: Number, name: str = "value") -> Decimal:
    """Convert ``value`` into a ``Decimal``.

    Floats go through ``str`` first so ``6.5`` becomes ``Decimal("6.5")``
    rather than its binary expansion. Strings may contain thousands
    separators.
    """
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            if isinstance(value, str):
                value = value.replace(",", "").strip()
            result = Decimal(str(value))
        except (InvalidOperation, ValueError, TypeError) as exc:
            raise InvalidParameterError(f"Invalid numeric value for {name}: {value!r}") from exc
    if not result.is_finite():
        raise InvalidParameterError(f"{name} must be finite, got {value!r}")
    return result


def require_non_negative(value: Number, name: str) -> Decimal:
    """Return ``value`` as a ``Decimal`` or raise if it is negative."""
    result = to_decimal(value, name)
    if result < 0:
        raise InvalidParameterError(f"{name} must be non-negative, got {result}")
    return result


def require_non_negative_int(value: int, name: str) -> int:
    """Return ``value`` as an ``int`` or raise if it is negative or fractional."""
    try:
        result = int(value)
    except (TypeError, ValueError) as exc:
        raise InvalidParameterError(f"{name} must be an integer, got {value!r}") from exc
    if result != value and not isinstance(value, str):
        raise InvalidParameterError(f"{name} must be a whole number, got {value!r}")
    if result < 0:
        raise InvalidParameterError(f"{name} must be non-negative, got {result}")
    return result


def require_positive_int(value: int, name: str) -> int:
    """Return ``value`` as an ``int`` or raise if it is below one."""
    result = require_non_negative_int(value, name)
    if result < 1:
        raise InvalidParameterError(f"{name} must be at least 1, got {result}")
    return result


def periodic_rate(annual_rate_percent: Decimal, periods_per_year: int) -> Decimal:
    """Convert an annual nominal percentage into a per-period decimal rate."""
    return annual_rate_percent / Decimal(100) / Decimal(periods_per_year)


def round_money(value: Decimal) -> Decimal:
    """Round a money amount to cents using commercial rounding."""
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def parse_year_month(ym: str) -> date:
    """Parse a YYYY-MM string into a ``date`` object (first day of month).

    Raises
    ------
    ValueError
        If the string is not a valid year-month.
    """
    try:
        parts = ym.split("-")
        if len(parts) < 2:
            raise ValueError
        return date(int(parts[0]), int(parts[1]), 1)
    except (AttributeError, TypeError, ValueError) as exc:
        raise ValueError(f"Invalid year-month string: {ym}") from exc


def add_months(dt: date, months: int) -> date:
    """Return a new date a number of months after ``dt``.

    The day of the month is clamped to the last valid day if needed (e.g.,
    adding one month to Jan 31 yields Feb 28 or 29).
    """
    year = dt.year + (dt.month - 1 + months) // 12
    month = (dt.month - 1 + months) % 12 + 1
    day = min(dt.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def period_date(start: Optional[date], period: int, periods_per_year: int) -> Optional[date]:
    """Calendar date of a 1-based payment period, or ``None`` without a start.

    Monthly periods land on the same day of each month; bi-weekly periods are
    fourteen days apart.
    """
    if start is None:
        return None
    if periods_per_year == 26:
        return start + timedelta(days=14 * (period - 1))
    return add_months(start, period - 1)

"""Utility functions for loan plans.

This module provides helpers for parsing user input into Python data types and
for handling dates: adding months with month-end clamping, parsing and
formatting calendar dates, and coercing monetary amounts to whole units.
"""

from __future__ import annotations

import calendar
import math
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

from .exceptions import InvalidAmount, InvalidTerms

ISO_FORMAT = "%Y-%m-%d"
DISPLAY_FORMAT = "%d-%m-%y"


def add_months(dt: date, months: int) -> date:
    """Return a new date a number of months after ``dt``.

    The day of the month is clamped to the last valid day if needed (e.g.,
    adding one month to Jan 31 yields Feb 28 or 29).
    """
    year = dt.year + (dt.month - 1 + months) // 12
    month = (dt.month - 1 + months) % 12 + 1
    day = min(dt.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def parse_iso_date(value: Any, field: str) -> date:
    """Parse a ``YYYY-MM-DD`` string (or pass through a ``date``).

    Raises
    ------
    InvalidTerms
        If the value is not a valid calendar date.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        raise InvalidTerms(field, "expected a YYYY-MM-DD date", value)
    try:
        return datetime.strptime(value.strip(), ISO_FORMAT).date()
    except ValueError as exc:
        raise InvalidTerms(field, "expected a YYYY-MM-DD date", value) from exc


def format_iso(dt: date) -> str:
    return dt.strftime(ISO_FORMAT)


def format_display(dt: date) -> str:
    """Format a date as ``DD-MM-YY`` for printed schedules."""
    return dt.strftime(DISPLAY_FORMAT)


def to_decimal(value: Any) -> Decimal:
    """Convert a number or numeric string to a finite ``Decimal``.

    Raises ``ValueError`` for booleans, non-numeric input, NaN and infinities.
    """
    if isinstance(value, bool) or value is None:
        raise ValueError(f"Invalid numeric value: {value!r}")
    if isinstance(value, float) and not math.isfinite(value):
        raise ValueError(f"Invalid numeric value: {value!r}")
    try:
        result = Decimal(str(value).strip()) if isinstance(value, str) else Decimal(str(value))
    except InvalidOperation as exc:
        raise ValueError(f"Invalid numeric value: {value!r}") from exc
    if not result.is_finite():
        raise ValueError(f"Invalid numeric value: {value!r}")
    return result


def round_half_up(value: Decimal) -> int:
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def to_money_int(value: Any, field: str = "monto") -> int:
    """Coerce ``value`` to whole monetary units, rounding half up."""
    try:
        return round_half_up(to_decimal(value))
    except ValueError as exc:
        raise InvalidAmount(value, field) from exc


def to_rate(value: Any, field: str) -> float:
    """Coerce a rate given as a decimal fraction; must be finite and >= 0."""
    try:
        rate = to_decimal(value)
    except ValueError as exc:
        raise InvalidTerms(field, "must be a finite number", value) from exc
    if rate < 0:
        raise InvalidTerms(field, "must not be negative", value)
    return float(rate)


def to_installment_count(value: Any, field: str = "cuotas") -> int:
    """Coerce an installment count; integral floats and numeric strings are accepted."""
    try:
        count = to_decimal(value)
    except ValueError as exc:
        raise InvalidTerms(field, "must be a positive integer", value) from exc
    if count != count.to_integral_value() or count <= 0:
        raise InvalidTerms(field, "must be a positive integer", value)
    return int(count)


def parse_amount(value: str) -> float:
    """Parse a numeric string with optional suffixes.

    Accepts plain numbers ("500000") and shorthand with ``k``/``m`` suffixes
    (e.g., "500k" meaning 500_000, "1.5M" meaning 1_500_000).
    """
    value = value.strip().lower().replace(",", "")
    factor = 1.0
    if value.endswith("k"):
        factor = 1_000.0
        value = value[:-1]
    elif value.endswith("m"):
        factor = 1_000_000.0
        value = value[:-1]
    try:
        return float(value) * factor
    except ValueError as exc:
        raise InvalidAmount(value) from exc


def parse_percent(value: str, field: str = "tasaMensual") -> float:
    """Parse a rate entered as "8", "8%" or "0.08" into a decimal fraction.

    A trailing ``%`` or a value above 1 marks a percentage.
    """
    value = value.strip()
    is_percent = value.endswith("%")
    if is_percent:
        value = value[:-1]
    try:
        p = float(value.replace(",", "."))
    except ValueError as exc:
        raise InvalidTerms(field, "must be a number or percentage", value) from exc
    if is_percent or p > 1:
        p = p / 100
    return p

# Inventory Metrics - Monthly financial KPIs engine for inventory businesses
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Period helpers for Inventory Metrics.

This module defines a Period value object and the helpers used to derive
monthly periods (start/end of month, previous month) and to validate the
month requested for a metrics run.
"""

import logging
from calendar import monthrange
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Optional

from .errors import ErrorCode, Result

logger = logging.getLogger(__name__)


@dataclass
class Period:
    """Represents a reporting period with a human-readable label."""

    start: date
    end: date
    label: str


def _today() -> date:
    """Return today's date as a date object (isolated for easier testing)."""
    return datetime.today().date()


def _as_date(value: Any) -> Optional[date]:
    """
    Coerce a date-like value into a date.

    Accepted inputs: date, datetime, 'YYYY-MM' and ISO 'YYYY-MM-DD' strings.
    Returns None if the value cannot be interpreted as a date.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        raw = value.strip()
        try:
            if len(raw) == 7:
                return date.fromisoformat(f"{raw}-01")
            return datetime.fromisoformat(raw).date()
        except ValueError:
            return None
    return None


def start_of_month(value: date) -> date:
    """First day of the month containing ``value``."""
    return value.replace(day=1)


def end_of_month(value: date) -> date:
    """Last day of the month containing ``value``."""
    last_day = monthrange(value.year, value.month)[1]
    return value.replace(day=last_day)


def previous_month(value: date) -> date:
    """First day of the month preceding the month containing ``value``."""
    if value.month == 1:
        return date(value.year - 1, 12, 1)
    return date(value.year, value.month - 1, 1)


def month_period(value: date) -> Period:
    """Full calendar month containing ``value``."""
    start = start_of_month(value)
    return Period(start=start, end=end_of_month(value), label=start.strftime("%Y-%m"))


def parse_month(value: str) -> date:
    """
    Parse a CLI month argument ('YYYY-MM' or 'YYYY-MM-DD').

    Returns the first day of the month.

    Raises:
        ValueError: if the value is not a valid month.
    """
    parsed = _as_date(value)
    if parsed is None:
        raise ValueError(f"Invalid month: {value!r}. Expected YYYY-MM.")
    return start_of_month(parsed)


def validate_target_month(
    target_month: Any,
    business_created_at: Any,
    today: Optional[date] = None,
) -> Result[date]:
    """
    Validate the month requested for a metrics run.

    Rules:
        - the target must be a valid date (date, datetime or ISO string),
        - it must not be the current calendar month (still open),
        - it must not be in the future,
        - the business creation date must be valid,
        - the target must not precede the month the business was created.

    Returns:
        Result carrying the first day of the target month, or BAD_REQUEST.
    """
    target = _as_date(target_month)
    if target is None:
        return Result.failure(ErrorCode.BAD_REQUEST, f"Invalid month: {target_month!r}")

    month = start_of_month(target)
    current_month = start_of_month(today or _today())

    if month == current_month:
        return Result.failure(
            ErrorCode.BAD_REQUEST, "The current month is still open."
        )
    if month > current_month:
        return Result.failure(ErrorCode.BAD_REQUEST, "The month is in the future.")

    created = _as_date(business_created_at)
    if created is None:
        logger.warning("Invalid business creation date: %r", business_created_at)
        return Result.failure(
            ErrorCode.BAD_REQUEST,
            f"Invalid business creation date: {business_created_at!r}",
        )
    if month < start_of_month(created):
        return Result.failure(
            ErrorCode.BAD_REQUEST,
            f"The month precedes the business creation ({created.isoformat()}).",
        )

    return Result.success(month)

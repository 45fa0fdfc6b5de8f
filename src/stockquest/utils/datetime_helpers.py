"""
Standardized Date/Time Handling Utilities

This module provides centralized functions for date/time operations to ensure:
1. All timestamps are timezone-aware UTC
2. Day and period boundaries are computed the same way everywhere
3. Business logic reads "now" from an injectable clock, never the wall clock

CRITICAL RULES:
- Never call datetime.now() inside gamification logic, ask the Clock
- Day boundaries are UTC calendar days
- Weekly periods are ISO weeks (Monday start), monthly periods are calendar months
"""

import logging
from datetime import date, datetime, timedelta, timezone
from typing import Optional, Protocol

logger = logging.getLogger(__name__)

WEEKLY = "weekly"
MONTHLY = "monthly"
ALL_TIME = "all_time"

PERIODS = (WEEKLY, MONTHLY, ALL_TIME)


def now_utc() -> datetime:
    """
    Get current datetime in UTC (timezone-aware)

    Returns:
        Current datetime in UTC with timezone info
    """
    return datetime.now(timezone.utc)


def to_utc(dt: datetime) -> datetime:
    """
    Convert a datetime to UTC

    Naive datetimes are assumed to already be UTC.
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


class Clock(Protocol):
    """Source of the current time"""

    def now(self) -> datetime:
        ...


class SystemClock:
    """Clock backed by the system wall clock"""

    def now(self) -> datetime:
        return now_utc()


class FrozenClock:
    """
    Clock that only moves when told to

    Example:
        clock = FrozenClock(datetime(2024, 3, 4, 9, 0, tzinfo=timezone.utc))
        clock.advance(days=1)
    """

    def __init__(self, current: Optional[datetime] = None):
        self._current = to_utc(current) if current else now_utc()

    def now(self) -> datetime:
        return self._current

    def set(self, current: datetime) -> None:
        self._current = to_utc(current)

    def advance(self, **kwargs) -> datetime:
        """Move forward by a timedelta built from kwargs (days=1, hours=3, ...)"""
        self._current = self._current + timedelta(**kwargs)
        return self._current


def today(clock: Clock) -> date:
    """UTC calendar date for the clock's current time"""
    return to_utc(clock.now()).date()


def start_of_week(day: date) -> date:
    """Monday of the ISO week containing day"""
    return day - timedelta(days=day.weekday())


def period_key(period: str, moment: datetime) -> str:
    """
    Key identifying the period bucket a moment falls into

    Args:
        period: weekly, monthly or all_time
        moment: Point in time (converted to UTC)

    Returns:
        "2024-W10" for weekly, "2024-03" for monthly, "all" for all_time
    """
    moment = to_utc(moment)

    if period == WEEKLY:
        iso_year, iso_week, _ = moment.isocalendar()
        return f"{iso_year}-W{iso_week:02d}"
    if period == MONTHLY:
        return f"{moment.year}-{moment.month:02d}"
    if period == ALL_TIME:
        return "all"

    raise ValueError(f"Unknown period: {period}")

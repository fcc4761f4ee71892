"""
Extraction Window Resolution
============================
Works out the next date range to request from the C2C API using the
store itself as the checkpoint: the newest persisted ``CreateTime`` in
Orders. There is no separate state file, so a re-run after a crash simply
resumes from whatever was committed.

The window end is never later than yesterday (UTC midnight). The API's
data for the current day is still moving, and a window that would have
to start after that point means the store is caught up.
"""

import calendar
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError

from src.database.models import Order
from src.etl.transform import datetime_to_ms

logger = logging.getLogger(__name__)

# How far back an empty store starts
BOOTSTRAP_MONTHS = 11


class WindowResolutionError(Exception):
    """The checkpoint query failed; extraction cannot continue."""


@dataclass(frozen=True)
class Window:
    """Half-open UTC range [start, end) for one extraction pass."""

    start: datetime
    end: datetime

    @property
    def start_ms(self) -> int:
        return datetime_to_ms(self.start)

    @property
    def end_ms(self) -> int:
        return datetime_to_ms(self.end)

    def __str__(self):
        return f"{self.start:%Y-%m-%d %H:%M:%S} -> {self.end:%Y-%m-%d %H:%M:%S} UTC"


def utc_midnight(value: datetime) -> datetime:
    return value.replace(hour=0, minute=0, second=0, microsecond=0)


def yesterday_utc(now: datetime = None) -> datetime:
    """Start of yesterday in UTC."""
    if now is None:
        now = datetime.now(timezone.utc)
    return utc_midnight(now - timedelta(days=1))


def subtract_months(value: datetime, months: int) -> datetime:
    """Calendar month arithmetic, clamping the day (Mar 31 - 1 month = Feb 28/29)."""
    month_index = value.year * 12 + (value.month - 1) - months
    year, month = divmod(month_index, 12)
    month += 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)


def latest_create_time(engine) -> Optional[datetime]:
    """
    Newest Orders.CreateTime in the store, as an aware UTC datetime.

    Raises:
        WindowResolutionError: if the store cannot be queried
    """
    try:
        with engine.connect() as conn:
            latest = conn.execute(select(func.max(Order.create_time))).scalar()
    except SQLAlchemyError as e:
        raise WindowResolutionError(
            f"Could not read the latest order timestamp: {e}"
        ) from e

    if latest is None:
        return None
    # SQLite hands back naive datetimes; everything stored is UTC
    if latest.tzinfo is None:
        return latest.replace(tzinfo=timezone.utc)
    return latest.astimezone(timezone.utc)


def resolve_window(engine, minimum_span_days: int, now: datetime = None) -> Optional[Window]:
    """
    Compute the next extraction window.

    Args:
        engine: SQLAlchemy engine for the order store
        minimum_span_days: Span of the window in days (the widen counter)
        now: Current time override (for testing)

    Returns:
        Window, or None when the store is already caught up to yesterday

    Raises:
        WindowResolutionError: if the checkpoint read fails
    """
    if minimum_span_days < 1:
        raise ValueError("minimum_span_days must be at least 1")
    if now is None:
        now = datetime.now(timezone.utc)
    elif now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)

    latest = latest_create_time(engine)

    if latest is None:
        start = utc_midnight(subtract_months(now, BOOTSTRAP_MONTHS))
        logger.info("Empty store, bootstrapping from %s", start.strftime('%Y-%m-%d'))
    else:
        # Skip the boundary record that is already stored
        start = latest + timedelta(seconds=1)
        logger.info("Latest stored order at %s", latest.strftime('%Y-%m-%d %H:%M:%S'))

    end = start + timedelta(days=minimum_span_days)

    yesterday = yesterday_utc(now)
    if end > yesterday:
        end = yesterday

    if start > end:
        logger.info("Orders are up to date through yesterday, nothing to extract")
        return None

    window = Window(start, end)
    logger.info("Next window (%d day span): %s", minimum_span_days, window)
    return window

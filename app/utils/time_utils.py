# Copyright (c) 2025 Shiladitya Mallick
# This file is part of the Hankki - Daily Meal Check-in project.
# Licensed under the MIT License - see the LICENSE file for details.

from datetime import datetime, date, time, timedelta
from typing import Optional

import pytz


def utc_now() -> datetime:
    return datetime.now(pytz.utc)


def ensure_aware(ts: Optional[datetime]) -> Optional[datetime]:
    """Naive timestamps are treated as UTC (how the database stores them)."""
    if ts is None:
        return None
    if ts.tzinfo is None:
        return pytz.utc.localize(ts)
    return ts.astimezone(pytz.utc)


def to_naive_utc(ts: Optional[datetime]) -> Optional[datetime]:
    if ts is None:
        return None
    return ensure_aware(ts).replace(tzinfo=None)


def local_date(ts: datetime, tz) -> date:
    return ensure_aware(ts).astimezone(tz).date()


def local_hour(ts: datetime, tz) -> int:
    return ensure_aware(ts).astimezone(tz).hour


def start_of_local_day(ts: datetime, tz) -> datetime:
    """Local midnight of the day containing ts, returned in UTC."""
    midnight = tz.localize(datetime.combine(local_date(ts, tz), time.min))
    return midnight.astimezone(pytz.utc)


def local_day_bounds(day: date, tz):
    start = tz.localize(datetime.combine(day, time.min)).astimezone(pytz.utc)
    end = tz.localize(datetime.combine(day + timedelta(days=1), time.min)).astimezone(pytz.utc)
    return start, end


def month_bounds(year: int, month: int, tz):
    first = date(year, month, 1)
    next_first = date(year + 1, 1, 1) if month == 12 else date(year, month + 1, 1)
    start = tz.localize(datetime.combine(first, time.min)).astimezone(pytz.utc)
    end = tz.localize(datetime.combine(next_first, time.min)).astimezone(pytz.utc)
    return start, end

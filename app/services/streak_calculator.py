# Copyright (c) 2025 Shiladitya Mallick
# This file is part of the Hankki - Daily Meal Check-in project.
# Licensed under the MIT License - see the LICENSE file for details.

from datetime import datetime
from typing import Optional

from app.utils.time_utils import local_date


def compute_streak(last_check_in: Optional[datetime], current_streak: int, now: datetime, tz) -> int:
    """
    Returns the streak after a check-in at `now`.

    Days are compared as local calendar dates in `tz`:
    - first check-in ever -> 1
    - same day -> unchanged
    - the next day -> +1
    - anything else -> 1
    """
    if last_check_in is None:
        return 1

    current_streak = max(current_streak or 0, 0)
    gap_days = (local_date(now, tz) - local_date(last_check_in, tz)).days

    if gap_days == 0:
        return current_streak
    if gap_days == 1:
        return current_streak + 1
    return 1

# Copyright (c) 2025 Shiladitya Mallick
# This file is part of the Hankki - Daily Meal Check-in project.
# Licensed under the MIT License - see the LICENSE file for details.

import logging
from datetime import date, datetime, timedelta
from typing import Optional

from app.stores.base import CheckInStore
from app.utils.time_utils import ensure_aware, local_date, local_day_bounds

logger = logging.getLogger(__name__)


def mark_missed_check_ins(store: CheckInStore, now: datetime, tz, day: Optional[date] = None) -> int:
    """
    Appends a system-generated missed entry for every user with no entry on `day`
    (default: yesterday in local time). Users who have never checked in, or whose
    account was created after that day ended, are skipped. Streaks are not touched.
    """
    now = ensure_aware(now)
    day = day or (local_date(now, tz) - timedelta(days=1))
    start, end = local_day_bounds(day, tz)

    already_covered = store.user_ids_with_entry_between(start, end)
    marked = 0

    with store.transaction():
        for user in store.list_users():
            if user.id in already_covered or user.last_check_in is None:
                continue
            if user.created_at is not None and user.created_at >= end:
                continue
            store.add_check_in(
                user_id=user.id,
                response=None,
                responded_at=None,
                scheduled_at=start,
                is_missed=True,
            )
            marked += 1

    logger.info(f"📝 Marked {marked} missed check-in(s) for {day.isoformat()}")
    return marked

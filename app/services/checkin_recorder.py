# Copyright (c) 2025 Shiladitya Mallick
# This file is part of the Hankki - Daily Meal Check-in project.
# Licensed under the MIT License - see the LICENSE file for details.

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from app.schemas.records import CHECK_IN_RESPONSES
from app.services.streak_calculator import compute_streak
from app.stores.base import CheckInStore
from app.utils.errors import ValidationError, UserNotFoundError, PersistenceError
from app.utils.time_utils import ensure_aware, start_of_local_day

logger = logging.getLogger(__name__)

# Attempts at the conditional streak write before giving up
MAX_STREAK_WRITE_ATTEMPTS = 3


@dataclass
class CheckInResult:
    success: bool
    new_streak: int
    response: str
    checked_at: datetime


@dataclass
class TodayCheckIn:
    has_checked_in: bool
    response: Optional[str] = None
    responded_at: Optional[datetime] = None


def _validate(user_id, response):
    if not user_id or not str(user_id).strip():
        raise ValidationError("userId is required")
    if response not in CHECK_IN_RESPONSES:
        raise ValidationError(f"Invalid response value: {response!r}")


def record_check_in(store: CheckInStore, user_id: str, response: str, now: datetime, tz) -> CheckInResult:
    """
    Appends a check-in event and moves the user's streak forward.

    Event insert and streak update commit together. The streak write is
    conditional on the last_check_in we read, so overlapping check-ins
    re-read and recompute instead of overwriting each other.
    """
    _validate(user_id, response)
    now = ensure_aware(now)

    with store.transaction():
        if store.get_user(user_id) is None:
            raise UserNotFoundError(user_id)

        # 1️⃣ Event row
        store.add_check_in(
            user_id=user_id,
            response=response,
            responded_at=now,
            scheduled_at=now,
            is_missed=False,
        )

        for attempt in range(1, MAX_STREAK_WRITE_ATTEMPTS + 1):
            # 2️⃣ Current streak state
            user = store.get_user(user_id)
            if user is None:
                raise UserNotFoundError(user_id)

            # 3️⃣ New streak
            new_streak = compute_streak(user.last_check_in, user.streak, now, tz)

            # 4️⃣ Conditional write
            if store.update_streak(user_id, user.last_check_in, new_streak, now):
                break
            logger.warning(f"⚠️ Streak write raced for user {user_id} (attempt {attempt}/{MAX_STREAK_WRITE_ATTEMPTS})")
        else:
            raise PersistenceError(f"Could not update streak for user {user_id}")

    logger.info(f"🍚 Check-in recorded for {user_id}: {response} (streak {user.streak} → {new_streak})")
    return CheckInResult(success=True, new_streak=new_streak, response=response, checked_at=now)


def get_today_check_in(store: CheckInStore, user_id: str, now: datetime, tz) -> TodayCheckIn:
    if not user_id or not str(user_id).strip():
        raise ValidationError("userId is required")

    latest = store.latest_check_in_since(user_id, start_of_local_day(now, tz))
    if latest is None:
        return TodayCheckIn(has_checked_in=False)
    return TodayCheckIn(has_checked_in=True, response=latest.response, responded_at=latest.responded_at)

# Copyright (c) 2025 Shiladitya Mallick
# This file is part of the Hankki - Daily Meal Check-in project.
# Licensed under the MIT License - see the LICENSE file for details.

import asyncio
import logging
import random
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

from app.config import Settings
from app.schemas.records import UserRecord
from app.stores.base import CheckInStore
from app.utils.errors import HankkiError
from app.utils.push_sender import WebPushSender, PushResult
from app.utils.time_utils import ensure_aware, local_hour, start_of_local_day

logger = logging.getLogger(__name__)


@dataclass
class ReminderSummary:
    active: bool
    current_hour: int
    total: int = 0
    sent: int = 0
    failed: int = 0


def in_reminder_window(now: datetime, settings: Settings) -> bool:
    hour = local_hour(now, settings.tz)
    return settings.reminder_start_hour <= hour <= settings.reminder_end_hour


def build_reminder_payload(user: UserRecord, settings: Settings) -> dict:
    return {
        "title": f"{settings.app_brand} - did you eat today? 🍳",
        "body": f"{user.nickname}, have you had a meal today?",
        "icon": "/icons/icon-192x192.png",
        "badge": "/icons/badge-72x72.png",
        "tag": "check-in-reminder",
        "data": {"url": "/", "userId": user.id},
    }


def pick_reminder_targets(store: CheckInStore, settings: Settings, now: datetime,
                          rng: random.Random) -> List[UserRecord]:
    """Subscribed users without a check-in today, each kept with probability reminder_sample_rate."""
    subscribed = store.users_with_push_subscription()
    checked_in = store.checked_in_user_ids_since(start_of_local_day(now, settings.tz))
    pending = [u for u in subscribed if u.id not in checked_in]
    # Spread reminders across the window instead of firing them all at once
    return [u for u in pending if rng.random() < settings.reminder_sample_rate]


async def _push_all(users: List[UserRecord], sender: WebPushSender, settings: Settings):
    semaphore = asyncio.Semaphore(max(settings.push_max_concurrency, 1))

    async def _one(user: UserRecord) -> PushResult:
        async with semaphore:
            payload = build_reminder_payload(user, settings)
            # pywebpush is blocking
            return await asyncio.to_thread(sender.send, user.push_subscription, payload)

    return await asyncio.gather(*[_one(u) for u in users], return_exceptions=True)


async def run_reminders(store: CheckInStore, sender: WebPushSender, settings: Settings, now: datetime,
                        rng: Optional[random.Random] = None) -> ReminderSummary:
    now = ensure_aware(now)
    rng = rng or random.Random()
    summary = ReminderSummary(active=in_reminder_window(now, settings), current_hour=local_hour(now, settings.tz))

    if not summary.active:
        logger.info(f"⏰ Hour {summary.current_hour} is outside the reminder window. Skipping.")
        return summary

    targets = pick_reminder_targets(store, settings, now, rng)
    summary.total = len(targets)
    if not targets:
        return summary

    outcomes = await _push_all(targets, sender, settings)

    for user, outcome in zip(targets, outcomes):
        if isinstance(outcome, BaseException):
            logger.error(f"🛑 Reminder crashed for user {user.id}: {outcome}", exc_info=outcome)
            outcome = PushResult(success=False)

        try:
            if outcome.expired:
                logger.info(f"🧹 Clearing expired push subscription for user {user.id}")
                store.set_push_subscription(user.id, None)
            store.add_notification_log(user.id, "reminder", now, outcome.success)
            store.commit()
        except HankkiError as e:
            store.rollback()
            logger.error(f"🛑 Could not log reminder for user {user.id}: {e.message}")

        if outcome.success:
            summary.sent += 1
        else:
            summary.failed += 1

    logger.info(f"🔔 Reminders sent: {summary.sent}/{summary.total}")
    return summary

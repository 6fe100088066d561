# Copyright (c) 2025 Shiladitya Mallick
# This file is part of the Hankki - Daily Meal Check-in project.
# Licensed under the MIT License - see the LICENSE file for details.


import asyncio
import logging
import random
from datetime import datetime
from typing import Optional

from app.config import Settings
from app.services.reminder_scheduler import run_reminders, ReminderSummary
from app.stores.base import StoreFactory
from app.utils.push_sender import WebPushSender
from app.utils.time_utils import utc_now

logger = logging.getLogger("cron")


async def send_check_in_reminders(factory: StoreFactory, sender: WebPushSender, settings: Settings,
                                  now: Optional[datetime] = None,
                                  rng: Optional[random.Random] = None) -> ReminderSummary:
    with factory.session() as store:
        return await run_reminders(store, sender, settings, now or utc_now(), rng)


def reminder_cron(factory: StoreFactory, sender: WebPushSender, settings: Settings):
    try:
        summary = asyncio.run(send_check_in_reminders(factory, sender, settings))
        if summary.active:
            logger.info(f"🔔 Reminder run: sent={summary.sent} failed={summary.failed} total={summary.total}")
    except Exception as e:
        logger.error(f"🛑 Reminder run failed: {e}", exc_info=True)

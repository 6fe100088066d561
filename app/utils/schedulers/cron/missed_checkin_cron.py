# Copyright (c) 2025 Shiladitya Mallick
# This file is part of the Hankki - Daily Meal Check-in project.
# Licensed under the MIT License - see the LICENSE file for details.


import logging
from datetime import datetime
from typing import Optional

from app.config import Settings
from app.services.missed_checkin_marker import mark_missed_check_ins
from app.stores.base import StoreFactory
from app.utils.time_utils import utc_now

logger = logging.getLogger("cron")


def mark_missed_check_ins_job(factory: StoreFactory, settings: Settings, now: Optional[datetime] = None) -> int:
    with factory.session() as store:
        return mark_missed_check_ins(store, now or utc_now(), settings.tz)


def missed_checkin_cron(factory: StoreFactory, settings: Settings):
    try:
        mark_missed_check_ins_job(factory, settings)
    except Exception as e:
        logger.error(f"🛑 Missed check-in marking failed: {e}", exc_info=True)

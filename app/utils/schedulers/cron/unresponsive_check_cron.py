# Copyright (c) 2025 Shiladitya Mallick
# This file is part of the Hankki - Daily Meal Check-in project.
# Licensed under the MIT License - see the LICENSE file for details.


import asyncio
import logging
import time
from datetime import datetime
from typing import Optional

from app.config import Settings
from app.services.sms_dispatcher import SmsDispatcher
from app.services.unresponsive_scanner import run_unresponsive_scan, ScanSummary
from app.stores.base import StoreFactory
from app.utils.time_utils import utc_now

logger = logging.getLogger("cron")


async def check_unresponsive_users(factory: StoreFactory, dispatcher: SmsDispatcher, settings: Settings,
                                   now: Optional[datetime] = None) -> ScanSummary:
    with factory.session() as store:
        return await run_unresponsive_scan(store, dispatcher, settings, now or utc_now())


def unresponsive_check_cron(factory: StoreFactory, dispatcher: SmsDispatcher, settings: Settings):
    start = time.time()
    logger.info("🚨 Starting unresponsive user scan...")
    try:
        summary = asyncio.run(check_unresponsive_users(factory, dispatcher, settings))
        duration = round(time.time() - start, 2)
        logger.info(
            f"✅ Unresponsive scan completed in {duration} sec. "
            f"total={summary.total} succeeded={summary.succeeded} failed={summary.failed}"
        )
    except Exception as e:
        logger.error(f"🛑 Unresponsive scan failed: {e}", exc_info=True)

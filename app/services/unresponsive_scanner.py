# Copyright (c) 2025 Shiladitya Mallick
# This file is part of the Hankki - Daily Meal Check-in project.
# Licensed under the MIT License - see the LICENSE file for details.

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import List, Optional

from app.config import Settings
from app.schemas.records import UserRecord
from app.services.sms_dispatcher import SmsDispatcher, SmsResult, PROVIDER_NONE
from app.stores.base import CheckInStore
from app.utils.errors import ValidationError, UserNotFoundError, HankkiError
from app.utils.time_utils import ensure_aware, start_of_local_day

logger = logging.getLogger(__name__)


@dataclass
class AlertOutcome:
    user_id: str
    success: bool
    provider: str = PROVIDER_NONE
    error: Optional[str] = None


@dataclass
class ScanSummary:
    total: int = 0
    succeeded: int = 0
    failed: int = 0
    results: List[AlertOutcome] = field(default_factory=list)


def build_alert_message(nickname: str, settings: Settings) -> str:
    return (
        f"[{settings.app_brand}] {nickname} has not responded for "
        f"{settings.unresponsive_threshold_hours} hours. Please check on them."
    )


def find_alert_candidates(store: CheckInStore, settings: Settings, now: datetime) -> List[UserRecord]:
    # SCAN
    cutoff = now - timedelta(hours=settings.unresponsive_threshold_hours)
    unresponsive = store.find_unresponsive_users(cutoff, require_guardian=True)

    # FILTER_ALREADY_ALERTED (failed attempts count too)
    alerted = store.alerted_user_ids_since(start_of_local_day(now, settings.tz))
    return [u for u in unresponsive if u.id not in alerted]


async def dispatch_with_retry(dispatcher: SmsDispatcher, phone: str, message: str, settings: Settings) -> SmsResult:
    """Escalation-path send with exponential backoff on failed deliveries."""
    attempts = max(settings.sms_max_attempts, 1)
    result = SmsResult(success=False, provider=PROVIDER_NONE)
    for attempt in range(attempts):
        result = await dispatcher.send(phone, message, kind="emergency")
        if result.success:
            return result
        if attempt < attempts - 1:
            delay = settings.sms_backoff_base ** attempt  # 1s → 2s → 4s
            logger.warning(f"[SMS Retry {attempt + 1}/{attempts}] via {result.provider}, next try in {delay}s")
            await asyncio.sleep(delay)
    logger.error(f"🛑 All {attempts} SMS attempts failed for {phone}")
    return result


async def _dispatch_all(users: List[UserRecord], dispatcher: SmsDispatcher, settings: Settings):
    semaphore = asyncio.Semaphore(max(settings.sms_max_concurrency, 1))

    async def _one(user: UserRecord):
        async with semaphore:
            message = build_alert_message(user.nickname, settings)
            result = await dispatch_with_retry(dispatcher, user.guardian_phone, message, settings)
            return message, result

    # return_exceptions keeps one failed task from cancelling its siblings
    return await asyncio.gather(*[_one(u) for u in users], return_exceptions=True)


def _log_alert(store: CheckInStore, user: UserRecord, message: str, success: bool, now: datetime) -> bool:
    try:
        store.add_emergency_alert(
            user_id=user.id,
            guardian_phone=user.guardian_phone,
            message=message,
            sent_at=now,
            success=success,
        )
        store.commit()
        return True
    except HankkiError as e:
        store.rollback()
        logger.error(f"🛑 Could not log emergency alert for user {user.id}: {e.message}")
        return False


async def run_unresponsive_scan(store: CheckInStore, dispatcher: SmsDispatcher, settings: Settings,
                                now: datetime) -> ScanSummary:
    """
    One escalation pass: SCAN → FILTER_ALREADY_ALERTED → DISPATCH → LOG.

    Per-user failures are isolated and only show up in the summary counts.
    """
    now = ensure_aware(now)
    candidates = find_alert_candidates(store, settings, now)
    summary = ScanSummary(total=len(candidates))

    if not candidates:
        logger.info("✅ No unresponsive users to alert.")
        return summary

    logger.info(f"🚨 {len(candidates)} unresponsive user(s) to alert")

    # DISPATCH
    outcomes = await _dispatch_all(candidates, dispatcher, settings)

    # LOG
    for user, outcome in zip(candidates, outcomes):
        if isinstance(outcome, BaseException):
            logger.error(f"🛑 Alert dispatch crashed for user {user.id}: {outcome}", exc_info=outcome)
            message = build_alert_message(user.nickname, settings)
            result = SmsResult(success=False, provider=PROVIDER_NONE)
            error = str(outcome)
        else:
            message, result = outcome
            error = None

        logged = _log_alert(store, user, message, result.success, now)
        success = result.success and logged
        if not logged:
            error = error or "alert log failed"

        summary.results.append(AlertOutcome(user_id=user.id, success=success, provider=result.provider, error=error))
        if success:
            summary.succeeded += 1
        else:
            summary.failed += 1

    logger.info(f"📊 Escalation done: {summary.succeeded}/{summary.total} succeeded, {summary.failed} failed")
    return summary


async def send_manual_alert(store: CheckInStore, dispatcher: SmsDispatcher, settings: Settings, user_id: str,
                            now: datetime) -> AlertOutcome:
    """Operator-triggered alert for one user. Skips the scan and same-day suppression."""
    now = ensure_aware(now)
    user = store.get_user(user_id)
    if user is None:
        raise UserNotFoundError(user_id)
    if not user.has_guardian:
        raise ValidationError(f"User {user_id} has no guardian phone")

    message = build_alert_message(user.nickname, settings)
    result = await dispatcher.send(user.guardian_phone, message, kind="emergency")

    logged = _log_alert(store, user, message, result.success, now)
    logger.info(f"🛎️ Manual alert for user {user_id}: success={result.success} via {result.provider}")
    return AlertOutcome(
        user_id=user.id,
        success=result.success and logged,
        provider=result.provider,
        error=None if logged else "alert log failed",
    )

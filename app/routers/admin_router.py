# Copyright (c) 2025 Shiladitya Mallick
# This file is part of the Hankki - Daily Meal Check-in project.
# Licensed under the MIT License - see the LICENSE file for details.

from datetime import timedelta

from fastapi import APIRouter, Depends, Query

from app.config import Settings
from app.dependencies import get_store, get_app_settings, get_sms_dispatcher, get_clock
from app.schemas.responses import unresponsive_user, emergency_alert
from app.services.sms_dispatcher import SmsDispatcher
from app.services.unresponsive_scanner import send_manual_alert
from app.stores.base import CheckInStore
from app.utils.auth_utils import require_admin

router = APIRouter(prefix="/api/admin", tags=["Admin"])


# ---------------------- 🕵️ UNRESPONSIVE USERS ----------------------
@router.get("/unresponsive")
def list_unresponsive(
    hours: int = Query(48, ge=1, le=24 * 30),
    store: CheckInStore = Depends(get_store),
    clock=Depends(get_clock),
    user_data: dict = Depends(require_admin)
):
    cutoff = clock() - timedelta(hours=hours)
    users = store.find_unresponsive_users(cutoff, require_guardian=False)
    return [unresponsive_user(u) for u in users]


# ---------------------- 📋 RECENT ALERTS ----------------------
@router.get("/alerts")
def recent_alerts(
    limit: int = Query(20, ge=1, le=200),
    store: CheckInStore = Depends(get_store),
    user_data: dict = Depends(require_admin)
):
    return [emergency_alert(a) for a in store.list_recent_alerts(limit)]


# ---------------------- 🛎️ MANUAL ALERT ----------------------
@router.post("/alerts/{user_id}")
async def manual_alert(
    user_id: str,
    store: CheckInStore = Depends(get_store),
    settings: Settings = Depends(get_app_settings),
    dispatcher: SmsDispatcher = Depends(get_sms_dispatcher),
    clock=Depends(get_clock),
    user_data: dict = Depends(require_admin)
):
    outcome = await send_manual_alert(store, dispatcher, settings, user_id, clock())
    return {
        "success": outcome.success,
        "provider": outcome.provider,
        "message": "Emergency alert sent" if outcome.success else "Emergency alert failed",
    }

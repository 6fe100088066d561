# Copyright (c) 2025 Shiladitya Mallick
# This file is part of the Hankki - Daily Meal Check-in project.
# Licensed under the MIT License - see the LICENSE file for details.

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request

from app.config import Settings
from app.dependencies import get_store, get_app_settings, get_clock
from app.schemas.checkin_schemas import CheckInRequest
from app.schemas.responses import check_in_entry, iso
from app.services.character_stage import describe_character
from app.services.checkin_recorder import record_check_in, get_today_check_in
from app.stores.base import CheckInStore
from app.utils.auth_utils import require_token, ensure_token_user_match
from app.utils.errors import ValidationError
from app.utils.rate_limit_utils import limiter, checkin_rate_limit
from app.utils.time_utils import month_bounds

router = APIRouter(prefix="/api/check-in", tags=["Check-in"])


# ---------------------- 🍚 SUBMIT CHECK-IN ----------------------
@router.post("")
@limiter.limit(checkin_rate_limit)
def submit_check_in(
    request: Request,
    payload: CheckInRequest,
    store: CheckInStore = Depends(get_store),
    settings: Settings = Depends(get_app_settings),
    clock=Depends(get_clock),
    user_data: dict = Depends(require_token)
):
    if payload.user_id:
        ensure_token_user_match(user_data["sub"], payload.user_id)

    result = record_check_in(store, payload.user_id, payload.response, clock(), settings.tz)

    return {
        "success": result.success,
        "newStreak": result.new_streak,
        "response": result.response,
        "checkedAt": iso(result.checked_at),
        "character": describe_character(result.new_streak),
    }


# ---------------------- 📅 TODAY'S STATUS ----------------------
@router.get("")
def today_check_in(
    user_id: Optional[str] = Query(None, alias="userId"),
    store: CheckInStore = Depends(get_store),
    settings: Settings = Depends(get_app_settings),
    clock=Depends(get_clock),
    user_data: dict = Depends(require_token)
):
    if not user_id:
        raise ValidationError("userId is required")
    ensure_token_user_match(user_data["sub"], user_id)

    today = get_today_check_in(store, user_id, clock(), settings.tz)
    check_in = None
    if today.has_checked_in:
        check_in = {"response": today.response, "respondedAt": iso(today.responded_at)}

    return {"hasCheckedIn": today.has_checked_in, "checkIn": check_in}


# ---------------------- 📖 HISTORY ----------------------
@router.get("/history")
def check_in_history(
    user_id: Optional[str] = Query(None, alias="userId"),
    limit: int = Query(30, ge=1, le=100),
    year: Optional[int] = Query(None, ge=2000, le=9999),
    month: Optional[int] = Query(None, ge=1, le=12),
    store: CheckInStore = Depends(get_store),
    settings: Settings = Depends(get_app_settings),
    user_data: dict = Depends(require_token)
):
    if not user_id:
        raise ValidationError("userId is required")
    ensure_token_user_match(user_data["sub"], user_id)

    start = end = None
    if year is not None or month is not None:
        if year is None or month is None:
            raise ValidationError("year and month must be given together")
        start, end = month_bounds(year, month, settings.tz)

    records = store.list_check_ins(user_id, limit=limit, start=start, end=end)
    return [check_in_entry(r) for r in records]

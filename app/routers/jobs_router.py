# Copyright (c) 2025 Shiladitya Mallick
# This file is part of the Hankki - Daily Meal Check-in project.
# Licensed under the MIT License - see the LICENSE file for details.

from dataclasses import asdict

from fastapi import APIRouter, Depends, Request

from app.dependencies import get_clock
from app.utils.auth_utils import require_cron_secret
from app.utils.schedulers.cron.unresponsive_check_cron import check_unresponsive_users
from app.utils.schedulers.cron.reminder_cron import send_check_in_reminders
from app.utils.schedulers.cron.missed_checkin_cron import mark_missed_check_ins_job

# Entry points for an external cron trigger; same jobs the in-process scheduler runs
router = APIRouter(prefix="/jobs", tags=["Jobs"], dependencies=[Depends(require_cron_secret)])


@router.post("/check-unresponsive")
async def run_check_unresponsive(request: Request, clock=Depends(get_clock)):
    state = request.app.state
    summary = await check_unresponsive_users(state.store_factory, state.sms_dispatcher, state.settings, clock())
    return {"message": "Emergency alert run complete", **asdict(summary)}


@router.post("/send-reminder")
async def run_send_reminder(request: Request, clock=Depends(get_clock)):
    state = request.app.state
    summary = await send_check_in_reminders(state.store_factory, state.push_sender, state.settings, clock())
    if not summary.active:
        return {"message": "Outside the reminder window", "currentHour": summary.current_hour}
    return {"message": "Reminder run complete", **asdict(summary)}


@router.post("/mark-missed")
def run_mark_missed(request: Request, clock=Depends(get_clock)):
    state = request.app.state
    marked = mark_missed_check_ins_job(state.store_factory, state.settings, clock())
    return {"message": "Missed check-ins marked", "marked": marked}

# Copyright (c) 2025 Shiladitya Mallick
# This file is part of the Hankki - Daily Meal Check-in project.
# Licensed under the MIT License - see the LICENSE file for details.

from datetime import datetime
from typing import Optional

from app.schemas.records import UserRecord, CheckInRecord, EmergencyAlertRecord
from app.services.character_stage import describe_character


def iso(ts: Optional[datetime]) -> Optional[str]:
    return ts.isoformat() if ts else None


def user_profile(user: UserRecord) -> dict:
    return {
        "id": user.id,
        "email": user.email,
        "nickname": user.nickname,
        "guardianPhone": user.guardian_phone,
        "streak": user.streak,
        "lastCheckIn": iso(user.last_check_in),
        "pushEnabled": bool(user.push_subscription),
        "character": describe_character(user.streak),
        "createdAt": iso(user.created_at),
    }


def unresponsive_user(user: UserRecord) -> dict:
    return {
        "id": user.id,
        "email": user.email,
        "nickname": user.nickname,
        "guardianPhone": user.guardian_phone,
        "lastCheckIn": iso(user.last_check_in),
        "streak": user.streak,
        "character": describe_character(user.streak),
    }


def check_in_entry(check_in: CheckInRecord) -> dict:
    return {
        "id": check_in.id,
        "response": check_in.response,
        "respondedAt": iso(check_in.responded_at),
        "scheduledAt": iso(check_in.scheduled_at),
        "isMissed": check_in.is_missed,
        "createdAt": iso(check_in.created_at),
    }


def emergency_alert(alert: EmergencyAlertRecord) -> dict:
    return {
        "id": alert.id,
        "userId": alert.user_id,
        "guardianPhone": alert.guardian_phone,
        "message": alert.message,
        "sentAt": iso(alert.sent_at),
        "success": alert.success,
    }

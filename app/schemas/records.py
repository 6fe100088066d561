# Copyright (c) 2025 Shiladitya Mallick
# This file is part of the Hankki - Daily Meal Check-in project.
# Licensed under the MIT License - see the LICENSE file for details.

from datetime import datetime
from typing import Optional, Dict, Any

from pydantic import BaseModel, ConfigDict, field_validator

from app.utils.time_utils import ensure_aware

CHECK_IN_RESPONSES = ("ate", "not_ate")


class _Record(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    @field_validator("*", mode="after")
    @classmethod
    def _aware_timestamps(cls, v):
        # Stores hand back naive UTC; the domain layer only sees aware UTC
        if isinstance(v, datetime):
            return ensure_aware(v)
        return v


class UserRecord(_Record):
    id: str
    email: str
    nickname: str = ""
    guardian_phone: Optional[str] = None
    streak: int = 0
    last_check_in: Optional[datetime] = None
    push_subscription: Optional[Dict[str, Any]] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def has_guardian(self) -> bool:
        return bool(self.guardian_phone and self.guardian_phone.strip())


class CheckInRecord(_Record):
    id: int
    user_id: str
    response: Optional[str] = None
    responded_at: Optional[datetime] = None
    scheduled_at: datetime
    is_missed: bool = False
    created_at: Optional[datetime] = None


class EmergencyAlertRecord(_Record):
    id: int
    user_id: str
    guardian_phone: str
    message: str
    sent_at: datetime
    success: bool


class NotificationLogRecord(_Record):
    id: int
    user_id: str
    notification_type: str = "reminder"
    sent_at: datetime
    success: bool

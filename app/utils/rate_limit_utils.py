# Copyright (c) 2025 Shiladitya Mallick
# This file is part of the Hankki - Daily Meal Check-in project.
# Licensed under the MIT License - see the LICENSE file for details.

from slowapi import Limiter
from slowapi.util import get_remote_address

from app.config import Settings, get_settings

limiter = Limiter(key_func=get_remote_address, enabled=get_settings().rate_limit_enabled)

_checkin_rate_limit = get_settings().checkin_rate_limit


# ✅ Called by create_app so injected settings win over the environment
def configure_limiter(settings: Settings):
    global _checkin_rate_limit
    limiter.enabled = settings.rate_limit_enabled
    _checkin_rate_limit = settings.checkin_rate_limit


# Evaluated per request by slowapi
def checkin_rate_limit() -> str:
    return _checkin_rate_limit

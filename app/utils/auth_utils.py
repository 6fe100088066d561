# Copyright (c) 2025 Shiladitya Mallick
# This file is part of the Hankki - Daily Meal Check-in project.
# Licensed under the MIT License - see the LICENSE file for details.


from typing import Optional, Union

from fastapi import Depends, HTTPException, Header

from app.config import Settings
from app.dependencies import get_app_settings
from app.utils.jwt_utils import verify_access_token


# ✅ Token-user matching guard
def ensure_token_user_match(token_sub: str, input_id: Union[str, int]):
    if str(token_sub) != str(input_id):
        raise HTTPException(status_code=401, detail="Token/user mismatch")


# ✅ Dependency to extract token payload
def require_token(
    authorization: Optional[str] = Header(None),
    settings: Settings = Depends(get_app_settings),
) -> dict:
    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(status_code=401, detail="Invalid authorization format")
    token = authorization.replace("Bearer ", "", 1)
    return verify_access_token(token, settings)


# ✅ Operator-only endpoints (admin page, raw SMS send)
def require_admin(
    user_data: dict = Depends(require_token),
    settings: Settings = Depends(get_app_settings),
) -> dict:
    if user_data.get("role") not in settings.admin_roles:
        raise HTTPException(status_code=403, detail="Admin role required")
    return user_data


# ✅ Cron-triggered job endpoints
def require_cron_secret(
    x_cron_secret: Optional[str] = Header(None),
    settings: Settings = Depends(get_app_settings),
):
    if settings.cron_secret and x_cron_secret != settings.cron_secret:
        raise HTTPException(status_code=401, detail="Invalid cron secret")

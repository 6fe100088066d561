# Copyright (c) 2025 Shiladitya Mallick
# This file is part of the Hankki - Daily Meal Check-in project.
# Licensed under the MIT License - see the LICENSE file for details.

import logging

from fastapi import APIRouter, Depends

from app.config import Settings
from app.dependencies import get_store, get_app_settings, get_sms_dispatcher
from app.schemas.responses import user_profile
from app.schemas.user_schemas import UserCreateRequest, UserSettingsRequest
from app.services.sms_dispatcher import SmsDispatcher
from app.stores.base import CheckInStore, UNSET
from app.utils.auth_utils import require_token, ensure_token_user_match
from app.utils.errors import UserNotFoundError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/users", tags=["Users"])


def build_guardian_notice(nickname: str, settings: Settings) -> str:
    return f"[{settings.app_brand}] {nickname} registered you as their check-in guardian."


# ---------------------- 👤 CREATE PROFILE (after hosted signup) ----------------------
@router.post("")
def create_profile(
    payload: UserCreateRequest,
    store: CheckInStore = Depends(get_store),
    user_data: dict = Depends(require_token)
):
    ensure_token_user_match(user_data["sub"], payload.id)

    with store.transaction():
        user = store.create_user(payload.id, payload.email, payload.nickname, payload.guardian_phone)

    logger.info(f"👤 Profile created for user {user.id}")
    return user_profile(user)


# ---------------------- 👤 PROFILE ----------------------
@router.get("/{user_id}")
def get_profile(
    user_id: str,
    store: CheckInStore = Depends(get_store),
    user_data: dict = Depends(require_token)
):
    ensure_token_user_match(user_data["sub"], user_id)

    user = store.get_user(user_id)
    if not user:
        raise UserNotFoundError(user_id)
    return user_profile(user)


# ---------------------- ⚙️ SETTINGS ----------------------
@router.patch("/{user_id}/settings")
async def update_settings(
    user_id: str,
    payload: UserSettingsRequest,
    store: CheckInStore = Depends(get_store),
    settings: Settings = Depends(get_app_settings),
    dispatcher: SmsDispatcher = Depends(get_sms_dispatcher),
    user_data: dict = Depends(require_token)
):
    ensure_token_user_match(user_data["sub"], user_id)

    previous = store.get_user(user_id)
    if not previous:
        raise UserNotFoundError(user_id)

    provided = payload.model_fields_set
    with store.transaction():
        user = store.update_user_settings(
            user_id,
            nickname=payload.nickname if "nickname" in provided and payload.nickname is not None else UNSET,
            guardian_phone=payload.guardian_phone if "guardian_phone" in provided else UNSET,
        )

    # 📩 Let a newly registered guardian know
    guardian_notified = False
    if user.guardian_phone and user.guardian_phone != previous.guardian_phone:
        result = await dispatcher.send(
            user.guardian_phone,
            build_guardian_notice(user.nickname, settings),
            kind="guardian_update",
        )
        guardian_notified = result.success
        if not result.success:
            logger.warning(f"⚠️ Guardian notice failed for user {user_id}")

    response = user_profile(user)
    response["guardianNotified"] = guardian_notified
    return response

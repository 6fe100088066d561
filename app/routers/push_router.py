# Copyright (c) 2025 Shiladitya Mallick
# This file is part of the Hankki - Daily Meal Check-in project.
# Licensed under the MIT License - see the LICENSE file for details.

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query

from app.dependencies import get_store
from app.schemas.push_schemas import PushSubscribeRequest
from app.stores.base import CheckInStore
from app.utils.auth_utils import require_token, ensure_token_user_match
from app.utils.errors import ValidationError, UserNotFoundError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/push", tags=["Push"])


# ---------------------- 🔔 SUBSCRIBE ----------------------
@router.post("/subscribe")
def subscribe(
    payload: PushSubscribeRequest,
    store: CheckInStore = Depends(get_store),
    user_data: dict = Depends(require_token)
):
    if not payload.user_id or payload.subscription is None:
        raise ValidationError("userId and subscription are required")
    ensure_token_user_match(user_data["sub"], payload.user_id)

    with store.transaction():
        if not store.set_push_subscription(payload.user_id, payload.subscription.model_dump()):
            raise UserNotFoundError(payload.user_id)

    logger.info(f"🔔 Push subscription saved for user {payload.user_id}")
    return {"success": True, "message": "Push notifications enabled"}


# ---------------------- 🔕 UNSUBSCRIBE ----------------------
@router.delete("/subscribe")
def unsubscribe(
    user_id: Optional[str] = Query(None, alias="userId"),
    store: CheckInStore = Depends(get_store),
    user_data: dict = Depends(require_token)
):
    if not user_id:
        raise ValidationError("userId is required")
    ensure_token_user_match(user_data["sub"], user_id)

    with store.transaction():
        if not store.set_push_subscription(user_id, None):
            raise UserNotFoundError(user_id)

    logger.info(f"🔕 Push subscription removed for user {user_id}")
    return {"success": True, "message": "Push notifications disabled"}

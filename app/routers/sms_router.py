# Copyright (c) 2025 Shiladitya Mallick
# This file is part of the Hankki - Daily Meal Check-in project.
# Licensed under the MIT License - see the LICENSE file for details.

from fastapi import APIRouter, Depends

from app.dependencies import get_sms_dispatcher
from app.schemas.sms_schemas import SmsSendRequest
from app.services.sms_dispatcher import SmsDispatcher
from app.utils.auth_utils import require_admin
from app.utils.errors import ValidationError

router = APIRouter(prefix="/api/sms", tags=["SMS"])


# ---------------------- 📩 SEND SMS ----------------------
@router.post("/send")
async def send_sms(
    payload: SmsSendRequest,
    dispatcher: SmsDispatcher = Depends(get_sms_dispatcher),
    user_data: dict = Depends(require_admin)
):
    if not payload.phone or not payload.message:
        raise ValidationError("phone and message are required")

    result = await dispatcher.send(payload.phone, payload.message, kind=payload.type)
    return {
        "success": result.success,
        "provider": result.provider,
        "message": "SMS sent" if result.success else "SMS failed",
    }

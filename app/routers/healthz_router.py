# Copyright (c) 2025 Shiladitya Mallick
# This file is part of the Hankki - Daily Meal Check-in project.
# Licensed under the MIT License - see the LICENSE file for details.



from fastapi import APIRouter, Request

router = APIRouter(tags=["Infra"])


@router.get("/health")
def health_check():
    return {"status": "ok"}


@router.get("/healthz")
def store_health_check(request: Request):
    state = request.app.state
    result = {
        "store": state.store_factory.kind,
        "store_connection": False,
        "sms_gateway": "none",
        "push_configured": state.push_sender.configured,
    }

    if state.settings.has_domestic_gateway:
        result["sms_gateway"] = "primary"
    elif state.settings.has_international_gateway:
        result["sms_gateway"] = "secondary"

    with state.store_factory.session() as store:
        result["store_connection"] = store.ping()

    return {
        "status": "ok" if result["store_connection"] else "partial",
        "details": result
    }

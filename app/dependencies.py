# Copyright (c) 2025 Shiladitya Mallick
# This file is part of the Hankki - Daily Meal Check-in project.
# Licensed under the MIT License - see the LICENSE file for details.

from fastapi import Request

from app.config import Settings
from app.services.sms_dispatcher import SmsDispatcher
from app.stores.base import CheckInStore
from app.utils.push_sender import WebPushSender


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


# Dependency to get a store handle
def get_store(request: Request) -> CheckInStore:
    store = request.app.state.store_factory.open()
    try:
        yield store
    finally:
        store.close()


def get_sms_dispatcher(request: Request) -> SmsDispatcher:
    return request.app.state.sms_dispatcher


def get_push_sender(request: Request) -> WebPushSender:
    return request.app.state.push_sender


def get_clock(request: Request):
    """Callable returning the current aware UTC time."""
    return request.app.state.clock

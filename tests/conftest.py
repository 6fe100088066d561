# Copyright (c) 2025 Shiladitya Mallick
# This file is part of the Hankki - Daily Meal Check-in project.
# Licensed under the MIT License - see the LICENSE file for details.

import os

# Must be set before app modules read settings at import time
os.environ["ENV"] = "production"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["SCHEDULER_ENABLED"] = "false"
os.environ["JWT_SECRET_KEY"] = "test-secret"
os.environ.pop("DATABASE_URL", None)
os.environ.pop("FERNET_SECRET", None)

from datetime import datetime

import pytest
import pytz
from fastapi.testclient import TestClient

from app.config import Settings
from app.main import create_app
from app.services.sms_dispatcher import SmsResult, PROVIDER_PRIMARY
from app.stores.local_store import LocalStore, LocalStoreFactory
from app.stores.sql_store import SqlStoreFactory
from app.utils.jwt_utils import create_access_token
from app.utils.push_sender import PushResult

SEOUL = pytz.timezone("Asia/Seoul")


def kst(year, month, day, hour=0, minute=0) -> datetime:
    """Seoul wall-clock time as an aware UTC datetime."""
    return SEOUL.localize(datetime(year, month, day, hour, minute)).astimezone(pytz.utc)


# Monday 2025-03-10, 12:00 in Seoul (inside the reminder window)
NOW = kst(2025, 3, 10, 12, 0)


class FakeDispatcher:
    """Records sends. `responses` maps phone -> SmsResult, or an exception to raise."""

    def __init__(self, responses=None, default=None):
        self.responses = responses or {}
        self.default = default or SmsResult(success=True, provider=PROVIDER_PRIMARY)
        self.calls = []

    async def send(self, phone, message, kind="emergency"):
        self.calls.append((phone, message, kind))
        outcome = self.responses.get(phone, self.default)
        if isinstance(outcome, list):
            outcome = outcome.pop(0) if len(outcome) > 1 else outcome[0]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


class FakePushSender:
    """`responses` maps endpoint -> PushResult, or an exception to raise."""

    configured = True

    def __init__(self, responses=None):
        self.responses = responses or {}
        self.calls = []

    def send(self, subscription, payload):
        endpoint = subscription["endpoint"]
        self.calls.append((endpoint, payload))
        outcome = self.responses.get(endpoint, PushResult(success=True))
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


def subscription_for(name: str) -> dict:
    return {
        "endpoint": f"https://push.example.com/{name}",
        "expirationTime": None,
        "keys": {"p256dh": "p256dh-key", "auth": "auth-key"},
    }


@pytest.fixture
def settings():
    return Settings(
        local_store_path=None,
        jwt_secret_key="test-secret",
        cron_secret="cron-secret",
        scheduler_enabled=False,
        rate_limit_enabled=False,
        sms_max_attempts=1,
        reminder_sample_rate=1.0,
    )


@pytest.fixture
def local_store():
    return LocalStore()


@pytest.fixture
def sql_store():
    factory = SqlStoreFactory("sqlite://")
    store = factory.open()
    yield store
    store.close()
    factory.dispose()


@pytest.fixture(params=["local", "sql"])
def store(request):
    """Runs a test once per store implementation."""
    if request.param == "local":
        yield LocalStore()
        return
    factory = SqlStoreFactory("sqlite://")
    sql = factory.open()
    yield sql
    sql.close()
    factory.dispose()


def add_user(store, user_id, guardian_phone=None, nickname=None, created_at=None,
             streak=None, last_check_in=None, subscription=None):
    store.create_user(
        user_id,
        f"{user_id}@example.com",
        nickname or user_id.capitalize(),
        guardian_phone,
        created_at=created_at or kst(2025, 1, 1),
    )
    if last_check_in is not None:
        store.update_streak(user_id, None, streak or 1, last_check_in)
    if subscription is not None:
        store.set_push_subscription(user_id, subscription)
    store.commit()
    return store.get_user(user_id)


@pytest.fixture
def dispatcher():
    return FakeDispatcher()


@pytest.fixture
def push_sender():
    return FakePushSender()


@pytest.fixture
def store_factory():
    return LocalStoreFactory(None)


@pytest.fixture
def client(settings, store_factory, dispatcher, push_sender):
    app = create_app(
        settings=settings,
        store_factory=store_factory,
        sms_dispatcher=dispatcher,
        push_sender=push_sender,
        clock=lambda: NOW,
    )
    return TestClient(app)


@pytest.fixture
def token(settings):
    def _token(user_id="alice", **claims):
        return {"Authorization": f"Bearer {create_access_token({'sub': user_id, **claims}, settings)}"}
    return _token

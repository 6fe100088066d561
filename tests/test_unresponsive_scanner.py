# Copyright (c) 2025 Shiladitya Mallick
# This file is part of the Hankki - Daily Meal Check-in project.
# Licensed under the MIT License - see the LICENSE file for details.

import asyncio
from datetime import timedelta

import pytest

from app.services import unresponsive_scanner
from app.services.sms_dispatcher import SmsResult, PROVIDER_PRIMARY, PROVIDER_SECONDARY
from app.services.unresponsive_scanner import run_unresponsive_scan, send_manual_alert, build_alert_message
from app.utils.errors import ValidationError, UserNotFoundError
from conftest import NOW, FakeDispatcher, add_user, kst

GUARDIAN = "+821012345678"


def scan(store, dispatcher, settings, now=NOW):
    return asyncio.run(run_unresponsive_scan(store, dispatcher, settings, now))


def test_alert_message(settings):
    assert build_alert_message("Mina", settings) == \
        "[Hankki] Mina has not responded for 48 hours. Please check on them."


def test_unresponsive_user_gets_one_alert(store, dispatcher, settings):
    add_user(store, "alice", guardian_phone=GUARDIAN, nickname="Alice", last_check_in=NOW - timedelta(hours=50))

    summary = scan(store, dispatcher, settings)

    assert (summary.total, summary.succeeded, summary.failed) == (1, 1, 0)
    assert dispatcher.calls == [(GUARDIAN, build_alert_message("Alice", settings), "emergency")]
    alerts = store.list_recent_alerts()
    assert len(alerts) == 1
    assert alerts[0].user_id == "alice"
    assert alerts[0].guardian_phone == GUARDIAN
    assert alerts[0].success is True
    assert alerts[0].sent_at == NOW


def test_second_run_same_day_is_suppressed(store, dispatcher, settings):
    add_user(store, "alice", guardian_phone=GUARDIAN, last_check_in=NOW - timedelta(hours=50))

    scan(store, dispatcher, settings)
    summary = scan(store, dispatcher, settings, now=NOW + timedelta(hours=3))

    assert summary.total == 0
    assert len(dispatcher.calls) == 1
    assert len(store.list_recent_alerts()) == 1


def test_alert_from_yesterday_does_not_suppress_today(store, dispatcher, settings):
    add_user(store, "alice", guardian_phone=GUARDIAN, last_check_in=NOW - timedelta(hours=72))
    store.add_emergency_alert("alice", GUARDIAN, "old", kst(2025, 3, 9, 23), True)
    store.commit()

    assert scan(store, dispatcher, settings).total == 1


def test_candidates_filtered(store, dispatcher, settings):
    add_user(store, "recent", guardian_phone=GUARDIAN, last_check_in=NOW - timedelta(hours=10))
    add_user(store, "no_guardian", last_check_in=NOW - timedelta(hours=80))
    add_user(store, "blank_guardian", guardian_phone="   ", last_check_in=NOW - timedelta(hours=80))
    add_user(store, "never", guardian_phone="+821099998888")
    add_user(store, "stale", guardian_phone=GUARDIAN, last_check_in=NOW - timedelta(hours=49))

    summary = scan(store, dispatcher, settings)

    # never-checked-in users first, then oldest last_check_in
    assert [r.user_id for r in summary.results] == ["never", "stale"]


def test_failures_are_isolated(store, settings):
    add_user(store, "ok", guardian_phone="+821011111111", last_check_in=NOW - timedelta(hours=60))
    add_user(store, "rejected", guardian_phone="+821022222222", last_check_in=NOW - timedelta(hours=60))
    add_user(store, "crashed", guardian_phone="+821033333333", last_check_in=NOW - timedelta(hours=60))
    dispatcher = FakeDispatcher(responses={
        "+821022222222": SmsResult(success=False, provider=PROVIDER_PRIMARY),
        "+821033333333": RuntimeError("socket exploded"),
    })

    summary = scan(store, dispatcher, settings)

    assert (summary.total, summary.succeeded, summary.failed) == (3, 1, 2)
    by_user = {r.user_id: r for r in summary.results}
    assert by_user["ok"].success is True
    assert by_user["rejected"].success is False
    assert by_user["crashed"].error == "socket exploded"
    logged = {a.user_id: a.success for a in store.list_recent_alerts()}
    assert logged == {"ok": True, "rejected": False, "crashed": False}

    # failed attempts still count toward the once-per-day rule
    assert scan(store, dispatcher, settings, now=NOW + timedelta(hours=1)).total == 0


def test_failed_delivery_is_retried_with_backoff(store, settings, monkeypatch):
    settings = settings.model_copy(update={"sms_max_attempts": 3})
    delays = []

    async def fake_sleep(seconds):
        delays.append(seconds)

    monkeypatch.setattr(unresponsive_scanner.asyncio, "sleep", fake_sleep)
    add_user(store, "alice", guardian_phone=GUARDIAN, last_check_in=NOW - timedelta(hours=50))
    dispatcher = FakeDispatcher(responses={GUARDIAN: [
        SmsResult(success=False, provider=PROVIDER_PRIMARY),
        SmsResult(success=False, provider=PROVIDER_PRIMARY),
        SmsResult(success=True, provider=PROVIDER_SECONDARY),
    ]})

    summary = scan(store, dispatcher, settings)

    assert summary.succeeded == 1
    assert summary.results[0].provider == PROVIDER_SECONDARY
    assert len(dispatcher.calls) == 3
    assert delays == [1.0, 2.0]
    assert len(store.list_recent_alerts()) == 1


def test_manual_alert_bypasses_daily_suppression(store, dispatcher, settings):
    add_user(store, "alice", guardian_phone=GUARDIAN, last_check_in=NOW - timedelta(hours=50))
    scan(store, dispatcher, settings)

    outcome = asyncio.run(send_manual_alert(store, dispatcher, settings, "alice", NOW))

    assert outcome.success is True
    assert len(dispatcher.calls) == 2
    assert len(store.list_recent_alerts()) == 2


def test_manual_alert_for_recently_active_user(store, dispatcher, settings):
    add_user(store, "alice", guardian_phone=GUARDIAN, last_check_in=NOW - timedelta(hours=1))

    assert asyncio.run(send_manual_alert(store, dispatcher, settings, "alice", NOW)).success is True


def test_manual_alert_failure_is_logged(store, settings):
    add_user(store, "alice", guardian_phone=GUARDIAN)
    dispatcher = FakeDispatcher(default=SmsResult(success=False, provider=PROVIDER_PRIMARY))

    outcome = asyncio.run(send_manual_alert(store, dispatcher, settings, "alice", NOW))

    assert outcome.success is False
    assert [a.success for a in store.list_recent_alerts()] == [False]


def test_manual_alert_requires_guardian(store, dispatcher, settings):
    add_user(store, "alice")

    with pytest.raises(ValidationError):
        asyncio.run(send_manual_alert(store, dispatcher, settings, "alice", NOW))
    with pytest.raises(UserNotFoundError):
        asyncio.run(send_manual_alert(store, dispatcher, settings, "ghost", NOW))
    assert dispatcher.calls == []

# Copyright (c) 2025 Shiladitya Mallick
# This file is part of the Hankki - Daily Meal Check-in project.
# Licensed under the MIT License - see the LICENSE file for details.

import asyncio
import random

from app.services.checkin_recorder import record_check_in
from app.services.reminder_scheduler import run_reminders, in_reminder_window, build_reminder_payload
from app.utils.push_sender import PushResult, WebPushSender
from conftest import SEOUL, NOW, FakePushSender, add_user, kst, subscription_for


def remind(store, sender, settings, now=NOW, seed=7):
    return asyncio.run(run_reminders(store, sender, settings, now, random.Random(seed)))


def test_window_is_inclusive_local_hours(settings):
    assert in_reminder_window(kst(2025, 3, 10, 10, 59), settings) is False
    assert in_reminder_window(kst(2025, 3, 10, 11), settings) is True
    assert in_reminder_window(kst(2025, 3, 10, 13, 59), settings) is True
    assert in_reminder_window(kst(2025, 3, 10, 14), settings) is False


def test_payload(settings, local_store):
    user = add_user(local_store, "alice", nickname="Alice")
    payload = build_reminder_payload(user, settings)

    assert payload["tag"] == "check-in-reminder"
    assert "Alice" in payload["body"]
    assert payload["data"] == {"url": "/", "userId": "alice"}


def test_outside_window_does_nothing(local_store, push_sender, settings):
    add_user(local_store, "alice", subscription=subscription_for("alice"))

    summary = remind(local_store, push_sender, settings, now=kst(2025, 3, 10, 9))

    assert summary.active is False
    assert summary.current_hour == 9
    assert push_sender.calls == []


def test_only_subscribed_users_without_check_in_today(local_store, push_sender, settings):
    add_user(local_store, "pending", subscription=subscription_for("pending"))
    add_user(local_store, "yesterday", subscription=subscription_for("yesterday"))
    add_user(local_store, "done", subscription=subscription_for("done"))
    add_user(local_store, "unsubscribed")
    record_check_in(local_store, "yesterday", "ate", kst(2025, 3, 9, 12), SEOUL)
    record_check_in(local_store, "done", "ate", kst(2025, 3, 10, 8), SEOUL)

    summary = remind(local_store, push_sender, settings)

    assert summary.active is True
    assert (summary.total, summary.sent, summary.failed) == (2, 2, 0)
    assert sorted(endpoint for endpoint, _ in push_sender.calls) == [
        "https://push.example.com/pending",
        "https://push.example.com/yesterday",
    ]
    logs = local_store.list_notification_logs()
    assert len(logs) == 2
    assert all(log.notification_type == "reminder" and log.success for log in logs)


def test_sample_rate_zero_sends_nothing(local_store, push_sender, settings):
    add_user(local_store, "alice", subscription=subscription_for("alice"))
    settings = settings.model_copy(update={"reminder_sample_rate": 0.0})

    summary = remind(local_store, push_sender, settings)

    assert summary.active is True
    assert summary.total == 0
    assert push_sender.calls == []


def test_sampling_is_a_subset(local_store, push_sender, settings):
    for i in range(30):
        add_user(local_store, f"user{i}", subscription=subscription_for(f"user{i}"))
    settings = settings.model_copy(update={"reminder_sample_rate": 0.33})

    summary = remind(local_store, push_sender, settings, seed=42)

    assert 0 < summary.total < 30
    assert summary.sent == summary.total


def test_failures_are_isolated_and_expired_subscriptions_cleared(local_store, settings):
    add_user(local_store, "ok", subscription=subscription_for("ok"))
    add_user(local_store, "gone", subscription=subscription_for("gone"))
    add_user(local_store, "crash", subscription=subscription_for("crash"))
    sender = FakePushSender(responses={
        "https://push.example.com/gone": PushResult(success=False, expired=True),
        "https://push.example.com/crash": RuntimeError("boom"),
    })

    summary = remind(local_store, sender, settings)

    assert (summary.total, summary.sent, summary.failed) == (3, 1, 2)
    assert local_store.get_user("gone").push_subscription is None
    assert local_store.get_user("crash").push_subscription is not None
    logged = {log.user_id: log.success for log in local_store.list_notification_logs()}
    assert logged == {"ok": True, "gone": False, "crash": False}


def test_web_push_sender_without_vapid_key_logs_only(settings):
    sender = WebPushSender(settings)

    assert sender.configured is False
    assert sender.send(subscription_for("alice"), {"title": "hi"}) == PushResult(success=True)
    assert sender.send({}, {"title": "hi"}) == PushResult(success=False)

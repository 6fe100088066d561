# Copyright (c) 2025 Shiladitya Mallick
# This file is part of the Hankki - Daily Meal Check-in project.
# Licensed under the MIT License - see the LICENSE file for details.

from datetime import date

from app.services.checkin_recorder import record_check_in
from app.services.missed_checkin_marker import mark_missed_check_ins
from conftest import SEOUL, NOW, add_user, kst


def test_marks_yesterday_for_users_without_an_entry(store):
    add_user(store, "lapsed")
    add_user(store, "active")
    add_user(store, "never")
    record_check_in(store, "lapsed", "ate", kst(2025, 3, 8, 12), SEOUL)
    record_check_in(store, "active", "ate", kst(2025, 3, 9, 12), SEOUL)
    streaks_before = {u.id: u.streak for u in store.list_users()}

    marked = mark_missed_check_ins(store, NOW, SEOUL)

    assert marked == 1
    missed = [c for c in store.list_check_ins("lapsed") if c.is_missed]
    assert len(missed) == 1
    assert missed[0].response is None
    assert missed[0].responded_at is None
    assert missed[0].scheduled_at == kst(2025, 3, 9)
    assert store.list_check_ins("never") == []
    assert {u.id: u.streak for u in store.list_users()} == streaks_before


def test_rerun_is_idempotent(store):
    add_user(store, "lapsed")
    record_check_in(store, "lapsed", "ate", kst(2025, 3, 7, 12), SEOUL)

    assert mark_missed_check_ins(store, NOW, SEOUL) == 1
    assert mark_missed_check_ins(store, NOW, SEOUL) == 0


def test_users_created_after_the_day_are_skipped(store):
    add_user(store, "newcomer", created_at=kst(2025, 3, 10, 0, 1))
    record_check_in(store, "newcomer", "ate", kst(2025, 3, 10, 8), SEOUL)

    assert mark_missed_check_ins(store, NOW, SEOUL) == 0


def test_skip_rule_follows_account_creation_not_first_check_in(store):
    add_user(store, "midnight", created_at=kst(2025, 3, 10))
    add_user(store, "late_signup", created_at=kst(2025, 3, 9, 23))
    record_check_in(store, "midnight", "ate", kst(2025, 3, 10, 8), SEOUL)
    record_check_in(store, "late_signup", "ate", kst(2025, 3, 10, 8), SEOUL)

    assert mark_missed_check_ins(store, NOW, SEOUL) == 1
    assert store.list_check_ins("midnight")[0].is_missed is False
    assert [c.is_missed for c in store.list_check_ins("late_signup")] == [False, True]


def test_explicit_day(store):
    add_user(store, "lapsed")
    record_check_in(store, "lapsed", "ate", kst(2025, 3, 1, 12), SEOUL)

    assert mark_missed_check_ins(store, NOW, SEOUL, day=date(2025, 3, 5)) == 1
    assert store.list_check_ins("lapsed")[0].scheduled_at == kst(2025, 3, 5)


def test_missed_rows_do_not_count_as_todays_check_in(store):
    add_user(store, "lapsed")
    record_check_in(store, "lapsed", "ate", kst(2025, 3, 8, 12), SEOUL)
    mark_missed_check_ins(store, kst(2025, 3, 10, 0, 5), SEOUL)

    assert store.latest_check_in_since("lapsed", kst(2025, 3, 9)) is None
    assert "lapsed" not in store.checked_in_user_ids_since(kst(2025, 3, 9))

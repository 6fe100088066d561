# Copyright (c) 2025 Shiladitya Mallick
# This file is part of the Hankki - Daily Meal Check-in project.
# Licensed under the MIT License - see the LICENSE file for details.

import pytest

from app.services.streak_calculator import compute_streak
from conftest import SEOUL, kst


@pytest.mark.parametrize("streak", [0, 1, 7, 120])
def test_first_check_in_starts_at_one(streak):
    assert compute_streak(None, streak, kst(2025, 3, 10, 9), SEOUL) == 1


def test_same_local_day_keeps_streak():
    # 00:30 and 23:00 Seoul fall on different UTC dates but the same local day
    assert compute_streak(kst(2025, 3, 10, 0, 30), 5, kst(2025, 3, 10, 23), SEOUL) == 5


def test_next_local_day_increments_even_minutes_apart():
    assert compute_streak(kst(2025, 3, 9, 23, 50), 3, kst(2025, 3, 10, 0, 10), SEOUL) == 4


def test_yesterday_evening_to_this_morning():
    assert compute_streak(kst(2025, 3, 9, 20), 7, kst(2025, 3, 10, 9), SEOUL) == 8


@pytest.mark.parametrize("last", [kst(2025, 3, 8, 12), kst(2025, 3, 1, 8), kst(2024, 3, 10, 12)])
def test_gap_of_two_or_more_days_resets(last):
    assert compute_streak(last, 30, kst(2025, 3, 10, 12), SEOUL) == 1


def test_last_check_in_in_the_future_resets():
    assert compute_streak(kst(2025, 3, 12, 12), 4, kst(2025, 3, 10, 12), SEOUL) == 1


def test_negative_stored_streak_is_clamped():
    assert compute_streak(kst(2025, 3, 10, 8), -3, kst(2025, 3, 10, 9), SEOUL) == 0
    assert compute_streak(kst(2025, 3, 9, 8), -3, kst(2025, 3, 10, 9), SEOUL) == 1

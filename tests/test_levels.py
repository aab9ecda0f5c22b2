# tests/test_levels.py
from eduquest.levels import (
    current_streak_milestone, level_info, next_streak_milestone, streak_multiplier,
)


def test_level_starts_at_one():
    info = level_info(0)
    assert info.level == 1
    assert info.progress == 0
    assert info.total_xp_for_next_level == 100


def test_level_boundary():
    assert level_info(99).level == 1
    assert level_info(100).level == 2


def test_level_progress_within_level():
    info = level_info(250)
    assert info.level == 3
    assert info.xp_in_level == 50
    assert info.progress == 50
    assert info.xp_for_next_level == 100
    assert info.total_xp_for_next_level == 300


def test_streak_multiplier_table():
    assert streak_multiplier(0) == 1.0
    assert streak_multiplier(6) == 1.0
    assert streak_multiplier(7) == 1.2
    assert streak_multiplier(14) == 1.3
    assert streak_multiplier(30) == 1.5
    assert streak_multiplier(99) == 1.7
    assert streak_multiplier(100) == 2.0
    assert streak_multiplier(365) == 2.0


def test_current_milestone():
    assert current_streak_milestone(3) is None
    assert current_streak_milestone(20).title == "2-Week Champion"


def test_next_milestone():
    assert next_streak_milestone(0).days == 7
    assert next_streak_milestone(30).days == 60
    assert next_streak_milestone(100) is None

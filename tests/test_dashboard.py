# tests/test_dashboard.py
from datetime import date, timedelta

import pytest

from eduquest.dashboard import activity_heatmap, get_heat_color, heat_level, profile_summary
from eduquest.progression import Progression

TODAY = date(2026, 3, 14)


def test_heat_level_buckets():
    assert [heat_level(n) for n in (0, 1, 2, 3, 4, 5, 6, 40)] == [0, 1, 2, 2, 3, 3, 4, 4]


def test_heat_color_grows_with_activity():
    assert get_heat_color(0) != get_heat_color(10)


@pytest.mark.asyncio
async def test_profile_summary_new_user(store, user):
    progression = await Progression.load(store, user.id, today=TODAY)
    summary = profile_summary(progression)
    assert summary["name"] == "Alex Doe"
    assert summary["level"] == 1
    assert summary["xp_for_next_level"] == 100
    assert summary["multiplier"] == 1.0
    assert summary["milestone"] is None
    assert summary["next_milestone"].days == 7
    assert summary["quest_completion"] == 0
    assert summary["achievements_total"] == 12


@pytest.mark.asyncio
async def test_profile_summary_after_xp(store, user):
    await store.add_xp(user.id, 250)
    await store.set_streak(user.id, 7)
    progression = await Progression.load(store, user.id, today=TODAY)
    summary = profile_summary(progression)
    assert summary["level"] == 3
    assert summary["xp_in_level"] == 50
    assert summary["multiplier"] == 1.2
    assert summary["milestone"].days == 7


@pytest.mark.asyncio
async def test_activity_heatmap_zero_fills(store, user):
    await store.log_activity(user.id, TODAY)
    await store.log_activity(user.id, TODAY)
    await store.log_activity(user.id, TODAY - timedelta(days=2))
    await store.log_activity(user.id, TODAY - timedelta(days=30))
    heatmap = await activity_heatmap(store, user.id, days=7, today=TODAY)
    assert len(heatmap) == 7
    assert heatmap[0] == (TODAY - timedelta(days=6), 0)
    assert heatmap[-1] == (TODAY, 2)
    assert heatmap[-3] == (TODAY - timedelta(days=2), 1)
    assert sum(count for _, count in heatmap) == 3

"""Profile dashboard: level, streak, quests, achievements and activity."""
from datetime import date, timedelta
from typing import Optional

from eduquest import quests
from eduquest.achievements import ALL_ACHIEVEMENTS
from eduquest.levels import current_streak_milestone, next_streak_milestone, streak_multiplier


def heat_level(count: int) -> int:
    if count == 0:
        return 0
    elif count <= 1:
        return 1
    elif count <= 3:
        return 2
    elif count <= 5:
        return 3
    return 4


def get_heat_color(count: int) -> str:
    return ["grey23", "dark_cyan", "cyan3", "turquoise2", "bright_cyan"][heat_level(count)]


def profile_summary(progression) -> dict:
    stats = progression.stats
    level = progression.level
    return {
        "name": progression.user.name,
        "xp": stats.xp,
        "hearts": stats.hearts,
        "level": level.level,
        "level_progress": level.progress,
        "xp_in_level": level.xp_in_level,
        "xp_for_next_level": level.xp_for_next_level,
        "streak": stats.streak,
        "multiplier": streak_multiplier(stats.streak),
        "milestone": current_streak_milestone(stats.streak),
        "next_milestone": next_streak_milestone(stats.streak),
        "lessons_completed": len(progression.completed_ids),
        "quest_completion": quests.completion_percentage(progression.quests),
        "quest_rewards": quests.completed_rewards(progression.quests),
        "achievements_unlocked": len(progression.unlocked),
        "achievements_total": len(ALL_ACHIEVEMENTS),
    }


async def activity_heatmap(store, user_id: str, days: int = 365, today: Optional[date] = None) -> list[tuple[date, int]]:
    """Daily activity counts for the last `days` days, oldest first, zero-filled."""
    today = today or date.today()
    start = today - timedelta(days=days - 1)
    counts = await store.get_activity(user_id, since=start)
    return [
        (start + timedelta(days=i), counts.get((start + timedelta(days=i)).isoformat(), 0))
        for i in range(days)
    ]

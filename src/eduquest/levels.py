"""Level and streak-milestone calculations."""
from typing import Optional

from eduquest.models import LevelInfo, StreakMilestone

XP_PER_LEVEL = 100

# Sorted ascending by days.
STREAK_MILESTONES = [
    StreakMilestone(days=7, title="Week Warrior", multiplier=1.2, badge="🔥"),
    StreakMilestone(days=14, title="2-Week Champion", multiplier=1.3, badge="🔥🔥"),
    StreakMilestone(days=30, title="Monthly Master", multiplier=1.5, badge="⚡"),
    StreakMilestone(days=60, title="2-Month Legend", multiplier=1.7, badge="⚡⚡"),
    StreakMilestone(days=100, title="Century Scholar", multiplier=2.0, badge="👑"),
]


def streak_multiplier(streak: int) -> float:
    """XP multiplier of the highest milestone reached, 1.0 below the first."""
    multiplier = 1.0
    for milestone in STREAK_MILESTONES:
        if streak >= milestone.days:
            multiplier = milestone.multiplier
        else:
            break
    return multiplier


def current_streak_milestone(streak: int) -> Optional[StreakMilestone]:
    for milestone in reversed(STREAK_MILESTONES):
        if streak >= milestone.days:
            return milestone
    return None


def next_streak_milestone(streak: int) -> Optional[StreakMilestone]:
    for milestone in STREAK_MILESTONES:
        if streak < milestone.days:
            return milestone
    return None


def level_info(xp: int) -> LevelInfo:
    """Derive level progress from total XP.

    Args:
        xp: Total experience points (non-negative).

    Returns:
        LevelInfo with level = xp // 100 + 1 and progress as a percentage
        of the current level.
    """
    level = xp // XP_PER_LEVEL + 1
    xp_in_level = xp - (level - 1) * XP_PER_LEVEL
    return LevelInfo(
        level=level,
        xp_in_level=xp_in_level,
        progress=xp_in_level / XP_PER_LEVEL * 100,
        xp_for_next_level=XP_PER_LEVEL,
        total_xp_for_next_level=level * XP_PER_LEVEL,
    )

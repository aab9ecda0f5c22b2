"""Achievement table and unlock rules."""
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Iterable, Optional

from eduquest.models import Achievement


@dataclass
class AchievementSnapshot:
    """Cumulative user metrics the unlock rules are evaluated against."""
    lessons_completed: int = 0
    courses_completed: int = 0
    streak: int = 0
    xp: int = 0
    perfect_scores: int = 0
    question_types_answered: set = field(default_factory=set)


ALL_ACHIEVEMENTS = [
    Achievement("first-lesson", "First Steps", "Complete your first lesson", "🎯", "FIRST_LESSON", 50),
    Achievement("course-complete", "Course Master", "Complete an entire course", "🏆", "COURSE_COMPLETE", 200),
    Achievement("perfect-score", "Perfectionist", "Get all questions correct in a quiz", "💯", "PERFECT_SCORE", 100),
    Achievement("streak-7", "Week Warrior", "Maintain a 7-day learning streak", "🔥", "STREAK_7", 150),
    Achievement("streak-30", "Monthly Master", "Maintain a 30-day learning streak", "⚡", "STREAK_30", 500),
    Achievement("streak-100", "Century Scholar", "Maintain a 100-day learning streak", "👑", "STREAK_100", 2000),
    Achievement("lessons-10", "Knowledge Seeker", "Complete 10 lessons", "📚", "LESSONS_10", 100),
    Achievement("lessons-50", "Dedicated Learner", "Complete 50 lessons", "🎓", "LESSONS_50", 500),
    Achievement("lessons-100", "Knowledge Master", "Complete 100 lessons", "🌟", "LESSONS_100", 1000),
    Achievement("xp-1000", "Rising Star", "Earn 1,000 XP", "⭐", "XP_1000", 100),
    Achievement("xp-5000", "XP Legend", "Earn 5,000 XP", "💫", "XP_5000", 500),
    Achievement("all-question-types", "Question Master", "Answer all 4 types of questions correctly", "🎪",
                "ALL_QUESTION_TYPES", 200),
]

_CONDITIONS = {
    "FIRST_LESSON": lambda s: s.lessons_completed >= 1,
    "COURSE_COMPLETE": lambda s: s.courses_completed >= 1,
    "PERFECT_SCORE": lambda s: s.perfect_scores >= 1,
    "STREAK_7": lambda s: s.streak >= 7,
    "STREAK_30": lambda s: s.streak >= 30,
    "STREAK_100": lambda s: s.streak >= 100,
    "LESSONS_10": lambda s: s.lessons_completed >= 10,
    "LESSONS_50": lambda s: s.lessons_completed >= 50,
    "LESSONS_100": lambda s: s.lessons_completed >= 100,
    "XP_1000": lambda s: s.xp >= 1000,
    "XP_5000": lambda s: s.xp >= 5000,
    "ALL_QUESTION_TYPES": lambda s: len(s.question_types_answered) >= 4,
}


def check_condition(condition: str, snapshot: AchievementSnapshot) -> bool:
    rule = _CONDITIONS.get(condition)
    return bool(rule and rule(snapshot))


def newly_unlocked(
    unlocked_ids: Iterable[str],
    snapshot: AchievementSnapshot,
    now: Optional[datetime] = None,
) -> list[Achievement]:
    """Achievements satisfied by the snapshot that are not unlocked yet, stamped with now."""
    unlocked = set(unlocked_ids)
    stamp = (now or datetime.now()).isoformat()
    return [
        replace(a, unlocked_at=stamp)
        for a in ALL_ACHIEVEMENTS
        if a.id not in unlocked and check_condition(a.condition, snapshot)
    ]


def get_achievement(achievement_id: str) -> Optional[Achievement]:
    for achievement in ALL_ACHIEVEMENTS:
        if achievement.id == achievement_id:
            return achievement
    return None

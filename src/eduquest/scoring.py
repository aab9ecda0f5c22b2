"""XP awards for finished lessons."""
import math

from eduquest.levels import streak_multiplier
from eduquest.models import QUIZ, Lesson

XP_PER_CORRECT_ANSWER = 10
FLAT_LESSON_XP = 15
REVIEW_DIVISOR = 4


def base_xp(lesson: Lesson) -> int:
    if lesson.type == QUIZ:
        return len(lesson.questions) * XP_PER_CORRECT_ANSWER
    return FLAT_LESSON_XP


def awarded_xp(base: int, streak: int) -> int:
    return math.floor(base * streak_multiplier(streak))


def review_xp(base: int) -> int:
    """Reduced award for re-completing a lesson; no multiplier applies."""
    return base // REVIEW_DIVISOR

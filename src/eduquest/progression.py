"""Per-user progression: the one place gamification state changes.

A Progression is loaded for a user, starts lesson sessions, and turns
session events into store writes, quest advances, achievement unlocks and
reward credits. In-memory state mirrors what the store returned last; a
failed store call propagates and nothing is rolled back.
"""
import logging
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Callable, Optional

from eduquest import achievements, quests
from eduquest.courses import count_completed_courses
from eduquest.models import QUIZ, Course, LevelInfo, Lesson, User, UserStats
from eduquest.levels import level_info
from eduquest.scoring import awarded_xp, review_xp
from eduquest.session import LessonSession
from eduquest.store import ProgressStore

logger = logging.getLogger(__name__)


@dataclass
class LessonResult:
    lesson_id: str
    xp_earned: int
    was_review: bool
    perfect: bool
    level_before: int
    level_after: int
    stats: UserStats
    new_achievements: list = field(default_factory=list)
    completed_quests: list = field(default_factory=list)
    bonus_xp: int = 0

    @property
    def leveled_up(self) -> bool:
        return self.level_after > self.level_before


class Progression:
    def __init__(
        self,
        store: ProgressStore,
        user: User,
        stats: UserStats,
        completed_ids: set[str],
        daily_quests: list,
        unlocked: dict[str, str],
        courses: list[Course],
        clock: Callable[[], date] = date.today,
    ):
        self.store = store
        self.user = user
        self.stats = stats
        self.completed_ids = completed_ids
        self.quests = daily_quests
        self.unlocked = unlocked
        self.courses = courses
        self.clock = clock
        self.active_lesson: Optional[Lesson] = None
        self._day: Optional[date] = None

    @classmethod
    async def load(
        cls, store: ProgressStore, user_id: str, courses: Optional[list[Course]] = None,
        today: Optional[date] = None, clock: Optional[Callable[[], date]] = None,
    ) -> "Progression":
        """Load a user's progression. ``today`` pins the date, ``clock`` supplies it per event."""
        if clock is None:
            clock = (lambda: today) if today else date.today
        progression = cls(
            store=store,
            user=await store.get_user(user_id),
            stats=await store.get_stats(user_id),
            completed_ids=await store.get_completed_lesson_ids(user_id),
            daily_quests=[],
            unlocked=await store.get_achievements(user_id),
            courses=list(courses or []),
            clock=clock,
        )
        await progression.sync_day()
        return progression

    @property
    def today(self) -> date:
        return self.clock()

    async def sync_day(self) -> date:
        """Roll state over to the current day: lapse a broken streak, regenerate quests."""
        today = self.today
        if today == self._day:
            return today
        self._day = today
        last = await self.store.get_last_streak_date(self.user.id)
        if self.stats.streak and last is not None and last < today - timedelta(days=1):
            logger.info("Streak of %d for %s lapsed (last active %s)", self.stats.streak, self.user.id, last)
            self.stats = await self.store.set_streak(self.user.id, 0)
        if quests.should_reset(self.quests, today):
            self.quests = await quests.load_quests(self.store, self.user.id, today)
        return today

    @property
    def level(self) -> LevelInfo:
        return level_info(self.stats.xp)

    def is_completed(self, lesson_id: str) -> bool:
        return lesson_id in self.completed_ids

    def start_lesson(self, lesson: Lesson) -> LessonSession:
        """Open a session; already-completed lessons run as penalty-free reviews."""
        self.active_lesson = lesson
        return LessonSession(lesson, hearts=self.stats.hearts, is_review=self.is_completed(lesson.id))

    async def submit(self, session: LessonSession, submission) -> bool:
        question = session.current_question
        is_correct = session.submit(submission)
        await self.handle_answer(question, is_correct)
        if session.heart_lost:
            await self.handle_heart_lost()
        return is_correct

    async def advance(self, session: LessonSession) -> Optional[LessonResult]:
        """Advance the session; returns the completion result on the last question."""
        if session.advance():
            return await self.handle_complete(session.lesson, session.earned_base_xp, session.perfect)
        return None

    async def finish(self, session: LessonSession, quick: bool = False) -> LessonResult:
        if quick:
            session.quick_complete()
        else:
            session.finish()
        return await self.handle_complete(session.lesson, session.earned_base_xp, session.perfect)

    async def refill_hearts(self, session: Optional[LessonSession] = None) -> UserStats:
        self.stats = await self.store.refill_hearts(self.user.id)
        if session is not None:
            session.refill_hearts(self.stats.hearts)
        return self.stats

    async def handle_answer(self, question, is_correct: bool) -> None:
        today = await self.sync_day()
        await self.store.record_answer(self.user.id, question.id, is_correct, question.type)
        if is_correct:
            await self.store.log_activity(self.user.id, today)
            await self._advance_quest(quests.ANSWER_QUESTIONS, 1)
            await self._advance_quest(quests.MAINTAIN_STREAK, 1)

    async def handle_heart_lost(self) -> None:
        self.stats = await self.store.lose_heart(self.user.id)
        logger.debug("User %s has %d hearts left", self.user.id, self.stats.hearts)

    async def handle_complete(self, lesson: Lesson, base: int, perfect: bool) -> LessonResult:
        today = await self.sync_day()
        was_review = self.is_completed(lesson.id)
        level_before = self.level.level
        xp = review_xp(base) if was_review else awarded_xp(base, self.stats.streak)
        # only first-time quizzes count toward perfect scores
        perfect = perfect and lesson.type == QUIZ and not was_review
        self.stats, self.completed_ids = await self.store.complete_lesson(
            self.user.id, lesson.id, xp, was_review, perfect=perfect, today=today,
        )
        await self.store.log_activity(self.user.id, today)

        completed_quests = []
        completed_quests += await self._advance_quest(quests.MAINTAIN_STREAK, 1)
        if not was_review:
            completed_quests += await self._advance_quest(quests.COMPLETE_LESSONS, 1)
            if xp:
                completed_quests += await self._advance_quest(quests.EARN_XP, xp)
        if perfect:
            completed_quests += await self._advance_quest(quests.PERFECT_SCORES, 1)

        new_achievements = await self.check_achievements()
        bonus = sum(q.reward for q in completed_quests) + sum(a.reward for a in new_achievements)
        logger.info(
            "User %s finished %s: +%d XP (+%d bonus)%s",
            self.user.id, lesson.id, xp, bonus, " [review]" if was_review else "",
        )
        return LessonResult(
            lesson_id=lesson.id,
            xp_earned=xp,
            was_review=was_review,
            perfect=perfect,
            level_before=level_before,
            level_after=self.level.level,
            stats=self.stats,
            new_achievements=new_achievements,
            completed_quests=completed_quests,
            bonus_xp=bonus,
        )

    async def snapshot(self) -> achievements.AchievementSnapshot:
        return achievements.AchievementSnapshot(
            lessons_completed=len(self.completed_ids),
            courses_completed=count_completed_courses(self.courses, self.completed_ids),
            streak=self.stats.streak,
            xp=self.stats.xp,
            perfect_scores=await self.store.get_perfect_scores(self.user.id),
            question_types_answered=await self.store.get_question_types_answered(self.user.id),
        )

    async def check_achievements(self) -> list:
        """Unlock everything the current metrics satisfy and credit the rewards.

        Reward XP can itself satisfy an XP achievement, so this repeats until
        nothing new unlocks.
        """
        unlocked_now = []
        while True:
            fresh = achievements.newly_unlocked(self.unlocked, await self.snapshot())
            if not fresh:
                return unlocked_now
            await self.store.unlock_achievements(self.user.id, fresh)
            for a in fresh:
                self.unlocked[a.id] = a.unlocked_at
                logger.info("User %s unlocked achievement %s", self.user.id, a.id)
            reward = sum(a.reward for a in fresh)
            if reward:
                self.stats = await self.store.add_xp(self.user.id, reward)
            unlocked_now += fresh

    async def _advance_quest(self, quest_type: str, amount: int) -> list:
        before = self.quests
        self.quests = quests.advance(before, quest_type, amount)
        done = quests.newly_completed(before, self.quests)
        if self.quests != before:
            await quests.save_quests(self.store, self.user.id, self.quests)
        reward = sum(q.reward for q in done)
        if reward:
            self.stats = await self.store.add_xp(self.user.id, reward)
        return done

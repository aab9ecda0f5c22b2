"""Daily quest generation, reset and progress tracking."""
from dataclasses import replace
from datetime import date
from typing import Optional

from eduquest.models import DailyQuest

COMPLETE_LESSONS = "COMPLETE_LESSONS"
ANSWER_QUESTIONS = "ANSWER_QUESTIONS"
MAINTAIN_STREAK = "MAINTAIN_STREAK"
EARN_XP = "EARN_XP"
PERFECT_SCORES = "PERFECT_SCORES"

# (type, id slug, title, description, target, reward)
QUEST_CATALOG = [
    (COMPLETE_LESSONS, "lessons", "Complete 3 Lessons", "Finish any 3 lessons today", 3, 50),
    (ANSWER_QUESTIONS, "questions", "Answer 10 Questions", "Answer 10 questions correctly", 10, 30),
    (MAINTAIN_STREAK, "streak", "Maintain Your Streak", "Keep your learning streak alive", 1, 20),
    (EARN_XP, "xp", "Earn 100 XP", "Collect 100 XP today", 100, 50),
    (PERFECT_SCORES, "perfect", "Get 2 Perfect Scores", "Complete 2 lessons with 100% accuracy", 2, 80),
]


def generate_daily_quests(today: Optional[date] = None) -> list[DailyQuest]:
    day = (today or date.today()).isoformat()
    return [
        DailyQuest(
            id=f"quest-{slug}-{day}",
            type=qtype,
            title=title,
            description=description,
            target=target,
            reward=reward,
            date=day,
        )
        for qtype, slug, title, description, target, reward in QUEST_CATALOG
    ]


def should_reset(quests: list[DailyQuest], today: Optional[date] = None) -> bool:
    if not quests:
        return True
    return quests[0].date != (today or date.today()).isoformat()


def advance(quests: list[DailyQuest], quest_type: str, amount: int = 1) -> list[DailyQuest]:
    """Return a new quest list with matching, unfinished quests advanced.

    Progress is clamped at the target and completed quests are left alone.
    """
    result = []
    for quest in quests:
        if quest.type == quest_type and not quest.completed:
            progress = min(quest.progress + amount, quest.target)
            quest = replace(quest, progress=progress, completed=progress >= quest.target)
        result.append(quest)
    return result


def newly_completed(before: list[DailyQuest], after: list[DailyQuest]) -> list[DailyQuest]:
    done_before = {q.id for q in before if q.completed}
    return [q for q in after if q.completed and q.id not in done_before]


def completed_rewards(quests: list[DailyQuest]) -> int:
    return sum(q.reward for q in quests if q.completed)


def completion_percentage(quests: list[DailyQuest]) -> int:
    if not quests:
        return 0
    done = sum(1 for q in quests if q.completed)
    return round(done / len(quests) * 100)


def quests_by_status(quests: list[DailyQuest], completed: bool) -> list[DailyQuest]:
    return [q for q in quests if q.completed == completed]


async def load_quests(store, user_id: str, today: Optional[date] = None) -> list[DailyQuest]:
    """Load today's quests, regenerating and saving a fresh set on a new day."""
    quests = await store.get_quests(user_id)
    if should_reset(quests, today):
        quests = generate_daily_quests(today)
        await store.save_quests(user_id, quests)
    return quests


async def save_quests(store, user_id: str, quests: list[DailyQuest]) -> None:
    await store.save_quests(user_id, quests)

"""SQLite-backed progress store.

Every method is a coroutine so callers await persistence the same way they
would a remote backend. The sqlite calls themselves run inline and block
the event loop for their duration; nothing is offloaded to a thread. Calls
are expected to be awaited one at a time from a single task, and there is
no locking between concurrent writers.
"""
import logging
import sqlite3
import uuid
from contextlib import contextmanager
from datetime import date, datetime
from typing import Optional

from eduquest.db import get_connection, init_db
from eduquest.errors import ProgressStoreError, UserNotFoundError
from eduquest.models import MAX_HEARTS, DailyQuest, User, UserStats

logger = logging.getLogger(__name__)


class ProgressStore:
    def __init__(self, db_path: str):
        self.db_path = db_path

    def initialize(self) -> None:
        init_db(self.db_path)

    @contextmanager
    def _connect(self):
        try:
            conn = get_connection(self.db_path)
        except sqlite3.Error as e:
            raise ProgressStoreError(f"Cannot open progress database: {e}") from e
        try:
            yield conn
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            logger.error("Progress store query failed: %s", e)
            raise ProgressStoreError(str(e)) from e
        finally:
            conn.close()

    @staticmethod
    def _stats_row(conn: sqlite3.Connection, user_id: str) -> sqlite3.Row:
        row = conn.execute("SELECT * FROM user_stats WHERE user_id = ?", (user_id,)).fetchone()
        if row is None:
            raise UserNotFoundError(f"User not found: {user_id}")
        return row

    @staticmethod
    def _completed_ids(conn: sqlite3.Connection, user_id: str) -> set[str]:
        rows = conn.execute(
            "SELECT lesson_id FROM completed_lessons WHERE user_id = ?", (user_id,)
        ).fetchall()
        return {r["lesson_id"] for r in rows}

    # --- Users ---

    async def create_user(self, name: str, email: str, avatar: Optional[str] = None) -> User:
        user = User(id=f"user-{uuid.uuid4().hex[:12]}", name=name, email=email.strip().lower(), avatar=avatar)
        with self._connect() as conn:
            if conn.execute("SELECT 1 FROM users WHERE email = ?", (user.email,)).fetchone():
                raise ProgressStoreError("An account with this email already exists.")
            conn.execute(
                "INSERT INTO users (id, name, email, avatar, created_at) VALUES (?, ?, ?, ?, ?)",
                (user.id, user.name, user.email, user.avatar, datetime.now().isoformat()),
            )
            conn.execute(
                "INSERT INTO user_stats (user_id, xp, streak, hearts) VALUES (?, 0, 0, ?)",
                (user.id, MAX_HEARTS),
            )
        logger.info("Registered user %s", user.id)
        return user

    async def get_user(self, user_id: str) -> User:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM users WHERE id = ?", (user_id,)).fetchone()
        if row is None:
            raise UserNotFoundError(f"User not found: {user_id}")
        return User(id=row["id"], name=row["name"], email=row["email"], avatar=row["avatar"])

    async def find_user_by_email(self, email: str) -> Optional[User]:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM users WHERE email = ?", (email.strip().lower(),)
            ).fetchone()
        if row is None:
            return None
        return User(id=row["id"], name=row["name"], email=row["email"], avatar=row["avatar"])

    async def update_user(self, user: User) -> User:
        with self._connect() as conn:
            cur = conn.execute(
                "UPDATE users SET name = ?, avatar = ? WHERE id = ?",
                (user.name, user.avatar, user.id),
            )
            if cur.rowcount == 0:
                raise UserNotFoundError(f"User not found: {user.id}")
        return user

    # --- Stats and lessons ---

    async def get_stats(self, user_id: str) -> UserStats:
        with self._connect() as conn:
            row = self._stats_row(conn, user_id)
        return UserStats(xp=row["xp"], streak=row["streak"], hearts=row["hearts"])

    async def get_completed_lesson_ids(self, user_id: str) -> set[str]:
        with self._connect() as conn:
            return self._completed_ids(conn, user_id)

    async def complete_lesson(
        self,
        user_id: str,
        lesson_id: str,
        xp_earned: int,
        was_already_completed: bool,
        perfect: bool = False,
        today: Optional[date] = None,
    ) -> tuple[UserStats, set[str]]:
        """Persist a lesson completion in one transaction.

        A first completion adds the lesson to the completed set and extends
        the streak (once per calendar day). A review only adds XP.
        """
        day = (today or date.today()).isoformat()
        with self._connect() as conn:
            row = self._stats_row(conn, user_id)
            streak = row["streak"]
            last_streak_date = row["last_streak_date"]
            if not was_already_completed:
                conn.execute(
                    "INSERT OR IGNORE INTO completed_lessons (user_id, lesson_id, completed_at) VALUES (?, ?, ?)",
                    (user_id, lesson_id, datetime.now().isoformat()),
                )
                if last_streak_date != day:
                    streak += 1
                    last_streak_date = day
            conn.execute(
                """UPDATE user_stats SET xp = xp + ?, streak = ?, last_streak_date = ?,
                perfect_scores = perfect_scores + ? WHERE user_id = ?""",
                (xp_earned, streak, last_streak_date, int(perfect), user_id),
            )
            stats_row = self._stats_row(conn, user_id)
            completed = self._completed_ids(conn, user_id)
        logger.debug("User %s completed %s (+%d XP)", user_id, lesson_id, xp_earned)
        stats = UserStats(xp=stats_row["xp"], streak=stats_row["streak"], hearts=stats_row["hearts"])
        return stats, completed

    async def add_xp(self, user_id: str, amount: int) -> UserStats:
        with self._connect() as conn:
            self._stats_row(conn, user_id)
            conn.execute("UPDATE user_stats SET xp = xp + ? WHERE user_id = ?", (amount, user_id))
            row = self._stats_row(conn, user_id)
        return UserStats(xp=row["xp"], streak=row["streak"], hearts=row["hearts"])

    async def set_streak(self, user_id: str, streak: int) -> UserStats:
        with self._connect() as conn:
            self._stats_row(conn, user_id)
            conn.execute("UPDATE user_stats SET streak = ? WHERE user_id = ?", (streak, user_id))
            row = self._stats_row(conn, user_id)
        return UserStats(xp=row["xp"], streak=row["streak"], hearts=row["hearts"])

    async def get_last_streak_date(self, user_id: str) -> Optional[date]:
        with self._connect() as conn:
            row = self._stats_row(conn, user_id)
        value = row["last_streak_date"]
        return date.fromisoformat(value) if value else None

    async def get_perfect_scores(self, user_id: str) -> int:
        with self._connect() as conn:
            return self._stats_row(conn, user_id)["perfect_scores"]

    # --- Hearts ---

    async def lose_heart(self, user_id: str) -> UserStats:
        with self._connect() as conn:
            self._stats_row(conn, user_id)
            conn.execute(
                "UPDATE user_stats SET hearts = MAX(hearts - 1, 0) WHERE user_id = ?", (user_id,)
            )
            row = self._stats_row(conn, user_id)
        return UserStats(xp=row["xp"], streak=row["streak"], hearts=row["hearts"])

    async def refill_hearts(self, user_id: str) -> UserStats:
        with self._connect() as conn:
            self._stats_row(conn, user_id)
            conn.execute("UPDATE user_stats SET hearts = ? WHERE user_id = ?", (MAX_HEARTS, user_id))
            row = self._stats_row(conn, user_id)
        logger.info("Refilled hearts for %s", user_id)
        return UserStats(xp=row["xp"], streak=row["streak"], hearts=row["hearts"])

    # --- Answers ---

    async def get_answer_history(self, user_id: str) -> dict[str, bool]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT question_id, is_correct FROM user_answers WHERE user_id = ?", (user_id,)
            ).fetchall()
        return {r["question_id"]: bool(r["is_correct"]) for r in rows}

    async def record_answer(
        self, user_id: str, question_id: str, is_correct: bool, question_type: Optional[str] = None,
    ) -> dict[str, bool]:
        """Overwrite the last-known correctness of a question; returns the full history."""
        with self._connect() as conn:
            self._stats_row(conn, user_id)
            conn.execute(
                """INSERT INTO user_answers (user_id, question_id, question_type, is_correct, answered_at)
                VALUES (?, ?, ?, ?, ?)
                ON CONFLICT(user_id, question_id) DO UPDATE SET
                question_type = excluded.question_type, is_correct = excluded.is_correct,
                answered_at = excluded.answered_at""",
                (user_id, question_id, question_type, int(is_correct), datetime.now().isoformat()),
            )
        return await self.get_answer_history(user_id)

    async def get_question_types_answered(self, user_id: str) -> set[str]:
        """Question types with at least one question last answered correctly."""
        with self._connect() as conn:
            rows = conn.execute(
                """SELECT DISTINCT question_type FROM user_answers
                WHERE user_id = ? AND is_correct = 1 AND question_type IS NOT NULL""",
                (user_id,),
            ).fetchall()
        return {r["question_type"] for r in rows}

    # --- Quests ---

    async def get_quests(self, user_id: str) -> list[DailyQuest]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM daily_quests WHERE user_id = ? ORDER BY position", (user_id,)
            ).fetchall()
        return [
            DailyQuest(
                id=r["quest_id"], type=r["type"], title=r["title"], description=r["description"],
                target=r["target"], reward=r["reward"], date=r["date"],
                progress=r["progress"], completed=bool(r["completed"]),
            )
            for r in rows
        ]

    async def save_quests(self, user_id: str, quests: list[DailyQuest]) -> None:
        """Replace the user's stored quest set."""
        with self._connect() as conn:
            conn.execute("DELETE FROM daily_quests WHERE user_id = ?", (user_id,))
            for position, q in enumerate(quests):
                conn.execute(
                    """INSERT INTO daily_quests
                    (user_id, quest_id, type, title, description, target, progress, reward, completed, date, position)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                    (user_id, q.id, q.type, q.title, q.description, q.target, q.progress,
                     q.reward, int(q.completed), q.date, position),
                )

    # --- Achievements ---

    async def get_achievements(self, user_id: str) -> dict[str, str]:
        """Unlocked achievement ids mapped to their unlock timestamps."""
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT achievement_id, unlocked_at FROM user_achievements WHERE user_id = ?", (user_id,)
            ).fetchall()
        return {r["achievement_id"]: r["unlocked_at"] for r in rows}

    async def unlock_achievements(self, user_id: str, achievements: list) -> None:
        with self._connect() as conn:
            for a in achievements:
                conn.execute(
                    "INSERT OR IGNORE INTO user_achievements (user_id, achievement_id, unlocked_at) VALUES (?, ?, ?)",
                    (user_id, a.id, a.unlocked_at),
                )

    # --- Activity ---

    async def log_activity(self, user_id: str, today: Optional[date] = None) -> int:
        """Count one qualifying activity for the day; returns the day's new count."""
        day = (today or date.today()).isoformat()
        with self._connect() as conn:
            conn.execute(
                """INSERT INTO activity_log (user_id, activity_date, count) VALUES (?, ?, 1)
                ON CONFLICT(user_id, activity_date) DO UPDATE SET count = count + 1""",
                (user_id, day),
            )
            row = conn.execute(
                "SELECT count FROM activity_log WHERE user_id = ? AND activity_date = ?", (user_id, day)
            ).fetchone()
        return row["count"]

    async def get_activity(self, user_id: str, since: Optional[date] = None) -> dict[str, int]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT activity_date, count FROM activity_log WHERE user_id = ? AND activity_date >= ?",
                (user_id, since.isoformat() if since else ""),
            ).fetchall()
        return {r["activity_date"]: r["count"] for r in rows}

    # --- Settings ---

    async def get_setting(self, key: str, default: Optional[str] = None) -> Optional[str]:
        with self._connect() as conn:
            row = conn.execute("SELECT value FROM user_settings WHERE key = ?", (key,)).fetchone()
        return row["value"] if row else default

    async def set_setting(self, key: str, value: Optional[str]) -> None:
        with self._connect() as conn:
            conn.execute(
                "INSERT INTO user_settings (key, value) VALUES (?, ?) ON CONFLICT(key) DO UPDATE SET value=?",
                (key, value, value),
            )

"""Course catalog: seeding, lookup and authoring."""
import json
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Optional

from eduquest.db import get_connection
from eduquest.errors import MalformedCourseError, ProgressStoreError
from eduquest.models import Course, Lesson, course_from_dict, course_to_dict
from eduquest.review import REVIEW_LESSON_PREFIX
from eduquest.scoring import base_xp

CONTENT_DIR = Path(__file__).parent / "content"


@contextmanager
def _catalog(db_path: str):
    try:
        conn = get_connection(db_path)
    except sqlite3.Error as e:
        raise ProgressStoreError(f"Cannot open course catalog: {e}") from e
    try:
        yield conn
        conn.commit()
    except sqlite3.Error as e:
        conn.rollback()
        raise ProgressStoreError(f"Course catalog query failed: {e}") from e
    finally:
        conn.close()


def is_seeded(db_path: str) -> bool:
    """Check whether the catalog already holds any course."""
    with _catalog(db_path) as conn:
        count = conn.execute("SELECT COUNT(*) FROM courses").fetchone()[0]
    return count > 0


def seed_courses(db_path: str) -> None:
    """Insert the bundled courses from courses.json."""
    if is_seeded(db_path):
        return
    data = json.loads((CONTENT_DIR / "courses.json").read_text(encoding="utf-8"))
    for raw in data["courses"]:
        create_course(db_path, course_from_dict(raw))


def get_courses(db_path: str) -> list[Course]:
    with _catalog(db_path) as conn:
        rows = conn.execute("SELECT data FROM courses ORDER BY position").fetchall()
    return [course_from_dict(json.loads(r["data"])) for r in rows]


def get_course(db_path: str, course_id: str) -> Optional[Course]:
    with _catalog(db_path) as conn:
        row = conn.execute("SELECT data FROM courses WHERE id = ?", (course_id,)).fetchone()
    return course_from_dict(json.loads(row["data"])) if row else None


def find_lesson(courses: list[Course], lesson_id: str) -> tuple[Course, Lesson] | None:
    for course in courses:
        for lesson in course.lessons:
            if lesson.id == lesson_id:
                return course, lesson
    return None


def create_course(db_path: str, course: Course) -> Course:
    with _catalog(db_path) as conn:
        if conn.execute("SELECT 1 FROM courses WHERE id = ?", (course.id,)).fetchone():
            raise MalformedCourseError(f"Course {course.id!r} already exists")
        position = conn.execute("SELECT COALESCE(MAX(position), -1) + 1 FROM courses").fetchone()[0]
        conn.execute(
            "INSERT INTO courses (id, title, position, data) VALUES (?, ?, ?, ?)",
            (course.id, course.title, position, json.dumps(course_to_dict(course))),
        )
    return course


def append_lesson(db_path: str, course_id: str, lesson: Lesson) -> Course:
    """Append a lesson to a stored course; the only mutation a course allows."""
    course = get_course(db_path, course_id)
    if course is None:
        raise MalformedCourseError(f"Course {course_id!r} not found")
    if any(l.id == lesson.id for l in course.lessons):
        raise MalformedCourseError(f"Lesson {lesson.id!r} already exists in {course_id!r}")
    course.lessons.append(lesson)
    with _catalog(db_path) as conn:
        conn.execute(
            "UPDATE courses SET data = ? WHERE id = ?", (json.dumps(course_to_dict(course)), course_id)
        )
    return course


def course_xp_total(course: Course) -> int:
    """XP available from a first pass through the course, before multipliers."""
    return sum(base_xp(l) for l in course.lessons)


def is_course_complete(course: Course, completed_ids: set[str]) -> bool:
    # appended review lessons are optional
    core = [l for l in course.lessons if not l.id.startswith(REVIEW_LESSON_PREFIX)]
    return bool(core) and all(l.id in completed_ids for l in core)


def count_completed_courses(courses: list[Course], completed_ids: set[str]) -> int:
    return sum(1 for c in courses if is_course_complete(c, completed_ids))

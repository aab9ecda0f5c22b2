"""Weak question identification and personalized review lessons."""
from typing import Optional

from eduquest.models import QUIZ, Course, Lesson

REVIEW_LESSON_PREFIX = "review-"


def weak_questions(course: Course, history: dict[str, bool]) -> list:
    """Questions in the course whose last answer was wrong, in course order."""
    seen = set()
    weak = []
    for lesson in course.lessons:
        if lesson.id.startswith(REVIEW_LESSON_PREFIX):
            continue
        for question in lesson.questions:
            if history.get(question.id) is False and question.id not in seen:
                seen.add(question.id)
                weak.append(question)
    return weak


def get_weak_courses(courses: list[Course], history: dict[str, bool]) -> list[dict]:
    """Courses with wrongly answered questions, worst first."""
    results = []
    for course in courses:
        answered = [
            q.id for l in course.lessons for q in l.questions
            if q.id in history and not l.id.startswith(REVIEW_LESSON_PREFIX)
        ]
        if not answered:
            continue
        errors = sum(1 for qid in answered if not history[qid])
        if errors:
            results.append({
                "course_id": course.id,
                "course_title": course.title,
                "total": len(answered),
                "errors": errors,
                "error_rate": round(errors / len(answered) * 100, 1),
            })
    return sorted(results, key=lambda r: r["error_rate"], reverse=True)


def build_review_lesson(course: Course, history: dict[str, bool], limit: int = 10) -> Optional[Lesson]:
    """A quiz of the course's weak questions, or None when there is nothing to review."""
    questions = weak_questions(course, history)[:limit]
    if not questions:
        return None
    existing = sum(1 for l in course.lessons if l.id.startswith(REVIEW_LESSON_PREFIX))
    return Lesson(
        id=f"{REVIEW_LESSON_PREFIX}{course.id}-{existing + 1}",
        title=f"Personalized Review {existing + 1}",
        type=QUIZ,
        questions=questions,
    )

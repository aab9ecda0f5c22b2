# tests/test_review.py
from eduquest.models import Course
from eduquest.review import build_review_lesson, get_weak_courses, weak_questions
from conftest import make_quiz


def _course(course_id="c1"):
    return Course(id=course_id, title="Spanish", lessons=[
        make_quiz(f"{course_id}-a", count=3), make_quiz(f"{course_id}-b", count=2),
    ])


def test_no_history_nothing_weak():
    assert weak_questions(_course(), {}) == []
    assert get_weak_courses([_course()], {}) == []
    assert build_review_lesson(_course(), {}) is None


def test_weak_questions_use_last_answer():
    history = {"c1-a-q0": False, "c1-a-q1": True, "c1-b-q1": False}
    assert [q.id for q in weak_questions(_course(), history)] == ["c1-a-q0", "c1-b-q1"]


def test_get_weak_courses_sorted_by_error_rate():
    history = {
        "c1-a-q0": False, "c1-a-q1": True, "c1-a-q2": True, "c1-b-q0": True,
        "c2-a-q0": False, "c2-a-q1": False,
    }
    weak = get_weak_courses([_course("c1"), _course("c2")], history)
    assert [w["course_id"] for w in weak] == ["c2", "c1"]
    assert weak[0]["error_rate"] == 100.0
    assert weak[1]["error_rate"] == 25.0
    assert weak[1]["errors"] == 1


def test_build_review_lesson():
    history = {"c1-a-q0": False, "c1-b-q0": False}
    lesson = build_review_lesson(_course(), history)
    assert lesson.id == "review-c1-1"
    assert lesson.title == "Personalized Review 1"
    assert lesson.type == "QUIZ"
    assert [q.id for q in lesson.questions] == ["c1-a-q0", "c1-b-q0"]


def test_review_lessons_numbered_and_skipped():
    course = _course()
    history = {"c1-a-q0": False}
    course.lessons.append(build_review_lesson(course, history))
    second = build_review_lesson(course, history)
    assert second.id == "review-c1-2"
    # questions inside earlier reviews are not counted twice
    assert [q.id for q in second.questions] == ["c1-a-q0"]


def test_review_limit():
    history = {f"c1-a-q{i}": False for i in range(3)}
    assert len(build_review_lesson(_course(), history, limit=2).questions) == 2

# tests/test_session.py
import pytest

from eduquest.errors import (
    IncompleteSubmissionError, LessonLockedError, LessonStateError, MalformedCourseError,
    OutOfHeartsError,
)
from eduquest.models import FillInTheBlankAnswer, Lesson, MultipleChoiceAnswer
from eduquest.session import CHECKED, COMPLETED, PRESENTING, LessonSession
from conftest import make_blank, make_mc, make_quiz

RIGHT = MultipleChoiceAnswer(1)
WRONG = MultipleChoiceAnswer(0)


class Recorder:
    def __init__(self):
        self.answers = []
        self.completed = []
        self.hearts_lost = 0

    def on_answer(self, question_id, is_correct):
        self.answers.append((question_id, is_correct))

    def on_complete(self, lesson_id, xp, perfect):
        self.completed.append((lesson_id, xp, perfect))

    def on_heart_lost(self):
        self.hearts_lost += 1


def _session(lesson, hearts=5, is_review=False):
    rec = Recorder()
    session = LessonSession(
        lesson, hearts=hearts, is_review=is_review,
        on_answer=rec.on_answer, on_complete=rec.on_complete, on_heart_lost=rec.on_heart_lost,
    )
    return session, rec


def test_starts_presenting_first_question():
    session, _ = _session(make_quiz(count=3))
    assert session.phase == PRESENTING
    assert session.index == 0
    assert session.current_question.id == "lesson-1-q0"
    assert session.progress == 0


def test_all_correct_quiz_completes_with_base_xp():
    lesson = make_quiz(count=5)
    session, rec = _session(lesson)
    for _ in range(5):
        assert session.submit(RIGHT) is True
        assert session.phase == CHECKED
        session.advance()
    assert session.phase == COMPLETED
    assert rec.completed == [("lesson-1", 50, True)]
    assert len(rec.answers) == 5
    assert rec.hearts_lost == 0


def test_advance_returns_true_only_at_end():
    session, _ = _session(make_quiz(count=2))
    session.submit(RIGHT)
    assert session.advance() is False
    session.submit(RIGHT)
    assert session.advance() is True


def test_wrong_answer_costs_heart_in_first_time_quiz():
    session, rec = _session(make_quiz(count=2), hearts=3)
    assert session.submit(WRONG) is False
    assert session.hearts == 2
    assert session.heart_lost
    assert rec.hearts_lost == 1
    assert rec.answers == [("lesson-1-q0", False)]


def test_imperfect_quiz_is_not_perfect():
    session, rec = _session(make_quiz(count=2))
    session.submit(WRONG)
    session.advance()
    session.submit(RIGHT)
    session.advance()
    assert rec.completed == [("lesson-1", 20, False)]


def test_last_heart_locks_session_until_refill():
    session, rec = _session(make_quiz(count=2), hearts=1)
    session.submit(WRONG)
    assert session.hearts == 0
    assert session.is_locked
    with pytest.raises(LessonLockedError):
        session.advance()
    assert session.phase == CHECKED
    session.refill_hearts()
    assert not session.is_locked
    session.advance()
    assert session.index == 1


def test_review_never_deducts_hearts():
    session, rec = _session(make_quiz(count=2), hearts=1, is_review=True)
    session.submit(WRONG)
    assert session.hearts == 1
    assert not session.is_locked
    assert rec.hearts_lost == 0
    assert rec.answers == [("lesson-1-q0", False)]
    session.advance()
    assert session.index == 1


def test_review_can_start_with_zero_hearts():
    session, _ = _session(make_quiz(), hearts=0, is_review=True)
    assert session.phase == PRESENTING


def test_first_time_quiz_cannot_start_without_hearts():
    with pytest.raises(OutOfHeartsError):
        LessonSession(make_quiz(), hearts=0)


def test_quiz_without_questions_rejected():
    with pytest.raises(MalformedCourseError):
        LessonSession(Lesson(id="x", title="Empty", type="QUIZ"))


def test_cannot_submit_twice():
    session, _ = _session(make_quiz())
    session.submit(RIGHT)
    with pytest.raises(LessonStateError):
        session.submit(RIGHT)


def test_cannot_advance_before_check():
    session, _ = _session(make_quiz())
    with pytest.raises(LessonStateError):
        session.advance()


def test_incomplete_submission_keeps_presenting():
    lesson = Lesson(id="l", title="Blank", type="QUIZ", questions=[make_blank()])
    session, rec = _session(lesson)
    with pytest.raises(IncompleteSubmissionError):
        session.submit(FillInTheBlankAnswer("  "))
    assert session.phase == PRESENTING
    assert rec.answers == []


def test_reading_inline_question_retries_without_penalty():
    lesson = Lesson(id="r", title="Read", type="READING", content="text", questions=[make_mc("r-q1")])
    session, rec = _session(lesson, hearts=1)
    session.submit(WRONG)
    assert session.hearts == 1
    assert rec.hearts_lost == 0
    assert session.advance() is False
    assert session.phase == PRESENTING
    assert session.index == 0
    session.submit(RIGHT)
    assert session.advance() is True
    assert rec.completed == [("r", 15, False)]


def test_retry_after_wrong_inline_answer():
    lesson = Lesson(id="v", title="Watch", type="VIDEO", video_id="abc", questions=[make_mc("v-q1")])
    session, _ = _session(lesson)
    session.submit(WRONG)
    session.retry()
    assert session.phase == PRESENTING


def test_retry_not_allowed_in_quiz():
    session, _ = _session(make_quiz())
    session.submit(WRONG)
    with pytest.raises(LessonStateError):
        session.retry()


def test_reading_without_questions_finishes():
    session, rec = _session(Lesson(id="r", title="Read", type="READING", content="text"))
    assert session.current_question is None
    session.finish()
    assert rec.completed == [("r", 15, False)]
    assert session.progress == 100


def test_finish_blocked_until_inline_questions_passed():
    lesson = Lesson(id="r", title="Read", type="READING", content="text", questions=[make_mc("r-q1")])
    session, _ = _session(lesson)
    with pytest.raises(LessonStateError):
        session.finish()


def test_quick_complete_awards_nothing():
    session, rec = _session(Lesson(id="v", title="Watch", type="VIDEO", video_id="abc"))
    session.quick_complete()
    assert rec.completed == [("v", 0, False)]


def test_quick_complete_not_for_quiz():
    session, _ = _session(make_quiz())
    with pytest.raises(LessonStateError):
        session.quick_complete()


def test_session_without_callbacks():
    session = LessonSession(make_quiz(count=1))
    session.submit(RIGHT)
    assert session.advance() is True
    assert session.earned_base_xp == 10
    assert session.perfect

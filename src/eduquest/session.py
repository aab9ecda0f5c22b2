"""Lesson session: sequences questions, checks answers and tracks hearts.

A session never owns the user's hearts or XP. It reports what happened
through callbacks (or return values) and the caller persists it.

    on_answer(question_id, is_correct)   after every checked answer
    on_heart_lost()                      wrong answer in a first-time quiz
    on_complete(lesson_id, base_xp, perfect)  once, when the lesson finishes
"""
from typing import Callable, Optional

from eduquest.errors import (
    LessonLockedError, LessonStateError, MalformedCourseError, OutOfHeartsError,
)
from eduquest.evaluator import evaluate
from eduquest.models import MAX_HEARTS, QUIZ, Lesson, Submission
from eduquest.scoring import base_xp

PRESENTING = "PRESENTING"
CHECKED = "CHECKED"
COMPLETED = "COMPLETED"


class LessonSession:
    def __init__(
        self,
        lesson: Lesson,
        hearts: int = MAX_HEARTS,
        is_review: bool = False,
        on_answer: Optional[Callable[[str, bool], None]] = None,
        on_complete: Optional[Callable[[str, int, bool], None]] = None,
        on_heart_lost: Optional[Callable[[], None]] = None,
    ):
        if lesson.type == QUIZ and not lesson.questions:
            raise MalformedCourseError(f"Quiz lesson {lesson.id!r} has no questions")
        if lesson.type == QUIZ and not is_review and hearts <= 0:
            raise OutOfHeartsError("You ran out of hearts! Refill them to start a new quiz.")
        self.lesson = lesson
        self.hearts = hearts
        self.is_review = is_review
        self.on_answer = on_answer
        self.on_complete = on_complete
        self.on_heart_lost = on_heart_lost
        self.index = 0
        self.phase = PRESENTING
        self.last_correct: Optional[bool] = None
        self.heart_lost = False
        self.correct_count = 0
        self.earned_base_xp: Optional[int] = None
        self.perfect = False
        self._locked = False
        self._passed: set[str] = set()

    @property
    def is_quiz(self) -> bool:
        return self.lesson.type == QUIZ

    @property
    def penalizes(self) -> bool:
        """Wrong answers cost a heart only in first-time quizzes."""
        return self.is_quiz and not self.is_review

    @property
    def questions(self) -> list:
        return self.lesson.questions

    @property
    def current_question(self):
        if self.phase == COMPLETED or self.index >= len(self.questions):
            return None
        return self.questions[self.index]

    @property
    def progress(self) -> float:
        if not self.questions:
            return 100.0 if self.phase == COMPLETED else 0.0
        return self.index / len(self.questions) * 100

    @property
    def is_locked(self) -> bool:
        return self._locked

    @property
    def is_complete(self) -> bool:
        return self.phase == COMPLETED

    @property
    def is_last_question(self) -> bool:
        return self.index == len(self.questions) - 1

    def submit(self, submission: Submission) -> bool:
        """Check the current question. Raises IncompleteSubmissionError if not checkable."""
        if self.phase != PRESENTING or self.current_question is None:
            raise LessonStateError(f"Cannot submit an answer while {self.phase.lower()}")
        question = self.current_question
        is_correct = evaluate(question, submission)
        self.phase = CHECKED
        self.last_correct = is_correct
        self.heart_lost = False
        if is_correct:
            self.correct_count += 1
            self._passed.add(question.id)
        elif self.penalizes:
            self.hearts = max(0, self.hearts - 1)
            self.heart_lost = True
            if self.hearts == 0:
                self._locked = True
        if self.on_answer:
            self.on_answer(question.id, is_correct)
        if self.heart_lost and self.on_heart_lost:
            self.on_heart_lost()
        return is_correct

    def advance(self) -> bool:
        """Move past a checked question. Returns True once the lesson is complete."""
        if self.phase != CHECKED:
            raise LessonStateError("Check the answer before continuing")
        if self._locked:
            raise LessonLockedError("You ran out of hearts! Refill them to continue this lesson.")
        if not self.is_quiz and not self.last_correct:
            # inline questions are retried until answered correctly
            self.phase = PRESENTING
            return False
        if self.index + 1 < len(self.questions):
            self.index += 1
            self.phase = PRESENTING
            return False
        self._complete(base_xp(self.lesson))
        return True

    def retry(self) -> None:
        """Re-present a wrongly answered inline question."""
        if self.phase != CHECKED or self.is_quiz or self.last_correct:
            raise LessonStateError("Only a wrong inline answer can be retried")
        self.phase = PRESENTING

    def finish(self) -> None:
        """Complete a reading or video lesson once its inline questions are passed."""
        if self.is_quiz:
            raise LessonStateError("Quiz lessons finish by answering every question")
        if self.phase == COMPLETED:
            raise LessonStateError("Lesson already completed")
        if any(q.id not in self._passed for q in self.questions):
            raise LessonStateError("Answer every question correctly before finishing")
        self._complete(base_xp(self.lesson))

    def quick_complete(self) -> None:
        """Mark a reading or video lesson as read without scoring."""
        if self.is_quiz:
            raise LessonStateError("Quiz lessons cannot be marked as read")
        if self.phase == COMPLETED:
            raise LessonStateError("Lesson already completed")
        self._complete(0)

    def refill_hearts(self, hearts: int = MAX_HEARTS) -> None:
        self.hearts = hearts
        self._locked = False

    def _complete(self, xp: int) -> None:
        self.phase = COMPLETED
        self.index = len(self.questions)
        self.earned_base_xp = xp
        self.perfect = self.is_quiz and self.correct_count == len(self.questions)
        if self.on_complete:
            self.on_complete(self.lesson.id, xp, self.perfect)

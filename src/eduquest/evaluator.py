"""Answer checking for the four question types."""
import random
from typing import Optional

from eduquest.errors import IncompleteSubmissionError, SubmissionMismatchError
from eduquest.models import (
    FillInTheBlankAnswer, FillInTheBlankQuestion, MatchingAnswer, MatchingQuestion,
    MultipleChoiceAnswer, MultipleChoiceQuestion, Question, SequencingAnswer,
    SequencingQuestion, Submission,
)

_ANSWER_SHAPES = {
    MultipleChoiceQuestion: MultipleChoiceAnswer,
    FillInTheBlankQuestion: FillInTheBlankAnswer,
    MatchingQuestion: MatchingAnswer,
    SequencingQuestion: SequencingAnswer,
}


def normalize(text: str) -> str:
    return text.strip().lower()


def shuffled(items: list, rng: Optional[random.Random] = None) -> list:
    """Return a uniformly shuffled copy of items (Fisher-Yates)."""
    rng = rng or random.Random()
    result = list(items)
    for i in range(len(result) - 1, 0, -1):
        j = rng.randint(0, i)
        result[i], result[j] = result[j], result[i]
    return result


def _check_shape(question: Question, submission: Submission) -> None:
    expected = _ANSWER_SHAPES[type(question)]
    if not isinstance(submission, expected):
        raise SubmissionMismatchError(
            f"{type(submission).__name__} cannot answer a {question.type} question"
        )


def is_complete(question: Question, submission: Optional[Submission]) -> bool:
    """Whether the answer can be checked yet (the UI keeps Check disabled until then)."""
    if submission is None:
        return False
    _check_shape(question, submission)
    if isinstance(question, MultipleChoiceQuestion):
        return submission.selected_index is not None
    if isinstance(question, FillInTheBlankQuestion):
        return bool(submission.text and submission.text.strip())
    if isinstance(question, MatchingQuestion):
        return all(p.id in submission.assignments for p in question.prompts)
    return len(submission.order) == len(question.items)


def evaluate(question: Question, submission: Submission) -> bool:
    """Return True if the submission answers the question correctly.

    Raises IncompleteSubmissionError when the submission is not checkable yet
    and SubmissionMismatchError when it belongs to another question type.
    """
    if not is_complete(question, submission):
        raise IncompleteSubmissionError(f"Answer to question {question.id!r} is incomplete")
    if isinstance(question, MultipleChoiceQuestion):
        return submission.selected_index == question.correct_answer_index
    if isinstance(question, FillInTheBlankQuestion):
        return normalize(submission.text) == normalize(question.correct_answer)
    if isinstance(question, MatchingQuestion):
        # answer ids double as the key: prompt p is matched by answer p.id
        return all(submission.assignments[p.id] == p.id for p in question.prompts)
    return list(submission.order) == list(question.items)


def new_submission(question: Question, rng: Optional[random.Random] = None) -> Submission:
    """Empty answer for a question, with sequencing items shuffled into the pool."""
    if isinstance(question, MultipleChoiceQuestion):
        return MultipleChoiceAnswer(selected_index=None)
    if isinstance(question, FillInTheBlankQuestion):
        return FillInTheBlankAnswer(text="")
    if isinstance(question, MatchingQuestion):
        return MatchingAnswer()
    return SequencingAnswer(available=shuffled(question.items, rng))

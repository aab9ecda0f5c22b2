"""Exception types raised by the lesson engine and its collaborators."""


class EduQuestError(Exception):
    """Base class for all EduQuest errors."""


class MalformedQuestionError(EduQuestError):
    """A question's type and its populated fields disagree."""


class MalformedCourseError(EduQuestError):
    """A course or lesson record is missing required fields."""


class IncompleteSubmissionError(EduQuestError):
    """An answer was checked before it was complete."""


class SubmissionMismatchError(EduQuestError):
    """An answer shape was submitted for the wrong kind of question."""


class LessonStateError(EduQuestError):
    """A lesson session action was called in the wrong phase."""


class LessonLockedError(LessonStateError):
    """Hearts ran out during a first-time quiz; a refill is required."""


class OutOfHeartsError(EduQuestError):
    """A first-time quiz cannot be started with zero hearts."""


class ProgressStoreError(EduQuestError):
    """The progress database failed to read or write."""


class UserNotFoundError(ProgressStoreError):
    pass


class CourseGenerationError(EduQuestError):
    """Course generation failed; the message is safe to show to the user."""


class TutorError(EduQuestError):
    """The AI tutor could not answer; the message is safe to show to the user."""

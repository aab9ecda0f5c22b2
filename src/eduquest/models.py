"""Data classes for the EduQuest domain model."""
from dataclasses import dataclass, field
from typing import ClassVar, Optional

from eduquest.errors import MalformedCourseError, MalformedQuestionError

MAX_HEARTS = 5

QUIZ = "QUIZ"
READING = "READING"
VIDEO = "VIDEO"
LESSON_TYPES = (QUIZ, READING, VIDEO)

MULTIPLE_CHOICE = "MULTIPLE_CHOICE"
FILL_IN_THE_BLANK = "FILL_IN_THE_BLANK"
MATCHING = "MATCHING"
SEQUENCING = "SEQUENCING"
QUESTION_TYPES = (MULTIPLE_CHOICE, FILL_IN_THE_BLANK, MATCHING, SEQUENCING)


@dataclass
class User:
    id: str
    name: str
    email: str
    avatar: Optional[str] = None


@dataclass
class UserStats:
    xp: int = 0
    streak: int = 0
    hearts: int = MAX_HEARTS


# --- Questions ---


@dataclass
class MatchItem:
    id: str
    content: str


@dataclass
class MultipleChoiceQuestion:
    type: ClassVar[str] = MULTIPLE_CHOICE
    id: str
    text: str
    options: list[str]
    correct_answer_index: int


@dataclass
class FillInTheBlankQuestion:
    type: ClassVar[str] = FILL_IN_THE_BLANK
    id: str
    text: str
    correct_answer: str


@dataclass
class MatchingQuestion:
    type: ClassVar[str] = MATCHING
    id: str
    text: str
    prompts: list[MatchItem]
    answers: list[MatchItem]


@dataclass
class SequencingQuestion:
    type: ClassVar[str] = SEQUENCING
    id: str
    text: str
    items: list[str]


Question = MultipleChoiceQuestion | FillInTheBlankQuestion | MatchingQuestion | SequencingQuestion


# --- Submissions ---


@dataclass
class MultipleChoiceAnswer:
    selected_index: int


@dataclass
class FillInTheBlankAnswer:
    text: str


@dataclass
class MatchingAnswer:
    """Prompt id -> answer id. Each answer may be assigned to one prompt only."""
    assignments: dict[str, str] = field(default_factory=dict)

    def assign(self, prompt_id: str, answer_id: str) -> None:
        for other, assigned in list(self.assignments.items()):
            if assigned == answer_id and other != prompt_id:
                del self.assignments[other]
        self.assignments[prompt_id] = answer_id

    def unassign(self, prompt_id: str) -> None:
        self.assignments.pop(prompt_id, None)


@dataclass
class SequencingAnswer:
    """Items placed so far, and the shuffled pool they are drawn from."""
    order: list[str] = field(default_factory=list)
    available: list[str] = field(default_factory=list)

    def place(self, item: str) -> None:
        if item not in self.available:
            raise ValueError(f"{item!r} is not available to place")
        self.available.remove(item)
        self.order.append(item)

    def remove(self, index: int) -> None:
        item = self.order.pop(index)
        self.available.append(item)


Submission = MultipleChoiceAnswer | FillInTheBlankAnswer | MatchingAnswer | SequencingAnswer


# --- Courses ---


@dataclass
class Lesson:
    id: str
    title: str
    type: str = QUIZ
    questions: list = field(default_factory=list)
    content: Optional[str] = None
    video_id: Optional[str] = None


@dataclass
class Course:
    id: str
    title: str
    lessons: list[Lesson] = field(default_factory=list)
    description: str = ""


# --- Gamification ---


@dataclass
class DailyQuest:
    id: str
    type: str
    title: str
    description: str
    target: int
    reward: int
    date: str
    progress: int = 0
    completed: bool = False


@dataclass
class Achievement:
    id: str
    title: str
    description: str
    icon: str
    condition: str
    reward: int
    unlocked_at: Optional[str] = None


@dataclass(frozen=True)
class StreakMilestone:
    days: int
    title: str
    multiplier: float
    badge: str


@dataclass(frozen=True)
class LevelInfo:
    level: int
    xp_in_level: int
    progress: float
    xp_for_next_level: int
    total_xp_for_next_level: int


# --- Parsing ---


def _require(data: dict, *keys: str) -> None:
    missing = [k for k in keys if data.get(k) is None]
    if missing:
        raise MalformedQuestionError(
            f"Question {data.get('id')!r} ({data.get('type')}) is missing {', '.join(missing)}"
        )


def _list_field(data: dict, key: str, qid: str) -> list:
    value = data[key]
    if not isinstance(value, list):
        raise MalformedQuestionError(f"Question {qid!r} field {key!r} must be a list")
    return value


def _match_items(data: dict, key: str, qid: str) -> list[MatchItem]:
    items = []
    for raw in _list_field(data, key, qid):
        if not isinstance(raw, dict) or raw.get("id") is None or raw.get("content") is None:
            raise MalformedQuestionError(f"Matching question {qid!r} has a {key[:-1]} without id or content")
        items.append(MatchItem(id=str(raw["id"]), content=str(raw["content"])))
    return items


def question_from_dict(data: dict) -> Question:
    """Build a question from its catalog dict, failing fast on a bad payload."""
    if not isinstance(data, dict):
        raise MalformedQuestionError(f"Question record must be an object, got {type(data).__name__}")
    qtype = data.get("type", MULTIPLE_CHOICE)
    _require(data, "id", "text")
    qid = str(data["id"])
    if qtype == MULTIPLE_CHOICE:
        _require(data, "options", "correctAnswerIndex")
        options = list(_list_field(data, "options", qid))
        index = data["correctAnswerIndex"]
        if not options or not isinstance(index, int) or not 0 <= index < len(options):
            raise MalformedQuestionError(f"Question {qid!r} has correct index {index!r} outside its options")
        return MultipleChoiceQuestion(id=qid, text=data["text"], options=options, correct_answer_index=index)
    if qtype == FILL_IN_THE_BLANK:
        _require(data, "correctAnswer")
        if not str(data["correctAnswer"]).strip():
            raise MalformedQuestionError(f"Question {qid!r} has an empty correct answer")
        return FillInTheBlankQuestion(id=qid, text=data["text"], correct_answer=str(data["correctAnswer"]))
    if qtype == MATCHING:
        _require(data, "prompts", "answers")
        prompts = _match_items(data, "prompts", qid)
        answers = _match_items(data, "answers", qid)
        if not prompts:
            raise MalformedQuestionError(f"Matching question {qid!r} has no prompts")
        if {p.id for p in prompts} != {a.id for a in answers} or len(answers) != len(prompts):
            raise MalformedQuestionError(f"Matching question {qid!r} prompt and answer ids differ")
        return MatchingQuestion(id=qid, text=data["text"], prompts=prompts, answers=answers)
    if qtype == SEQUENCING:
        _require(data, "items")
        items = [str(i) for i in _list_field(data, "items", qid)]
        if len(items) < 2:
            raise MalformedQuestionError(f"Sequencing question {qid!r} needs at least two items")
        if len(set(items)) != len(items):
            raise MalformedQuestionError(f"Sequencing question {qid!r} has duplicate items")
        return SequencingQuestion(id=qid, text=data["text"], items=items)
    raise MalformedQuestionError(f"Question {qid!r} has unknown type {qtype!r}")


def question_to_dict(question: Question) -> dict:
    data = {"id": question.id, "type": question.type, "text": question.text}
    if isinstance(question, MultipleChoiceQuestion):
        data.update(options=question.options, correctAnswerIndex=question.correct_answer_index)
    elif isinstance(question, FillInTheBlankQuestion):
        data["correctAnswer"] = question.correct_answer
    elif isinstance(question, MatchingQuestion):
        data["prompts"] = [{"id": p.id, "content": p.content} for p in question.prompts]
        data["answers"] = [{"id": a.id, "content": a.content} for a in question.answers]
    else:
        data["items"] = question.items
    return data


def _records(data: dict, key: str, owner: str) -> list:
    value = data.get(key) or []
    if not isinstance(value, list):
        raise MalformedCourseError(f"{owner!r} field {key!r} must be a list")
    return value


def lesson_from_dict(data: dict) -> Lesson:
    if not isinstance(data, dict) or not data.get("id") or not data.get("title"):
        raise MalformedCourseError(f"Lesson record is missing id or title: {data!r}")
    ltype = data.get("type", QUIZ)
    if ltype not in LESSON_TYPES:
        raise MalformedCourseError(f"Lesson {data['id']!r} has unknown type {ltype!r}")
    lesson = Lesson(
        id=data["id"],
        title=data["title"],
        type=ltype,
        questions=[question_from_dict(q) for q in _records(data, "questions", data["id"])],
        content=data.get("content"),
        video_id=data.get("videoId"),
    )
    if ltype == QUIZ and not lesson.questions:
        raise MalformedCourseError(f"Quiz lesson {lesson.id!r} has no questions")
    if ltype == READING and not lesson.content:
        raise MalformedCourseError(f"Reading lesson {lesson.id!r} has no content")
    if ltype == VIDEO and not lesson.video_id:
        raise MalformedCourseError(f"Video lesson {lesson.id!r} has no video id")
    return lesson


def lesson_to_dict(lesson: Lesson) -> dict:
    data = {"id": lesson.id, "title": lesson.title, "type": lesson.type}
    if lesson.questions:
        data["questions"] = [question_to_dict(q) for q in lesson.questions]
    if lesson.content is not None:
        data["content"] = lesson.content
    if lesson.video_id is not None:
        data["videoId"] = lesson.video_id
    return data


def course_from_dict(data: dict) -> Course:
    if not isinstance(data, dict) or not data.get("id") or not data.get("title"):
        raise MalformedCourseError("Course record is missing id or title")
    return Course(
        id=data["id"],
        title=data["title"],
        lessons=[lesson_from_dict(l) for l in _records(data, "lessons", data["id"])],
        description=data.get("description", ""),
    )


def course_to_dict(course: Course) -> dict:
    return {
        "id": course.id,
        "title": course.title,
        "description": course.description,
        "lessons": [lesson_to_dict(l) for l in course.lessons],
    }

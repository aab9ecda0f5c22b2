import pytest
import pytest_asyncio

from eduquest.models import (
    FillInTheBlankQuestion, Lesson, MatchingQuestion, MatchItem, MultipleChoiceQuestion,
    SequencingQuestion,
)
from eduquest.store import ProgressStore


@pytest.fixture
def tmp_db(tmp_path):
    """Provide a temporary SQLite database path for tests."""
    db_path = str(tmp_path / "test_eduquest.db")
    return db_path


@pytest.fixture
def store(tmp_db):
    store = ProgressStore(tmp_db)
    store.initialize()
    return store


@pytest_asyncio.fixture
async def user(store):
    return await store.create_user("Alex Doe", "alex.doe@example.com")


def make_mc(qid="q1", correct=1):
    return MultipleChoiceQuestion(
        id=qid, text="Which of these means \"Hello\"?",
        options=["Adiós", "Hola", "Gracias", "Por favor"], correct_answer_index=correct,
    )


def make_quiz(lesson_id="lesson-1", count=5):
    return Lesson(
        id=lesson_id, title="Greetings", type="QUIZ",
        questions=[make_mc(f"{lesson_id}-q{i}") for i in range(count)],
    )


def make_matching(qid="m1"):
    return MatchingQuestion(
        id=qid, text="Match the animals",
        prompts=[MatchItem("perro", "el perro"), MatchItem("gato", "el gato"), MatchItem("pez", "el pez")],
        answers=[MatchItem("gato", "the cat"), MatchItem("pez", "the fish"), MatchItem("perro", "the dog")],
    )


def make_sequencing(qid="s1"):
    return SequencingQuestion(id=qid, text="Count", items=["uno", "dos", "tres", "cuatro"])


def make_blank(qid="f1"):
    return FillInTheBlankQuestion(id=qid, text="Water is ____", correct_answer="agua")

"""AI tutor chat grounded in the lesson the user is working on."""
import logging
import os
from typing import Callable, Optional

from eduquest.errors import TutorError
from eduquest.generator import DEFAULT_MODEL, openai_client
from eduquest.models import Lesson, MultipleChoiceQuestion

logger = logging.getLogger(__name__)

MAX_CONTEXT_CHARS = 4000

SYSTEM_PROMPT = (
    "You are QuestBot, a friendly and encouraging AI tutor for the EduQuest learning platform. "
    "Your goal is to help users understand the course material without giving away direct answers "
    "to quiz questions. Explain concepts clearly, provide examples, and ask guiding questions to help "
    "the user arrive at the answer themselves. Keep your tone positive and supportive."
)


def lesson_context(lesson: Lesson) -> str:
    """Describe a lesson for the tutor. Correct answers are left out."""
    lines = [f"The user is working on the {lesson.type.lower()} lesson \"{lesson.title}\"."]
    if lesson.content:
        lines += ["Lesson text:", lesson.content[:MAX_CONTEXT_CHARS]]
    if lesson.questions:
        lines.append("Questions in this lesson:")
        for q in lesson.questions:
            lines.append(f"- {q.text}")
            if isinstance(q, MultipleChoiceQuestion):
                lines.append(f"  Options: {', '.join(q.options)}")
    return "\n".join(lines)


class TutorChat:
    """A multi-turn conversation with the tutor.

    ``chat`` takes the full message list (system prompt first) and returns
    the assistant's reply text.
    """

    def __init__(self, chat: Callable[[list[dict]], str], lesson: Optional[Lesson] = None):
        self.chat = chat
        self.lesson = lesson
        self.history: list[dict] = []

    @property
    def greeting(self) -> str:
        if self.lesson:
            return f"Hi! I see you're working on the lesson \"{self.lesson.title}\". Ask me anything about it!"
        return "Hi there! I'm QuestBot. How can I help you today?"

    def system_message(self) -> dict:
        content = SYSTEM_PROMPT
        if self.lesson:
            content += "\n\n" + lesson_context(self.lesson)
        return {"role": "system", "content": content}

    def ask(self, text: str) -> str:
        """Send one user message and return the tutor's reply.

        Raises:
            TutorError: on empty input or when the model call fails. A failed
                turn is dropped from the history.
        """
        if not text or not text.strip():
            raise TutorError("Please type a question for the tutor.")
        self.history.append({"role": "user", "content": text.strip()})
        try:
            reply = self.chat([self.system_message()] + self.history)
        except TutorError:
            self.history.pop()
            raise
        except Exception as e:
            self.history.pop()
            logger.exception("Tutor request failed")
            raise TutorError(f"Oops! The tutor could not answer: {e}") from e
        self.history.append({"role": "assistant", "content": reply})
        return reply


def openai_chat(model: Optional[str] = None, api_key: Optional[str] = None) -> Callable[[list[dict]], str]:
    """Chat function backed by the OpenAI chat API."""
    client = openai_client(api_key, error=TutorError)
    model = model or os.environ.get("EDUQUEST_MODEL", DEFAULT_MODEL)

    def chat(messages: list[dict]) -> str:
        response = client.chat.completions.create(model=model, messages=messages)
        return response.choices[0].message.content or ""

    return chat

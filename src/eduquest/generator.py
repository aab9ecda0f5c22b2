"""AI-assisted course generation from study material."""
import json
import logging
import os
import time
from pathlib import Path
from typing import Callable, Optional

from eduquest.errors import CourseGenerationError, EduQuestError
from eduquest.models import QUIZ, Course, Lesson, question_from_dict

logger = logging.getLogger(__name__)

MAX_CONTENT_CHARS = 20000
DEFAULT_MODEL = "gpt-4o-mini"

PROMPT_TEMPLATE = """You are an expert instructional designer tasked with converting raw text into a structured mini-course for an EdTech platform.

Analyze the following content and identify its main sections or chapters. Create a comprehensive course based on this structure.

Your output must be a single JSON object with the following schema:
1.  A concise, engaging 'title' for the entire course.
2.  An array of 'lessons', one for each major section you identify.
3.  Each lesson object in the array must have:
    a. A clear, descriptive 'title'.
    b. An array of 3 to 5 multiple-choice 'questions' that test the key concepts from that section.
4.  Each question object must have:
    a. The question 'text'.
    b. An array of exactly 4 string 'options'.
    c. The 'correctAnswerIndex' (an integer from 0 to 3).

Do not include any markdown formatting like ```json in your response.

Content to analyze:
---
{content}
---
"""


def _read_text(path: Path) -> str:
    return path.read_text(encoding="utf-8")


def _read_json(path: Path) -> str:
    data = json.loads(_read_text(path))
    return json.dumps(data, indent=2, ensure_ascii=False)


def _read_yaml(path: Path) -> str:
    import yaml
    return yaml.safe_dump(yaml.safe_load(_read_text(path)), allow_unicode=True)


def _read_pdf(path: Path) -> str:
    from PyPDF2 import PdfReader
    return "\n".join(page.extract_text() or "" for page in PdfReader(str(path)).pages)


def _read_docx(path: Path) -> str:
    from docx import Document
    return "\n".join(p.text for p in Document(str(path)).paragraphs)


def _read_html(path: Path) -> str:
    from bs4 import BeautifulSoup
    return BeautifulSoup(_read_text(path), "html.parser").get_text("\n", strip=True)


READERS = {
    ".json": _read_json,
    ".yaml": _read_yaml,
    ".yml": _read_yaml,
    ".pdf": _read_pdf,
    ".docx": _read_docx,
    ".html": _read_html,
    ".htm": _read_html,
}


def read_file_content(file_path: str) -> str:
    """Extract the text of a study file to build a course from.

    Plain text is the fallback for unknown suffixes. YAML, PDF, Word and HTML
    need the optional ``import`` extra.

    Raises:
        CourseGenerationError: if the file is missing, unreadable, or its
            format needs a package that is not installed.
    """
    path = Path(file_path)
    reader = READERS.get(path.suffix.lower(), _read_text)
    try:
        return reader(path)
    except ImportError as e:
        raise CourseGenerationError(
            f"Reading {path.suffix} files needs an extra package ({e.name}). "
            "Install it with: pip install 'eduquest[import]'"
        ) from e
    except Exception as e:
        logger.error("Could not read %s: %s", path, e)
        raise CourseGenerationError(f"Could not read {path.name}: {e}") from e


def build_prompt(text: str) -> str:
    return PROMPT_TEMPLATE.format(content=text[:MAX_CONTENT_CHARS])


def _strip_fences(raw: str) -> str:
    raw = raw.strip()
    if raw.startswith("```"):
        raw = raw.split("\n", 1)[1] if "\n" in raw else ""
        if raw.rstrip().endswith("```"):
            raw = raw.rstrip()[:-3]
    return raw.strip()


def _timestamp_ids() -> Callable[[str], str]:
    stamp = int(time.time() * 1000)
    return lambda suffix: f"{suffix}-{stamp}"


def parse_course(payload: dict, make_id: Optional[Callable[[str], str]] = None) -> Course:
    """Turn the model's JSON into a Course of multiple-choice quiz lessons."""
    make_id = make_id or _timestamp_ids()
    title = payload.get("title")
    raw_lessons = payload.get("lessons")
    if not title or not isinstance(raw_lessons, list) or not raw_lessons:
        raise CourseGenerationError("The generated course has no title or lessons.")
    lessons = []
    for l_index, raw in enumerate(raw_lessons):
        raw_questions = raw.get("questions") or []
        if not raw.get("title") or not raw_questions:
            raise CourseGenerationError(f"Generated lesson {l_index + 1} has no title or questions.")
        questions = [
            question_from_dict({**q, "type": "MULTIPLE_CHOICE", "id": make_id(f"q-{l_index}-{q_index}")})
            for q_index, q in enumerate(raw_questions)
        ]
        lessons.append(Lesson(id=make_id(f"lesson-{l_index}"), title=raw["title"], type=QUIZ, questions=questions))
    return Course(id=make_id("course"), title=title, lessons=lessons)


def generate_course(text: str, complete: Callable[[str], str]) -> Course:
    """Generate a course from text using a model completion function.

    Args:
        text: Source material; truncated to MAX_CONTENT_CHARS.
        complete: Sends a prompt to the model and returns its raw text reply.

    Returns:
        The parsed Course.

    Raises:
        CourseGenerationError: for any failure, with a message fit for the user.
    """
    if not text or not text.strip():
        raise CourseGenerationError("Please provide some content to generate a course from.")
    try:
        raw = complete(build_prompt(text))
        return parse_course(json.loads(_strip_fences(raw)))
    except CourseGenerationError:
        raise
    except (json.JSONDecodeError, EduQuestError, AttributeError, TypeError, KeyError) as e:
        logger.error("Model returned an unusable course: %s", e)
        raise CourseGenerationError(
            "Failed to generate course. The AI model returned an unexpected format."
        ) from e
    except Exception as e:
        logger.exception("Course generation request failed")
        raise CourseGenerationError(f"Failed to generate course: {e}") from e


def openai_client(api_key: Optional[str] = None, error: type[EduQuestError] = CourseGenerationError):
    """OpenAI client from the given key or OPENAI_API_KEY.

    A missing package or missing key is raised as ``error`` so callers keep a
    single failure type at their boundary.
    """
    try:
        from openai import OpenAI, OpenAIError
    except ImportError as e:
        raise error(
            "The 'openai' package is required for AI features. Install it with: pip install 'eduquest[ai]'"
        ) from e
    try:
        return OpenAI(api_key=api_key or os.environ.get("OPENAI_API_KEY"))
    except OpenAIError as e:
        raise error(f"Cannot connect to the AI model: {e}") from e


def openai_completion(model: Optional[str] = None, api_key: Optional[str] = None) -> Callable[[str], str]:
    """Completion function backed by the OpenAI chat API."""
    client = openai_client(api_key)
    model = model or os.environ.get("EDUQUEST_MODEL", DEFAULT_MODEL)

    def complete(prompt: str) -> str:
        response = client.chat.completions.create(
            model=model,
            messages=[{"role": "user", "content": prompt}],
            response_format={"type": "json_object"},
        )
        return response.choices[0].message.content or ""

    return complete

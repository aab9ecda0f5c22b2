# tests/test_generator.py
import json
import sys

import pytest

from eduquest.errors import CourseGenerationError
from eduquest.generator import (
    MAX_CONTENT_CHARS, build_prompt, generate_course, openai_completion, parse_course, read_file_content,
)

PAYLOAD = {
    "title": "Cloud Basics",
    "lessons": [
        {
            "title": "Regions",
            "questions": [
                {"text": "What is a region?", "options": ["A", "B", "C", "D"], "correctAnswerIndex": 2},
                {"text": "What is a zone?", "options": ["A", "B", "C", "D"], "correctAnswerIndex": 0},
            ],
        },
        {
            "title": "Storage",
            "questions": [
                {"text": "Which is object storage?", "options": ["A", "B", "C", "D"], "correctAnswerIndex": 1},
            ],
        },
    ],
}


def _ids(suffix):
    return f"{suffix}-1"


def test_read_txt_file(tmp_path):
    f = tmp_path / "notes.txt"
    f.write_text("Photosynthesis turns light into chemical energy.")
    assert "Photosynthesis" in read_file_content(str(f))


def test_read_md_file(tmp_path):
    f = tmp_path / "notes.md"
    f.write_text("# Cells\n\nMitochondria produce energy.")
    assert "Mitochondria" in read_file_content(str(f))


def test_read_json_file(tmp_path):
    f = tmp_path / "notes.json"
    f.write_text('{"notes": "DNS resolves names"}')
    assert "DNS" in read_file_content(str(f))


def test_build_prompt_truncates_content():
    prompt = build_prompt("x" * (MAX_CONTENT_CHARS + 500))
    assert "x" * MAX_CONTENT_CHARS in prompt
    assert "x" * (MAX_CONTENT_CHARS + 1) not in prompt
    assert "correctAnswerIndex" in prompt


def test_parse_course_builds_quiz_lessons():
    course = parse_course(PAYLOAD, make_id=_ids)
    assert course.id == "course-1"
    assert course.title == "Cloud Basics"
    assert [l.title for l in course.lessons] == ["Regions", "Storage"]
    assert all(l.type == "QUIZ" for l in course.lessons)
    first = course.lessons[0].questions[0]
    assert first.type == "MULTIPLE_CHOICE"
    assert first.id == "q-0-0-1"
    assert first.correct_answer_index == 2


def test_parse_course_rejects_empty():
    with pytest.raises(CourseGenerationError):
        parse_course({"title": "Nothing", "lessons": []})
    with pytest.raises(CourseGenerationError):
        parse_course({"title": "T", "lessons": [{"title": "L", "questions": []}]})


def test_generate_course_with_fake_model():
    prompts = []

    def complete(prompt):
        prompts.append(prompt)
        return json.dumps(PAYLOAD)

    course = generate_course("Regions and zones are ...", complete)
    assert len(course.lessons) == 2
    assert "Regions and zones" in prompts[0]


def test_generate_course_strips_code_fences():
    course = generate_course("text", lambda p: "```json\n" + json.dumps(PAYLOAD) + "\n```")
    assert course.title == "Cloud Basics"


def test_generate_course_bad_json():
    with pytest.raises(CourseGenerationError, match="unexpected format"):
        generate_course("text", lambda p: "Sure! Here is your course.")


def test_generate_course_malformed_question():
    bad = {"title": "T", "lessons": [{"title": "L", "questions": [
        {"text": "Q", "options": ["A", "B"], "correctAnswerIndex": 5},
    ]}]}
    with pytest.raises(CourseGenerationError):
        generate_course("text", lambda p: json.dumps(bad))


def test_generate_course_empty_text():
    with pytest.raises(CourseGenerationError, match="provide some content"):
        generate_course("   ", lambda p: json.dumps(PAYLOAD))


def test_generate_course_model_failure():
    def complete(prompt):
        raise ConnectionError("network down")

    with pytest.raises(CourseGenerationError, match="network down"):
        generate_course("text", complete)


def test_read_missing_file(tmp_path):
    with pytest.raises(CourseGenerationError, match="missing.txt"):
        read_file_content(str(tmp_path / "missing.txt"))


def test_read_undecodable_text(tmp_path):
    f = tmp_path / "notes.txt"
    f.write_bytes(b"\xff\xfe bad \x81")
    with pytest.raises(CourseGenerationError):
        read_file_content(str(f))


def test_read_bad_json(tmp_path):
    f = tmp_path / "notes.json"
    f.write_text("{not json")
    with pytest.raises(CourseGenerationError, match="notes.json"):
        read_file_content(str(f))


def test_read_pdf_without_import_extra(tmp_path, monkeypatch):
    monkeypatch.setitem(sys.modules, "PyPDF2", None)
    f = tmp_path / "notes.pdf"
    f.write_bytes(b"%PDF-1.4")
    with pytest.raises(CourseGenerationError, match=r"eduquest\[import\]"):
        read_file_content(str(f))


def test_openai_completion_without_api_key(monkeypatch):
    """No key (or no openai package) surfaces as a generation error."""
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    with pytest.raises(CourseGenerationError):
        openai_completion()

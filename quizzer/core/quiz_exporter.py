"""Utilities for exporting quizzes to the plain-text format used for imports."""

from __future__ import annotations

from pathlib import Path
import string

from quizzer.core.models import Question, Quiz

_OPTION_LETTERS = string.ascii_uppercase


def save_quiz_to_file(file_path: Path, quiz: Quiz) -> None:
    """Persist the quiz to disk in the text import format."""

    if not quiz.questions:
        raise ValueError("Cannot export an empty quiz.")
    if any(len(question.options) > len(_OPTION_LETTERS) for question in quiz.questions):
        raise ValueError(f"Cannot export more than {len(_OPTION_LETTERS)} options per question.")

    file_path = file_path.resolve()
    file_path.parent.mkdir(parents=True, exist_ok=True)
    file_path.write_text(serialize_quiz(quiz), encoding="utf-8")


def serialize_quiz(quiz: Quiz) -> str:
    blocks = [_serialize_header(quiz)] + [_serialize_question(q) for q in quiz.questions]
    return "\n\n---\n\n".join(blocks) + "\n"


def _serialize_header(quiz: Quiz) -> str:
    lines = [f"TITLE: {quiz.title}"]
    if quiz.description:
        lines.append(f"DESCRIPTION: {' '.join(quiz.description.splitlines())}")
    lines.append(f"TIMELIMIT: {_format_number(quiz.time_limit_value)} {quiz.time_limit_unit.value}")
    lines.append(f"SHUFFLE: {'yes' if quiz.shuffle_questions else 'no'}")
    return "\n".join(lines)


def _serialize_question(question: Question) -> str:
    lines: list[str] = []

    question_lines = question.prompt.splitlines() or [question.prompt]
    lines.append(f"Q: {question_lines[0] if question_lines else ''}")
    lines.extend(question_lines[1:])

    for letter, option in zip(_OPTION_LETTERS, question.options):
        option_lines = option.text.splitlines() or [option.text]
        lines.append(f"{letter}: {option_lines[0] if option_lines else ''}")
        lines.extend(option_lines[1:])

    option_ids = [option.id for option in question.options]
    if question.correct_answer_id in option_ids:
        lines.append(f"CORRECT: {_OPTION_LETTERS[option_ids.index(question.correct_answer_id)]}")

    lines.append(f"POINTS: {_format_number(question.point_value)}")
    if not question.required:
        lines.append("REQUIRED: no")

    return "\n".join(lines)


def _format_number(value: float) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)

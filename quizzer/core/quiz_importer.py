"""Utilities for importing quizzes from a human-friendly text file.

File format: an optional header block, then question blocks separated by blank
lines or '---':

    TITLE: Quiz title
    DESCRIPTION: One line describing the quiz      (optional)
    TIMELIMIT: 10 minutes                          (value + seconds|minutes, default minutes)
    SHUFFLE: yes|no                                (optional, default no)

    Q: Question text. Additional lines until the next marker are treated as
       part of the question.
    A: First option text
    B: Second option text
    C: Third option text                           (options A..Z, at least two)
    CORRECT: A|B|...    (optional, leave out while drafting)
    POINTS: 2           (optional, default 1)
    REQUIRED: yes|no    (optional, default yes)

Example:

    TITLE: Arithmetic
    TIMELIMIT: 90 seconds

    Q: What is 2 + 2?
    A: 3
    B: 4
    C: 22
    CORRECT: B
    POINTS: 2

Imported quizzes always come back as drafts with freshly generated ids; they
go through the normal publish validation before anyone can take them.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
import string
from typing import Callable

from quizzer.constants.quiz_constants import DEFAULT_POINT_VALUE, DEFAULT_TIME_LIMIT_VALUE
from quizzer.core.clock import Clock, now_ms
from quizzer.core.id_generator import generate_id
from quizzer.core.models import Option, Question, Quiz, QuizStatus, TimeUnit


class QuizImportError(Exception):
    """Raised when a quiz definition cannot be parsed."""


@dataclass(slots=True)
class ImportedQuiz:
    """Container for the imported quiz and the file it came from."""

    source_path: Path
    quiz: Quiz


@dataclass(slots=True)
class _QuizHeader:
    title: str = ""
    description: str = ""
    time_limit_value: float = DEFAULT_TIME_LIMIT_VALUE
    time_limit_unit: TimeUnit = TimeUnit.MINUTES
    shuffle_questions: bool = False


_OPTION_LETTERS = string.ascii_uppercase
_HEADER_KEYS = ("TITLE:", "DESCRIPTION:", "TIMELIMIT:", "SHUFFLE:")
_YES = {"yes", "y", "true", "1"}
_NO = {"no", "n", "false", "0"}


def load_quiz_from_file(
    file_path: Path,
    id_factory: Callable[[], str] = generate_id,
    clock: Clock = now_ms,
) -> ImportedQuiz:
    text = file_path.read_text(encoding="utf-8")
    quiz = parse_quiz_text(text, id_factory=id_factory, clock=clock)
    return ImportedQuiz(source_path=file_path, quiz=quiz)


def parse_quiz_text(
    text: str,
    id_factory: Callable[[], str] = generate_id,
    clock: Clock = now_ms,
) -> Quiz:
    blocks = _split_blocks(text)
    header = _QuizHeader()
    if blocks and _is_header_block(blocks[0]):
        header = _parse_header(blocks.pop(0))

    questions = [_parse_block(block, id_factory) for block in blocks]
    if not questions:
        raise QuizImportError("Quiz file did not contain any questions.")

    now = clock()
    return Quiz(
        id=id_factory(),
        title=header.title,
        description=header.description,
        time_limit_value=header.time_limit_value,
        time_limit_unit=header.time_limit_unit,
        shuffle_questions=header.shuffle_questions,
        questions=questions,
        status=QuizStatus.DRAFT,
        created_at=now,
        updated_at=now,
    )


def _split_blocks(text: str) -> list[str]:
    blocks: list[str] = []
    current_block: list[str] = []
    for raw_line in text.splitlines():
        stripped = raw_line.strip()
        if stripped == "---":
            if current_block:
                blocks.append("\n".join(current_block).strip())
                current_block = []
            continue
        if stripped:
            current_block.append(raw_line)
        elif current_block:
            blocks.append("\n".join(current_block).strip())
            current_block = []
    if current_block:
        blocks.append("\n".join(current_block).strip())
    return [block for block in blocks if block]


def _is_header_block(block: str) -> bool:
    first_line = block.splitlines()[0].strip().upper()
    return first_line.startswith(_HEADER_KEYS)


def _parse_header(block: str) -> _QuizHeader:
    header = _QuizHeader()
    for raw_line in block.splitlines():
        line = raw_line.strip()
        upper = line.upper()
        value = line.split(":", 1)[1].strip() if ":" in line else ""
        if upper.startswith("TITLE:"):
            header.title = value
        elif upper.startswith("DESCRIPTION:"):
            header.description = value
        elif upper.startswith("TIMELIMIT:"):
            header.time_limit_value, header.time_limit_unit = _parse_time_limit(value)
        elif upper.startswith("SHUFFLE:"):
            header.shuffle_questions = _parse_flag(value, "SHUFFLE")
        else:
            raise QuizImportError(f"Unknown header line: '{line}'.")
    return header


def _parse_time_limit(raw_value: str) -> tuple[float, TimeUnit]:
    parts = raw_value.split()
    if not parts or len(parts) > 2:
        raise QuizImportError("TIMELIMIT must be a number optionally followed by seconds or minutes.")
    try:
        value = float(parts[0])
    except ValueError as exc:
        raise QuizImportError("TIMELIMIT must start with a number.") from exc
    if value <= 0:
        raise QuizImportError("TIMELIMIT must be positive.")

    unit = TimeUnit.MINUTES
    if len(parts) == 2:
        unit_text = parts[1].lower()
        if unit_text in ("s", "sec", "secs", "second", "seconds"):
            unit = TimeUnit.SECONDS
        elif unit_text not in ("m", "min", "mins", "minute", "minutes"):
            raise QuizImportError(f"Unknown TIMELIMIT unit '{parts[1]}'.")
    return (int(value) if value.is_integer() else value), unit


def _parse_flag(raw_value: str, key: str) -> bool:
    lowered = raw_value.lower()
    if lowered in _YES:
        return True
    if lowered in _NO:
        return False
    raise QuizImportError(f"{key} must be yes or no.")


def _parse_block(block: str, id_factory: Callable[[], str]) -> Question:
    question_lines: list[str] = []
    options: dict[str, str] = {}
    correct_letter: str | None = None
    point_value: float = DEFAULT_POINT_VALUE
    required = True
    current_section: str | None = None

    for raw_line in block.splitlines():
        line = raw_line.strip()
        if not line:
            continue

        upper = line.upper()
        if upper.startswith("Q:"):
            question_lines = [line[2:].strip()]
            current_section = "Q"
            continue

        if upper.startswith("CORRECT:"):
            correct_letter = line.split(":", 1)[1].strip().upper()
            current_section = None
            continue

        if upper.startswith("POINTS:"):
            raw_value = line.split(":", 1)[1].strip()
            try:
                point_value = float(raw_value)
            except ValueError as exc:
                raise QuizImportError("POINTS must be a number.") from exc
            if point_value < 0:
                raise QuizImportError("POINTS cannot be negative.")
            if point_value.is_integer():
                point_value = int(point_value)
            current_section = None
            continue

        if upper.startswith("REQUIRED:"):
            required = _parse_flag(line.split(":", 1)[1].strip(), "REQUIRED")
            current_section = None
            continue

        if len(line) >= 2 and line[0].upper() in _OPTION_LETTERS and line[1] == ":":
            letter = line[0].upper()
            options[letter] = line[2:].strip()
            current_section = letter
            continue

        if current_section == "Q":
            question_lines.append(line)
        elif current_section in options:
            options[current_section] = options[current_section] + f"\n{line}"
        else:
            raise QuizImportError(f"Encountered text outside of a known section: '{line}'.")

    if not question_lines:
        raise QuizImportError("Question text missing (Q: ...)")

    expected_letters = list(_OPTION_LETTERS[: len(options)])
    if sorted(options) != expected_letters:
        raise QuizImportError("Options must be lettered consecutively starting at A.")
    if len(options) < 2:
        raise QuizImportError("Each question must define at least two options.")

    option_list = [Option(id=id_factory(), text=options[letter].strip()) for letter in expected_letters]

    correct_answer_id = ""
    if correct_letter is not None:
        if correct_letter not in expected_letters:
            raise QuizImportError(
                f"CORRECT must be one of {', '.join(expected_letters)}."
            )
        correct_answer_id = option_list[expected_letters.index(correct_letter)].id

    question_text = "\n".join(question_lines).strip()
    if not question_text:
        raise QuizImportError("Question text cannot be empty.")

    return Question(
        id=id_factory(),
        prompt=question_text,
        required=required,
        point_value=point_value,
        options=option_list,
        correct_answer_id=correct_answer_id,
    )

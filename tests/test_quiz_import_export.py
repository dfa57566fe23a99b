from __future__ import annotations

import pytest

from conftest import FakeClock, START_MS, make_quiz, sequential_ids
from quizzer.core.models import QuizStatus, TimeUnit
from quizzer.core.quiz_exporter import save_quiz_to_file, serialize_quiz
from quizzer.core.quiz_importer import QuizImportError, load_quiz_from_file, parse_quiz_text

SAMPLE_TEXT = """\
TITLE: Arithmetic
DESCRIPTION: Warm-up sums
TIMELIMIT: 90 seconds
SHUFFLE: yes

Q: What is 2 + 2?
A: 3
B: 4
C: 22
CORRECT: B
POINTS: 2

---

Q: Pick an odd number,
   any odd number.
A: 8
B: 9
REQUIRED: no
"""


def _parse(text: str):
    return parse_quiz_text(text, id_factory=sequential_ids("imp"), clock=FakeClock())


def test_parse_header_and_questions():
    quiz = _parse(SAMPLE_TEXT)

    assert quiz.title == "Arithmetic"
    assert quiz.description == "Warm-up sums"
    assert quiz.time_limit_value == 90
    assert quiz.time_limit_unit == TimeUnit.SECONDS
    assert quiz.shuffle_questions is True
    assert quiz.status == QuizStatus.DRAFT
    assert quiz.created_at == quiz.updated_at == START_MS

    first, second = quiz.questions
    assert first.prompt == "What is 2 + 2?"
    assert [o.text for o in first.options] == ["3", "4", "22"]
    assert first.correct_answer_id == first.options[1].id
    assert first.point_value == 2
    assert first.required is True

    assert second.prompt == "Pick an odd number,\nany odd number."
    assert second.correct_answer_id == ""
    assert second.point_value == 1
    assert second.required is False


def test_missing_header_uses_defaults():
    quiz = _parse("Q: Only question\nA: yes\nB: no\nCORRECT: a\n")

    assert quiz.title == ""
    assert quiz.time_limit_value == 10
    assert quiz.time_limit_unit == TimeUnit.MINUTES
    assert quiz.shuffle_questions is False
    assert quiz.questions[0].correct_answer_id == quiz.questions[0].options[0].id


def test_time_limit_without_unit_is_minutes():
    quiz = _parse("TITLE: T\nTIMELIMIT: 2.5\n\nQ: x\nA: 1\nB: 2\n")
    assert quiz.time_limit_value == 2.5
    assert quiz.time_limit_unit == TimeUnit.MINUTES


@pytest.mark.parametrize(
    "text",
    [
        "",
        "TITLE: Only a header\n",
        "TITLE: T\nCOLOUR: blue\n\nQ: x\nA: 1\nB: 2\n",
        "TITLE: T\nTIMELIMIT: soon\n\nQ: x\nA: 1\nB: 2\n",
        "TITLE: T\nTIMELIMIT: 0\n\nQ: x\nA: 1\nB: 2\n",
        "TITLE: T\nTIMELIMIT: 5 hours\n\nQ: x\nA: 1\nB: 2\n",
        "TITLE: T\nSHUFFLE: maybe\n\nQ: x\nA: 1\nB: 2\n",
        "A: 1\nB: 2\n",
        "Q: x\nA: only one\n",
        "Q: x\nA: 1\nC: 3\n",
        "Q: x\nA: 1\nB: 2\nCORRECT: D\n",
        "Q: x\nA: 1\nB: 2\nPOINTS: lots\n",
        "Q: x\nA: 1\nB: 2\nPOINTS: -1\n",
        "stray text\nQ: x\nA: 1\nB: 2\n",
    ],
)
def test_malformed_quiz_text_raises(text):
    with pytest.raises(QuizImportError):
        _parse(text)


def test_serialize_quiz_layout():
    quiz = make_quiz(point_values=(1, 2.5))
    quiz.questions[1].required = False
    quiz.questions[1].correct_answer_id = ""

    text = serialize_quiz(quiz)

    assert text.startswith("TITLE: Planets\nTIMELIMIT: 1 minutes\nSHUFFLE: no\n\n---\n\n")
    assert "Q: Question 1?\nA: Option a\nB: Option b\nC: Option c\nCORRECT: A\nPOINTS: 1" in text
    assert "POINTS: 2.5\nREQUIRED: no" in text
    assert text.count("CORRECT:") == 1


def test_exported_quiz_imports_with_same_content(tmp_path):
    quiz = make_quiz(point_values=(1, 3), time_limit_value=45, time_limit_unit=TimeUnit.SECONDS)
    quiz.description = "Inner planets"
    quiz.questions[0].prompt = "First line\nsecond line"
    quiz.questions[1].correct_answer_id = quiz.questions[1].options[2].id
    target = tmp_path / "export" / "planets.txt"

    save_quiz_to_file(target, quiz)
    imported = load_quiz_from_file(target, id_factory=sequential_ids("new"), clock=FakeClock())

    assert imported.source_path == target
    copy = imported.quiz
    assert copy.id != quiz.id
    assert (copy.title, copy.description) == (quiz.title, quiz.description)
    assert (copy.time_limit_value, copy.time_limit_unit) == (45, TimeUnit.SECONDS)
    assert [q.prompt for q in copy.questions] == [q.prompt for q in quiz.questions]
    assert [q.point_value for q in copy.questions] == [1, 3]
    assert copy.questions[1].correct_answer_id == copy.questions[1].options[2].id


def test_export_empty_quiz_is_refused(tmp_path):
    with pytest.raises(ValueError):
        save_quiz_to_file(tmp_path / "empty.txt", make_quiz(point_values=()))

from __future__ import annotations

import itertools
from typing import Callable

import pytest

from quizzer.core.models import Option, Question, Quiz, QuizStatus, TimeUnit
from quizzer.core.services.quiz_catalog import QuizCatalog
from quizzer.core.services.session_engine import SessionEngine
from quizzer.core.services.storage import MemoryStore

START_MS = 1_700_000_000_000


class FakeClock:
    def __init__(self, now: int = START_MS) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, milliseconds: int) -> None:
        self.now += milliseconds


class ManualTimer:
    """Recurring timer fired by hand from tests."""

    def __init__(self, callback: Callable[[], None]) -> None:
        self.callback = callback
        self.started = False
        self.cancelled = False

    def start(self) -> None:
        self.started = True

    def cancel(self) -> None:
        self.cancelled = True

    def is_active(self) -> bool:
        return self.started and not self.cancelled

    def fire(self) -> None:
        if self.is_active():
            self.callback()


def sequential_ids(prefix: str = "id") -> Callable[[], str]:
    counter = itertools.count(1)
    return lambda: f"{prefix}-{next(counter)}"


def make_quiz(
    quiz_id: str = "quiz-1",
    title: str = "Planets",
    point_values: tuple[float, ...] = (1, 2),
    time_limit_value: float = 1,
    time_limit_unit: TimeUnit = TimeUnit.MINUTES,
    shuffle_questions: bool = False,
) -> Quiz:
    """Quiz whose question n has options q<n>-a..c with q<n>-a correct."""
    questions = []
    for number, points in enumerate(point_values, start=1):
        options = [Option(id=f"q{number}-{letter}", text=f"Option {letter}") for letter in "abc"]
        questions.append(
            Question(
                id=f"q{number}",
                prompt=f"Question {number}?",
                required=True,
                point_value=points,
                options=options,
                correct_answer_id=options[0].id,
            )
        )
    return Quiz(
        id=quiz_id,
        title=title,
        description="",
        time_limit_value=time_limit_value,
        time_limit_unit=time_limit_unit,
        shuffle_questions=shuffle_questions,
        questions=questions,
        status=QuizStatus.DRAFT,
        created_at=START_MS,
        updated_at=START_MS,
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def catalog(store: MemoryStore, clock: FakeClock) -> QuizCatalog:
    return QuizCatalog(store, clock=clock, id_factory=sequential_ids("cat"))


@pytest.fixture
def engine(catalog: QuizCatalog, store: MemoryStore, clock: FakeClock) -> SessionEngine:
    return SessionEngine(catalog, store, clock=clock, id_factory=sequential_ids("session"))


@pytest.fixture
def published_quiz(catalog: QuizCatalog) -> Quiz:
    quiz = make_quiz()
    assert catalog.publish_quiz(quiz).success
    return catalog.get_quiz_by_id(quiz.id)

"""Service owning every quiz definition and the quiz being edited."""

from __future__ import annotations

from dataclasses import replace
import logging
from typing import Any, Callable

from pydantic import ValidationError

from quizzer.constants.quiz_constants import (
    DEFAULT_POINT_VALUE,
    DEFAULT_TIME_LIMIT_VALUE,
    MIN_OPTIONS_PER_QUESTION,
)
from quizzer.constants.storage_constants import QUIZZES_STORAGE_KEY
from quizzer.core.clock import Clock, now_ms
from quizzer.core.documents import dump_quizzes, parse_quizzes
from quizzer.core.id_generator import generate_id
from quizzer.core.models import (
    Option,
    PublishResult,
    Question,
    Quiz,
    QuizStatus,
    TimeUnit,
    clone_quiz,
)
from quizzer.core.services.storage import KeyValueStore

logger = logging.getLogger(__name__)

_ONE_DAY_MS = 24 * 60 * 60 * 1000
_QUESTION_FIELDS = ("prompt", "required", "point_value", "options", "correct_answer_id")
_METADATA_FIELDS = (
    "title",
    "description",
    "time_limit_value",
    "time_limit_unit",
    "shuffle_questions",
)


class QuizImmutableError(RuntimeError):
    """Raised when a caller tries to edit or delete a published quiz."""


class QuizCatalog:
    """Manages draft and published quizzes plus the transient editing copy.

    Stored quizzes are never mutated in place: every change builds a new
    ``Quiz`` and swaps it into the catalog, and reads hand out clones.
    """

    def __init__(
        self,
        store: KeyValueStore,
        clock: Clock = now_ms,
        id_factory: Callable[[], str] = generate_id,
    ) -> None:
        self._store = store
        self._clock = clock
        self._id_factory = id_factory
        self._quizzes: list[Quiz] = []
        self._current_editing_quiz: Quiz | None = None
        self._load_quizzes_from_storage()

    # --- Reads ---

    @property
    def quizzes(self) -> list[Quiz]:
        return [clone_quiz(quiz) for quiz in self._quizzes]

    @property
    def published_quizzes(self) -> list[Quiz]:
        return [clone_quiz(q) for q in self._quizzes if q.status == QuizStatus.PUBLISHED]

    @property
    def draft_quizzes(self) -> list[Quiz]:
        return [clone_quiz(q) for q in self._quizzes if q.status == QuizStatus.DRAFT]

    @property
    def current_editing_quiz(self) -> Quiz | None:
        return self._current_editing_quiz

    def get_quiz_by_id(self, quiz_id: str) -> Quiz | None:
        quiz = self._find(quiz_id)
        return clone_quiz(quiz) if quiz else None

    def is_quiz_valid(self) -> bool:
        quiz = self._current_editing_quiz
        if quiz is None:
            return False
        return not self.validate_quiz(quiz)

    # --- Quiz lifecycle ---

    def create_new_quiz(self) -> Quiz:
        now = self._clock()
        quiz = Quiz(
            id=self._id_factory(),
            title="",
            description="",
            time_limit_value=DEFAULT_TIME_LIMIT_VALUE,
            time_limit_unit=TimeUnit.MINUTES,
            shuffle_questions=False,
            questions=[],
            status=QuizStatus.DRAFT,
            created_at=now,
            updated_at=now,
        )
        self._current_editing_quiz = quiz
        return quiz

    def load_quiz_for_editing(self, quiz_id: str) -> Quiz | None:
        quiz = self._find(quiz_id)
        if quiz is None:
            return None
        if quiz.status == QuizStatus.PUBLISHED:
            raise QuizImmutableError("Cannot edit a published quiz")

        editable_copy = clone_quiz(quiz)
        self._current_editing_quiz = editable_copy
        return editable_copy

    def save_draft_quiz(self, quiz: Quiz) -> Quiz:
        existing = self._find(quiz.id)
        if existing is not None and existing.status == QuizStatus.PUBLISHED:
            raise QuizImmutableError("Cannot save a published quiz as a draft")

        updated = replace(clone_quiz(quiz), status=QuizStatus.DRAFT, updated_at=self._clock())
        self._upsert(updated)
        self._current_editing_quiz = clone_quiz(updated)
        return self._current_editing_quiz

    def publish_quiz(self, quiz: Quiz) -> PublishResult:
        errors = self.validate_quiz(quiz)
        if errors:
            return PublishResult(success=False, errors=errors)

        published = replace(clone_quiz(quiz), status=QuizStatus.PUBLISHED, updated_at=self._clock())
        self._upsert(published)
        self._current_editing_quiz = None
        logger.info("Published quiz %s (%s)", published.id, published.title)
        return PublishResult(success=True, errors=[])

    def discard_quiz(self) -> None:
        self._current_editing_quiz = None

    def delete_quiz(self, quiz_id: str) -> bool:
        quiz = self._find(quiz_id)
        if quiz is None:
            return False
        if quiz.status != QuizStatus.DRAFT:
            raise QuizImmutableError("Can only delete draft quizzes")

        self._quizzes = [q for q in self._quizzes if q.id != quiz_id]
        self._save_quizzes_to_storage()

        if self._current_editing_quiz is not None and self._current_editing_quiz.id == quiz_id:
            self._current_editing_quiz = None
        return True

    def update_quiz_metadata(self, **changes: Any) -> None:
        """Update title, description, time limit or shuffle flag of the editing quiz."""
        quiz = self._current_editing_quiz
        if quiz is None:
            return
        unknown = set(changes) - set(_METADATA_FIELDS)
        if unknown:
            raise TypeError(f"Unknown quiz fields: {', '.join(sorted(unknown))}")
        if "time_limit_value" in changes and not changes["time_limit_value"] > 0:
            raise ValueError("Time limit must be a positive number.")
        if "time_limit_unit" in changes:
            changes["time_limit_unit"] = TimeUnit(changes["time_limit_unit"])

        self._set_current_quiz(replace(quiz, **changes))

    # --- Question and option editing ---

    def add_question(self, prompt: str = "", required: bool = True) -> Question | None:
        quiz = self._current_editing_quiz
        if quiz is None:
            return None

        question = Question(
            id=self._id_factory(),
            prompt=prompt,
            required=required,
            point_value=DEFAULT_POINT_VALUE,
            options=[Option(id=self._id_factory()) for _ in range(MIN_OPTIONS_PER_QUESTION)],
            correct_answer_id="",
        )
        self._set_current_quiz(replace(quiz, questions=[*quiz.questions, question]))
        return question

    def remove_question(self, question_id: str) -> None:
        quiz = self._current_editing_quiz
        if quiz is None:
            return
        remaining = [q for q in quiz.questions if q.id != question_id]
        self._set_current_quiz(replace(quiz, questions=remaining))

    def update_question(self, question_id: str, **changes: Any) -> None:
        quiz = self._current_editing_quiz
        if quiz is None:
            return
        unknown = set(changes) - set(_QUESTION_FIELDS)
        if unknown:
            raise TypeError(f"Unknown question fields: {', '.join(sorted(unknown))}")
        if "options" in changes:
            changes["options"] = [Option(id=o.id, text=o.text) for o in changes["options"]]

        self._replace_question(quiz, question_id, lambda q: replace(q, **changes))

    def add_option_to_question(self, question_id: str) -> None:
        quiz = self._current_editing_quiz
        if quiz is None:
            return
        self._replace_question(
            quiz,
            question_id,
            lambda q: replace(q, options=[*q.options, Option(id=self._id_factory())]),
        )

    def remove_option_from_question(self, question_id: str, option_id: str) -> bool:
        """Remove an option; refused when the question would drop below two options."""
        quiz = self._current_editing_quiz
        if quiz is None:
            return False
        question = quiz.find_question(question_id)
        if question is None or not any(o.id == option_id for o in question.options):
            return False
        if len(question.options) <= MIN_OPTIONS_PER_QUESTION:
            return False

        def drop_option(q: Question) -> Question:
            correct_answer_id = "" if q.correct_answer_id == option_id else q.correct_answer_id
            return replace(
                q,
                options=[o for o in q.options if o.id != option_id],
                correct_answer_id=correct_answer_id,
            )

        self._replace_question(quiz, question_id, drop_option)
        return True

    def update_option(self, question_id: str, option_id: str, text: str) -> None:
        quiz = self._current_editing_quiz
        if quiz is None:
            return
        self._replace_question(
            quiz,
            question_id,
            lambda q: replace(
                q,
                options=[Option(id=o.id, text=text) if o.id == option_id else o for o in q.options],
            ),
        )

    # --- Validation ---

    @staticmethod
    def validate_quiz(quiz: Quiz) -> list[str]:
        """Collect every problem preventing ``quiz`` from being published."""
        errors: list[str] = []

        if not (quiz.title or "").strip():
            errors.append("Quiz title is required")

        if not quiz.questions:
            errors.append("Quiz must have at least one question")

        for question_num, question in enumerate(quiz.questions, start=1):
            if not (question.prompt or "").strip():
                errors.append(f"Question {question_num}: Prompt is required")

            if len(question.options) < MIN_OPTIONS_PER_QUESTION:
                errors.append(
                    f"Question {question_num}: Must have at least {MIN_OPTIONS_PER_QUESTION} options"
                )

            if not question.correct_answer_id:
                errors.append(f"Question {question_num}: Correct answer is required")

            if not any(o.id == question.correct_answer_id for o in question.options):
                errors.append(f"Question {question_num}: Correct answer must be one of the options")

            for option_num, option in enumerate(question.options, start=1):
                if not (option.text or "").strip():
                    errors.append(f"Question {question_num}, Option {option_num}: Text is required")

        return errors

    def get_validation_errors(self) -> list[str]:
        quiz = self._current_editing_quiz
        if quiz is None:
            return []
        return self.validate_quiz(quiz)

    # --- Internals ---

    def _find(self, quiz_id: str) -> Quiz | None:
        return next((q for q in self._quizzes if q.id == quiz_id), None)

    def _set_current_quiz(self, quiz: Quiz) -> None:
        self._current_editing_quiz = replace(quiz, updated_at=self._clock())

    def _replace_question(
        self,
        quiz: Quiz,
        question_id: str,
        transform: Callable[[Question], Question],
    ) -> None:
        questions = [transform(q) if q.id == question_id else q for q in quiz.questions]
        self._set_current_quiz(replace(quiz, questions=questions))

    def _upsert(self, quiz: Quiz) -> None:
        if self._find(quiz.id) is not None:
            self._quizzes = [quiz if q.id == quiz.id else q for q in self._quizzes]
        else:
            self._quizzes = [*self._quizzes, quiz]
        self._save_quizzes_to_storage()

    def _load_quizzes_from_storage(self) -> None:
        stored = self._store.get(QUIZZES_STORAGE_KEY)
        if stored:
            try:
                self._quizzes = parse_quizzes(stored)
                return
            except ValidationError as exc:
                logger.warning("Failed to load quizzes from storage: %s", exc)
        # Never start with an empty catalog.
        self._init_sample_quiz()

    def _save_quizzes_to_storage(self) -> None:
        self._store.set(QUIZZES_STORAGE_KEY, dump_quizzes(self._quizzes))

    def _init_sample_quiz(self) -> None:
        options = [Option(id=self._id_factory(), text=text) for text in ("Titan", "Europa", "Ganymede", "Io")]
        created_at = self._clock() - _ONE_DAY_MS
        sample_quiz = Quiz(
            id=self._id_factory(),
            title="Astro Quiz",
            description="What do you know about astronomy?",
            time_limit_value=DEFAULT_TIME_LIMIT_VALUE,
            time_limit_unit=TimeUnit.MINUTES,
            shuffle_questions=False,
            questions=[
                Question(
                    id=self._id_factory(),
                    prompt="What is the largest moon in the Solar System?",
                    required=True,
                    point_value=DEFAULT_POINT_VALUE,
                    options=options,
                    correct_answer_id=options[2].id,
                )
            ],
            status=QuizStatus.PUBLISHED,
            created_at=created_at,
            updated_at=created_at,
        )
        self._quizzes = [sample_quiz]
        self._save_quizzes_to_storage()

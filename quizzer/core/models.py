"""Domain models for quizzes, attempts and their scored results."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class QuizStatus(str, Enum):
    DRAFT = "DRAFT"
    PUBLISHED = "PUBLISHED"


class TimeUnit(str, Enum):
    SECONDS = "seconds"
    MINUTES = "minutes"


class SessionStatus(str, Enum):
    NOT_STARTED = "NOT STARTED"
    IN_PROGRESS = "IN PROGRESS"
    COMPLETED = "COMPLETED"


@dataclass(slots=True)
class Option:
    """A selectable answer for a question."""

    id: str
    text: str = ""


@dataclass(slots=True)
class Question:
    """Multiple-choice question with a single correct option."""

    id: str
    prompt: str = ""
    required: bool = True
    point_value: float = 1
    options: list[Option] = field(default_factory=list)
    correct_answer_id: str = ""


@dataclass(slots=True)
class Quiz:
    """Quiz definition, either an editable draft or a published quiz."""

    id: str
    title: str = ""
    description: str = ""
    time_limit_value: float = 10
    time_limit_unit: TimeUnit = TimeUnit.MINUTES
    shuffle_questions: bool = False
    questions: list[Question] = field(default_factory=list)
    status: QuizStatus = QuizStatus.DRAFT
    created_at: int = 0  # epoch milliseconds
    updated_at: int = 0

    @property
    def time_limit_ms(self) -> int:
        return time_limit_ms(self.time_limit_value, self.time_limit_unit)

    def find_question(self, question_id: str) -> Question | None:
        return next((q for q in self.questions if q.id == question_id), None)


@dataclass(slots=True, frozen=True)
class UserAnswer:
    """The option a user selected for one question."""

    question_id: str
    selected_option_id: str


@dataclass(slots=True)
class Session:
    """One timed attempt at a published quiz.

    Sessions are replaced rather than mutated once they are handed out, so a
    reference held by a consumer keeps describing the state it was read in.
    """

    id: str
    quiz_id: str
    status: SessionStatus = SessionStatus.NOT_STARTED
    start_time: int = 0
    deadline: int = 0
    user_answers: list[UserAnswer] = field(default_factory=list)
    submitted_question_ids: list[str] = field(default_factory=list)
    question_order: list[str] = field(default_factory=list)

    def answer_for(self, question_id: str) -> str:
        answer = next((a for a in self.user_answers if a.question_id == question_id), None)
        return answer.selected_option_id if answer else ""


@dataclass(slots=True, frozen=True)
class QuestionScore:
    question_id: str
    user_answer_id: str
    correct_answer_id: str
    is_correct: bool


@dataclass(slots=True, frozen=True)
class QuizResult:
    """Scored outcome of a completed or timed-out session."""

    session_id: str
    quiz_id: str
    score: float
    max_score: float
    percentage: int
    question_scores: tuple[QuestionScore, ...] = ()


@dataclass(slots=True)
class PublishResult:
    success: bool
    errors: list[str] = field(default_factory=list)


@dataclass(slots=True)
class QuizOverview:
    """A catalog quiz joined with its latest attempt state, for listing."""

    quiz: Quiz
    session: Session | None
    result: QuizResult | None
    display_status: SessionStatus


def time_limit_ms(value: float, unit: TimeUnit) -> int:
    """Normalize a time limit to milliseconds."""
    if unit == TimeUnit.MINUTES:
        return int(value * 60 * 1000)
    return int(value * 1000)


def clone_option(option: Option) -> Option:
    return Option(id=option.id, text=option.text)


def clone_question(question: Question) -> Question:
    return Question(
        id=question.id,
        prompt=question.prompt,
        required=question.required,
        point_value=question.point_value,
        options=[clone_option(option) for option in question.options],
        correct_answer_id=question.correct_answer_id,
    )


def clone_quiz(quiz: Quiz) -> Quiz:
    """Deep-copy a quiz.

    Every nested list and object of the result is a new instance, so edits to
    the clone never reach the original and vice versa.
    """
    return Quiz(
        id=quiz.id,
        title=quiz.title,
        description=quiz.description,
        time_limit_value=quiz.time_limit_value,
        time_limit_unit=quiz.time_limit_unit,
        shuffle_questions=quiz.shuffle_questions,
        questions=[clone_question(question) for question in quiz.questions],
        status=quiz.status,
        created_at=quiz.created_at,
        updated_at=quiz.updated_at,
    )

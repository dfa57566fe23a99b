"""Pydantic documents describing the persisted JSON layout.

The stored JSON keeps camelCase keys; the domain models use snake_case. Each
document converts to and from its domain model so the managers never touch
raw dictionaries.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic.alias_generators import to_camel

from quizzer.core.models import (
    Option,
    Question,
    QuestionScore,
    Quiz,
    QuizResult,
    QuizStatus,
    Session,
    SessionStatus,
    TimeUnit,
    UserAnswer,
)


class _Document(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class OptionDocument(_Document):
    id: str
    text: str = ""


class QuestionDocument(_Document):
    id: str
    prompt: str = ""
    required: bool = True
    point_value: int | float = 1
    options: list[OptionDocument] = Field(default_factory=list)
    correct_answer_id: str = ""


class QuizDocument(_Document):
    id: str
    title: str = ""
    description: str = ""
    time_limit_value: int | float
    time_limit_unit: TimeUnit = TimeUnit.MINUTES
    shuffle_questions: bool = False
    questions: list[QuestionDocument] = Field(default_factory=list)
    status: QuizStatus
    created_at: int
    updated_at: int

    @classmethod
    def from_model(cls, quiz: Quiz) -> "QuizDocument":
        return cls(
            id=quiz.id,
            title=quiz.title,
            description=quiz.description,
            time_limit_value=quiz.time_limit_value,
            time_limit_unit=quiz.time_limit_unit,
            shuffle_questions=quiz.shuffle_questions,
            questions=[
                QuestionDocument(
                    id=question.id,
                    prompt=question.prompt,
                    required=question.required,
                    point_value=question.point_value,
                    options=[OptionDocument(id=o.id, text=o.text) for o in question.options],
                    correct_answer_id=question.correct_answer_id,
                )
                for question in quiz.questions
            ],
            status=quiz.status,
            created_at=quiz.created_at,
            updated_at=quiz.updated_at,
        )

    def to_model(self) -> Quiz:
        return Quiz(
            id=self.id,
            title=self.title,
            description=self.description,
            time_limit_value=self.time_limit_value,
            time_limit_unit=self.time_limit_unit,
            shuffle_questions=self.shuffle_questions,
            questions=[
                Question(
                    id=q.id,
                    prompt=q.prompt,
                    required=q.required,
                    point_value=q.point_value,
                    options=[Option(id=o.id, text=o.text) for o in q.options],
                    correct_answer_id=q.correct_answer_id,
                )
                for q in self.questions
            ],
            status=self.status,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )


class UserAnswerDocument(_Document):
    question_id: str
    selected_option_id: str


class SessionDocument(_Document):
    id: str
    quiz_id: str
    status: SessionStatus
    start_time: int
    deadline: int
    user_answers: list[UserAnswerDocument] = Field(default_factory=list)
    submitted_question_ids: list[str] = Field(default_factory=list)
    question_order: list[str] = Field(default_factory=list)

    @classmethod
    def from_model(cls, session: Session) -> "SessionDocument":
        return cls(
            id=session.id,
            quiz_id=session.quiz_id,
            status=session.status,
            start_time=session.start_time,
            deadline=session.deadline,
            user_answers=[
                UserAnswerDocument(question_id=a.question_id, selected_option_id=a.selected_option_id)
                for a in session.user_answers
            ],
            submitted_question_ids=list(session.submitted_question_ids),
            question_order=list(session.question_order),
        )

    def to_model(self) -> Session:
        return Session(
            id=self.id,
            quiz_id=self.quiz_id,
            status=self.status,
            start_time=self.start_time,
            deadline=self.deadline,
            user_answers=[UserAnswer(a.question_id, a.selected_option_id) for a in self.user_answers],
            submitted_question_ids=list(self.submitted_question_ids),
            question_order=list(self.question_order),
        )


class QuestionScoreDocument(_Document):
    question_id: str
    user_answer_id: str = ""
    correct_answer_id: str = ""
    is_correct: bool = False


class ResultDocument(_Document):
    session_id: str
    quiz_id: str
    score: int | float
    max_score: int | float
    percentage: int
    question_scores: list[QuestionScoreDocument] = Field(default_factory=list)

    @classmethod
    def from_model(cls, result: QuizResult) -> "ResultDocument":
        return cls(
            session_id=result.session_id,
            quiz_id=result.quiz_id,
            score=result.score,
            max_score=result.max_score,
            percentage=result.percentage,
            question_scores=[
                QuestionScoreDocument(
                    question_id=qs.question_id,
                    user_answer_id=qs.user_answer_id,
                    correct_answer_id=qs.correct_answer_id,
                    is_correct=qs.is_correct,
                )
                for qs in result.question_scores
            ],
        )

    def to_model(self) -> QuizResult:
        return QuizResult(
            session_id=self.session_id,
            quiz_id=self.quiz_id,
            score=self.score,
            max_score=self.max_score,
            percentage=self.percentage,
            question_scores=tuple(
                QuestionScore(
                    question_id=qs.question_id,
                    user_answer_id=qs.user_answer_id,
                    correct_answer_id=qs.correct_answer_id,
                    is_correct=qs.is_correct,
                )
                for qs in self.question_scores
            ),
        )


class SessionBundleDocument(_Document):
    sessions: list[SessionDocument] = Field(default_factory=list)
    results: list[ResultDocument] = Field(default_factory=list)


QUIZ_LIST_ADAPTER: TypeAdapter[list[QuizDocument]] = TypeAdapter(list[QuizDocument])


def dump_quizzes(quizzes: list[Quiz]) -> str:
    documents = [QuizDocument.from_model(quiz) for quiz in quizzes]
    return QUIZ_LIST_ADAPTER.dump_json(documents, by_alias=True).decode("utf-8")


def parse_quizzes(raw: str) -> list[Quiz]:
    """Parse the catalog document. Raises ``pydantic.ValidationError``."""
    return [document.to_model() for document in QUIZ_LIST_ADAPTER.validate_json(raw)]


def dump_session_bundle(sessions: list[Session], results: list[QuizResult]) -> str:
    bundle = SessionBundleDocument(
        sessions=[SessionDocument.from_model(s) for s in sessions],
        results=[ResultDocument.from_model(r) for r in results],
    )
    return bundle.model_dump_json(by_alias=True)


def parse_session_bundle(raw: str) -> tuple[list[Session], list[QuizResult]]:
    """Parse the sessions/results document. Raises ``pydantic.ValidationError``."""
    bundle = SessionBundleDocument.model_validate_json(raw)
    return (
        [document.to_model() for document in bundle.sessions],
        [document.to_model() for document in bundle.results],
    )

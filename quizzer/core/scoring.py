"""Scoring of a session against the quiz it was taken on."""

from __future__ import annotations

from fractions import Fraction
import math

from quizzer.core.models import QuestionScore, Quiz, QuizResult, Session


def calculate_results(session: Session, quiz: Quiz) -> QuizResult:
    """Score every quiz question, in quiz order, against the session's answers.

    Unanswered questions score as incorrect with an empty ``user_answer_id``.
    """
    question_scores: list[QuestionScore] = []
    score: int | float = 0
    max_score: int | float = 0
    for question in quiz.questions:
        user_answer_id = session.answer_for(question.id)
        is_correct = bool(user_answer_id) and user_answer_id == question.correct_answer_id
        question_scores.append(
            QuestionScore(
                question_id=question.id,
                user_answer_id=user_answer_id,
                correct_answer_id=question.correct_answer_id,
                is_correct=is_correct,
            )
        )
        max_score += question.point_value
        if is_correct:
            score += question.point_value

    return QuizResult(
        session_id=session.id,
        quiz_id=quiz.id,
        score=score,
        max_score=max_score,
        percentage=calculate_percentage(score, max_score),
        question_scores=tuple(question_scores),
    )


def calculate_percentage(score: int | float, max_score: int | float) -> int:
    """Return ``score / max_score`` as a whole percentage, rounding halves up."""
    if max_score <= 0:
        return 0
    # Fraction keeps 12.5 exactly 12.5 so the half always rounds up.
    ratio = Fraction(score) * 100 / Fraction(max_score)
    return math.floor(ratio + Fraction(1, 2))

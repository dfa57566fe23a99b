"""Service managing quiz attempts: answers, deadlines, scoring and results."""

from __future__ import annotations

from dataclasses import replace
import logging
import math
import random
from typing import Callable

from pydantic import ValidationError

from quizzer.constants.quiz_constants import TIME_RUNNING_OUT_THRESHOLD_SECONDS
from quizzer.constants.storage_constants import SESSIONS_STORAGE_KEY
from quizzer.core.clock import Clock, now_ms
from quizzer.core.documents import dump_session_bundle, parse_session_bundle
from quizzer.core.id_generator import generate_id
from quizzer.core.models import (
    Question,
    QuestionScore,
    QuizOverview,
    QuizResult,
    QuizStatus,
    Session,
    SessionStatus,
    UserAnswer,
)
from quizzer.core.scoring import calculate_results
from quizzer.core.services.quiz_catalog import QuizCatalog
from quizzer.core.services.storage import KeyValueStore

logger = logging.getLogger(__name__)

TimeoutListener = Callable[[str], None]


class SessionEngine:
    """Tracks every attempt and the single attempt currently being taken.

    Sessions are swapped, never edited in place; ``current_session`` and the
    entry in ``sessions`` always refer to the same snapshot. Every change is
    written to storage before the method returns.
    """

    def __init__(
        self,
        catalog: QuizCatalog,
        store: KeyValueStore,
        clock: Clock = now_ms,
        id_factory: Callable[[], str] = generate_id,
        rng: random.Random | None = None,
    ) -> None:
        self._catalog = catalog
        self._store = store
        self._clock = clock
        self._id_factory = id_factory
        self._shuffle_rng = rng or random.Random()
        self._sessions: list[Session] = []
        self._current_session: Session | None = None
        self._results: dict[str, QuizResult] = {}
        self._timeout_listeners: list[TimeoutListener] = []
        self._load_sessions_from_storage()

    # --- State ---

    @property
    def sessions(self) -> list[Session]:
        return list(self._sessions)

    @property
    def current_session(self) -> Session | None:
        return self._current_session

    @property
    def results(self) -> dict[str, QuizResult]:
        return dict(self._results)

    def get_results_for_quiz(self, quiz_id: str) -> QuizResult | None:
        return self._results.get(quiz_id)

    def set_shuffle_seed(self, seed: int | None) -> None:
        self._shuffle_rng.seed(seed)

    # --- Lifecycle ---

    def start_session(self, quiz_id: str) -> Session | None:
        """Start a timed attempt, or resume the one already in progress."""
        quiz = self._catalog.get_quiz_by_id(quiz_id)
        if quiz is None or quiz.status != QuizStatus.PUBLISHED:
            return None

        existing = next(
            (s for s in self._sessions if s.quiz_id == quiz_id and s.status == SessionStatus.IN_PROGRESS),
            None,
        )
        if existing is not None:
            self._current_session = existing
            return existing

        now = self._clock()
        question_order = [question.id for question in quiz.questions]
        if quiz.shuffle_questions:
            question_order = self._shuffled(question_order)

        session = Session(
            id=self._id_factory(),
            quiz_id=quiz_id,
            status=SessionStatus.IN_PROGRESS,
            start_time=now,
            deadline=now + quiz.time_limit_ms,
            user_answers=[],
            submitted_question_ids=[],
            question_order=question_order,
        )
        self._sessions = [*self._sessions, session]
        self._current_session = session
        self._save_sessions_to_storage()
        logger.info("Started session %s for quiz %s", session.id, quiz_id)
        return session

    def record_answer(self, question_id: str, option_id: str) -> None:
        session = self._active_session()
        if session is None:
            return

        answer = UserAnswer(question_id=question_id, selected_option_id=option_id)
        existing_index = next(
            (i for i, a in enumerate(session.user_answers) if a.question_id == question_id),
            -1,
        )
        if existing_index >= 0:
            answers = [
                *session.user_answers[:existing_index],
                answer,
                *session.user_answers[existing_index + 1 :],
            ]
        else:
            answers = [*session.user_answers, answer]

        self._replace_session(replace(session, user_answers=answers))

    def submit_answer(self, question_id: str) -> bool:
        """Confirm the recorded answer for a question so its feedback can be shown.

        Returns ``False`` when there is no active session or nothing has been
        selected for the question yet.
        """
        session = self._active_session()
        if session is None or not session.answer_for(question_id):
            return False
        if question_id in session.submitted_question_ids:
            return True

        submitted = [*session.submitted_question_ids, question_id]
        self._replace_session(replace(session, submitted_question_ids=submitted))
        return True

    def complete_session(self) -> QuizResult | None:
        session = self._current_session
        if session is None:
            return None
        return self._complete(session)

    def leave_session(self) -> None:
        """Pause: forget the current pointer, keep the attempt resumable."""
        self._current_session = None

    # --- Timing ---

    @property
    def time_remaining(self) -> int:
        """Whole seconds left on the current attempt, rounded up."""
        session = self._current_session
        if session is None or session.status != SessionStatus.IN_PROGRESS:
            return 0
        remaining_ms = max(0, session.deadline - self._clock())
        return math.ceil(remaining_ms / 1000)

    @property
    def is_time_running_out(self) -> bool:
        return 0 < self.time_remaining < TIME_RUNNING_OUT_THRESHOLD_SECONDS

    @property
    def is_time_expired(self) -> bool:
        return self.time_remaining == 0

    def tick(self) -> None:
        """Complete the current attempt once its deadline has passed."""
        session = self._current_session
        if session is None or not self.is_time_expired:
            return

        result = self._complete(session)
        if result is None:
            logger.warning(
                "Session %s expired but quiz %s no longer exists; releasing it.",
                session.id,
                session.quiz_id,
            )
            self._current_session = None
            return

        logger.info("Session %s timed out for quiz %s", session.id, session.quiz_id)
        for listener in list(self._timeout_listeners):
            listener(session.quiz_id)

    def add_timeout_listener(self, listener: TimeoutListener) -> None:
        self._timeout_listeners.append(listener)

    def remove_timeout_listener(self, listener: TimeoutListener) -> None:
        if listener in self._timeout_listeners:
            self._timeout_listeners.remove(listener)

    def time_progress_percent(self) -> float:
        session = self._current_session
        if session is None:
            return 0.0
        total_seconds = (session.deadline - session.start_time) / 1000
        if total_seconds <= 0:
            return 100.0
        return max(0.0, min(100.0, (1 - self.time_remaining / total_seconds) * 100))

    # --- Progress and feedback ---

    def get_presented_questions(self) -> list[Question]:
        """Questions of the current attempt in the order they are shown."""
        session = self._current_session
        if session is None:
            return []
        quiz = self._catalog.get_quiz_by_id(session.quiz_id)
        if quiz is None:
            return []
        if not session.question_order:
            return quiz.questions

        by_id = {question.id: question for question in quiz.questions}
        ordered = [by_id[qid] for qid in session.question_order if qid in by_id]
        # Questions missing from the stored order keep their quiz position at the end.
        seen = set(session.question_order)
        ordered.extend(q for q in quiz.questions if q.id not in seen)
        return ordered

    def get_current_answer(self, question_id: str) -> str:
        session = self._current_session
        if session is None:
            return ""
        return session.answer_for(question_id)

    def has_submitted_answer(self, question_id: str) -> bool:
        session = self._current_session
        return session is not None and question_id in session.submitted_question_ids

    def get_question_feedback(self, question_id: str) -> QuestionScore | None:
        if not self.has_submitted_answer(question_id):
            return None
        quiz = self._catalog.get_quiz_by_id(self._current_session.quiz_id)
        question = quiz.find_question(question_id) if quiz else None
        if question is None:
            return None
        user_answer_id = self._current_session.answer_for(question_id)
        return QuestionScore(
            question_id=question_id,
            user_answer_id=user_answer_id,
            correct_answer_id=question.correct_answer_id,
            is_correct=bool(user_answer_id) and user_answer_id == question.correct_answer_id,
        )

    def is_quiz_complete(self) -> bool:
        """True once every required question has a confirmed answer."""
        session = self._current_session
        if session is None:
            return False
        quiz = self._catalog.get_quiz_by_id(session.quiz_id)
        if quiz is None:
            return False
        return all(
            question.id in session.submitted_question_ids
            for question in quiz.questions
            if question.required
        )

    def get_quiz_overviews(self) -> list[QuizOverview]:
        overviews: list[QuizOverview] = []
        for quiz in self._catalog.quizzes:
            quiz_sessions = [s for s in self._sessions if s.quiz_id == quiz.id]
            session = next(
                (s for s in quiz_sessions if s.status == SessionStatus.IN_PROGRESS),
                quiz_sessions[-1] if quiz_sessions else None,
            )
            result = self._results.get(quiz.id)

            display_status = SessionStatus.NOT_STARTED
            if session is not None and session.status == SessionStatus.IN_PROGRESS:
                display_status = SessionStatus.IN_PROGRESS
            elif (session is not None and session.status == SessionStatus.COMPLETED) or result:
                display_status = SessionStatus.COMPLETED

            overviews.append(
                QuizOverview(quiz=quiz, session=session, result=result, display_status=display_status)
            )
        return overviews

    # --- Internals ---

    def _active_session(self) -> Session | None:
        """Current attempt if it still accepts answers."""
        session = self._current_session
        if session is None or session.status != SessionStatus.IN_PROGRESS:
            return None
        if session.deadline <= self._clock():
            return None
        return session

    def _complete(self, session: Session) -> QuizResult | None:
        quiz = self._catalog.get_quiz_by_id(session.quiz_id)
        if quiz is None:
            return None

        result = calculate_results(session, quiz)
        completed = replace(session, status=SessionStatus.COMPLETED)
        self._sessions = [completed if s.id == session.id else s for s in self._sessions]
        self._results = {**self._results, session.quiz_id: result}
        self._current_session = None
        self._save_sessions_to_storage()
        logger.info(
            "Completed session %s: %s/%s (%s%%)",
            session.id,
            result.score,
            result.max_score,
            result.percentage,
        )
        return result

    def _replace_session(self, session: Session) -> None:
        self._sessions = [session if s.id == session.id else s for s in self._sessions]
        self._current_session = session
        self._save_sessions_to_storage()

    def _shuffled(self, items: list[str]) -> list[str]:
        shuffled = list(items)
        # Fisher-Yates
        for i in range(len(shuffled) - 1, 0, -1):
            j = self._shuffle_rng.randint(0, i)
            shuffled[i], shuffled[j] = shuffled[j], shuffled[i]
        return shuffled

    def _save_sessions_to_storage(self) -> None:
        self._store.set(
            SESSIONS_STORAGE_KEY,
            dump_session_bundle(self._sessions, list(self._results.values())),
        )

    def _load_sessions_from_storage(self) -> None:
        stored = self._store.get(SESSIONS_STORAGE_KEY)
        if not stored:
            return
        try:
            sessions, results = parse_session_bundle(stored)
        except ValidationError as exc:
            logger.warning("Failed to load sessions from storage: %s", exc)
            return

        self._sessions = sessions
        self._results = {result.quiz_id: result for result in results}

        in_progress = [s for s in sessions if s.status == SessionStatus.IN_PROGRESS]
        if len(in_progress) > 1:
            logger.warning(
                "Stored data has %d sessions in progress (%s); resuming the most recent one.",
                len(in_progress),
                ", ".join(s.id for s in in_progress),
            )
        if in_progress:
            # max() keeps the first of equal start times.
            self._current_session = max(in_progress, key=lambda s: s.start_time)


def format_time(seconds: int) -> str:
    """Format a countdown as ``m:ss``."""
    if seconds <= 0:
        return "0:00"
    minutes, secs = divmod(int(seconds), 60)
    return f"{minutes}:{secs:02d}"

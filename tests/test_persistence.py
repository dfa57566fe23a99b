from __future__ import annotations

import json
import logging

from conftest import START_MS, make_quiz
from quizzer.constants.storage_constants import QUIZZES_STORAGE_KEY, SESSIONS_STORAGE_KEY
from quizzer.core.services.quiz_catalog import QuizCatalog
from quizzer.core.services.session_engine import SessionEngine
from quizzer.core.services.storage import JsonFileStore, MemoryStore


def _session_doc(session_id: str, quiz_id: str, status: str, start_time: int) -> dict:
    return {
        "id": session_id,
        "quizId": quiz_id,
        "status": status,
        "startTime": start_time,
        "deadline": start_time + 60_000,
        "userAnswers": [],
    }


def test_quiz_document_uses_camel_case_keys(catalog, store):
    catalog.save_draft_quiz(make_quiz())

    documents = json.loads(store.get(QUIZZES_STORAGE_KEY))
    stored = next(d for d in documents if d["id"] == "quiz-1")

    assert stored["timeLimitValue"] == 1
    assert stored["timeLimitUnit"] == "minutes"
    assert stored["shuffleQuestions"] is False
    assert stored["status"] == "DRAFT"
    assert stored["questions"][1]["pointValue"] == 2
    assert stored["questions"][0]["correctAnswerId"] == "q1-a"
    assert stored["questions"][0]["options"][0] == {"id": "q1-a", "text": "Option a"}


def test_session_document_layout(engine, store, published_quiz):
    engine.start_session(published_quiz.id)
    engine.record_answer("q1", "q1-a")
    engine.submit_answer("q1")
    engine.complete_session()

    bundle = json.loads(store.get(SESSIONS_STORAGE_KEY))

    session = bundle["sessions"][0]
    assert session["status"] == "COMPLETED"
    assert session["userAnswers"] == [{"questionId": "q1", "selectedOptionId": "q1-a"}]
    assert session["submittedQuestionIds"] == ["q1"]
    result = bundle["results"][0]
    assert result["quizId"] == published_quiz.id
    assert result["maxScore"] == 3
    assert result["questionScores"][0] == {
        "questionId": "q1",
        "userAnswerId": "q1-a",
        "correctAnswerId": "q1-a",
        "isCorrect": True,
    }


def test_malformed_quiz_json_falls_back_to_sample(caplog):
    store = MemoryStore({QUIZZES_STORAGE_KEY: "{not json"})

    with caplog.at_level(logging.WARNING):
        catalog = QuizCatalog(store)

    assert [q.title for q in catalog.quizzes] == ["Astro Quiz"]
    assert "Failed to load quizzes" in caplog.text


def test_invalid_quiz_document_falls_back_to_sample():
    store = MemoryStore({QUIZZES_STORAGE_KEY: json.dumps([{"id": "x"}])})
    catalog = QuizCatalog(store)
    assert [q.title for q in catalog.quizzes] == ["Astro Quiz"]


def test_quiz_without_time_unit_loads_as_minutes():
    legacy = {
        "id": "legacy",
        "title": "Legacy",
        "description": "",
        "timeLimitValue": 5,
        "shuffleQuestions": False,
        "questions": [],
        "status": "DRAFT",
        "createdAt": START_MS,
        "updatedAt": START_MS,
    }
    catalog = QuizCatalog(MemoryStore({QUIZZES_STORAGE_KEY: json.dumps([legacy])}))

    assert catalog.get_quiz_by_id("legacy").time_limit_ms == 5 * 60 * 1000


def test_malformed_session_json_falls_back_to_empty(catalog, caplog):
    catalog_store = MemoryStore({SESSIONS_STORAGE_KEY: "[[["})

    with caplog.at_level(logging.WARNING):
        engine = SessionEngine(catalog, catalog_store)

    assert engine.sessions == []
    assert engine.results == {}
    assert engine.current_session is None
    assert "Failed to load sessions" in caplog.text


def test_multiple_in_progress_sessions_resume_most_recent(catalog, caplog):
    bundle = {
        "sessions": [
            _session_doc("old", "quiz-a", "IN PROGRESS", START_MS),
            _session_doc("done", "quiz-a", "COMPLETED", START_MS + 5_000),
            _session_doc("new", "quiz-b", "IN PROGRESS", START_MS + 1_000),
        ],
        "results": [],
    }
    store = MemoryStore({SESSIONS_STORAGE_KEY: json.dumps(bundle)})

    with caplog.at_level(logging.WARNING):
        engine = SessionEngine(catalog, store)

    assert engine.current_session.id == "new"
    assert len(engine.sessions) == 3
    assert "2 sessions in progress" in caplog.text


def test_tied_in_progress_sessions_resume_first_stored(catalog):
    bundle = {
        "sessions": [
            _session_doc("first", "quiz-a", "IN PROGRESS", START_MS),
            _session_doc("second", "quiz-b", "IN PROGRESS", START_MS),
        ],
    }
    engine = SessionEngine(catalog, MemoryStore({SESSIONS_STORAGE_KEY: json.dumps(bundle)}))

    assert engine.current_session.id == "first"


def test_results_array_is_keyed_by_quiz(catalog):
    result = {
        "sessionId": "s",
        "quizId": "quiz-a",
        "score": 1,
        "maxScore": 2,
        "percentage": 50,
        "questionScores": [],
    }
    store = MemoryStore({SESSIONS_STORAGE_KEY: json.dumps({"sessions": [], "results": [result]})})

    engine = SessionEngine(catalog, store)

    assert engine.get_results_for_quiz("quiz-a").percentage == 50


def test_json_file_store_round_trips_documents(tmp_path):
    store = JsonFileStore(tmp_path / "data")

    assert store.get(QUIZZES_STORAGE_KEY) is None
    store.set(QUIZZES_STORAGE_KEY, "[]")

    assert store.get(QUIZZES_STORAGE_KEY) == "[]"
    assert (tmp_path / "data" / f"{QUIZZES_STORAGE_KEY}.json").exists()


def test_catalog_and_engine_share_a_file_store(tmp_path, clock):
    store = JsonFileStore(tmp_path)
    catalog = QuizCatalog(store, clock=clock)
    catalog.publish_quiz(make_quiz())
    engine = SessionEngine(catalog, store, clock=clock)
    engine.start_session("quiz-1")
    engine.record_answer("q1", "q1-a")

    reopened_catalog = QuizCatalog(JsonFileStore(tmp_path), clock=clock)
    reopened_engine = SessionEngine(reopened_catalog, JsonFileStore(tmp_path), clock=clock)

    assert reopened_catalog.get_quiz_by_id("quiz-1") is not None
    assert reopened_engine.current_session.answer_for("q1") == "q1-a"


def test_undecodable_files_fall_back_to_defaults(tmp_path, caplog):
    (tmp_path / f"{QUIZZES_STORAGE_KEY}.json").write_bytes(b"\xff\xfe[garbage")
    (tmp_path / f"{SESSIONS_STORAGE_KEY}.json").write_bytes(b"\xff\xfe{")
    store = JsonFileStore(tmp_path)

    with caplog.at_level(logging.WARNING):
        catalog = QuizCatalog(store)
        engine = SessionEngine(catalog, store)

    assert [q.title for q in catalog.quizzes] == ["Astro Quiz"]
    assert engine.sessions == []
    assert engine.current_session is None
    assert "Could not read" in caplog.text


def test_failed_write_is_logged_and_keeps_memory_state(tmp_path, clock, caplog):
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory", encoding="utf-8")
    store = JsonFileStore(blocker / "data")

    with caplog.at_level(logging.WARNING):
        catalog = QuizCatalog(store, clock=clock)
        assert catalog.publish_quiz(make_quiz()).success

    assert catalog.get_quiz_by_id("quiz-1") is not None
    assert store.get(QUIZZES_STORAGE_KEY) is None
    assert "Could not write" in caplog.text

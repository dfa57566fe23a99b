"""Application entry point for Quizzer."""

from __future__ import annotations

import argparse
from pathlib import Path
import signal
import sys

from PySide6.QtCore import QCoreApplication, QTimer

from quizzer.constants.about import APP_ABOUT_TEXT, APP_NAME, APP_VERSION
from quizzer.constants.storage_constants import DEFAULT_DATA_DIR
from quizzer.core.app_context import AppContext
from quizzer.core.quiz_exporter import save_quiz_to_file
from quizzer.core.quiz_importer import QuizImportError, load_quiz_from_file
from quizzer.core.services.session_engine import format_time
from quizzer.core.services.storage import JsonFileStore
from quizzer.utils.logging_config import configure_logging


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog=APP_NAME.lower(), description=APP_ABOUT_TEXT)
    parser.add_argument("--version", action="version", version=f"{APP_NAME} {APP_VERSION}")
    parser.add_argument(
        "--data-dir",
        type=Path,
        default=DEFAULT_DATA_DIR,
        help=f"Directory holding the persisted documents (default: {DEFAULT_DATA_DIR}).",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    commands.add_parser("list", help="List every quiz with its attempt status.")

    import_parser = commands.add_parser("import", help="Import a quiz text file as a draft.")
    import_parser.add_argument("file", type=Path)
    import_parser.add_argument("--publish", action="store_true", help="Publish right after importing.")

    export_parser = commands.add_parser("export", help="Write a quiz to a text file.")
    export_parser.add_argument("quiz_id")
    export_parser.add_argument("file", type=Path)

    results_parser = commands.add_parser("results", help="Show the latest result of a quiz.")
    results_parser.add_argument("quiz_id")

    commands.add_parser("watch", help="Keep the countdown of the in-progress attempt running.")
    return parser


def _list_quizzes(context: AppContext) -> int:
    for overview in context.engine.get_quiz_overviews():
        quiz = overview.quiz
        score = f"{overview.result.percentage}%" if overview.result else "-"
        print(
            f"{quiz.id}  {quiz.status.value:<9}  {overview.display_status.value:<11}  "
            f"{score:>4}  {quiz.title or '(untitled)'}"
        )
    return 0


def _import_quiz(context: AppContext, file_path: Path, publish: bool) -> int:
    try:
        imported = load_quiz_from_file(file_path)
    except (OSError, QuizImportError) as exc:
        print(f"Could not import {file_path}: {exc}", file=sys.stderr)
        return 1

    if publish:
        outcome = context.catalog.publish_quiz(imported.quiz)
        if not outcome.success:
            for error in outcome.errors:
                print(error, file=sys.stderr)
            return 1
        print(f"Published {imported.quiz.id}")
        return 0

    context.catalog.save_draft_quiz(imported.quiz)
    context.catalog.discard_quiz()
    print(f"Saved draft {imported.quiz.id}")
    return 0


def _export_quiz(context: AppContext, quiz_id: str, file_path: Path) -> int:
    quiz = context.catalog.get_quiz_by_id(quiz_id)
    if quiz is None:
        print(f"No quiz with id {quiz_id}", file=sys.stderr)
        return 1
    try:
        save_quiz_to_file(file_path, quiz)
    except (OSError, ValueError) as exc:
        print(f"Could not export {quiz_id}: {exc}", file=sys.stderr)
        return 1
    print(f"Exported {quiz_id} to {file_path}")
    return 0


def _show_results(context: AppContext, quiz_id: str) -> int:
    quiz = context.catalog.get_quiz_by_id(quiz_id)
    result = context.engine.get_results_for_quiz(quiz_id)
    if quiz is None or result is None:
        print(f"No results for quiz {quiz_id}", file=sys.stderr)
        return 1

    print(f"{quiz.title}: {result.score}/{result.max_score} ({result.percentage}%)")
    for number, question_score in enumerate(result.question_scores, start=1):
        mark = "correct" if question_score.is_correct else "wrong"
        question = quiz.find_question(question_score.question_id)
        prompt = question.prompt if question else question_score.question_id
        print(f"  {number}. [{mark}] {prompt}")
    return 0


def _watch(app: QCoreApplication, context: AppContext) -> int:
    engine = context.engine
    if engine.current_session is None:
        print("No quiz attempt in progress.")
        return 0

    def report() -> None:
        if engine.current_session is not None:
            print(f"Time remaining: {format_time(engine.time_remaining)}")

    def on_timeout(quiz_id: str) -> None:
        result = engine.get_results_for_quiz(quiz_id)
        if result is not None:
            print(f"Time is up: {result.score}/{result.max_score} ({result.percentage}%)")
        app.quit()

    engine.add_timeout_listener(on_timeout)
    status_timer = QTimer()
    status_timer.setInterval(15_000)
    status_timer.timeout.connect(report)
    status_timer.start()
    report()
    try:
        return app.exec()
    finally:
        status_timer.stop()
        engine.remove_timeout_listener(on_timeout)


def main(argv: list[str] | None = None) -> int:
    """Initialize logging, build the application context and run a command."""
    args = _build_parser().parse_args(argv)
    logger = configure_logging()
    logger.info("Starting %s %s with data in %s", APP_NAME, APP_VERSION, args.data_dir)

    app = QCoreApplication.instance() or QCoreApplication(sys.argv[:1])
    signal.signal(signal.SIGINT, lambda *_: app.quit())

    with AppContext.create(JsonFileStore(args.data_dir)) as context:
        if args.command == "list":
            return _list_quizzes(context)
        if args.command == "import":
            return _import_quiz(context, args.file, args.publish)
        if args.command == "export":
            return _export_quiz(context, args.quiz_id, args.file)
        if args.command == "results":
            return _show_results(context, args.quiz_id)
        return _watch(app, context)


if __name__ == "__main__":
    sys.exit(main())

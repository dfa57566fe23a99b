"""Storage keys and locations for persisted documents."""

from pathlib import Path

QUIZZES_STORAGE_KEY: str = "quizzer-quizzes"
SESSIONS_STORAGE_KEY: str = "quizzer-sessions"
DEFAULT_DATA_DIR: Path = Path.home() / ".quizzer"

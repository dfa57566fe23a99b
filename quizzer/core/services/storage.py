"""Key-value stores backing the persisted quiz and session documents."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Protocol

logger = logging.getLogger(__name__)


class KeyValueStore(Protocol):
    """Minimal string store; one JSON document per key."""

    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...


class MemoryStore:
    """Volatile store, useful for tests and throwaway sessions."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._values: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self._values.get(key)

    def set(self, key: str, value: str) -> None:
        self._values[key] = value


class JsonFileStore:
    """Stores each key as ``<base_dir>/<key>.json``."""

    def __init__(self, base_dir: Path) -> None:
        self._base_dir = base_dir

    @property
    def base_dir(self) -> Path:
        return self._base_dir

    def path_for(self, key: str) -> Path:
        if not key or "/" in key or "\\" in key or key.startswith("."):
            raise ValueError(f"Invalid storage key: {key!r}")
        return self._base_dir / f"{key}.json"

    def get(self, key: str) -> str | None:
        file_path = self.path_for(key)
        if not file_path.exists():
            return None
        try:
            return file_path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            logger.warning("Could not read %s: %s", file_path, exc)
            return None

    def set(self, key: str, value: str) -> None:
        """Write ``value``; failures are logged and the previous file is kept."""
        file_path = self.path_for(key)
        # Write through a sibling file so a crash never leaves half a document.
        temp_path = file_path.with_suffix(".json.tmp")
        try:
            file_path.parent.mkdir(parents=True, exist_ok=True)
            temp_path.write_text(value, encoding="utf-8")
            temp_path.replace(file_path)
        except OSError as exc:
            logger.warning("Could not write %s: %s", file_path, exc)

"""
history_store.py
----------------
Bounded, ordered history of lesson plans on top of a key-value storage.

The whole history lives under a single key as a JSON array, most recently
saved plan first. Every write replaces the whole list.
"""

import json
import logging
import os
import tempfile
from typing import Dict, List, Optional, Protocol

from pydantic import TypeAdapter, ValidationError

from preschool_planner.models.lesson_plan_model import LessonPlan

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_KEY = "lesson_history"
DEFAULT_HISTORY_LIMIT = 20

_plans_adapter = TypeAdapter(List[LessonPlan])


class StorageError(Exception):
    """Persisting the history failed (disk full, permissions, ...)."""


class KeyValueStorage(Protocol):
    def get(self, key: str) -> Optional[str]:
        ...

    def set(self, key: str, value: str) -> None:
        ...


class InMemoryStorage:
    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self.data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    def set(self, key: str, value: str) -> None:
        self.data[key] = value


class JsonFileStorage:
    """One `<key>.json` file per key inside `directory`."""

    def __init__(self, directory: str):
        self.directory = directory

    def _path(self, key: str) -> str:
        return os.path.join(self.directory, f"{key}.json")

    def get(self, key: str) -> Optional[str]:
        path = self._path(key)
        if not os.path.exists(path):
            return None
        with open(path, "r", encoding="utf-8") as f:
            return f.read()

    def set(self, key: str, value: str) -> None:
        os.makedirs(self.directory, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=self.directory, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(value)
            os.replace(tmp_path, self._path(key))
        except OSError:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise


class HistoryStore:
    def __init__(
        self,
        storage: KeyValueStorage,
        key: str = DEFAULT_HISTORY_KEY,
        limit: int = DEFAULT_HISTORY_LIMIT,
    ):
        if limit < 1:
            raise ValueError("History limit must be at least 1")
        self.storage = storage
        self.key = key
        self.limit = limit

    def load_all(self) -> List[LessonPlan]:
        """All stored plans, most recently saved first. Unreadable history reads as empty."""
        try:
            return self._read()
        except StorageError as e:
            logger.warning("Could not read lesson history: %s", e)
            return []

    def _read(self) -> List[LessonPlan]:
        """
        Read the stored list. A failing storage raises StorageError; stored
        content that cannot be decoded or validated is discarded as empty.
        """
        try:
            raw = self.storage.get(self.key)
        except UnicodeDecodeError as e:
            logger.warning("Discarding undecodable lesson history: %s", e)
            return []
        except OSError as e:
            raise StorageError(f"Could not read lesson history: {e}") from e
        if not raw:
            return []
        try:
            return _plans_adapter.validate_json(raw)
        except ValidationError as e:
            logger.warning("Discarding unreadable lesson history: %s", e)
            return []

    def get(self, plan_id: str) -> Optional[LessonPlan]:
        return next((p for p in self.load_all() if p.id == plan_id), None)

    def save(self, plan: LessonPlan) -> List[LessonPlan]:
        """Insert or replace `plan` at the front, keeping the newest `limit` entries."""
        history = [plan] + [p for p in self._read() if p.id != plan.id]
        history = history[: self.limit]
        self._write(history)
        return history

    def delete(self, plan_id: str) -> List[LessonPlan]:
        history = self._read()
        remaining = [p for p in history if p.id != plan_id]
        if len(remaining) != len(history):
            self._write(remaining)
        return remaining

    def _write(self, history: List[LessonPlan]) -> None:
        payload = json.dumps(
            [p.model_dump(by_alias=True) for p in history], ensure_ascii=False
        )
        try:
            self.storage.set(self.key, payload)
        except OSError as e:
            logger.error("Failed to persist lesson history: %s", e)
            raise StorageError(f"Could not save lesson history: {e}") from e

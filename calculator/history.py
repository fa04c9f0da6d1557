from __future__ import annotations

import json
import logging
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, TypeAdapter, ValidationError

from calculator.numbers import format_number, to_display
from calculator.words import expression_to_words
from services.config import CALC_HISTORY_LIMIT

logger = logging.getLogger(__name__)

HISTORY_KEY = "vuna_calc_history"


class PersistenceError(Exception):
    """Raised by a storage backend when it cannot read or write."""


class HistoryRecord(BaseModel):
    """One finished calculation. Frozen once created."""

    model_config = ConfigDict(frozen=True)

    expression: str
    result: float
    words: str
    timestamp: datetime

    def summary(self) -> str:
        return f"{to_display(self.expression)} = {format_number(self.result)}"


_RECORDS = TypeAdapter(List[HistoryRecord])


class MemoryStorage:
    """Key-value storage that lives only as long as the process."""

    def __init__(self):
        self._items: Dict[str, str] = {}

    def get_item(self, key: str) -> Optional[str]:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._items[key] = value


class JsonFileStorage:
    """Key-value storage backed by a single JSON object on disk."""

    def __init__(self, path):
        self.path = Path(path)

    def _read_all(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8") or "{}")
        except (OSError, ValueError) as exc:
            raise PersistenceError(f"cannot read {self.path}: {exc}") from exc
        if not isinstance(data, dict):
            raise PersistenceError(f"{self.path} does not hold a JSON object")
        return data

    def get_item(self, key: str) -> Optional[str]:
        value = self._read_all().get(key)
        return value if isinstance(value, str) else None

    def set_item(self, key: str, value: str) -> None:
        try:
            data = self._read_all()
        except PersistenceError:
            # an unreadable file is replaced rather than blocking every write
            data = {}
        data[key] = value
        tmp_path: Optional[Path] = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            # write beside the target and swap it in, so a crash never leaves half a file
            with tempfile.NamedTemporaryFile(
                "w", encoding="utf-8", dir=self.path.parent, prefix=f".{self.path.name}.", delete=False
            ) as f:
                tmp_path = Path(f.name)
                f.write(json.dumps(data, ensure_ascii=False))
            tmp_path.replace(self.path)
        except OSError as exc:
            if tmp_path is not None:
                tmp_path.unlink(missing_ok=True)
            raise PersistenceError(f"cannot write {self.path}: {exc}") from exc


class HistoryStore:
    """
    Newest-first list of past calculations, capped at `limit` entries.

    The in-memory list is authoritative: storage failures are logged and
    the store keeps working for the rest of the session.
    """

    def __init__(self, storage=None, limit: int = CALC_HISTORY_LIMIT, key: str = HISTORY_KEY):
        self.storage = storage if storage is not None else MemoryStorage()
        self.limit = limit
        self.key = key
        self._records: List[HistoryRecord] = []

    def __len__(self) -> int:
        return len(self._records)

    @property
    def records(self) -> List[HistoryRecord]:
        return list(self._records)

    def get(self, index: int) -> Optional[HistoryRecord]:
        if 0 <= index < len(self._records):
            return self._records[index]
        return None

    def load(self) -> List[HistoryRecord]:
        """Read history once at startup; anything unusable means an empty history."""
        self._records = []
        try:
            stored = self.storage.get_item(self.key)
        except PersistenceError as exc:
            logger.error("Failed to load history: %s", exc)
            return self.records
        if not stored:
            return self.records
        try:
            records = _RECORDS.validate_json(stored)
        except ValidationError as exc:
            logger.warning("Discarding malformed history (%d problems)", exc.error_count())
            return self.records
        self._records = records[: self.limit]
        return self.records

    def save(self) -> bool:
        payload = _RECORDS.dump_json(self._records).decode("utf-8")
        try:
            self.storage.set_item(self.key, payload)
        except PersistenceError as exc:
            logger.error("Failed to save history: %s", exc)
            return False
        return True

    def add(self, expression: str, result: float) -> HistoryRecord:
        record = HistoryRecord(
            expression=expression,
            result=result,
            words=expression_to_words(expression, result),
            timestamp=datetime.now(timezone.utc),
        )
        self._records.insert(0, record)
        del self._records[self.limit:]
        self.save()
        return record

    def clear(self) -> None:
        if not self._records:
            return
        self._records = []
        self.save()


def format_timestamp(timestamp: datetime, now: Optional[datetime] = None) -> str:
    """Relative label for a history entry: "Just now", "5 mins ago", "2 hours ago", else the date."""
    if timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=timezone.utc)
    now = now or datetime.now(timezone.utc)
    minutes = int((now - timestamp).total_seconds() // 60)

    if minutes < 1:
        return "Just now"
    if minutes < 60:
        return f"{minutes} min{'s' if minutes > 1 else ''} ago"
    hours = minutes // 60
    if hours < 24:
        return f"{hours} hour{'s' if hours > 1 else ''} ago"
    return timestamp.astimezone().strftime("%Y-%m-%d %H:%M:%S")

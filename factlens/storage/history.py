from __future__ import annotations

import json
import logging
import os
import threading
import uuid
from datetime import datetime, timezone
from pathlib import Path

from factlens.models.types import AnalysisResult, HistoryEntry, make_query_label

logger = logging.getLogger(__name__)

HISTORY_CAPACITY = 10


def entry_from_result(
    result: AnalysisResult, label: str, now: datetime | None = None
) -> HistoryEntry:
    now = now or datetime.now(tz=timezone.utc)
    return HistoryEntry(
        id=str(uuid.uuid4()),
        query=make_query_label(label) or "Untitled analysis",
        date=now.isoformat(),
        verdict=result.overall_verdict,
        confidence=result.overall_confidence,
    )


class HistoryStore:
    """Newest-first list of recent analyses, persisted as a JSON file.

    Every append reads the whole list, prepends, truncates to capacity and
    replaces the file in one ``os.replace``.
    """

    def __init__(self, path: str = "factlens_history.json", capacity: int = HISTORY_CAPACITY) -> None:
        self._path = Path(path)
        self._capacity = capacity
        self._lock = threading.Lock()

    @property
    def capacity(self) -> int:
        return self._capacity

    def load(self) -> list[HistoryEntry]:
        with self._lock:
            return self._read()

    def append(self, entry: HistoryEntry) -> list[HistoryEntry]:
        with self._lock:
            entries = ([entry] + self._read())[: self._capacity]
            self._write(entries)
        logger.info("Recorded history entry %s (%s)", entry.id, entry.verdict)
        return entries

    def record(self, result: AnalysisResult, label: str) -> HistoryEntry:
        entry = entry_from_result(result, label)
        self.append(entry)
        return entry

    def clear(self) -> None:
        with self._lock:
            self._write([])

    def _read(self) -> list[HistoryEntry]:
        if not self._path.exists():
            return []
        try:
            with open(self._path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning("History file %s unreadable, starting empty: %s", self._path, exc)
            return []
        if not isinstance(data, list):
            logger.warning("History file %s does not hold a list, ignoring it", self._path)
            return []
        entries = [HistoryEntry.from_dict(item) for item in data if isinstance(item, dict)]
        return entries[: self._capacity]

    def _write(self, entries: list[HistoryEntry]) -> None:
        tmp_path = self._path.with_name(self._path.name + ".tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump([e.to_dict() for e in entries], f, indent=2, ensure_ascii=False)
        os.replace(tmp_path, self._path)

"""Tests for factlens.storage.history.HistoryStore."""
from __future__ import annotations

import json
from datetime import datetime, timezone

from factlens.models.types import HistoryEntry
from factlens.storage.history import HistoryStore, entry_from_result


def _entry(n: int) -> HistoryEntry:
    return HistoryEntry(id=str(n), query=f"query {n}", date="2025-06-15T12:00:00+00:00",
                        verdict="true", confidence=0.5)


class TestEntryFromResult:
    def test_fields_come_from_result(self, sample_result):
        now = datetime(2025, 6, 15, 12, 0, tzinfo=timezone.utc)
        entry = entry_from_result(sample_result, "  Is the Great Wall visible?  ", now=now)
        assert entry.query == "Is the Great Wall visible?"
        assert entry.date == "2025-06-15T12:00:00+00:00"
        assert entry.verdict == "false"
        assert entry.confidence == 0.88
        assert entry.id

    def test_blank_label(self, sample_result):
        assert entry_from_result(sample_result, "").query == "Untitled analysis"


class TestHistoryStore:
    def test_empty_when_file_missing(self, temp_history):
        assert temp_history.load() == []

    def test_newest_first(self, temp_history):
        temp_history.append(_entry(1))
        temp_history.append(_entry(2))
        assert [e.id for e in temp_history.load()] == ["2", "1"]

    def test_truncates_to_capacity(self, temp_history):
        for n in range(12):
            temp_history.append(_entry(n))
        entries = temp_history.load()
        assert len(entries) == 10
        assert entries[0].id == "11"
        assert entries[-1].id == "2"

    def test_persists_wire_format(self, tmp_path):
        path = tmp_path / "history.json"
        HistoryStore(str(path)).append(_entry(7))
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
        assert data == [{"id": "7", "query": "query 7", "date": "2025-06-15T12:00:00+00:00",
                         "verdict": "true", "confidence": 0.5}]
        assert not (tmp_path / "history.json.tmp").exists()

    def test_corrupt_file_is_treated_as_empty(self, tmp_path):
        path = tmp_path / "history.json"
        path.write_text("{not json", encoding="utf-8")
        store = HistoryStore(str(path))
        assert store.load() == []
        store.append(_entry(1))
        assert [e.id for e in store.load()] == ["1"]

    def test_record_and_clear(self, temp_history, sample_result):
        entry = temp_history.record(sample_result, "Great Wall")
        assert temp_history.load() == [entry]
        temp_history.clear()
        assert temp_history.load() == []

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Any

from factlens.models.errors import (
    Ok,
    SessionBusyError,
    SessionStateError,
    describe_error,
)
from factlens.models.types import AnalysisMode, AnalysisResult, Upload
from factlens.pipeline import AnalysisPipeline
from factlens.storage.history import HistoryStore

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    IDLE = "idle"
    ANALYZING = "analyzing"
    COMPLETE = "complete"
    ERROR = "error"


@dataclass(frozen=True)
class SessionSnapshot:
    state: SessionState
    result: AnalysisResult | None = None
    warnings: tuple = ()
    error: str | None = None
    error_category: str | None = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"status": self.state.value}
        if self.result is not None:
            out["result"] = self.result.to_dict()
            out["warnings"] = [w.to_dict() for w in self.warnings]
        if self.error is not None:
            out["error"] = self.error
            out["category"] = self.error_category
        return out


class AnalysisSession:
    """One caller's analysis state: idle -> analyzing -> complete | error.

    Only one analysis runs at a time and it is never cancelled part-way.
    Leaving ``complete`` or ``error`` takes an explicit ``reset()``.
    """

    def __init__(self, pipeline: AnalysisPipeline, history: HistoryStore | None = None) -> None:
        self._pipeline = pipeline
        self._history = history
        self._lock = threading.Lock()
        self._snapshot = SessionSnapshot(SessionState.IDLE)

    @property
    def snapshot(self) -> SessionSnapshot:
        with self._lock:
            return self._snapshot

    @property
    def state(self) -> SessionState:
        return self.snapshot.state

    @property
    def history(self) -> HistoryStore | None:
        return self._history

    def reset(self) -> SessionSnapshot:
        with self._lock:
            if self._snapshot.state is SessionState.ANALYZING:
                raise SessionBusyError("Cannot reset while an analysis is running")
            self._snapshot = SessionSnapshot(SessionState.IDLE)
            return self._snapshot

    async def submit(
        self,
        text: str | None,
        upload: Upload | None = None,
        mode: AnalysisMode | str = AnalysisMode.STANDARD,
    ) -> SessionSnapshot:
        with self._lock:
            current = self._snapshot.state
            if current is SessionState.ANALYZING:
                raise SessionBusyError("Submit while analyzing")
            if current is not SessionState.IDLE:
                raise SessionStateError(f"Submit from state {current.value}")
            self._snapshot = SessionSnapshot(SessionState.ANALYZING)

        try:
            outcome = await self._pipeline.run(text, upload, mode)
        except BaseException:
            with self._lock:
                self._snapshot = SessionSnapshot(
                    SessionState.ERROR,
                    error="The analysis was interrupted. Please try again.",
                    error_category="internal",
                )
            raise

        with self._lock:
            if isinstance(outcome, Ok):
                self._snapshot = SessionSnapshot(
                    SessionState.COMPLETE, result=outcome.value, warnings=outcome.warnings
                )
            else:
                self._snapshot = SessionSnapshot(
                    SessionState.ERROR,
                    error=describe_error(outcome.error),
                    error_category=outcome.error.category,
                )
            snapshot = self._snapshot

        if isinstance(outcome, Ok) and self._history is not None:
            label = (text or "").strip() or (upload.filename if upload else "")
            try:
                self._history.record(outcome.value, label)
            except OSError as exc:
                logger.error("Could not persist history entry: %s", exc)

        return snapshot

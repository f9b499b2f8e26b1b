from __future__ import annotations

import json
import time

from factlens.generators.report import REPORT_TITLE
from factlens.models.types import AnalysisResult, Verdict, confidence_percent


def export_json(result: AnalysisResult) -> bytes:
    """Pretty-printed wire JSON of *result*, as offered for download."""
    return json.dumps(result.to_dict(), indent=2, ensure_ascii=False).encode("utf-8")


def _epoch_ms(now: float | None) -> int:
    return int((time.time() if now is None else now) * 1000)


def json_filename(now: float | None = None) -> str:
    return f"fact-check-{_epoch_ms(now)}.json"


def report_filename(now: float | None = None) -> str:
    return f"FactCheck-Report-{_epoch_ms(now)}.pdf"


def format_share_summary(result: AnalysisResult) -> str:
    """Plain-text summary suitable for pasting into a chat or post."""
    verdict = Verdict.coerce(result.overall_verdict).value.upper()
    confidence = confidence_percent(result.overall_confidence)
    return (
        f"Fact Check Result: {verdict}\n"
        f"Confidence: {confidence}%\n\n"
        f"Summary: {result.explainable_summary}\n\n"
        f"Via {REPORT_TITLE}"
    )

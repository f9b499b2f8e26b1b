from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Any

from factlens.models.errors import (
    Err,
    MalformedJsonError,
    NoJsonFoundError,
    Ok,
    Outcome,
    SchemaViolationError,
)
from factlens.models.types import (
    AnalysisResult,
    ClaimType,
    SafetyCategory,
    SourceType,
    Verdict,
)

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("claims", "overall_verdict")
MAX_CLAIMS = 5
MAX_EVIDENCE_PER_CLAIM = 3
MAX_QUOTE_WORDS = 25
MAX_EXCERPT_CHARS = 300

_TRAILING_COMMA = re.compile(r",\s*([\]}])")
_LOG_PREVIEW_CHARS = 2000


def locate_json_candidate(raw_text: str) -> str | None:
    """Return the text between the first ``{`` and the last ``}``, inclusive."""
    start = raw_text.find("{")
    end = raw_text.rfind("}")
    if start == -1 or end == -1 or end < start:
        return None
    return raw_text[start : end + 1]


def braces_balanced(candidate: str) -> bool:
    """Check that ``{``/``}`` pair up outside of JSON string literals."""
    depth = 0
    in_string = False
    escaped = False
    for char in candidate:
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue
        if char == '"':
            in_string = True
        elif char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth < 0:
                return False
    return depth == 0 and not in_string


def looks_like_json(raw_text: str) -> bool:
    """Heuristic: does *raw_text* contain something shaped like a JSON object?

    Prose that happens to hold a balanced ``{...}`` (``"use {x} here"``)
    is a false positive; the parser catches it later as malformed JSON.
    """
    candidate = locate_json_candidate(raw_text or "")
    return candidate is not None and braces_balanced(candidate)


def _reject_constant(name: str) -> Any:
    raise ValueError(f"Non-finite number {name} is not valid JSON")


def _loads(candidate: str) -> Any:
    try:
        return json.loads(candidate, parse_constant=_reject_constant)
    except json.JSONDecodeError:
        repaired = _TRAILING_COMMA.sub(r"\1", candidate)
        if repaired == candidate:
            raise
        data = json.loads(repaired, parse_constant=_reject_constant)
        logger.warning("Recovered model JSON after removing trailing commas")
        return data


def extract_result(raw_text: str) -> Outcome:
    """Recover an AnalysisResult from raw model output.

    Returns ``Ok(result)`` or ``Err(error)``; the error always keeps the raw
    text. Only the presence of ``claims`` and ``overall_verdict`` is checked
    here, see ``check_invariants`` for the rest.
    """
    raw_text = raw_text or ""
    if not looks_like_json(raw_text):
        logger.error("No JSON object in model output: %s", raw_text[:_LOG_PREVIEW_CHARS])
        return Err(NoJsonFoundError(raw_text, "No balanced {...} block in model output"))

    candidate = locate_json_candidate(raw_text)
    try:
        data = _loads(candidate)
    except ValueError as exc:
        logger.error("Model JSON did not parse (%s): %s", exc, raw_text[:_LOG_PREVIEW_CHARS])
        return Err(MalformedJsonError(raw_text, f"JSON parse error: {exc}"))

    if not isinstance(data, dict):
        return Err(MalformedJsonError(raw_text, "Top-level JSON value is not an object"))

    missing = [key for key in REQUIRED_FIELDS if data.get(key) in (None, "")]
    if not isinstance(data.get("claims", []), list):
        missing.append("claims (not a list)")
    if missing:
        logger.error("Model JSON missing required fields: %s", ", ".join(missing))
        return Err(SchemaViolationError(raw_text, f"Missing required fields: {', '.join(missing)}"))

    return Ok(AnalysisResult.from_dict(data))


@dataclass(frozen=True)
class InvariantWarning:
    """A result that parsed fine but breaks a rule of the output contract."""

    code: str
    message: str
    claim_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"code": self.code, "message": self.message, "claim_id": self.claim_id}


def _in_unit_range(value: float) -> bool:
    return 0.0 <= value <= 1.0


def _enum_values(enum_cls) -> set[str]:
    return {member.value for member in enum_cls}


def check_invariants(result: AnalysisResult) -> list[InvariantWarning]:
    """Return every contract rule *result* breaks. Never raises."""
    verdicts = _enum_values(Verdict)
    warnings: list[InvariantWarning] = []

    if len(result.claims) > MAX_CLAIMS:
        warnings.append(InvariantWarning(
            "too_many_claims", f"{len(result.claims)} claims returned, at most {MAX_CLAIMS} expected",
        ))
    if result.overall_verdict not in verdicts:
        warnings.append(InvariantWarning(
            "unknown_verdict", f"Overall verdict {result.overall_verdict!r} is not recognised",
        ))
    if not _in_unit_range(result.overall_confidence):
        warnings.append(InvariantWarning(
            "confidence_out_of_range", f"Overall confidence {result.overall_confidence} outside [0, 1]",
        ))
    if len(result.input_summary.raw_input_excerpt) > MAX_EXCERPT_CHARS:
        warnings.append(InvariantWarning(
            "excerpt_too_long", f"Input excerpt longer than {MAX_EXCERPT_CHARS} characters",
        ))
    for warning in result.safety_warnings:
        if warning.category not in _enum_values(SafetyCategory):
            warnings.append(InvariantWarning(
                "unknown_enum", f"Safety category {warning.category!r} is not recognised",
            ))

    for claim in result.claims:
        warnings.extend(_check_claim(claim, verdicts))

    for warning in warnings:
        logger.warning("Result invariant broken [%s] %s", warning.code, warning.message)
    return warnings


def _check_claim(claim, verdicts: set[str]) -> list[InvariantWarning]:
    found: list[InvariantWarning] = []

    if claim.verdict not in verdicts:
        found.append(InvariantWarning(
            "unknown_verdict", f"Verdict {claim.verdict!r} is not recognised", claim.id,
        ))
    if Verdict.coerce(claim.verdict) is not Verdict.UNKNOWN and not claim.evidence:
        found.append(InvariantWarning(
            "missing_evidence", f"Verdict {claim.verdict!r} given without any evidence", claim.id,
        ))
    if len(claim.evidence) > MAX_EVIDENCE_PER_CLAIM:
        found.append(InvariantWarning(
            "too_much_evidence",
            f"{len(claim.evidence)} evidence items, at most {MAX_EVIDENCE_PER_CLAIM} expected",
            claim.id,
        ))
    if not _in_unit_range(claim.verdict_confidence):
        found.append(InvariantWarning(
            "confidence_out_of_range", f"Verdict confidence {claim.verdict_confidence} outside [0, 1]",
            claim.id,
        ))
    if claim.claim_type not in _enum_values(ClaimType):
        found.append(InvariantWarning(
            "unknown_enum", f"Claim type {claim.claim_type!r} is not recognised", claim.id,
        ))

    for evidence in claim.evidence:
        if evidence.source_type not in _enum_values(SourceType):
            found.append(InvariantWarning(
                "unknown_enum", f"Source type {evidence.source_type!r} is not recognised", claim.id,
            ))
        if len(evidence.quote.split()) > MAX_QUOTE_WORDS:
            found.append(InvariantWarning(
                "quote_too_long", f"Quote from {evidence.source_title!r} exceeds {MAX_QUOTE_WORDS} words",
                claim.id,
            ))
        if not _in_unit_range(evidence.confidence_in_source):
            found.append(InvariantWarning(
                "confidence_out_of_range",
                f"Source confidence {evidence.confidence_in_source} outside [0, 1]",
                claim.id,
            ))
    return found

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from factlens.models.errors import InputError


class AnalysisMode(str, Enum):
    STANDARD = "standard"
    DEEP = "deep"

    @classmethod
    def coerce(cls, value: Any) -> "AnalysisMode":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value or cls.STANDARD.value).strip().lower())
        except ValueError:
            raise InputError(
                f"Unknown analysis mode: {value!r}",
                user_message="Analysis mode must be 'standard' or 'deep'.",
            ) from None


class InputType(str, Enum):
    TEXT = "text"
    IMAGE = "image"
    VIDEO = "video"
    AUDIO = "audio"
    PDF = "pdf"
    URL = "url"
    MIXED = "mixed"


class ClaimType(str, Enum):
    EXPLICIT = "explicit"
    IMPLICIT = "implicit"


class SourceType(str, Enum):
    NEWS = "news"
    RESEARCH = "research"
    OFFICIAL = "official"
    FACTCHECK = "factcheck"
    VIDEO = "video"
    ARCHIVE = "archive"
    OTHER = "other"


class SafetyCategory(str, Enum):
    MEDICAL = "medical"
    LEGAL = "legal"
    PRIVACY = "privacy"
    VIOLENT_CONTENT = "violent_content"
    SELF_HARM = "self_harm"
    OTHER = "other"


class Verdict(str, Enum):
    TRUE = "true"
    FALSE = "false"
    MISLEADING = "misleading"
    OUT_OF_CONTEXT = "out_of_context"
    AI_GENERATED = "ai_generated"
    UNKNOWN = "unknown"

    @classmethod
    def coerce(cls, value: Any) -> "Verdict":
        """Map a raw verdict string onto the enum, falling back to UNKNOWN."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return cls.UNKNOWN


VERDICT_LABELS = {
    Verdict.TRUE: "Verified True",
    Verdict.FALSE: "False",
    Verdict.MISLEADING: "Misleading",
    Verdict.OUT_OF_CONTEXT: "Out of Context",
    Verdict.AI_GENERATED: "AI Generated",
    Verdict.UNKNOWN: "Unverified",
}


def verdict_label(value: Any) -> str:
    return VERDICT_LABELS[Verdict.coerce(value)]


def confidence_percent(value: float) -> int:
    """Whole-number percentage for display; 0 when the value cannot be shown."""
    percent = value * 100
    return round(percent) if math.isfinite(percent) else 0


def _as_str(value: Any, default: str = "") -> str:
    if value is None:
        return default
    return value if isinstance(value, str) else str(value)


def _as_optional_str(value: Any) -> str | None:
    return None if value is None else _as_str(value)


def _as_float(value: Any, default: float = 0.0) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    return number if math.isfinite(number) else default


def _as_int(value: Any, default: int = 0) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _as_str_tuple(value: Any) -> tuple[str, ...]:
    if not isinstance(value, list):
        return ()
    return tuple(_as_str(v) for v in value if v is not None)


def _as_dict(value: Any) -> dict:
    return value if isinstance(value, dict) else {}


@dataclass(frozen=True)
class MediaPayload:
    """Binary media sent inline to the generation service."""

    data: bytes
    mime_type: str


@dataclass(frozen=True)
class Upload:
    """A file handed to the pipeline by a caller."""

    data: bytes
    filename: str = ""
    mime_type: str | None = None


@dataclass(frozen=True)
class AnalysisRequest:
    """One normalized submission, built per request and discarded after use."""

    primary_text: str = ""
    media: MediaPayload | None = None
    mode: AnalysisMode = AnalysisMode.STANDARD
    input_type: InputType = InputType.TEXT

    def __post_init__(self) -> None:
        has_text = bool(self.primary_text and self.primary_text.strip())
        has_media = self.media is not None and bool(self.media.data)
        if not has_text and not has_media:
            raise InputError("AnalysisRequest needs text or media")

    @property
    def is_url(self) -> bool:
        return self.input_type is InputType.URL


@dataclass(frozen=True)
class InputSummary:
    input_type: str = InputType.TEXT.value
    raw_input_excerpt: str = ""
    detected_claims_count: int = 0

    @classmethod
    def from_dict(cls, data: Any) -> "InputSummary":
        data = _as_dict(data)
        return cls(
            input_type=_as_str(data.get("input_type"), InputType.TEXT.value),
            raw_input_excerpt=_as_str(data.get("raw_input_excerpt")),
            detected_claims_count=_as_int(data.get("detected_claims_count")),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "input_type": self.input_type,
            "raw_input_excerpt": self.raw_input_excerpt,
            "detected_claims_count": self.detected_claims_count,
        }


@dataclass(frozen=True)
class Evidence:
    source_title: str
    source_url: str
    source_type: str = SourceType.OTHER.value
    quote: str = ""
    extracted_text: str | None = None
    confidence_in_source: float = 0.0
    retrieved_at: str = ""

    @classmethod
    def from_dict(cls, data: Any) -> "Evidence":
        data = _as_dict(data)
        return cls(
            source_title=_as_str(data.get("source_title")),
            source_url=_as_str(data.get("source_url")),
            source_type=_as_str(data.get("source_type"), SourceType.OTHER.value),
            quote=_as_str(data.get("quote")),
            extracted_text=_as_optional_str(data.get("extracted_text")),
            confidence_in_source=_as_float(data.get("confidence_in_source")),
            retrieved_at=_as_str(data.get("retrieved_at")),
        )

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "source_title": self.source_title,
            "source_url": self.source_url,
            "source_type": self.source_type,
            "quote": self.quote,
        }
        if self.extracted_text is not None:
            out["extracted_text"] = self.extracted_text
        out["confidence_in_source"] = self.confidence_in_source
        out["retrieved_at"] = self.retrieved_at
        return out


@dataclass(frozen=True)
class Claim:
    """A single factual assertion with its own verdict and evidence."""

    id: str
    claim_text: str
    claim_type: str = ClaimType.EXPLICIT.value
    entities: tuple[str, ...] = ()
    evidence: tuple[Evidence, ...] = ()
    verdict: str = Verdict.UNKNOWN.value
    verdict_confidence: float = 0.0
    reasoning: str = ""
    suggested_search_queries: tuple[str, ...] = ()
    provenance: tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, data: Any, index: int = 0) -> "Claim":
        data = _as_dict(data)
        evidence = data.get("evidence")
        return cls(
            id=_as_str(data.get("id"), f"c{index + 1}"),
            claim_text=_as_str(data.get("claim_text")),
            claim_type=_as_str(data.get("claim_type"), ClaimType.EXPLICIT.value),
            entities=_as_str_tuple(data.get("entities")),
            evidence=tuple(
                Evidence.from_dict(item)
                for item in (evidence if isinstance(evidence, list) else [])
                if isinstance(item, dict)
            ),
            verdict=_as_str(data.get("verdict"), Verdict.UNKNOWN.value),
            verdict_confidence=_as_float(data.get("verdict_confidence")),
            reasoning=_as_str(data.get("reasoning")),
            suggested_search_queries=_as_str_tuple(data.get("suggested_search_queries")),
            provenance=_as_str_tuple(data.get("provenance")),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "claim_text": self.claim_text,
            "claim_type": self.claim_type,
            "entities": list(self.entities),
            "evidence": [ev.to_dict() for ev in self.evidence],
            "verdict": self.verdict,
            "verdict_confidence": self.verdict_confidence,
            "reasoning": self.reasoning,
            "suggested_search_queries": list(self.suggested_search_queries),
            "provenance": list(self.provenance),
        }


@dataclass(frozen=True)
class SafetyWarning:
    category: str
    message: str
    recommended_action: str = ""

    @classmethod
    def from_dict(cls, data: Any) -> "SafetyWarning":
        data = _as_dict(data)
        return cls(
            category=_as_str(data.get("category"), SafetyCategory.OTHER.value),
            message=_as_str(data.get("message")),
            recommended_action=_as_str(data.get("recommended_action")),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "category": self.category,
            "message": self.message,
            "recommended_action": self.recommended_action,
        }


@dataclass(frozen=True)
class Meta:
    search_queries: tuple[str, ...] = ()
    timestamp_utc: str = ""
    model: str = ""
    notes: str | None = None
    vision_note: str | None = None

    @classmethod
    def from_dict(cls, data: Any) -> "Meta":
        data = _as_dict(data)
        return cls(
            search_queries=_as_str_tuple(data.get("search_queries")),
            timestamp_utc=_as_str(data.get("timestamp_utc")),
            model=_as_str(data.get("model")),
            notes=_as_optional_str(data.get("notes")),
            vision_note=_as_optional_str(data.get("vision_note")),
        )

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "search_queries": list(self.search_queries),
            "timestamp_utc": self.timestamp_utc,
            "model": self.model,
        }
        if self.notes is not None:
            out["notes"] = self.notes
        if self.vision_note is not None:
            out["vision_note"] = self.vision_note
        return out


@dataclass(frozen=True)
class AnalysisResult:
    """The validated verdict for one submission.

    Enum-like fields keep whatever string the model produced; use
    ``Verdict.coerce`` when rendering.
    """

    claims: tuple[Claim, ...]
    overall_verdict: str
    input_summary: InputSummary = field(default_factory=InputSummary)
    overall_confidence: float = 0.0
    explainable_summary: str = ""
    suggested_actions: tuple[str, ...] = ()
    safety_warnings: tuple[SafetyWarning, ...] = ()
    meta: Meta = field(default_factory=Meta)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AnalysisResult":
        claims = data.get("claims")
        warnings = data.get("safety_warnings")
        return cls(
            input_summary=InputSummary.from_dict(data.get("input_summary")),
            claims=tuple(
                Claim.from_dict(item, idx)
                for idx, item in enumerate(claims if isinstance(claims, list) else [])
                if isinstance(item, dict)
            ),
            overall_verdict=_as_str(data.get("overall_verdict"), Verdict.UNKNOWN.value),
            overall_confidence=_as_float(data.get("overall_confidence")),
            explainable_summary=_as_str(data.get("explainable_summary")),
            suggested_actions=_as_str_tuple(data.get("suggested_actions")),
            safety_warnings=tuple(
                SafetyWarning.from_dict(item)
                for item in (warnings if isinstance(warnings, list) else [])
                if isinstance(item, dict)
            ),
            meta=Meta.from_dict(data.get("meta")),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "input_summary": self.input_summary.to_dict(),
            "claims": [claim.to_dict() for claim in self.claims],
            "overall_verdict": self.overall_verdict,
            "overall_confidence": self.overall_confidence,
            "explainable_summary": self.explainable_summary,
            "suggested_actions": list(self.suggested_actions),
            "safety_warnings": [w.to_dict() for w in self.safety_warnings],
            "meta": self.meta.to_dict(),
        }


QUERY_LABEL_LIMIT = 60


def make_query_label(text: str, limit: int = QUERY_LABEL_LIMIT) -> str:
    """Collapse whitespace and ellipsize *text* so it fits in *limit* chars."""
    label = " ".join((text or "").split())
    if len(label) <= limit:
        return label
    return label[: limit - 3].rstrip() + "..."


@dataclass(frozen=True)
class HistoryEntry:
    """One line of the persisted 'recent analyses' list."""

    id: str
    query: str
    date: str
    verdict: str
    confidence: float

    @classmethod
    def from_dict(cls, data: Any) -> "HistoryEntry":
        data = _as_dict(data)
        return cls(
            id=_as_str(data.get("id")),
            query=_as_str(data.get("query")),
            date=_as_str(data.get("date")),
            verdict=_as_str(data.get("verdict"), Verdict.UNKNOWN.value),
            confidence=_as_float(data.get("confidence")),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "query": self.query,
            "date": self.date,
            "verdict": self.verdict,
            "confidence": self.confidence,
        }

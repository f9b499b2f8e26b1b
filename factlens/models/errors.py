from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Union

GENERIC_MESSAGE = "An unexpected error occurred during analysis."


class FactLensError(Exception):
    """Base class for every failure the analysis pipeline reports to a caller.

    ``user_message`` is short and safe to show to an end user; the exception's
    own ``str()`` may carry diagnostics meant only for the log.
    """

    category = "internal"
    user_message = GENERIC_MESSAGE

    def __init__(self, detail: str = "", user_message: str | None = None) -> None:
        super().__init__(detail or self.user_message)
        if user_message is not None:
            self.user_message = user_message


class InputError(FactLensError):
    category = "input"
    user_message = "Please enter text, a URL, or attach an image or PDF."


class MediaError(FactLensError):
    category = "media"
    user_message = "Failed to parse the attached file. Ensure it is a valid PDF or image."


class EmptyContentError(MediaError):
    user_message = "No text content found in PDF. It might be an image-only scan."


class AuthError(FactLensError):
    category = "auth"
    user_message = "API Key configuration error. Please check your environment."


class QuotaError(FactLensError):
    category = "quota"
    user_message = "Too many requests. Please wait a moment."


class SafetyBlockError(FactLensError):
    category = "safety"
    user_message = "Content blocked due to safety settings."


class NotFoundError(FactLensError):
    category = "not_found"
    user_message = "Model or resource not found."


class EmptyResponseError(FactLensError):
    category = "empty_response"
    user_message = "Received empty response from the model."


class TransportError(FactLensError):
    category = "transport"
    user_message = "Analysis failed while contacting the fact-check service. Please try again."


class BadRequestError(TransportError):
    user_message = "Request failed (400). Please try different content."


class RequestTimeoutError(TransportError):
    category = "timeout"
    user_message = "The analysis took too long and was cancelled. Please try again."


class SessionBusyError(FactLensError):
    category = "busy"
    user_message = "An analysis is already running. Please wait for it to finish."


class SessionStateError(FactLensError):
    category = "state"
    user_message = "The previous analysis is still displayed. Reset before submitting again."


class ExtractionErrorKind(str, Enum):
    NO_JSON_FOUND = "no_json_found"
    MALFORMED_JSON = "malformed_json"
    SCHEMA_VIOLATION = "schema_violation"


class ExtractionFailure(FactLensError):
    """The model answered, but no usable result could be recovered from it.

    The raw model text is kept on the exception for diagnostics.
    """

    category = "extraction"
    kind = ExtractionErrorKind.MALFORMED_JSON

    def __init__(self, raw_text: str, detail: str = "") -> None:
        super().__init__(detail)
        self.raw_text = raw_text


class NoJsonFoundError(ExtractionFailure):
    kind = ExtractionErrorKind.NO_JSON_FOUND
    user_message = "Response did not contain valid JSON structure."


class MalformedJsonError(ExtractionFailure):
    kind = ExtractionErrorKind.MALFORMED_JSON
    user_message = (
        "Failed to parse the fact-check results. "
        "The AI model output was not valid JSON."
    )


class SchemaViolationError(ExtractionFailure):
    kind = ExtractionErrorKind.SCHEMA_VIOLATION
    user_message = "Response JSON missing required fields."


@dataclass(frozen=True)
class Ok:
    """Successful outcome, with any non-fatal warnings found along the way."""

    value: Any
    warnings: tuple = field(default_factory=tuple)


@dataclass(frozen=True)
class Err:
    error: FactLensError

    @property
    def kind(self) -> str:
        kind = getattr(self.error, "kind", None)
        return kind.value if kind is not None else self.error.category

    @property
    def raw_text(self) -> str | None:
        return getattr(self.error, "raw_text", None)


Outcome = Union[Ok, Err]


def describe_error(exc: BaseException) -> str:
    """Return the message an end user should see for *exc*."""
    if isinstance(exc, FactLensError):
        return exc.user_message
    return GENERIC_MESSAGE

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any

import httpx
from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from factlens.config.prompts import SYSTEM_INSTRUCTION, SYSTEM_INSTRUCTION_VERSION
from factlens.generators.prompt_builder import InlinePart, PromptPart, TextPart
from factlens.models.errors import (
    AuthError,
    BadRequestError,
    EmptyResponseError,
    FactLensError,
    NotFoundError,
    QuotaError,
    RequestTimeoutError,
    SafetyBlockError,
    TransportError,
)
from factlens.models.types import AnalysisMode

logger = logging.getLogger(__name__)

DEFAULT_STANDARD_MODEL = "gemini-2.5-flash"
DEFAULT_DEEP_MODEL = "gemini-3-pro-preview"
DEFAULT_TIMEOUT_SECONDS = 120.0

_BLOCKING_FINISH_REASONS = ("SAFETY", "PROHIBITED_CONTENT", "BLOCKLIST", "SPII", "IMAGE_SAFETY")


@dataclass
class ModelResponse:
    """Raw text from the generation service plus the web queries it grounded on."""

    text: str
    model: str
    search_queries: list[str] = field(default_factory=list)


def create_client(api_key: str | None) -> genai.Client:
    if not api_key:
        raise AuthError("GEMINI_API_KEY is not set")
    return genai.Client(api_key=api_key)


def map_api_error(exc: Exception) -> FactLensError:
    """Translate a service error into the pipeline's error taxonomy."""
    code = getattr(exc, "code", None)
    status = str(getattr(exc, "status", "") or "").upper()
    message = str(exc)
    upper = message.upper()

    if code == 401 or "API_KEY_INVALID" in upper or "API KEY NOT VALID" in upper:
        return AuthError(message)
    if code == 403 or status == "PERMISSION_DENIED":
        return AuthError(
            message,
            user_message="Permission denied. Please check API key and enabled services.",
        )
    if code == 429 or status == "RESOURCE_EXHAUSTED":
        return QuotaError(message)
    if code == 404 or status == "NOT_FOUND":
        return NotFoundError(message)
    if "SAFETY" in upper:
        return SafetyBlockError(message)
    if code == 400:
        return BadRequestError(message)
    return TransportError(message)


def _to_sdk_part(part: PromptPart) -> types.Part:
    if isinstance(part, InlinePart):
        return types.Part.from_bytes(data=part.data, mime_type=part.mime_type)
    if isinstance(part, TextPart):
        return types.Part.from_text(text=part.text)
    raise TypeError(f"Unsupported prompt part: {type(part).__name__}")


def _reason_name(value: Any) -> str:
    return str(getattr(value, "name", None) or value or "").upper()


def _response_text(response: Any) -> str | None:
    try:
        text = response.text
    except (ValueError, AttributeError):
        text = None
    if text:
        return text

    chunks: list[str] = []
    for candidate in getattr(response, "candidates", None) or []:
        content = getattr(candidate, "content", None)
        for part in getattr(content, "parts", None) or []:
            part_text = getattr(part, "text", None)
            if isinstance(part_text, str):
                chunks.append(part_text)
        if chunks:
            break
    return "".join(chunks) or None


def _grounding_queries(response: Any) -> list[str]:
    candidates = getattr(response, "candidates", None) or []
    if not candidates:
        return []
    metadata = getattr(candidates[0], "grounding_metadata", None)
    queries = getattr(metadata, "web_search_queries", None) or []
    return [q for q in queries if isinstance(q, str) and q.strip()]


class AnalysisInvoker:
    """Sends prompt parts to Gemini with web search enabled.

    The client is constructed by the application and handed in; this class
    never builds or caches one itself.
    """

    def __init__(
        self,
        client: genai.Client,
        standard_model: str = DEFAULT_STANDARD_MODEL,
        deep_model: str = DEFAULT_DEEP_MODEL,
        timeout_seconds: float | None = DEFAULT_TIMEOUT_SECONDS,
        system_instruction: str = SYSTEM_INSTRUCTION,
    ) -> None:
        self._client = client
        self.standard_model = standard_model
        self.deep_model = deep_model
        self.timeout_seconds = timeout_seconds or None
        self.system_instruction = system_instruction

    def select_model(self, mode: AnalysisMode) -> str:
        return self.deep_model if mode is AnalysisMode.DEEP else self.standard_model

    def build_config(self) -> types.GenerateContentConfig:
        # The search tool rules out response_mime_type/response_schema, so the
        # JSON contract lives only in the system instruction.
        return types.GenerateContentConfig(
            system_instruction=self.system_instruction,
            tools=[types.Tool(google_search=types.GoogleSearch())],
        )

    async def invoke(self, parts: list[PromptPart], mode: AnalysisMode) -> ModelResponse:
        model = self.select_model(mode)
        contents = [types.Content(role="user", parts=[_to_sdk_part(p) for p in parts])]
        logger.info(
            "Invoking %s with %d part(s), system instruction v%s",
            model, len(parts), SYSTEM_INSTRUCTION_VERSION,
        )

        try:
            response = await asyncio.wait_for(
                self._client.aio.models.generate_content(
                    model=model, contents=contents, config=self.build_config()
                ),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError as exc:
            logger.error("No response from %s within %ss, cancelled", model, self.timeout_seconds)
            raise RequestTimeoutError(
                f"{model} did not answer within {self.timeout_seconds}s"
            ) from exc
        except genai_errors.APIError as exc:
            logger.error("Generation service error from %s: %s", model, exc)
            raise map_api_error(exc) from exc
        except httpx.HTTPError as exc:
            logger.error("Transport failure calling %s: %s", model, exc)
            raise TransportError(str(exc)) from exc

        feedback = getattr(response, "prompt_feedback", None)
        block_reason = getattr(feedback, "block_reason", None) if feedback else None
        if block_reason:
            logger.warning("Prompt blocked by %s: %s", model, _reason_name(block_reason))
            raise SafetyBlockError(f"Prompt blocked: {_reason_name(block_reason)}")

        text = _response_text(response)
        if not text or not text.strip():
            for candidate in getattr(response, "candidates", None) or []:
                reason = _reason_name(getattr(candidate, "finish_reason", None))
                if any(r in reason for r in _BLOCKING_FINISH_REASONS):
                    logger.warning("Candidate from %s blocked: %s", model, reason)
                    raise SafetyBlockError(f"Candidate blocked: {reason}")
            raise EmptyResponseError(f"{model} returned no text")

        logger.info("Received %d chars from %s", len(text), model)
        return ModelResponse(text=text, model=model, search_queries=_grounding_queries(response))

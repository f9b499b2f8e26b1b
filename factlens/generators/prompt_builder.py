from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from factlens.config.prompts import DEEP_ANALYSIS_DIRECTIVE, IMAGE_TEMPLATE, URL_TEMPLATE
from factlens.models.types import AnalysisMode, AnalysisRequest


@dataclass(frozen=True)
class TextPart:
    text: str


@dataclass(frozen=True)
class InlinePart:
    data: bytes
    mime_type: str


PromptPart = Union[TextPart, InlinePart]


class PromptBuilder:
    """Builds the ordered request parts for one AnalysisRequest. Pure."""

    def build(self, request: AnalysisRequest) -> list[PromptPart]:
        prefix = DEEP_ANALYSIS_DIRECTIVE if request.mode is AnalysisMode.DEEP else ""

        if request.media is not None:
            instruction = prefix + IMAGE_TEMPLATE.format(mode=request.mode.value)
            if request.primary_text:
                instruction += f" Context: {request.primary_text}"
            return [
                InlinePart(data=request.media.data, mime_type=request.media.mime_type),
                TextPart(text=instruction),
            ]

        if request.is_url:
            return [TextPart(text=prefix + URL_TEMPLATE.format(url=request.primary_text))]

        return [TextPart(text=prefix + request.primary_text)]

"""Tests for factlens.generators.prompt_builder.PromptBuilder."""
from __future__ import annotations

from factlens.config.prompts import DEEP_ANALYSIS_DIRECTIVE
from factlens.generators.prompt_builder import InlinePart, PromptBuilder, TextPart
from factlens.models.types import AnalysisMode, AnalysisRequest, InputType, MediaPayload


class TestTextPrompts:
    def test_plain_text_is_single_text_part(self):
        parts = PromptBuilder().build(AnalysisRequest(primary_text="Bananas are berries."))
        assert parts == [TextPart(text="Bananas are berries.")]

    def test_deep_mode_prefixes_directive(self):
        request = AnalysisRequest(primary_text="Bananas are berries.", mode=AnalysisMode.DEEP)
        (part,) = PromptBuilder().build(request)
        assert part.text.startswith(DEEP_ANALYSIS_DIRECTIVE)
        assert part.text.endswith("Bananas are berries.")

    def test_url_uses_url_template(self):
        request = AnalysisRequest(primary_text="https://example.com/story", input_type=InputType.URL)
        (part,) = PromptBuilder().build(request)
        assert "https://example.com/story" in part.text
        assert part.text.startswith("Analyze the content at this URL")


class TestMediaPrompts:
    def test_image_comes_before_instruction(self):
        media = MediaPayload(data=b"\x89PNG", mime_type="image/png")
        request = AnalysisRequest(media=media, input_type=InputType.IMAGE)
        parts = PromptBuilder().build(request)
        assert parts[0] == InlinePart(data=b"\x89PNG", mime_type="image/png")
        assert isinstance(parts[1], TextPart)
        assert "Analysis mode: standard" in parts[1].text
        assert "Context:" not in parts[1].text

    def test_typed_text_becomes_context(self):
        media = MediaPayload(data=b"\xff\xd8", mime_type="image/jpeg")
        request = AnalysisRequest(
            primary_text="Taken in Paris yesterday", media=media,
            mode=AnalysisMode.DEEP, input_type=InputType.MIXED,
        )
        parts = PromptBuilder().build(request)
        assert len(parts) == 2
        assert parts[1].text.startswith(DEEP_ANALYSIS_DIRECTIVE)
        assert parts[1].text.endswith("Context: Taken in Paris yesterday")

from __future__ import annotations

import copy
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from factlens.models.types import AnalysisResult
from factlens.storage.history import HistoryStore

SAMPLE_RESULT = {
    "input_summary": {
        "input_type": "text",
        "raw_input_excerpt": "The Great Wall of China is visible from space with the naked eye.",
        "detected_claims_count": 1,
    },
    "claims": [
        {
            "id": "c1",
            "claim_text": "The Great Wall of China is visible from space with the naked eye.",
            "claim_type": "explicit",
            "entities": ["Great Wall of China"],
            "evidence": [
                {
                    "source_title": "NASA - Great Wall of China",
                    "source_url": "https://www.nasa.gov/image-article/great-wall-of-china/",
                    "source_type": "official",
                    "quote": "The wall is very difficult to see from orbit without aid.",
                    "confidence_in_source": 0.95,
                    "retrieved_at": "2025-06-15T12:00:00Z",
                },
            ],
            "verdict": "false",
            "verdict_confidence": 0.9,
            "reasoning": "Astronauts report the wall is not visible to the naked eye from low orbit.",
            "suggested_search_queries": ["great wall visible from space"],
            "provenance": ["nasa.gov"],
        },
    ],
    "overall_verdict": "false",
    "overall_confidence": 0.88,
    "explainable_summary": "The claim is a popular myth contradicted by astronaut accounts.",
    "suggested_actions": ["Share the NASA article instead."],
    "safety_warnings": [],
    "meta": {
        "search_queries": [],
        "timestamp_utc": "2025-06-15T12:00:00Z",
        "model": "",
    },
}


def char_measure(text: str, font: str, size: float) -> float:
    """Deterministic stand-in for font metrics: every glyph is half an em wide."""
    return len(text) * size * 0.5


@pytest.fixture
def sample_result_dict() -> dict:
    return copy.deepcopy(SAMPLE_RESULT)


@pytest.fixture
def sample_result(sample_result_dict) -> AnalysisResult:
    return AnalysisResult.from_dict(sample_result_dict)


@pytest.fixture
def temp_history(tmp_path) -> HistoryStore:
    """A HistoryStore backed by a temporary JSON file."""
    return HistoryStore(str(tmp_path / "history.json"), capacity=10)


class FakePdf:
    def __init__(self, pages: list[str]) -> None:
        self.pages = pages
        self.closed = False

    @property
    def page_count(self) -> int:
        return len(self.pages)

    def page_text(self, index: int) -> str:
        return self.pages[index]

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def fake_pdf_opener():
    """Returns a factory: ``fake_pdf_opener(pages)`` gives an opener yielding those pages."""
    opened: list[FakePdf] = []

    def factory(pages: list[str]):
        def opener(_data: bytes) -> FakePdf:
            doc = FakePdf(pages)
            opened.append(doc)
            return doc

        opener.opened = opened
        return opener

    return factory


def make_genai_response(text, queries=None, finish_reason=None, block_reason=None):
    metadata = SimpleNamespace(web_search_queries=queries or [])
    candidate = SimpleNamespace(
        content=SimpleNamespace(parts=[]),
        finish_reason=finish_reason,
        grounding_metadata=metadata,
    )
    feedback = SimpleNamespace(block_reason=block_reason) if block_reason else None
    return SimpleNamespace(text=text, candidates=[candidate], prompt_feedback=feedback)


@pytest.fixture
def mock_genai_client() -> MagicMock:
    """A genai.Client stand-in whose async generate_content is an AsyncMock."""
    client = MagicMock()
    client.aio.models.generate_content = AsyncMock()
    return client

"""Shared fakes for the analysis pipeline collaborators."""

from __future__ import annotations

import json
from typing import Any, Optional

import pytest

from config.settings import PipelineConfig
from src.ai.analysis import PersistedAnnotation
from src.ai.capabilities import FallbackChain
from src.ai.embeddings import EmbeddingsService
from src.ai.errors import ModelUnavailableError
from src.ai.vibe_anchors import AnchorMatch
from src.pipeline import ItemAnalysisPipeline
from src.services.correction_history_service import CorrectionRecord

DIMENSION = 512

VALID_ANALYSIS: dict[str, Any] = {
    "item_name": "Vintage Faded Levi's 501 Jeans",
    "category": "bottom",
    "subcategory": "straight-leg jeans",
    "primary_color": "Indigo",
    "secondary_colors": ["White", "Brown"],
    "color_hex": "#3b4a6b",
    "material": "Denim",
    "fit": "regular",
    "formality": 2,
    "seasonality": ["spring", "fall"],
    "occasions": ["weekend", "date"],
    "style_bucket": "Americana",
    "era": "1990s",
    "era_confidence": 0.8,
    "vibe_scores": {"Grunge": 0.7, "Streetwear": 0.4},
    "dense_caption": "model echo that should be replaced",
    "notable_details": "red tab, button fly",
    "style_description": "Cuff once and wear with boots",
    "is_unorthodox": False,
    "unorthodox_reason": None,
    "brand": "Levi's",
}


def reasoning_response(**overrides: Any) -> str:
    """A realistic reasoning answer: prose plus a fenced JSON object."""
    data = {**VALID_ANALYSIS, **overrides}
    return "Here is the analysis:\n```json\n" + json.dumps(data, indent=2) + "\n```\nDone."


class FakeCapability:
    """Capability returning a fixed value or raising a fixed error."""

    def __init__(self, name: str, result: Any = None, error: Optional[Exception] = None):
        self.name = name
        self.result = result
        self.error = error
        self.calls: list[tuple] = []

    async def invoke(self, *args: Any) -> Any:
        self.calls.append(args)
        if self.error is not None:
            raise self.error
        return self.result


class FakeCorrections:
    def __init__(self, records: Optional[list[CorrectionRecord]] = None, error: Optional[Exception] = None):
        self.records = records or []
        self.error = error
        self.calls: list[tuple] = []

    def load_recent_corrections(self, user_id: Optional[str], limit: int) -> list[CorrectionRecord]:
        self.calls.append((user_id, limit))
        if self.error is not None:
            raise self.error
        return self.records[:limit]


class FakeRecordStore:
    def __init__(self, error: Optional[Exception] = None):
        self.error = error
        self.updates: list[tuple[str, PersistedAnnotation]] = []

    async def update_wardrobe_item(self, item_id: str, annotation: PersistedAnnotation) -> dict:
        if self.error is not None:
            raise self.error
        self.updates.append((item_id, annotation))
        return {"id": item_id}


class FakeVibeIndex:
    def __init__(self, matches: Optional[list[AnchorMatch]] = None, error: Optional[Exception] = None):
        self.matches = matches or []
        self.error = error
        self.calls: list[tuple] = []

    def match(self, embedding, threshold: float, top_k: int) -> list[AnchorMatch]:
        self.calls.append((list(embedding), threshold, top_k))
        if self.error is not None:
            raise self.error
        return self.matches[:top_k]

    def upsert(self, anchor) -> None:
        raise NotImplementedError


def unavailable(model: str = "test-model") -> ModelUnavailableError:
    return ModelUnavailableError("service down", model=model)


class PipelineParts:
    """Every collaborator of a test pipeline, individually reachable."""

    def __init__(self) -> None:
        self.caption = FakeCapability("florence-2", result="A pair of faded indigo jeans.")
        self.caption_fallback = FakeCapability("gemini", result="Gemini caption of jeans.")
        self.ocr = FakeCapability("florence-2", result="LEVI STRAUSS & CO. W32 L32")
        self.ocr_fallback = FakeCapability("gemini", result="NO_TEXT_VISIBLE")
        self.reasoning = FakeCapability("gemini", result=reasoning_response())
        self.embedding = FakeCapability("jina-clip", result=[0.5] * DIMENSION)
        self.corrections = FakeCorrections()
        self.record_store = FakeRecordStore()
        self.vibe_index = FakeVibeIndex()
        self.config = PipelineConfig()

    def build(self) -> ItemAnalysisPipeline:
        return ItemAnalysisPipeline(
            caption_chain=FallbackChain("caption", [self.caption, self.caption_fallback]),
            ocr_chain=FallbackChain("ocr", [self.ocr, self.ocr_fallback]),
            reasoning_chain=FallbackChain("reasoning", [self.reasoning]),
            embeddings=EmbeddingsService(FallbackChain("embedding", [self.embedding]), DIMENSION),
            record_store=self.record_store,
            corrections=self.corrections,
            vibe_index=self.vibe_index,
            pipeline_config=self.config,
        )


@pytest.fixture
def parts() -> PipelineParts:
    return PipelineParts()

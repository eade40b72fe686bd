"""Tests for vibe anchor blending, indexes and catalog initialization."""

from __future__ import annotations

import pytest
import pytest_mock

from src.ai.capabilities import FallbackChain
from src.ai.catalogs import Catalogs
from src.ai.vibe_anchors import (
    AnchorMatch,
    InMemoryVibeIndex,
    SupabaseVibeIndex,
    VibeAnchor,
    blend_vibe_scores,
    initialize_vibe_anchors,
)
from tests.conftest import DIMENSION, FakeCapability, unavailable


def test_blend_never_lowers_scores() -> None:
    original = {"Grunge": 0.8, "Punk": 0.2}
    matches = [AnchorMatch("Grunge", 0.55), AnchorMatch("Punk", 0.6), AnchorMatch("Y2K", 0.7)]

    blended = blend_vibe_scores(original, matches)

    assert blended == {"Grunge": 0.8, "Punk": 0.6, "Y2K": 0.7}
    for name, score in original.items():
        assert blended[name] >= score
    assert original == {"Grunge": 0.8, "Punk": 0.2}


def test_blend_clamps_similarity() -> None:
    assert blend_vibe_scores({}, [AnchorMatch("Y2K", 1.0000002)]) == {"Y2K": 1.0}


def test_in_memory_index_threshold_and_top_k() -> None:
    index = InMemoryVibeIndex(
        [
            VibeAnchor("Grunge", (1.0, 0.0)),
            VibeAnchor("Punk", (0.8, 0.6)),
            VibeAnchor("Preppy", (0.0, 1.0)),
        ]
    )

    matches = index.match([1.0, 0.0], threshold=0.5, top_k=5)

    assert [m.vibe_name for m in matches] == ["Grunge", "Punk"]
    assert index.match([1.0, 0.0], threshold=0.5, top_k=1)[0].vibe_name == "Grunge"


def test_anchor_category() -> None:
    assert VibeAnchor("1970s", ()).category == "era"
    assert VibeAnchor("Dark Academia", ()).category == "aesthetic"


def test_supabase_index_calls_rpc(mocker: pytest_mock.MockerFixture) -> None:
    client = mocker.MagicMock()
    client.rpc.return_value.execute.return_value.data = [
        {"vibe_name": "Grunge", "similarity": 0.72},
        {"vibe_name": None, "similarity": 0.9},
    ]

    matches = SupabaseVibeIndex(client).match([0.1, 0.2], threshold=0.5, top_k=5)

    client.rpc.assert_called_once_with(
        "match_vibe_anchors",
        {"query_embedding": [0.1, 0.2], "match_threshold": 0.5, "match_count": 5},
    )
    assert matches == [AnchorMatch("Grunge", 0.72)]


def test_supabase_index_upserts_on_vibe_name(mocker: pytest_mock.MockerFixture) -> None:
    client = mocker.MagicMock()

    SupabaseVibeIndex(client).upsert(VibeAnchor("1990s", (0.6, 0.8), "slip dresses"))

    client.table.assert_called_once_with("vibe_anchors")
    row = client.table.return_value.upsert.call_args.args[0]
    assert row["vibe_name"] == "1990s"
    assert row["category"] == "era"
    assert row["embedding"] == [0.6, 0.8]
    assert client.table.return_value.upsert.call_args.kwargs == {"on_conflict": "vibe_name"}


@pytest.mark.asyncio
async def test_initialize_mixes_clip_and_fallback() -> None:
    catalogs = Catalogs(vibe_definitions={"Grunge": "flannel", "1990s": "slip dresses"})

    class FlakyClip:
        name = "jina-clip"

        async def invoke(self, text: str) -> list[float]:
            if text == "slip dresses":
                raise unavailable("jina-clip-v2")
            return [2.0] * DIMENSION

    index = InMemoryVibeIndex()

    report = await initialize_vibe_anchors(
        FallbackChain("anchor-embedding", [FlakyClip()]), index, catalogs, delay_seconds=0
    )

    assert report.summary == {"total": 2, "successful": 2, "jina_clip": 1, "fallback": 1}
    assert set(index.anchors) == {"Grunge", "1990s"}
    assert len(index.anchors["1990s"].embedding) == DIMENSION
    assert report.to_dict()["success"] is True


@pytest.mark.asyncio
async def test_initialize_records_upsert_failures() -> None:
    catalogs = Catalogs(vibe_definitions={"Grunge": "flannel"})

    class BrokenIndex(InMemoryVibeIndex):
        def upsert(self, anchor: VibeAnchor) -> None:
            raise RuntimeError("permission denied")

    report = await initialize_vibe_anchors(
        FallbackChain("anchor-embedding", [FakeCapability("jina-clip", result=[1.0] * DIMENSION)]),
        BrokenIndex(),
        catalogs,
        delay_seconds=0,
    )

    assert report.summary["successful"] == 0
    assert report.results[0].error == "permission denied"


@pytest.mark.asyncio
async def test_initialize_without_embedder_uses_fallback_only() -> None:
    catalogs = Catalogs(vibe_definitions={"Grunge": "flannel"})

    report = await initialize_vibe_anchors(None, InMemoryVibeIndex(), catalogs, delay_seconds=0)

    assert report.summary == {"total": 1, "successful": 1, "jina_clip": 0, "fallback": 1}

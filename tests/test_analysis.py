"""Tests for FashionAnalysis validation and coercion."""

from __future__ import annotations

import pytest

from src.ai.analysis import (
    FashionAnalysis,
    PersistedAnnotation,
    analysis_from_dict,
    parse_fashion_analysis,
)
from src.ai.catalogs import NO_TEXT_VISIBLE, Catalogs
from src.ai.errors import MalformedAnalysisError
from tests.conftest import VALID_ANALYSIS, reasoning_response


def test_parse_valid_response() -> None:
    analysis = parse_fashion_analysis(reasoning_response())

    assert analysis.category == "bottom"
    assert analysis.fit == "regular"
    assert analysis.formality == 2
    assert analysis.secondary_colors == ["White", "Brown"]
    assert analysis.brand == "Levi's"


def test_missing_required_field() -> None:
    data = dict(VALID_ANALYSIS)
    del data["fit"]

    with pytest.raises(MalformedAnalysisError, match="fit"):
        analysis_from_dict(data)


def test_blank_required_field_counts_as_missing() -> None:
    with pytest.raises(MalformedAnalysisError, match="material"):
        analysis_from_dict({**VALID_ANALYSIS, "material": "   "})


@pytest.mark.parametrize(
    "raw, expected",
    [("Footwear", "shoes"), (" TOP ", "top"), ("jacket", "outerwear")],
)
def test_category_coercion(raw: str, expected: str) -> None:
    assert analysis_from_dict({**VALID_ANALYSIS, "category": raw}).category == expected


def test_fit_synonym_and_rejection() -> None:
    assert analysis_from_dict({**VALID_ANALYSIS, "fit": "Loose"}).fit == "relaxed"

    with pytest.raises(MalformedAnalysisError):
        analysis_from_dict({**VALID_ANALYSIS, "fit": "wiggly"})


@pytest.mark.parametrize("raw, expected", [(4, 4), (4.0, 4), ("5", 5), (9, 9)])
def test_formality_integers_accepted(raw, expected) -> None:
    assert analysis_from_dict({**VALID_ANALYSIS, "formality": raw}).formality == expected


@pytest.mark.parametrize("raw", ["formal", 2.5, True, [3]])
def test_formality_non_integer_rejected(raw) -> None:
    with pytest.raises(MalformedAnalysisError):
        analysis_from_dict({**VALID_ANALYSIS, "formality": raw})


def test_optional_fields_defaulted_and_clamped() -> None:
    data = {
        key: VALID_ANALYSIS[key]
        for key in (
            "item_name",
            "category",
            "subcategory",
            "primary_color",
            "material",
            "fit",
            "formality",
            "style_bucket",
            "era",
        )
    }
    data["vibe_scores"] = {"Y2K": 1.7, "Punk": -0.2, "Grunge": "high", "Preppy": "0.4"}
    data["era_confidence"] = 3
    data["brand"] = "null"

    analysis = analysis_from_dict(data)

    assert analysis.vibe_scores == {"Y2K": 1.0, "Punk": 0.0, "Preppy": 0.4}
    assert analysis.era_confidence == 1.0
    assert analysis.brand is None
    assert analysis.secondary_colors == []
    assert analysis.is_unorthodox is False


def test_custom_catalogs_are_honoured() -> None:
    catalogs = Catalogs(categories=frozenset({"bottom", "swimwear"}))

    assert analysis_from_dict({**VALID_ANALYSIS, "category": "swimwear"}, catalogs).category == "swimwear"
    with pytest.raises(MalformedAnalysisError):
        analysis_from_dict({**VALID_ANALYSIS, "category": "top"}, catalogs)


def test_apply_stage_outputs_stores_sentinel_as_none() -> None:
    analysis = analysis_from_dict(VALID_ANALYSIS)

    analysis.apply_stage_outputs("real caption", NO_TEXT_VISIBLE)

    assert analysis.dense_caption == "real caption"
    assert analysis.ocr_text is None


def test_persisted_row_contains_every_field() -> None:
    from datetime import datetime, timezone

    analysis = analysis_from_dict(VALID_ANALYSIS)
    annotation = PersistedAnnotation(
        analysis=analysis,
        embedding=[0.0, 1.0],
        tags={"denim", "bottom"},
        analyzed_at=datetime(2026, 5, 1, tzinfo=timezone.utc),
    )

    row = annotation.to_row()

    assert set(FashionAnalysis.__dataclass_fields__) <= set(row)
    assert row["tags"] == ["bottom", "denim"]
    assert row["embedding"] == [0.0, 1.0]
    assert row["analyzed_at"] == "2026-05-01T00:00:00+00:00"

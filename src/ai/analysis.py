"""
Structured item analysis record and its validation.

The reasoning model answers with free-form text that should contain one
JSON object matching FashionAnalysis. parse_fashion_analysis() finds that
object, validates it against the closed vocabularies and returns a
FashionAnalysis, or raises MalformedAnalysisError. Category, fit and
formality are never defaulted: a wrong default would corrupt search and
outfit matching downstream.
"""

from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Optional

from .catalogs import DEFAULT_CATALOGS, NO_TEXT_VISIBLE, Catalogs
from .errors import MalformedAnalysisError
from .json_extract import extract_json_object

REQUIRED_FIELDS = (
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


@dataclass
class FashionAnalysis:
    """The central structured record produced for one clothing item."""

    item_name: str
    category: str
    subcategory: str
    primary_color: str
    material: str
    fit: str
    formality: int
    style_bucket: str
    era: str
    secondary_colors: list[str] = field(default_factory=list)
    color_hex: str = ""
    seasonality: list[str] = field(default_factory=list)
    occasions: list[str] = field(default_factory=list)
    era_confidence: float = 0.0
    vibe_scores: dict[str, float] = field(default_factory=dict)
    dense_caption: str = ""
    notable_details: str = ""
    style_description: str = ""
    is_unorthodox: bool = False
    unorthodox_reason: Optional[str] = None
    ocr_text: Optional[str] = None
    brand: Optional[str] = None

    def to_dict(self) -> dict:
        return asdict(self)

    def apply_stage_outputs(self, dense_caption: str, ocr_text: Optional[str]) -> None:
        """
        Overwrite caption and OCR with the actual vision stage outputs.

        The reasoning model is not trusted to echo them faithfully. The OCR
        sentinel is stored as None on the record.
        """
        self.dense_caption = dense_caption
        self.ocr_text = None if ocr_text in (None, NO_TEXT_VISIBLE) else ocr_text


# =============================================================================
# FIELD COERCION
# =============================================================================


def _clamp_confidence(value: Any) -> Optional[float]:
    """Clamp a confidence value to 0.0-1.0; None when not numeric."""
    if isinstance(value, bool):
        return None
    try:
        conf = float(value)
    except (TypeError, ValueError):
        return None
    if conf != conf:  # NaN
        return None
    return max(0.0, min(1.0, conf))


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _as_optional_text(value: Any) -> Optional[str]:
    text = _as_text(value)
    if not text or text.lower() in ("null", "none", "n/a", "unknown"):
        return None
    return text


def _as_str_list(value: Any) -> list[str]:
    """Normalize a list-or-string field to a list of non-empty strings."""
    if value is None:
        return []
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, (list, tuple)):
        return []
    return [str(item).strip() for item in value if item is not None and str(item).strip()]


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("true", "yes", "1")
    return bool(value)


def _coerce_closed(
    field_name: str, value: Any, allowed: frozenset, synonyms: dict
) -> str:
    """Map a value onto a closed vocabulary or reject it."""
    normalized = _as_text(value).lower()
    normalized = synonyms.get(normalized, normalized)
    if normalized not in allowed:
        raise MalformedAnalysisError(
            f"{field_name} '{value}' is not one of: {', '.join(sorted(allowed))}"
        )
    return normalized


def _coerce_formality(value: Any) -> int:
    """Formality must be an integer; out-of-range integers are kept as-is."""
    if isinstance(value, bool):
        raise MalformedAnalysisError(f"formality '{value}' is not an integer")
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        text = value.strip()
        try:
            return int(text)
        except ValueError:
            try:
                number = float(text)
            except ValueError:
                number = None
            if number is not None and number.is_integer():
                return int(number)
    raise MalformedAnalysisError(f"formality '{value}' is not an integer")


def _coerce_vibe_scores(value: Any) -> dict[str, float]:
    if not isinstance(value, dict):
        return {}
    scores: dict[str, float] = {}
    for name, raw in value.items():
        score = _clamp_confidence(raw)
        name = _as_text(name)
        if name and score is not None:
            scores[name] = score
    return scores


# =============================================================================
# PARSING
# =============================================================================


def analysis_from_dict(
    data: dict, catalogs: Catalogs = DEFAULT_CATALOGS
) -> FashionAnalysis:
    """
    Validate a decoded analysis object.

    Raises:
        MalformedAnalysisError: required field missing or outside its vocabulary
    """
    missing = [
        name
        for name in REQUIRED_FIELDS
        if data.get(name) is None or (isinstance(data.get(name), str) and not data[name].strip())
    ]
    if missing:
        raise MalformedAnalysisError(f"Missing required fields: {', '.join(missing)}")

    return FashionAnalysis(
        item_name=_as_text(data["item_name"]),
        category=_coerce_closed(
            "category", data["category"], catalogs.categories, catalogs.category_synonyms
        ),
        subcategory=_as_text(data["subcategory"]),
        primary_color=_as_text(data["primary_color"]),
        material=_as_text(data["material"]),
        fit=_coerce_closed("fit", data["fit"], catalogs.fits, catalogs.fit_synonyms),
        formality=_coerce_formality(data["formality"]),
        style_bucket=_as_text(data["style_bucket"]),
        era=_as_text(data["era"]),
        secondary_colors=_as_str_list(data.get("secondary_colors")),
        color_hex=_as_text(data.get("color_hex")),
        seasonality=_as_str_list(data.get("seasonality")),
        occasions=_as_str_list(data.get("occasions")),
        era_confidence=_clamp_confidence(data.get("era_confidence")) or 0.0,
        vibe_scores=_coerce_vibe_scores(data.get("vibe_scores")),
        dense_caption=_as_text(data.get("dense_caption")),
        notable_details=_as_text(data.get("notable_details")),
        style_description=_as_text(data.get("style_description")),
        is_unorthodox=_as_bool(data.get("is_unorthodox", False)),
        unorthodox_reason=_as_optional_text(data.get("unorthodox_reason")),
        ocr_text=_as_optional_text(data.get("ocr_text")),
        brand=_as_optional_text(data.get("brand")),
    )


def parse_fashion_analysis(
    response: str, catalogs: Catalogs = DEFAULT_CATALOGS
) -> FashionAnalysis:
    """
    Parse the reasoning model's raw response into a FashionAnalysis.

    Tolerates leading/trailing prose, markdown code fences and whitespace.

    Raises:
        MalformedAnalysisError: no balanced JSON object, or validation failed
    """
    data = extract_json_object(response)
    if data is None:
        raise MalformedAnalysisError("No JSON object found in reasoning response")
    return analysis_from_dict(data, catalogs)


# =============================================================================
# PERSISTED RECORD
# =============================================================================


@dataclass
class PersistedAnnotation:
    """Analysis plus embedding, tags and timestamp, written as one update."""

    analysis: FashionAnalysis
    embedding: list[float]
    tags: set[str]
    analyzed_at: datetime

    def to_row(self) -> dict:
        """Flatten into a record-store row. Re-runs overwrite every column."""
        row = self.analysis.to_dict()
        if row.get("ocr_text") == NO_TEXT_VISIBLE:
            row["ocr_text"] = None
        row["tags"] = sorted(self.tags)
        row["embedding"] = list(self.embedding)
        row["analyzed_at"] = self.analyzed_at.isoformat()
        return row

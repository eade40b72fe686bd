"""
Tag Policy Layer

Derives the canonical, confidence-free tag set stored on a wardrobe item
from its completed FashionAnalysis. Pure and deterministic: the same
analysis always yields the same set, whatever the order of its list
fields.

Usage:
    from src.ai.tag_policy import derive_tags

    tags = derive_tags(analysis)          # set[str]
    row["tags"] = sorted(tags)
"""

import re
from typing import Iterable, Optional

from .analysis import FashionAnalysis
from .catalogs import DEFAULT_CATALOGS, Catalogs


# =============================================================================
# POLICY VERSION
# =============================================================================

POLICY_VERSION = "tag_policy_v3.0"


# =============================================================================
# THRESHOLDS
# =============================================================================

# A vibe becomes a tag only when its score strictly exceeds this value
VIBE_TAG_THRESHOLD = 0.5

VINTAGE_TAG = "vintage"

_WHITESPACE = re.compile(r"\s+")


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================


def _normalize(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    tag = str(value).strip().lower()
    return tag or None


def _vibe_tag(name: str) -> Optional[str]:
    tag = _normalize(name)
    if tag is None:
        return None
    return _WHITESPACE.sub("-", tag)


def _add(tags: set[str], values: Iterable[Optional[str]]) -> None:
    for value in values:
        tag = _normalize(value)
        if tag:
            tags.add(tag)


# =============================================================================
# MAIN POLICY FUNCTION
# =============================================================================


def derive_tags(
    analysis: FashionAnalysis, catalogs: Catalogs = DEFAULT_CATALOGS
) -> set[str]:
    """
    Derive the normalized tag set for an analysis.

    Rules (all lower-cased, duplicates collapse):
    - category, subcategory, primary color, material, fit, style bucket
    - era and "vintage", unless the era is the contemporary sentinel
    - every vibe scoring above VIBE_TAG_THRESHOLD, spaces as hyphens
    - secondary colors, occasions, seasons
    - brand, if present
    - one formality label for formality 1-5; nothing for other values

    Args:
        analysis: Completed analysis (after anchor blending)
        catalogs: Source of the contemporary sentinel and formality labels

    Returns:
        Set of tag strings
    """
    tags: set[str] = set()

    _add(
        tags,
        (
            analysis.category,
            analysis.subcategory,
            analysis.primary_color,
            analysis.material,
            analysis.fit,
            analysis.style_bucket,
        ),
    )

    # Era (vintage detection)
    if _normalize(analysis.era) and not catalogs.is_contemporary(analysis.era):
        _add(tags, (analysis.era, VINTAGE_TAG))

    # High-confidence vibes
    for name, score in analysis.vibe_scores.items():
        if score > VIBE_TAG_THRESHOLD:
            tag = _vibe_tag(name)
            if tag:
                tags.add(tag)

    _add(tags, analysis.secondary_colors)
    _add(tags, analysis.occasions)
    _add(tags, analysis.seasonality)

    if analysis.brand:
        _add(tags, (analysis.brand,))

    formality = catalogs.formality_label(analysis.formality)
    if formality:
        tags.add(formality)

    return tags

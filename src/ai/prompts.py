"""
Prompt templates for the vision fallbacks and the reasoning stage.
"""

from typing import Optional

from .catalogs import DEFAULT_CATALOGS, NO_TEXT_VISIBLE, Catalogs

# Prompt version tracking (update when prompts change significantly)
PROMPT_VERSION = "analyze-item-v2"


CAPTION_FALLBACK_PROMPT = (
    "Analyze this clothing item in extreme detail. Describe the garment type, "
    "colors, patterns, materials, construction details, fit, any visible text or "
    "brand markings, condition, and unique features. Be extremely specific."
)

OCR_FALLBACK_PROMPT = (
    "Extract ALL visible text from this clothing item image: brand names, size "
    "labels, care instructions, \"Made in\" labels, date codes. Return only the "
    "extracted text, one item per line. If no text is visible, return "
    f"\"{NO_TEXT_VISIBLE}\"."
)


def build_reasoning_prompt(
    dense_caption: str,
    ocr_text: Optional[str],
    correction_context: str = "",
    catalogs: Catalogs = DEFAULT_CATALOGS,
) -> str:
    """
    Build the text-only semantic reasoning prompt.

    No image is sent: the caption and OCR stages already distilled the
    visual signal.
    """
    categories = ", ".join(sorted(catalogs.categories))
    fits = ", ".join(sorted(catalogs.fits))
    aesthetics = ", ".join(catalogs.aesthetic_labels)
    ocr_block = ocr_text if ocr_text is not None else NO_TEXT_VISIBLE
    context_block = f"\n\n{correction_context}" if correction_context else ""

    return f"""You are an expert fashion archivist, vintage authenticator, and subculture historian. Analyze this clothing item using forensic fashion analysis.

DENSE CAPTION FROM VISION MODEL:
{dense_caption}

OCR TEXT DETECTED:
{ocr_block}{context_block}

Perform the following analysis:

## STEP 1: FORENSIC ANALYSIS
- Analyze the silhouette (boxy=90s, fitted=2000s, hourglass=50s, oversized=current)
- Analyze fabric and hardware for age markers
- Analyze any visible labels/text for dating clues

## STEP 2: ERA DETECTION
Estimate the decade of origin (1950s-{catalogs.contemporary_era})

## STEP 3: VIBE/AESTHETIC CLASSIFICATION
Map visual features to aesthetics (give confidence 0-1 for each that applies):
{aesthetics}

## STEP 4: UNORTHODOX CHECK
Is this item "unorthodox" (avant-garde, deconstructed, DIY, defies categories)?

Return your analysis as a JSON object with this EXACT schema:
{{
  "item_name": "descriptive name like 'Vintage Faded Levi's 501 Jeans'",
  "category": "one of: {categories}",
  "subcategory": "specific type like 'high-waisted straight-leg jeans'",
  "primary_color": "main color",
  "secondary_colors": ["other colors"],
  "color_hex": "#hexcode of primary",
  "material": "fabric type",
  "fit": "one of: {fits}",
  "formality": 1-5,
  "seasonality": ["spring", "summer", "fall", "winter"],
  "occasions": ["casual", "work", "date", "formal", "workout", "lounge"],
  "style_bucket": "primary style category",
  "era": "decade like '1990s' or '{catalogs.contemporary_era}'",
  "era_confidence": 0.0-1.0,
  "vibe_scores": {{"aesthetic_name": confidence_score}},
  "dense_caption": "the detailed description",
  "notable_details": "unique features",
  "style_description": "how to style this item",
  "is_unorthodox": true/false,
  "unorthodox_reason": "why if applicable",
  "brand": "detected brand or null"
}}

Return ONLY valid JSON, no markdown or extra text."""

"""
Static catalogs for item analysis.

Closed vocabularies (category, fit), the aesthetic label catalog the
reasoning model scores against, the formality label lookup and the vibe
anchor definitions. The pipeline, extraction and tag policy receive a
Catalogs instance so tests can swap in their own tables.
"""

import re
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping, Optional


# =============================================================================
# SENTINELS
# =============================================================================

# OCR found no text. Distinct from "" and from None (OCR stage not run).
NO_TEXT_VISIBLE = "NO_TEXT_VISIBLE"

# Era label for current-day items; any other era adds the "vintage" tag
CONTEMPORARY_ERA = "Contemporary"


# =============================================================================
# CLOSED VOCABULARIES
# =============================================================================

CATEGORIES = frozenset(
    {
        "top",
        "bottom",
        "shoes",
        "outerwear",
        "accessory",
        "dress",
        "other",
    }
)

FITS = frozenset(
    {
        "slim",
        "regular",
        "relaxed",
        "oversized",
    }
)

# Common model phrasings mapped onto the closed sets
CATEGORY_SYNONYMS = {
    "tops": "top",
    "shirt": "top",
    "bottoms": "bottom",
    "pants": "bottom",
    "trousers": "bottom",
    "jeans": "bottom",
    "shoe": "shoes",
    "footwear": "shoes",
    "sneakers": "shoes",
    "boots": "shoes",
    "jacket": "outerwear",
    "coat": "outerwear",
    "accessories": "accessory",
    "bag": "accessory",
    "jewelry": "accessory",
    "dresses": "dress",
}

FIT_SYNONYMS = {
    "fitted": "slim",
    "skinny": "slim",
    "tailored": "slim",
    "standard": "regular",
    "classic": "regular",
    "straight": "regular",
    "loose": "relaxed",
    "baggy": "oversized",
    "boxy": "oversized",
}

# Aesthetic labels the reasoning model scores (confidence 0-1 each)
AESTHETIC_LABELS = (
    "Dark Academia",
    "Cottagecore",
    "Y2K",
    "Minimalist",
    "Streetwear",
    "Gorpcore",
    "Old Money",
    "Grunge",
    "Bohemian",
    "Preppy",
    "Punk",
    "Coastal Grandmother",
    "Eclectic Grandpa",
    "Clean Girl",
    "Indie Sleaze",
    "Quiet Luxury",
    "Mob Wife",
    "Coquette",
    "Corporate",
    "Athleisure",
)

# Indexed by formality - 1 (formality is 1-5)
FORMALITY_LABELS = (
    "very-casual",
    "casual",
    "smart-casual",
    "business-casual",
    "formal",
)


# =============================================================================
# VIBE ANCHOR DEFINITIONS
# =============================================================================
# Rich descriptions embedded once to seed the vibe anchor catalog.

VIBE_DEFINITIONS = {
    # Aesthetics
    "Dark Academia": "Tweed blazers, oxford shoes, turtlenecks, earth tones, brown leather, vintage books aesthetic, scholarly, muted colors, wool, herringbone patterns, argyle sweaters, corduroy pants",
    "Cottagecore": "Floral dresses, linen, prairie style, straw hats, soft pastels, romantic, rural, handmade aesthetic, puff sleeves, eyelet lace, gingham patterns, embroidered blouses",
    "Y2K": "Low-rise jeans, butterfly clips, velour tracksuits, metallic fabrics, baby tees, platform shoes, bedazzled, cyber, Paris Hilton aesthetic, rhinestones, mini skirts, tube tops",
    "Minimalist": "Clean lines, neutral palette, white black gray beige, quality basics, no logos, simple silhouettes, understated elegance, capsule wardrobe, timeless pieces",
    "Streetwear": "Hoodies, sneakers, graphic tees, oversized fits, hype brands, urban style, skateboard influence, bold logos, cargo pants, bucket hats, high-top sneakers",
    "Gorpcore": "Technical outerwear, hiking boots, fleece vests, functional fashion, outdoor brands, utility pockets, earth tones, Patagonia, The North Face, performance fabrics",
    "Old Money": "Quiet luxury, cashmere, navy blazers, pearl jewelry, nautical stripes, preppy, timeless, no visible logos, quality fabrics, Ralph Lauren aesthetic, loafers",
    "Grunge": "Flannel shirts, ripped jeans, combat boots, band tees, layered looks, dark colors, 90s Seattle, distressed denim, Doc Martens, oversized cardigans",
    "Bohemian": "Flowing fabrics, earthy tones, layered jewelry, fringe, embroidery, free-spirited, maxi dresses, natural materials, paisley prints, turquoise accessories",
    "Preppy": "Polo shirts, cable knit sweaters, chinos, boat shoes, collegiate style, clean-cut, pastel colors, tennis aesthetic, blazers with crests, madras patterns",
    "Punk": "Leather jackets, studs, safety pins, band patches, combat boots, tartan, DIY aesthetic, rebellious, black clothing, ripped fishnet, chains, spikes",
    "Coastal Grandmother": "Linen pants, white button-downs, wicker bags, soft neutrals, relaxed elegance, Nancy Meyers aesthetic, cashmere, straw hats, comfortable sandals",
    "Eclectic Grandpa": "Vintage menswear, oversized cardigans, quirky patterns, corduroy, interesting textures, thrifted aesthetic, mismatched prints, vintage spectacles",
    "Clean Girl": "Slicked back hair, gold hoops, neutral palette, minimal makeup aesthetic, simple tank tops, tailored pants, white cotton, delicate jewelry, effortless beauty",
    "Indie Sleaze": "Skinny jeans, American Apparel aesthetic, messy hair, deep v-necks, late 2000s party style, leather jackets, band merch, high-waisted shorts",
    "Quiet Luxury": "Stealth wealth, no logos, premium fabrics, perfect tailoring, muted tones, quality over quantity, The Row aesthetic, Loro Piana, understated elegance",
    "Mob Wife": "Leopard print, fur coats, gold jewelry, bold glamour, red lips, designer logos, maximalist, animal prints, chunky gold chains, dramatic sunglasses",
    "Coquette": "Bows, pink, lace, delicate jewelry, feminine, romantic, ballet flats, soft fabrics, ribbons, corset tops, Mary Jane shoes, pearl details",
    "Corporate": "Tailored suits, pencil skirts, blazers, professional, polished, structured bags, classic pumps, button-down shirts, power dressing",
    "Athleisure": "Leggings, sneakers, sports bras, casual athletic wear, comfortable, gym-to-street style, matching sets, performance fabrics, yoga pants",
    # Eras
    "1950s": "Full skirts, cinched waists, pearls, cat-eye glasses, elegant dresses, feminine silhouettes, Audrey Hepburn, poodle skirts, saddle shoes",
    "1960s": "Mod fashion, mini skirts, bold geometric patterns, go-go boots, shift dresses, Twiggy style, Peter Pan collars, color blocking",
    "1970s": "Bell bottoms, disco, earth tones, platform shoes, bohemian, suede, fringe, Studio 54, halter tops, wide-leg pants, psychedelic prints",
    "1980s": "Power shoulders, neon colors, excess, athletic influence, big hair, bold patterns, Dynasty style, leg warmers, shoulder pads, metallic fabrics",
    "1990s": "Minimalism, slip dresses, grunge flannel, denim everything, simple silhouettes, Kate Moss, chokers, combat boots, mom jeans",
    "2000s": "Low-rise everything, velour, logomania, trucker hats, butterfly clips, Paris Hilton era, bedazzled denim, tiny handbags, layered tanks",
}

_ERA_NAME = re.compile(r"^\d{4}s$")


def anchor_kind(vibe_name: str) -> str:
    """Anchors named like '1970s' are eras; everything else is an aesthetic."""
    return "era" if _ERA_NAME.match(vibe_name) else "aesthetic"


# =============================================================================
# INJECTABLE BUNDLE
# =============================================================================


@dataclass(frozen=True)
class Catalogs:
    """Immutable bundle of every static table the pipeline consults."""

    categories: frozenset = CATEGORIES
    fits: frozenset = FITS
    category_synonyms: Mapping[str, str] = field(
        default_factory=lambda: MappingProxyType(dict(CATEGORY_SYNONYMS))
    )
    fit_synonyms: Mapping[str, str] = field(
        default_factory=lambda: MappingProxyType(dict(FIT_SYNONYMS))
    )
    aesthetic_labels: tuple = AESTHETIC_LABELS
    formality_labels: tuple = FORMALITY_LABELS
    contemporary_era: str = CONTEMPORARY_ERA
    vibe_definitions: Mapping[str, str] = field(
        default_factory=lambda: MappingProxyType(dict(VIBE_DEFINITIONS))
    )

    def formality_label(self, formality) -> Optional[str]:
        """Label for a 1-based formality level; None when out of range."""
        if isinstance(formality, bool) or not isinstance(formality, int):
            return None
        if 1 <= formality <= len(self.formality_labels):
            return self.formality_labels[formality - 1]
        return None

    def is_contemporary(self, era: str) -> bool:
        return era.strip().lower() == self.contemporary_era.lower()


DEFAULT_CATALOGS = Catalogs()

"""
AI Service Module for wardrobe item analysis

Provides the model-backed stages of the analysis pipeline:
- Dense captioning and OCR (Florence-2 on Replicate, Gemini fallback)
- Semantic reasoning into a structured FashionAnalysis (Gemini via OpenRouter)
- Image embeddings (Jina CLIP v2) with a deterministic fallback
- Vibe anchor matching and canonical tag derivation

Configuration:
- Set OPENROUTER_API_KEY and REPLICATE_API_TOKEN in .env file
"""

from .analysis import FashionAnalysis, PersistedAnnotation, parse_fashion_analysis
from .capabilities import ChainResult, FallbackChain, normalize_ocr
from .catalogs import DEFAULT_CATALOGS, NO_TEXT_VISIBLE, Catalogs
from .embeddings import EmbeddingResult, EmbeddingsService, fallback_embedding
from .errors import (
    AnalysisTimeoutError,
    ItemAnalysisError,
    MalformedAnalysisError,
    MissingInputError,
    ModelUnavailableError,
    PersistenceError,
)
from .json_extract import extract_json_object
from .openai_client import OpenRouterClient, OpenRouterConfig
from .replicate_client import ReplicateClient, ReplicateConfig
from .tag_policy import POLICY_VERSION, derive_tags
from .vibe_anchors import (
    InMemoryVibeIndex,
    SupabaseVibeIndex,
    VibeAnchor,
    blend_vibe_scores,
    initialize_vibe_anchors,
)

__all__ = [
    # Clients
    "OpenRouterClient",
    "OpenRouterConfig",
    "ReplicateClient",
    "ReplicateConfig",
    # Stages
    "FallbackChain",
    "ChainResult",
    "normalize_ocr",
    "extract_json_object",
    "parse_fashion_analysis",
    "EmbeddingsService",
    "EmbeddingResult",
    "fallback_embedding",
    "derive_tags",
    "POLICY_VERSION",
    # Vibe anchors
    "VibeAnchor",
    "SupabaseVibeIndex",
    "InMemoryVibeIndex",
    "blend_vibe_scores",
    "initialize_vibe_anchors",
    # Records and catalogs
    "FashionAnalysis",
    "PersistedAnnotation",
    "Catalogs",
    "DEFAULT_CATALOGS",
    "NO_TEXT_VISIBLE",
    # Errors
    "ItemAnalysisError",
    "MissingInputError",
    "ModelUnavailableError",
    "MalformedAnalysisError",
    "PersistenceError",
    "AnalysisTimeoutError",
]

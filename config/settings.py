"""
Configuration settings for the wardrobe item analysis pipeline.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# Load .env file from project root (secrets are never hardcoded)
load_dotenv(Path(__file__).parent.parent / ".env")


@dataclass
class ModelConfig:
    """Model selections and generation settings for each pipeline stage."""

    # Vision stages (Florence-2 on Replicate is the caption and OCR primary)
    florence_version: str = (
        "da53547e17d45b9cfb48174b2f18af8b83ca020fa76db62136bf9c6616762595"
    )

    # Fallback vision model and reasoning model (OpenRouter, OpenAI-compatible)
    fallback_vision_model: str = "google/gemini-2.5-flash-lite-preview-09-2025"
    reasoning_model: str = "google/gemini-2.5-flash-lite-preview-09-2025"

    # Embeddings (Jina CLIP v2 on Replicate)
    jina_clip_version: str = (
        "5050c3108bab23981802011a3c76ee327cc0dbfdd31a2f4ef1ee8ef0d3f0b448"
    )
    embedding_dimension: int = 512

    # Generation settings
    caption_temperature: float = 0.1
    caption_max_tokens: int = 1024
    ocr_temperature: float = 0.0
    ocr_max_tokens: int = 256
    reasoning_temperature: float = 0.2
    reasoning_max_tokens: int = 2048

    # Timeouts
    reasoning_timeout_seconds: float = 60.0
    http_timeout_seconds: float = 120.0

    # Replicate polling (used when sync mode does not finish the prediction)
    poll_interval_seconds: float = 1.0
    poll_max_attempts: int = 60

    def __post_init__(self):
        """Override model names and Replicate versions from env if set."""
        self.florence_version = os.getenv("FLORENCE_VERSION", self.florence_version)
        self.jina_clip_version = os.getenv("JINA_CLIP_VERSION", self.jina_clip_version)
        self.fallback_vision_model = os.getenv(
            "FALLBACK_VISION_MODEL", self.fallback_vision_model
        )
        self.reasoning_model = os.getenv("REASONING_MODEL", self.reasoning_model)


@dataclass
class AnchorConfig:
    """Configuration for vibe anchor matching."""

    match_threshold: float = 0.5  # Lower threshold for real embeddings
    match_count: int = 5
    table_name: str = "vibe_anchors"
    rpc_name: str = "match_vibe_anchors"
    # Delay between anchor embeddings during initialization (rate limiting)
    init_delay_seconds: float = 0.5


@dataclass
class SupabaseConfig:
    """Connection settings for the Supabase project."""

    url: Optional[str] = None
    key: Optional[str] = None
    items_table: str = "wardrobe_items"
    corrections_table: str = "tag_corrections"

    def __post_init__(self):
        self.url = self.url or os.getenv("SUPABASE_URL")
        self.key = (
            self.key
            or os.getenv("SUPABASE_SERVICE_ROLE_KEY")
            or os.getenv("SUPABASE_KEY")
        )


@dataclass
class StorageConfig:
    """Configuration for local annotation storage (dry runs / offline)."""

    base_dir: Path = field(
        default_factory=lambda: Path(__file__).parent.parent / "data"
    )

    @property
    def output_dir(self) -> Path:
        """Get the output directory for annotation files."""
        return self.base_dir / "annotations"

    def ensure_dirs(self) -> None:
        """Create necessary directories if they don't exist."""
        self.output_dir.mkdir(parents=True, exist_ok=True)


@dataclass
class LoggingConfig:
    """Configuration for console logging."""

    log_level: str = "INFO"
    quiet: bool = False

    def __post_init__(self):
        self.log_level = os.getenv("LOG_LEVEL", self.log_level).upper()


@dataclass
class PipelineConfig:
    """Main configuration combining all settings."""

    models: ModelConfig = field(default_factory=ModelConfig)
    anchors: AnchorConfig = field(default_factory=AnchorConfig)
    supabase: SupabaseConfig = field(default_factory=SupabaseConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    # Correction context (few-shot personalization)
    correction_limit: int = 5

    # Overall request timeout for the analysis phase (None = no limit)
    request_timeout_seconds: Optional[float] = 180.0


# Default configuration instance
config = PipelineConfig()

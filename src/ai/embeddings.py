"""
Embeddings Service - image embeddings for similarity search

Produces the 512-dimensional, unit-norm vector stored on every analyzed
item. The primary path is Jina CLIP v2 on the item image. When CLIP is
unavailable, a deterministic text-derived vector is computed from the
finished analysis so every item still carries an embedding.

Fallback vectors are stable across runs but are NOT semantically aligned
with CLIP vectors; similarity between the two kinds is meaningless.

Usage:
    from src.ai import EmbeddingsService

    service = EmbeddingsService(build_embedding_chain(replicate))
    result = await service.embed_image(image_url)
    if result is None:
        result = service.embed_fallback(json.dumps(analysis.to_dict()))
"""

import math
from dataclasses import dataclass
from typing import Optional, Sequence

from config.settings import config as default_config
from src.utils.console import console

from .capabilities import FallbackChain
from .errors import ModelUnavailableError

# Label recorded in pipeline provenance when the fallback produced the vector
FALLBACK_SOURCE = "fallback"


@dataclass
class EmbeddingResult:
    """A normalized vector plus the source that produced it."""

    vector: list[float]
    source: str

    @property
    def is_fallback(self) -> bool:
        return self.source == FALLBACK_SOURCE


# =============================================================================
# VECTOR HELPERS
# =============================================================================


def l2_normalize(vector: Sequence[float]) -> list[float]:
    """
    Scale a vector to unit Euclidean norm.

    Raises:
        ValueError: the vector is empty or has zero magnitude
    """
    magnitude = math.sqrt(sum(x * x for x in vector))
    if not vector or magnitude == 0:
        raise ValueError("cannot normalize an empty or zero vector")
    return [x / magnitude for x in vector]


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Calculate cosine similarity between two vectors."""
    if len(a) != len(b):
        return 0.0

    dot_product = sum(x * y for x, y in zip(a, b))
    magnitude_a = math.sqrt(sum(x * x for x in a))
    magnitude_b = math.sqrt(sum(x * x for x in b))

    if magnitude_a == 0 or magnitude_b == 0:
        return 0.0

    return dot_product / (magnitude_a * magnitude_b)


def fallback_embedding(
    text: str,
    dimension: int = default_config.models.embedding_dimension,
    k: float = 0.001,
) -> list[float]:
    """
    Deterministic text-derived embedding.

    Component i is the sum over characters j of
    sin(code(char_j) * (j + 1) * (i + 1) * k) * 0.01, and the result is
    L2-normalized. Same text, same vector.

    Raises:
        ValueError: text is empty
    """
    if not text:
        raise ValueError("fallback embedding needs non-empty text")

    codes = [ord(ch) for ch in text]
    vector = []
    for i in range(dimension):
        scale = (i + 1) * k
        vector.append(
            sum(math.sin(code * (j + 1) * scale) * 0.01 for j, code in enumerate(codes))
        )
    return l2_normalize(vector)


# =============================================================================
# SERVICE
# =============================================================================


class EmbeddingsService:
    """
    Generates item embeddings with a deterministic fallback.

    The primary chain answers with raw CLIP output; this service normalizes
    it and rejects vectors with the wrong dimension or zero magnitude.
    """

    def __init__(
        self,
        chain: Optional[FallbackChain],
        dimension: int = default_config.models.embedding_dimension,
    ):
        self.chain = chain
        self.dimension = dimension

    async def embed_image(self, image_url: str) -> Optional[EmbeddingResult]:
        """
        Embed an image with the primary model.

        Returns:
            EmbeddingResult, or None when the model is unavailable
        """
        if self.chain is None:
            return None
        try:
            answer = await self.chain.invoke(image_url)
            vector = self._validate(answer.value)
        except ModelUnavailableError as e:
            console.print(f"[yellow]Image embedding unavailable, will use fallback: {e}[/yellow]")
            return None
        return EmbeddingResult(vector=vector, source=answer.answered_by)

    def embed_fallback(self, text: str) -> EmbeddingResult:
        """Deterministic embedding of the serialized analysis."""
        console.print("[dim]Using deterministic fallback embedding[/dim]")
        return EmbeddingResult(
            vector=fallback_embedding(text, self.dimension), source=FALLBACK_SOURCE
        )

    def _validate(self, raw: Sequence[float]) -> list[float]:
        if len(raw) != self.dimension:
            raise ModelUnavailableError(
                f"expected {self.dimension} dimensions, got {len(raw)}", model="jina-clip-v2"
            )
        try:
            return l2_normalize(raw)
        except ValueError as e:
            raise ModelUnavailableError(str(e), model="jina-clip-v2") from e

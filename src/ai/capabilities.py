"""
Model capabilities and fallback chains.

Each pipeline stage is an ordered list of interchangeable capabilities
sharing one async interface. FallbackChain tries them in order and stops
at the first success; there is no retry loop beyond walking the list.

    caption:   Florence-2 (Replicate)  ->  Gemini vision (OpenRouter)
    ocr:       Florence-2 (Replicate)  ->  Gemini vision (OpenRouter)
    reasoning: Gemini text (OpenRouter), no fallback
    embedding: Jina CLIP v2 (Replicate); the deterministic fallback lives
               in embeddings.py because it needs the finished analysis
"""

import asyncio
from dataclasses import dataclass
from typing import Any, Optional, Protocol, Sequence

from config.settings import ModelConfig
from src.utils.console import console

from .catalogs import NO_TEXT_VISIBLE
from .errors import ModelUnavailableError
from .openai_client import OpenRouterClient
from .prompts import CAPTION_FALLBACK_PROMPT, OCR_FALLBACK_PROMPT
from .replicate_client import ReplicateClient


class Capability(Protocol):
    """One model able to answer a stage. Raises ModelUnavailableError on failure."""

    name: str

    async def invoke(self, *args: Any) -> Any: ...


@dataclass
class ChainResult:
    """A stage answer plus the capability that produced it."""

    value: Any
    answered_by: str


class FallbackChain:
    """Try capabilities in order; re-raise the last failure if all fail."""

    def __init__(self, stage: str, capabilities: Sequence[Capability]):
        if not capabilities:
            raise ValueError(f"{stage}: at least one capability is required")
        self.stage = stage
        self.capabilities = tuple(capabilities)

    async def invoke(self, *args: Any) -> ChainResult:
        last_error: Optional[ModelUnavailableError] = None

        for i, capability in enumerate(self.capabilities):
            try:
                value = await capability.invoke(*args)
            except ModelUnavailableError as e:
                last_error = e
                if i + 1 < len(self.capabilities):
                    console.print(
                        f"[yellow]{self.stage}: {capability.name} failed ({e}), "
                        f"falling back to {self.capabilities[i + 1].name}[/yellow]"
                    )
                continue
            if i > 0:
                console.print(f"[yellow]{self.stage}: answered by fallback {capability.name}[/yellow]")
            return ChainResult(value=value, answered_by=capability.name)

        console.print(f"[red]{self.stage}: all models failed[/red]")
        raise last_error


# =============================================================================
# CONCRETE CAPABILITIES
# =============================================================================


class FlorenceTask:
    """Florence-2 caption or OCR task on Replicate."""

    def __init__(self, client: ReplicateClient, task: str, name: str = "florence-2"):
        self.client = client
        self.task = task
        self.name = name

    async def invoke(self, image_url: str) -> str:
        return await self.client.run_florence2(image_url, self.task)


class VisionPrompt:
    """A vision chat model answering a fixed prompt about an image."""

    def __init__(
        self,
        client: OpenRouterClient,
        prompt: str,
        model: str,
        temperature: float,
        max_tokens: int,
        name: str = "gemini",
    ):
        self.client = client
        self.prompt = prompt
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.name = name

    async def invoke(self, image_url: str) -> str:
        return await self.client.generate_with_image(
            self.prompt,
            image_url,
            model=self.model,
            temperature=self.temperature,
            max_tokens=self.max_tokens,
        )


class TextReasoning:
    """Text-only reasoning call with an explicit timeout."""

    def __init__(
        self,
        client: OpenRouterClient,
        model: str,
        temperature: float,
        max_tokens: int,
        timeout_seconds: float,
        name: str = "gemini",
    ):
        self.client = client
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.timeout_seconds = timeout_seconds
        self.name = name

    async def invoke(self, prompt: str) -> str:
        try:
            return await asyncio.wait_for(
                self.client.generate(
                    prompt,
                    model=self.model,
                    temperature=self.temperature,
                    max_tokens=self.max_tokens,
                ),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError as e:
            raise ModelUnavailableError(
                f"reasoning timed out after {self.timeout_seconds:.0f}s", model=self.model
            ) from e


class ClipImageEmbedding:
    """Jina CLIP v2 image embedding on Replicate."""

    def __init__(self, client: ReplicateClient, name: str = "jina-clip"):
        self.client = client
        self.name = name

    async def invoke(self, image_url: str) -> list[float]:
        return await self.client.run_clip_image(image_url)


class ClipTextEmbedding:
    """Jina CLIP v2 text embedding on Replicate (used for vibe anchors)."""

    def __init__(self, client: ReplicateClient, name: str = "jina-clip"):
        self.client = client
        self.name = name

    async def invoke(self, text: str) -> list[float]:
        return await self.client.run_clip_text(text)


# =============================================================================
# STAGE CHAINS
# =============================================================================


def build_caption_chain(
    replicate: ReplicateClient, openrouter: OpenRouterClient, models: ModelConfig
) -> FallbackChain:
    return FallbackChain(
        "caption",
        [
            FlorenceTask(replicate, "more_detailed_caption"),
            VisionPrompt(
                openrouter,
                CAPTION_FALLBACK_PROMPT,
                model=models.fallback_vision_model,
                temperature=models.caption_temperature,
                max_tokens=models.caption_max_tokens,
            ),
        ],
    )


def build_ocr_chain(
    replicate: ReplicateClient, openrouter: OpenRouterClient, models: ModelConfig
) -> FallbackChain:
    return FallbackChain(
        "ocr",
        [
            FlorenceTask(replicate, "ocr"),
            VisionPrompt(
                openrouter,
                OCR_FALLBACK_PROMPT,
                model=models.fallback_vision_model,
                temperature=models.ocr_temperature,
                max_tokens=models.ocr_max_tokens,
            ),
        ],
    )


def build_reasoning_chain(
    openrouter: OpenRouterClient, models: ModelConfig
) -> FallbackChain:
    return FallbackChain(
        "reasoning",
        [
            TextReasoning(
                openrouter,
                model=models.reasoning_model,
                temperature=models.reasoning_temperature,
                max_tokens=models.reasoning_max_tokens,
                timeout_seconds=models.reasoning_timeout_seconds,
            )
        ],
    )


def build_embedding_chain(replicate: ReplicateClient) -> FallbackChain:
    return FallbackChain("embedding", [ClipImageEmbedding(replicate)])


# =============================================================================
# OCR NORMALIZATION
# =============================================================================


def normalize_ocr(text: Optional[str]) -> str:
    """
    Collapse every "no text" answer to the NO_TEXT_VISIBLE sentinel.

    Empty output, whitespace, and the sentinel itself (any case, spaces or
    underscores, quoted or with trailing punctuation) all map to it.
    """
    if text is None:
        return NO_TEXT_VISIBLE
    stripped = text.strip()
    token = stripped.strip("\"'`.!").strip().upper().replace(" ", "_")
    if not token or token == NO_TEXT_VISIBLE:
        return NO_TEXT_VISIBLE
    return stripped

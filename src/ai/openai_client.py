"""
OpenRouter API Client

Async wrapper around the OpenAI SDK pointed at OpenRouter's
OpenAI-compatible endpoint. Used for the Gemini vision fallback
(caption / OCR) and for the text-only semantic reasoning call.

Usage:
    from src.ai import OpenRouterClient

    async with OpenRouterClient() as client:
        # Text generation
        response = await client.generate("Describe this garment", model=...)

        # Vision (with image URL)
        response = await client.generate_with_image("Describe this", image_url)

Failures are raised as ModelUnavailableError, never returned as "".
"""

import asyncio
import os
from dataclasses import dataclass
from typing import Optional

import openai
from openai import AsyncOpenAI

from config.settings import config as default_config
from src.utils.console import console

from .errors import ModelUnavailableError


@dataclass
class OpenRouterConfig:
    """Configuration for the OpenRouter client."""

    api_key: Optional[str] = None
    base_url: str = "https://openrouter.ai/api/v1"

    # Model selections (override via env: REASONING_MODEL, FALLBACK_VISION_MODEL)
    chat_model: str = default_config.models.reasoning_model
    vision_model: str = default_config.models.fallback_vision_model

    # Timeouts
    timeout_seconds: float = default_config.models.http_timeout_seconds

    # Generation settings
    temperature: float = 0.3
    max_tokens: int = 2048

    # Attribution headers OpenRouter shows on its dashboard
    referer: str = "https://styleum.app"
    title: str = "Styleum Fashion AI"


class OpenRouterClient:
    """
    Async client for OpenRouter chat completions.

    Handles text generation and single-image vision prompts.
    """

    def __init__(self, config: Optional[OpenRouterConfig] = None):
        self.config = config or OpenRouterConfig()
        # Get API key from config or environment
        api_key = self.config.api_key or os.getenv("OPENROUTER_API_KEY")
        if not api_key:
            raise ValueError(
                "OpenRouter API key not found. Set OPENROUTER_API_KEY environment variable."
            )
        self._client = AsyncOpenAI(
            api_key=api_key,
            base_url=self.config.base_url,
            timeout=self.config.timeout_seconds,
            max_retries=0,  # one attempt per call; fallback hops are explicit
            default_headers={
                "HTTP-Referer": self.config.referer,
                "X-Title": self.config.title,
            },
        )

    async def __aenter__(self):
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()

    async def close(self) -> None:
        """Release HTTP resources."""
        await self._client.close()

    async def generate(
        self,
        prompt: str,
        model: Optional[str] = None,
        system: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> str:
        """
        Generate text response from a prompt.

        Args:
            prompt: The user prompt
            model: Model to use (defaults to chat_model)
            system: Optional system prompt
            temperature: Sampling temperature (0-1)
            max_tokens: Maximum tokens to generate

        Returns:
            Generated text response

        Raises:
            ModelUnavailableError: API, transport or timeout failure
        """
        model = model or self.config.chat_model
        messages = []

        if system:
            messages.append({"role": "system", "content": system})

        messages.append({"role": "user", "content": prompt})

        return await self._complete(model, messages, temperature, max_tokens)

    async def generate_with_image(
        self,
        prompt: str,
        image_url: str,
        model: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> str:
        """
        Generate text response from a prompt and an image URL.

        Args:
            prompt: The user prompt describing what to analyze
            image_url: Resolvable URL of the image
            model: Vision model to use (defaults to vision_model)
            temperature: Sampling temperature
            max_tokens: Maximum tokens to generate

        Returns:
            Generated text response
        """
        model = model or self.config.vision_model
        messages = [
            {
                "role": "user",
                "content": [
                    {"type": "text", "text": prompt},
                    {"type": "image_url", "image_url": {"url": image_url}},
                ],
            }
        ]
        return await self._complete(model, messages, temperature, max_tokens)

    async def _complete(
        self,
        model: str,
        messages: list[dict],
        temperature: Optional[float],
        max_tokens: Optional[int],
    ) -> str:
        try:
            response = await self._client.chat.completions.create(
                model=model,
                messages=messages,
                temperature=(
                    self.config.temperature if temperature is None else temperature
                ),
                max_tokens=max_tokens or self.config.max_tokens,
            )
        except (openai.OpenAIError, asyncio.TimeoutError) as e:
            console.print(f"[red]OpenRouter error ({model}): {e}[/red]")
            raise ModelUnavailableError(str(e) or type(e).__name__, model=model) from e

        if not response.choices:
            raise ModelUnavailableError("response contained no choices", model=model)
        return response.choices[0].message.content or ""

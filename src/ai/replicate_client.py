"""
Replicate API Client

Runs hosted vision models through Replicate's predictions API:
- Florence-2 for dense captioning and OCR
- Jina CLIP v2 for 512-dimensional image / text embeddings

Predictions are created in sync mode ("Prefer: wait") and polled when
they are not finished by the time the create call returns.

Usage:
    from src.ai import ReplicateClient

    async with ReplicateClient() as client:
        caption = await client.run_florence2(image_url, "more_detailed_caption")
        vector = await client.run_clip_image(image_url)
"""

import asyncio
import json
import os
from dataclasses import dataclass
from typing import Any, Optional

import httpx

from config.settings import config as default_config
from src.utils.console import console

from .errors import ModelUnavailableError

REPLICATE_API = "https://api.replicate.com/v1/predictions"

# Florence-2 task names keyed by our task identifiers
FLORENCE_TASKS = {
    "caption": "Caption",
    "detailed_caption": "Detailed Caption",
    "more_detailed_caption": "More Detailed Caption",
    "ocr": "OCR",
}


@dataclass
class ReplicateConfig:
    """Configuration for the Replicate client."""

    api_token: Optional[str] = None
    florence_version: str = default_config.models.florence_version
    jina_clip_version: str = default_config.models.jina_clip_version
    embedding_dimension: int = default_config.models.embedding_dimension
    timeout_seconds: float = default_config.models.http_timeout_seconds
    poll_interval_seconds: float = default_config.models.poll_interval_seconds
    poll_max_attempts: int = default_config.models.poll_max_attempts


class ReplicateClient:
    """Async client for Replicate predictions."""

    def __init__(
        self,
        config: Optional[ReplicateConfig] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.config = config or ReplicateConfig()
        # Try both possible env var names
        token = (
            self.config.api_token
            or os.getenv("REPLICATE_API_TOKEN")
            or os.getenv("REPLICATE_API_KEY")
        )
        if not token:
            raise ValueError(
                "Missing REPLICATE_API_TOKEN or REPLICATE_API_KEY environment variable."
            )
        self._owns_http = http_client is None
        self._http_client = http_client
        self._headers = {"Authorization": f"Bearer {token}"}

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    @property
    def _http(self) -> httpx.AsyncClient:
        """HTTP client, opened on first request."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=self.config.timeout_seconds)
        return self._http_client

    async def close(self) -> None:
        if self._owns_http and self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None

    async def run_prediction(
        self, version: str, input: dict, model: str = "replicate"
    ) -> Any:
        """
        Create a prediction and poll until it completes.

        Args:
            version: Pinned model version hash
            input: Model input payload
            model: Model name used in errors and logs

        Returns:
            The prediction output

        Raises:
            ModelUnavailableError: HTTP failure, failed prediction or timeout
        """
        try:
            response = await self._http.post(
                REPLICATE_API,
                headers={
                    **self._headers,
                    "Content-Type": "application/json",
                    "Prefer": "wait",  # Sync mode for faster response
                },
                json={"version": version, "input": input},
            )
            if response.status_code >= 400:
                console.print(f"[red]Replicate create error ({model}): {response.text}[/red]")
                raise ModelUnavailableError(
                    f"Replicate API error: {response.status_code}", model=model
                )
            prediction = response.json()

            # Poll if not complete (in case sync mode didn't finish)
            attempts = 0
            while prediction.get("status") not in ("succeeded", "failed", "canceled"):
                if attempts >= self.config.poll_max_attempts:
                    raise ModelUnavailableError("Replicate prediction timeout", model=model)
                await asyncio.sleep(self.config.poll_interval_seconds)

                poll = await self._http.get(
                    f"{REPLICATE_API}/{prediction['id']}", headers=self._headers
                )
                if poll.status_code >= 400:
                    raise ModelUnavailableError(
                        f"Replicate poll error: {poll.status_code}", model=model
                    )
                prediction = poll.json()
                attempts += 1
        except httpx.HTTPError as e:
            raise ModelUnavailableError(f"transport error: {e}", model=model) from e
        except (ValueError, KeyError) as e:
            raise ModelUnavailableError(f"malformed Replicate payload: {e}", model=model) from e

        if prediction.get("status") != "succeeded":
            raise ModelUnavailableError(
                f"Replicate prediction {prediction.get('status')}: {prediction.get('error')}",
                model=model,
            )

        return prediction.get("output")

    # =========================================================================
    # Florence-2: captioning and OCR
    # =========================================================================

    async def run_florence2(self, image_url: str, task: str) -> str:
        """
        Run Florence-2 for dense captioning or OCR.

        Args:
            image_url: URL of the image to analyze
            task: caption | detailed_caption | more_detailed_caption | ocr

        Returns:
            The text output (caption or OCR result)
        """
        task_input = FLORENCE_TASKS[task]
        console.print(f"[dim][Florence-2] Running {task} on image...[/dim]")

        output = await self.run_prediction(
            self.config.florence_version,
            {"image": image_url, "task_input": task_input},
            model="florence-2",
        )

        # Florence-2 returns a string or an object keyed by task name
        if isinstance(output, str):
            return output
        if isinstance(output, dict):
            for key in (task_input, "text"):
                if output.get(key) is not None:
                    return str(output[key])
            return json.dumps(output)
        if output is None:
            return ""
        raise ModelUnavailableError(
            f"unexpected Florence-2 output type {type(output).__name__}", model="florence-2"
        )

    # =========================================================================
    # Jina CLIP v2: multimodal embeddings
    # =========================================================================

    async def run_clip_image(self, image_url: str) -> list[float]:
        """Generate an embedding from an image (not normalized)."""
        console.print("[dim][Jina CLIP] Generating image embedding...[/dim]")
        output = await self.run_prediction(
            self.config.jina_clip_version,
            {
                "image": image_url,
                "embedding_dim": self.config.embedding_dimension,
                "output_format": "array",
            },
            model="jina-clip-v2",
        )
        return self._unwrap_vector(output)

    async def run_clip_text(self, text: str) -> list[float]:
        """Generate an embedding from text (not normalized)."""
        console.print("[dim][Jina CLIP] Generating text embedding...[/dim]")
        output = await self.run_prediction(
            self.config.jina_clip_version,
            {
                "text": text,
                "embedding_dim": self.config.embedding_dimension,
                "output_format": "array",
            },
            model="jina-clip-v2",
        )
        return self._unwrap_vector(output)

    @staticmethod
    def _unwrap_vector(output: Any) -> list[float]:
        """Handle nested array output [[...]] -> [...]."""
        if not isinstance(output, list) or not output:
            raise ModelUnavailableError("Jina CLIP did not return an array", model="jina-clip-v2")
        if isinstance(output[0], list):
            output = output[0]
        try:
            return [float(x) for x in output]
        except (TypeError, ValueError) as e:
            raise ModelUnavailableError(
                f"Jina CLIP returned non-numeric values: {e}", model="jina-clip-v2"
            ) from e

"""Tests for the Replicate predictions client using httpx.MockTransport."""

from __future__ import annotations

import json

import httpx
import pytest

from src.ai.errors import ModelUnavailableError
from src.ai.replicate_client import REPLICATE_API, ReplicateClient, ReplicateConfig


def _client(handler) -> ReplicateClient:
    return ReplicateClient(
        ReplicateConfig(api_token="r8_test", poll_interval_seconds=0, poll_max_attempts=3),
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )


@pytest.mark.asyncio
async def test_florence_sync_caption() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"id": "p1", "status": "succeeded", "output": "A denim jacket"})

    async with _client(handler) as client:
        caption = await client.run_florence2("https://img", "more_detailed_caption")

    assert caption == "A denim jacket"
    request = seen[0]
    assert str(request.url) == REPLICATE_API
    assert request.headers["Prefer"] == "wait"
    assert request.headers["Authorization"] == "Bearer r8_test"
    body = json.loads(request.content)
    assert body["input"] == {"image": "https://img", "task_input": "More Detailed Caption"}


@pytest.mark.asyncio
async def test_polls_until_complete() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.method == "POST":
            return httpx.Response(201, json={"id": "p1", "status": "starting"})
        assert str(request.url) == f"{REPLICATE_API}/p1"
        return httpx.Response(200, json={"id": "p1", "status": "succeeded", "output": {"text": "SIZE M"}})

    async with _client(handler) as client:
        assert await client.run_florence2("https://img", "ocr") == "SIZE M"


@pytest.mark.asyncio
async def test_poll_attempts_exhausted() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"id": "p1", "status": "processing"})

    async with _client(handler) as client:
        with pytest.raises(ModelUnavailableError, match="timeout"):
            await client.run_florence2("https://img", "ocr")


@pytest.mark.asyncio
async def test_failed_prediction() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"id": "p1", "status": "failed", "error": "CUDA OOM"})

    async with _client(handler) as client:
        with pytest.raises(ModelUnavailableError, match="CUDA OOM"):
            await client.run_clip_image("https://img")


@pytest.mark.asyncio
async def test_http_error_status() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503, text="overloaded")

    async with _client(handler) as client:
        with pytest.raises(ModelUnavailableError, match="503"):
            await client.run_florence2("https://img", "ocr")


@pytest.mark.asyncio
async def test_transport_error_translated() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    async with _client(handler) as client:
        with pytest.raises(ModelUnavailableError) as exc_info:
            await client.run_florence2("https://img", "ocr")

    assert exc_info.value.model == "florence-2"


@pytest.mark.asyncio
async def test_clip_nested_output_unwrapped() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        assert body["input"]["embedding_dim"] == 512
        assert body["input"]["text"] == "flannel shirts"
        return httpx.Response(200, json={"id": "p1", "status": "succeeded", "output": [[0.1, 0.2, 0.3]]})

    async with _client(handler) as client:
        assert await client.run_clip_text("flannel shirts") == [0.1, 0.2, 0.3]


@pytest.mark.asyncio
async def test_clip_non_array_output() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"id": "p1", "status": "succeeded", "output": "oops"})

    async with _client(handler) as client:
        with pytest.raises(ModelUnavailableError):
            await client.run_clip_image("https://img")


def test_missing_token(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("REPLICATE_API_TOKEN", raising=False)
    monkeypatch.delenv("REPLICATE_API_KEY", raising=False)

    with pytest.raises(ValueError):
        ReplicateClient(ReplicateConfig())

"""Tests for the Flask HTTP surface."""

from __future__ import annotations

import pytest

from server import app
from src.ai.vibe_anchors import AnchorInitReport, AnchorInitResult
from tests.conftest import DIMENSION, PipelineParts, unavailable


@pytest.fixture
def client(parts: PipelineParts, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setitem(app.config, "PIPELINE_FACTORY", parts.build)
    app.config["TESTING"] = True
    with app.test_client() as test_client:
        yield test_client


def test_analyze_item_success(client, parts: PipelineParts) -> None:
    response = client.post(
        "/analyze-item",
        json={"item_id": "item-1", "image_url": "https://cdn.test/jeans.jpg", "user_id": "user-1"},
    )

    assert response.status_code == 200
    body = response.get_json()
    assert body["success"] is True
    assert body["embedding_dimensions"] == DIMENSION
    assert body["analysis"]["category"] == "bottom"
    assert body["pipeline"]["embedding"] == "jina-clip"
    assert response.headers["Access-Control-Allow-Origin"] == "*"
    assert len(parts.record_store.updates) == 1


def test_analyze_item_missing_input(client, parts: PipelineParts) -> None:
    response = client.post("/analyze-item", json={"item_id": "item-1"})

    assert response.status_code == 400
    assert response.get_json() == {"error": "Missing item_id or image_url"}
    assert parts.caption.calls == []


def test_analyze_item_non_json_body(client) -> None:
    response = client.post("/analyze-item", data="not json", content_type="text/plain")

    assert response.status_code == 400


def test_reasoning_failure_returns_error(client, parts: PipelineParts) -> None:
    parts.reasoning.error = unavailable("gemini")

    response = client.post(
        "/analyze-item", json={"item_id": "item-1", "image_url": "https://cdn.test/jeans.jpg"}
    )

    assert response.status_code == 502
    assert "gemini" in response.get_json()["error"]
    assert parts.record_store.updates == []


def test_unexpected_error_is_500(client, parts: PipelineParts) -> None:
    parts.reasoning.error = RuntimeError("boom")

    response = client.post(
        "/analyze-item", json={"item_id": "item-1", "image_url": "https://cdn.test/jeans.jpg"}
    )

    assert response.status_code == 500
    assert response.get_json() == {"error": "boom"}


def test_preflight(client) -> None:
    response = client.open("/analyze-item", method="OPTIONS")

    assert response.status_code == 200
    assert "content-type" in response.headers["Access-Control-Allow-Headers"]


def test_health(client) -> None:
    assert client.get("/health").get_json() == {"status": "ok"}


def test_initialize_vibe_anchors(client, monkeypatch: pytest.MonkeyPatch) -> None:
    calls = []

    async def fake_initializer(fallback_only: bool = False) -> AnchorInitReport:
        calls.append(fallback_only)
        return AnchorInitReport([AnchorInitResult("Grunge", True, "fallback")])

    monkeypatch.setitem(app.config, "ANCHOR_INITIALIZER", fake_initializer)

    response = client.post("/vibe-anchors/initialize", json={"fallback_only": True})

    assert response.status_code == 200
    assert calls == [True]
    assert response.get_json()["summary"] == {
        "total": 1,
        "successful": 1,
        "jina_clip": 0,
        "fallback": 1,
    }


def test_analyze_item_array_body(client, parts: PipelineParts) -> None:
    response = client.post("/analyze-item", json=["item-1", "https://cdn.test/jeans.jpg"])

    assert response.status_code == 400
    assert parts.record_store.updates == []

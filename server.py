#!/usr/bin/env python3
"""
HTTP API for the wardrobe item analysis pipeline.

Endpoints:
    POST /analyze-item             {item_id, image_url, user_id?}
    POST /vibe-anchors/initialize  {fallback_only?}
    GET  /health

Usage:
    python server.py              # http://localhost:5001
    python server.py --port 8080
"""
import argparse
import asyncio
import sys
from pathlib import Path

# Ensure project root is on path for src imports
sys.path.insert(0, str(Path(__file__).resolve().parent))

from flask import Flask, jsonify, request

from src.ai.errors import ItemAnalysisError
from src.pipeline import AnalysisRequest, ItemAnalysisPipeline, initialize_anchor_catalog
from src.utils.console import console

app = Flask(__name__)

# Swappable in tests
app.config["PIPELINE_FACTORY"] = ItemAnalysisPipeline.create
app.config["ANCHOR_INITIALIZER"] = initialize_anchor_catalog

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type",
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
}


@app.after_request
def add_cors_headers(response):
    for key, value in CORS_HEADERS.items():
        response.headers[key] = value
    return response


def _error_response(error: Exception):
    if isinstance(error, ItemAnalysisError):
        return jsonify({"error": error.message}), error.status_code
    return jsonify({"error": str(error) or type(error).__name__}), 500


async def _run_analysis(analysis_request: AnalysisRequest) -> dict:
    async with app.config["PIPELINE_FACTORY"]() as pipeline:
        result = await pipeline.analyze(analysis_request)
    return result.to_response()


# ============================================
# ROUTES
# ============================================


@app.route("/analyze-item", methods=["POST", "OPTIONS"])
def analyze_item():
    """Analyze one wardrobe item photo and persist the annotation."""
    if request.method == "OPTIONS":
        return "", 200

    try:
        analysis_request = AnalysisRequest.from_payload(request.get_json(silent=True))
        return jsonify(asyncio.run(_run_analysis(analysis_request)))
    except Exception as e:
        console.print(f"[red]Analysis error: {e}[/red]")
        return _error_response(e)


@app.route("/vibe-anchors/initialize", methods=["POST", "OPTIONS"])
def initialize_vibe_anchors():
    """Embed every vibe anchor definition and upsert the catalog."""
    if request.method == "OPTIONS":
        return "", 200

    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        payload = {}
    try:
        report = asyncio.run(
            app.config["ANCHOR_INITIALIZER"](fallback_only=bool(payload.get("fallback_only")))
        )
        return jsonify(report.to_dict())
    except Exception as e:
        console.print(f"[red]Anchor initialization error: {e}[/red]")
        return _error_response(e)


@app.route("/health", methods=["GET"])
def health():
    return jsonify({"status": "ok"})


def parse_args():
    parser = argparse.ArgumentParser(description="Wardrobe item analysis HTTP API")
    parser.add_argument("--host", default="127.0.0.1", help="Bind address")
    parser.add_argument("--port", type=int, default=5001, help="Port (default: 5001)")
    parser.add_argument("--debug", action="store_true", help="Enable Flask debug mode")
    return parser.parse_args()


if __name__ == "__main__":
    args = parse_args()
    console.print(f"[bold cyan]Item analysis API on http://{args.host}:{args.port}[/bold cyan]")
    app.run(host=args.host, port=args.port, debug=args.debug)

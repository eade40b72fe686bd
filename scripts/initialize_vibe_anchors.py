#!/usr/bin/env python3
"""
Seed the vibe_anchors table with embeddings of every anchor definition.

Each anchor description is embedded with the Jina CLIP text encoder so it
lives in the same space as item image embeddings. Anchors whose CLIP call
fails get a deterministic fallback vector instead.

Run after creating the vibe_anchors table and the match_vibe_anchors RPC,
and again whenever the anchor definitions change.

Usage:
    python scripts/initialize_vibe_anchors.py
    python scripts/initialize_vibe_anchors.py --fallback-only

Requires: SUPABASE_URL, SUPABASE_SERVICE_ROLE_KEY and REPLICATE_API_TOKEN in .env.
"""

import argparse
import asyncio
import sys
from pathlib import Path

# Project root
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from src.pipeline import initialize_anchor_catalog
from src.utils.console import console


def main() -> int:
    parser = argparse.ArgumentParser(description="Initialize vibe anchor embeddings")
    parser.add_argument(
        "--fallback-only",
        action="store_true",
        help="Skip Jina CLIP and store deterministic embeddings",
    )
    args = parser.parse_args()

    try:
        report = asyncio.run(initialize_anchor_catalog(fallback_only=args.fallback_only))
    except ValueError as e:
        console.print(f"[red]{e}[/red]")
        return 1

    failed = [r for r in report.results if not r.success]
    for result in failed:
        console.print(f"[red]  ✗ {result.vibe}: {result.error}[/red]")
    return 1 if failed else 0


if __name__ == "__main__":
    sys.exit(main())

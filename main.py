#!/usr/bin/env python3
"""
Wardrobe Item Analysis - Main Entry Point

Analyzes a photo of a single clothing item and saves the structured
annotation (analysis, tags, embedding) to Supabase or local files.

Usage:
    python main.py analyze --item-id ITEM --image-url URL
    python main.py analyze --item-id ITEM --image-url URL --user-id USER --local
    python main.py init-anchors
    python main.py record-correction --user-id U --item-id I --field fit --from slim --to relaxed
"""
import argparse
import asyncio
import json
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent))

from config.settings import config
from src.ai.errors import ItemAnalysisError
from src.pipeline import AnalysisRequest, ItemAnalysisPipeline, initialize_anchor_catalog
from src.utils.console import configure_console, console


class CustomHelpFormatter(argparse.RawDescriptionHelpFormatter):
    """Custom formatter that preserves formatting and adds width."""

    def __init__(self, prog):
        super().__init__(prog, max_help_position=40, width=100)


def parse_args(argv=None):
    """Parse command line arguments."""

    epilog = """
━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
EXAMPLES
━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
  Analyze an item:
    python main.py analyze --item-id 42 --image-url https://.../photo.jpg
    python main.py analyze --item-id 42 --image-url URL --user-id abc   With personalization
    python main.py analyze --item-id 42 --image-url URL --local         Save to ./data only

  Vibe anchors:
    python main.py init-anchors                 Embed anchors with Jina CLIP
    python main.py init-anchors --fallback-only Deterministic embeddings only

━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
NOTES
━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
  • Requires OPENROUTER_API_KEY and REPLICATE_API_TOKEN in .env
  • Supabase storage requires SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY
  • The HTTP API (python server.py) exposes the same pipeline at /analyze-item
"""

    parser = argparse.ArgumentParser(
        prog="python main.py",
        description="""
━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
                      WARDROBE ITEM ANALYSIS PIPELINE
━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
Captions, OCRs and reasons about a clothing photo, then saves:
  • Structured analysis (category, fit, era, vibes, ...)
  • Canonical tags
  • A 512-dimensional embedding
""",
        epilog=epilog,
        formatter_class=CustomHelpFormatter,
    )
    parser.add_argument(
        "-q", "--quiet", action="store_true", help="Suppress progress output"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    analyze = subparsers.add_parser("analyze", help="Analyze one wardrobe item")
    analyze.add_argument("--item-id", required=True, help="Wardrobe item id")
    analyze.add_argument("--image-url", required=True, help="Resolvable image URL")
    analyze.add_argument("--user-id", default=None, help="User for correction context")
    analyze.add_argument(
        "--local",
        action="store_true",
        help="Save to local JSON files instead of Supabase",
    )

    anchors = subparsers.add_parser("init-anchors", help="Seed the vibe anchor table")
    anchors.add_argument(
        "--fallback-only",
        action="store_true",
        help="Skip Jina CLIP and use deterministic embeddings",
    )

    correction = subparsers.add_parser(
        "record-correction", help="Record a manual tag correction"
    )
    correction.add_argument("--user-id", required=True)
    correction.add_argument("--item-id", required=True)
    correction.add_argument("--field", required=True, dest="field_name")
    correction.add_argument("--from", required=True, dest="original_value")
    correction.add_argument("--to", required=True, dest="corrected_value")

    return parser.parse_args(argv)


async def analyze_item(item_id: str, image_url: str, user_id=None, local: bool = False) -> int:
    """Run the pipeline for one item and print the response."""
    request = AnalysisRequest(item_id=item_id, image_url=image_url, user_id=user_id)

    async with ItemAnalysisPipeline.create(local=local) as pipeline:
        result = await pipeline.analyze(request)

    console.print_json(json.dumps(result.to_response()))
    return 0


async def init_anchors(fallback_only: bool = False) -> int:
    """Seed the vibe anchor table."""
    report = await initialize_anchor_catalog(fallback_only=fallback_only)
    summary = report.summary
    return 0 if summary["successful"] == summary["total"] else 1


def record_correction(args) -> int:
    from src.services.correction_history_service import CorrectionHistoryService

    service = CorrectionHistoryService()
    row = service.record_correction(
        user_id=args.user_id,
        item_id=args.item_id,
        field_name=args.field_name,
        original_value=args.original_value,
        corrected_value=args.corrected_value,
    )
    console.print(f"[green]✓ Recorded correction {row.get('id', '')}[/green]")
    return 0


def main(argv=None):
    """Main entry point."""
    args = parse_args(argv)
    configure_console(quiet=args.quiet or config.logging.quiet, log_level=config.logging.log_level)

    try:
        if args.command == "analyze":
            return asyncio.run(
                analyze_item(args.item_id, args.image_url, args.user_id, args.local)
            )
        if args.command == "init-anchors":
            return asyncio.run(init_anchors(args.fallback_only))
        if args.command == "record-correction":
            return record_correction(args)

    except KeyboardInterrupt:
        console.print("\n[yellow]Cancelled by user[/yellow]")
        return 130
    except ItemAnalysisError as e:
        console.print(f"\n[bold red]Analysis failed: {e.message}[/bold red]")
        return 1
    except Exception as e:
        console.print(f"\n[bold red]Unexpected error: {e}[/bold red]")
        return 1

    return 1


if __name__ == "__main__":
    sys.exit(main())

"""
Vibe Anchors - reference embeddings for named aesthetics and eras

Each anchor is a CLIP text embedding of a descriptive paragraph
("Tweed blazers, oxford shoes, turtlenecks, ..."). Item embeddings are
compared against the anchor catalog and close matches raise the item's
vibe scores.

Usage:
    from src.ai.vibe_anchors import SupabaseVibeIndex, blend_vibe_scores

    index = SupabaseVibeIndex(supabase_client)
    matches = index.match(embedding, threshold=0.5, top_k=5)
    analysis.vibe_scores = blend_vibe_scores(analysis.vibe_scores, matches)
"""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Iterable, Mapping, Optional, Protocol, Sequence

from config.settings import config as default_config
from src.utils.console import console

from .capabilities import FallbackChain
from .catalogs import DEFAULT_CATALOGS, Catalogs, anchor_kind
from .embeddings import cosine_similarity, fallback_embedding, l2_normalize
from .errors import ModelUnavailableError


@dataclass(frozen=True)
class VibeAnchor:
    """A named reference vector."""

    vibe_name: str
    embedding: tuple[float, ...]
    description: str = ""

    @property
    def category(self) -> str:
        return anchor_kind(self.vibe_name)


@dataclass(frozen=True)
class AnchorMatch:
    vibe_name: str
    similarity: float


class VibeIndex(Protocol):
    """Nearest-neighbor lookup over the anchor catalog."""

    def match(
        self, embedding: Sequence[float], threshold: float, top_k: int
    ) -> list[AnchorMatch]: ...

    def upsert(self, anchor: VibeAnchor) -> None: ...


# =============================================================================
# INDEXES
# =============================================================================


class SupabaseVibeIndex:
    """Anchor catalog stored in Supabase, queried through a pgvector RPC."""

    def __init__(
        self,
        client,
        table_name: str = default_config.anchors.table_name,
        rpc_name: str = default_config.anchors.rpc_name,
    ):
        self.client = client
        self.table_name = table_name
        self.rpc_name = rpc_name

    def match(
        self, embedding: Sequence[float], threshold: float, top_k: int
    ) -> list[AnchorMatch]:
        response = self.client.rpc(
            self.rpc_name,
            {
                "query_embedding": list(embedding),
                "match_threshold": threshold,
                "match_count": top_k,
            },
        ).execute()

        matches = []
        for row in response.data or []:
            name = row.get("vibe_name")
            similarity = row.get("similarity")
            if name is None or similarity is None:
                continue
            matches.append(AnchorMatch(vibe_name=name, similarity=float(similarity)))
        return matches

    def upsert(self, anchor: VibeAnchor) -> None:
        self.client.table(self.table_name).upsert(
            {
                "vibe_name": anchor.vibe_name,
                "description": anchor.description,
                "category": anchor.category,
                "embedding": list(anchor.embedding),
                "updated_at": datetime.now(timezone.utc).isoformat(),
            },
            on_conflict="vibe_name",
        ).execute()


class InMemoryVibeIndex:
    """
    Anchor catalog held in memory and scored by cosine similarity.

    Used for offline runs and tests.
    """

    def __init__(self, anchors: Iterable[VibeAnchor] = ()):
        self.anchors: dict[str, VibeAnchor] = {a.vibe_name: a for a in anchors}

    def match(
        self, embedding: Sequence[float], threshold: float, top_k: int
    ) -> list[AnchorMatch]:
        scored = [
            AnchorMatch(anchor.vibe_name, cosine_similarity(embedding, anchor.embedding))
            for anchor in self.anchors.values()
        ]
        scored = [m for m in scored if m.similarity > threshold]
        scored.sort(key=lambda m: m.similarity, reverse=True)
        return scored[:top_k]

    def upsert(self, anchor: VibeAnchor) -> None:
        self.anchors[anchor.vibe_name] = anchor


# =============================================================================
# BLENDING
# =============================================================================


def blend_vibe_scores(
    vibe_scores: Mapping[str, float], matches: Iterable[AnchorMatch]
) -> dict[str, float]:
    """
    Raise vibe scores with anchor similarities.

    For every match, score = max(existing score or 0, similarity), with the
    similarity clamped into [0, 1]. Never lowers an existing score.
    """
    blended = dict(vibe_scores)
    for match in matches:
        similarity = max(0.0, min(1.0, match.similarity))
        blended[match.vibe_name] = max(blended.get(match.vibe_name, 0.0), similarity)
    return blended


# =============================================================================
# CATALOG INITIALIZATION
# =============================================================================


@dataclass
class AnchorInitResult:
    vibe: str
    success: bool
    embedding_type: str
    error: Optional[str] = None


@dataclass
class AnchorInitReport:
    results: list[AnchorInitResult] = field(default_factory=list)

    @property
    def summary(self) -> dict:
        return {
            "total": len(self.results),
            "successful": sum(1 for r in self.results if r.success),
            "jina_clip": sum(1 for r in self.results if r.embedding_type == "jina-clip"),
            "fallback": sum(1 for r in self.results if r.embedding_type == "fallback"),
        }

    def to_dict(self) -> dict:
        return {
            "success": True,
            "results": [
                {k: v for k, v in vars(r).items() if v is not None} for r in self.results
            ],
            "summary": self.summary,
        }


async def _embed_description(
    embedder: Optional[FallbackChain], description: str, dimension: int
) -> tuple[list[float], str]:
    if embedder is not None:
        try:
            answer = await embedder.invoke(description)
            if len(answer.value) != dimension:
                raise ModelUnavailableError(
                    f"expected {dimension} dimensions, got {len(answer.value)}",
                    model="jina-clip-v2",
                )
            return l2_normalize(answer.value), "jina-clip"
        except (ModelUnavailableError, ValueError) as e:
            console.print(f"[yellow]CLIP text embedding failed, using fallback: {e}[/yellow]")
    return fallback_embedding(description, dimension), "fallback"


async def initialize_vibe_anchors(
    embedder: Optional[FallbackChain],
    index: VibeIndex,
    catalogs: Catalogs = DEFAULT_CATALOGS,
    delay_seconds: float = default_config.anchors.init_delay_seconds,
    dimension: int = default_config.models.embedding_dimension,
) -> AnchorInitReport:
    """
    Embed every anchor definition and upsert it into the index.

    Args:
        embedder: Chain of CLIP text capabilities (None to use only the
            deterministic fallback)
        index: Target anchor index
        catalogs: Source of the anchor definitions
        delay_seconds: Pause between anchors to stay under rate limits

    Returns:
        AnchorInitReport with one result per anchor
    """
    console.print("[cyan]Initializing vibe anchor embeddings...[/cyan]")
    report = AnchorInitReport()
    definitions = list(catalogs.vibe_definitions.items())

    for i, (vibe_name, description) in enumerate(definitions):
        console.print(f"[dim]Processing: {vibe_name}[/dim]")
        embedding, embedding_type = await _embed_description(embedder, description, dimension)

        try:
            index.upsert(
                VibeAnchor(vibe_name=vibe_name, embedding=tuple(embedding), description=description)
            )
        except Exception as e:
            console.print(f"[red]Failed to update {vibe_name}: {e}[/red]")
            report.results.append(
                AnchorInitResult(vibe_name, False, embedding_type, error=str(e))
            )
        else:
            console.print(f"[green]Updated: {vibe_name} ({embedding_type})[/green]")
            report.results.append(AnchorInitResult(vibe_name, True, embedding_type))

        if delay_seconds and i + 1 < len(definitions):
            await asyncio.sleep(delay_seconds)

    summary = report.summary
    console.print(
        f"[green]Initialized {summary['successful']}/{summary['total']} vibe anchors[/green] "
        f"[dim](Jina CLIP: {summary['jina_clip']}, fallback: {summary['fallback']})[/dim]"
    )
    return report

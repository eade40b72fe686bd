"""
Item analysis pipeline orchestrating vision, reasoning, embedding and storage.

    caption ─┐
    ocr ─────┼─> reasoning ─> extraction ─┐
    history ─┘                            ├─> anchors ─> tags ─> persist
    embedding ────────────────────────────┘

Caption, OCR and embedding start together; correction history loads while
they run. Anything that fails before persistence aborts the run and
nothing is written.
"""

import asyncio
import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional, Protocol

from config.settings import ModelConfig, PipelineConfig, config
from src.ai.analysis import FashionAnalysis, PersistedAnnotation, parse_fashion_analysis
from src.ai.capabilities import (
    FallbackChain,
    build_caption_chain,
    build_embedding_chain,
    build_ocr_chain,
    build_reasoning_chain,
    normalize_ocr,
)
from src.ai.catalogs import DEFAULT_CATALOGS, NO_TEXT_VISIBLE, Catalogs
from src.ai.embeddings import EmbeddingResult, EmbeddingsService
from src.ai.errors import AnalysisTimeoutError, MissingInputError
from src.ai.openai_client import OpenRouterClient
from src.ai.prompts import build_reasoning_prompt
from src.ai.replicate_client import ReplicateClient, ReplicateConfig
from src.ai.tag_policy import derive_tags
from src.ai.vibe_anchors import SupabaseVibeIndex, VibeIndex, blend_vibe_scores
from src.services.correction_history_service import (
    CorrectionRecord,
    format_correction_context,
)
from src.utils.console import console


def replicate_config(models: ModelConfig) -> ReplicateConfig:
    """Replicate client settings for the configured model versions."""
    return ReplicateConfig(
        florence_version=models.florence_version,
        jina_clip_version=models.jina_clip_version,
        embedding_dimension=models.embedding_dimension,
        timeout_seconds=models.http_timeout_seconds,
        poll_interval_seconds=models.poll_interval_seconds,
        poll_max_attempts=models.poll_max_attempts,
    )


@dataclass(frozen=True)
class AnalysisRequest:
    """One analysis invocation."""

    item_id: str
    image_url: str
    user_id: Optional[str] = None

    @classmethod
    def from_payload(cls, payload: Any) -> "AnalysisRequest":
        """
        Build a request from a JSON body.

        Raises:
            MissingInputError: item_id or image_url absent
        """
        if not isinstance(payload, dict):
            payload = {}
        request = cls(
            item_id=str(payload.get("item_id") or "").strip(),
            image_url=str(payload.get("image_url") or "").strip(),
            user_id=payload.get("user_id") or None,
        )
        request.validate()
        return request

    def validate(self) -> None:
        if not self.item_id or not self.image_url:
            raise MissingInputError("Missing item_id or image_url")


@dataclass
class AnalysisResult:
    """Everything a successful run produced."""

    item_id: str
    analysis: FashionAnalysis
    embedding: EmbeddingResult
    tags: set[str]
    analyzed_at: datetime
    pipeline: dict[str, str] = field(default_factory=dict)

    def to_response(self) -> dict:
        return {
            "success": True,
            "analysis": self.analysis.to_dict(),
            "embedding_dimensions": len(self.embedding.vector),
            "pipeline": dict(self.pipeline),
        }


class CorrectionsStore(Protocol):
    def load_recent_corrections(
        self, user_id: Optional[str], limit: int
    ) -> list[CorrectionRecord]: ...


class RecordStore(Protocol):
    async def update_wardrobe_item(
        self, item_id: str, annotation: PersistedAnnotation
    ) -> Any: ...


class ItemAnalysisPipeline:
    """
    Analysis pipeline for a single wardrobe item photo.

    Orchestrates:
    - Vision: caption and OCR, each with a fallback model
    - Reasoning: structured analysis from caption, OCR and user corrections
    - Embedding: CLIP image vector, deterministic fallback
    - Enrichment: vibe anchor blending and tag derivation
    - Load: one atomic update of the item record
    """

    def __init__(
        self,
        caption_chain: FallbackChain,
        ocr_chain: FallbackChain,
        reasoning_chain: FallbackChain,
        embeddings: EmbeddingsService,
        record_store: RecordStore,
        corrections: Optional[CorrectionsStore] = None,
        vibe_index: Optional[VibeIndex] = None,
        catalogs: Catalogs = DEFAULT_CATALOGS,
        pipeline_config: Optional[PipelineConfig] = None,
    ):
        self.caption_chain = caption_chain
        self.ocr_chain = ocr_chain
        self.reasoning_chain = reasoning_chain
        self.embeddings = embeddings
        self.record_store = record_store
        self.corrections = corrections
        self.vibe_index = vibe_index
        self.catalogs = catalogs
        self.config = pipeline_config or config
        self._owned_clients: list = []

    @classmethod
    def create(
        cls,
        pipeline_config: Optional[PipelineConfig] = None,
        local: bool = False,
    ) -> "ItemAnalysisPipeline":
        """
        Build a pipeline wired to the hosted model APIs.

        Args:
            pipeline_config: Settings (defaults to the module config)
            local: Write annotations to JSON files instead of Supabase and
                skip correction history and anchor matching

        Raises:
            ValueError: A required credential is missing
        """
        cfg = pipeline_config or config

        if local:
            from src.loaders.file_loader import FileLoader

            record_store = FileLoader(cfg.storage)
            corrections = None
            vibe_index = None
        else:
            from src.loaders.supabase_loader import SupabaseLoader, get_supabase_client
            from src.services.correction_history_service import CorrectionHistoryService

            client = get_supabase_client(settings=cfg.supabase)
            record_store = SupabaseLoader(client=client, table_name=cfg.supabase.items_table)
            corrections = CorrectionHistoryService(
                client=client, table_name=cfg.supabase.corrections_table
            )
            vibe_index = SupabaseVibeIndex(
                client, table_name=cfg.anchors.table_name, rpc_name=cfg.anchors.rpc_name
            )

        # Stores first: the OpenRouter client opens its HTTP pool on construction
        replicate = ReplicateClient(replicate_config(cfg.models))
        openrouter = OpenRouterClient()

        pipeline = cls(
            caption_chain=build_caption_chain(replicate, openrouter, cfg.models),
            ocr_chain=build_ocr_chain(replicate, openrouter, cfg.models),
            reasoning_chain=build_reasoning_chain(openrouter, cfg.models),
            embeddings=EmbeddingsService(
                build_embedding_chain(replicate), cfg.models.embedding_dimension
            ),
            record_store=record_store,
            corrections=corrections,
            vibe_index=vibe_index,
            pipeline_config=cfg,
        )
        pipeline._owned_clients = [replicate, openrouter]
        return pipeline

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def close(self) -> None:
        for client in self._owned_clients:
            await client.close()
        self._owned_clients = []

    # =========================================================================
    # RUN
    # =========================================================================

    async def analyze(self, request: AnalysisRequest) -> AnalysisResult:
        """
        Run the full pipeline for one item and persist the result.

        Args:
            request: Item id, image URL and optional user id

        Returns:
            AnalysisResult with the persisted analysis and provenance

        Raises:
            MissingInputError: Before any model call
            ModelUnavailableError: Caption, OCR or reasoning failed
            MalformedAnalysisError: Reasoning output unusable
            AnalysisTimeoutError: Overall timeout exceeded (nothing persisted)
            PersistenceError: Store write failed
        """
        request.validate()
        console.print(f"\n[bold blue]═══ ANALYZING ITEM {request.item_id} ═══[/bold blue]")

        timeout = self.config.request_timeout_seconds
        try:
            if timeout:
                result = await asyncio.wait_for(self._run_analysis(request), timeout)
            else:
                result = await self._run_analysis(request)
        except asyncio.TimeoutError as e:
            console.print(f"[red]Analysis of {request.item_id} exceeded {timeout:.0f}s[/red]")
            raise AnalysisTimeoutError(
                f"Analysis timed out after {timeout:.0f}s; nothing was saved"
            ) from e

        # PERSIST
        console.print("[cyan]Step 7: Updating database...[/cyan]")
        result.analyzed_at = datetime.now(timezone.utc)
        annotation = PersistedAnnotation(
            analysis=result.analysis,
            embedding=result.embedding.vector,
            tags=result.tags,
            analyzed_at=result.analyzed_at,
        )
        await self.record_store.update_wardrobe_item(request.item_id, annotation)

        console.print(
            f"[bold green]✓ Analysis complete for item {request.item_id}[/bold green] "
            f"[dim]({len(result.tags)} tags, {len(result.embedding.vector)}-dim "
            f"{result.embedding.source} embedding)[/dim]"
        )
        return result

    async def _run_analysis(self, request: AnalysisRequest) -> AnalysisResult:
        """Everything up to, but not including, persistence."""
        console.print("[cyan]Step 1-2: Captioning, OCR and embedding in parallel...[/cyan]")
        caption_task = asyncio.create_task(self.caption_chain.invoke(request.image_url))
        ocr_task = asyncio.create_task(self.ocr_chain.invoke(request.image_url))
        embedding_task = asyncio.create_task(self.embeddings.embed_image(request.image_url))
        tasks = (caption_task, ocr_task, embedding_task)

        try:
            console.print("[cyan]Step 3: Loading correction history...[/cyan]")
            correction_context = await self._load_correction_context(request.user_id)

            caption, ocr = await asyncio.gather(caption_task, ocr_task)
            dense_caption = str(caption.value or "").strip()
            ocr_text = normalize_ocr(ocr.value)
            console.print(
                f"[dim]Caption ({caption.answered_by}): {len(dense_caption)} chars, "
                f"OCR ({ocr.answered_by}): "
                f"{'none' if ocr_text == NO_TEXT_VISIBLE else f'{len(ocr_text)} chars'}[/dim]"
            )

            console.print("[cyan]Step 4: Semantic reasoning...[/cyan]")
            prompt = build_reasoning_prompt(
                dense_caption, ocr_text, correction_context, self.catalogs
            )
            reasoning = await self.reasoning_chain.invoke(prompt)

            console.print("[cyan]Step 5: Extracting structured analysis...[/cyan]")
            analysis = parse_fashion_analysis(reasoning.value, self.catalogs)
            analysis.apply_stage_outputs(dense_caption, ocr_text)

            embedding = await embedding_task
        finally:
            for task in tasks:
                if not task.done():
                    task.cancel()

        if embedding is None:
            embedding = self.embeddings.embed_fallback(json.dumps(analysis.to_dict()))

        console.print("[cyan]Step 6: Matching vibe anchors...[/cyan]")
        await self._blend_vibe_anchors(analysis, embedding.vector)

        tags = derive_tags(analysis, self.catalogs)

        return AnalysisResult(
            item_id=request.item_id,
            analysis=analysis,
            embedding=embedding,
            tags=tags,
            analyzed_at=datetime.now(timezone.utc),
            pipeline={
                "captioning": caption.answered_by,
                "ocr": ocr.answered_by,
                "reasoning": reasoning.answered_by,
                "embedding": embedding.source,
            },
        )

    # =========================================================================
    # BEST-EFFORT STAGES
    # =========================================================================

    async def _load_correction_context(self, user_id: Optional[str]) -> str:
        """Few-shot block from recent corrections; "" when unavailable."""
        if self.corrections is None or not user_id:
            return ""
        try:
            records = await asyncio.to_thread(
                self.corrections.load_recent_corrections,
                user_id,
                self.config.correction_limit,
            )
        except Exception as e:
            console.print(f"[yellow]Correction history unavailable, continuing without: {e}[/yellow]")
            return ""

        if not records:
            console.print("[dim]No correction history for user[/dim]")
            return ""
        console.print(f"[dim]Loaded {len(records)} recent corrections[/dim]")
        return format_correction_context(records[: self.config.correction_limit])

    async def _blend_vibe_anchors(
        self, analysis: FashionAnalysis, vector: list[float]
    ) -> None:
        if self.vibe_index is None:
            return
        try:
            matches = await asyncio.to_thread(
                self.vibe_index.match,
                vector,
                self.config.anchors.match_threshold,
                self.config.anchors.match_count,
            )
        except Exception as e:
            console.print(f"[yellow]Vibe anchor matching skipped: {e}[/yellow]")
            return

        if matches:
            analysis.vibe_scores = blend_vibe_scores(analysis.vibe_scores, matches)
            console.print(f"[dim]Matched {len(matches)} vibe anchors[/dim]")


# =============================================================================
# ANCHOR CATALOG
# =============================================================================


async def initialize_anchor_catalog(
    pipeline_config: Optional[PipelineConfig] = None,
    fallback_only: bool = False,
    catalogs: Catalogs = DEFAULT_CATALOGS,
):
    """
    Embed and upsert every vibe anchor into the Supabase anchor table.

    Args:
        pipeline_config: Settings (defaults to the module config)
        fallback_only: Skip CLIP and use deterministic embeddings only

    Returns:
        AnchorInitReport
    """
    from src.ai.capabilities import ClipTextEmbedding
    from src.ai.vibe_anchors import initialize_vibe_anchors
    from src.loaders.supabase_loader import get_supabase_client

    cfg = pipeline_config or config
    index = SupabaseVibeIndex(
        get_supabase_client(settings=cfg.supabase),
        table_name=cfg.anchors.table_name,
        rpc_name=cfg.anchors.rpc_name,
    )

    if fallback_only:
        return await initialize_vibe_anchors(
            None,
            index,
            catalogs,
            delay_seconds=0,
            dimension=cfg.models.embedding_dimension,
        )

    async with ReplicateClient(replicate_config(cfg.models)) as replicate:
        embedder = FallbackChain("anchor-embedding", [ClipTextEmbedding(replicate)])
        return await initialize_vibe_anchors(
            embedder,
            index,
            catalogs,
            delay_seconds=cfg.anchors.init_delay_seconds,
            dimension=cfg.models.embedding_dimension,
        )

from __future__ import annotations

import logging
from dataclasses import dataclass

from tandem.config import AppConfig
from tandem.llm.invoker import GenerationInvoker
from tandem.llm.providers import build_generation_provider
from tandem.models import SourceCollection
from tandem.retrievers.embeddings import build_embedding_provider
from tandem.retrievers.retriever import SourceBinding
from tandem.retrievers.sources import (
    SeedSimilaritySource,
    SimilaritySource,
    SupabaseSimilaritySource,
)

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class MultiHopSettings:
    initial_k: int = 15
    followup_k: int = 8
    max_followup_questions: int = 8
    max_concurrent_followups: int = 8
    followup_max_chars_per_passage: int = 1500
    followup_max_total_chars: int = 6000
    final_max_chars_per_passage: int = 2000
    final_max_total_chars: int = 10000


@dataclass(frozen=True)
class RuntimeContext:
    """Collaborators shared by every query; built once at startup."""

    bindings: tuple[SourceBinding, ...]
    invoker: GenerationInvoker
    settings: MultiHopSettings


def settings_from_config(config: AppConfig) -> MultiHopSettings:
    return MultiHopSettings(
        initial_k=config.initial_retrieval_k,
        followup_k=config.followup_retrieval_k,
        max_followup_questions=config.max_followup_questions,
        max_concurrent_followups=config.max_concurrent_followups,
        followup_max_chars_per_passage=config.followup_max_chars_per_passage,
        followup_max_total_chars=config.followup_max_total_chars,
        final_max_chars_per_passage=config.final_max_chars_per_passage,
        final_max_total_chars=config.final_max_total_chars,
    )


def build_runtime_context(config: AppConfig) -> RuntimeContext:
    bindings = (
        SourceBinding(
            source=_build_source(
                config,
                SourceCollection.DOCUMENTS,
                seed_path=config.seed_documents_path,
                match_function=config.supabase_documents_function,
            ),
            weight=config.documents_weight,
        ),
        SourceBinding(
            source=_build_source(
                config,
                SourceCollection.TRANSCRIPTS,
                seed_path=config.seed_transcripts_path,
                match_function=config.supabase_transcripts_function,
            ),
            weight=config.transcripts_weight,
        ),
    )
    invoker = GenerationInvoker(
        primary=build_generation_provider(config.primary_provider, config),
        secondary=build_generation_provider(config.secondary_provider, config),
    )
    LOGGER.info(
        "Runtime context ready",
        extra={
            "primary_provider": config.primary_provider,
            "secondary_provider": config.secondary_provider,
            "use_real_supabase": config.use_real_supabase,
        },
    )
    return RuntimeContext(
        bindings=bindings,
        invoker=invoker,
        settings=settings_from_config(config),
    )


def source_mode(config: AppConfig) -> str:
    if config.use_real_supabase and config.supabase_url and config.supabase_key:
        return "supabase"
    return "seed"


def _build_source(
    config: AppConfig,
    collection: SourceCollection,
    *,
    seed_path: str,
    match_function: str,
) -> SimilaritySource:
    if source_mode(config) != "supabase":
        if config.use_real_supabase:
            LOGGER.warning(
                "Supabase requested but not configured; using seed passages",
                extra={"collection": collection.value},
            )
        return SeedSimilaritySource(collection, seed_path)

    embedding_provider = build_embedding_provider(
        backend=config.embedding_backend,
        api_key=config.gemini_api_key,
        model=config.gemini_embedding_model,
        dimensions=config.embedding_dimensions,
    )
    return SupabaseSimilaritySource(
        collection=collection,
        supabase_url=config.supabase_url or "",
        supabase_key=config.supabase_key or "",
        match_function=match_function,
        embedding_provider=embedding_provider,
        match_threshold=config.similarity_threshold,
    )

from __future__ import annotations

import asyncio
import logging
from time import perf_counter

from tandem.context import MultiHopSettings
from tandem.followup import synthesize_followups
from tandem.llm.invoker import GenerationInvoker
from tandem.models import GenerationRequest, HopRecord, Passage
from tandem.prompts import build_final_prompt
from tandem.retrievers.evidence import budget_passages, dedupe_passages
from tandem.retrievers.retriever import Retriever, SourceBinding, select_retriever

from .state import MultiHopStage, MultiHopState

LOGGER = logging.getLogger(__name__)


def make_initial_retrieval_node(
    bindings: tuple[SourceBinding, ...],
    settings: MultiHopSettings,
):
    async def _node(state: MultiHopState) -> MultiHopState:
        started = perf_counter()
        question = state.get("question", "")
        retriever = select_retriever(list(bindings))
        if retriever is None:
            LOGGER.warning("No similarity source is available; hop 1 found nothing")
            passages: list[Passage] = []
        else:
            passages = await retriever.search(question, settings.initial_k)
        return {
            "stage": MultiHopStage.INITIAL_RETRIEVAL,
            "retriever": retriever,
            "hop1_passages": passages,
            "hops": [
                HopRecord(hop_number=1, queries=[question], passages_found=len(passages))
            ],
            "telemetry_events": [
                {
                    "event": "hop_completed",
                    "hop": 1,
                    "retriever_mode": retriever.mode if retriever else "unavailable",
                    "sources": list(retriever.source_names) if retriever else [],
                    "query_count": 1,
                    "count": len(passages),
                    "duration_ms": _duration_ms(started),
                }
            ],
        }

    return _node


def make_followup_synthesis_node(
    invoker: GenerationInvoker,
    settings: MultiHopSettings,
):
    async def _node(state: MultiHopState) -> MultiHopState:
        started = perf_counter()
        evidence = budget_passages(
            state.get("hop1_passages", []),
            max_chars_per_passage=settings.followup_max_chars_per_passage,
            max_total_chars=settings.followup_max_total_chars,
        )
        outcome = await synthesize_followups(
            question=state.get("question", ""),
            evidence=evidence,
            invoker=invoker,
            max_questions=settings.max_followup_questions,
        )
        return {
            "stage": MultiHopStage.FOLLOWUP_SYNTHESIS,
            "followup_questions": list(outcome.questions),
            "followup_strategy": outcome.strategy,
            "telemetry_events": [
                {
                    "event": "followups_synthesized",
                    "count": len(outcome.questions),
                    "strategy": outcome.strategy,
                    "evidence_count": len(evidence),
                    "provider_used": (
                        outcome.provider_used.value if outcome.provider_used else None
                    ),
                    "generation_failed": outcome.error is not None,
                    "duration_ms": _duration_ms(started),
                }
            ],
        }

    return _node


def make_secondary_retrieval_node(settings: MultiHopSettings):
    async def _node(state: MultiHopState) -> MultiHopState:
        started = perf_counter()
        questions = list(state.get("followup_questions", []))
        retriever = state.get("retriever")
        per_question = await _retrieve_concurrently(
            retriever,
            questions,
            k=settings.followup_k,
            max_concurrency=settings.max_concurrent_followups,
        )
        passages = [passage for batch in per_question for passage in batch]
        return {
            "stage": MultiHopStage.SECONDARY_RETRIEVAL,
            "hop2_passages": passages,
            "hops": [
                HopRecord(hop_number=2, queries=questions, passages_found=len(passages))
            ],
            "telemetry_events": [
                {
                    "event": "hop_completed",
                    "hop": 2,
                    "query_count": len(questions),
                    "per_query_counts": [len(batch) for batch in per_question],
                    "count": len(passages),
                    "duration_ms": _duration_ms(started),
                }
            ],
        }

    return _node


def merge_and_dedup_node(state: MultiHopState) -> MultiHopState:
    combined = [*state.get("hop1_passages", []), *state.get("hop2_passages", [])]
    evidence = dedupe_passages(combined)
    return {
        "stage": MultiHopStage.MERGE_AND_DEDUP,
        "evidence": evidence,
        "telemetry_events": [
            {
                "event": "evidence_merged",
                "combined_count": len(combined),
                "count": len(evidence),
                "duplicates_removed": len(combined) - len(evidence),
            }
        ],
    }


def make_generate_final_node(
    invoker: GenerationInvoker,
    settings: MultiHopSettings,
):
    async def _node(state: MultiHopState) -> MultiHopState:
        started = perf_counter()
        grounding = budget_passages(
            state.get("evidence", []),
            max_chars_per_passage=settings.final_max_chars_per_passage,
            max_total_chars=settings.final_max_total_chars,
        )
        prompt = build_final_prompt(state.get("question", ""), grounding)
        result = await invoker.generate(GenerationRequest(prompt_text=prompt))
        return {
            "stage": MultiHopStage.GENERATE_FINAL,
            "answer": result.text,
            "provider_used": result.provider_used,
            "provider_name": result.provider_name,
            "telemetry_events": [
                {
                    "event": "answer_generated",
                    "provider_used": result.provider_used.value,
                    "provider_name": result.provider_name,
                    "fallback_used": result.primary_error is not None,
                    "primary_error": result.primary_error,
                    "grounding_count": len(grounding),
                    "duration_ms": _duration_ms(started),
                }
            ],
        }

    return _node


def finalize_node(state: MultiHopState) -> MultiHopState:
    return {
        "stage": MultiHopStage.DONE,
        "telemetry_events": [
            {
                "event": "orchestration_completed",
                "hop_count": len(state.get("hops", [])),
                "evidence_count": len(state.get("evidence", [])),
            }
        ],
    }


async def _retrieve_concurrently(
    retriever: Retriever | None,
    questions: list[str],
    *,
    k: int,
    max_concurrency: int,
) -> list[list[Passage]]:
    if retriever is None or not questions:
        return [[] for _ in questions]

    semaphore = asyncio.Semaphore(max(1, min(len(questions), max_concurrency)))

    async def _search(question: str) -> list[Passage]:
        async with semaphore:
            return await retriever.search(question, k)

    return list(await asyncio.gather(*(_search(question) for question in questions)))


def _duration_ms(started: float) -> int:
    return int((perf_counter() - started) * 1000)

from __future__ import annotations

import operator
from enum import Enum
from typing import Annotated, Any, TypedDict

from tandem.models import HopRecord, Passage, ProviderRole
from tandem.retrievers.retriever import Retriever


class MultiHopStage(str, Enum):
    INITIAL_RETRIEVAL = "INITIAL_RETRIEVAL"
    FOLLOWUP_SYNTHESIS = "FOLLOWUP_SYNTHESIS"
    SECONDARY_RETRIEVAL = "SECONDARY_RETRIEVAL"
    MERGE_AND_DEDUP = "MERGE_AND_DEDUP"
    GENERATE_FINAL = "GENERATE_FINAL"
    DONE = "DONE"
    FAILED = "FAILED"


class MultiHopState(TypedDict, total=False):
    request_id: str
    question: str
    stage: MultiHopStage
    retriever: Retriever | None
    hop1_passages: list[Passage]
    followup_questions: list[str]
    followup_strategy: str
    hop2_passages: list[Passage]
    evidence: list[Passage]
    answer: str | None
    provider_used: ProviderRole | None
    provider_name: str | None
    hops: Annotated[list[HopRecord], operator.add]
    telemetry_events: Annotated[list[dict[str, Any]], operator.add]


def create_initial_state(question: str, request_id: str = "unknown") -> MultiHopState:
    return {
        "request_id": request_id,
        "question": question,
        "stage": MultiHopStage.INITIAL_RETRIEVAL,
        "retriever": None,
        "hop1_passages": [],
        "followup_questions": [],
        "followup_strategy": "none",
        "hop2_passages": [],
        "evidence": [],
        "answer": None,
        "provider_used": None,
        "provider_name": None,
        "hops": [],
        "telemetry_events": [],
    }
